import hashlib
import json

import httpx
import pytest

from pooled_lottery.entropy import (
    BlockEntropy,
    ClockEntropy,
    DrawContext,
    FileEntropy,
    FixedEntropy,
    derive_index,
)
from pooled_lottery.errors import EmptyRosterError, EntropyError
from pooled_lottery.rpc import RpcClient, RpcError, load_seed_from_block_feed_file

CONTEXT = DrawContext(manager="m", players=("a", "b", "c"), balance=3, timestamp=0.0)
BLOCK_HASH = "0x" + "12" * 32


def test_derive_index_matches_sha256():
    index, seed_hash_hex = derive_index("abc", 7)
    expected = hashlib.sha256(b"abc").hexdigest()
    assert seed_hash_hex == expected
    assert index == int(expected, 16) % 7


def test_derive_index_stays_in_range():
    for n in range(1, 20):
        index, _ = derive_index(f"seed-{n}", n)
        assert 0 <= index < n


def test_derive_index_single_player():
    assert derive_index("anything", 1)[0] == 0


def test_derive_index_rejects_empty_roster():
    with pytest.raises(EmptyRosterError):
        derive_index("seed", 0)


def test_fixed_entropy():
    assert FixedEntropy("x").seed(CONTEXT) == "x"


def test_clock_entropy_mixes_context():
    source = ClockEntropy(clock=lambda: 1234)
    seed = source.seed(CONTEXT)
    assert seed == "1234|m|3|a,b,c"


def _rpc(handler):
    return RpcClient("http://node.test", transport=httpx.MockTransport(handler))


def _block_handler(request):
    body = json.loads(request.content)
    if body["method"] == "eth_getBlockByNumber":
        return httpx.Response(
            200,
            json={"jsonrpc": "2.0", "id": body["id"], "result": {"number": "0x10", "hash": BLOCK_HASH}},
        )
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": {"code": -32601}})


def test_block_entropy_uses_latest_block_hash():
    with _rpc(_block_handler) as rpc:
        source = BlockEntropy(rpc)
        assert source.seed(CONTEXT) == BLOCK_HASH
        assert source.last_block_number == 16


def test_rpc_sends_hex_block_tag():
    seen = []

    def handler(request):
        body = json.loads(request.content)
        seen.append(body["params"])
        return _block_handler(request)

    with _rpc(handler) as rpc:
        rpc.get_blockhash(16)
    assert seen == [["0x10", False]]


def test_rpc_error_is_entropy_error():
    def handler(request):
        body = json.loads(request.content)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": {"code": -1}})

    with _rpc(handler) as rpc:
        with pytest.raises(EntropyError):
            BlockEntropy(rpc).seed(CONTEXT)


def test_rpc_http_failure_is_wrapped():
    with _rpc(lambda request: httpx.Response(503)) as rpc:
        with pytest.raises(RpcError):
            rpc.get_block("latest")


def test_rpc_missing_block():
    def handler(request):
        body = json.loads(request.content)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": None})

    with _rpc(handler) as rpc:
        with pytest.raises(RpcError):
            rpc.get_block("latest")


@pytest.mark.parametrize(
    "content",
    [
        BLOCK_HASH,
        json.dumps({"hash": BLOCK_HASH}),
        json.dumps({"blockhash": BLOCK_HASH}),
        json.dumps({"result": {"hash": BLOCK_HASH}}),
        json.dumps({"number": "0x10", "hash": BLOCK_HASH}),
        json.dumps({"blocks": {"16": {"hash": BLOCK_HASH}}}),
    ],
)
def test_block_feed_file_formats(tmp_path, content):
    path = tmp_path / "feed.json"
    path.write_text(content, encoding="utf-8")
    assert load_seed_from_block_feed_file(str(path), block_hint=16) == BLOCK_HASH


def test_block_feed_file_number_mismatch(tmp_path):
    path = tmp_path / "feed.json"
    path.write_text(json.dumps({"number": 15, "hash": BLOCK_HASH}), encoding="utf-8")
    with pytest.raises(EntropyError):
        load_seed_from_block_feed_file(str(path), block_hint=16)


def test_block_feed_file_without_hash(tmp_path):
    path = tmp_path / "feed.json"
    path.write_text(json.dumps({"foo": "bar"}), encoding="utf-8")
    with pytest.raises(EntropyError):
        load_seed_from_block_feed_file(str(path))


def test_block_feed_file_bad_json(tmp_path):
    path = tmp_path / "feed.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(EntropyError):
        load_seed_from_block_feed_file(str(path))


def test_file_entropy(tmp_path):
    path = tmp_path / "feed.txt"
    path.write_text(BLOCK_HASH + "\n", encoding="utf-8")
    assert FileEntropy(str(path)).seed(CONTEXT) == BLOCK_HASH


def test_file_entropy_missing_file(tmp_path):
    with pytest.raises(EntropyError):
        FileEntropy(str(tmp_path / "missing.txt")).seed(CONTEXT)


@pytest.mark.parametrize("number", [None, "latest", 16])
def test_rpc_malformed_block_number(number):
    def handler(request):
        body = json.loads(request.content)
        block = {"hash": BLOCK_HASH}
        if number is not None:
            block["number"] = number
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": block})

    with _rpc(handler) as rpc:
        with pytest.raises(RpcError):
            BlockEntropy(rpc).seed(CONTEXT)


@pytest.mark.parametrize("number", ["sixteen", "0xzz", [16]])
def test_block_feed_file_malformed_number(tmp_path, number):
    path = tmp_path / "feed.json"
    path.write_text(json.dumps({"number": number, "hash": BLOCK_HASH}), encoding="utf-8")
    with pytest.raises(EntropyError):
        load_seed_from_block_feed_file(str(path), block_hint=16)
