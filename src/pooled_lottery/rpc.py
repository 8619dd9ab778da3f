from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional, Tuple

import httpx

from .errors import EntropyError

log = logging.getLogger(__name__)


class RpcError(EntropyError):
    pass


class RpcClient:
    """Minimal Ethereum JSON-RPC client, used only to read block metadata."""

    def __init__(
        self,
        rpc_url: str,
        timeout_s: float = 60.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.client = httpx.Client(timeout=timeout_s, transport=transport)
        self._id = 0

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "RpcClient":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def _post(self, method: str, params: list) -> Dict[str, Any]:
        self._id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._id,
            "method": method,
            "params": params,
        }
        log.debug("rpc %s %s", method, params)
        try:
            resp = self.client.post(self.rpc_url, json=payload)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise RpcError(f"RPC call {method} failed: {e}") from e
        if "error" in data:
            raise RpcError(f"RPC error: {data['error']}")
        return data

    def get_block(self, block: int | str = "latest") -> Dict[str, Any]:
        tag = hex(block) if isinstance(block, int) else block
        data = self._post("eth_getBlockByNumber", [tag, False])
        result = data.get("result")
        if not result or "hash" not in result:
            raise RpcError(f"Block {block}: eth_getBlockByNumber returned no hash.")
        return result

    def get_blockhash(self, block: int | str = "latest") -> Tuple[int, str]:
        """Returns (block number, block hash)."""
        result = self.get_block(block)
        try:
            number = int(result["number"], 16)
        except (KeyError, TypeError, ValueError) as e:
            raise RpcError(f"Block {block}: bad block number {result.get('number')!r}") from e
        return number, result["hash"]


def load_seed_from_block_feed_file(path: str, block_hint: Optional[int] = None) -> str:
    """
    Supports:
    1) Raw block hash string in file
    2) JSON object containing:
       - {"hash": "..."} or {"blockhash": "..."}
       - {"result": {"hash": "..."}}   (a saved eth_getBlockByNumber response)
       - {"number": 123, "hash": "..."}   (optionally verified against block_hint)
       - {"blocks": {"123": {"hash": "..."}}}  (requires block_hint)
    """
    with open(path, "r", encoding="utf-8") as f:
        raw = f.read().strip()

    if raw and raw[0] != "{":
        return raw

    try:
        j = json.loads(raw)
    except ValueError as e:
        raise EntropyError(f"Block feed file is not valid JSON or raw string: {e}") from e

    if isinstance(j, dict):
        found = _hash_of(j)
        if found is not None:
            number = j.get("number")
            if block_hint is not None and number is not None and _as_int(number) != int(block_hint):
                raise EntropyError(
                    f"Block feed mismatch: file block={number} vs expected block={block_hint}"
                )
            return found

        if isinstance(j.get("result"), dict):
            found = _hash_of(j["result"])
            if found is not None:
                return found

        if block_hint is not None and isinstance(j.get("blocks"), dict):
            block_obj = j["blocks"].get(str(int(block_hint)))
            if isinstance(block_obj, dict):
                found = _hash_of(block_obj)
                if found is not None:
                    return found

    raise EntropyError(
        "Could not find a block hash in block feed file. "
        "Expected raw string or JSON with hash/blockhash/result.hash/(blocks[n].hash)."
    )


def _hash_of(obj: Dict[str, Any]) -> Optional[str]:
    for key in ("hash", "blockhash"):
        if isinstance(obj.get(key), str):
            return obj[key]
    return None


def _as_int(value: Any) -> int:
    try:
        if isinstance(value, str) and value.lower().startswith("0x"):
            return int(value, 16)
        return int(value)
    except (TypeError, ValueError) as e:
        raise EntropyError(f"Block feed has a malformed block number: {value!r}") from e
