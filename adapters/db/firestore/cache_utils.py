"""Redis tier helpers for the devices store."""

from __future__ import annotations

import json
from typing import Any, Optional, Protocol, Union

# Written over a key on invalidation; fills use NX and cannot replace it
TOMBSTONE = "__invalidated__"


class CacheClient(Protocol):
	"""The redis.Redis subset the devices store uses."""

	def get(self, key: str) -> Optional[bytes]: ...
	def set(self, key: str, value: str, ex: Optional[int] = None, nx: bool = False) -> Any: ...


def ensure_text(value: Optional[Union[str, bytes, bytearray]]) -> Optional[str]:
	"""Decode cache payloads to text; None when undecodable."""

	if value is None:
		return None

	if isinstance(value, str):
		return value

	try:
		return bytes(value).decode("utf-8")
	except (TypeError, ValueError):
		return None


def decode_payload(value: Optional[Union[str, bytes, bytearray]]) -> Optional[dict]:
	"""Cached device payload, or None for a miss, a tombstone or garbage."""

	text = ensure_text(value)
	if not text or text == TOMBSTONE:
		return None

	try:
		obj = json.loads(text)
	except ValueError:
		return None

	return obj if isinstance(obj, dict) else None


def encode_payload(obj: Any) -> str:
	return json.dumps(obj, separators=(",", ":"))
