# app/utils/json_parser.py
"""
Helpers for decoding MQTT message payloads.
Brokers hand us bytes; REST and tests may hand us str.
"""

import json
from typing import Optional, Any, Union


def decode_payload(raw: Union[bytes, bytearray, str]) -> str:
    """Bytes → str (UTF-8, undecodable bytes replaced). str passes through."""
    if isinstance(raw, (bytes, bytearray)):
        return bytes(raw).decode("utf-8", errors="replace")
    return raw


def safe_parse_json(raw: Union[bytes, bytearray, str]) -> Optional[Any]:
    """Parse JSON safely. Returns None on error."""
    try:
        return json.loads(decode_payload(raw))
    except (json.JSONDecodeError, TypeError):
        return None


def is_json_object(raw: Union[bytes, bytearray, str]) -> bool:
    """Cheap check on the first non-blank character."""
    return decode_payload(raw).lstrip().startswith("{")
