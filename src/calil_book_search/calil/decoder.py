"""Decoding of Calil response bodies.

The Calil API answers with JSONP (``callback({...});``) even when
``format=json`` is requested, unless the caller opts out of the callback.
Both shapes are accepted here; everything else fails closed.
"""

import json
import re
from typing import Any

from .errors import DecodeError

# <identifier>( <body> ); with optional surrounding whitespace
_JSONP_PATTERN = re.compile(
    r"^\s*(?P<token>[A-Za-z_$][\w$]*(?:\.[A-Za-z_$][\w$]*)*)\s*\((?P<body>.*)\)\s*;\s*$",
    re.DOTALL,
)


def unwrap_jsonp(raw: str) -> str:
    """Strip exactly one ``token(...);`` layer, or return the text unchanged."""
    match = _JSONP_PATTERN.match(raw)
    if match is None:
        return raw
    return match.group("body")


def decode(raw: str) -> Any:
    """Decode a JSON or JSONP payload into plain Python values.

    Raises:
        DecodeError: If the (unwrapped) text is not valid JSON.
    """
    text = unwrap_jsonp(raw)
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Malformed Calil response: {e.msg} at position {e.pos}", raw) from e
