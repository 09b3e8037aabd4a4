"""Utility helpers."""

from __future__ import annotations

import json
from typing import Any


def status_ok(status: int) -> bool:
    """True for any status code whose first digit is ``2``."""
    return str(status)[:1] == "2"


def compact_json(value: Any) -> str:
    """JSON without whitespace between separators."""
    return json.dumps(value, separators=(",", ":"))


def join_url(host: str, path: str) -> str:
    return f"{host.rstrip('/')}/{path}"
