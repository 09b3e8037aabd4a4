"""Property allow-list helpers."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from .types import PluginEvent


def parse_allow_list(raw: str) -> list[str]:
    """Split a comma-separated allow-list, trimming each entry.

    ``""`` yields ``[]``. Empty segments are kept; they never match a real key.
    """
    if not raw:
        return []
    return [part.strip() for part in raw.split(",")]


def filter_properties(
    properties: Mapping[str, Any], allow_list: Sequence[str]
) -> Mapping[str, Any]:
    """Reduce ``properties`` to the keys named in ``allow_list``.

    An empty allow-list means no filtering and returns ``properties`` as is.
    """
    if not allow_list:
        return properties
    filtered: dict[str, Any] = {}
    for key in allow_list:
        if key in properties:
            filtered[key] = properties[key]
    return filtered


def get_properties(event: PluginEvent, raw_allow_list: str) -> Mapping[str, Any]:
    return filter_properties(event.properties or {}, parse_allow_list(raw_allow_list))
