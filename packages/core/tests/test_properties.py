from sfrelay.core import PluginEvent, filter_properties, get_properties, parse_allow_list


def test_no_allow_list_returns_properties_unchanged() -> None:
    properties = {"a": "a", "b": "b"}
    assert filter_properties(properties, []) is properties


def test_allow_list_keeps_only_listed_keys() -> None:
    properties = {"a": "a", "b": "b", "c": "c"}
    assert filter_properties(properties, ["a", "c"]) == {"a": "a", "c": "c"}


def test_allow_list_skips_missing_and_duplicate_keys() -> None:
    properties = {"a": 1, "b": 2}
    assert filter_properties(properties, ["a", "a", "zzz", ""]) == {"a": 1}


def test_parse_allow_list_trims_entries() -> None:
    assert parse_allow_list("a, b,c") == ["a", "b", "c"]
    assert parse_allow_list("") == []


def test_parse_allow_list_keeps_empty_segments() -> None:
    assert parse_allow_list("a,,b") == ["a", "", "b"]


def test_get_properties_filters_by_raw_allow_list() -> None:
    event = PluginEvent(event="e", properties={"a": "a", "b": "b", "c": "c"})
    assert get_properties(event, "") == {"a": "a", "b": "b", "c": "c"}
    assert get_properties(event, "a,   c") == {"a": "a", "c": "c"}
