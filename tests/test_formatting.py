from __future__ import annotations

from datetime import datetime, timezone

import hypothesis.strategies as st
import pytest
from hypothesis import given

from movement_explorer.formatting import (
    SEARCH_ADDRESS,
    SEARCH_BLOCK,
    SEARCH_INVALID,
    SEARCH_VERSION,
    classify_search_input,
    format_fixed_point,
    format_gas_cost,
    format_move,
    format_relative_time,
    parse_entry_function_id,
    truncate_address,
)

NOW = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def test_truncate_long_address() -> None:
    assert truncate_address("0x" + "a" * 64, 6, 4) == "0xaaaa...aaaa"


def test_truncate_short_address_unchanged() -> None:
    assert truncate_address("0x12", 6, 4) == "0x12"
    assert truncate_address("0x123456789ab", 6, 4) == "0x123456789ab"


def test_truncate_empty() -> None:
    assert truncate_address("") == ""


@given(st.text(min_size=1, max_size=120))
def test_truncate_is_unchanged_or_fixed_length(text: str) -> None:
    out = truncate_address(text, 6, 4)
    assert out == text or (len(out) == 13 and out.startswith(text[:6]) and out.endswith(text[-4:]))


def test_fixed_point_truncates_fraction_to_four_digits() -> None:
    assert format_fixed_point("123456789", 8) == "1.2345"


def test_fixed_point_whole_amount_has_no_decimal_point() -> None:
    assert format_fixed_point("100000000", 8) == "1"


def test_fixed_point_groups_thousands() -> None:
    assert format_fixed_point("123456789012345678901234567890", 8) == "1,234,567,890,123,456,789,012.3456"


def test_fixed_point_small_amount() -> None:
    assert format_fixed_point(1, 8) == "0"
    assert format_fixed_point(10000, 8) == "0.0001"
    assert format_fixed_point("1500000", 6) == "1.5"


def test_fixed_point_zero_decimals() -> None:
    assert format_fixed_point(1234, 0) == "1,234"


def test_fixed_point_rejects_negative_and_garbage() -> None:
    with pytest.raises(ValueError):
        format_fixed_point(-1)
    with pytest.raises(ValueError):
        format_fixed_point("1.5")


def test_format_move_appends_symbol() -> None:
    assert format_move("150000000") == "1.5 MOVE"


def test_gas_cost() -> None:
    assert format_gas_cost(1000, 100) == format_fixed_point("100000", 8) == "0.001"


def test_gas_cost_large_values_do_not_overflow() -> None:
    assert format_gas_cost(2**64, 2**64) == format_fixed_point(2**128, 8)


@pytest.mark.parametrize(
    "timestamp, expected",
    [
        ("2024-03-01T11:59:30", "30s ago"),
        ("2024-03-01T11:55:00", "5m ago"),
        ("2024-03-01T09:00:00", "3h ago"),
        ("2024-02-28T12:00:00", "2d ago"),
        ("2024-02-28T12:00:00Z", "2d ago"),
        ("2024-01-01T00:00:00.123456", "1/1/2024"),
    ],
)
def test_relative_time(timestamp: str, expected: str) -> None:
    assert format_relative_time(timestamp, now=NOW) == expected


def test_relative_time_future_is_not_clamped() -> None:
    assert format_relative_time("2024-03-01T12:00:10", now=NOW) == "-10s ago"


def test_parse_entry_function_id() -> None:
    assert parse_entry_function_id("0x1::coin::transfer") == {"module": "0x1::coin", "function": "transfer"}


def test_parse_entry_function_id_ignores_extra_parts() -> None:
    assert parse_entry_function_id("0x1::coin::transfer::extra") == {"module": "0x1::coin", "function": "transfer"}


@pytest.mark.parametrize("value", ["bad", "0x1::coin", "", None])
def test_parse_entry_function_id_absent(value) -> None:
    assert parse_entry_function_id(value) is None


def test_classify_search_input() -> None:
    assert classify_search_input("0x" + "0" * 64) == SEARCH_ADDRESS
    assert classify_search_input("1000001") == SEARCH_VERSION
    assert classify_search_input("999999") == SEARCH_BLOCK
    assert classify_search_input("abc") == SEARCH_INVALID


def test_classify_threshold_boundary_and_trim() -> None:
    assert classify_search_input("1000000") == SEARCH_BLOCK
    assert classify_search_input("  1000001 \n") == SEARCH_VERSION
    assert classify_search_input("0x" + "0" * 63) == SEARCH_INVALID
    assert classify_search_input("12a") == SEARCH_INVALID


def test_classify_threshold_is_configurable() -> None:
    assert classify_search_input("500", version_threshold=100) == SEARCH_VERSION
    assert classify_search_input("50", version_threshold=100) == SEARCH_BLOCK


@pytest.mark.parametrize(
    "timestamp",
    [
        "2024-03-01T11:59:30.1",
        "2024-03-01T11:59:30.1234",
        "2024-03-01T11:59:30.12345",
        "2024-03-01T11:59:30.1234567",
        "2024-03-01T11:59:30.12345Z",
    ],
)
def test_relative_time_accepts_any_fraction_length(timestamp: str) -> None:
    assert format_relative_time(timestamp, now=NOW) == "29s ago"


def test_classify_very_long_number_without_int_conversion() -> None:
    assert classify_search_input("9" * 5000) == SEARCH_VERSION
    assert classify_search_input("0" * 5000 + "12") == SEARCH_BLOCK
    assert classify_search_input("0001000000") == SEARCH_BLOCK
    assert classify_search_input("0001000001") == SEARCH_VERSION


def test_fixed_point_rejects_oversized_digit_strings() -> None:
    with pytest.raises(ValueError, match="exceeds"):
        format_fixed_point("9" * 5000)
    assert format_fixed_point("0" * 200 + "100000000") == "1"
