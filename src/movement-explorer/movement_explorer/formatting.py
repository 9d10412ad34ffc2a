import re
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Union

from .config import DEFAULT_VERSION_THRESHOLD

MOVE_DECIMALS = 8
MOVE_SYMBOL = "MOVE"

ADDRESS_PATTERN = re.compile(r"0x[a-fA-F0-9]{64}")
NUMERIC_PATTERN = re.compile(r"[0-9]+")
FRACTION_PATTERN = re.compile(r"\.([0-9]+)")
# u256 max has 78 digits; longer strings are not on-chain amounts
MAX_AMOUNT_DIGITS = 96

SEARCH_ADDRESS = "address"
SEARCH_VERSION = "version"
SEARCH_BLOCK = "block"
SEARCH_INVALID = "invalid"

Amount = Union[int, str]


def truncate_address(address: str, head_len: int = 6, tail_len: int = 4) -> str:
    if not address:
        return ""
    if len(address) <= head_len + tail_len + 3:
        return address
    return f"{address[:head_len]}...{address[-tail_len:]}"


def parse_timestamp(timestamp: str) -> datetime:
    """Parse an indexer timestamp; values without a zone are UTC."""
    candidate = timestamp.strip()
    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"
    # fromisoformat on 3.10 accepts only 3 or 6 fractional digits
    candidate = FRACTION_PATTERN.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), candidate, count=1)
    parsed = datetime.fromisoformat(candidate)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_relative_time(timestamp: str, now: Optional[datetime] = None) -> str:
    date = parse_timestamp(timestamp)
    current = now or datetime.now(timezone.utc)
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)

    seconds = (current - date) // timedelta(seconds=1)
    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24

    if seconds < 60:
        return f"{seconds}s ago"
    if minutes < 60:
        return f"{minutes}m ago"
    if hours < 24:
        return f"{hours}h ago"
    if days < 30:
        return f"{days}d ago"
    return f"{date.month}/{date.day}/{date.year}"


def format_fixed_point(raw_amount: Amount, decimals: int = MOVE_DECIMALS) -> str:
    value = _to_base_units(raw_amount)
    if decimals < 0:
        raise ValueError("decimals must be a non-negative integer.")

    divisor = 10**decimals
    int_part, frac_part = divmod(value, divisor)
    frac = str(frac_part).rjust(decimals, "0")[:4].rstrip("0") if decimals else ""

    if frac:
        return f"{int_part:,}.{frac}"
    return f"{int_part:,}"


def format_move(raw_amount: Amount, decimals: int = MOVE_DECIMALS) -> str:
    return f"{format_fixed_point(raw_amount, decimals)} {MOVE_SYMBOL}"


def format_gas_cost(gas_used: Amount, gas_unit_price: Amount) -> str:
    total = _to_base_units(gas_used) * _to_base_units(gas_unit_price)
    return format_fixed_point(total)


def parse_entry_function_id(entry_function_id: Optional[str]) -> Optional[Dict[str, str]]:
    """Split `addr::module::function` into module and function parts."""
    if not entry_function_id:
        return None
    parts = entry_function_id.split("::")
    if len(parts) < 3:
        return None
    return {"module": f"{parts[0]}::{parts[1]}", "function": parts[2]}


def is_valid_address(value: str) -> bool:
    return bool(ADDRESS_PATTERN.fullmatch(value))


def is_numeric(value: str) -> bool:
    return bool(NUMERIC_PATTERN.fullmatch(value))


def classify_search_input(raw: str, version_threshold: int = DEFAULT_VERSION_THRESHOLD) -> str:
    """
    Classify free-text search input as address, version, block or invalid.

    Numbers above `version_threshold` are taken to be transaction versions and
    the rest block heights. That split is a heuristic, not a chain property.
    """
    trimmed = (raw or "").strip()
    if is_valid_address(trimmed):
        return SEARCH_ADDRESS
    if is_numeric(trimmed):
        if _exceeds(trimmed, version_threshold):
            return SEARCH_VERSION
        return SEARCH_BLOCK
    return SEARCH_INVALID


def _to_base_units(value: Amount) -> int:
    if isinstance(value, bool):
        raise ValueError("amount must be an unsigned integer.")
    if isinstance(value, int):
        ivalue = value
    elif isinstance(value, str) and NUMERIC_PATTERN.fullmatch(value.strip()):
        if len(value.strip().lstrip("0")) > MAX_AMOUNT_DIGITS:
            raise ValueError(f"amount exceeds {MAX_AMOUNT_DIGITS} digits.")
        ivalue = int(value.strip())
    else:
        raise ValueError("amount must be an unsigned integer.")
    if ivalue < 0:
        raise ValueError("amount must be an unsigned integer.")
    return ivalue


def _exceeds(digits: str, threshold: int) -> bool:
    """Compare a digit string with `threshold` without converting it to int."""
    significant = digits.lstrip("0") or "0"
    limit = str(threshold)
    if len(significant) != len(limit):
        return len(significant) > len(limit)
    return significant > limit
