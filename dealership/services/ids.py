"""Human readable identifiers for stock, bookings, applications and branches."""
import re
import secrets
import string
import time
from datetime import date
from typing import Optional

BASE36_ALPHABET = string.digits + string.ascii_uppercase


def to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def random_base36(length: int) -> str:
    return "".join(secrets.choice(BASE36_ALPHABET) for _ in range(length))


def now_ms() -> int:
    return int(time.time() * 1000)


def stock_id(existing_count: int, prefix: str = "STK", timestamp_ms: Optional[int] = None) -> str:
    """STK-<ms>-0001 style id; CSV imports use the CSV prefix."""
    timestamp_ms = now_ms() if timestamp_ms is None else timestamp_ms
    return f"{prefix}-{timestamp_ms}-{existing_count + 1:04d}"


def csv_batch_id(timestamp_ms: Optional[int] = None) -> str:
    timestamp_ms = now_ms() if timestamp_ms is None else timestamp_ms
    return f"CSV-{timestamp_ms}-{random_base36(6)}"


def booking_id(day: date, bookings_that_day: int) -> str:
    return f"SB-{day.strftime('%Y%m%d')}-{bookings_that_day + 1:04d}"


def finance_application_id(timestamp_ms: Optional[int] = None) -> str:
    timestamp_ms = now_ms() if timestamp_ms is None else timestamp_ms
    return f"GA-{to_base36(timestamp_ms)}-{random_base36(6)}".upper()


def branch_manager_application_id() -> str:
    return f"BM-{secrets.token_hex(2).upper()}-{secrets.token_hex(2).upper()}"


def branch_slug_base(branch_name: str) -> str:
    """'Honda Motorcycles Golaghat Main' -> 'golaghatmain'"""
    cleaned = re.sub(r"honda\s+motorcycles", "", branch_name, flags=re.IGNORECASE)
    slug = re.sub(r"[^a-z0-9]", "", cleaned.lower())[:20]
    return slug or "branch"


def generate_random_password(length: int = 10) -> str:
    """Random password with at least one upper, lower, digit and special character."""
    specials = "!@#$%^&*"
    pools = [string.ascii_uppercase, string.ascii_lowercase, string.digits, specials]
    chars = [secrets.choice(pool) for pool in pools]
    everything = "".join(pools)
    chars += [secrets.choice(everything) for _ in range(length - len(chars))]
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)
