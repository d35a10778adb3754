from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping

from ..exceptions import ConfigurationError

# Milliseconds between 1601-01-01 and 1970-01-01.
EPOCH_TO_WIN32_MILLIS = 11_644_473_600_000
# Win32 timestamps count 100ns intervals.
WIN32_TICKS_PER_MILLI = 10_000
WIN32_TICKS_PER_SECOND = 10_000_000

UF_ACCOUNTDISABLE = 0x0002
UF_DONT_EXPIRE_PASSWD = 0x10000


def escape_ldap_filter_value(value: str) -> str:
    """RFC 4515 escaping for LDAP filter values."""
    out: list[str] = []
    for ch in value:
        if ch == "\\":
            out.append("\\5c")
        elif ch == "*":
            out.append("\\2a")
        elif ch == "(":
            out.append("\\28")
        elif ch == ")":
            out.append("\\29")
        elif ch == "\x00":
            out.append("\\00")
        else:
            out.append(ch)
    return "".join(out)


def raw_values(attrs: Mapping[str, Any] | None, name: str) -> list[bytes]:
    """Values of `name` from an ldap3 raw_attributes mapping, case-insensitive."""
    if not attrs:
        return []
    values = attrs.get(name)
    if values is None:
        lowered = name.lower()
        for key, v in attrs.items():
            if key.lower() == lowered:
                values = v
                break
    if values is None:
        return []
    if isinstance(values, (bytes, str)):
        values = [values]
    return [v.encode("utf-8") if isinstance(v, str) else bytes(v) for v in values]


def first_text(attrs: Mapping[str, Any] | None, name: str) -> str | None:
    values = raw_values(attrs, name)
    if not values:
        return None
    return values[0].decode("utf-8")


def first_int(attrs: Mapping[str, Any] | None, name: str) -> int | None:
    """First value of `name` as an int; absent or unparseable gives None."""
    try:
        text = first_text(attrs, name)
        if text is None:
            return None
        return int(text.strip())
    except (ValueError, UnicodeDecodeError):
        return None


def epoch_millis_to_win32(millis: int) -> int:
    return (int(millis) + EPOCH_TO_WIN32_MILLIS) * WIN32_TICKS_PER_MILLI


def win32_to_epoch_millis(win32: int) -> int:
    return int(win32) // WIN32_TICKS_PER_MILLI - EPOCH_TO_WIN32_MILLIS


def days_to_win32_interval(days: int) -> int:
    if days <= 0:
        return 0
    return int(days) * 86400 * WIN32_TICKS_PER_SECOND


def filetime_to_dt_str(v: Any) -> str | None:
    """Convert Windows FILETIME (100ns since 1601-01-01) to ISO datetime string (UTC)."""
    try:
        n = int(v)
    except (TypeError, ValueError):
        return None
    if n <= 0:
        return None
    millis = win32_to_epoch_millis(n)
    if millis <= 0:
        return None
    dt = datetime.fromtimestamp(millis / 1000, tz=timezone.utc)
    return dt.isoformat(timespec="seconds")


def encode_ad_password(password: str) -> bytes:
    """unicodePwd value: the quoted password as UTF-16-LE bytes."""
    quoted = f'"{password}"'
    try:
        return quoted.encode("utf-16-le")
    except (LookupError, UnicodeError) as e:
        raise ConfigurationError(f"Cannot encode password for Active Directory: {e}") from e


def is_account_disabled(uac: int | None) -> bool:
    return bool(uac is not None and uac & UF_ACCOUNTDISABLE)


def password_never_expires(uac: int | None) -> bool:
    return bool(uac is not None and uac & UF_DONT_EXPIRE_PASSWD)
