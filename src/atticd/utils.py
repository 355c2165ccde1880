"""Shared value parsing helpers for atticd.

Durations use the human-readable format operators already write in
``server.toml`` (``12h``, ``30 days``, ``1h 30m``). Socket addresses use
``host:port`` with IPv6 hosts in brackets (``[::]:8080``).
"""

import ipaddress
import re
from datetime import timedelta

# Microseconds per unit. Months and years use the average Gregorian lengths.
_SECOND = 1_000_000
_UNITS: dict[str, float] = {
    "ns": 1e-3, "nsec": 1e-3,
    "us": 1, "usec": 1,
    "ms": 1000, "msec": 1000,
    "s": _SECOND, "sec": _SECOND, "secs": _SECOND, "second": _SECOND, "seconds": _SECOND,
    "m": 60 * _SECOND, "min": 60 * _SECOND, "mins": 60 * _SECOND,
    "minute": 60 * _SECOND, "minutes": 60 * _SECOND,
    "h": 3600 * _SECOND, "hr": 3600 * _SECOND, "hrs": 3600 * _SECOND,
    "hour": 3600 * _SECOND, "hours": 3600 * _SECOND,
    "d": 86400 * _SECOND, "day": 86400 * _SECOND, "days": 86400 * _SECOND,
    "w": 604800 * _SECOND, "week": 604800 * _SECOND, "weeks": 604800 * _SECOND,
    "M": 2630016 * _SECOND, "month": 2630016 * _SECOND, "months": 2630016 * _SECOND,
    "y": 31557600 * _SECOND, "year": 31557600 * _SECOND, "years": 31557600 * _SECOND,
}

_DURATION_PART = re.compile(r"\s*(\d+)\s*([A-Za-z]+)")

# Largest first, so formatting picks the coarsest exact unit.
_FORMAT_UNITS = [("d", 86400), ("h", 3600), ("m", 60), ("s", 1)]


def parse_duration(text: str) -> timedelta:
    """Parse a human-readable duration such as ``"12h"`` or ``"1d 6h"``.

    Args:
        text: Duration string. Each component is an integer followed by a
            unit; components may be concatenated or separated by spaces.

    Returns:
        The total duration.

    Raises:
        ValueError: If the string is empty, has an unknown unit, or
            contains anything other than number/unit pairs.
    """
    if not text.strip():
        raise ValueError("empty duration")

    total = 0
    pos = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        amount, unit = match.groups()
        if unit not in _UNITS:
            raise ValueError(f"unknown time unit {unit!r} in duration {text!r}")
        total += int(amount) * _UNITS[unit]
        pos = match.end()

    if pos == 0 or text[pos:].strip():
        raise ValueError(f"invalid duration {text!r}")

    return timedelta(microseconds=total)


def format_duration(value: timedelta) -> str:
    """Format a duration so that ``parse_duration`` reads it back exactly.

    Whole seconds are split into days/hours/minutes/seconds (``"1d 12h"``);
    zero is ``"0s"``. Sub-second remainders are written in microseconds.
    """
    micros = value // timedelta(microseconds=1)
    if micros < 0:
        raise ValueError("negative durations are not supported")
    if micros == 0:
        return "0s"

    seconds, micros = divmod(micros, 1_000_000)
    parts = []
    for unit, size in _FORMAT_UNITS:
        amount, seconds = divmod(seconds, size)
        if amount:
            parts.append(f"{amount}{unit}")
    if micros:
        parts.append(f"{micros}us")
    return " ".join(parts)


def parse_socket_address(text: str) -> tuple[str, int]:
    """Split and validate a ``host:port`` socket address.

    IPv6 hosts must be bracketed (``[::1]:8080``). The host must be an IP
    address literal, not a hostname.

    Returns:
        ``(host, port)`` with the brackets stripped from IPv6 hosts.

    Raises:
        ValueError: If the address is malformed.
    """
    host, sep, port_text = text.rpartition(":")
    if not sep or not host:
        raise ValueError(f"invalid socket address {text!r}: missing port")

    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
        version = 6
    else:
        version = 4

    try:
        addr = ipaddress.ip_address(host)
    except ValueError:
        raise ValueError(f"invalid socket address {text!r}: bad IP address") from None
    if addr.version != version:
        if version == 6:
            raise ValueError(
                f"invalid socket address {text!r}: brackets are only valid around IPv6 hosts"
            )
        raise ValueError(f"invalid socket address {text!r}: IPv6 hosts must be bracketed")

    if not port_text.isdigit() or int(port_text) > 65535:
        raise ValueError(f"invalid socket address {text!r}: bad port")

    return host, int(port_text)
