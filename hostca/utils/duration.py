import re
from datetime import timedelta

_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_COMPONENT = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(value: str) -> timedelta:
    """
    Parse a duration string such as "168h", "1h30m" or "2.5s".

    A sequence of decimal numbers, each with a unit suffix, optionally
    preceded by a sign. "0" is accepted without a unit.
    """
    text = value.strip()
    if not text:
        raise ValueError("empty duration")

    sign = 1
    if text[0] in "+-":
        sign = -1 if text[0] == "-" else 1
        text = text[1:]
    if text == "0":
        return timedelta(0)

    seconds = 0.0
    pos = 0
    while pos < len(text):
        match = _COMPONENT.match(text, pos)
        if not match:
            raise ValueError(f"invalid duration: {value!r}")
        number, unit = match.groups()
        seconds += float(number) * _UNITS[unit]
        pos = match.end()

    if pos == 0:
        raise ValueError(f"invalid duration: {value!r}")
    return timedelta(seconds=sign * seconds)
