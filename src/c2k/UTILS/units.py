"""
Conversions for compose quantities: memory sizes, CPU counts and durations.
"""
import re
from typing import Union

_MEMORY = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([bkmg]?)b?\s*$", re.IGNORECASE)
_DURATION = re.compile(r"(\d+(?:\.\d+)?)(ms|us|ns|h|m|s)")

_MEMORY_FACTORS = {"": 1, "b": 1, "k": 1024, "m": 1024 ** 2, "g": 1024 ** 3}
_DURATION_FACTORS = {"h": 3600.0, "m": 60.0, "s": 1.0, "ms": 1e-3, "us": 1e-6, "ns": 1e-9}


def parse_memory(value: Union[str, int, None]) -> int:
    """
    Parses a memory size like '512m' or '1g' into bytes.

    :raises ValueError: If the value is not a size.
    """
    if value is None or value == "":
        return 0
    if isinstance(value, int):
        return value
    match = _MEMORY.match(str(value))
    if not match:
        raise ValueError(f"invalid memory size: {value}")
    number, unit = match.groups()
    return int(float(number) * _MEMORY_FACTORS[unit.lower()])


def parse_cpus(value: Union[str, float, int, None]) -> int:
    """
    Parses a CPU count like '0.5' into millicores.

    :raises ValueError: If the value is not a number.
    """
    if value is None or value == "":
        return 0
    return int(round(float(value) * 1000))


def parse_duration(value: Union[str, int, float, None]) -> int:
    """
    Parses a duration like '1m30s' into whole seconds. Bare numbers are seconds.

    :raises ValueError: If the value is not a duration.
    """
    if value is None or value == "":
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    text = str(value).strip()
    if re.fullmatch(r"\d+(?:\.\d+)?", text):
        return int(float(text))
    parts = _DURATION.findall(text)
    if not parts or "".join(n + u for n, u in parts) != text:
        raise ValueError(f"invalid duration: {value}")
    return int(sum(float(n) * _DURATION_FACTORS[u] for n, u in parts))
