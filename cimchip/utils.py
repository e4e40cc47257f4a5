from math import ceil, log2
from typing import Any, TypeAlias

from numpy.typing import NDArray

ARRAY_T: TypeAlias = NDArray[Any]


def next_power_of_two(value: float) -> int:
    """Smallest power of two that is greater than or equal to `value`."""
    if value <= 1:
        return 1
    return 2 ** ceil(log2(value))


def is_power_of_two(value: int) -> bool:
    return value > 0 and (value & (value - 1)) == 0


def ceil_log2(value: float) -> int:
    """ceil(log2(value)), with 0 for values up to 1 (a single operand needs no adder stages)."""
    if value <= 1:
        return 0
    return ceil(log2(value))


def to_nano(value: float) -> float:
    return value * 1e9


def to_pico(value: float) -> float:
    return value * 1e12


def to_square_micron(value: float) -> float:
    return value * 1e12
