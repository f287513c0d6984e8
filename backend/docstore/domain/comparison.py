"""Value comparison helpers shared by the store, the query engine and rules.

Stored values are JSON values, so equality and truthiness follow JSON/JS
conventions rather than Python's: ``1`` equals ``"1"``, ``True`` is not a
number, and an empty list is truthy.
"""

import math
from typing import Any


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def to_number(value: Any) -> float | None:
    """Numeric view of ``value`` or ``None`` when it has none."""
    if is_number(value):
        return float(value)
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            return float(text)
        except ValueError:
            return None
    return None


def loose_equals(left: Any, right: Any) -> bool:
    """Equality with number/string/bool coercion, ``null`` only equal to itself."""
    if left is None or right is None:
        return left is None and right is None
    if type(left) is type(right) or (is_number(left) and is_number(right)):
        return left == right
    if isinstance(left, (dict, list)) or isinstance(right, (dict, list)):
        return False
    left_num, right_num = to_number(left), to_number(right)
    if left_num is None or right_num is None:
        return False
    return left_num == right_num


def strict_equals(left: Any, right: Any) -> bool:
    if is_number(left) and is_number(right):
        return left == right
    return type(left) is type(right) and left == right


def truthy(value: Any) -> bool:
    if value is None or value is False:
        return False
    if is_number(value):
        return value != 0 and not (isinstance(value, float) and math.isnan(value))
    if isinstance(value, str):
        return value != ""
    return True


def compare_order(left: Any, right: Any) -> int | None:
    """Three-way comparison for ordering operators.

    Returns ``None`` when the values are not comparable (missing values,
    containers, or a string that is not numeric against a number).
    """
    if left is None or right is None:
        return None
    if isinstance(left, str) and isinstance(right, str):
        return (left > right) - (left < right)
    if isinstance(left, (dict, list)) or isinstance(right, (dict, list)):
        return None
    left_num, right_num = to_number(left), to_number(right)
    if left_num is None or right_num is None:
        return None
    return (left_num > right_num) - (left_num < right_num)
