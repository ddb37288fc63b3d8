"""Filter operators and which of them are legal for a field's type.

Schema data comes from a remote introspection response and may be
incomplete, so unknown types map to a conservative operator set instead of
raising.
"""

from __future__ import annotations

from enum import Enum


class Operator(str, Enum):
    """Filter operators supported by Optimizely Graph (value = wire name)."""

    EQ = "eq"
    NOT_EQ = "notEq"
    LIKE = "like"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    EXIST = "exist"
    STARTS_WITH = "startsWith"
    ENDS_WITH = "endsWith"
    IN = "in"
    NOT_IN = "notIn"
    BOOST = "boost"
    SYNONYMS = "synonyms"

    @classmethod
    def _missing_(cls, value: object) -> Operator | None:
        # Accept member names and wire names in any case ("NotEq", "not_eq", "noteq")
        if not isinstance(value, str):
            return None
        wanted = value.replace("_", "").replace("-", "").lower()
        for member in cls:
            if member.value.lower() == wanted:
                return member
        return None

    @property
    def is_multi_value(self) -> bool:
        return self in (Operator.IN, Operator.NOT_IN)


STRING_TYPES = frozenset({"String", "ID", "Uri", "Url", "Guid", "Locales", "Markdown", "Html"})
NUMERIC_TYPES = frozenset({"Int", "Float", "Decimal", "Long", "Short", "Byte", "Double"})
DATE_TYPES = frozenset({"Date", "DateTime", "DateTimeOffset", "Time", "TimeSpan"})
BOOLEAN_TYPES = frozenset({"Boolean", "Bool"})

# Built-in and Optimizely-specific scalars; anything else is an object/enum.
SCALAR_TYPES = STRING_TYPES | NUMERIC_TYPES | DATE_TYPES | BOOLEAN_TYPES

_STRING_OPERATORS = (
    Operator.EQ,
    Operator.NOT_EQ,
    Operator.LIKE,
    Operator.STARTS_WITH,
    Operator.ENDS_WITH,
    Operator.IN,
    Operator.NOT_IN,
    Operator.EXIST,
    Operator.SYNONYMS,
    Operator.BOOST,
)
_RANGE_OPERATORS = (
    Operator.EQ,
    Operator.NOT_EQ,
    Operator.GT,
    Operator.GTE,
    Operator.LT,
    Operator.LTE,
    Operator.IN,
    Operator.NOT_IN,
    Operator.EXIST,
)
_BOOLEAN_OPERATORS = (Operator.EQ, Operator.NOT_EQ, Operator.EXIST)
# Arrays match by containment; Eq/NotEq stay so the universal baseline holds.
_LIST_OPERATORS = (Operator.EQ, Operator.NOT_EQ, Operator.IN, Operator.NOT_IN, Operator.EXIST)
_CONSERVATIVE_OPERATORS = (Operator.EQ, Operator.NOT_EQ, Operator.EXIST)


def is_scalar_type(type_name: str) -> bool:
    return type_name in SCALAR_TYPES


def value_kind(type_name: str) -> str:
    """Classify a scalar type for literal rendering.

    Returns one of ``"string"``, ``"number"``, ``"date"``, ``"boolean"``
    or ``"unknown"``.
    """
    if type_name in STRING_TYPES:
        return "string"
    if type_name in NUMERIC_TYPES:
        return "number"
    if type_name in DATE_TYPES:
        return "date"
    if type_name in BOOLEAN_TYPES:
        return "boolean"
    return "unknown"


def operators_for(
    underlying_type: str,
    is_list: bool = False,
    is_scalar: bool = True,
) -> tuple[Operator, ...]:
    """Return the ordered operators legal for a field of this type."""
    if is_list:
        return _LIST_OPERATORS
    if not is_scalar:
        return _CONSERVATIVE_OPERATORS
    kind = value_kind(underlying_type)
    if kind == "string":
        return _STRING_OPERATORS
    if kind in ("number", "date"):
        return _RANGE_OPERATORS
    if kind == "boolean":
        return _BOOLEAN_OPERATORS
    return _CONSERVATIVE_OPERATORS
