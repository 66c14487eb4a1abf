"""
Query filter language for the forms table.

A Filter is a conjunction of column conditions; an OrderBy list sorts the
result. Both compile to parameterized SQL fragments. Column names are
checked against the schema so nothing user-supplied is ever interpolated
into a statement.

Unless include_deleted is set, every compiled filter also requires
``deleted_date IS NULL``.

Example:
    Filter.where(jr_form_id="household").and_("date", ">", 1700000000000)
    parse_order_by("date DESC, _id")
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple, Union

from ..errors import InvalidInput
from .models import ATTR_TO_COLUMN, COLUMN_TO_ATTR, DELETED_DATE

_BINARY_OPS = ("=", "!=", "<", "<=", ">", ">=", "like")
_UNARY_OPS = ("is null", "is not null")
_OPS = _BINARY_OPS + _UNARY_OPS + ("in",)


def column_name(name: str) -> str:
    """
    Resolve a column or FormRecord attribute name to a column name.
    """
    if name in COLUMN_TO_ATTR:
        return name
    if name in ATTR_TO_COLUMN:
        return ATTR_TO_COLUMN[name]
    raise InvalidInput(f"Unknown form column: {name!r}")


# ----------------------------------------------------------------------
# Filter
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class Condition:
    column: str
    op: str = "="
    value: Any = None

    def __post_init__(self):
        object.__setattr__(self, "column", column_name(self.column))
        op = self.op.strip().lower()
        if op == "==":
            op = "="
        if op not in _OPS:
            raise InvalidInput(f"Unsupported filter operator: {self.op!r}")
        object.__setattr__(self, "op", op)
        if op == "in":
            object.__setattr__(self, "value", tuple(self.value or ()))


@dataclass(frozen=True)
class Filter:
    """
    Conjunctive predicate over form columns.
    """

    conditions: Tuple[Condition, ...] = ()
    include_deleted: bool = False

    @classmethod
    def where(cls, include_deleted: bool = False, **equalities: Any) -> "Filter":
        """Filter on column equality; None values compile to IS NULL."""
        conditions = tuple(
            Condition(name, "is null") if value is None else Condition(name, "=", value)
            for name, value in equalities.items()
        )
        return cls(conditions, include_deleted=include_deleted)

    def and_(self, column: str, op: str = "=", value: Any = None) -> "Filter":
        return replace(self, conditions=self.conditions + (Condition(column, op, value),))

    def with_deleted(self) -> "Filter":
        return replace(self, include_deleted=True)

    def map_values(self, columns: Iterable[str], fn: Callable[[str, Any], Any]) -> "Filter":
        """
        Rewrite the values of conditions on the given columns.

        The registry uses this to translate absolute paths in a filter
        into the root-relative form the table stores.
        """
        columns = set(columns)
        mapped = []
        for cond in self.conditions:
            if cond.column not in columns or cond.op in _UNARY_OPS:
                mapped.append(cond)
            elif cond.op == "in":
                mapped.append(replace(cond, value=tuple(fn(cond.column, v) for v in cond.value)))
            else:
                mapped.append(replace(cond, value=fn(cond.column, cond.value)))
        return replace(self, conditions=tuple(mapped))


# ----------------------------------------------------------------------
# Ordering
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class OrderBy:
    column: str
    descending: bool = False

    def __post_init__(self):
        object.__setattr__(self, "column", column_name(self.column))


OrderSpec = Union[None, str, OrderBy, Sequence[OrderBy]]


def parse_order_by(text: str) -> List[OrderBy]:
    """
    Parse "col [ASC|DESC], col ..." into OrderBy items.
    """
    result: List[OrderBy] = []
    for part in text.split(","):
        tokens = part.split()
        if not tokens:
            continue
        if len(tokens) > 2:
            raise InvalidInput(f"Bad sort term: {part.strip()!r}")
        direction = tokens[1].lower() if len(tokens) == 2 else "asc"
        if direction not in ("asc", "desc"):
            raise InvalidInput(f"Bad sort direction: {tokens[1]!r}")
        result.append(OrderBy(tokens[0], descending=direction == "desc"))
    return result


def normalize_order(order_by: OrderSpec) -> List[OrderBy]:
    if order_by is None:
        return []
    if isinstance(order_by, str):
        return parse_order_by(order_by)
    if isinstance(order_by, OrderBy):
        return [order_by]
    return list(order_by)


# ----------------------------------------------------------------------
# SQL compilation
# ----------------------------------------------------------------------

def compile_where(flt: Optional[Filter]) -> Tuple[str, tuple]:
    """
    Compile a Filter into (" WHERE ...", params).

    Returns ("", ()) when there is nothing to filter on.
    """
    flt = flt or Filter()
    clauses: List[str] = []
    params: List[Any] = []

    if not flt.include_deleted:
        clauses.append(f"{DELETED_DATE} IS NULL")

    for cond in flt.conditions:
        if cond.op == "is null":
            clauses.append(f"{cond.column} IS NULL")
        elif cond.op == "is not null":
            clauses.append(f"{cond.column} IS NOT NULL")
        elif cond.op == "in":
            if not cond.value:
                clauses.append("0")
                continue
            marks = ", ".join("?" for _ in cond.value)
            clauses.append(f"{cond.column} IN ({marks})")
            params.extend(cond.value)
        else:
            clauses.append(f"{cond.column} {cond.op.upper()} ?")
            params.append(cond.value)

    if not clauses:
        return "", ()
    return " WHERE " + " AND ".join(clauses), tuple(params)


def compile_order(order_by: OrderSpec) -> str:
    """
    Compile an order spec into " ORDER BY ..." (or "").
    """
    items = normalize_order(order_by)
    if not items:
        return ""
    terms = ", ".join(
        f"{item.column} {'DESC' if item.descending else 'ASC'}" for item in items
    )
    return " ORDER BY " + terms


__all__ = [
    "Condition",
    "Filter",
    "OrderBy",
    "OrderSpec",
    "column_name",
    "parse_order_by",
    "normalize_order",
    "compile_where",
    "compile_order",
]
