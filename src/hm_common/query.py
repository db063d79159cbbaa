"""Structured filter / sort / page parameters → SQLAlchemy clauses.

Request body shape (POST /<entity>/list):
{
    "page": 0,                 // 0-based
    "limit": 10,
    "sort": "-id,name",        // "-" prefix = descending; "ignore count" skips COUNT(*)
    "columns": [
        {"name": "status", "exp": "=", "value": "OPEN", "logic": "and"},
        {"name": "pnl", "exp": ">", "value": 0}
    ]
}

Column names are checked against a per-entity whitelist that maps the
public name to the SQLAlchemy column, so user-controlled names never reach
the SQL text.
"""

from collections.abc import Callable, Mapping
from typing import Any

from pydantic import BaseModel, Field
from sqlalchemy import and_, or_
from sqlalchemy.sql.elements import ColumnElement

IGNORE_COUNT = "ignore count"
DEFAULT_LIMIT = 10
MAX_LIMIT = 1000

Whitelist = Mapping[str, ColumnElement[Any]]

# Filter values are bound as SQL parameters, so only scalars are accepted
Scalar = str | int | float | bool


class QueryParamsError(ValueError):
    """Filter/sort parameters the whitelist or operator table rejects."""


class Column(BaseModel):
    name: str
    exp: str = "="
    value: Scalar | list[Scalar] | None = None
    # Joins this column with the NEXT one: "and" (default) or "or"
    logic: str = ""


class Conditions(BaseModel):
    columns: list[Column] = Field(default_factory=list)

    def check_valid(self) -> None:
        if not self.columns:
            raise QueryParamsError("field 'columns' cannot be empty")
        for col in self.columns:
            if not col.name:
                raise QueryParamsError("field 'name' cannot be empty")
            if col.value is None:
                raise QueryParamsError(f"field 'value' of {col.name} cannot be empty")


class Params(BaseModel):
    page: int = Field(0, ge=0)
    limit: int = Field(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT)
    sort: str = ""
    columns: list[Column] = Field(default_factory=list)

    @property
    def ignore_count(self) -> bool:
        return self.sort.strip() == IGNORE_COUNT


# ---------------------------------------------------------------------------
# Operators
# ---------------------------------------------------------------------------

def _as_list(value: Any) -> list[Any]:
    if isinstance(value, (list, tuple, set)):
        items = list(value)
    elif isinstance(value, str):
        items = [v.strip() for v in value.split(",") if v.strip()]
    else:
        items = [value]
    if not items:
        raise QueryParamsError("'in'/'notin' requires at least one value")
    return items


def _like(col: ColumnElement[Any], value: Any) -> ColumnElement[bool]:
    pattern = str(value)
    if "%" not in pattern:
        pattern = f"%{pattern}%"
    return col.like(pattern)


_OPERATORS: dict[str, Callable[[ColumnElement[Any], Any], ColumnElement[bool]]] = {
    "=": lambda c, v: c == v,
    "!=": lambda c, v: c != v,
    ">": lambda c, v: c > v,
    ">=": lambda c, v: c >= v,
    "<": lambda c, v: c < v,
    "<=": lambda c, v: c <= v,
    "like": _like,
    "in": lambda c, v: c.in_(_as_list(v)),
    "notin": lambda c, v: c.not_in(_as_list(v)),
}
_ALIASES = {
    "": "=", "eq": "=", "neq": "!=", "ne": "!=", "<>": "!=",
    "gt": ">", "gte": ">=", "ge": ">=", "lt": "<", "lte": "<=", "le": "<=",
}
_LOGIC = {"": "and", "and": "and", "&": "and", "&&": "and", "or": "or", "||": "or"}


def _column(name: str, whitelist: Whitelist) -> ColumnElement[Any]:
    col = whitelist.get(name)
    if col is None:
        raise QueryParamsError(f"unknown column {name!r}")
    return col


def build_query(columns: list[Column], whitelist: Whitelist) -> ColumnElement[bool] | None:
    """Fold the filter columns left to right into one WHERE clause.

    Returns None when there is nothing to filter on.
    """
    clause: ColumnElement[bool] | None = None
    joiner = "and"
    for col in columns:
        exp = col.exp.strip().lower()
        exp = _ALIASES.get(exp, exp)
        op = _OPERATORS.get(exp)
        if op is None:
            raise QueryParamsError(f"unsupported expression {col.exp!r} on {col.name!r}")
        if isinstance(col.value, list) and exp not in ("in", "notin"):
            raise QueryParamsError(f"{col.exp!r} on {col.name!r} takes a single value")
        expr = op(_column(col.name, whitelist), col.value)

        if clause is None:
            clause = expr
        elif joiner == "or":
            clause = or_(clause, expr)
        else:
            clause = and_(clause, expr)

        logic = _LOGIC.get(col.logic.strip().lower())
        if logic is None:
            raise QueryParamsError(f"unsupported logic {col.logic!r} on {col.name!r}")
        joiner = logic
    return clause


def build_order(sort: str, whitelist: Whitelist, default_sort: str) -> list[ColumnElement[Any]]:
    sort_by = sort.strip()
    if not sort_by or sort_by == IGNORE_COUNT:
        sort_by = default_sort
    order_by: list[ColumnElement[Any]] = []
    for part in sort_by.split(","):
        part = part.strip()
        if not part:
            continue
        descending = part.startswith("-")
        col = _column(part.lstrip("-+"), whitelist)
        order_by.append(col.desc() if descending else col.asc())
    return order_by


def build_page(
    params: Params, whitelist: Whitelist, default_sort: str = "-id"
) -> tuple[list[ColumnElement[Any]], int, int]:
    """Return (order_by, limit, offset) for a page request."""
    order_by = build_order(params.sort, whitelist, default_sort)
    return order_by, params.limit, params.page * params.limit
