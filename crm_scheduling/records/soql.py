"""Small SOQL statement builder.

Only covers what the tools need: a field list, one object, OR-ed LIKE
matches, datetime ranges and a LIMIT.  Every caller-supplied value goes
through ``quote`` (and ``escape_like`` for LIKE patterns), so nothing
untrusted is pasted into a statement verbatim.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone

_IDENTIFIER = re.compile(r"^[A-Za-z][A-Za-z0-9_]*(\.[A-Za-z][A-Za-z0-9_]*)*$")

# Characters SOQL requires to be backslash-escaped inside a string literal
_STRING_ESCAPES = {
    "\\": "\\\\",
    "'": "\\'",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\b": "\\b",
    "\f": "\\f",
}


def quote(value: str) -> str:
    """Render ``value`` as a single-quoted SOQL string literal."""
    return "'" + "".join(_STRING_ESCAPES.get(ch, ch) for ch in value) + "'"


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so ``value`` matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def like_literal(value: str) -> str:
    """Quoted ``'%value%'`` pattern with wildcards in ``value`` neutralized."""
    escaped = escape_like(value)
    # escape_like already doubled backslashes; only quote-escape what's left
    body = "".join(
        _STRING_ESCAPES.get(ch, ch) if ch != "\\" else ch for ch in escaped
    )
    return f"'%{body}%'"


def datetime_literal(moment: datetime) -> str:
    """SOQL datetime literals are unquoted ISO 8601 in UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _identifier(name: str) -> str:
    if not _IDENTIFIER.match(name):
        raise ValueError(f"Invalid SOQL identifier: {name!r}")
    return name


class SoqlQuery:
    """Fluent builder.

    >>> SoqlQuery("Contact").select("Id", "Phone").where_like_any(
    ...     "Phone", ["555-1234"]).limit(10).build()
    "SELECT Id, Phone FROM Contact WHERE (Phone LIKE '%555-1234%') LIMIT 10"
    """

    def __init__(self, object_type: str) -> None:
        self._object = _identifier(object_type)
        self._fields: list[str] = ["Id"]
        self._conditions: list[str] = []
        self._limit: int | None = None

    def select(self, *fields: str) -> "SoqlQuery":
        self._fields = [_identifier(f) for f in fields]
        return self

    def where_like_any(self, field_name: str, values: list[str]) -> "SoqlQuery":
        """OR together ``field LIKE '%value%'`` for each non-empty value."""
        column = _identifier(field_name)
        terms = [f"{column} LIKE {like_literal(v)}" for v in values if v]
        if not terms:
            raise ValueError("where_like_any needs at least one non-empty value")
        self._conditions.append("(" + " OR ".join(terms) + ")")
        return self

    def where_overlaps(
        self, start_field: str, end_field: str, start: datetime, end: datetime
    ) -> "SoqlQuery":
        """Records whose ``[start_field, end_field)`` span intersects ``[start, end]``."""
        self._conditions.append(
            f"{_identifier(start_field)} <= {datetime_literal(end)} "
            f"AND {_identifier(end_field)} > {datetime_literal(start)}"
        )
        return self

    def where_equals(self, field_name: str, value: str) -> "SoqlQuery":
        self._conditions.append(f"{_identifier(field_name)} = {quote(value)}")
        return self

    def limit(self, count: int) -> "SoqlQuery":
        if count <= 0:
            raise ValueError("limit must be positive")
        self._limit = count
        return self

    def build(self) -> str:
        statement = f"SELECT {', '.join(self._fields)} FROM {self._object}"
        if self._conditions:
            statement += " WHERE " + " AND ".join(self._conditions)
        if self._limit is not None:
            statement += f" LIMIT {self._limit}"
        return statement

    def __str__(self) -> str:
        return self.build()
