"""
planboard/features/plans/query.py

Store-neutral search expressions for plans.

Search criteria are turned into a PlanFilter: a conjunction of clauses where
each clause is a pattern match, an exact match, a disjunction of clauses or a
negated clause. Store gateways translate the filter into their own query
language; nothing here knows about SQL or any other backend syntax.
"""

import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple, Union

from planboard.core.errors import ValidationError
from planboard.models.plan import PlanQuery

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
# Largest row offset a SQL OFFSET/LIMIT can bind (signed 64-bit)
MAX_ROW_INDEX = 2 ** 63 - 1
EXCLUDE_PREFIX = "~"
OPERATOR_SEPARATOR = ","


class PlanField(str, Enum):
    """Addressable plan fields. OPERATOR_NAME is multi-valued (one per operator)."""
    ID = "id"
    STAGE_NAME = "stageName"
    DOCUMENT_TITLE = "document.title"
    DOCUMENT_DETAILS = "document.details"
    OPERATOR_NAME = "operators.name"
    UPLOADER_NAME = "uploader"
    VIEWS = "views"
    CREATED_AT = "createdAt"
    UPDATED_AT = "updatedAt"


@dataclass(frozen=True)
class Match:
    """Field matches a regular expression (unanchored search)."""
    field: PlanField
    pattern: str


@dataclass(frozen=True)
class Equals:
    field: PlanField
    value: str


@dataclass(frozen=True)
class AnyOf:
    clauses: Tuple["Clause", ...]


@dataclass(frozen=True)
class Not:
    clause: "Clause"


Clause = Union[Match, Equals, AnyOf, Not]


@dataclass(frozen=True)
class PlanFilter:
    """Conjunction of clauses. An empty filter matches every plan."""
    clauses: Tuple[Clause, ...] = ()

    def __bool__(self) -> bool:
        return bool(self.clauses)


class PlanFilterBuilder:
    """Accumulates independent clauses into a PlanFilter."""

    def __init__(self):
        self._clauses: List[Clause] = []

    @staticmethod
    def pattern(field: PlanField, pattern: str) -> Match:
        try:
            re.compile(pattern)
        except re.error as e:
            raise ValidationError(f"invalid search pattern '{pattern}': {e}")
        return Match(field=field, pattern=pattern)

    def match(self, field: PlanField, pattern: str) -> "PlanFilterBuilder":
        self._clauses.append(self.pattern(field, pattern))
        return self

    def equals(self, field: PlanField, value: str) -> "PlanFilterBuilder":
        self._clauses.append(Equals(field=field, value=value))
        return self

    def any_of(self, *clauses: Clause) -> "PlanFilterBuilder":
        self._clauses.append(AnyOf(clauses=tuple(clauses)))
        return self

    def exclude(self, clause: Clause) -> "PlanFilterBuilder":
        self._clauses.append(Not(clause=clause))
        return self

    def build(self) -> PlanFilter:
        return PlanFilter(clauses=tuple(self._clauses))


@dataclass(frozen=True)
class OperatorToken:
    name: str
    excluded: bool = False


def parse_operator_tokens(raw: Optional[str]) -> List[OperatorToken]:
    """Split a comma-separated operator expression.

    `~Name` excludes Name, anything else requires it. Blank tokens and a bare
    `~` are ignored.
    """
    tokens: List[OperatorToken] = []
    if not raw:
        return tokens
    for part in raw.split(OPERATOR_SEPARATOR):
        part = part.strip()
        if part.startswith(EXCLUDE_PREFIX):
            name = part[len(EXCLUDE_PREFIX):].strip()
            if name:
                tokens.append(OperatorToken(name=name, excluded=True))
        elif part:
            tokens.append(OperatorToken(name=part))
    return tokens


def build_plan_filter(query: PlanQuery) -> PlanFilter:
    """Compose the search filter for the given criteria."""
    builder = PlanFilterBuilder()

    if query.level_keyword:
        builder.match(PlanField.STAGE_NAME, query.level_keyword)

    if query.document:
        builder.any_of(
            builder.pattern(PlanField.DOCUMENT_TITLE, query.document),
            builder.pattern(PlanField.DOCUMENT_DETAILS, query.document),
        )

    for token in parse_operator_tokens(query.operator):
        if token.excluded:
            builder.exclude(builder.pattern(PlanField.OPERATOR_NAME, token.name))
        else:
            builder.match(PlanField.OPERATOR_NAME, token.name)

    if query.uploader:
        builder.equals(PlanField.UPLOADER_NAME, query.uploader)

    return builder.build()


# Sortable fields, keyed by every accepted spelling
SORT_FIELDS = {
    "id": PlanField.ID,
    "views": PlanField.VIEWS,
    "createdAt": PlanField.CREATED_AT,
    "created_at": PlanField.CREATED_AT,
    "createDate": PlanField.CREATED_AT,
    "updatedAt": PlanField.UPDATED_AT,
    "updated_at": PlanField.UPDATED_AT,
    "updateDate": PlanField.UPDATED_AT,
    "stageName": PlanField.STAGE_NAME,
    "stage_name": PlanField.STAGE_NAME,
    "uploader": PlanField.UPLOADER_NAME,
}


@dataclass(frozen=True)
class Sort:
    field: PlanField = PlanField.ID
    descending: bool = False


def resolve_sort(order_by: Optional[str], desc: Optional[bool]) -> Sort:
    """Ascending by id unless told otherwise; descending only when desc is True."""
    sort_field = PlanField.ID
    if order_by:
        sort_field = SORT_FIELDS.get(order_by)
        if sort_field is None:
            raise ValidationError(f"cannot sort by '{order_by}'")
    return Sort(field=sort_field, descending=desc is True)


@dataclass(frozen=True)
class Pagination:
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT

    @classmethod
    def from_raw(cls, page: Optional[int], limit: Optional[int]) -> "Pagination":
        """
        Missing or non-positive values fall back to the defaults.

        Raises ValidationError when the requested window lies beyond any
        row a store can address.
        """
        pagination = cls(
            page=page if page is not None and page > 0 else DEFAULT_PAGE,
            limit=limit if limit is not None and limit > 0 else DEFAULT_LIMIT,
        )
        if pagination.limit > MAX_ROW_INDEX or pagination.offset > MAX_ROW_INDEX:
            raise ValidationError("page out of range")
        return pagination

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def page_count(self, total: int) -> int:
        return math.ceil(total / self.limit)

    def has_next(self, total: int) -> bool:
        return total - self.page * self.limit > 0
