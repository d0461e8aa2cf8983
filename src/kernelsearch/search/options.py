"""Search options and filter expressions.

`TextSearchOptions` is what callers pass; `VectorSearchOptions` is what a
backend receives after translation. Both are immutable: a filter is extended
by building a new one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True, slots=True)
class EqualToFilterClause:
    """Matches records whose `field_name` equals `value`."""

    field_name: str
    value: Any


@dataclass(frozen=True, slots=True)
class AnyTagEqualToFilterClause:
    """Matches records whose list field `field_name` contains `value`."""

    field_name: str
    value: Any


FilterClause = Union[EqualToFilterClause, AnyTagEqualToFilterClause]


@dataclass(frozen=True, slots=True)
class TextSearchFilter:
    """Conjunction of filter clauses; every clause must hold for a record to match."""

    clauses: Tuple[FilterClause, ...] = field(default_factory=tuple)

    def equality(self, field_name: str, value: Any) -> TextSearchFilter:
        return TextSearchFilter(self.clauses + (EqualToFilterClause(field_name, value),))

    def any_tag_equal_to(self, field_name: str, value: Any) -> TextSearchFilter:
        return TextSearchFilter(self.clauses + (AnyTagEqualToFilterClause(field_name, value),))

    def __bool__(self) -> bool:
        return bool(self.clauses)


class TextSearchOptions(BaseModel):
    """Caller-facing options for a single text search call."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    offset: int = Field(default=0, ge=0)
    count: int = Field(default=5, gt=0)
    include_total_count: bool = False
    filter: Optional[TextSearchFilter] = None


class VectorSearchOptions(BaseModel):
    """Backend-native search parameters. Offset and limit are passed through verbatim."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    offset: int = Field(default=0, ge=0)
    limit: int = Field(default=5, gt=0)
    include_total_count: bool = False
    filter: Optional[TextSearchFilter] = None

    @classmethod
    def from_text_search_options(cls, options: TextSearchOptions) -> VectorSearchOptions:
        return cls(
            offset=options.offset,
            limit=options.count,
            include_total_count=options.include_total_count,
            # An empty filter is the same as no filter
            filter=options.filter if options.filter else None,
        )
