"""Record mappers used by text search projections.

A mapper is a plain callable supplied by whoever wires up a backend:

- string mapper: ``record -> str``
- result mapper: ``record -> TextSearchResult``

Objects exposing ``map_from_result_to_string`` or
``map_from_result_to_text_search_result`` are accepted as well and adapted
to callables.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from kernelsearch.exceptions import ConfigurationError
from kernelsearch.search.results import TextSearchResult

StringMapper = Callable[[Any], str]
ResultMapper = Callable[[Any], TextSearchResult]


def as_string_mapper(mapper: Any) -> StringMapper:
    method = getattr(mapper, "map_from_result_to_string", None)
    if callable(method):
        return method
    if callable(mapper):
        return mapper
    raise ConfigurationError(f"Not a string mapper: {mapper!r}")


def as_result_mapper(mapper: Any) -> ResultMapper:
    method = getattr(mapper, "map_from_result_to_text_search_result", None)
    if callable(method):
        return method
    if callable(mapper):
        return mapper
    raise ConfigurationError(f"Not a text search result mapper: {mapper!r}")


def _get_field(record: Any, field_name: str) -> Any:
    # Dict-like records first, then attributes
    if isinstance(record, dict):
        return record[field_name]
    return getattr(record, field_name)


def field_string_mapper(field_name: str) -> StringMapper:
    """Build a string mapper that reads one field from dicts or objects.

    Missing fields raise `KeyError`/`AttributeError`, which the projector
    reports as a mapping failure for that record.
    """

    def _map(record: Any) -> str:
        value = _get_field(record, field_name)
        if value is None:
            raise ValueError(f"Field '{field_name}' is empty")
        return str(value)

    return _map


def field_result_mapper(
    value_field: str,
    *,
    name_field: Optional[str] = None,
    link_field: Optional[str] = None,
) -> ResultMapper:
    """Build a result mapper from field names.

    Only `value_field` is required; the optional name and link fields map to
    None when absent from a record.
    """
    value_of = field_string_mapper(value_field)

    def _optional(record: Any, field_name: Optional[str]) -> Optional[str]:
        if not field_name:
            return None
        try:
            raw = _get_field(record, field_name)
        except (KeyError, AttributeError):
            return None
        return str(raw) if raw is not None else None

    def _map(record: Any) -> TextSearchResult:
        return TextSearchResult(
            value=value_of(record),
            name=_optional(record, name_field),
            link=_optional(record, link_field),
            inner_content=record,
        )

    return _map
