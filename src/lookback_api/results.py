# Lookback API Client
# File: results.py
# Version: v1

"""Snapshot query results: model, deserializer and query cross-check."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from .errors import ParseError, ResultValidationError
from .transport import ResponseBody

if TYPE_CHECKING:
    from .query import LookbackQuery


# JSON key -> (attribute, accepted python types)
_FIELDS: Dict[str, Tuple[str, Tuple[type, ...]]] = {
    "_rallyAPIMajor": ("api_major", (str, int)),
    "_rallyAPIMinor": ("api_minor", (str, int)),
    "Errors": ("errors", (list,)),
    "Warnings": ("warnings", (list,)),
    "GeneratedQuery": ("generated_query", (dict,)),
    "TotalResultCount": ("total_result_count", (int,)),
    "StartIndex": ("start_index", (int,)),
    "PageSize": ("page_size", (int,)),
    "HasMore": ("has_more", (bool,)),
    "ETLDate": ("etl_date", (str,)),
    "Results": ("results", (list,)),
}


@dataclass
class LookbackResult:
    """One page of snapshots returned by the Lookback API.

    Every field mirrors the service payload and stays ``None`` when the
    server sent an explicit ``null`` (or omitted the key); no defaults are
    substituted. ``raw`` keeps the decoded payload so callers can tell the
    two cases apart.
    """

    results: Optional[List[Any]] = None
    total_result_count: Optional[int] = None
    start_index: Optional[int] = None
    page_size: Optional[int] = None
    has_more: Optional[bool] = None
    etl_date: Optional[str] = None
    errors: Optional[List[Any]] = None
    warnings: Optional[List[Any]] = None
    generated_query: Optional[Dict[str, Any]] = None
    api_major: Optional[Any] = None
    api_minor: Optional[Any] = None

    # Decoded JSON payload, for debugging / advanced use.
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    # The query this page answers; used to build the next page's query.
    query: Optional["LookbackQuery"] = field(default=None, repr=False, compare=False)

    @classmethod
    def from_dict(
        cls,
        data: Any,
        query: Optional["LookbackQuery"] = None,
    ) -> "LookbackResult":
        """Create from the decoded response payload.

        Raises ParseError when the payload is not a JSON object or a known
        field carries a value of the wrong JSON type.
        """
        if not isinstance(data, dict):
            raise ParseError(
                "Unexpected Lookback API response: "
                f"expected JSON object, got {type(data).__name__}."
            )

        values: Dict[str, Any] = {}
        for key, (attr, types) in _FIELDS.items():
            value = data.get(key)
            # bool is an int subclass; only HasMore may be a bool.
            wrong_bool = isinstance(value, bool) and bool not in types
            if value is not None and (wrong_bool or not isinstance(value, types)):
                raise ParseError(
                    f"Unexpected type for '{key}' in Lookback API response: "
                    f"got {type(value).__name__}.",
                    details={"field": key},
                )
            values[attr] = value

        return cls(raw=data, query=query, **values)

    # ------------------------------------------------------------------
    # Paging metadata
    # ------------------------------------------------------------------

    def has_errors(self) -> bool:
        return bool(self.errors)

    def has_more_pages(self) -> bool:
        """Whether another page follows this one.

        The server's ``HasMore`` flag wins; otherwise the start index and page
        size are compared against the total count.
        """
        if self.has_more is not None:
            return self.has_more
        if None in (self.start_index, self.page_size, self.total_result_count):
            return False
        return self.start_index + self.page_size < self.total_result_count

    def current_start_index(self) -> int:
        """Start of this page: the server's StartIndex, else the requested start."""
        if self.start_index is not None:
            return self.start_index
        if self.query is not None:
            return self.query.start
        return 0

    def next_start_index(self) -> Optional[int]:
        if not self.has_more_pages():
            return None
        return self.current_start_index() + (self.page_size or len(self.results or []))

    # ------------------------------------------------------------------
    # Validation against the originating query
    # ------------------------------------------------------------------

    def validate(self, query: Optional["LookbackQuery"]) -> "LookbackResult":
        """Accept this result for ``query`` or raise ResultValidationError.

        Never modifies the result; on success the same object is returned.
        """
        if self.has_errors():
            raise ResultValidationError(
                "Lookback API reported errors: "
                + "; ".join(str(e) for e in self.errors or []),
                details={"errors": self.errors, "warnings": self.warnings},
            )

        if query is None:
            return self

        if self.start_index is not None and self.start_index != query.start:
            raise ResultValidationError(
                f"Result starts at index {self.start_index} "
                f"but the query requested start {query.start}.",
                details={"requested_start": query.start, "start_index": self.start_index},
            )

        if (
            self.page_size is not None
            and query.page_size is not None
            and self.page_size > query.page_size
        ):
            raise ResultValidationError(
                f"Result page size {self.page_size} exceeds the "
                f"requested page size {query.page_size}.",
                details={"requested_page_size": query.page_size, "page_size": self.page_size},
            )

        return self


def parse_result(
    body: ResponseBody,
    query: Optional["LookbackQuery"] = None,
) -> LookbackResult:
    """Deserialize a UTF-8 JSON body into a :class:`LookbackResult`.

    The body is closed exactly once, whether parsing succeeds or fails.
    """
    try:
        raw = body.read()
        data = json.loads(raw.decode("utf-8"))
    except UnicodeDecodeError as exc:
        raise ParseError(f"Lookback API response is not valid UTF-8: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ParseError(f"Invalid JSON in Lookback API response: {exc}") from exc
    except (ValueError, RecursionError) as exc:
        # Oversized integer literals or nesting too deep for the decoder.
        raise ParseError(f"Lookback API response cannot be decoded: {exc}") from exc
    finally:
        body.close()

    return LookbackResult.from_dict(data, query=query)


def confirm_result(
    result: LookbackResult,
    query: Optional["LookbackQuery"],
) -> LookbackResult:
    """Cross-check a freshly parsed result against its query."""
    return result.validate(query)
