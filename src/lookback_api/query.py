# Lookback API Client
# File: query.py
# Version: v1

"""Snapshot queries and the continuation (next page) bridge."""

from __future__ import annotations

import copy
import json
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from .errors import ConfigurationError, PaginationError

if TYPE_CHECKING:
    from .client import LookbackApi
    from .results import LookbackResult


class LookbackQuery:
    """A snapshot query against the Lookback API.

    The ``find``/``fields``/``hydrate``/``sort`` clauses are passed to the
    service as-is. Setters return the query so calls can be chained:

        result = (
            api.new_snapshot_query()
            .add_find_clause("_TypeHierarchy", "HierarchicalRequirement")
            .require_fields("ObjectID", "ScheduleState")
            .set_page_size(100)
            .execute()
        )
    """

    def __init__(self, api: Optional["LookbackApi"] = None) -> None:
        self.api = api
        self.find: Dict[str, Any] = {}
        self.fields: List[str] = []
        self.hydrate: List[str] = []
        self.sort: Dict[str, int] = {}
        self.start: int = 0
        self.page_size: Optional[int] = None
        self.remove_unauthorized_snapshots: Optional[bool] = None

    # ------------------------------------------------------------------
    # Clauses
    # ------------------------------------------------------------------

    def add_find_clause(self, field: str, value: Any) -> "LookbackQuery":
        self.find[field] = value
        return self

    def set_find(self, find: Dict[str, Any]) -> "LookbackQuery":
        self.find = dict(find)
        return self

    def require_fields(self, *fields: str) -> "LookbackQuery":
        for name in fields:
            if name not in self.fields:
                self.fields.append(name)
        return self

    def hydrate_fields(self, *fields: str) -> "LookbackQuery":
        for name in fields:
            if name not in self.hydrate:
                self.hydrate.append(name)
        return self

    def sort_by(self, field: str, order: int = 1) -> "LookbackQuery":
        """Sort ascending (1) or descending (-1) on ``field``."""
        if order not in (1, -1):
            raise ValueError("order must be 1 (ascending) or -1 (descending)")
        self.sort[field] = order
        return self

    def set_start(self, start: int) -> "LookbackQuery":
        self.start = int(start)
        return self

    def set_page_size(self, page_size: Optional[int]) -> "LookbackQuery":
        self.page_size = int(page_size) if page_size is not None else None
        return self

    def set_remove_unauthorized_snapshots(self, remove: bool) -> "LookbackQuery":
        self.remove_unauthorized_snapshots = bool(remove)
        return self

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_request_dict(self) -> Dict[str, Any]:
        request: Dict[str, Any] = {"find": self.find}
        if self.fields:
            request["fields"] = list(self.fields)
        if self.hydrate:
            request["hydrate"] = list(self.hydrate)
        if self.sort:
            request["sort"] = dict(self.sort)
        request["start"] = self.start
        if self.page_size is not None:
            request["pagesize"] = self.page_size
        if self.remove_unauthorized_snapshots is not None:
            request["removeUnauthorizedSnapshots"] = self.remove_unauthorized_snapshots
        return request

    def get_request_json(self) -> str:
        return json.dumps(self.to_request_dict())

    # ------------------------------------------------------------------
    # Execution & paging
    # ------------------------------------------------------------------

    def execute(self) -> "LookbackResult":
        if self.api is None:
            raise ConfigurationError(
                "Query is not bound to a LookbackApi; "
                "create it with api.new_snapshot_query()."
            )
        return self.api.execute_query(self)

    def copy(self, start: Optional[int] = None) -> "LookbackQuery":
        """Independent copy of this query, optionally moved to ``start``."""
        clone = LookbackQuery(self.api)
        clone.find = copy.deepcopy(self.find)
        clone.fields = list(self.fields)
        clone.hydrate = list(self.hydrate)
        clone.sort = dict(self.sort)
        clone.start = self.start if start is None else int(start)
        clone.page_size = self.page_size
        clone.remove_unauthorized_snapshots = self.remove_unauthorized_snapshots
        return clone

    @classmethod
    def for_next_page(
        cls,
        previous: "LookbackResult",
        api: Optional["LookbackApi"] = None,
    ) -> "LookbackQuery":
        """Build the query for the page after ``previous``.

        Raises PaginationError when no further page exists, the result is
        not linked to the query that produced it, or the next start would not
        move past the current page.
        """
        if not previous.has_more_pages():
            raise PaginationError(
                "No more pages: the previous result is the last page.",
                details={
                    "start_index": previous.start_index,
                    "page_size": previous.page_size,
                    "total_result_count": previous.total_result_count,
                },
            )
        if previous.query is None:
            raise PaginationError(
                "Cannot build the next page: the result is not linked to a query."
            )

        next_start = previous.next_start_index()
        if next_start is None or next_start <= previous.current_start_index():
            raise PaginationError(
                "Cannot build the next page: the previous result reports more "
                "pages but no page size or results to advance by.",
                details={
                    "start_index": previous.current_start_index(),
                    "page_size": previous.page_size,
                },
            )

        next_query = previous.query.copy(start=next_start)
        if api is not None:
            next_query.api = api
        return next_query

    def __repr__(self) -> str:
        return f"LookbackQuery({self.get_request_json()})"
