# Lookback API Client
# File: client.py
# Version: v1
"""High-level client for Rally's Lookback API.

Implements the snapshot query pipeline:

- build the workspace endpoint URL and apply credentials
- POST the query JSON
- validate the HTTP response (401 / missing body)
- deserialize the body into a LookbackResult
- confirm the result against the query that produced it
"""

from __future__ import annotations

import logging
from typing import Iterator, Optional

from .config import LookbackConfig
from .errors import LookbackError
from .executor import RequestExecutor, validate_response
from .query import LookbackQuery
from .results import LookbackResult, confirm_result, parse_result
from .transport import HttpxTransport, Transport

logger = logging.getLogger(__name__)


class LookbackApi:
    """Entry point for querying the Lookback API.

        api = LookbackApi(
            LookbackConfigBuilder()
            .set_credentials("myRallyUsername", "myRallyPassword")
            .set_workspace("12345")
            .build()
        )
        query = api.new_snapshot_query()

    Requests are synchronous. The configuration is an immutable snapshot, so
    one api object may serve several threads as long as each thread uses its
    own queries and results.
    """

    def __init__(
        self,
        config: Optional[LookbackConfig] = None,
        transport: Optional[Transport] = None,
    ) -> None:
        self.config = config or LookbackConfig()
        self.transport = transport or HttpxTransport.from_config(self.config)
        self.executor = RequestExecutor(self.config, self.transport)

    @classmethod
    def from_env(cls, transport: Optional[Transport] = None) -> "LookbackApi":
        return cls(LookbackConfig.from_env(), transport=transport)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def new_snapshot_query(self) -> LookbackQuery:
        return LookbackQuery(self)

    def get_query_for_next_page(self, result: LookbackResult) -> LookbackQuery:
        """Use a result to create the query for the following page."""
        return LookbackQuery.for_next_page(result, api=self)

    def execute_query(self, query: LookbackQuery) -> LookbackResult:
        """Run ``query`` and return its confirmed result.

        Raises a LookbackError subclass for every failure kind; the response
        body is closed on every path.
        """
        response = self.executor.execute(query.get_request_json())

        try:
            body = validate_response(response)
        except LookbackError:
            response.close()
            raise

        result = parse_result(body, query=query)
        logger.debug(
            "Lookback page: start=%s size=%s total=%s",
            result.start_index,
            result.page_size,
            result.total_result_count,
        )
        return confirm_result(result, query)

    def iter_pages(self, query: LookbackQuery) -> Iterator[LookbackResult]:
        """Yield ``query``'s result page by page until the last one."""
        result = self.execute_query(query)
        yield result

        while result.has_more_pages():
            result = self.execute_query(self.get_query_for_next_page(result))
            yield result

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        self.transport.close()

    def __enter__(self) -> "LookbackApi":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
