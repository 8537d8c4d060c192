# Lookback API Client
# File: tests/test_results.py
# Version: v1

"""Result deserialization and the query cross-check."""

from __future__ import annotations

import json
import sys
from typing import Any, Dict

import pytest

from lookback_api.errors import ParseError, ResultValidationError
from lookback_api.query import LookbackQuery
from lookback_api.results import LookbackResult, confirm_result, parse_result


class _CountingBody:
    """Body stub that counts close() calls."""

    def __init__(self, payload: bytes) -> None:
        self.payload = payload
        self.close_count = 0

    def read(self) -> bytes:
        return self.payload

    def close(self) -> None:
        self.close_count += 1


def _body(data: Any) -> _CountingBody:
    return _CountingBody(json.dumps(data).encode("utf-8"))


def _payload(**overrides: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "_rallyAPIMajor": "2",
        "_rallyAPIMinor": "0",
        "Errors": [],
        "Warnings": [],
        "GeneratedQuery": {"find": {"Project": 1}},
        "TotalResultCount": 2,
        "StartIndex": 0,
        "PageSize": 100,
        "ETLDate": "2026-10-18T23:59:59.000Z",
        "Results": [{"ObjectID": 1}, {"ObjectID": 2}],
    }
    payload.update(overrides)
    return payload


# ---------------------------------------------------------------------------
# parse_result
# ---------------------------------------------------------------------------


def test_parse_maps_service_fields() -> None:
    body = _body(_payload())

    result = parse_result(body)

    assert result.results == [{"ObjectID": 1}, {"ObjectID": 2}]
    assert result.total_result_count == 2
    assert result.start_index == 0
    assert result.page_size == 100
    assert result.etl_date == "2026-10-18T23:59:59.000Z"
    assert result.generated_query == {"find": {"Project": 1}}
    assert result.api_major == "2"
    assert body.close_count == 1


def test_explicit_nulls_are_preserved() -> None:
    payload = _payload(
        ETLDate=None,
        HasMore=None,
        Warnings=None,
        Results=[{"ObjectID": 1, "Blocked": None}],
    )

    result = parse_result(_body(payload))

    assert result.etl_date is None
    assert result.has_more is None
    assert result.warnings is None
    assert result.results == [{"ObjectID": 1, "Blocked": None}]
    # The raw payload still tells null apart from an absent key.
    assert "ETLDate" in result.raw and result.raw["ETLDate"] is None
    assert "Blocked" in result.results[0]


def test_query_is_attached_at_parse_time() -> None:
    query = LookbackQuery()
    assert parse_result(_body(_payload()), query=query).query is query


@pytest.mark.parametrize(
    "payload",
    [
        b"{not json",
        b"",
        b"\xff\xfe\x00",
        b"[1, 2, 3]",
        b'"just a string"',
        json.dumps(_payload(TotalResultCount="many")).encode("utf-8"),
        json.dumps(_payload(Results={"ObjectID": 1})).encode("utf-8"),
        json.dumps(_payload(StartIndex=True)).encode("utf-8"),
        pytest.param(
            b'{"TotalResultCount": 1' + b"0" * 5000 + b"}",
            marks=pytest.mark.skipif(
                not hasattr(sys, "get_int_max_str_digits"),
                reason="interpreter has no integer string conversion limit",
            ),
            id="oversized-integer",
        ),
        pytest.param(b"[" * 100000, id="deeply-nested"),
    ],
)
def test_malformed_bodies_raise_parse_error_and_close_once(payload: bytes) -> None:
    body = _CountingBody(payload)

    with pytest.raises(ParseError):
        parse_result(body)

    assert body.close_count == 1


# ---------------------------------------------------------------------------
# validate / confirm_result
# ---------------------------------------------------------------------------


def test_confirm_returns_the_same_result_unchanged() -> None:
    query = LookbackQuery().set_page_size(100)
    result = LookbackResult.from_dict(_payload(), query=query)
    before = LookbackResult.from_dict(_payload())

    assert confirm_result(result, query) is result
    assert result == before


def test_server_errors_fail_validation() -> None:
    result = LookbackResult.from_dict(_payload(Errors=["Invalid find clause"], Results=None))

    with pytest.raises(ResultValidationError) as excinfo:
        confirm_result(result, LookbackQuery())

    assert "Invalid find clause" in str(excinfo.value)


def test_mismatched_start_fails_validation() -> None:
    query = LookbackQuery().set_start(200)
    result = LookbackResult.from_dict(_payload(StartIndex=0))

    with pytest.raises(ResultValidationError) as excinfo:
        confirm_result(result, query)

    assert excinfo.value.details == {"requested_start": 200, "start_index": 0}


def test_page_size_larger_than_requested_fails_validation() -> None:
    query = LookbackQuery().set_page_size(10)
    result = LookbackResult.from_dict(_payload(PageSize=100))

    with pytest.raises(ResultValidationError):
        confirm_result(result, query)


def test_missing_paging_metadata_is_accepted() -> None:
    query = LookbackQuery().set_start(50).set_page_size(10)
    result = LookbackResult.from_dict(_payload(StartIndex=None, PageSize=None))

    assert confirm_result(result, query) is result


# ---------------------------------------------------------------------------
# paging metadata
# ---------------------------------------------------------------------------


def test_has_more_pages_prefers_server_flag() -> None:
    assert LookbackResult.from_dict(_payload(HasMore=True)).has_more_pages() is True
    assert LookbackResult.from_dict(
        _payload(HasMore=False, TotalResultCount=1000)
    ).has_more_pages() is False


def test_has_more_pages_falls_back_to_counts() -> None:
    result = LookbackResult.from_dict(_payload(StartIndex=100, PageSize=100, TotalResultCount=500))

    assert result.has_more_pages() is True
    assert result.next_start_index() == 200

    last = LookbackResult.from_dict(_payload(StartIndex=400, PageSize=100, TotalResultCount=500))
    assert last.has_more_pages() is False
    assert last.next_start_index() is None
