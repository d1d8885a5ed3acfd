"""Shared test fixtures for nypd_etl test suite.

Provides fake AWS credentials, a sample config, and an in-memory fake of the
OIP report API served through ``httpx.MockTransport``.
"""

from __future__ import annotations

import json
import logging
import os
import string
from typing import Any, Dict, List, Optional, Set, Tuple

import httpx
import pytest

from nypd_etl.api_client import ApiClient, ApiConfig, ConcurrencyLimiter
from nypd_etl.config import Config
from nypd_etl.diagnostics import ErrorSink, RunContext
from nypd_etl.normalize import PROFILE_FIELDS, RANK_HISTORY_FIELDS, Attribute

PROFILE_IDS = {attr: field_id for field_id, attr in PROFILE_FIELDS.items()}
HISTORY_IDS = {attr: field_id for field_id, attr in RANK_HISTORY_FIELDS.items()}

BASE_URL = "https://oip.test"
LISTING_PATH = "/api/reports/2/datasource/serverList"
PROFILE_PATH = "/api/reports/1/datasource/list"
HISTORY_PATH = "/api/reports/1027/datasource/list"


# ---------------------------------------------------------------------------
# AWS credential safety: prevent accidental real AWS calls
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True, scope="session")
def aws_credentials():
    """Set fake AWS credentials for the entire test session."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "us-east-1"
    yield
    for key in (
        "AWS_ACCESS_KEY_ID",
        "AWS_SECRET_ACCESS_KEY",
        "AWS_SECURITY_TOKEN",
        "AWS_SESSION_TOKEN",
        "AWS_DEFAULT_REGION",
    ):
        os.environ.pop(key, None)


@pytest.fixture(autouse=True)
def no_env_token(monkeypatch):
    monkeypatch.delenv("NYPD_OIP_TOKEN", raising=False)


# ---------------------------------------------------------------------------
# Configuration fixtures
# ---------------------------------------------------------------------------

def make_config(**overrides: Any) -> Config:
    raw: Dict[str, Any] = {
        "region": "us-east-1",
        "api": {
            "base_url": BASE_URL,
            "client_id": "test-client",
            "timeout_seconds": 5,
            "max_concurrency": 4,
        },
        "listing": {"page_size": 100},
        "sample": {"enabled": False, "rows": 10},
        "endpoints": {
            "listing": {"path": LISTING_PATH},
            "profile": {"path": PROFILE_PATH, "filter_key": "@TAXID"},
            "rank_history": {"path": HISTORY_PATH, "filter_key": "@TAXID"},
        },
        "output": {},
    }
    for key, value in overrides.items():
        raw[key] = {**raw.get(key, {}), **value} if isinstance(value, dict) else value
    return Config(raw)


@pytest.fixture()
def sample_config() -> Config:
    return make_config()


@pytest.fixture()
def run_context() -> RunContext:
    logger = logging.getLogger("nypd_etl.tests")
    return RunContext(limiter=ConcurrencyLimiter(4), sink=ErrorSink(logger), logger=logger)


# ---------------------------------------------------------------------------
# Sample payloads: realistic OIP response shapes
# ---------------------------------------------------------------------------

def profile_entry(
    name: str = "SMITH, JOHN A",
    rank: str = "POLICE OFFICER",
    appointed: str = "7/1/2005 12:00:00 AM",
    command: str = "075 PRECINCT",
    assigned: str = "1/15/2012 12:00:00 AM",
    ethnicity: str = "WHITE",
    shield: str = "12345",
    extra: Optional[List[Tuple[str, str]]] = None,
) -> Dict[str, Any]:
    columns = [
        {"Id": PROFILE_IDS[Attribute.RANK], "Value": rank},
        {"Id": PROFILE_IDS[Attribute.APPOINTMENT_DATE], "Value": appointed},
        {"Id": PROFILE_IDS[Attribute.COMMAND], "Value": command},
        {"Id": PROFILE_IDS[Attribute.ASSIGNMENT_DATE], "Value": assigned},
        {"Id": PROFILE_IDS[Attribute.ETHNICITY], "Value": ethnicity},
        {"Id": PROFILE_IDS[Attribute.SHIELD_NUMBER], "Value": shield},
    ]
    for field_id, value in extra or []:
        columns.append({"Id": field_id, "Value": value})
    return {"Label": name, "Columns": columns}


def history_entry(effective: str, rank: str, shield: str = "") -> Dict[str, Any]:
    return {
        "Label": "",
        "Columns": [
            {"Id": HISTORY_IDS[Attribute.EFFECTIVE_DATE], "Value": effective},
            {"Id": HISTORY_IDS[Attribute.RANK], "Value": rank},
            {"Id": HISTORY_IDS[Attribute.SHIELD_NUMBER], "Value": shield},
        ],
    }


def listing_row(record_id: int, name: str) -> Dict[str, Any]:
    return {
        "RowValue": str(record_id),
        "Columns": [
            {"Id": "name-column", "Value": name},
            {"Id": "command-column", "Value": "075 PRECINCT"},
        ],
    }


class FakeOip:
    """In-memory OIP: ``roster`` maps a letter to its number of officers."""

    def __init__(
        self,
        roster: Optional[Dict[str, int]] = None,
        page_size: int = 100,
        failing_partitions: Optional[Set[str]] = None,
        failing_pages: Optional[Set[Tuple[str, int]]] = None,
        failing_details: Optional[Set[int]] = None,
        duplicate_profiles: Optional[Set[int]] = None,
        error_profiles: Optional[Set[int]] = None,
        shield_overrides: Optional[Dict[int, str]] = None,
        token_status: int = 200,
    ) -> None:
        self.roster = roster if roster is not None else {letter: 3 for letter in string.ascii_uppercase}
        self.page_size = page_size
        self.failing_partitions = failing_partitions or set()
        self.failing_pages = failing_pages or set()
        self.failing_details = failing_details or set()
        self.duplicate_profiles = duplicate_profiles or set()
        self.error_profiles = error_profiles or set()
        self.shield_overrides = shield_overrides or {}
        self.token_status = token_status
        self.pages_served: List[Tuple[str, int]] = []
        self.detail_calls: List[Tuple[str, int]] = []
        self.cookies: Set[str] = set()

    @staticmethod
    def officer_id(letter: str, index: int) -> int:
        return (string.ascii_uppercase.index(letter) + 1) * 100000 + index

    @staticmethod
    def officer_name(letter: str, index: int) -> str:
        return f"{letter}LASTNAME{index}, JOHN A"

    def ids_for(self, letter: str) -> List[int]:
        return [self.officer_id(letter, i) for i in range(self.roster.get(letter, 0))]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        if request.headers.get("Cookie"):
            self.cookies.add(request.headers["Cookie"])
        path = request.url.path
        if path == "/oauth2/token":
            if self.token_status != 200:
                return httpx.Response(self.token_status, json={"error": "denied"})
            return httpx.Response(200, json={"access_token": "tok-123"})
        if path == LISTING_PATH:
            return self._listing(request)
        if path in (PROFILE_PATH, HISTORY_PATH):
            return self._detail(path, request)
        return httpx.Response(404)

    def _listing(self, request: httpx.Request) -> httpx.Response:
        params = request.url.params
        page = int(params["page"])
        filters = json.loads(params["platformFilters"])["filters"]
        letter = filters[1]["values"][0]
        self.pages_served.append((letter, page))
        if (page == 1 and letter in self.failing_partitions) or (letter, page) in self.failing_pages:
            return httpx.Response(500, json={"error": "boom"})
        ids = self.ids_for(letter)
        start = (page - 1) * self.page_size
        rows = [
            listing_row(record_id, self.officer_name(letter, start + i))
            for i, record_id in enumerate(ids[start : start + self.page_size])
        ]
        return httpx.Response(200, json={"Total": len(ids), "Data": rows})

    def _detail(self, path: str, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        record_id = int(body["filters"][0]["values"][0])
        self.detail_calls.append((path, record_id))
        if record_id in self.failing_details:
            return httpx.Response(503, json={"error": "unavailable"})
        letter = string.ascii_uppercase[record_id // 100000 - 1]
        index = record_id % 100000
        if path == PROFILE_PATH:
            if record_id in self.error_profiles:
                return httpx.Response(200, json={"Message": "An error has occurred."})
            shield = self.shield_overrides.get(record_id, str(index + 1))
            entry = profile_entry(name=self.officer_name(letter, index), shield=shield)
            count = 2 if record_id in self.duplicate_profiles else 1
            return httpx.Response(200, json=[entry] * count)
        return httpx.Response(
            200,
            json=[
                history_entry("6/30/2015 12:00:00 AM", "SERGEANT", str(index + 1)),
                history_entry("7/1/2005 12:00:00 AM", "POLICE OFFICER"),
                history_entry("7/1/2010 12:00:00 AM", "DETECTIVE 3RD GRADE"),
            ],
        )


@pytest.fixture()
def fake_oip() -> FakeOip:
    return FakeOip()


def make_api(fake: FakeOip, ctx: RunContext, token: Optional[str] = "tok-123") -> ApiClient:
    cfg = ApiConfig(base_url=BASE_URL, client_id="test-client", max_concurrency=ctx.limiter.max_concurrency)
    return ApiClient(cfg, ctx.limiter, token=token, transport=fake.transport())
