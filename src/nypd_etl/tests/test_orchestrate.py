"""End-to-end pipeline tests against the fake OIP server."""

from __future__ import annotations

import json
import logging
import string

import pytest

from nypd_etl.diagnostics import FIELD, PARTITION, RECORD
from nypd_etl.errors import CredentialError
from nypd_etl.orchestrate import Orchestrator

from conftest import FakeOip, make_config

LOGGER = logging.getLogger("nypd_etl.tests")


async def _run(fake: FakeOip, **config_overrides):
    orchestrator = Orchestrator(make_config(**config_overrides), LOGGER, transport=fake.transport())
    try:
        records = await orchestrator.run()
    finally:
        await orchestrator.close()
    return orchestrator, records


class TestOrchestrator:
    async def test_all_partitions_scraped(self):
        fake = FakeOip(roster={letter: 2 for letter in string.ascii_uppercase})
        orchestrator, records = await _run(fake)
        assert len(records) == 52
        ids = [r.id for r in records]
        assert len(set(ids)) == len(ids)
        assert {letter for letter, _ in fake.pages_served} == set(string.ascii_uppercase)
        assert fake.cookies == {"user=tok-123"}
        for record in records:
            keys = [e.effective_date.sort_key() for e in record.rank_history]
            assert keys == sorted(keys)
        assert orchestrator.ctx.limiter.peak <= 4

    async def test_one_failing_partition_is_isolated(self):
        fake = FakeOip(roster={letter: 3 for letter in string.ascii_uppercase}, failing_partitions={"Q"})
        orchestrator, records = await _run(fake)
        ids = {r.id for r in records}
        assert len(records) == 25 * 3
        assert not ids & set(fake.ids_for("Q"))
        for letter in string.ascii_uppercase:
            if letter != "Q":
                assert set(fake.ids_for(letter)) <= ids
        assert [e.key for e in orchestrator.ctx.sink.for_scope(PARTITION)] == ["Q"]

    async def test_sample_mode_caps_each_partition(self):
        fake = FakeOip(roster={"A": 250, "B": 5, "C": 0})
        orchestrator, records = await _run(fake, sample={"enabled": True, "rows": 10}, listing={"partitions": "ABC"})
        per_letter = {}
        for record in records:
            letter = string.ascii_uppercase[record.id // 100000 - 1]
            per_letter[letter] = per_letter.get(letter, 0) + 1
        assert per_letter == {"A": 10, "B": 5}
        assert sorted(fake.pages_served) == [("A", 1), ("B", 1), ("C", 1)]

    async def test_dropped_records_excluded(self):
        fake = FakeOip(roster={"A": 4}, failing_details={FakeOip.officer_id("A", 2)})
        orchestrator, records = await _run(fake, listing={"partitions": "A"})
        assert sorted(r.id for r in records) == [FakeOip.officer_id("A", i) for i in (0, 1, 3)]
        assert orchestrator.ctx.sink.counts().get("record") == 1

    async def test_overlong_shield_keeps_every_record(self):
        bad = FakeOip.officer_id("A", 0)
        fake = FakeOip(roster={"A": 2, "B": 2}, shield_overrides={bad: "9" * 5000})
        orchestrator, records = await _run(fake, listing={"partitions": "AB"})
        by_id = {r.id: r for r in records}
        assert sorted(by_id) == sorted(fake.ids_for("A") + fake.ids_for("B"))
        assert by_id[bad].shield_number is None
        assert by_id[FakeOip.officer_id("A", 1)].shield_number == 2
        causes = [e.cause for e in orchestrator.ctx.sink.for_scope(FIELD) if e.key == str(bad)]
        assert any(c.startswith("shield_number:") for c in causes)

    async def test_error_reply_from_profile_is_not_a_record(self):
        bad = FakeOip.officer_id("A", 0)
        fake = FakeOip(roster={"A": 2}, error_profiles={bad})
        orchestrator, records = await _run(fake, listing={"partitions": "A"})
        assert [r.id for r in records] == [FakeOip.officer_id("A", 1)]
        assert [e.key for e in orchestrator.ctx.sink.for_scope(RECORD)] == [str(bad)]

    async def test_credential_failure_is_fatal(self):
        fake = FakeOip(token_status=500)
        with pytest.raises(CredentialError):
            await _run(fake)
        assert fake.pages_served == []

    async def test_env_token_skips_credential_call(self, monkeypatch):
        monkeypatch.setenv("NYPD_OIP_TOKEN", "env-token")
        fake = FakeOip(roster={"A": 1}, token_status=500)
        _, records = await _run(fake, listing={"partitions": "A"})
        assert len(records) == 1
        assert fake.cookies == {"user=env-token"}


class TestRunAndWrite:
    async def test_writes_json_array_and_diagnostics(self, tmp_path):
        fake = FakeOip(roster={"A": 2, "B": 1}, failing_partitions={"B"})
        out = tmp_path / "out" / "officers.json"
        diag = tmp_path / "diag.json"
        cfg = make_config(listing={"partitions": "AB"}, output={"diagnostics": str(diag)})
        orchestrator = Orchestrator(cfg, LOGGER, transport=fake.transport())
        try:
            written = await orchestrator.run_and_write(str(out))
        finally:
            await orchestrator.close()

        assert written == 2
        doc = json.loads(out.read_text())
        assert isinstance(doc, list) and len(doc) == 2
        first = doc[0]
        assert set(first) == {
            "id",
            "name",
            "rank",
            "appointmentDate",
            "command",
            "assignmentDate",
            "ethnicity",
            "shieldNumber",
            "rankHistory",
        }
        assert "shieldNumber" not in first["rankHistory"][1]

        report = json.loads(diag.read_text())
        assert report["summary"]["records"] == 2
        assert report["summary"]["errors"] == {"partition": 1}
        assert {"scope": "partition", "key": "B"}.items() <= report["events"][0].items()
