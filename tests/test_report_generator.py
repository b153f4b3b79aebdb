"""Tests for discovery report generation."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import pytest

from schemaprobe.discovery.completion import build_schema
from schemaprobe.discovery.errors import IterationLimitExceeded
from schemaprobe.discovery.models import DiscoveryRequest, FieldKnowledge, ProbeRecord
from schemaprobe.discovery.report_generator import DiscoverySession, ReportGenerator


@pytest.fixture
def successful_session():
    started = datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)
    schema = build_schema(
        {
            "email": FieldKnowledge(name="email", type="email", required=True, sample_value="a@b.com"),
            "id": FieldKnowledge(name="id", type="integer", sample_value=1),
            "tags": FieldKnowledge(name="tags", type="array<string>"),
        },
        {"email": "a@b.com"},
    )
    return DiscoverySession(
        request=DiscoveryRequest(url="http://api.test/api/users", max_iterations=5),
        started_at=started,
        completed_at=started + timedelta(seconds=3),
        iterations=2,
        probes=[
            ProbeRecord(iteration=1, payload={}, status_code=400, duration_ms=12.5),
            ProbeRecord(
                iteration=2,
                payload={"email": "a@b.com"},
                status_code=201,
                duration_ms=8.0,
                wait_ms=250.0,
            ),
        ],
        schema=schema,
    )


@pytest.fixture
def failed_session():
    return DiscoverySession(
        request=DiscoveryRequest(url="http://api.test/api/users", max_iterations=1),
        iterations=1,
        probes=[ProbeRecord(iteration=1, payload={}, error="failed to execute request")],
        failure=IterationLimitExceeded(1),
    )


class TestDiscoverySession:
    """Session statistics."""

    def test_statistics(self, successful_session):
        assert successful_session.duration_seconds == 3.0
        assert successful_session.success_rate == 50.0
        assert successful_session.succeeded is True
        assert successful_session.error is None

    def test_failure(self, failed_session):
        assert failed_session.succeeded is False
        assert failed_session.success_rate == 0.0
        assert failed_session.error == "max iterations (1) reached without finalizing schema"


class TestReportGenerator:
    """Report files."""

    def test_generate_all(self, tmp_path, successful_session):
        generated = ReportGenerator(output_dir=tmp_path).generate_all(successful_session)

        assert set(generated) == {"schema", "json_schema", "summary", "markdown"}
        assert all(path.exists() for path in generated.values())

        schema = json.loads(generated["schema"].read_text())
        assert schema["minimalRequestBody"] == {"email": "a@b.com"}
        assert [f["name"] for f in schema["fields"]] == ["email", "id", "tags"]

    def test_failed_run_has_no_schema_files(self, tmp_path, failed_session):
        generated = ReportGenerator(output_dir=tmp_path / "out").generate_all(failed_session)

        assert set(generated) == {"summary", "markdown"}
        summary = json.loads(generated["summary"].read_text())
        assert summary["error"] == "max iterations (1) reached without finalizing schema"
        assert summary["probes"][0]["error"] == "failed to execute request"
        assert summary["statistics"]["fields_discovered"] == 0

    def test_json_schema(self, successful_session):
        schema = ReportGenerator().build_json_schema(successful_session)

        assert schema["title"] == "POST http://api.test/api/users"
        assert schema["required"] == ["email"]
        assert schema["properties"]["email"] == {
            "type": "string",
            "format": "email",
            "examples": ["a@b.com"],
        }
        assert schema["properties"]["tags"] == {"type": "array", "items": {"type": "string"}}

    def test_session_summary(self, tmp_path, successful_session):
        path = ReportGenerator(output_dir=tmp_path, pretty_print=False).generate_session_summary(
            successful_session,
        )
        summary = json.loads(path.read_text())

        assert summary["statistics"] == {
            "iterations": 2,
            "probes_total": 2,
            "probe_success_rate": 50.0,
            "fields_discovered": 3,
        }
        assert summary["probes"][1]["statusCode"] == 201
        assert summary["probes"][1]["waitMs"] == 250.0
        assert summary["pacing"] == {
            "probes_delayed": 1,
            "total_wait_seconds": 0.25,
            "max_wait_seconds": 0.25,
        }

    def test_markdown_report(self, tmp_path, successful_session):
        path = ReportGenerator(output_dir=tmp_path).generate_markdown_report(successful_session)
        content = path.read_text()

        assert "# API Schema Discovery Report" in content
        assert "**Result**: Schema discovered" in content
        assert "| email | email | yes | `\"a@b.com\"` |" in content
        assert "### Minimal Request Body" in content
        assert "| 2 | 201 | no | 8ms |" in content
        assert "## Pacing" in content
        assert "| Probes Delayed | 1 |" in content

    def test_markdown_report_for_failure(self, tmp_path, failed_session):
        path = ReportGenerator(output_dir=tmp_path).generate_markdown_report(failed_session)
        content = path.read_text()

        assert "**Result**: Failed" in content
        assert "## Error" in content
        assert "## Discovered Fields" not in content
        assert "| 1 | error | no | - |" in content
        assert "## Pacing" not in content
