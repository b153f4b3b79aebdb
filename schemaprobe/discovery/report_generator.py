"""Report generator for discovery runs.

Generates:
- schema.json - Discovered fields and minimal request body
- request-schema.json - JSON Schema of the request body
- session.json - Run metadata and probe history
- discovery-report.md - Human-readable summary
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .models import DiscoveredSchema, DiscoveryRequest, ProbeRecord
from .type_inferrer import TypeInferrer


@dataclass
class DiscoverySession:
    """Complete discovery run results."""

    request: DiscoveryRequest
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: datetime | None = None
    iterations: int = 0
    probes: list[ProbeRecord] = field(default_factory=list)
    schema: DiscoveredSchema | None = None
    failure: Exception | None = None

    @property
    def error(self) -> str | None:
        return str(self.failure) if self.failure is not None else None

    @property
    def duration_seconds(self) -> float:
        """Get session duration in seconds."""
        end = self.completed_at or datetime.now(timezone.utc)
        return (end - self.started_at).total_seconds()

    @property
    def succeeded(self) -> bool:
        return self.schema is not None and self.error is None

    @property
    def success_rate(self) -> float:
        """Get percentage of probes answered with a 2xx status."""
        if not self.probes:
            return 0.0
        successful = len(
            [p for p in self.probes if p.status_code is not None and 200 <= p.status_code < 300],
        )
        return successful / len(self.probes) * 100

    @property
    def pacing_stats(self) -> dict:
        """Get how much this run was slowed by per-host pacing."""
        waits = [p.wait_ms for p in self.probes]
        return {
            "probes_delayed": len([w for w in waits if w > 0]),
            "total_wait_seconds": round(sum(waits) / 1000, 3),
            "max_wait_seconds": round(max(waits, default=0.0) / 1000, 3),
        }


class ReportGenerator:
    """Generate reports from a discovery session.

    Provides:
    - Schema and JSON Schema export
    - Session summary with probe history
    - Markdown summary generation
    """

    def __init__(
        self,
        output_dir: Path | str = "reports/discovery",
        pretty_print: bool = True,
        type_inferrer: TypeInferrer | None = None,
    ) -> None:
        """Initialize report generator.

        Args:
            output_dir: Directory for output files
            pretty_print: Pretty print JSON output
            type_inferrer: Maps semantic types onto JSON Schema
        """
        self.output_dir = Path(output_dir)
        self.pretty_print = pretty_print
        self.type_inferrer = type_inferrer or TypeInferrer()

    def generate_all(self, session: DiscoverySession) -> dict[str, Path]:
        """Generate all reports from a discovery session.

        Args:
            session: Finished discovery session

        Returns:
            Dict mapping report type to file path
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)

        generated = {}

        schema_path = self.generate_schema(session)
        if schema_path:
            generated["schema"] = schema_path

        json_schema_path = self.generate_json_schema(session)
        if json_schema_path:
            generated["json_schema"] = json_schema_path

        generated["summary"] = self.generate_session_summary(session)
        generated["markdown"] = self.generate_markdown_report(session)

        return generated

    def generate_schema(self, session: DiscoverySession) -> Path | None:
        """Write the discovered schema, if the run produced one."""
        if session.schema is None:
            return None

        path = self.output_dir / "schema.json"
        self._write_json(path, session.schema.to_dict())
        return path

    def build_json_schema(self, session: DiscoverySession) -> dict[str, Any]:
        """Convert the discovered schema to a draft-07 JSON Schema.

        Args:
            session: Session with a discovered schema

        Returns:
            JSON Schema dict describing the request body
        """
        schema: dict[str, Any] = {
            "$schema": "http://json-schema.org/draft-07/schema#",
            "title": f"{session.request.method} {session.request.url}",
            "type": "object",
            "properties": {},
        }

        if session.schema is None:
            return schema

        required = []
        for info in session.schema.fields:
            prop = self.type_inferrer.to_json_schema(info.type)
            if info.sample_value is not None:
                prop["examples"] = [info.sample_value]
            schema["properties"][info.name] = prop
            if info.required:
                required.append(info.name)

        if required:
            schema["required"] = required

        return schema

    def generate_json_schema(self, session: DiscoverySession) -> Path | None:
        if session.schema is None:
            return None

        path = self.output_dir / "request-schema.json"
        self._write_json(path, self.build_json_schema(session))
        return path

    def generate_session_summary(self, session: DiscoverySession) -> Path:
        """Write session summary JSON.

        Args:
            session: Finished discovery session

        Returns:
            Path to summary file
        """
        summary = {
            "started_at": session.started_at.isoformat(),
            "completed_at": (session.completed_at.isoformat() if session.completed_at else None),
            "duration_seconds": session.duration_seconds,
            "method": session.request.method,
            "url": session.request.url,
            "max_iterations": session.request.max_iterations,
            "statistics": {
                "iterations": session.iterations,
                "probes_total": len(session.probes),
                "probe_success_rate": session.success_rate,
                "fields_discovered": len(session.schema.fields) if session.schema else 0,
            },
            "pacing": session.pacing_stats,
            "probes": [p.to_dict() for p in session.probes],
            "error": session.error,
        }

        path = self.output_dir / "session.json"
        self._write_json(path, summary)
        return path

    def generate_markdown_report(self, session: DiscoverySession) -> Path:
        """Write the human-readable markdown report.

        Args:
            session: Finished discovery session

        Returns:
            Path to markdown report file
        """
        lines = [
            "# API Schema Discovery Report",
            "",
            f"**Generated**: {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S UTC')}",
            f"**Endpoint**: `{session.request.method} {session.request.url}`",
            f"**Duration**: {session.duration_seconds:.1f} seconds",
            f"**Result**: {'Schema discovered' if session.succeeded else 'Failed'}",
            "",
            "---",
            "",
            "## Summary",
            "",
            "| Metric | Value |",
            "|--------|-------|",
            f"| Iterations | {session.iterations}/{session.request.max_iterations} |",
            f"| Probes Sent | {len(session.probes)} |",
            f"| Probe Success Rate | {session.success_rate:.1f}% |",
            "",
        ]

        if session.error:
            lines.extend(["## Error", "", f"- {session.error}", ""])

        if session.schema is not None:
            lines.extend(
                [
                    "## Discovered Fields",
                    "",
                    "| Field | Type | Required | Sample |",
                    "|-------|------|----------|--------|",
                ],
            )
            for info in session.schema.fields:
                sample = json.dumps(info.sample_value, default=str)
                required = "yes" if info.required else "no"
                lines.append(f"| {info.name} | {info.type or '-'} | {required} | `{sample}` |")
            lines.append("")

            if session.schema.minimal_request_body:
                lines.extend(
                    [
                        "### Minimal Request Body",
                        "",
                        "```json",
                        json.dumps(session.schema.minimal_request_body, indent=2, default=str),
                        "```",
                        "",
                    ],
                )

        if session.pacing_stats["probes_delayed"]:
            lines.extend(
                [
                    "## Pacing",
                    "",
                    "| Metric | Value |",
                    "|--------|-------|",
                ],
            )
            for key, value in session.pacing_stats.items():
                lines.append(f"| {key.replace('_', ' ').title()} | {value} |")
            lines.append("")

        lines.extend(
            [
                "## Probes",
                "",
                "| Iteration | Status | Direct Array | Response Time |",
                "|-----------|--------|--------------|---------------|",
            ],
        )
        for probe in session.probes[:100]:
            status = str(probe.status_code) if probe.status_code is not None else "error"
            direct = "yes" if probe.direct_array else "no"
            rt = f"{probe.duration_ms:.0f}ms" if probe.duration_ms else "-"
            lines.append(f"| {probe.iteration} | {status} | {direct} | {rt} |")
        lines.append("")

        path = self.output_dir / "discovery-report.md"
        path.write_text("\n".join(lines))
        return path

    def _write_json(self, path: Path, data: dict) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w") as f:
            if self.pretty_print:
                json.dump(data, f, indent=2, default=str)
            else:
                json.dump(data, f, default=str)
            f.write("\n")
