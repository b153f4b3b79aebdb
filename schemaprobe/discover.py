#!/usr/bin/env python3
"""API Request Schema Discovery Script.

Probes a live HTTP endpoint with reasoning-guided request bodies and reports
the request fields it requires, their types and which ones are optional.

Usage:
    python -m schemaprobe.discover --url https://api.example.com/users
    python -m schemaprobe.discover --url URL --method PUT --header "Authorization:Bearer x"
    python -m schemaprobe.discover --url URL --body '{"email": "a@b.com"}'
    python -m schemaprobe.discover --url URL --max-iterations 20 --no-reports
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

from .config import DEFAULT_CONFIG_PATH, load_config
from .discovery import DiscoverySession, ProbeTransport, ReportGenerator
from .logging_setup import setup_logging
from .runner import build_request, run_discovery

console = Console()


def parse_headers(values: list[str] | None) -> dict[str, str]:
    """Parse ``Name:Value`` header arguments."""
    headers: dict[str, str] = {}
    for value in values or []:
        name, sep, header_value = value.partition(":")
        if not sep or not name.strip():
            raise argparse.ArgumentTypeError(f"Invalid header (expected Name:Value): {value}")
        headers[name.strip()] = header_value.strip()
    return headers


def parse_body(value: str | None) -> dict:
    """Parse the initial body argument (JSON object or @file)."""
    if not value:
        return {}

    try:
        text = Path(value[1:]).read_text() if value.startswith("@") else value
    except OSError as e:
        raise argparse.ArgumentTypeError(f"Cannot read body file: {e}") from e

    try:
        body = json.loads(text)
    except json.JSONDecodeError as e:
        raise argparse.ArgumentTypeError(f"Invalid JSON body: {e}") from e

    if not isinstance(body, dict):
        raise argparse.ArgumentTypeError("Initial body must be a JSON object")
    return body


def non_negative_int(value: str) -> int:
    """Parse an iteration budget; 0 means the configured default."""
    try:
        number = int(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Invalid integer: {value}") from e
    if number < 0:
        raise argparse.ArgumentTypeError(f"Must be 0 or greater: {value}")
    return number


async def discover(config: dict, args: argparse.Namespace) -> DiscoverySession:
    """Run discovery for the endpoint given on the command line."""
    request = build_request(
        url=args.url,
        method=args.method,
        headers=parse_headers(args.header),
        initial_body=parse_body(args.body),
        max_iterations=args.max_iterations,
        config=config,
    )

    async with ProbeTransport.from_config(config.get("probe", {})) as transport:
        with console.status(f"Discovering {request.method} {request.url}..."):
            return await run_discovery(request, config, transport)


def print_summary(session: DiscoverySession) -> None:
    """Print discovery summary to console."""
    table = Table(title="Discovery Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Endpoint", f"{session.request.method} {session.request.url}")
    table.add_row("Duration", f"{session.duration_seconds:.1f}s")
    table.add_row("Iterations", f"{session.iterations}/{session.request.max_iterations}")
    table.add_row("Probes Sent", str(len(session.probes)))
    table.add_row("Probe Success Rate", f"{session.success_rate:.1f}%")

    pacing = session.pacing_stats
    if pacing["probes_delayed"]:
        table.add_row(
            "Paced Probes",
            f"{pacing['probes_delayed']} ({pacing['total_wait_seconds']:.1f}s waited)",
        )

    console.print(table)

    if session.schema is None:
        return

    fields = Table(title="Discovered Fields")
    fields.add_column("Field", style="cyan")
    fields.add_column("Type", style="magenta")
    fields.add_column("Required")
    fields.add_column("Sample")

    for info in session.schema.fields:
        fields.add_row(
            info.name,
            info.type or "-",
            "[bold green]yes[/bold green]" if info.required else "no",
            json.dumps(info.sample_value, default=str),
        )

    console.print(fields)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Discover the request schema of a live HTTP endpoint",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--url", "-u", required=True, help="Target endpoint URL")
    parser.add_argument("--method", "-m", default="POST", help="HTTP method (default: POST)")
    parser.add_argument(
        "--header",
        "-H",
        action="append",
        help="Request header as Name:Value (repeatable)",
    )
    parser.add_argument(
        "--body",
        "-b",
        type=str,
        help="Initial request body as JSON, or @path to a JSON file",
    )
    parser.add_argument(
        "--max-iterations",
        "-n",
        type=non_negative_int,
        default=0,
        help="Iteration budget (default: from config)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help="Path to discovery configuration",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        help="Output directory for reports (default: from config)",
    )
    parser.add_argument(
        "--no-reports",
        action="store_true",
        help="Skip writing report files",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level (default: from config)",
    )

    args = parser.parse_args(argv)

    config = load_config(args.config)
    log_config = config.get("logging", {})
    setup_logging(
        level=args.log_level or log_config.get("level", "INFO"),
        log_dir=log_config.get("directory", "logs"),
        console=console,
    )

    console.print("[bold blue]API Request Schema Discovery[/bold blue]")
    console.print(f"  Target: {args.method.upper()} {args.url}")
    console.print(f"  Config: {args.config}")

    try:
        session = asyncio.run(discover(config, args))
    except argparse.ArgumentTypeError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 2

    if not args.no_reports:
        output = config.get("output", {})
        report_gen = ReportGenerator(
            output_dir=args.output_dir or output.get("base_dir", "reports/discovery"),
            pretty_print=output.get("pretty_print", True),
        )

        console.print("\n[blue]Generating reports...[/blue]")
        for report_type, path in report_gen.generate_all(session).items():
            console.print(f"  {report_type}: {path}")

    print_summary(session)

    if session.failure is not None:
        console.print(f"\n[red]Could not produce a schema: {session.error}[/red]")
        return 1

    console.print("\n[bold green]Discovery complete![/bold green]")
    return 0


if __name__ == "__main__":
    sys.exit(main())
