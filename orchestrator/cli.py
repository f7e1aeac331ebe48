"""
Orchestrator - CLI.

============================================================
RESPONSIBILITY
============================================================
Command-line runner for the assessment orchestrator.

- Reads a JSON snapshot file
- Runs one orchestration cycle and prints the results
- Optionally watches the file and re-runs on change
- Logs go to stderr; stdout carries only the results

============================================================
USAGE
============================================================
python -m orchestrator.cli snapshot.json
python -m orchestrator.cli snapshot.json --output json
python -m orchestrator.cli snapshot.json --watch --interval 5

============================================================
"""

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path
from typing import Any, List, Optional

from assessment_engine import AssessmentReport, format_assessment_summary
from assessment_engine.types import AssessmentDomain

from .core import AssessmentOrchestrator, create_orchestrator
from .models import OrchestratorConfig
from .scheduler import RefreshScheduler


# ============================================================
# CLI ARGUMENT PARSER
# ============================================================

def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="assessment-engine",
        description="Run the sustainability assessment engine on a metric snapshot",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s snapshot.json                       # One cycle, text summary
  %(prog)s snapshot.json --output json         # One cycle, JSON slots
  %(prog)s snapshot.json --watch --interval 5  # Re-run when the file changes
        """
    )

    parser.add_argument(
        "snapshot",
        type=str,
        metavar="PATH",
        help="Path to a JSON metric snapshot",
    )

    # --------------------------------------------------------
    # Execution Options
    # --------------------------------------------------------
    execution_group = parser.add_argument_group("Execution Options")

    execution_group.add_argument(
        "--output", "-o",
        type=str,
        choices=["text", "json"],
        default="text",
        help="Output format (default: text)",
    )

    execution_group.add_argument(
        "--watch",
        action="store_true",
        help="Keep running and re-assess whenever the snapshot file changes",
    )

    execution_group.add_argument(
        "--interval",
        type=float,
        default=None,
        metavar="SECONDS",
        help="File check interval for --watch (default: ASSESSMENT_REFRESH_INTERVAL_SECONDS or 60)",
    )

    execution_group.add_argument(
        "--sequential",
        action="store_true",
        help="Compute domains sequentially instead of in worker threads",
    )

    # --------------------------------------------------------
    # Logging Options
    # --------------------------------------------------------
    logging_group = parser.add_argument_group("Logging Options")

    logging_group.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Logging level (default: ASSESSMENT_LOG_LEVEL or WARNING)",
    )

    logging_group.add_argument(
        "--log-format",
        type=str,
        choices=["json", "text"],
        default=None,
        help="Logging format (default: ASSESSMENT_LOG_FORMAT or json)",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version="%(prog)s 1.0.0",
    )

    return parser


# ============================================================
# CLI VALIDATION
# ============================================================

def validate_args(args: argparse.Namespace) -> List[str]:
    """
    Validate CLI arguments.

    Returns:
        List of validation errors
    """
    errors = []

    if not Path(args.snapshot).is_file():
        errors.append(f"snapshot file not found: {args.snapshot}")

    if args.interval is not None and args.interval <= 0:
        errors.append("--interval must be positive")

    return errors


# ============================================================
# CLI CONFIGURATION BUILDER
# ============================================================

def build_config(args: argparse.Namespace) -> OrchestratorConfig:
    """
    Build orchestrator configuration from the environment and CLI arguments.

    CLI arguments take precedence over environment variables.
    """
    config = OrchestratorConfig.from_env()

    if args.sequential:
        config.concurrent = False
    if args.interval is not None:
        config.refresh_interval_seconds = args.interval
    config.log_level = args.log_level or os.getenv("ASSESSMENT_LOG_LEVEL", "WARNING")
    if args.log_format:
        config.log_format = args.log_format

    return config


# ============================================================
# OUTPUT
# ============================================================

def load_payload(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def render(orchestrator: AssessmentOrchestrator, output: str) -> str:
    """Render the published slots as text or JSON."""
    slots = orchestrator.slots

    if output == "json":
        return json.dumps(
            {domain.value: slot.to_dict() for domain, slot in slots.items()},
            indent=2,
        )

    lines = []
    if all(slot.has_result for slot in slots.values()):
        latest = orchestrator.latest_snapshot
        report = AssessmentReport(
            energy_flow=slots[AssessmentDomain.ENERGY_FLOW].result,
            climate_score=slots[AssessmentDomain.CLIMATE_SCORE].result,
            vulnerability=slots[AssessmentDomain.VULNERABILITY].result,
            resilience=slots[AssessmentDomain.RESILIENCE].result,
            snapshot_version=latest.version if latest else 0,
            engine_version=orchestrator.engine.config.engine_version,
        )
        lines.append(format_assessment_summary(report))

    for domain, slot in slots.items():
        if slot.is_degraded:
            suffix = " (showing stale result)" if slot.stale else ""
            lines.append(f"[{slot.status.value.upper()}] {domain.value}: {slot.error}{suffix}")

    return "\n".join(lines)


# ============================================================
# FILE WATCHER
# ============================================================

class SnapshotFileWatcher:
    """Ingests the snapshot file whenever its modification time changes."""

    def __init__(self, path: Path, orchestrator: AssessmentOrchestrator, output: str):
        self._path = path
        self._orchestrator = orchestrator
        self._output = output
        self._last_mtime: Optional[float] = None

    async def check(self) -> bool:
        """
        Returns:
            True if the file changed and was re-assessed
        """
        mtime = self._path.stat().st_mtime
        if mtime == self._last_mtime:
            return False
        self._last_mtime = mtime

        try:
            payload = load_payload(self._path)
        except json.JSONDecodeError as e:
            await self._orchestrator.reject(f"Snapshot file is not valid JSON: {e}")
        else:
            await self._orchestrator.ingest(payload)
        print(render(self._orchestrator, self._output), flush=True)
        return True


# ============================================================
# MAIN ENTRY POINT
# ============================================================

async def async_main(args: argparse.Namespace) -> int:
    """
    Async main entry point.

    Returns:
        Exit code
    """
    config = build_config(args)
    orchestrator = create_orchestrator(config=config, log_stream=sys.stderr)
    path = Path(args.snapshot)

    if not args.watch:
        try:
            payload = load_payload(path)
        except (OSError, json.JSONDecodeError) as e:
            print(f"Error: cannot read snapshot: {e}", file=sys.stderr)
            return 1

        result = await orchestrator.ingest(payload)
        print(render(orchestrator, args.output))
        return 0 if result is not None and result.success else 1

    watcher = SnapshotFileWatcher(path, orchestrator, args.output)
    scheduler = RefreshScheduler(watcher.check, config.refresh_interval_seconds)
    scheduler.start()
    try:
        await asyncio.Event().wait()
    finally:
        await scheduler.stop()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Command line arguments (default: sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    errors = validate_args(args)
    if errors:
        for error in errors:
            print(f"Error: {error}", file=sys.stderr)
        return 1

    try:
        return asyncio.run(async_main(args))
    except KeyboardInterrupt:
        return 130


# ============================================================
# MODULE EXECUTION
# ============================================================

if __name__ == "__main__":
    sys.exit(main())
