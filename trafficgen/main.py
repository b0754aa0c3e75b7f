"""Command-line entry point.

Usage:
    trafficgen -f scenario.yml -c 100
    trafficgen -f scenario.yml --output results/report.json --json-logs
"""

from __future__ import annotations

import argparse
import asyncio
import json
import signal
import sys
from pathlib import Path

import structlog

from trafficgen.config import Settings
from trafficgen.engine.supervisor import ScenarioSupervisor
from trafficgen.errors import ScenarioFileError
from trafficgen.scenarios.loader import load_scenario_file
from trafficgen.scenarios.models import ScenarioReport
from trafficgen.shared.logging import setup_logging

logger = structlog.get_logger()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Paced HTTP GET traffic generator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("-f", "--file", dest="scenario_file", help="Scenario YAML file")
    parser.add_argument(
        "-c",
        "--concurrency",
        type=int,
        dest="worker_count",
        help="HTTP request concurrency per scenario",
    )
    parser.add_argument("--log-level", help="Logging level (default: INFO)")
    parser.add_argument(
        "--json-logs",
        action="store_true",
        default=None,
        help="Emit logs as JSON lines",
    )
    parser.add_argument("--output", type=str, default=None, help="Write JSON reports to this path")
    return parser


def settings_from_args(args: argparse.Namespace) -> Settings:
    """Environment-backed settings with CLI flags taking precedence."""
    overrides = {
        "scenario_file": args.scenario_file,
        "worker_count": args.worker_count,
        "log_level": args.log_level,
        "log_json": args.json_logs,
    }
    return Settings(**{k: v for k, v in overrides.items() if v is not None})


def install_stop_handlers(stop_event: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()

    def request_stop(signame: str) -> None:
        logger.warning("stop_requested", signal=signame)
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, request_stop, sig.name)
        except (NotImplementedError, RuntimeError):
            # Signal handlers are unavailable off the main thread and on Windows
            logger.debug("signal_handler_unavailable", signal=sig.name)


def log_reports(reports: dict[str, ScenarioReport]) -> None:
    logger.info("run_finished", scenarios=len(reports))
    for name in sorted(reports):
        report = reports[name]
        if report.error:
            logger.error("scenario_finished", scenario=name, error=report.error)
            continue
        logger.info(
            "scenario_finished",
            scenario=name,
            success=report.success,
            validation_failed=report.validation_failed,
            request_failed=report.request_failed,
        )


def write_reports(reports: dict[str, ScenarioReport], output: str) -> Path:
    path = Path(output)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {name: report.model_dump() for name, report in sorted(reports.items())}
    path.write_text(json.dumps(payload, indent=2))
    return path


async def async_main(settings: Settings, output: str | None = None) -> int:
    scenario_file = load_scenario_file(settings.scenario_file)

    stop_event = asyncio.Event()
    install_stop_handlers(stop_event)

    supervisor = ScenarioSupervisor(settings)
    reports = await supervisor.run(scenario_file.scenarios, stop_event, scenario_file.rejected)

    log_reports(reports)
    if output:
        path = write_reports(reports, output)
        logger.info("reports_written", path=str(path))

    return 1 if any(report.error for report in reports.values()) else 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = settings_from_args(args)
    setup_logging(settings.log_level, settings.log_json)

    try:
        return asyncio.run(async_main(settings, args.output))
    except ScenarioFileError as exc:
        logger.error("scenario_file_error", error=str(exc))
        return 1


if __name__ == "__main__":
    sys.exit(main())
