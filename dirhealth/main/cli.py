"""
Command Line Entry Point - Main Layer

``run`` executes one assessment and prints the report; ``serve`` starts
the HTTP API with uvicorn. Both share the settings and container used by
the FastAPI application.
"""

import argparse
import asyncio
import contextlib
import json
import signal
import sys
from typing import Dict, Optional, Sequence, TextIO, Tuple

from dirhealth import __version__
from dirhealth.application.dtos.health_dto import HealthRunDTO
from dirhealth.domain.entities.assessment import AssessmentRequest
from dirhealth.domain.entities.errors import (
    DiscoveryError,
    ThresholdConfigurationError,
)
from dirhealth.domain.entities.health import CheckCategory, HealthRun, HealthStatus
from dirhealth.main.config import AppSettings, get_settings
from dirhealth.main.container import init_container
from dirhealth.shared import (
    EnumOutputFormat,
    configure_logging,
    get_logger,
    update_logging_from_settings,
)

logger = get_logger(__name__)

EXIT_HEALTHY = 0
EXIT_WARNING = 1
EXIT_CRITICAL = 2
EXIT_ERROR = 3

_EXIT_CODES = {
    HealthStatus.HEALTHY: EXIT_HEALTHY,
    HealthStatus.WARNING: EXIT_WARNING,
    HealthStatus.UNKNOWN: EXIT_WARNING,
    HealthStatus.CRITICAL: EXIT_CRITICAL,
}

ThresholdArguments = Dict[CheckCategory, Dict[str, Tuple[Optional[float], ...]]]


def _bound(text: str) -> Optional[float]:
    text = text.strip()
    return float(text) if text else None


def parse_threshold(value: str) -> Tuple[CheckCategory, str, Tuple]:
    """
    Parse ``category.signal=warning:critical``; either bound may be empty.

    >>> parse_threshold("replication.latency_minutes=30:90")
    (<CheckCategory.REPLICATION: 'replication'>, 'latency_minutes', (30.0, 90.0))
    """
    try:
        name, bounds = value.split("=", 1)
        category, signal_name = name.split(".", 1)
        warning, critical = bounds.split(":", 1)
        return (
            CheckCategory(category.strip()),
            signal_name.strip(),
            (_bound(warning), _bound(critical)),
        )
    except ValueError as exc:
        raise argparse.ArgumentTypeError(
            f"invalid threshold '{value}', expected category.signal=warning:critical"
        ) from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dirhealth",
        description="Health assessment of directory service infrastructure",
    )
    parser.add_argument("--version", action="version", version=__version__)
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Run one assessment and print it")
    run.add_argument(
        "-t",
        "--target",
        dest="targets",
        action="append",
        help="Server to assess (repeatable); discovered when omitted",
    )
    run.add_argument(
        "-c",
        "--category",
        dest="categories",
        action="append",
        choices=[category.value for category in CheckCategory],
        help="Category to run (repeatable); all when omitted",
    )
    run.add_argument(
        "--threshold",
        dest="thresholds",
        action="append",
        type=parse_threshold,
        default=[],
        metavar="CATEGORY.SIGNAL=WARN:CRIT",
        help="Override one threshold pair (repeatable)",
    )
    run.add_argument(
        "--include-healthy",
        action="store_true",
        default=None,
        help="Report healthy results as well",
    )
    run.add_argument(
        "--extended",
        action="store_true",
        default=None,
        help="Attach raw detail to result data",
    )
    run.add_argument(
        "--concurrency", type=int, default=None, help="Targets assessed at once"
    )
    run.add_argument(
        "--format",
        choices=[output.value for output in EnumOutputFormat],
        default=EnumOutputFormat.TEXT.value,
        help="Report format",
    )

    serve = subparsers.add_parser("serve", help="Start the HTTP API")
    serve.add_argument("--host", default=None, help="Interface to bind")
    serve.add_argument("--port", type=int, default=None, help="Port to bind")
    serve.add_argument("--reload", action="store_true", help="Auto-reload on change")
    return parser


def build_request(
    args: argparse.Namespace,
    settings: AppSettings,
    cancel_event: Optional[asyncio.Event] = None,
) -> AssessmentRequest:
    overrides: ThresholdArguments = {}
    for category, signal_name, bounds in args.thresholds:
        overrides.setdefault(category, {})[signal_name] = bounds

    include_healthy = args.include_healthy
    if include_healthy is None:
        include_healthy = settings.assessment.include_healthy
    include_extended = args.extended
    if include_extended is None:
        include_extended = settings.assessment.include_extended

    return AssessmentRequest(
        targets=args.targets,
        categories=args.categories,
        include_healthy=include_healthy,
        include_extended=include_extended,
        threshold_overrides=overrides,
        max_concurrency=args.concurrency,
        cancel_event=cancel_event,
    )


def exit_code_for(run: HealthRun) -> int:
    return _EXIT_CODES[run.summary.overall_status]


def render_text(run: HealthRun, stream: TextIO) -> None:
    summary = run.summary
    stream.write(
        f"Overall status: {summary.overall_status.value.upper()} "
        f"(critical={summary.critical} warning={summary.warning} "
        f"healthy={summary.healthy} unknown={summary.unknown}, "
        f"targets={summary.target_count})\n"
    )
    if run.cancelled:
        stream.write("Run was cancelled; results are partial.\n")

    for category, results in run.by_category().items():
        stream.write(f"\n[{category.value}]\n")
        for result in results:
            stream.write(
                f"  {result.target}: {result.status.value.upper()} - "
                f"{result.message}\n"
            )
            for recommendation in result.recommendations:
                stream.write(f"      - {recommendation}\n")

    for failure in run.failures:
        stream.write(
            f"\nCheck failed: {failure.category.value} on {failure.target}: "
            f"{failure.error}\n"
        )


def render_json(run: HealthRun, stream: TextIO) -> None:
    payload = HealthRunDTO.from_domain(run).model_dump(mode="json")
    stream.write(json.dumps(payload, indent=2))
    stream.write("\n")


async def run_assessment(
    args: argparse.Namespace, settings: AppSettings, stream: TextIO
) -> int:
    container = init_container(settings)
    use_case = container.health_assessment_use_case()

    cancel_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    with contextlib.suppress(NotImplementedError):
        loop.add_signal_handler(signal.SIGINT, cancel_event.set)

    try:
        run = await use_case.execute(build_request(args, settings, cancel_event))
    except ThresholdConfigurationError as exc:
        for error in exc.errors:
            sys.stderr.write(f"error: {error}\n")
        return EXIT_ERROR
    except DiscoveryError as exc:
        sys.stderr.write(f"error: {exc.message}\n")
        return EXIT_ERROR
    finally:
        with contextlib.suppress(NotImplementedError):
            loop.remove_signal_handler(signal.SIGINT)

    if args.format == EnumOutputFormat.JSON.value:
        render_json(run, stream)
    else:
        render_text(run, stream)
    return exit_code_for(run)


def serve(args: argparse.Namespace, settings: AppSettings) -> int:
    import uvicorn

    uvicorn.run(
        "dirhealth.main.app:create_app",
        factory=True,
        host=args.host or settings.api.host,
        port=args.port or settings.api.port,
        reload=args.reload or settings.api.reload,
    )
    return EXIT_HEALTHY


def main(
    argv: Optional[Sequence[str]] = None, stream: Optional[TextIO] = None
) -> int:
    """Parse ``argv`` and dispatch; returns the process exit code."""
    args = build_parser().parse_args(argv)

    # Logs go to stderr; stdout carries the report
    configure_logging(stream=sys.stderr)
    settings = get_settings()
    update_logging_from_settings(settings, stream=sys.stderr)

    if args.command == "serve":
        return serve(args, settings)

    logger.debug("cli.run", targets=args.targets, categories=args.categories)
    return asyncio.run(run_assessment(args, settings, stream or sys.stdout))

