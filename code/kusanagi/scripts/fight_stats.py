import argparse
import asyncio
import contextlib
import logging
import sys
from collections.abc import Awaitable
from pathlib import Path
from typing import TypeVar

from kusanagi.analysis.client import LogAnalysisClient
from kusanagi.analysis.definitions import DefinitionsLoadError, load_definitions_dir
from kusanagi.analysis.discord_format import format_report_summary
from kusanagi.analysis.errors import AnalysisError
from kusanagi.config import get_settings
from kusanagi.fflogs.client import FFLogsClient
from kusanagi.fflogs.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

T = TypeVar("T")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Get statistics for progression on a fight in an FFLogs report"
        ),
    )
    parser.add_argument("report", help="FFLogs report code or URL")
    parser.add_argument("fight", help="Fight name, e.g. 'The Epic of Alexander'")
    parser.add_argument(
        "--definitions-dir", type=Path, default=None,
        help="Directory of phase definition TOML files (default from settings)",
    )
    return parser.parse_args(argv)


async def with_heartbeat(
    work: Awaitable[T], interval: float, message: str = "Still analysing...",
) -> T:
    """Await work, logging a liveness message every interval seconds until it finishes."""
    task = asyncio.ensure_future(work)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=interval)
            if done:
                return task.result()
            logger.info(message)
    finally:
        if not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task


async def run(
    report: str, fight: str, *, definitions_dir: Path | None = None,
) -> str:
    """Analyse a report and return the rendered summary.

    Raises:
        AnalysisError: with a message suitable for showing to the user.
    """
    settings = get_settings()
    definitions = load_definitions_dir(
        definitions_dir or settings.analysis.definitions_dir,
    )
    rate_limiter = RateLimiter(
        max_calls=settings.rate_limit.max_calls,
        period_seconds=settings.rate_limit.period_seconds,
    )
    async with FFLogsClient(
        settings.fflogs.get_api_key(),
        rate_limiter,
        api_url=settings.fflogs.api_url,
        timeout=settings.fflogs.timeout,
    ) as fflogs:
        analysis_client = LogAnalysisClient(fflogs, definitions)
        summary = await with_heartbeat(
            analysis_client.analyse(report, fight),
            settings.analysis.heartbeat_interval_seconds,
        )
    return format_report_summary(summary)


def main() -> None:
    args = parse_args()
    settings = get_settings()
    logging.basicConfig(level=logging.DEBUG if settings.debug else settings.log_level)
    logger.debug(
        "Got request to fetch %s fights from report %s", args.fight, args.report,
    )
    try:
        output = asyncio.run(run(
            args.report, args.fight, definitions_dir=args.definitions_dir,
        ))
    except AnalysisError as exc:
        logger.debug("Analysis of report %s failed: %r", args.report, exc)
        print(f"Uh-oh, something went wrong:\n{exc}")
        sys.exit(1)
    except DefinitionsLoadError as exc:
        print(f"Could not load phase definitions: {exc}", file=sys.stderr)
        sys.exit(2)
    print(output)


if __name__ == "__main__":
    main()
