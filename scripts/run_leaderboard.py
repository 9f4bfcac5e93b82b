"""Run the leaderboard pass from cron/systemd and post it to Discord.

The scheduled run is the only one that should persist ratings and ranks, so
"since last run" deltas and rank changes are measured against it::

    # Weekly update (persists and posts)
    python -m scripts.run_leaderboard

    # Preview without touching the stored baseline or Discord
    python -m scripts.run_leaderboard --dry-run --no-publish
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from irlink.core.config import get_settings
from irlink.core.logging import configure_logging
from irlink.dependencies.clients import get_leaderboard_service

EXIT_OK = 0
EXIT_PUBLISH_FAILED = 4

logger = logging.getLogger("scripts.run_leaderboard")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Refresh linked drivers' iRating, rank them and post the leaderboard."
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Compute standings without saving ratings, deltas or ranks.",
    )
    parser.add_argument(
        "--no-publish",
        action="store_true",
        help="Print the leaderboard instead of posting it to Discord.",
    )
    return parser


async def _run(*, persist: bool, publish: bool) -> int:
    service = get_leaderboard_service()
    result = await service.run(persist=persist)

    if not publish:
        print(service.render(result))
        for event in result.events:
            print(event.message)
        return EXIT_OK

    if not result.standings:
        logger.info("No linked drivers; nothing to post")
        return EXIT_OK
    if not await service.publish(result):
        return EXIT_PUBLISH_FAILED
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging(get_settings().log_level)
    return asyncio.run(_run(persist=not args.dry_run, publish=not args.no_publish))


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
