"""``python -m stockcrawler``: run the scheduler, or a single job once."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys

from stockcrawler.app import DEFAULT_JOBS, Crawler
from stockcrawler.config import load_config
from stockcrawler.errors import CrawlerError
from stockcrawler.log import configure_logging

logger = logging.getLogger("stockcrawler")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="stockcrawler", description="Taiwan stock data crawler")
    parser.add_argument("--env-file", default=None, help="Path to a .env file")
    parser.add_argument("--config", default=None, help="Path to a JSON config file")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    parser.add_argument(
        "--once",
        metavar="JOB_ID",
        choices=[job_id for _, job_id, _ in DEFAULT_JOBS],
        help="Run one job immediately and exit",
    )
    return parser


async def _serve(crawler: Crawler) -> None:
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, crawler.scheduler.request_stop)
        except NotImplementedError:
            # Windows event loops; KeyboardInterrupt still ends the process
            pass
    await crawler.serve()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = load_config(env_path=args.env_file, config_path=args.config)
        configure_logging(args.log_level or config.log_level, config.log_dir, config.log_name)
        crawler = Crawler(config)
        if args.once:
            asyncio.run(crawler.run_once(args.once))
        else:
            asyncio.run(_serve(crawler))
    except CrawlerError as exc:
        logger.critical("stockcrawler stopped: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
