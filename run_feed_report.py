#!/usr/bin/env python3
"""
Generate a community feed report.

Loads a few pages of approved posts from Firestore, scores them and writes a
summary (status breakdown, engagement, trending posts, top hashtags) to the
console and to a JSON log.

Usage:
    python run_feed_report.py --pages 3 --logs-dir ./logs
"""

import argparse
import asyncio
import logging
import sys

from sonhub.config import Settings, configure_logging
from sonhub.errors import FetchPageError
from sonhub.output_generation.report_generator import FeedReportGenerator
from sonhub.services import build_services

logger = logging.getLogger(__name__)


async def run(args, settings: Settings) -> int:
    services = build_services(settings)
    feed = services.feed

    try:
        await feed.load_initial()
        for _ in range(args.pages - 1):
            if not feed.has_next_page:
                break
            await feed.load_next()

        logger.info(f"Loaded {len(feed.posts)} posts across up to {args.pages} pages")

        generator = FeedReportGenerator(args.logs_dir)
        df = generator.build_frame(feed.posts)
        summary = generator.generate_summary_stats(df, top_n=args.top)
        hashtags = generator.top_hashtags(df, n=args.top)

        generator.print_console_summary(summary, hashtags)
        log_path = generator.write_json_log(summary, hashtags)
        print(f"\nReport written to {log_path}")
        return 0

    finally:
        await services.close()


def main():
    """Main entry point for the feed report."""
    parser = argparse.ArgumentParser(description='Generate a community feed report')
    parser.add_argument(
        '--pages',
        type=int,
        default=3,
        help='Number of feed pages to load'
    )
    parser.add_argument(
        '--logs-dir',
        type=str,
        default='logs',
        help='Directory to write the JSON report to'
    )
    parser.add_argument(
        '--top',
        type=int,
        default=5,
        help='Number of top posts and hashtags to include'
    )

    args = parser.parse_args()
    if args.pages < 1:
        parser.error('--pages must be at least 1')

    settings = Settings.from_env()
    configure_logging(settings.log_level)

    try:
        sys.exit(asyncio.run(run(args, settings)))
    except FetchPageError as e:
        logger.error(f"Feed report failed: {e}")
        sys.exit(1)
    except ConnectionError as e:
        logger.error(f"Could not connect to Firestore: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
