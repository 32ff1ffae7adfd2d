#!/usr/bin/env python3
"""
Download Bible chapters for offline reading.

This script fills the persistent chapter cache so the app can read the listed
books (or the whole Bible) without a network connection.

Usage:
    python run_bible_download.py --version kjv --books "Genesis,John" --delay 0.1
"""

import argparse
import asyncio
import logging
import sys

from sonhub.bible.books import all_books, validate_reference
from sonhub.config import Settings, configure_logging
from sonhub.errors import BibleReferenceError, StorageUnavailable
from sonhub.services import build_services

logger = logging.getLogger(__name__)


def print_progress(percent: int) -> None:
    print(f"\rDownload progress: {percent:3d}%", end="", flush=True)


async def run(args, settings: Settings) -> int:
    services = build_services(settings, with_feed=False)
    version = args.version or settings.bible_default_version

    try:
        if args.books:
            books = [validate_reference(name.strip(), 1) for name in args.books.split(',') if name.strip()]
        else:
            books = all_books(args.testament)

        logger.info(f"Downloading {len(books)} books ({version})")
        status = await services.bible.download_all(
            version=version,
            progress_callback=print_progress,
            delay_seconds=args.delay,
            books=books,
        )
        print()

        print(f"Downloaded: {status['downloaded']}  Already cached: {status['skipped']}  "
              f"Failed: {status['failed']}")
        if status['failed_chapters']:
            print("Failed chapters: " + ", ".join(status['failed_chapters']))

        size_kb = await services.bible.estimate_cache_size() / 1024
        print(f"Estimated cache size: {size_kb:.0f} KB")
        return 0 if status['is_fully_cached'] else 1

    finally:
        await services.close()


def main():
    """Main entry point for the offline download."""
    parser = argparse.ArgumentParser(description='Download Bible chapters for offline use')
    parser.add_argument(
        '--version',
        type=str,
        default=None,
        help='Translation to download (defaults to BIBLE_DEFAULT_VERSION)'
    )
    parser.add_argument(
        '--books',
        type=str,
        default=None,
        help='Comma-separated list of books (e.g., "Genesis,John"); all books when omitted'
    )
    parser.add_argument(
        '--testament',
        choices=['old', 'new'],
        default=None,
        help='Restrict a full download to one testament'
    )
    parser.add_argument(
        '--delay',
        type=float,
        default=0.1,
        help='Seconds to wait between chapter requests'
    )
    parser.add_argument(
        '--log-file',
        type=str,
        default='logs/bible_download.log',
        help='File to append log records to'
    )

    args = parser.parse_args()

    settings = Settings.from_env()
    configure_logging(settings.log_level, args.log_file)

    try:
        sys.exit(asyncio.run(run(args, settings)))
    except BibleReferenceError as e:
        logger.error(str(e))
        sys.exit(2)
    except StorageUnavailable as e:
        logger.error(f"Cannot download for offline use: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
