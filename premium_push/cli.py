"""
Run a premium check for one user from the command line.

Usage: python -m premium_push.cli user@example.com [--dry-run]
"""
import argparse
import asyncio
import sys
from datetime import datetime, timezone

from premium_push.config import configure_logging, get_settings
from premium_push.database.connection import close_mongo_connection, connect_to_mongo, get_database
from premium_push.utils.dependencies import build_notification_service
from premium_push.utils.errors import UserNotFoundError
from premium_push.utils.notifications import close_sender
from premium_push.utils.plan_cache import close_redis
from premium_push.utils.report_format import render_report


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Check premium access and send a test push to a user's devices")
    parser.add_argument("email", help="email of the user to check")
    parser.add_argument("--dry-run", action="store_true", help="evaluate and resolve devices without sending")
    parser.add_argument("--log-level", default=None, help="override LOG_LEVEL")
    return parser.parse_args(argv)


async def _run(email: str, dry_run: bool) -> int:
    await connect_to_mongo()
    try:
        service = build_notification_service(get_database(), get_settings())
        try:
            report = await service.run(email, datetime.now(timezone.utc), dry_run=dry_run)
        except UserNotFoundError as exc:
            print(str(exc), file=sys.stderr)
            return 1
        print(render_report(report))
        return 0
    finally:
        await close_sender()
        await close_redis()
        await close_mongo_connection()


def main(argv=None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)
    return asyncio.run(_run(args.email, args.dry_run))


if __name__ == "__main__":
    sys.exit(main())
