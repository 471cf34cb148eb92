"""
Fetch and store every creative referenced by a client's ad insights in a date range.

Usage:
    python sync_creatives.py --client-id CLIENT --ad-account-id act_123 \
        --start-date 2025-01-01 --end-date 2025-01-31

The Meta access token is read from META_ACCESS_TOKEN (or --access-token).
"""
import argparse
import asyncio
import logging
import sys
from datetime import date, datetime

from creativesync.config import get_settings
from creativesync.database import SessionLocal
from creativesync.services.creatives import CreativesService


def parse_date(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise argparse.ArgumentTypeError(f"Dates must be in YYYY-MM-DD format: {value!r}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Fetch and save creatives for a date range")
    parser.add_argument("--client-id", required=True, help="Client whose ad insights reference the creatives")
    parser.add_argument("--ad-account-id", required=True, help="Meta ad account ID (e.g., act_123456)")
    parser.add_argument("--start-date", required=True, type=parse_date, help="YYYY-MM-DD")
    parser.add_argument("--end-date", required=True, type=parse_date, help="YYYY-MM-DD")
    parser.add_argument("--access-token", default=None, help="Meta access token (defaults to META_ACCESS_TOKEN)")
    return parser


async def run(args: argparse.Namespace) -> int:
    access_token = args.access_token or get_settings().meta_access_token
    if not access_token:
        print("❌ Meta access token not configured (set META_ACCESS_TOKEN or pass --access-token)")
        return 1

    db = SessionLocal()
    try:
        service = CreativesService(db)
        result = await service.fetch_and_save_for_date_range(
            args.client_id,
            args.ad_account_id,
            access_token,
            args.start_date,
            args.end_date,
        )
    finally:
        db.close()

    print(f"📦 Creatives found: {len(result.creative_ids)}")
    print(f"✅ Saved: {result.saved}")
    print(f"⚠️  Failed: {result.failed}")
    return 0 if result.failed == 0 else 2


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    args = build_parser().parse_args()
    if args.start_date > args.end_date:
        print("❌ --start-date must not be after --end-date")
        sys.exit(1)
    try:
        sys.exit(asyncio.run(run(args)))
    except Exception as e:
        print(f"❌ Error: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
