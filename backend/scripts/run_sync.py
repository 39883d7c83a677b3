#!/usr/bin/env python
"""Run a catalog sync from the command line.

Prints the run summary and exits 0 when the run completed, 1 when it failed
or another run holds the sync lock.

Usage:
    python -m scripts.run_sync full
    python -m scripts.run_sync incremental
"""

import argparse
import sys
import time

from database import get_session_local
from integrations.magento_client import MagentoClient
from logging_config import setup_logging
from services.exceptions import SyncAlreadyRunningError
from services.sync_service import FULL, INCREMENTAL, SyncService
from services.sync_types import SyncResult


def print_summary(result: SyncResult, elapsed: float) -> None:
    print("-" * 60)
    print(f"Sync {result.sync_type}: {result.status} in {elapsed:.1f}s")
    print(f"Log id: {result.sync_log_id}")
    for name, count in result.stats.to_dict().items():
        print(f"  {name:<16}{count:>8}")
    if result.error_message:
        print(f"Error: {result.error_message}")


def main(argv: list[str] | None = None) -> None:
    """Entry point: parse args and run the requested sync."""
    parser = argparse.ArgumentParser(description="Sync the local catalog from Magento.")
    parser.add_argument("mode", choices=[FULL, INCREMENTAL], help="Sync mode")
    args = parser.parse_args(argv)

    setup_logging()

    client = MagentoClient()
    if not client.is_configured():
        print("Error: MAGENTO_BASE_URL and MAGENTO_ACCESS_TOKEN must be configured")
        sys.exit(1)

    service = SyncService(client=client)
    SessionLocal = get_session_local()
    db = SessionLocal()
    start = time.time()
    try:
        if args.mode == FULL:
            result = service.run_full_sync(db)
        else:
            result = service.run_incremental_sync(db)
    except SyncAlreadyRunningError as e:
        print(f"Error: {e}")
        sys.exit(1)
    finally:
        db.close()
        client.close()

    print_summary(result, time.time() - start)
    sys.exit(0 if result.succeeded else 1)


if __name__ == "__main__":
    main()
