#!/usr/bin/env python3
"""
Push locally saved burn records that never reached the central archive.

Usage:
    python scripts/sync_pending_burns.py --dry-run
    python scripts/sync_pending_burns.py --token <access token>
    python scripts/sync_pending_burns.py --email op@example.org   # password from BURNOPS_PASSWORD
"""
import sys
import os
import argparse

import anyio

# Add parent directory to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from burnops.logging import setup_logging
from burnops.db import init_db
from burnops.services.container import build_services
from burnops.auth.provider import AuthSessionInvalid, AuthUnavailable


async def run(args) -> int:
    init_db()
    services = build_services(online=True)
    pending = await anyio.to_thread.run_sync(services.store.query_unsynced_operations)
    print(f"Pending local records: {len(pending)}")
    for record in pending:
        print(f"  - {record.id}  {record.created_at.isoformat()}  {record.name}")

    if args.dry_run or not pending:
        return 0

    if args.token:
        services.session.adopt_token(args.token)
    elif args.email:
        password = os.getenv("BURNOPS_PASSWORD")
        if not password:
            print("BURNOPS_PASSWORD is not set")
            return 2
        try:
            await services.session.sign_in(args.email, password)
        except (AuthSessionInvalid, AuthUnavailable, ValueError) as e:
            print(f"Sign-in failed: {e}")
            return 2

    result = await services.coordinator.reconcile()
    if result.aborted:
        print(f"Sync aborted: {result.aborted}")
        return 1
    print(f"Synced: {len(result.synced)}  Failed: {len(result.failed)}  Skipped: {len(result.skipped)}")
    for burn_id in result.failed:
        print(f"  [FAILED] {burn_id}")
    return 1 if result.failed else 0


def main():
    parser = argparse.ArgumentParser(description="Sync pending local burn records to the central archive")
    parser.add_argument("--dry-run", action="store_true", help="Only list pending records")
    parser.add_argument("--token", help="Access token of the operator owning the records")
    parser.add_argument("--email", help="Sign in with this email (password from BURNOPS_PASSWORD)")
    args = parser.parse_args()

    setup_logging()
    return anyio.run(run, args)


if __name__ == "__main__":
    sys.exit(main())
