"""Create member records for registered users.

    python -m app.scripts.sync_members                # every profile without a member
    python -m app.scripts.sync_members --email a@b.c  # one user
    python -m app.scripts.sync_members --profile-id <uuid>
    python -m app.scripts.sync_members --full         # auth users -> profiles -> members
"""

from __future__ import annotations

import argparse
import logging
import sys

from app.core.baas import BaaSError, get_auth_gateway
from app.core.config import settings
from app.core.db import session_scope
from app.services.reconciliation import (
    manual_sync_profile,
    reconcile_all,
    sync_profiles_to_members,
    sync_specific_user,
)


def _print_single(result) -> int:
    marker = "✅" if result.success else "❌"
    print(f"{marker} {result.message}")
    return 0 if result.success else 1


def _print_bulk(result) -> int:
    marker = "✅" if result.success else "❌"
    print(f"{marker} {result.message}")
    for failure in result.validation_errors:
        print(f"⚠️  {failure.email}: {', '.join(failure.errors)}")
    for error in result.errors:
        print(f"❌ {error.email}: {error.error}")
    return 0 if result.success else 1


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Reconcile user profiles with member records.")
    target = parser.add_mutually_exclusive_group()
    target.add_argument("--email", help="Sync a single user by email")
    target.add_argument("--profile-id", help="Sync a single profile by id")
    target.add_argument("--full", action="store_true", help="Also create profiles for auth users and consolidate fields")
    parser.add_argument("--batch-size", type=int, default=settings.SYNC_BATCH_SIZE)
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    with session_scope() as db:
        if args.email:
            print(f"🔄 Syncing {args.email}...")
            return _print_single(sync_specific_user(db, args.email))

        if args.profile_id:
            print(f"🔄 Syncing profile {args.profile_id}...")
            return _print_single(manual_sync_profile(db, args.profile_id))

        if args.full:
            auth_users = None
            try:
                auth_users = get_auth_gateway().list_users()
                print(f"📊 Found {len(auth_users)} auth users")
            except BaaSError as exc:
                print(f"⚠️  Cannot list auth users ({exc.message}); reconciling existing profiles only")
            report = reconcile_all(db, auth_users=auth_users, batch_size=args.batch_size)
            print(f"✅ Profiles created: {report.profiles_created}")
            print(f"✅ Members linked to profiles: {report.members_linked}")
            code = _print_bulk(report.sync)
            if report.consolidation:
                print(f"✅ Members updated from profiles: {report.consolidation.updated}")
                for conflict in report.consolidation.conflicts:
                    print(f"⚠️  {conflict.email}: {'; '.join(conflict.conflicts)}")
            for error in report.errors:
                print(f"❌ {error}")
            return 1 if report.errors else code

        print("🔄 Syncing all profiles to members...")
        return _print_bulk(sync_profiles_to_members(db, batch_size=args.batch_size))


if __name__ == "__main__":
    sys.exit(main())
