from __future__ import annotations

import argparse
import logging
import sys

from sqlalchemy.exc import SQLAlchemyError

from app.core.db import session_scope
from app.services.diagnostics import rls_policies, super_admin_issues, table_counts
from app.services.reconciliation import sync_status


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Report table counts, sync status and access policies.")
    parser.add_argument("--policies", action="store_true", help="List row-level security policies")
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.WARNING)

    print("🔄 Checking database...")
    try:
        with session_scope() as db:
            counts = table_counts(db)
            for table, count in counts.items():
                if count is None:
                    print(f"❌ {table}: not accessible")
                else:
                    print(f"✅ {table}: {count} rows")

            status = sync_status(db)
            print(
                f"📊 {status['members_with_user_id']} of {status['members']} members linked to a profile, "
                f"{status['profiles_without_member']} profiles without a member"
            )
            if status["profiles_without_member"]:
                print("⚠️  Run sync_members to create the missing member records")

            if args.policies:
                policies = rls_policies(db)
                if not policies:
                    print("⚠️  No row-level security policies found")
                for policy in policies:
                    print(f"   {policy['tablename']}: {policy['policyname']} ({policy['cmd']})")

            issues = super_admin_issues(db)
            for issue in issues:
                print(f"⚠️  {issue}")
    except SQLAlchemyError as exc:
        print(f"❌ Database check failed: {exc}")
        return 1

    if any(count is None for count in counts.values()):
        return 1
    print("✅ Database check complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
