from __future__ import annotations

import argparse
import logging
import sys

from app.core.db import session_scope
from app.services.roles import (
    STATUS_ALREADY_SUPERADMIN,
    add_super_admin_by_email,
    list_super_admins,
    remove_super_admin,
)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="List, grant or revoke super admin rights.")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("list", help="List super admins")
    add = sub.add_parser("add", help="Grant super admin rights by email")
    add.add_argument("email")
    remove = sub.add_parser("remove", help="Revoke super admin rights by user id")
    remove.add_argument("user_id")
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.WARNING)

    with session_scope() as db:
        if args.command == "list":
            admins = list_super_admins(db)
            if not admins:
                print("⚠️  No super admins found")
                return 0
            print(f"📊 {len(admins)} super admin(s):")
            for admin in admins:
                print(f"   {admin['email']} ({admin['full_name'] or 'no name'}) {admin['user_id']}")
            return 0

        if args.command == "add":
            result = add_super_admin_by_email(db, args.email)
        else:
            result = remove_super_admin(db, args.user_id)

    marker = "✅" if result.success else "❌"
    if result.status == STATUS_ALREADY_SUPERADMIN:
        marker = "⚠️ "
    print(f"{marker} {result.message} [{result.status}]")
    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
