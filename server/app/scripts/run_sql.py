from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from app.core.baas import BaaSError, ManagementClient


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Execute SQL through the management API.")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--file", type=Path, help="Path to a .sql file")
    source.add_argument("--query", help="Inline SQL")
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.WARNING)

    if args.file:
        if not args.file.is_file():
            print(f"❌ SQL file not found: {args.file}")
            return 1
        query = args.file.read_text(encoding="utf-8")
    else:
        query = args.query

    if not query.strip():
        print("❌ Nothing to execute")
        return 1

    try:
        client = ManagementClient.from_settings()
        print(f"🔄 Executing SQL on project {client.project_ref}...")
        rows = client.run_sql(query)
    except BaaSError as exc:
        print(f"❌ {exc.message}")
        return 1

    print("✅ SQL executed successfully")
    if rows:
        print(json.dumps(rows, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
