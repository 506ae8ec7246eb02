from __future__ import annotations

import argparse
import logging
import sys

from app.core.config import Settings
from app.services.diagnostics import check_environment


def _mask(value: str | None) -> str:
    if not value:
        return "(not set)"
    if len(value) <= 12:
        return "*" * len(value)
    return f"{value[:6]}...{value[-4:]}"


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Check backend environment configuration.")
    parser.add_argument("--show-claims", action="store_true", help="Print decoded key claims")
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.WARNING)

    config = Settings()
    report = check_environment(config)

    print("🔄 Checking environment configuration...")
    for name, present in report.present.items():
        marker = "✅" if present else "❌"
        value = getattr(config, name)
        shown = value if name == "SUPABASE_URL" else _mask(value)
        print(f"{marker} {name}: {shown}")

    if args.show_claims:
        for name, claims in report.claims.items():
            print(f"   {name} claims: role={claims.get('role')} ref={claims.get('ref')} exp={claims.get('exp')}")

    for warning in report.warnings:
        print(f"⚠️  {warning}")
    for error in report.errors:
        print(f"❌ {error}")

    if report.ok:
        print("✅ Environment configuration looks good")
        return 0
    print("❌ Environment configuration has errors")
    return 1


if __name__ == "__main__":
    sys.exit(main())
