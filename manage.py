#!/usr/bin/env python3
"""
Admin command line utility.
Generates the admin password hash, provisions tables and buckets, and runs
the one-time JSON migration without going through the HTTP API.
"""
import asyncio
import getpass
import sys
from pathlib import Path

from mcoj_api.config import settings
from mcoj_api.database import AsyncSessionLocal, close_db, engine
from mcoj_api.dependencies import build_blob_store
from mcoj_api.services import migration, provisioning
from mcoj_api.utils.auth import hash_password, verify_password

USAGE = """Usage:
  python manage.py --hash-password          - Generate ADMIN_PASSWORD_HASH
  python manage.py --verify-password <hash> - Test a password against a hash
  python manage.py --setup                  - Create missing tables and buckets
  python manage.py --check                  - Report missing tables and buckets
  python manage.py --migrate                - Import the legacy JSON data files
"""


def prompt_new_password() -> int:
    print("This will generate a bcrypt hash for your admin password.")
    print("Copy the output to your .env file as ADMIN_PASSWORD_HASH")
    print()

    password = getpass.getpass("Enter admin password: ")
    if not password:
        print("\n❌ Error: Password cannot be empty")
        return 1

    if password != getpass.getpass("Confirm password: "):
        print("\n❌ Error: Passwords do not match")
        return 1

    print("\n✅ Success! Copy this line to your .env file:\n")
    print(f"ADMIN_PASSWORD_HASH={hash_password(password)}")
    print()
    print("⚠️  Keep this hash secret and never commit it to version control!")
    return 0


def check_password(hash_value: str) -> int:
    password = getpass.getpass("Enter password to test: ")
    if verify_password(password, hash_value):
        print("✅ Password matches the hash")
        return 0
    print("❌ Password does not match the hash")
    return 1


async def setup() -> int:
    blobs = build_blob_store()
    try:
        tables = await provisioning.provision_schema()
        print(f"Tables created: {', '.join(tables['created']) or 'none'}")
        print(f"Tables already present: {', '.join(tables['existing']) or 'none'}")

        buckets = await provisioning.ensure_buckets(blobs)
        print(f"Buckets created: {', '.join(buckets['created']) or 'none'}")
        print(f"Buckets already present: {', '.join(buckets['existing']) or 'none'}")
        if buckets["failed"]:
            print(f"❌ Buckets that could not be created: {', '.join(buckets['failed'])}")
            return 1
    finally:
        await close_db()

    print("✅ Setup complete")
    return 0


async def check() -> int:
    blobs = build_blob_store()
    try:
        tables = await provisioning.check_tables(engine)
        buckets = await provisioning.check_buckets(blobs)
    finally:
        await close_db()

    print(f"Missing tables: {', '.join(tables['missing']) or 'none'}")
    print(f"Missing buckets: {', '.join(buckets['missing']) or 'none'}")
    return 0 if tables["allExist"] and buckets["allExist"] else 1


async def migrate() -> int:
    blobs = build_blob_store()
    try:
        async with AsyncSessionLocal() as db:
            result = await migration.migrate_all(
                db,
                blobs,
                Path(settings.MIGRATION_DATA_DIR),
                Path(settings.MIGRATION_PUBLIC_DIR),
                bind=engine,
            )
    finally:
        await close_db()

    if not result["success"] and "error" in result:
        print(f"❌ Migration aborted: {result['error']}")
        return 1

    for part in ("gallery", "events", "videos"):
        outcome = result["results"][part]
        if not outcome["success"]:
            print(f"❌ {part}: {outcome['error']}")
            continue
        status = "skipped (no JSON file)" if outcome.get("skipped") else f"{outcome['migrated']} records"
        print(f"✅ {part}: {status}")
        for warning in outcome["warnings"]:
            print(f"   ⚠️  {warning}")

    return 0 if result["success"] else 1


def main() -> int:
    if len(sys.argv) < 2:
        print(USAGE)
        return 1

    command = sys.argv[1]
    if command == "--hash-password":
        return prompt_new_password()
    if command == "--verify-password" and len(sys.argv) == 3:
        return check_password(sys.argv[2])
    if command == "--setup":
        return asyncio.run(setup())
    if command == "--check":
        return asyncio.run(check())
    if command == "--migrate":
        return asyncio.run(migrate())

    print(USAGE)
    return 1


if __name__ == "__main__":
    sys.exit(main())
