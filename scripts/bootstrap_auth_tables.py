#!/usr/bin/env python3
"""
Create the auth tables in Snowflake.

The coaching views and tables (sessions, goals, wellness logs, ...) are
owned by the data platform. The tables this service owns itself are
created here: identities, auth sessions and usage limits.

Optionally creates a first coach account with an explicit role claim.

Usage:
    python scripts/bootstrap_auth_tables.py
    python scripts/bootstrap_auth_tables.py --dry-run
    python scripts/bootstrap_auth_tables.py --coach-email head@example.com --coach-password ...

Requires:
    - .env file with Snowflake credentials (see fitcoach/config/settings.py)
"""

import argparse
import sys
from pathlib import Path

# Make the fitcoach package importable when run from a checkout
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

DDL = [
    """
    CREATE TABLE IF NOT EXISTS identities (
        id VARCHAR(36) PRIMARY KEY,
        email VARCHAR(320) NOT NULL,
        login VARCHAR(320) NOT NULL UNIQUE,
        role VARCHAR(16),
        password_hash VARCHAR(256),
        full_name VARCHAR(200),
        phone VARCHAR(50),
        created_at TIMESTAMP_TZ NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS auth_sessions (
        token_hash VARCHAR(64) PRIMARY KEY,
        identity_id VARCHAR(36) NOT NULL,
        expires_at TIMESTAMP_TZ NOT NULL,
        created_at TIMESTAMP_TZ NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS usage_limits (
        limit_id VARCHAR(36) PRIMARY KEY,
        identifier VARCHAR(320) NOT NULL,
        identifier_type VARCHAR(16) NOT NULL,
        resource_type VARCHAR(64) NOT NULL,
        usage_count INTEGER NOT NULL,
        limit_max INTEGER NOT NULL,
        period_start TIMESTAMP_TZ NOT NULL,
        period_end TIMESTAMP_TZ NOT NULL,
        updated_at TIMESTAMP_TZ
    )
    """,
]


def create_tables(conn, dry_run: bool = False) -> bool:
    if dry_run:
        print("\n=== DRY RUN - No statements will be executed ===\n")
        for statement in DDL:
            print(statement.strip())
            print()
        return True

    cursor = conn.cursor()
    try:
        for statement in DDL:
            table = statement.split("EXISTS", 1)[1].split("(", 1)[0].strip()
            cursor.execute(statement)
            print(f"[OK] {table}")
        conn.commit()
        return True
    except Exception as e:
        print(f"[ERR] Could not create tables: {e}")
        return False
    finally:
        cursor.close()


def create_coach(conn, email: str, password: str) -> bool:
    from fitcoach.core.auth.models import Role
    from fitcoach.infrastructure.auth.service import AuthError, AuthService
    from fitcoach.infrastructure.snowflake.repositories import (
        IdentityRepository,
        UsageLimitRepository,
    )

    service = AuthService(IdentityRepository(conn), UsageLimitRepository(conn))
    try:
        identity = service.invite(email, Role.COACH)
        service.sign_up(email, password)
    except AuthError as e:
        print(f"[ERR] Could not create coach {email}: {e.message}")
        return False

    print(f"[OK] Coach account {identity.email} ({identity.id})")
    return True


def main():
    from fitcoach.config.settings import get_settings
    from fitcoach.infrastructure.snowflake.client import (
        SnowflakeConnectionError,
        create_snowflake_connection,
    )
    from fitcoach.infrastructure.snowflake.repositories import SnowflakeConfig

    parser = argparse.ArgumentParser(description="Create the FitCoach auth tables in Snowflake")
    parser.add_argument("--dry-run", action="store_true", help="Print the DDL, don't execute it")
    parser.add_argument("--coach-email", help="Also create a coach account with this email")
    parser.add_argument("--coach-password", help="Password for --coach-email")
    args = parser.parse_args()

    if bool(args.coach_email) != bool(args.coach_password):
        parser.error("--coach-email and --coach-password go together")

    settings = get_settings()

    if args.dry_run:
        create_tables(None, dry_run=True)
        sys.exit(0)

    missing = settings.validate_required_fields()
    if missing:
        print(f"ERROR: Missing configuration: {', '.join(missing)}")
        sys.exit(1)

    config = SnowflakeConfig(
        account=settings.snowflake_account,
        user=settings.snowflake_user,
        password=settings.snowflake_password or None,
        private_key_path=settings.snowflake_private_key_path,
        database=settings.snowflake_database,
        schema=settings.snowflake_schema,
        warehouse=settings.snowflake_warehouse,
        role=settings.snowflake_role,
    )

    try:
        print(f"Connecting to Snowflake account: {settings.snowflake_account or '(mock)'}")
        with create_snowflake_connection(config, mock_mode=settings.snowflake_mock_mode) as conn:
            success = create_tables(conn)
            if success and args.coach_email:
                success = create_coach(conn, args.coach_email, args.coach_password)
    except SnowflakeConnectionError as e:
        print(f"ERROR connecting to Snowflake: {e}")
        sys.exit(1)

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
