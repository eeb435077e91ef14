"""Create an account directly in the database (e.g. the first admin).

Usage:
  python scripts/create_user.py --name "Admin User" --email admin@example.com \
      --password '...' --role admin

NOTE: This is intended for local/dev and initial setup.
"""

import argparse
import asyncio

from dotenv import load_dotenv

from school_portal.config import get_settings
from school_portal.database import close_database, init_database, run_migrations
from school_portal.models.account import Role
from school_portal.models.auth import normalize_email
from school_portal.services.account_store import AccountStore
from school_portal.services.auth_service import AuthService
from school_portal.services.logging_service import configure_logging
from school_portal.services.token_service import TokenService


async def create_user(name: str, email: str, password: str, role: Role) -> None:
    await init_database()
    try:
        await run_migrations()
        auth_service = AuthService(AccountStore(), TokenService())
        account = await auth_service.create_account(
            name=name, email=normalize_email(email), password=password, role=role
        )
    finally:
        await close_database()

    print("Created user:")
    print(account.model_dump_json(by_alias=True, indent=2))


def main() -> None:
    load_dotenv()

    ap = argparse.ArgumentParser()
    ap.add_argument("--name", required=True)
    ap.add_argument("--email", required=True)
    ap.add_argument("--password", required=True)
    ap.add_argument("--role", choices=[r.value for r in Role], default=Role.STUDENT.value)
    args = ap.parse_args()

    configure_logging(get_settings().log_level)
    asyncio.run(create_user(args.name, args.email, args.password, Role(args.role)))


if __name__ == "__main__":
    main()
