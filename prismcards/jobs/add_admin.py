"""
Grant admin access to an email.

Adds the email to the admin list and the whitelist, promoting an existing
profile to unlimited. Run once to bootstrap the first administrator:

    python -m prismcards.jobs.add_admin owner@example.com
"""

import argparse
import asyncio
import logging

from prismcards.config import settings
from prismcards.db.database import Database
from prismcards.services.system_config import SystemConfigStore

logger = logging.getLogger(__name__)


async def add_admin(email: str, database: Database | None = None) -> list[str]:
    """
    Grant admin and whitelist status to an email.

    Returns the admin list after the change.
    """
    owns_database = database is None
    database = database or Database(settings.database_url, echo=settings.debug)

    try:
        await database.create_all()
        async with database.session() as session:
            config = await SystemConfigStore(session).add_admin(email)
            admins = list(config.admin_emails)
        logger.info("Admins: %s", ", ".join(admins))
        return admins
    finally:
        if owns_database:
            await database.dispose()


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Grant PrismCards admin access to an email")
    parser.add_argument("email", help="Email address to promote")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(add_admin(args.email))


if __name__ == "__main__":
    main()
