"""Schema management for the cardspend database.

    python -m cardspend.db.init create|drop|reset
"""

import asyncio
import re
import sys

import structlog

from cardspend.core.config import get_settings
from cardspend.db import base as db_base

# Registers every table on Base.metadata
from cardspend.db import models  # noqa: F401

logger = structlog.get_logger(__name__)

_CREDENTIALS = re.compile(r"(.*://)[^:/@]+:[^@]+(@.*)")


def sanitize_db_url(db_url: str) -> str:
    """Mask ``user:password`` in a database URL before it is logged or printed."""
    return _CREDENTIALS.sub(r"\1***:***\2", db_url)


async def create_tables() -> None:
    """Create missing tables; existing ones are left as they are."""
    async with db_base.engine.begin() as conn:
        await conn.run_sync(db_base.Base.metadata.create_all)
    logger.info("tables_created", database=sanitize_db_url(db_base.get_database_url()))


async def drop_tables() -> None:
    async with db_base.engine.begin() as conn:
        await conn.run_sync(db_base.Base.metadata.drop_all)
    logger.warning("tables_dropped", database=sanitize_db_url(db_base.get_database_url()))


async def reset_database() -> None:
    """Drop and recreate every table.

    Raises:
        RuntimeError: In the production environment
    """
    if get_settings().ENV == "production":
        raise RuntimeError("Refusing to reset the database in production")

    await drop_tables()
    await create_tables()
    await db_base.engine.dispose()


_COMMANDS = {"create": create_tables, "drop": drop_tables, "reset": reset_database}


def main(argv: list[str]) -> int:
    if len(argv) != 1 or argv[0] not in _COMMANDS:
        print(f"Usage: python -m cardspend.db.init [{'|'.join(_COMMANDS)}]")
        return 1

    command = argv[0]
    if command != "create":
        print(f"Target database: {sanitize_db_url(db_base.get_database_url())}")
        answer = input(f"'{command}' deletes every card usage, report and alert level. Type yes to continue: ")
        if answer.strip().lower() != "yes":
            print("Cancelled.")
            return 0

    asyncio.run(_COMMANDS[command]())
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
