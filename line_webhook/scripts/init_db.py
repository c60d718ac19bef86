"""
Create the line_webhook_events table.

Run with: python -m line_webhook.scripts.init_db
"""
import asyncio

from line_webhook.core.config import get_settings
from line_webhook.core.logging import setup_logging
from line_webhook.db.session import close_db, init_db


async def main():
    setup_logging(get_settings().LOG_LEVEL)
    try:
        await init_db()
    finally:
        await close_db()


if __name__ == "__main__":
    asyncio.run(main())
