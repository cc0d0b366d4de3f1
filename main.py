from __future__ import annotations

import datetime

from loguru import logger

from giftdraw.core.config import load_settings
from giftdraw.core.logging import setup_logging
from giftdraw.db import get_session, init_engine
from giftdraw.services import lifecycle


def main() -> int:
    settings = load_settings()
    setup_logging(settings.log_level, settings.log_path)
    init_engine(settings.database_url)

    logger.info("sweep starting...")
    with get_session() as session:
        completed = lifecycle.complete_elapsed_events(session, datetime.date.today())
    logger.info("sweep finished, {count} events completed", count=completed)
    return completed


if __name__ == "__main__":
    main()
