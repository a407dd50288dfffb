# meatshare/db/init_db.py
from __future__ import annotations

import logging

from sqlalchemy.engine import Engine

from meatshare.db import models  # noqa: F401  (registers tables on Base)
from meatshare.db.core import Base, engine

logger = logging.getLogger(__name__)


def init_db(bind: Engine | None = None) -> None:
    """
    Create every table the service uses.

    CREATE TABLE IF NOT EXISTS semantics: running it against an existing
    database only adds the missing tables and never drops anything.
    """
    target = bind or engine
    Base.metadata.create_all(bind=target)
    logger.info("tables ensured on %s", target.url)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_db()
