#!/usr/bin/env python3
"""
Create the America Innovates tables
Runs Base.metadata.create_all against DATABASE_URL; existing tables are left alone

Usage:
    python scripts/maintenance/init_db.py
"""
import sys
import logging
from pathlib import Path

from dotenv import load_dotenv

BACKEND_DIR = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(BACKEND_DIR))
load_dotenv(BACKEND_DIR / '.env')

from innovates.core.database import Base, get_engine  # noqa: E402
import innovates.models  # noqa: E402,F401  registers the tables on Base

logging.basicConfig(level=logging.INFO, format='%(message)s')
logger = logging.getLogger(__name__)


def main():
    logger.info("=" * 60)
    logger.info("AMERICA INNOVATES SCHEMA")
    logger.info("=" * 60)

    engine = get_engine()
    Base.metadata.create_all(engine)

    for table in sorted(Base.metadata.tables):
        logger.info(f"  ✓ {table}")
    logger.info(f"✅ {len(Base.metadata.tables)} tables ready")


if __name__ == "__main__":
    main()
