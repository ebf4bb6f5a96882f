#!/usr/bin/env python3
"""
Unfeature stories whose paid featured period has ended
Meant for a daily cron / scheduled job

Usage:
    python scripts/maintenance/expire_featured_stories.py
"""
import sys
import logging
from pathlib import Path

from dotenv import load_dotenv

BACKEND_DIR = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(BACKEND_DIR))
load_dotenv(BACKEND_DIR / '.env')

from innovates.services.payment_service import PaymentService  # noqa: E402

logging.basicConfig(level=logging.INFO, format='%(message)s')
logger = logging.getLogger(__name__)


def main():
    result = PaymentService().expire_featured_stories()
    if result['expired_count']:
        logger.info(f"✅ Expired {result['expired_count']} featured stories: {', '.join(result['submission_ids'])}")
    else:
        logger.info("No featured stories to expire")


if __name__ == "__main__":
    main()
