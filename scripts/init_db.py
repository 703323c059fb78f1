#!/usr/bin/env python3
"""
Database initialization script for AnswerScope.
Creates the record storage table and, when LOAD_DEMO_DATA=true, seeds the demo assignment.
"""

import logging
import os
import sys
from pathlib import Path

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from app.database.init_db import init_database  # noqa: E402

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


def main():
    """Initialize the database."""
    db_url = os.getenv("DB_URL", "sqlite:///./answerscope.db")
    logger.info(f"Initializing AnswerScope database: {db_url.split('@')[1] if '@' in db_url else db_url}")

    seed_demo = os.getenv("LOAD_DEMO_DATA", "false").lower() == "true"
    try:
        init_database(seed_demo=seed_demo)
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        sys.exit(1)

    logger.info("Database initialization completed")


if __name__ == "__main__":
    main()
