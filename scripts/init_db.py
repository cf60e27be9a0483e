"""Create the SQLite report table (STORE_BACKEND=sqlite).

    python scripts/init_db.py [--db-path reports.sqlite]
"""

import argparse
from dotenv import load_dotenv
from site_report.config import get_settings
from site_report.log import setup_logging, get_logger
from site_report.store.db import init_db

if __name__ == "__main__":
    load_dotenv()
    setup_logging()
    logger = get_logger("init_db")

    parser = argparse.ArgumentParser(description="Initialize the report database")
    parser.add_argument("--db-path", default=None, help="Defaults to DB_PATH from the environment")
    args = parser.parse_args()

    db_path = args.db_path or get_settings().DB_PATH
    logger.info(f"Initializing report database at {db_path}...")
    init_db(db_path)
    logger.info("Database initialized.")
