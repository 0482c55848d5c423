"""
Drop and recreate every table, optionally seeding afterwards.

Usage (from todos_backend/):
    python -m scripts.reset [--seed]
"""
import argparse
import logging

from sqlalchemy.engine import Engine

from src.db.db import create_db_engine, create_session_factory, drop_db, init_db
from scripts.seed import seed

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger("reset")


# PUBLIC_INTERFACE
def reset(engine: Engine, with_seed: bool = False) -> None:
    """Drop all tables, recreate them empty and optionally load the sample data."""
    logger.info("Dropping tables")
    drop_db(engine)
    logger.info("Creating tables")
    init_db(engine)
    if with_seed:
        seed(create_session_factory(engine))
    logger.info("Database reset complete")


def main():
    parser = argparse.ArgumentParser(description="Drop and recreate the database tables")
    parser.add_argument("--seed", action="store_true", help="seed sample data after the reset")
    args = parser.parse_args()

    reset(create_db_engine(), with_seed=args.seed)


if __name__ == "__main__":
    main()
