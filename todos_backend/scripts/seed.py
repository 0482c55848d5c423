"""
Fill the database with sample users and todos.

Usage (from todos_backend/):
    python -m scripts.seed [--users 10] [--todos 10]

Every seeded user has the password "password123".
"""
import argparse
import logging

from src.db import queries
from src.db.db import create_db_engine, create_session_factory, init_db

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger("seed")

SEED_PASSWORD = "password123"


# PUBLIC_INTERFACE
def seed(session_factory, users: int = 10, todos_per_user: int = 10) -> None:
    """Insert `users` users with `todos_per_user` todos each."""
    with session_factory() as db:
        for n in range(1, users + 1):
            user_id = queries.insert_user(db, f"user{n}@example.com", SEED_PASSWORD, age=20 + n % 50)
            for t in range(1, todos_per_user + 1):
                queries.insert_todo(
                    db,
                    user_id,
                    title=f"Todo {t} for user {n}",
                    description=f"Sample todo number {t}",
                    completed=t % 3 == 0,
                )
    logger.info(f"Seeded {users} users with {todos_per_user} todos each")


def main():
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--users", type=int, default=10)
    parser.add_argument("--todos", type=int, default=10)
    args = parser.parse_args()

    engine = create_db_engine()
    init_db(engine)
    seed(create_session_factory(engine), args.users, args.todos)


if __name__ == "__main__":
    main()
