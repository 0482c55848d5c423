"""
Interactive shell with the app and the stores already imported.

Usage (from todos_backend/):
    python -m scripts.console

Preloaded names: app, queries, models, engine, db (an open session),
password_hasher, token_issuer.
"""
import code
import logging
from typing import Optional

from src.api.main import create_app
from src.auth.passwords import password_hasher
from src.db import models, queries
from src.db.db import init_db

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger("console")

BANNER = "todos backend console\nPreloaded: app, queries, models, engine, db, password_hasher, token_issuer"


# PUBLIC_INTERFACE
def build_namespace(database_url: Optional[str] = None) -> dict:
    """Names available inside the console; db is a session on the app's own engine."""
    app = create_app(database_url)
    init_db(app.state.engine)
    return {
        "app": app,
        "queries": queries,
        "models": models,
        "engine": app.state.engine,
        "db": app.state.session_factory(),
        "password_hasher": password_hasher,
        "token_issuer": app.state.token_issuer,
    }


def main():
    namespace = build_namespace()
    try:
        code.interact(banner=BANNER, local=namespace, exitmsg="")
    finally:
        namespace["db"].close()
        namespace["engine"].dispose()


if __name__ == "__main__":
    main()
