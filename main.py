import argparse
import logging
import sqlite3
import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from contextlib import asynccontextmanager
from starlette.exceptions import HTTPException

import sys
from pathlib import Path

# Add project root to path for package imports
base_dir = Path(__file__).parent
sys.path.insert(0, str(base_dir))

from db.database import init_db, get_conn
from db import Gateway
from config import load_config, get_config_value, CONFIG_DIR
from routes import (
    auth, bible, bonus, leaderboard, memory_items, records, reports, settings, spend, users,
)
from utils.auth import hash_password
from utils.errors import (
    AppError,
    app_exception_handler,
    generic_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

logger = logging.getLogger("wordpointe")


def configure_logging(level=None):
    """Send application logs to stderr at the configured level."""
    level = level or get_config_value("logging", "level", "INFO")
    logging.basicConfig(level=getattr(logging, str(level).upper(), logging.INFO), format=LOG_FORMAT)


# First-run init
@asynccontextmanager
async def lifespan(app: FastAPI):
    load_config()  # Ensures config exists
    configure_logging()
    init_db()
    logger.info("Word Pointe ready; data in %s", CONFIG_DIR)
    yield


app = FastAPI(
    title="Word Pointe",
    description="Points tracker for Bible memory work",
    lifespan=lifespan,
)

app.add_exception_handler(AppError, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(bible.router, prefix="/api/bible", tags=["bible"])
app.include_router(records.router, prefix="/api/records", tags=["records"])
app.include_router(reports.router, prefix="/api/reports", tags=["reports"])
app.include_router(settings.router, prefix="/api/settings", tags=["settings"])
app.include_router(spend.router, prefix="/api/spend", tags=["spend"])
app.include_router(bonus.router, prefix="/api/bonus", tags=["bonus"])
app.include_router(users.router, prefix="/api/users", tags=["users"])
app.include_router(memory_items.router, prefix="/api/memory-items", tags=["memory-items"])
app.include_router(leaderboard.router, prefix="/api/leaderboard", tags=["leaderboard"])


@app.get("/health")
async def health():
    return {"status": "ok"}


def create_user(name: str, password: str, role: str) -> dict:
    """Create a user from the command line; leaders and admins need a password to sign in."""
    if role not in ("admin", "leader", "student"):
        raise ValueError("Role must be admin, leader or student")
    with get_conn() as conn:
        user = Gateway(conn).insert(
            "users",
            {
                "name": name.strip(),
                "role": role,
                "is_leader": int(role != "student"),
                "password_hash": hash_password(password) if password else None,
            },
        )
        conn.commit()
    return user


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Word Pointe App")
    parser.add_argument("--init", action="store_true", help="Initialize DB and config")
    parser.add_argument("--dev", action="store_true", help="Run in dev mode with reload")
    parser.add_argument(
        "--create-user",
        nargs=3,
        metavar=("NAME", "PASSWORD", "ROLE"),
        help="Create a user (role: admin, leader or student) and exit",
    )
    args = parser.parse_args()
    if args.init or args.create_user:
        load_config()  # Ensures config is copied if missing
        configure_logging()
        init_db()
    if args.init:
        print(f"DB initialized and config copied to {CONFIG_DIR}/")
        sys.exit(0)
    if args.create_user:
        try:
            created = create_user(*args.create_user)
        except (ValueError, sqlite3.IntegrityError) as exc:
            print(f"Could not create user: {exc}", file=sys.stderr)
            sys.exit(1)
        print(f"Created {created['role']} {created['name']} (id {created['id']})")
        sys.exit(0)
    # Run server
    port = 8000
    reload = args.dev
    uvicorn.run("main:app", host="127.0.0.1", port=port, reload=reload, log_level="info")
