"""
Initialize the Cinelog database.

- Waits for the database to be ready
- Creates all tables
- Seeds an admin account from ADMIN_USERNAME / ADMIN_EMAIL / ADMIN_PASSWORD
- Runs exactly once (idempotent)
"""

import logging
import time

from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from cinelog.auth import get_password_hash
from cinelog.config import Settings
from cinelog.database import Base, SessionLocal, engine
from cinelog.main import setup_logging
from cinelog.models import User
from cinelog.services.users import find_user

MAX_DB_WAIT_SECONDS = 180
DB_RETRY_INTERVAL = 2

logger = logging.getLogger(__name__)


def wait_for_db(max_wait: float = MAX_DB_WAIT_SECONDS, interval: float = DB_RETRY_INTERVAL):
    """Block until the database is accepting connections."""
    logger.info("Waiting for database to be ready...")

    deadline = time.time() + max_wait

    while time.time() < deadline:
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.info("Database is ready.")
            return
        except OperationalError:
            logger.info("Database not ready yet. Retrying...")
            time.sleep(interval)

    raise RuntimeError("Database did not become ready in time")


def seed_admin(db: Session, username: str, email: str, password: str) -> bool:
    """Create the admin account unless a user with that name or email exists."""
    if find_user(db, username) or find_user(db, email):
        logger.info(f"User {username} already exists. Skipping admin seed.")
        return False

    db.add(
        User(
            username=username,
            email=email,
            password_hash=get_password_hash(password),
            role="admin",
        )
    )
    db.commit()
    logger.info(f"Created admin user {username}.")
    return True


def main():
    setup_logging(Settings.LOG_LEVEL)
    wait_for_db()

    # Ensure tables exist BEFORE querying them
    Base.metadata.create_all(bind=engine)

    if not Settings.ADMIN_PASSWORD:
        logger.info("ADMIN_PASSWORD not set. Skipping admin seed.")
        return

    db: Session = SessionLocal()
    try:
        seed_admin(db, Settings.ADMIN_USERNAME, Settings.ADMIN_EMAIL, Settings.ADMIN_PASSWORD)
    finally:
        db.close()


if __name__ == "__main__":
    main()
