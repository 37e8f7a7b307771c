# middleware/first_run.py
"""
First-run admin bootstrap.

On the first request that needs it (and once at startup) make sure at least
one admin account exists, creating one from ADMIN_USERNAME / ADMIN_PASSWORD /
ADMIN_EMAIL if not. The check runs once per process: `checked` only flips to
True after a successful check-or-create and is never reset.
"""
import logging
import os
import threading
from typing import Callable

from sqlalchemy.orm import Session

from database import SessionLocal
from models.user import User
from services.auth import get_password_hash

logger = logging.getLogger(__name__)


class AdminBootstrap:
    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self._session_factory = session_factory
        self._lock = threading.Lock()
        self._checked = False

    @property
    def checked(self) -> bool:
        return self._checked

    def ensure_admin(self) -> bool:
        """Returns True when this call created the admin account."""
        if self._checked:
            return False

        with self._lock:
            if self._checked:
                return False

            db = self._session_factory()
            try:
                created = self._check_or_create(db)
            except Exception:
                db.rollback()
                # stay unchecked so the next request retries
                logger.exception("admin bootstrap check failed")
                return False
            finally:
                db.close()

            self._checked = True
            return created

    def _check_or_create(self, db: Session) -> bool:
        if db.query(User).filter(User.role == "admin").first():
            logger.info("admin account present")
            return False

        username = os.getenv("ADMIN_USERNAME", "admin")
        admin = User(
            username=username,
            password=get_password_hash(os.getenv("ADMIN_PASSWORD", "admin123")),
            email=os.getenv("ADMIN_EMAIL", "admin@example.com"),
            role="admin",
            is_active=True,
        )
        db.add(admin)
        db.commit()
        logger.warning("no admin account found, created default admin %r; change its password", username)
        return True


admin_bootstrap = AdminBootstrap()


def ensure_admin_account() -> None:
    """FastAPI dependency for routes that depend on an admin existing (login)."""
    admin_bootstrap.ensure_admin()
