import os
import logging
from contextlib import contextmanager
from typing import Callable

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session

from dotenv import load_dotenv

from classes.errors import StoreError, StoreTimeoutError

load_dotenv()

logger = logging.getLogger("mission_control")


def is_timeout_error(e: Exception) -> bool:
    if isinstance(e, TimeoutError):
        return True
    msg = f"{e!r} {e}"
    low = msg.lower()
    # sqlite reports its busy timeout as "database is locked"
    return "TimeoutError" in msg or "timed out" in low or "timeout expired" in low or "database is locked" in low


@contextmanager
def store_errors(action: str):
    """
    Re-raise SQLAlchemy failures as StoreError / StoreTimeoutError so
    callers above the store never see driver exceptions.
    """
    try:
        yield
    except SQLAlchemyError as e:
        if is_timeout_error(e):
            raise StoreTimeoutError(f"Timed out {action}: {e}") from e
        raise StoreError(f"Store failure {action}: {e}") from e


class DBConnection:
    def __init__(self) -> None:
        # ---- env config (shared) ----
        self.DB_HOST      = os.getenv("DB_HOST", "localhost")
        self.DB_PORT      = int(os.getenv("DB_PORT", "5432"))
        self.DB_NAME      = os.getenv("DB_NAME", "")
        self.DB_USER      = os.getenv("DB_USER", "")
        self.DB_PASSWORD  = os.getenv("DB_PASSWORD", "")
        self.SQLITE_PATH  = os.getenv("SQLITE_PATH", "mission_control.db")
        self.STORE_TIMEOUT_SECONDS = float(os.getenv("STORE_TIMEOUT_SECONDS", "10"))

        # !###############################################
        # !   EITHER A DATABASE_URL IN THE .ENV FILE OR
        # !   DB_* VARIABLES (localhost -> SQLITE FILE)
        # !###############################################
        self.DATABASE_URL = os.getenv("DATABASE_URL", "")
        self.IS_LOCAL = self.DB_HOST == "localhost"
        if not self.DATABASE_URL:
            if self.IS_LOCAL:
                self.DATABASE_URL = f"sqlite:///{self.SQLITE_PATH}"
            else:
                self.DATABASE_URL = (
                    f"postgresql+pg8000://{self.DB_USER}:{self._get_db_password()}"
                    f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
                )

    def _get_db_password(self) -> str:
        if self.DB_PASSWORD:
            return self.DB_PASSWORD
        raise RuntimeError("No DB_PASSWORD configured for a remote DB_HOST")

    def _connect_args(self) -> dict:
        # both pg8000 and sqlite3 take 'timeout' in seconds
        if self.DATABASE_URL.startswith(("sqlite", "postgresql+pg8000")):
            return {"timeout": self.STORE_TIMEOUT_SECONDS}
        return {}

    def _redacted_url(self) -> str:
        if self.DB_PASSWORD:
            return self.DATABASE_URL.replace(self.DB_PASSWORD, "***")
        return self.DATABASE_URL

    # -------- SQLAlchemy Session factory --------
    def build_db_session_factory(self) -> Callable[[], Session]:
        if not getattr(self, "_sessionmaker", None):
            logger.info("[DB] Connecting to %s", self._redacted_url())
            engine = create_engine(
                self.DATABASE_URL,
                future=True,
                pool_pre_ping=True,
                connect_args=self._connect_args(),
            )
            self._sessionmaker = sessionmaker(
                bind=engine,
                autoflush=False,
                autocommit=False,
                future=True,
            )

        def _factory() -> Session:
            return self._sessionmaker()

        return _factory
