# classes/backend.py

import logging
from pathlib import Path
from typing import Callable

from sqlalchemy.orm import Session

from classes.entities import Base
from classes.DBConnection_hlpr import DBConnection, store_errors
from classes.launch_registry import LaunchRegistry
from classes.planet_ingestion import PlanetIngestion

logger = logging.getLogger("mission_control")


class Backend:
    """
    Owns the store session factory and the two components built on it.

    startup() is the blocking first phase: it creates the tables and loads
    the planet set. The HTTP server is only started after it returns.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session] | None = None,
        csv_path: str | Path | None = None,
        chunk_size: int | None = None,
        max_attempts: int | None = None,
    ):
        self.SessionFactory = session_factory or DBConnection().build_db_session_factory()
        self.planets = PlanetIngestion(self.SessionFactory, csv_path=csv_path, chunk_size=chunk_size)
        self.launches = LaunchRegistry(self.SessionFactory, max_attempts=max_attempts)

    def create_schema(self) -> None:
        session = self.SessionFactory()
        try:
            with store_errors("creating schema"):
                Base.metadata.create_all(session.get_bind())
        finally:
            session.close()

    def startup(self) -> int:
        self.create_schema()
        return self.planets.ingest()
