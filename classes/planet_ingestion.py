# classes/planet_ingestion.py
"""
Habitable planet ingestion.

Streams the Kepler objects-of-interest CSV in chunks, keeps the rows that
pass the habitability filter and replaces the whole persisted planet set
in a single transaction once the file has been read to the end.
"""

import logging
import math
import os
import warnings
from pathlib import Path
from typing import Any, Callable, Iterator, Mapping

warnings.filterwarnings("ignore", category=FutureWarning, module="pandera")

import pandas as pd
import pandera as pa
from pandera import Column
from sqlalchemy.orm import Session

from classes.DBConnection_hlpr import store_errors
from classes.entities import Planet
from classes.errors import IngestionError

logger = logging.getLogger("mission_control")

DISPOSITION_COLUMN = "koi_disposition"
INSOLATION_COLUMN = "koi_insol"
RADIUS_COLUMN = "koi_prad"
PRIMARY_NAME_COLUMN = "kepler_name"
SECONDARY_NAME_COLUMN = "kepoi_name"

REQUIRED_COLUMNS = [
    DISPOSITION_COLUMN,
    INSOLATION_COLUMN,
    RADIUS_COLUMN,
    PRIMARY_NAME_COLUMN,
    SECONDARY_NAME_COLUMN,
]

CONFIRMED = "CONFIRMED"
MIN_INSOLATION_FLUX = 0.36  # Earth-relative, exclusive
MAX_INSOLATION_FLUX = 1.11  # exclusive
MAX_PLANETARY_RADIUS = 1.6  # Earth radii, exclusive

BUNDLED_CSV_PATH = Path(__file__).resolve().parent.parent / "data" / "kepler_data.csv"
DEFAULT_CSV_PATH = os.getenv("PLANETS_CSV_PATH") or BUNDLED_CSV_PATH
DEFAULT_CHUNK_SIZE = int(os.getenv("INGEST_CHUNK_SIZE", "1000"))


def _as_float(value: Any) -> float | None:
    try:
        f = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(f):
        return None
    return f


def _as_name(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip()


def is_habitable_planet(row: Mapping[str, Any]) -> bool:
    """
    True when the row is a confirmed planet inside the insolation band
    and below the radius cap. Pure function of the three filter columns.
    """
    if row.get(DISPOSITION_COLUMN) != CONFIRMED:
        return False

    insolation = _as_float(row.get(INSOLATION_COLUMN))
    radius = _as_float(row.get(RADIUS_COLUMN))
    if insolation is None or radius is None:
        return False

    return (
        MIN_INSOLATION_FLUX < insolation < MAX_INSOLATION_FLUX
        and radius < MAX_PLANETARY_RADIUS
    )


def resolve_planet_name(row: Mapping[str, Any]) -> str | None:
    return _as_name(row.get(PRIMARY_NAME_COLUMN)) or _as_name(row.get(SECONDARY_NAME_COLUMN)) or None


def build_schema() -> pa.DataFrameSchema:
    return pa.DataFrameSchema(
        columns={
            DISPOSITION_COLUMN: Column(pa.Object, nullable=True),
            INSOLATION_COLUMN: Column(pa.Float, nullable=True, coerce=True),
            RADIUS_COLUMN: Column(pa.Float, nullable=True, coerce=True),
            PRIMARY_NAME_COLUMN: Column(pa.Object, nullable=True),
            SECONDARY_NAME_COLUMN: Column(pa.Object, nullable=True),
        },
        strict=False,
    )


class PlanetIngestion:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        csv_path: str | Path | None = None,
        chunk_size: int | None = None,
    ):
        self.SessionFactory = session_factory
        self.csv_path = Path(csv_path or DEFAULT_CSV_PATH)
        self.chunk_size = int(chunk_size or DEFAULT_CHUNK_SIZE)
        self.schema = build_schema()

    # -----------------------
    # Reading
    # -----------------------

    def _iter_chunks(self, source) -> Iterator[pd.DataFrame]:
        with pd.read_csv(
            source,
            comment="#",
            usecols=REQUIRED_COLUMNS,
            dtype={
                DISPOSITION_COLUMN: "object",
                PRIMARY_NAME_COLUMN: "object",
                SECONDARY_NAME_COLUMN: "object",
            },
            chunksize=self.chunk_size,
        ) as reader:
            for chunk in reader:
                yield self.schema.validate(chunk)

    def collect_habitable_names(self, source=None) -> list[str]:
        """
        Single pass over the dataset. Raises IngestionError on any
        read, parse or schema problem; nothing is persisted here.
        """
        source = source if source is not None else self.csv_path
        names: list[str] = []
        rows_seen = 0
        try:
            for chunk in self._iter_chunks(source):
                for row in chunk.to_dict("records"):
                    rows_seen += 1
                    if not is_habitable_planet(row):
                        continue
                    name = resolve_planet_name(row)
                    if name:
                        names.append(name)
        except (pa.errors.SchemaError, pa.errors.SchemaErrors) as e:
            logger.error("Planet dataset failed schema validation: %s", e)
            raise IngestionError(f"Planet dataset failed schema validation: {e}") from e
        except (OSError, ValueError, pd.errors.ParserError) as e:
            logger.error("Could not read planet dataset %s: %s", source, e)
            raise IngestionError(f"Could not read planet dataset: {e}") from e

        logger.debug("Scanned %d rows, %d habitable", rows_seen, len(names))
        return names

    # -----------------------
    # Persistence
    # -----------------------

    def replace_planets(self, names: list[str]) -> int:
        """Delete every planet and insert `names`, all in one transaction."""
        session = self.SessionFactory()
        try:
            with store_errors("replacing planets"):
                try:
                    session.query(Planet).delete(synchronize_session=False)
                    if names:
                        session.add_all([Planet(kepler_name=name) for name in names])
                    session.flush()
                    count = session.query(Planet).count()
                    session.commit()
                except Exception:
                    session.rollback()
                    raise
            return count
        finally:
            session.close()

    def ingest(self, source=None) -> int:
        names = self.collect_habitable_names(source)
        count = self.replace_planets(names)
        logger.info("Loaded %d habitable planets into database.", count)
        return count

    def list_planets(self) -> list[dict]:
        session = self.SessionFactory()
        try:
            with store_errors("listing planets"):
                planets = session.query(Planet).order_by(Planet.id.asc()).all()
                return [p.to_dict() for p in planets]
        finally:
            session.close()
