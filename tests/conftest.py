from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterable

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from classes.backend import Backend
from classes.entities import Base

SAMPLE_CSV = Path(__file__).resolve().parent.parent / "data" / "kepler_data.csv"

KEPLER_COLUMNS = ["kepid", "kepoi_name", "kepler_name", "koi_disposition", "koi_prad", "koi_insol"]


@pytest.fixture
def session_factory(tmp_path: Path):
    engine = create_engine(f"sqlite:///{tmp_path / 'store.db'}", future=True)
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autoflush=False, future=True)
    yield factory
    engine.dispose()


@pytest.fixture
def kepler_csv(tmp_path: Path) -> Callable[..., Path]:
    """Write a small KOI table: rows are (kepoi_name, kepler_name, disposition, prad, insol)."""

    def _write(rows: Iterable[tuple], name: str = "kepler.csv", comments: bool = True) -> Path:
        lines = []
        if comments:
            lines += ["# This file was produced by the NASA Exoplanet Archive", "#"]
        lines.append(",".join(KEPLER_COLUMNS))
        for i, (kepoi, kepler, disposition, prad, insol) in enumerate(rows):
            lines.append(f"{1000 + i},{kepoi},{kepler},{disposition},{prad},{insol}")
        path = tmp_path / name
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path

    return _write


@pytest.fixture
def backend(session_factory) -> Backend:
    backend = Backend(session_factory=session_factory, csv_path=SAMPLE_CSV, chunk_size=4)
    backend.startup()
    return backend
