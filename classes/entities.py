# classes/entities.py
from datetime import datetime

from sqlalchemy.orm import Mapped, declarative_base, mapped_column
from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    Integer,
    String,
    text,
    Index,
    JSON,
)

Base = declarative_base()

DEFAULT_CUSTOMERS = ["Zero to Mastery", "NASA"]


def _iso_utc(value: datetime | None) -> str | None:
    if value is None:
        return None
    # stored naive, always UTC
    return value.replace(tzinfo=None).isoformat(timespec="milliseconds") + "Z"


class Planet(Base):
    __tablename__ = "planets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # no unique constraint, the whole set is replaced on every ingestion
    kepler_name: Mapped[str] = mapped_column(String, nullable=False)

    def to_dict(self) -> dict:
        return {"keplerName": self.kepler_name}


class Launch(Base):
    __tablename__ = "launches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    flight_number: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        unique=True,
    )

    launch_date: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    mission: Mapped[str] = mapped_column(String, nullable=False)
    rocket: Mapped[str] = mapped_column(String, nullable=False)

    # planet keplerName, not checked against the planets table
    target: Mapped[str] = mapped_column(String, nullable=False)

    customers: Mapped[list[str]] = mapped_column(
        JSON,
        nullable=False,
        default=lambda: list(DEFAULT_CUSTOMERS),
    )

    upcoming: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=text("true"),
    )
    success: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=text("true"),
    )

    __table_args__ = (
        Index("ix_launches_upcoming", "upcoming"),
    )

    def to_dict(self) -> dict:
        return {
            "flightNumber": self.flight_number,
            "launchDate": _iso_utc(self.launch_date),
            "mission": self.mission,
            "rocket": self.rocket,
            "target": self.target,
            "customers": list(self.customers or []),
            "upcoming": bool(self.upcoming),
            "success": bool(self.success),
        }
