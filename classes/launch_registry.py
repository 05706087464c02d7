# classes/launch_registry.py

import logging
import os
from datetime import date, datetime
from typing import Any, Callable, Mapping

import pandas as pd
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from classes.DBConnection_hlpr import store_errors
from classes.entities import DEFAULT_CUSTOMERS, Launch
from classes.errors import (
    AbortNotAppliedError,
    FlightNumberConflictError,
    InvalidDateError,
    LaunchNotFoundError,
    MissingFieldError,
)

logger = logging.getLogger("mission_control")

# numbers up to this one are left for historical launches
DEFAULT_FLIGHT_NUMBER = 100

REQUIRED_LAUNCH_FIELDS = ("mission", "rocket", "launchDate", "target")

FLIGHT_NUMBER_MAX_ATTEMPTS = int(os.getenv("FLIGHT_NUMBER_MAX_ATTEMPTS", "5"))

# launches.flight_number is a signed 64-bit BIGINT on both sqlite and postgres
MAX_STORABLE_FLIGHT_NUMBER = 2**63 - 1


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def _is_storable_flight_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return -MAX_STORABLE_FLIGHT_NUMBER - 1 <= value <= MAX_STORABLE_FLIGHT_NUMBER


def parse_launch_date(value: Any) -> datetime:
    """
    Parse a launch date into a naive UTC datetime.
    Anything pandas cannot read as a single timestamp is an InvalidDateError.
    """
    if not isinstance(value, (str, datetime, date)):
        raise InvalidDateError(value)
    ts = pd.to_datetime(value, errors="coerce", utc=True)
    if pd.isna(ts):
        raise InvalidDateError(value)
    return ts.tz_convert(None).to_pydatetime()


def validate_launch_candidate(candidate: Mapping[str, Any] | None) -> dict:
    """
    Check a launch request before anything touches the store.
    Returns the cleaned fields with launchDate already parsed.
    """
    candidate = candidate or {}
    missing = [f for f in REQUIRED_LAUNCH_FIELDS if _is_blank(candidate.get(f))]
    if missing:
        raise MissingFieldError(missing)

    return {
        "mission": str(candidate["mission"]).strip(),
        "rocket": str(candidate["rocket"]).strip(),
        "target": str(candidate["target"]).strip(),
        "launchDate": parse_launch_date(candidate["launchDate"]),
    }


class LaunchRegistry:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        max_attempts: int | None = None,
    ):
        self.SessionFactory = session_factory
        self.max_attempts = max(1, int(max_attempts or FLIGHT_NUMBER_MAX_ATTEMPTS))

    # -----------------------
    # Queries
    # -----------------------

    def list_launches(self) -> list[dict]:
        session = self.SessionFactory()
        try:
            with store_errors("listing launches"):
                launches = (
                    session.query(Launch)
                    .order_by(Launch.flight_number.asc())
                    .all()
                )
                return [l.to_dict() for l in launches]
        finally:
            session.close()

    def exists_launch(self, flight_number: int) -> bool:
        if not _is_storable_flight_number(flight_number):
            return False
        session = self.SessionFactory()
        try:
            with store_errors("looking up launch"):
                return self._find(session, flight_number) is not None
        finally:
            session.close()

    def _find(self, session: Session, flight_number: int) -> Launch | None:
        return (
            session.query(Launch)
            .filter(Launch.flight_number == int(flight_number))
            .one_or_none()
        )

    def _latest_flight_number(self, session: Session) -> int:
        latest = session.query(func.max(Launch.flight_number)).scalar()
        if latest is None:
            return DEFAULT_FLIGHT_NUMBER
        return int(latest)

    # -----------------------
    # Writes
    # -----------------------

    def create_launch(self, candidate: Mapping[str, Any] | None) -> dict:
        """
        Validate, allocate max(flightNumber) + 1 and insert.

        The unique constraint on flight_number turns a concurrent creator
        that read the same max into an IntegrityError; the allocation is
        then re-read and retried up to max_attempts times.
        """
        fields = validate_launch_candidate(candidate)

        for attempt in range(1, self.max_attempts + 1):
            session = self.SessionFactory()
            try:
                with store_errors("creating launch"):
                    flight_number = self._latest_flight_number(session) + 1
                    launch = Launch(
                        flight_number=flight_number,
                        launch_date=fields["launchDate"],
                        mission=fields["mission"],
                        rocket=fields["rocket"],
                        target=fields["target"],
                        customers=list(DEFAULT_CUSTOMERS),
                        upcoming=True,
                        success=True,
                    )
                    session.add(launch)
                    try:
                        session.commit()
                    except IntegrityError:
                        session.rollback()
                        logger.warning(
                            "Flight number %d already taken, retrying allocation (%d/%d)",
                            flight_number, attempt, self.max_attempts,
                        )
                        continue
                    created = launch.to_dict()
            finally:
                session.close()

            logger.info("Scheduled launch %d (%s -> %s)", flight_number, created["mission"], created["target"])
            return created

        raise FlightNumberConflictError(
            f"Could not allocate a flight number after {self.max_attempts} attempts"
        )

    def abort_launch(self, flight_number: int) -> bool:
        """
        Mark a launch as no longer upcoming and unsuccessful.
        Only those two columns are written. Aborting twice is still a success.
        """
        if not self.exists_launch(flight_number):
            raise LaunchNotFoundError(flight_number)

        session = self.SessionFactory()
        try:
            with store_errors("aborting launch"):
                matched = (
                    session.query(Launch)
                    .filter(Launch.flight_number == int(flight_number))
                    .update(
                        {Launch.upcoming: False, Launch.success: False},
                        synchronize_session=False,
                    )
                )
                session.commit()
        finally:
            session.close()

        if matched != 1:
            raise AbortNotAppliedError(flight_number)

        logger.info("Aborted launch %d", flight_number)
        return True
