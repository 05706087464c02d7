# classes/errors.py


class MissionControlError(Exception):
    """
    Base class for every error the backend raises on purpose.

    status_code is what the HTTP layer answers with, code is a stable
    machine-readable identifier that goes next to the human message.
    """
    status_code = 500
    code = "mission_control_error"


class ValidationError(MissionControlError):
    status_code = 400
    code = "validation_error"


class MissingFieldError(ValidationError):
    code = "missing_field"

    def __init__(self, fields: list[str]):
        self.fields = list(fields)
        super().__init__("Missing required launch property")


class InvalidDateError(ValidationError):
    code = "invalid_date"

    def __init__(self, value):
        self.value = value
        super().__init__("Invalid launch date")


class LaunchNotFoundError(MissionControlError):
    status_code = 404
    code = "launch_not_found"

    def __init__(self, flight_number: int):
        self.flight_number = flight_number
        super().__init__("Launch not found")


class AbortNotAppliedError(MissionControlError):
    # existence check passed but the update matched nothing
    status_code = 400
    code = "abort_not_applied"

    def __init__(self, flight_number: int):
        self.flight_number = flight_number
        super().__init__("Launch not aborted")


class FlightNumberConflictError(MissionControlError):
    status_code = 409
    code = "flight_number_conflict"


class StoreError(MissionControlError):
    status_code = 500
    code = "store_error"


class StoreTimeoutError(StoreError):
    status_code = 504
    code = "store_timeout"


class IngestionError(MissionControlError):
    code = "ingestion_failed"
