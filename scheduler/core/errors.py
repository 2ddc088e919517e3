# Domain errors raised by the availability operations.


class SchedulingError(Exception):
    code = "SCHEDULING_ERROR"
    message = "Scheduling error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class ScheduleNotFoundError(SchedulingError):
    """No schedule row exists for the requested user."""
    code = "NOT_FOUND"
    message = "No schedule found for this user"


class AvailabilityFormatError(SchedulingError):
    """
    Stored availability text does not parse into days and windows.
    Indicates a data-integrity problem in the persisted record, not bad client input.
    """
    code = "PARSE_ERROR"
    message = "Invalid availability data format"
