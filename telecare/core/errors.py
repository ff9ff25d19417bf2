from fastapi import status


class BookingError(Exception):
    """Base for every error the booking flow reports to its caller."""

    code = "booking_error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.__class__.__doc__ or self.code
        super().__init__(self.detail)


class FetchError(BookingError):
    """Availability service could not be reached or answered badly."""

    code = "unavailable"
    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, detail: str | None = None, status_code: int | None = None) -> None:
        super().__init__(detail)
        # Upstream HTTP status when one was received
        self.upstream_status = status_code


class PastDateError(BookingError):
    """Date is before today."""

    code = "past_date"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class StaleSelectionError(BookingError):
    """Selection refers to data from a superseded fetch."""

    code = "stale_selection"
    status_code = status.HTTP_409_CONFLICT


class IncompleteSelectionError(BookingError):
    """A date and a time slot must both be selected."""

    code = "incomplete_selection"
    status_code = status.HTTP_409_CONFLICT


class ValidationError(BookingError):
    code = "validation_error"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class CoordinatorDisposedError(BookingError):
    """Booking session has been closed."""

    code = "disposed"
    status_code = status.HTTP_410_GONE


class SessionClosedError(BookingError):
    """API session has been closed."""

    code = "session_closed"
    status_code = status.HTTP_401_UNAUTHORIZED


class SessionNotFoundError(BookingError):
    """Booking session not found or expired."""

    code = "session_not_found"
    status_code = status.HTTP_404_NOT_FOUND
