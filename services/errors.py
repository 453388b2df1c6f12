class ServiceError(Exception):
    """Base class for expected, user-facing failures raised by the service layer."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(ServiceError):
    status_code = 400


class NotFound(ServiceError):
    status_code = 404


class SlotUnavailable(ServiceError):
    """The requested instant failed the availability check; message is the reason."""

    status_code = 400


class BookingConflict(ServiceError):
    status_code = 409


class InvalidTransition(ServiceError):
    status_code = 400


class AssistantUnavailable(ServiceError):
    status_code = 503


class AssistantError(ServiceError):
    status_code = 502
