"""Domain errors raised by services and mapped to HTTP responses in main."""


class PortalError(Exception):
    status_code = 500
    default_detail = "Request failed"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class NotFoundError(PortalError):
    status_code = 404
    default_detail = "Not found"


class ValidationFailed(PortalError):
    status_code = 400
    default_detail = "Invalid request"


class AttendanceLockedError(PortalError):
    """The date already has a finalized attendance snapshot."""

    status_code = 409
    default_detail = "Attendance for this date is already finalized and locked"


class DocumentDecodeError(PortalError):
    """A stored document did not match its schema."""

    status_code = 502

    def __init__(self, collection: str, reason: str = ""):
        self.collection = collection
        detail = f"Malformed document in '{collection}'"
        if reason:
            detail = f"{detail}: {reason}"
        super().__init__(detail)
