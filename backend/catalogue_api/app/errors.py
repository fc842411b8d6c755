"""Error types raised by the duplicate resolution layer."""

from fastapi import status


class DuplicateResolutionError(Exception):
    """Base error carrying a machine-readable kind and an HTTP status."""

    kind = "error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class DeviceNotFoundError(DuplicateResolutionError):
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class InvalidDuplicateRequestError(DuplicateResolutionError):
    """Caller error: identical ids, unsupported option combinations, bad cursors."""

    kind = "validation"
    status_code = status.HTTP_400_BAD_REQUEST


class MergePreconditionError(DuplicateResolutionError):
    """The requested target is itself flagged as a duplicate."""

    kind = "precondition"
    status_code = status.HTTP_400_BAD_REQUEST
