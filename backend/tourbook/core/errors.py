from typing import Any, Optional


class TourbookError(Exception):
    """Base class for domain errors. The API layer maps ``kind`` to a response."""

    kind = "error"

    def __init__(
        self, message: str, field: Optional[str] = None, value: Any = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.value = value

    def to_dict(self) -> dict:
        return {
            "detail": self.message,
            "kind": self.kind,
            "field": self.field,
            "value": self.value,
        }


class NotFound(TourbookError):
    kind = "not_found"


class InvalidArgument(TourbookError):
    kind = "invalid_argument"


class Conflict(TourbookError):
    kind = "conflict"


class Unauthenticated(TourbookError):
    kind = "unauthenticated"


class PermissionDenied(TourbookError):
    kind = "permission_denied"


class Unavailable(TourbookError):
    kind = "unavailable"
