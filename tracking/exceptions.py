"""Error taxonomy of the batch tracking subsystem.

None of these is fatal: every failure leaves the published state untouched
and can be recovered by the user retrying the action.
"""

from __future__ import annotations

from typing import Iterable, Optional

from django.core.exceptions import ValidationError


class TrackingError(Exception):
    """Base class for failures surfaced by the tracking core."""


class NotFound(TrackingError):
    """A referenced farm, batch, building or row no longer exists."""

    def __init__(self, entity: str, identifier: object = None, message: str | None = None) -> None:
        self.entity = entity
        self.identifier = identifier
        if message is None:
            message = f"{entity} introuvable" + (f" (ID {identifier})" if identifier is not None else "")
        super().__init__(message)


class ValidationFailure(TrackingError):
    """A malformed value was rejected by the data-access collaborator."""

    def __init__(self, messages: Iterable[str], field: Optional[str] = None) -> None:
        self.messages = [str(message) for message in messages]
        self.field = field
        super().__init__(" ".join(self.messages))

    @classmethod
    def from_django(cls, error: ValidationError) -> "ValidationFailure":
        field = None
        if hasattr(error, "error_dict"):
            fields = [name for name in error.error_dict if name != "__all__"]
            if len(fields) == 1:
                field = fields[0]
        return cls(error.messages, field=field)


class TransportFailure(TrackingError):
    """The data-access collaborator could not be reached or errored."""


class InvalidTransition(TrackingError):
    """A navigator transition was requested from a state that does not allow it."""
