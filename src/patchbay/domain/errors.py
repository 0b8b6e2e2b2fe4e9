"""Caller-facing error taxonomy for the identity and connectivity core.

Every error here is recoverable: the offending operation is rejected and state
is left unchanged. Storage failures are not wrapped and propagate as raised by
SQLAlchemy.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uuid import UUID

    from patchbay.domain.model.enums import EntityType, PrintTaskStatus


class PatchbayError(Exception):
    """Base class for domain errors."""


# Identity ---------------------------------------------------------------------


class IdentityError(PatchbayError):
    """Base class for shortID allocation and pool errors."""


class ShortIdConflictError(IdentityError):
    """The shortID is already claimed by another entity."""

    def __init__(self, short_id: int, owner_type: EntityType | None = None) -> None:
        owner = f" (owner: {owner_type})" if owner_type is not None else ""
        super().__init__(f"ShortID {short_id} is already allocated{owner}")
        self.short_id = short_id
        self.owner_type = owner_type


class ShortIdNotFoundError(IdentityError):
    def __init__(self, short_id: int) -> None:
        super().__init__(f"ShortID {short_id} is not known")
        self.short_id = short_id


class AlreadyBoundError(IdentityError):
    def __init__(self, short_id: int) -> None:
        super().__init__(f"ShortID {short_id} is already bound to an entity")
        self.short_id = short_id


class ShortIdCancelledError(IdentityError):
    def __init__(self, short_id: int) -> None:
        super().__init__(f"ShortID {short_id} has been cancelled")
        self.short_id = short_id


class InvalidShortIdError(IdentityError, ValueError):
    """Raised when a textual shortID cannot be normalised to a positive integer."""


class InvalidRangeExpressionError(IdentityError, ValueError):
    """Raised when a shortID range expression cannot be parsed."""


class SequenceNotInitialisedError(IdentityError):
    """The counter row is missing; the schema was not migrated."""


# Print tasks ------------------------------------------------------------------


class PrintTaskError(PatchbayError):
    """Base class for print task errors."""


class PrintTaskNotFoundError(PrintTaskError):
    def __init__(self, task_id: UUID) -> None:
        super().__init__(f"Print task {task_id} does not exist")
        self.task_id = task_id


class PrintTaskStateError(PrintTaskError):
    def __init__(self, task_id: UUID, status: PrintTaskStatus, action: str) -> None:
        super().__init__(f"Cannot {action} print task {task_id} in status {status}")
        self.task_id = task_id
        self.status = status


# Connectivity -----------------------------------------------------------------


class ConnectivityError(PatchbayError):
    """Base class for connectivity graph errors."""


class PortAlreadyConnectedError(ConnectivityError):
    def __init__(self, port_id: UUID, cable_id: UUID) -> None:
        super().__init__(f"Port {port_id} is already connected to cable {cable_id}")
        self.port_id = port_id
        self.cable_id = cable_id


class InvalidHyperedgeError(ConnectivityError, ValueError):
    """Raised when a cable's endpoint set is malformed."""
