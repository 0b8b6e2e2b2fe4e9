"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class EntityType(StrEnum):
    """Entity types that carry a global shortID.

    Data centers, devices and whole cables are reached through one of these.
    """

    ROOM = "room"
    CABINET = "cabinet"
    PANEL = "panel"
    PORT = "port"
    CABLE_ENDPOINT = "cable_endpoint"


class PoolStatus(StrEnum):
    GENERATED = "generated"
    PRINTED = "printed"
    BOUND = "bound"
    CANCELLED = "cancelled"


class PrintTaskStatus(StrEnum):
    PENDING = "pending"
    PRINTING = "printing"
    COMPLETED = "completed"
    FAILED = "failed"


class PortStatus(StrEnum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    RESERVED = "reserved"
    FAULTY = "faulty"


class LabelState(StrEnum):
    """What an unowned shortID means when it is scanned."""

    FRESH = "fresh"
    CANCELLED = "cancelled"
    RETIRED = "retired"  # was bound, owning entity since deleted
    UNKNOWN = "unknown"
