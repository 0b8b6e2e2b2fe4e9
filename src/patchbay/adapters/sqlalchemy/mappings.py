"""SQLAlchemy mapping metadata for the identity records and the connectivity graph."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING, Final

from sqlalchemy import (
    Column,
    DateTime,
    Dialect,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    orm,
)
from sqlalchemy.orm import configure_mappers

from patchbay.domain.model import (
    AllocationRecord,
    EntityType,
    PoolRecord,
    PoolStatus,
    PortStatus,
    PrintTask,
    PrintTaskStatus,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]

SEQUENCE_ROW_ID: Final[int] = 1


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Identity tables --------------------------------------------------------------

short_id_sequence_table = Table(
    "short_id_sequence",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=False),
    Column("next_value", Integer, nullable=False),
)

short_id_allocation_table = Table(
    "short_id_allocation",
    mapper_registry.metadata,
    Column("short_id", Integer, primary_key=True, autoincrement=False),
    Column("entity_type", Enum(EntityType, native_enum=False), nullable=False),
    Column("entity_id", UUIDColumnType, nullable=True),
    Column("allocated_at", UTCDateTime(), nullable=False),
    Index("ix_short_id_allocation_entity", "entity_type", "entity_id"),
)

print_task_table = Table(
    "print_task",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("name", String(255), nullable=False),
    Column("count", Integer, nullable=False),
    Column("entity_type", Enum(EntityType, native_enum=False), nullable=True),
    Column("status", Enum(PrintTaskStatus, native_enum=False), nullable=False),
    Column("created_by", String(255), nullable=True),
    Column("notes", Text, nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("completed_at", UTCDateTime(), nullable=True),
)

short_id_pool_table = Table(
    "short_id_pool",
    mapper_registry.metadata,
    Column("short_id", Integer, primary_key=True, autoincrement=False),
    Column("status", Enum(PoolStatus, native_enum=False), nullable=False),
    Column("batch_no", String(255), nullable=True),
    Column("print_task_id", UUIDColumnType, ForeignKey("print_task.id"), nullable=True),
    Column("entity_type", Enum(EntityType, native_enum=False), nullable=True),
    Column("entity_id", UUIDColumnType, nullable=True),
    Column("bound_at", UTCDateTime(), nullable=True),
    Column("cancelled_at", UTCDateTime(), nullable=True),
    Column("cancelled_reason", Text, nullable=True),
    Column("released_at", UTCDateTime(), nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
    Index("ix_short_id_pool_status", "status"),
    Index("ix_short_id_pool_batch_no", "batch_no"),
    Index("ix_short_id_pool_print_task_id", "print_task_id"),
)

# Connectivity graph tables ------------------------------------------------------

graph_panel_table = Table(
    "graph_panel",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column("name", String(255), nullable=True),
    Column("short_id", Integer, nullable=True),
    Column("device_id", UUIDColumnType, nullable=True),
    Column("device_name", String(255), nullable=True),
)

graph_port_table = Table(
    "graph_port",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column("panel_id", UUIDColumnType, nullable=True),
    Column("number", String(64), nullable=True),
    Column("status", Enum(PortStatus, native_enum=False), nullable=False),
    Column("short_id", Integer, nullable=True),
    Column("panel_name", String(255), nullable=True),
    Column("device_id", UUIDColumnType, nullable=True),
    Column("device_name", String(255), nullable=True),
    Index("ix_graph_port_panel_id", "panel_id"),
)

graph_cable_table = Table(
    "graph_cable",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column("label", String(255), nullable=True),
    Column("cable_type", String(64), nullable=True),
    Column("color", String(64), nullable=True),
    Column("length", Float, nullable=True),
    Column("short_id", Integer, nullable=True),
)

graph_incidence_table = Table(
    "graph_incidence",
    mapper_registry.metadata,
    Column(
        "cable_id",
        UUIDColumnType,
        ForeignKey("graph_cable.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "port_id",
        UUIDColumnType,
        ForeignKey("graph_port.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("role", String(16), nullable=False),
    Column("endpoint_id", UUIDColumnType, nullable=True),
    Column("endpoint_short_id", Integer, nullable=True),
    UniqueConstraint("port_id", name="uq_graph_incidence_port"),
    UniqueConstraint("cable_id", "role", name="uq_graph_incidence_cable_role"),
    Index("ix_graph_incidence_endpoint_id", "endpoint_id"),
)


@cache
def start_mappers() -> orm.registry:
    """Map the identity records; graph tables stay Core-only."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(AllocationRecord, short_id_allocation_table)
    mapper_registry.map_imperatively(PoolRecord, short_id_pool_table)
    mapper_registry.map_imperatively(PrintTask, print_task_table)

    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata and seed the counter row."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
    with engine.begin() as connection:
        exists = connection.execute(
            short_id_sequence_table.select().where(
                short_id_sequence_table.c.id == SEQUENCE_ROW_ID
            )
        ).first()
        if exists is None:
            connection.execute(
                short_id_sequence_table.insert().values(id=SEQUENCE_ROW_ID, next_value=1)
            )
