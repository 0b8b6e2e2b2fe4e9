"""Initial schema: shortID counter, allocations, pool, print tasks and the graph.

Revision ID: 0001_initial
Revises:
Create Date: 2026-09-14
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

from patchbay.adapters.sqlalchemy.mappings import UTCDateTime

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

_ENTITY_TYPES = ("ROOM", "CABINET", "PANEL", "PORT", "CABLE_ENDPOINT")
_POOL_STATUSES = ("GENERATED", "PRINTED", "BOUND", "CANCELLED")
_PRINT_TASK_STATUSES = ("PENDING", "PRINTING", "COMPLETED", "FAILED")
_PORT_STATUSES = ("AVAILABLE", "OCCUPIED", "RESERVED", "FAULTY")


def _entity_type() -> sa.Enum:
    return sa.Enum(*_ENTITY_TYPES, name="entitytype", native_enum=False)


def upgrade() -> None:
    sequence = op.create_table(
        "short_id_sequence",
        sa.Column("id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("next_value", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_short_id_sequence"),
    )
    op.bulk_insert(sequence, [{"id": 1, "next_value": 1}])

    op.create_table(
        "short_id_allocation",
        sa.Column("short_id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("entity_type", _entity_type(), nullable=False),
        sa.Column("entity_id", sa.Uuid(), nullable=True),
        sa.Column("allocated_at", UTCDateTime(), nullable=False),
        sa.PrimaryKeyConstraint("short_id", name="pk_short_id_allocation"),
    )
    op.create_index(
        "ix_short_id_allocation_entity",
        "short_id_allocation",
        ["entity_type", "entity_id"],
    )

    op.create_table(
        "print_task",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("count", sa.Integer(), nullable=False),
        sa.Column("entity_type", _entity_type(), nullable=True),
        sa.Column(
            "status",
            sa.Enum(*_PRINT_TASK_STATUSES, name="printtaskstatus", native_enum=False),
            nullable=False,
        ),
        sa.Column("created_by", sa.String(length=255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", UTCDateTime(), nullable=False),
        sa.Column("completed_at", UTCDateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_print_task"),
    )

    op.create_table(
        "short_id_pool",
        sa.Column("short_id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column(
            "status",
            sa.Enum(*_POOL_STATUSES, name="poolstatus", native_enum=False),
            nullable=False,
        ),
        sa.Column("batch_no", sa.String(length=255), nullable=True),
        sa.Column("print_task_id", sa.Uuid(), nullable=True),
        sa.Column("entity_type", _entity_type(), nullable=True),
        sa.Column("entity_id", sa.Uuid(), nullable=True),
        sa.Column("bound_at", UTCDateTime(), nullable=True),
        sa.Column("cancelled_at", UTCDateTime(), nullable=True),
        sa.Column("cancelled_reason", sa.Text(), nullable=True),
        sa.Column("released_at", UTCDateTime(), nullable=True),
        sa.Column("created_at", UTCDateTime(), nullable=False),
        sa.Column("updated_at", UTCDateTime(), nullable=False),
        sa.ForeignKeyConstraint(
            ["print_task_id"],
            ["print_task.id"],
            name="fk_short_id_pool_print_task_id_print_task",
        ),
        sa.PrimaryKeyConstraint("short_id", name="pk_short_id_pool"),
    )
    op.create_index("ix_short_id_pool_status", "short_id_pool", ["status"])
    op.create_index("ix_short_id_pool_batch_no", "short_id_pool", ["batch_no"])
    op.create_index("ix_short_id_pool_print_task_id", "short_id_pool", ["print_task_id"])

    op.create_table(
        "graph_panel",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("short_id", sa.Integer(), nullable=True),
        sa.Column("device_id", sa.Uuid(), nullable=True),
        sa.Column("device_name", sa.String(length=255), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_graph_panel"),
    )

    op.create_table(
        "graph_port",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("panel_id", sa.Uuid(), nullable=True),
        sa.Column("number", sa.String(length=64), nullable=True),
        sa.Column(
            "status",
            sa.Enum(*_PORT_STATUSES, name="portstatus", native_enum=False),
            nullable=False,
        ),
        sa.Column("short_id", sa.Integer(), nullable=True),
        sa.Column("panel_name", sa.String(length=255), nullable=True),
        sa.Column("device_id", sa.Uuid(), nullable=True),
        sa.Column("device_name", sa.String(length=255), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_graph_port"),
    )
    op.create_index("ix_graph_port_panel_id", "graph_port", ["panel_id"])

    op.create_table(
        "graph_cable",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("label", sa.String(length=255), nullable=True),
        sa.Column("cable_type", sa.String(length=64), nullable=True),
        sa.Column("color", sa.String(length=64), nullable=True),
        sa.Column("length", sa.Float(), nullable=True),
        sa.Column("short_id", sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_graph_cable"),
    )

    op.create_table(
        "graph_incidence",
        sa.Column("cable_id", sa.Uuid(), nullable=False),
        sa.Column("port_id", sa.Uuid(), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False),
        sa.Column("endpoint_id", sa.Uuid(), nullable=True),
        sa.Column("endpoint_short_id", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(
            ["cable_id"],
            ["graph_cable.id"],
            name="fk_graph_incidence_cable_id_graph_cable",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["port_id"],
            ["graph_port.id"],
            name="fk_graph_incidence_port_id_graph_port",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("cable_id", "port_id", name="pk_graph_incidence"),
        sa.UniqueConstraint("port_id", name="uq_graph_incidence_port"),
        sa.UniqueConstraint("cable_id", "role", name="uq_graph_incidence_cable_role"),
    )
    op.create_index("ix_graph_incidence_endpoint_id", "graph_incidence", ["endpoint_id"])


def downgrade() -> None:
    op.drop_index("ix_graph_incidence_endpoint_id", table_name="graph_incidence")
    op.drop_table("graph_incidence")
    op.drop_table("graph_cable")
    op.drop_index("ix_graph_port_panel_id", table_name="graph_port")
    op.drop_table("graph_port")
    op.drop_table("graph_panel")
    op.drop_index("ix_short_id_pool_print_task_id", table_name="short_id_pool")
    op.drop_index("ix_short_id_pool_batch_no", table_name="short_id_pool")
    op.drop_index("ix_short_id_pool_status", table_name="short_id_pool")
    op.drop_table("short_id_pool")
    op.drop_table("print_task")
    op.drop_index("ix_short_id_allocation_entity", table_name="short_id_allocation")
    op.drop_table("short_id_allocation")
    op.drop_table("short_id_sequence")
