"""Create parent and child resource tables.

Revision ID: 0001
Revises:
Create Date: 2026-03-02 09:00:00

"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_PHASES = ("Init", "PendingDependencies", "Progressing", "Succeeded", "Failed")


def _phase() -> sa.Enum:
    return sa.Enum(*_PHASES, name="phase", native_enum=False, length=32)


def upgrade() -> None:
    op.create_table(
        "parent_resource",
        sa.Column("uid", sa.Uuid(), nullable=False),
        sa.Column("namespace", sa.String(length=253), nullable=False),
        sa.Column("name", sa.String(length=253), nullable=False),
        sa.Column("resource_version", sa.Integer(), nullable=False),
        sa.Column("labels", sa.Text(), nullable=False),
        sa.Column("creation_timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("definition_ref", sa.String(), nullable=False),
        sa.Column("phase", _phase(), nullable=False),
        sa.Column("conditions", sa.Text(), nullable=False),
        sa.Column("tracked_children", sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint("uid", name=op.f("pk_parent_resource")),
        sa.UniqueConstraint(
            "namespace", "name", name=op.f("uq_parent_resource_namespace_name")
        ),
    )
    op.create_table(
        "child_resource",
        sa.Column("uid", sa.Uuid(), nullable=False),
        sa.Column("namespace", sa.String(length=253), nullable=False),
        sa.Column("name", sa.String(length=253), nullable=False),
        sa.Column("generate_name", sa.String(length=253), nullable=False),
        sa.Column("resource_version", sa.Integer(), nullable=False),
        sa.Column("labels", sa.Text(), nullable=False),
        sa.Column("owner_references", sa.Text(), nullable=False),
        sa.Column("owner_uid", sa.Uuid(), nullable=True),
        sa.Column("finalizers", sa.Text(), nullable=False),
        sa.Column("deletion_timestamp", sa.DateTime(timezone=True), nullable=True),
        sa.Column("creation_timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("definition_ref", sa.String(), nullable=True),
        sa.Column("imports", sa.Text(), nullable=False),
        sa.Column("exports", sa.Text(), nullable=False),
        sa.Column("inherited_imports", sa.Text(), nullable=False),
        sa.Column("inherited_exports", sa.Text(), nullable=False),
        sa.Column("phase", _phase(), nullable=False),
        sa.ForeignKeyConstraint(
            ["owner_uid"],
            ["parent_resource.uid"],
            name=op.f("fk_child_resource_owner_uid_parent_resource"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("uid", name=op.f("pk_child_resource")),
        sa.UniqueConstraint(
            "namespace", "name", name=op.f("uq_child_resource_namespace_name")
        ),
    )
    op.create_index("ix_child_resource_owner_uid", "child_resource", ["owner_uid"])


def downgrade() -> None:
    op.drop_index("ix_child_resource_owner_uid", table_name="child_resource")
    op.drop_table("child_resource")
    op.drop_table("parent_resource")
