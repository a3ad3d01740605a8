"""initial schema: users, sweets, auth_sessions

Revision ID: 5a1c2e7d9b10
Revises:
Create Date: 2026-10-19 10:00:00.000000
"""
from __future__ import annotations

import os
from typing import Optional, Sequence, Union

from alembic import op
import sqlalchemy as sa

# --- Alembic identifiers ---
revision: str = "5a1c2e7d9b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_DB_SCHEMA = os.getenv("DB_SCHEMA") or "app"


def _schema() -> Optional[str]:
    # SQLite nu are scheme
    return _DB_SCHEMA if op.get_bind().dialect.name == "postgresql" else None


def _existing_tables(schema: Optional[str]) -> set[str]:
    return set(sa.inspect(op.get_bind()).get_table_names(schema=schema))


def upgrade() -> None:
    schema = _schema()
    fk_users = f"{schema}.users.id" if schema else "users.id"
    existing = _existing_tables(schema)

    if "users" not in existing:
        op.create_table(
            "users",
            sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
            sa.Column("username", sa.String(64), nullable=False),
            sa.Column("email", sa.String(255), nullable=False),
            sa.Column("password_hash", sa.String(255), nullable=False),
            sa.Column("is_admin", sa.Boolean, nullable=False, server_default=sa.false()),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
            sa.PrimaryKeyConstraint("id", name="pk_users"),
            sa.UniqueConstraint("username", name="uq_users_username"),
            sa.UniqueConstraint("email", name="uq_users_email"),
            schema=schema,
        )

    if "sweets" not in existing:
        op.create_table(
            "sweets",
            sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
            sa.Column("name", sa.String(255), nullable=False),
            sa.Column("category", sa.String(255), nullable=False),
            sa.Column("price", sa.Numeric(10, 2), nullable=False),
            sa.Column("quantity", sa.Integer, nullable=False, server_default=sa.text("0")),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
            sa.PrimaryKeyConstraint("id", name="pk_sweets"),
            sa.CheckConstraint("price >= 0", name="ck_sweets_price_nonnegative"),
            sa.CheckConstraint("quantity >= 0", name="ck_sweets_quantity_nonnegative"),
            schema=schema,
        )
        op.create_index("ix_sweets_name", "sweets", ["name"], schema=schema)
        op.create_index("ix_sweets_category", "sweets", ["category"], schema=schema)
        op.create_index("ix_sweets_price", "sweets", ["price"], schema=schema)
        op.create_index("ix_sweets_name_lower", "sweets", [sa.text("lower(name)")], schema=schema)

    if "auth_sessions" not in existing:
        op.create_table(
            "auth_sessions",
            sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
            sa.Column("token_hash", sa.String(64), nullable=False),
            sa.Column("user_id", sa.Integer, nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
            sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id", name="pk_auth_sessions"),
            sa.UniqueConstraint("token_hash", name="uq_auth_sessions_token_hash"),
            sa.ForeignKeyConstraint(
                ["user_id"], [fk_users], name="fk_auth_sessions_user_id_users", ondelete="CASCADE"
            ),
            schema=schema,
        )
        op.create_index("ix_auth_sessions_user_id", "auth_sessions", ["user_id"], schema=schema)


def downgrade() -> None:
    schema = _schema()
    existing = _existing_tables(schema)
    for table in ("auth_sessions", "sweets", "users"):
        if table in existing:
            op.drop_table(table, schema=schema)
