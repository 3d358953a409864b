"""Initial schema: capabilities, users, songs, sessions and commitments.

Revision ID: 001
Revises: None
Create Date: 2026-10-17
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def _capability_link(name: str, owner_column: str, owner_table: str) -> None:
    # Owner rows cascade; a referenced capability cannot be deleted.
    op.create_table(
        name,
        sa.Column(
            owner_column,
            sa.Integer(),
            sa.ForeignKey(f"{owner_table}.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "capability_id",
            sa.Integer(),
            sa.ForeignKey("capabilities.id", ondelete="RESTRICT"),
            primary_key=True,
        ),
    )
    op.create_index(f"ix_{name}_capability_id", name, ["capability_id"])


def upgrade() -> None:
    op.create_table(
        "capabilities",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("icon", sa.String(255), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("name", name="uq_capabilities_name"),
    )
    op.create_index("ix_capabilities_id", "capabilities", ["id"])

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("user_type", sa.String(20), nullable=False, server_default=sa.text("'user'")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_name", "users", ["name"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "songs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("artist", sa.String(255), nullable=True),
        sa.Column("key", sa.String(20), nullable=True),
        sa.Column("tempo", sa.String(20), nullable=True),
        sa.Column("resource_url", sa.String(1000), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_songs_id", "songs", ["id"])
    # Coverage resolves setlist entries to catalog songs by title.
    op.create_index("ix_songs_title", "songs", ["title"])

    op.create_table(
        "sessions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_sessions_id", "sessions", ["id"])
    op.create_index("ix_sessions_date", "sessions", ["date"])

    op.create_table(
        "session_songs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("session_id", sa.Integer(), sa.ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False),
        sa.Column("song_name", sa.String(255), nullable=False),
        sa.Column("song_url", sa.String(1000), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False, server_default=sa.text("0")),
    )
    op.create_index("ix_session_songs_id", "session_songs", ["id"])
    op.create_index("ix_session_songs_session_id", "session_songs", ["session_id"])

    op.create_table(
        "session_recordings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("session_id", sa.Integer(), sa.ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("url", sa.String(1000), nullable=False),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_session_recordings_id", "session_recordings", ["id"])
    op.create_index("ix_session_recordings_session_id", "session_recordings", ["session_id"])

    # ONE RSVP PER MEMBER PER SESSION: the unique constraint is the conflict
    # target of the commitment upsert and the last line of defence against
    # concurrent double RSVPs.
    op.create_table(
        "session_commitments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("session_id", sa.Integer(), sa.ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("session_id", "user_id", name="uq_session_user_commitment"),
    )
    op.create_index("ix_session_commitments_id", "session_commitments", ["id"])
    op.create_index("ix_session_commitments_session_id", "session_commitments", ["session_id"])
    op.create_index("ix_session_commitments_user_id", "session_commitments", ["user_id"])

    _capability_link("user_capabilities", "user_id", "users")
    _capability_link("song_capabilities", "song_id", "songs")
    _capability_link("commitment_capabilities", "commitment_id", "session_commitments")


def downgrade() -> None:
    op.drop_table("commitment_capabilities")
    op.drop_table("song_capabilities")
    op.drop_table("user_capabilities")
    op.drop_table("session_commitments")
    op.drop_table("session_recordings")
    op.drop_table("session_songs")
    op.drop_table("sessions")
    op.drop_table("songs")
    op.drop_table("users")
    op.drop_table("capabilities")
