"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18

Creates the tables for the church events application:
members, events, event_rsvps.
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

event_category = sa.Enum("WORSHIP", "BIBLE_STUDY", "COMMUNITY", "FELLOWSHIP", name="eventcategory")
rsvp_status = sa.Enum("CONFIRMED", "WAITLISTED", "CANCELLED", name="rsvpstatus")


def upgrade() -> None:
    # --- members ---
    op.create_table(
        "members",
        sa.Column("member_id", sa.String(36), primary_key=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("default_timezone", sa.String(50), nullable=False, server_default="UTC"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- events ---
    op.create_table(
        "events",
        sa.Column("event_id", sa.String(36), primary_key=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("location", sa.String(500), nullable=False),
        sa.Column("start_time_utc", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time_utc", sa.DateTime(timezone=True), nullable=False),
        sa.Column("category", event_category, nullable=False),
        sa.Column("max_capacity", sa.Integer, nullable=True),
        sa.Column("image_url", sa.String(500), nullable=True),
        sa.Column("created_by_id", sa.String(36), sa.ForeignKey("members.member_id"), nullable=False),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_by_id", sa.String(36), sa.ForeignKey("members.member_id"), nullable=True),
        sa.Column("cancel_reason", sa.String(500), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_events_start_time_utc", "events", ["start_time_utc"])

    # --- event_rsvps ---
    op.create_table(
        "event_rsvps",
        sa.Column("rsvp_id", sa.String(36), primary_key=True),
        sa.Column("event_id", sa.String(36), sa.ForeignKey("events.event_id"), nullable=False),
        sa.Column("member_id", sa.String(36), sa.ForeignKey("members.member_id"), nullable=False),
        sa.Column("status", rsvp_status, nullable=False),
        sa.Column("notes", sa.String(500), nullable=True),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_event_rsvps_event_status", "event_rsvps", ["event_id", "status"])
    op.create_index("ix_event_rsvps_event_member", "event_rsvps", ["event_id", "member_id"])


def downgrade() -> None:
    op.drop_index("ix_event_rsvps_event_member", table_name="event_rsvps")
    op.drop_index("ix_event_rsvps_event_status", table_name="event_rsvps")
    op.drop_table("event_rsvps")
    op.drop_index("ix_events_start_time_utc", table_name="events")
    op.drop_table("events")
    op.drop_table("members")
    rsvp_status.drop(op.get_bind(), checkfirst=True)
    event_category.drop(op.get_bind(), checkfirst=True)
