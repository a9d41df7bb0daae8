"""create hotline routing tables

Revision ID: c4e8a1f2b7d3
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "c4e8a1f2b7d3"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- organizations ---
    op.create_table(
        "organizations",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    # --- phone_numbers ---
    phone_number_status = sa.Enum("active", "inactive", "released", name="phone_number_status")
    op.create_table(
        "phone_numbers",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("org_id", sa.UUID(), nullable=False),
        sa.Column("e164", sa.String(length=20), nullable=False),
        sa.Column("twilio_sid", sa.String(length=64), nullable=True),
        sa.Column("region", sa.String(length=64), nullable=True),
        sa.Column("status", phone_number_status, server_default="active", nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["org_id"], ["organizations.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_phone_numbers_e164", "phone_numbers", ["e164"], unique=True)
    op.create_index("ix_phone_numbers_org_id", "phone_numbers", ["org_id"], unique=False)

    # --- hotlines ---
    hotline_mode = sa.Enum("tts", "audio", "simple_ivr", name="hotline_mode")
    hotline_status = sa.Enum("active", "paused", "archived", name="hotline_status")
    op.create_table(
        "hotlines",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("org_id", sa.UUID(), nullable=False),
        sa.Column("phone_number_id", sa.UUID(), nullable=True),
        sa.Column("slug", sa.String(length=255), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("mode", hotline_mode, server_default="tts", nullable=False),
        sa.Column("tts_text", sa.Text(), nullable=True),
        sa.Column("status", hotline_status, server_default="active", nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["org_id"], ["organizations.id"]),
        sa.ForeignKeyConstraint(["phone_number_id"], ["phone_numbers.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_hotlines_org_id", "hotlines", ["org_id"], unique=False)
    op.create_index("ix_hotlines_phone_number_status", "hotlines", ["phone_number_id", "status"], unique=False)
    # At most one active hotline per phone number
    op.create_index(
        "uq_hotlines_active_phone_number",
        "hotlines",
        ["phone_number_id"],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
    )

    # --- audio_assets ---
    audio_asset_source = sa.Enum("upload", "tts", name="audio_asset_source")
    op.create_table(
        "audio_assets",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("org_id", sa.UUID(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=True),
        sa.Column("storage_path", sa.String(length=500), nullable=False),
        sa.Column("duration_ms", sa.Integer(), nullable=True),
        sa.Column("source", audio_asset_source, server_default="upload", nullable=False),
        sa.Column("hash", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["org_id"], ["organizations.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audio_assets_org_id", "audio_assets", ["org_id"], unique=False)

    # --- hotline_audio_files ---
    op.create_table(
        "hotline_audio_files",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("hotline_id", sa.UUID(), nullable=False),
        sa.Column("audio_asset_id", sa.UUID(), nullable=False),
        sa.Column("display_order", sa.Integer(), server_default="0", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["hotline_id"], ["hotlines.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["audio_asset_id"], ["audio_assets.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_hotline_audio_files_hotline_order",
        "hotline_audio_files",
        ["hotline_id", "display_order"],
        unique=False,
    )
    op.create_index(
        "ix_hotline_audio_files_audio_asset_id",
        "hotline_audio_files",
        ["audio_asset_id"],
        unique=False,
    )

    # --- call_logs ---
    op.create_table(
        "call_logs",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("org_id", sa.UUID(), nullable=False),
        sa.Column("hotline_id", sa.UUID(), nullable=False),
        sa.Column("call_sid", sa.String(length=64), nullable=False),
        sa.Column("from_number", sa.String(length=32), nullable=True),
        sa.Column("to_number", sa.String(length=32), nullable=False),
        sa.Column("status", sa.String(length=20), server_default="ringing", nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("duration_s", sa.Integer(), nullable=True),
        sa.Column("recording_url", sa.String(length=500), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["org_id"], ["organizations.id"]),
        sa.ForeignKeyConstraint(["hotline_id"], ["hotlines.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_call_logs_call_sid", "call_logs", ["call_sid"], unique=True)
    op.create_index("ix_call_logs_org_id", "call_logs", ["org_id"], unique=False)
    op.create_index("ix_call_logs_hotline_id", "call_logs", ["hotline_id"], unique=False)
    op.create_index("ix_call_logs_started_at", "call_logs", ["started_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_call_logs_started_at", table_name="call_logs")
    op.drop_index("ix_call_logs_hotline_id", table_name="call_logs")
    op.drop_index("ix_call_logs_org_id", table_name="call_logs")
    op.drop_index("ix_call_logs_call_sid", table_name="call_logs")
    op.drop_table("call_logs")

    op.drop_index("ix_hotline_audio_files_audio_asset_id", table_name="hotline_audio_files")
    op.drop_index("ix_hotline_audio_files_hotline_order", table_name="hotline_audio_files")
    op.drop_table("hotline_audio_files")

    op.drop_index("ix_audio_assets_org_id", table_name="audio_assets")
    op.drop_table("audio_assets")
    sa.Enum(name="audio_asset_source").drop(op.get_bind(), checkfirst=True)

    op.drop_index("uq_hotlines_active_phone_number", table_name="hotlines")
    op.drop_index("ix_hotlines_phone_number_status", table_name="hotlines")
    op.drop_index("ix_hotlines_org_id", table_name="hotlines")
    op.drop_table("hotlines")
    sa.Enum(name="hotline_status").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="hotline_mode").drop(op.get_bind(), checkfirst=True)

    op.drop_index("ix_phone_numbers_org_id", table_name="phone_numbers")
    op.drop_index("ix_phone_numbers_e164", table_name="phone_numbers")
    op.drop_table("phone_numbers")
    sa.Enum(name="phone_number_status").drop(op.get_bind(), checkfirst=True)

    op.drop_table("organizations")
