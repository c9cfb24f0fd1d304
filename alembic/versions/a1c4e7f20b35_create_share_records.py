"""Create share records and shared files.

Revision ID: a1c4e7f20b35
Revises:
Create Date: 2026-10-17

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "a1c4e7f20b35"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    file_kind_enum = postgresql.ENUM(
        "document",
        "image",
        "video",
        "audio",
        "archive",
        "other",
        name="filekind",
    )
    file_kind_enum.create(op.get_bind(), checkfirst=True)
    file_kind_enum = postgresql.ENUM(
        "document",
        "image",
        "video",
        "audio",
        "archive",
        "other",
        name="filekind",
        create_type=False,
    )

    bind = op.get_bind()
    inspector = sa.inspect(bind)
    existing_tables = set(inspector.get_table_names())

    if "share_records" not in existing_tables:
        op.create_table(
            "share_records",
            sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
            sa.Column("share_id", sa.String(64), nullable=False),
            sa.Column("access_code", sa.String(12), nullable=True),
            sa.Column("is_password_protected", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("password_hash", sa.String(255), nullable=True),
            sa.Column("title", sa.String(200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("max_downloads", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("download_count", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("view_count", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("owner_id", sa.String(100), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
            sa.CheckConstraint("max_downloads >= 0", name="ck_share_records_max_downloads"),
            sa.CheckConstraint("download_count >= 0", name="ck_share_records_download_count"),
            sa.CheckConstraint("view_count >= 0", name="ck_share_records_view_count"),
        )
        op.create_index("ix_share_records_share_id", "share_records", ["share_id"], unique=True)
        op.create_index("ix_share_records_owner_created", "share_records", ["owner_id", "created_at"])
        op.create_index("ix_share_records_public_expiry", "share_records", ["is_public", "expires_at"])

    if "shared_files" not in existing_tables:
        op.create_table(
            "shared_files",
            sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
            sa.Column(
                "share_record_id",
                postgresql.UUID(as_uuid=True),
                sa.ForeignKey("share_records.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("position", sa.Integer(), nullable=False),
            sa.Column("original_name", sa.String(255), nullable=False),
            sa.Column("storage_key", sa.String(1024), nullable=False),
            sa.Column("size", sa.BigInteger(), nullable=False),
            sa.Column("mime_type", sa.String(255), nullable=False),
            sa.Column("file_kind", file_kind_enum, nullable=False, server_default="other"),
            sa.Column("thumbnail_key", sa.String(1024), nullable=True),
            sa.UniqueConstraint("share_record_id", "position", name="uq_shared_files_position"),
        )
        op.create_index("ix_shared_files_share_record_id", "shared_files", ["share_record_id"])


def downgrade() -> None:
    op.drop_index("ix_shared_files_share_record_id", table_name="shared_files")
    op.drop_table("shared_files")
    op.drop_index("ix_share_records_public_expiry", table_name="share_records")
    op.drop_index("ix_share_records_owner_created", table_name="share_records")
    op.drop_index("ix_share_records_share_id", table_name="share_records")
    op.drop_table("share_records")
    op.execute("DROP TYPE filekind")
