"""document library schema

Revision ID: 3f1c9a7d2b10
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "3f1c9a7d2b10"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # --- Enums ---
    accesstype = sa.Enum("public", "restricted", name="accesstype")
    filerequeststatus = sa.Enum(
        "pending", "approved", "rejected", "canceled", name="filerequeststatus"
    )
    accesstype.create(op.get_bind(), checkfirst=True)
    filerequeststatus.create(op.get_bind(), checkfirst=True)
    access_type_column = postgresql.ENUM(name="accesstype", create_type=False)
    status_column = postgresql.ENUM(name="filerequeststatus", create_type=False)

    # --- Hierarchies ---
    op.create_table(
        "departments",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("parent_id", sa.UUID(), nullable=True),
        sa.Column("depth", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["parent_id"], ["departments.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_departments_parent_id", "departments", ["parent_id"])
    op.create_index("ix_departments_depth", "departments", ["depth"])

    op.create_table(
        "people",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("login", sa.String(length=120), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=True),
        sa.Column("department_id", sa.UUID(), nullable=True),
        sa.Column("can_submit_files", sa.Boolean(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["department_id"], ["departments.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("login"),
    )
    op.create_index("ix_people_department_id", "people", ["department_id"])

    op.create_table(
        "sections",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "categories",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("section_id", sa.UUID(), nullable=False),
        sa.Column("parent_id", sa.UUID(), nullable=True),
        sa.Column("depth", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["section_id"], ["sections.id"]),
        sa.ForeignKeyConstraint(["parent_id"], ["categories.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_categories_section_id", "categories", ["section_id"])
    op.create_index("ix_categories_parent_id", "categories", ["parent_id"])

    op.create_table(
        "category_translations",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("category_id", sa.UUID(), nullable=False),
        sa.Column("lang", sa.String(length=8), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["category_id"], ["categories.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "category_id", "lang", name="uq_category_translations_lang"
        ),
    )

    # --- File items, versions, assets ---
    op.create_table(
        "file_items",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("section_id", sa.UUID(), nullable=False),
        sa.Column("category_id", sa.UUID(), nullable=False),
        sa.Column("access_type", access_type_column, nullable=False),
        sa.Column("current_version_id", sa.UUID(), nullable=True),
        sa.Column("created_by", sa.UUID(), nullable=False),
        sa.Column("trashed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["section_id"], ["sections.id"]),
        sa.ForeignKeyConstraint(["category_id"], ["categories.id"]),
        sa.ForeignKeyConstraint(["created_by"], ["people.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_file_items_section_id", "file_items", ["section_id"])
    op.create_index("ix_file_items_category_id", "file_items", ["category_id"])
    op.create_index("ix_file_items_trashed_at", "file_items", ["trashed_at"])

    op.create_table(
        "file_translations",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("file_item_id", sa.UUID(), nullable=False),
        sa.Column("lang", sa.String(length=8), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["file_item_id"], ["file_items.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("file_item_id", "lang", name="uq_file_translations_lang"),
    )

    op.create_table(
        "file_versions",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("file_item_id", sa.UUID(), nullable=False),
        sa.Column("version_number", sa.Integer(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("created_by", sa.UUID(), nullable=False),
        sa.Column("trashed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["file_item_id"], ["file_items.id"]),
        sa.ForeignKeyConstraint(["created_by"], ["people.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "file_item_id", "version_number", name="uq_file_versions_item_number"
        ),
    )
    op.create_index(
        "ix_file_versions_file_item_id", "file_versions", ["file_item_id"]
    )

    # file_items <-> file_versions cycle
    op.create_foreign_key(
        "fk_file_items_current_version_id",
        "file_items",
        "file_versions",
        ["current_version_id"],
        ["id"],
    )

    op.create_table(
        "file_version_assets",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("file_version_id", sa.UUID(), nullable=False),
        sa.Column("lang", sa.String(length=8), nullable=False),
        sa.Column("original_name", sa.String(length=500), nullable=False),
        sa.Column("mime_type", sa.String(length=255), nullable=False),
        sa.Column("size_bytes", sa.BigInteger(), nullable=False),
        sa.Column("storage_location", sa.String(length=1024), nullable=False),
        sa.Column("trashed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["file_version_id"], ["file_versions.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_file_version_assets_version_id",
        "file_version_assets",
        ["file_version_id"],
    )
    op.create_index(
        "uq_file_version_assets_active_lang",
        "file_version_assets",
        ["file_version_id", "lang"],
        unique=True,
        postgresql_where=sa.text("trashed_at IS NULL"),
    )

    # --- Access grants ---
    op.create_table(
        "file_access_departments",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("file_item_id", sa.UUID(), nullable=False),
        sa.Column("department_id", sa.UUID(), nullable=False),
        sa.ForeignKeyConstraint(["file_item_id"], ["file_items.id"]),
        sa.ForeignKeyConstraint(["department_id"], ["departments.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "file_item_id", "department_id", name="uq_file_access_departments"
        ),
    )
    op.create_index(
        "ix_file_access_departments_department_id",
        "file_access_departments",
        ["department_id"],
    )

    op.create_table(
        "file_access_users",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("file_item_id", sa.UUID(), nullable=False),
        sa.Column("person_id", sa.UUID(), nullable=False),
        sa.ForeignKeyConstraint(["file_item_id"], ["file_items.id"]),
        sa.ForeignKeyConstraint(["person_id"], ["people.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("file_item_id", "person_id", name="uq_file_access_users"),
    )
    op.create_index(
        "ix_file_access_users_person_id", "file_access_users", ["person_id"]
    )

    # --- File requests ---
    op.create_table(
        "file_requests",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("section_id", sa.UUID(), nullable=False),
        sa.Column("category_id", sa.UUID(), nullable=False),
        sa.Column("access_type", access_type_column, nullable=False),
        sa.Column("status", status_column, nullable=False),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("created_by", sa.UUID(), nullable=False),
        sa.Column("resolved_by", sa.UUID(), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("file_item_id", sa.UUID(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["section_id"], ["sections.id"]),
        sa.ForeignKeyConstraint(["category_id"], ["categories.id"]),
        sa.ForeignKeyConstraint(["created_by"], ["people.id"]),
        sa.ForeignKeyConstraint(["resolved_by"], ["people.id"]),
        sa.ForeignKeyConstraint(["file_item_id"], ["file_items.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_file_requests_status", "file_requests", ["status"])
    op.create_index("ix_file_requests_created_by", "file_requests", ["created_by"])

    op.create_table(
        "file_request_translations",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("file_request_id", sa.UUID(), nullable=False),
        sa.Column("lang", sa.String(length=8), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["file_request_id"], ["file_requests.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "file_request_id", "lang", name="uq_file_request_translations_lang"
        ),
    )

    op.create_table(
        "file_request_assets",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("file_request_id", sa.UUID(), nullable=False),
        sa.Column("lang", sa.String(length=8), nullable=False),
        sa.Column("original_name", sa.String(length=500), nullable=False),
        sa.Column("mime_type", sa.String(length=255), nullable=False),
        sa.Column("size_bytes", sa.BigInteger(), nullable=False),
        sa.Column("storage_location", sa.String(length=1024), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["file_request_id"], ["file_requests.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "file_request_id", "lang", name="uq_file_request_assets_lang"
        ),
    )

    op.create_table(
        "file_request_access_departments",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("file_request_id", sa.UUID(), nullable=False),
        sa.Column("department_id", sa.UUID(), nullable=False),
        sa.ForeignKeyConstraint(["file_request_id"], ["file_requests.id"]),
        sa.ForeignKeyConstraint(["department_id"], ["departments.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "file_request_id",
            "department_id",
            name="uq_file_request_access_departments",
        ),
    )

    op.create_table(
        "file_request_access_users",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("file_request_id", sa.UUID(), nullable=False),
        sa.Column("person_id", sa.UUID(), nullable=False),
        sa.ForeignKeyConstraint(["file_request_id"], ["file_requests.id"]),
        sa.ForeignKeyConstraint(["person_id"], ["people.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "file_request_id", "person_id", name="uq_file_request_access_users"
        ),
    )

    # --- Audit ---
    op.create_table(
        "audit_events",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("actor_id", sa.UUID(), nullable=True),
        sa.Column("action", sa.String(length=120), nullable=False),
        sa.Column("entity_type", sa.String(length=60), nullable=False),
        sa.Column("entity_id", sa.String(length=64), nullable=False),
        sa.Column("diff", sa.JSON(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_audit_events_entity", "audit_events", ["entity_type", "entity_id"]
    )
    op.create_index("ix_audit_events_actor_id", "audit_events", ["actor_id"])


def downgrade() -> None:
    op.drop_index("ix_audit_events_actor_id", table_name="audit_events")
    op.drop_index("ix_audit_events_entity", table_name="audit_events")
    op.drop_table("audit_events")

    op.drop_table("file_request_access_users")
    op.drop_table("file_request_access_departments")
    op.drop_table("file_request_assets")
    op.drop_table("file_request_translations")
    op.drop_index("ix_file_requests_created_by", table_name="file_requests")
    op.drop_index("ix_file_requests_status", table_name="file_requests")
    op.drop_table("file_requests")

    op.drop_index("ix_file_access_users_person_id", table_name="file_access_users")
    op.drop_table("file_access_users")
    op.drop_index(
        "ix_file_access_departments_department_id",
        table_name="file_access_departments",
    )
    op.drop_table("file_access_departments")

    op.drop_index(
        "uq_file_version_assets_active_lang", table_name="file_version_assets"
    )
    op.drop_index(
        "ix_file_version_assets_version_id", table_name="file_version_assets"
    )
    op.drop_table("file_version_assets")

    op.drop_constraint(
        "fk_file_items_current_version_id", "file_items", type_="foreignkey"
    )
    op.drop_index("ix_file_versions_file_item_id", table_name="file_versions")
    op.drop_table("file_versions")
    op.drop_table("file_translations")
    op.drop_index("ix_file_items_trashed_at", table_name="file_items")
    op.drop_index("ix_file_items_category_id", table_name="file_items")
    op.drop_index("ix_file_items_section_id", table_name="file_items")
    op.drop_table("file_items")

    op.drop_table("category_translations")
    op.drop_index("ix_categories_parent_id", table_name="categories")
    op.drop_index("ix_categories_section_id", table_name="categories")
    op.drop_table("categories")
    op.drop_table("sections")
    op.drop_index("ix_people_department_id", table_name="people")
    op.drop_table("people")
    op.drop_index("ix_departments_depth", table_name="departments")
    op.drop_index("ix_departments_parent_id", table_name="departments")
    op.drop_table("departments")

    sa.Enum(name="filerequeststatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="accesstype").drop(op.get_bind(), checkfirst=True)
