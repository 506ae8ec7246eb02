"""create members

Revision ID: 0002_create_members
Revises: 0001_create_profiles_and_roles
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "0002_create_members"
down_revision = "0001_create_profiles_and_roles"
branch_labels = None
depends_on = None

member_category = sa.Enum(
    "Members", "Pastors", "Workers", "Visitors", "Partners", "Sons", "MINT", "Others",
    name="member_category",
)


def upgrade() -> None:
    app_role = postgresql.ENUM(name="app_role", create_type=False)
    op.create_table(
        "members",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True),
        sa.Column("fullname", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=30), nullable=True),
        sa.Column("address", sa.String(length=255), nullable=True),
        sa.Column("genotype", sa.String(length=10), nullable=True),
        sa.Column("category", member_category, nullable=False, server_default="Members"),
        sa.Column("title", sa.String(length=100), nullable=True),
        sa.Column("assignedto", sa.String(length=36), sa.ForeignKey("members.id", ondelete="SET NULL"), nullable=True),
        sa.Column("churchunit", sa.String(length=100), nullable=True),
        sa.Column("churchunits", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("auxanogroup", sa.String(length=100), nullable=True),
        sa.Column("joindate", sa.Date(), nullable=False, server_default=sa.func.current_date()),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("isactive", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("role", app_role, nullable=False, server_default="user"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_members_email", "members", ["email"], unique=True)
    op.create_index("ix_members_user_id", "members", ["user_id"])
    op.create_index("ix_members_category", "members", ["category"])


def downgrade() -> None:
    op.drop_index("ix_members_category", table_name="members")
    op.drop_index("ix_members_user_id", table_name="members")
    op.drop_index("ix_members_email", table_name="members")
    op.drop_table("members")
    member_category.drop(op.get_bind(), checkfirst=True)
