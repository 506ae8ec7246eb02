"""role helper functions and row level security

Revision ID: 0004_role_helpers_and_policies
Revises: 0003_create_content_tables
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0004_role_helpers_and_policies"
down_revision = "0003_create_content_tables"
branch_labels = None
depends_on = None

CONTENT_TABLES = ("events", "sermons", "announcements")

HELPERS = """
CREATE OR REPLACE FUNCTION public.has_role(_role app_role)
RETURNS boolean
LANGUAGE sql STABLE SECURITY DEFINER SET search_path = public
AS $$
    SELECT EXISTS (SELECT 1 FROM public.user_roles WHERE user_id = auth.uid()::text AND role = _role)
$$;

CREATE OR REPLACE FUNCTION public.is_superuser()
RETURNS boolean
LANGUAGE sql STABLE SECURITY DEFINER SET search_path = public
AS $$
    SELECT public.has_role('superuser')
$$;

CREATE OR REPLACE FUNCTION public.is_admin()
RETURNS boolean
LANGUAGE sql STABLE SECURITY DEFINER SET search_path = public
AS $$
    SELECT public.has_role('admin') OR public.has_role('superuser')
$$;
"""


def _supports_auth_schema() -> bool:
    bind = op.get_bind()
    if bind.dialect.name != "postgresql":
        return False
    return bind.execute(sa.text("SELECT to_regprocedure('auth.uid()') IS NOT NULL")).scalar()


def upgrade() -> None:
    if not _supports_auth_schema():
        return

    op.execute(HELPERS)

    for table in ("profiles", "members", "user_roles", *CONTENT_TABLES):
        op.execute(f"ALTER TABLE public.{table} ENABLE ROW LEVEL SECURITY")

    # A policy on user_roles that queried user_roles would recurse; go through the helpers.
    op.execute(
        """
CREATE POLICY profiles_select_own ON public.profiles FOR SELECT USING (id = auth.uid()::text OR public.is_admin());
CREATE POLICY profiles_update_own ON public.profiles FOR UPDATE USING (id = auth.uid()::text OR public.is_superuser());
CREATE POLICY profiles_insert_own ON public.profiles FOR INSERT WITH CHECK (id = auth.uid()::text OR public.is_superuser());
CREATE POLICY profiles_delete_super ON public.profiles FOR DELETE USING (public.is_superuser());

CREATE POLICY members_select ON public.members FOR SELECT USING (user_id = auth.uid()::text OR public.is_admin());
CREATE POLICY members_insert ON public.members FOR INSERT WITH CHECK (user_id = auth.uid()::text OR public.is_admin());
CREATE POLICY members_update ON public.members FOR UPDATE USING (user_id = auth.uid()::text OR public.is_admin());
CREATE POLICY members_delete ON public.members FOR DELETE USING (public.is_admin());

CREATE POLICY user_roles_select ON public.user_roles FOR SELECT USING (user_id = auth.uid()::text OR public.is_superuser());
CREATE POLICY user_roles_write ON public.user_roles FOR ALL USING (public.is_superuser()) WITH CHECK (public.is_superuser());
"""
    )
    for table in CONTENT_TABLES:
        op.execute(f"CREATE POLICY {table}_read ON public.{table} FOR SELECT USING (true)")
        op.execute(
            f"CREATE POLICY {table}_admin_write ON public.{table} FOR ALL "
            "USING (public.is_admin()) WITH CHECK (public.is_admin())"
        )


def downgrade() -> None:
    if not _supports_auth_schema():
        return

    for table in CONTENT_TABLES:
        op.execute(f"DROP POLICY IF EXISTS {table}_admin_write ON public.{table}")
        op.execute(f"DROP POLICY IF EXISTS {table}_read ON public.{table}")
    for policy, table in (
        ("user_roles_write", "user_roles"),
        ("user_roles_select", "user_roles"),
        ("members_delete", "members"),
        ("members_update", "members"),
        ("members_insert", "members"),
        ("members_select", "members"),
        ("profiles_delete_super", "profiles"),
        ("profiles_insert_own", "profiles"),
        ("profiles_update_own", "profiles"),
        ("profiles_select_own", "profiles"),
    ):
        op.execute(f"DROP POLICY IF EXISTS {policy} ON public.{table}")
    for table in ("profiles", "members", "user_roles", *CONTENT_TABLES):
        op.execute(f"ALTER TABLE public.{table} DISABLE ROW LEVEL SECURITY")
    op.execute("DROP FUNCTION IF EXISTS public.is_admin()")
    op.execute("DROP FUNCTION IF EXISTS public.is_superuser()")
    op.execute("DROP FUNCTION IF EXISTS public.has_role(app_role)")
