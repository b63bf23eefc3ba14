"""
Create the businesses table with row-level security

- businesses table (flat address columns, JSON settings, version counter)
- RLS policies keyed on app.current_user_id, bypassed when app.rls_bypass = 'on'
- Session RPCs: set_current_business_id, get_current_business_id,
  set_business_context, clear_business_context, test_data_isolation
"""

# Ensure this script can be run directly from repo root
import sys
from pathlib import Path

CURRENT_DIR = Path(__file__).resolve().parent
ROOT_DIR = CURRENT_DIR.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from sqlalchemy import text
from app.database import engine

OWNER_OR_BYPASS = """
    current_setting('app.rls_bypass', true) = 'on'
    OR owner_id = current_setting('app.current_user_id', true)
"""

STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS businesses (
        id VARCHAR(36) PRIMARY KEY DEFAULT gen_random_uuid()::text,
        owner_id VARCHAR(128) NOT NULL,
        name VARCHAR(255) NOT NULL,
        description TEXT,
        street VARCHAR(255),
        city VARCHAR(100),
        department VARCHAR(100),
        postal_code VARCHAR(20),
        phone VARCHAR(20),
        whatsapp_number VARCHAR(20),
        email VARCHAR(255) NOT NULL UNIQUE,
        settings JSONB DEFAULT '{"timezone": "America/Bogota", "currency": "COP"}'::jsonb,
        version INTEGER NOT NULL DEFAULT 1,
        created_at TIMESTAMP DEFAULT now(),
        updated_at TIMESTAMP DEFAULT now()
    )
    """,
    "CREATE INDEX IF NOT EXISTS ix_businesses_owner_id ON businesses (owner_id)",
    "CREATE INDEX IF NOT EXISTS ix_businesses_department ON businesses (department)",
    "ALTER TABLE businesses ENABLE ROW LEVEL SECURITY",
    # The application role owns the table; FORCE makes the policies apply to it too
    "ALTER TABLE businesses FORCE ROW LEVEL SECURITY",
    "DROP POLICY IF EXISTS businesses_owner_access_policy ON businesses",
    f"""
    CREATE POLICY businesses_owner_access_policy ON businesses
        FOR ALL
        USING ({OWNER_OR_BYPASS})
        WITH CHECK ({OWNER_OR_BYPASS})
    """,
    """
    CREATE OR REPLACE FUNCTION set_current_business_id(business_uuid UUID)
    RETURNS VOID AS $$
    BEGIN
        PERFORM set_config('app.current_business_id', business_uuid::TEXT, false);
    END;
    $$ LANGUAGE plpgsql
    """,
    """
    CREATE OR REPLACE FUNCTION get_current_business_id()
    RETURNS UUID AS $$
    BEGIN
        RETURN NULLIF(current_setting('app.current_business_id', true), '')::UUID;
    EXCEPTION
        WHEN OTHERS THEN
            RETURN NULL;
    END;
    $$ LANGUAGE plpgsql
    """,
    """
    CREATE OR REPLACE FUNCTION set_business_context(business_id UUID)
    RETURNS VOID AS $$
    BEGIN
        IF NOT EXISTS (
            SELECT 1 FROM businesses b
            WHERE b.id = business_id::TEXT
              AND b.owner_id = current_setting('app.current_user_id', true)
        ) THEN
            RAISE EXCEPTION 'Business % not accessible', business_id USING ERRCODE = '42501';
        END IF;
        PERFORM set_config('app.current_business_id', business_id::TEXT, false);
    END;
    $$ LANGUAGE plpgsql
    """,
    """
    CREATE OR REPLACE FUNCTION clear_business_context()
    RETURNS VOID AS $$
    BEGIN
        PERFORM set_config('app.current_business_id', '', false);
    END;
    $$ LANGUAGE plpgsql
    """,
    """
    CREATE OR REPLACE FUNCTION test_data_isolation(table_name TEXT)
    RETURNS TABLE (id TEXT) AS $$
    BEGIN
        IF table_name = 'businesses' THEN
            -- Row visibility comes from businesses_owner_access_policy alone
            RETURN QUERY SELECT b.id::TEXT FROM businesses b;
        ELSE
            RETURN QUERY EXECUTE format(
                'SELECT id::text FROM %I WHERE business_id::text = current_setting(''app.current_business_id'', true)',
                table_name
            );
        END IF;
    END;
    $$ LANGUAGE plpgsql
    """,
]


def upgrade():
    with engine.connect() as conn:
        for statement in STATEMENTS:
            conn.execute(text(statement))
        conn.commit()
        print("Migration create_businesses_table applied successfully")


def downgrade():
    with engine.connect() as conn:
        for function in (
            "test_data_isolation(TEXT)",
            "clear_business_context()",
            "set_business_context(UUID)",
            "get_current_business_id()",
            "set_current_business_id(UUID)",
        ):
            conn.execute(text(f"DROP FUNCTION IF EXISTS {function}"))
        conn.execute(text("DROP TABLE IF EXISTS businesses"))
        conn.commit()
        print("Migration create_businesses_table rolled back")


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Manage businesses table migration")
    parser.add_argument("--down", action="store_true", help="Rollback the migration")
    args = parser.parse_args()

    if args.down:
        downgrade()
    else:
        upgrade()
