import logging
import os
import time

from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import DATABASE_URL

logger = logging.getLogger(__name__)

# Get environment-specific pool settings
POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "10"))
MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "20"))
POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", "30"))
POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", "300"))
ENABLE_QUERY_LOGGING = os.getenv("DB_LOG_SLOW_QUERIES", "true").lower() == "true"
SLOW_QUERY_THRESHOLD = float(os.getenv("DB_SLOW_QUERY_THRESHOLD", "1.0"))

engine_options = {"pool_pre_ping": True, "echo": False}
if not DATABASE_URL.startswith("sqlite"):
    # SQLite pools reject the sizing arguments
    engine_options.update(
        pool_recycle=POOL_RECYCLE,
        pool_size=POOL_SIZE,
        max_overflow=MAX_OVERFLOW,
        pool_timeout=POOL_TIMEOUT,
    )

try:
    engine = create_engine(DATABASE_URL, **engine_options)
    logger.info("✅ Database engine created successfully")
    if "pool_size" in engine_options:
        logger.info(
            f"📊 Connection pool: size={POOL_SIZE}, max_overflow={MAX_OVERFLOW}, timeout={POOL_TIMEOUT}s"
        )
except Exception as e:
    logger.error(f"❌ Failed to create database engine: {e}")
    raise

# Slow query logging for performance monitoring
if ENABLE_QUERY_LOGGING:

    @event.listens_for(engine, "before_cursor_execute")
    def before_cursor_execute(conn, _cursor, statement, _parameters, context, _executemany):
        conn.info.setdefault("query_start_time", []).append(time.time())

    @event.listens_for(engine, "after_cursor_execute")
    def after_cursor_execute(conn, _cursor, statement, _parameters, context, _executemany):
        total = time.time() - conn.info["query_start_time"].pop(-1)
        if total > SLOW_QUERY_THRESHOLD:
            logger.warning(f"🐌 Slow query ({total:.2f}s): {statement[:200]}...")


# RLS identity is set with session-level set_config; the pool only rolls back
RLS_SESSION_RESET = (
    "SELECT set_config('app.current_user_id', '', false), "
    "set_config('app.current_business_id', '', false)"
)


def reset_rls_session(dbapi_connection, connection_record):
    """Clear tenant session variables before a connection is reused by another request"""
    if dbapi_connection is None:
        return
    try:
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute(RLS_SESSION_RESET)
        finally:
            cursor.close()
        dbapi_connection.commit()
    except Exception as e:
        logger.error(f"❌ Failed to reset RLS session variables, discarding connection: {e}")
        connection_record.invalidate(e)


if not DATABASE_URL.startswith("sqlite"):
    event.listen(engine, "checkin", reset_rls_session)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
