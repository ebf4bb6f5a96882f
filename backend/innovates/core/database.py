"""
Database access for America Innovates (Postgres managed by Supabase)

This module centralizes every way the API touches the database:
- psycopg2 direct connections (raw SQL in repositories)
- SQLAlchemy metadata (table definitions in innovates.models, used to create the schema)
- Supabase client (storage uploads)

Connections are created lazily so the app can be imported without a DATABASE_URL.
"""
import time
import logging

import psycopg2
from psycopg2.extras import RealDictCursor
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base
from supabase import create_client, Client

from .config import settings
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


# ============================================================================
# SQLAlchemy (schema definitions)
# ============================================================================

Base = declarative_base()

_engine = None


def get_engine():
    """
    Return the shared SQLAlchemy engine, creating it on first use.

    Only used by schema tooling (scripts/init_db.py); request handlers use
    psycopg2 connections below.
    """
    global _engine
    if _engine is None:
        if not settings.DATABASE_URL:
            raise Exception("DATABASE_URL not configured")
        _engine = create_engine(
            settings.DATABASE_URL,
            pool_pre_ping=True,
            pool_size=5,
            max_overflow=10,
        )
    return _engine


# ============================================================================
# psycopg2 Direct Connections (for raw SQL queries)
# ============================================================================

def get_db_connection_dict_with_retry(max_retries=3, retry_delay=1.0):
    """
    Get a psycopg2 connection with RealDictCursor and automatic retry

    Same as get_db_connection_with_retry but returns dicts instead of tuples.
    Every repository opens its connections through this function.

    Example:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()
        cursor.execute("SELECT * FROM submissions")
        results = cursor.fetchall()  # Returns list of dicts
        cursor.close()
        conn.close()
    """
    return get_db_connection_with_retry(max_retries=max_retries, retry_delay=retry_delay, dict_cursor=True)


def get_db_connection_with_retry(max_retries=3, retry_delay=1.0, dict_cursor=False):
    """
    Get a psycopg2 connection with automatic retry on SSL/connection failures

    Supabase's pooler occasionally drops SSL connections; this retries up to
    max_retries times with exponential backoff between attempts.

    Args:
        max_retries: Maximum number of connection attempts (default: 3)
        retry_delay: Initial delay between retries in seconds (default: 1.0)
        dict_cursor: Use RealDictCursor as the connection's cursor factory

    Returns:
        psycopg2 connection object

    Raises:
        psycopg2.OperationalError: If all retry attempts fail
    """
    database_url = settings.DATABASE_URL
    if not database_url:
        raise Exception("DATABASE_URL not configured")

    connect_kwargs = {"cursor_factory": RealDictCursor} if dict_cursor else {}
    last_error = None

    for attempt in range(1, max_retries + 1):
        try:
            logger.debug(f"Database connection attempt {attempt}/{max_retries}")
            conn = psycopg2.connect(database_url, **connect_kwargs)

            cursor = conn.cursor()
            cursor.execute("SELECT 1")
            cursor.close()

            return conn

        except psycopg2.OperationalError as e:
            last_error = e
            error_msg = str(e)

            if "SSL connection has been closed unexpectedly" in error_msg:
                logger.warning(f"SSL connection error on attempt {attempt}/{max_retries}: {error_msg}")
            else:
                logger.warning(f"Connection error on attempt {attempt}/{max_retries}: {error_msg}")

            if attempt < max_retries:
                delay = retry_delay * (2 ** (attempt - 1))
                logger.info(f"Retrying in {delay:.2f} seconds...")
                time.sleep(delay)
            else:
                logger.error(f"All {max_retries} connection attempts failed")
                raise last_error

    raise last_error if last_error else Exception("Connection failed after all retries")


# ============================================================================
# Supabase Client (storage)
# ============================================================================

_supabase: Client = None


def get_supabase() -> Client:
    """
    FastAPI dependency returning the service-role Supabase client

    Usage:
        @router.post("/upload")
        def upload(sb: Client = Depends(get_supabase)):
            ...
    """
    global _supabase
    if _supabase is None:
        if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
            raise ConfigurationError("Supabase not configured. Set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY")
        _supabase = create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)
    return _supabase
