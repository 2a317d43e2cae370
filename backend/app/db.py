from contextlib import contextmanager
from typing import Optional

from psycopg.rows import dict_row

# psycopg3 connection pooling lives in a separate package.
from psycopg_pool import ConnectionPool

from .config import settings

_pool: Optional[ConnectionPool] = None


def open_pool() -> ConnectionPool:
    # Raises ConfigurationError when DATABASE_URL is unset; callers treat that as fatal.
    global _pool
    if _pool is None:
        _pool = ConnectionPool(
            conninfo=settings.require_database_url(),
            min_size=settings.db_pool_min,
            max_size=settings.db_pool_max,
            kwargs={"row_factory": dict_row},
        )
    return _pool


@contextmanager
def _pooled_conn(pool: ConnectionPool):
    # `with get_conn() as conn:` commits on success, rolls back on exception
    # and returns the connection to the pool.
    with pool.connection() as conn:
        with conn:
            yield conn


def get_conn():
    return _pooled_conn(open_pool())


def close_pools() -> None:
    global _pool
    if _pool is None:
        return
    try:
        _pool.close()
    finally:
        _pool = None


def set_owner_context(conn, owner_id: str):
    with conn.cursor() as cur:
        # `SET ... = %s` is not valid when using the extended query protocol (psycopg sends $1).
        # Use set_config() to safely parameterize the value.
        cur.execute(
            "SELECT set_config('app.current_owner_id', %s::text, true)",
            (owner_id,),
        )
