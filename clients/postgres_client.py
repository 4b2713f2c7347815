"""
Pooled PostgreSQL access for the order tables.

psycopg2 ThreadedConnectionPool, one per database URL and shared by every
PostgresClient pointed at it. A connection is borrowed for exactly one
statement, or one transaction() block, then handed back.
"""

import json
import logging
import threading
from contextlib import contextmanager
from enum import Enum
from typing import Any, Dict, Iterator, List, Tuple
from uuid import UUID

import psycopg2
import psycopg2.extras
import psycopg2.pool

logger = logging.getLogger(__name__)

Params = Tuple | Dict | None

# register_default_jsonb/register_uuid are process-wide; run them once
_adapters_registered = False


class PostgresClient:
    """
    Rows come back as plain dicts; UUID, Enum and JSON parameters are
    adapted on the way in.

    Usage:
        db = PostgresClient(database_url)
        row = db.execute_single("SELECT * FROM orders WHERE id = %s", (order_id,))

        with db.transaction() as cur:
            cur.execute("DELETE FROM order_line_items WHERE order_id = %s", (order_id,))
            cur.execute("INSERT INTO order_line_items ...", params)
    """

    _connection_pools: Dict[str, psycopg2.pool.ThreadedConnectionPool] = {}
    _pools_lock = threading.RLock()

    def __init__(self, database_url: str, min_connections: int = 2, max_connections: int = 20):
        self._database_url = database_url
        self._pool_size = (min_connections, max_connections)
        self._pool()

    def _pool(self) -> psycopg2.pool.ThreadedConnectionPool:
        global _adapters_registered

        with self._pools_lock:
            pool = self._connection_pools.get(self._database_url)
            if pool is not None:
                return pool

            minconn, maxconn = self._pool_size
            pool = psycopg2.pool.ThreadedConnectionPool(
                minconn=minconn,
                maxconn=maxconn,
                dsn=self._database_url,
                connect_timeout=30,
            )
            if not _adapters_registered:
                psycopg2.extras.register_default_jsonb(globally=True)
                psycopg2.extras.register_uuid()
                _adapters_registered = True

            self._connection_pools[self._database_url] = pool
            logger.info("Postgres pool opened (%d-%d connections)", minconn, maxconn)
            return pool

    @contextmanager
    def _cursor(self) -> Iterator[Any]:
        """
        Dict cursor on a borrowed connection.

        Commits if the block finishes, rolls back if it raises; the
        connection goes back to the pool either way.
        """
        pool = self._pool()
        conn = pool.getconn()
        if conn is None:
            raise RuntimeError("Connection pool exhausted")

        try:
            with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                yield cur
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            pool.putconn(conn)

    def execute(self, query: str, params: Params = None) -> List[Dict[str, Any]]:
        """Run one statement in its own transaction. [] when there is no result set."""
        with self._cursor() as cur:
            return _run(cur, query, _adapt(params))

    def execute_single(self, query: str, params: Params = None) -> Dict[str, Any] | None:
        rows = self.execute(query, params)
        return rows[0] if rows else None

    def execute_scalar(self, query: str, params: Params = None) -> Any:
        row = self.execute_single(query, params)
        return next(iter(row.values())) if row else None

    def execute_returning(self, query: str, params: Params = None) -> List[Dict[str, Any]]:
        """INSERT/UPDATE ... RETURNING."""
        return self.execute(query, params)

    @contextmanager
    def transaction(self) -> Iterator["TransactionCursor"]:
        """Several statements on one connection, committed together."""
        with self._cursor() as cur:
            yield TransactionCursor(cur)

    def close(self) -> None:
        with self._pools_lock:
            pool = self._connection_pools.pop(self._database_url, None)
        if pool is not None:
            pool.closeall()


class TransactionCursor:
    """Statement runner handed out by PostgresClient.transaction()."""

    def __init__(self, cursor):
        self._cursor = cursor

    def execute(self, query: str, params: Params = None) -> List[Dict[str, Any]]:
        return _run(self._cursor, query, _adapt(params))


def _run(cur, query: str, params: Params) -> List[Dict[str, Any]]:
    cur.execute(query, params)
    return [dict(row) for row in cur.fetchall()] if cur.description else []


def _adapt(params: Params) -> Params:
    if params is None:
        return None
    if isinstance(params, dict):
        return {key: _adapt_value(value) for key, value in params.items()}
    return tuple(_adapt_value(value) for value in params)


def _adapt_value(value: Any) -> Any:
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (dict, list)):
        return psycopg2.extras.Json(value, dumps=lambda obj: json.dumps(obj, default=str))
    return value
