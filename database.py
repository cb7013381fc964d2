"""
PostgreSQL access to the billing store for the GameCP bridge
Direct database connections with raw SQL queries for transparency

Tables mirror the billing system's schema: tblservers, tblproducts,
tblservergroupsrel, tblhosting and tblmodulelog.
"""

import json
import logging
import threading
from typing import Any, Dict, List, Optional, Protocol

import psycopg2
import psycopg2.pool
from psycopg2.extras import RealDictCursor

from config import get_config

logger = logging.getLogger(__name__)

_connection_pool: Optional[psycopg2.pool.ThreadedConnectionPool] = None
_pool_lock = threading.Lock()

# Service record columns the bridge is allowed to write
SERVICE_COLUMNS = frozenset({'username', 'assignedips', 'dedicatedip', 'domain'})


class BillingStore(Protocol):
    """Read/write access to billing records used by the GameCP hooks"""

    def get_server(self, server_id: int) -> Optional[Dict[str, Any]]:
        ...

    def get_product(self, product_id: int) -> Optional[Dict[str, Any]]:
        ...

    def find_group_server(self, group_id: int, server_type: str) -> Optional[Dict[str, Any]]:
        ...

    def update_service(self, service_id: int, fields: Dict[str, Any]) -> bool:
        ...


def get_connection_pool() -> psycopg2.pool.ThreadedConnectionPool:
    """Get or create the database connection pool"""
    global _connection_pool
    if _connection_pool is None:
        with _pool_lock:
            if _connection_pool is None:
                db_config = get_config().database
                if not db_config.url:
                    raise ValueError("Database URL not found - set DATABASE_URL")
                _connection_pool = psycopg2.pool.ThreadedConnectionPool(
                    minconn=db_config.pool_min,
                    maxconn=db_config.pool_max,
                    dsn=db_config.url,
                    cursor_factory=RealDictCursor,
                    connect_timeout=db_config.connect_timeout,
                )
                logger.info(f"✅ Connection pool created ({db_config.pool_min}-{db_config.pool_max} connections)")
    return _connection_pool


def close_connection_pool():
    global _connection_pool
    with _pool_lock:
        if _connection_pool is not None:
            _connection_pool.closeall()
            _connection_pool = None
            logger.info("🔒 Connection pool closed")


def get_connection():
    return get_connection_pool().getconn()


def return_connection(conn, is_broken: bool = False):
    """Return connection to pool, discarding it when broken"""
    try:
        get_connection_pool().putconn(conn, close=is_broken)
    except Exception as e:
        logger.warning(f"⚠️ Could not return connection to pool: {e}")
        try:
            conn.close()
        except Exception as close_error:
            logger.debug(f"Connection close after failed return: {close_error}")


def execute_query(query: str, params: Optional[tuple] = None) -> List[Dict]:
    """Execute a SELECT query and return rows as dicts"""
    conn = get_connection()
    broken = False
    try:
        with conn.cursor() as cursor:
            cursor.execute(query, params)
            rows = cursor.fetchall()
            return [dict(row) for row in rows] if rows else []
    except (psycopg2.OperationalError, psycopg2.InterfaceError) as e:
        broken = True
        logger.error(f"💥 CONNECTION ERROR in execute_query: {e}")
        raise
    finally:
        if not broken:
            try:
                conn.rollback()
            except Exception:
                broken = True
        return_connection(conn, is_broken=broken)


def execute_update(query: str, params: Optional[tuple] = None) -> int:
    """Execute an UPDATE/INSERT/DELETE query and return affected rows (no retries)"""
    conn = get_connection()
    broken = False
    try:
        with conn.cursor() as cursor:
            cursor.execute(query, params)
            rowcount = cursor.rowcount
        conn.commit()
        logger.debug(f"✅ SQL UPDATE: affected {rowcount} rows")
        return rowcount
    except (psycopg2.OperationalError, psycopg2.InterfaceError) as e:
        broken = True
        logger.error(f"💥 CONNECTION ERROR in execute_update: {e}")
        raise
    except Exception as e:
        logger.error(f"💥 SQL ERROR in execute_update: {type(e).__name__}: {e}")
        try:
            conn.rollback()
        except Exception as rollback_error:
            logger.error(f"Failed to rollback transaction: {rollback_error}")
            broken = True
        raise
    finally:
        return_connection(conn, is_broken=broken)


class PostgresBillingStore:
    """BillingStore backed by the billing tables in PostgreSQL"""

    def get_server(self, server_id: int) -> Optional[Dict[str, Any]]:
        rows = execute_query("""
            SELECT id, name, type, hostname, ipaddress, accesshash
            FROM tblservers WHERE id = %s
            LIMIT 1
        """, (server_id,))
        return rows[0] if rows else None

    def get_product(self, product_id: int) -> Optional[Dict[str, Any]]:
        rows = execute_query("""
            SELECT id, name, servergroup FROM tblproducts WHERE id = %s
            LIMIT 1
        """, (product_id,))
        return rows[0] if rows else None

    def find_group_server(self, group_id: int, server_type: str) -> Optional[Dict[str, Any]]:
        rows = execute_query("""
            SELECT s.id, s.name, s.type, s.hostname, s.ipaddress, s.accesshash
            FROM tblservers s
            JOIN tblservergroupsrel r ON s.id = r.serverid
            WHERE r.groupid = %s AND s.type = %s
            ORDER BY s.id
            LIMIT 1
        """, (group_id, server_type))
        return rows[0] if rows else None

    def update_service(self, service_id: int, fields: Dict[str, Any]) -> bool:
        unknown = set(fields) - SERVICE_COLUMNS
        if unknown:
            raise ValueError(f"Refusing to write unknown service columns: {sorted(unknown)}")
        if not fields:
            return False

        columns = sorted(fields)
        assignments = ', '.join(f"{column} = %s" for column in columns)
        values = tuple(fields[column] for column in columns) + (service_id,)
        rowcount = execute_update(f"UPDATE tblhosting SET {assignments} WHERE id = %s", values)
        return rowcount > 0


def write_module_log_entry(entry) -> None:
    """ModuleCallLog handler persisting entries to tblmodulelog"""
    execute_update("""
        INSERT INTO tblmodulelog (date, module, action, request, response, arrdata)
        VALUES (%s, %s, %s, %s, %s, %s)
    """, (
        entry.timestamp,
        entry.module,
        entry.action,
        json.dumps(entry.request, default=str),
        json.dumps(entry.response, default=str),
        json.dumps(entry.processed, default=str),
    ))
