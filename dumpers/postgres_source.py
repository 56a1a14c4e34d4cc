"""
Adaptador de origen PostgreSQL.

RESPONSABILIDAD:
- SourceConnectionPool: pool de conexiones del proceso (se abre una vez al
  inicio y se cierra una vez al final; cerrar dos veces no hace nada)
- PostgresRowSource: COUNT(*) y SELECT paginado sobre una tabla

DECISIONES DE DISEÑO:
- psycopg2 es bloqueante: cada consulta corre en un hilo (asyncio.to_thread)
  y la tarea que la emitió queda suspendida hasta la respuesta
- ThreadedConnectionPool falla si se agota; un semáforo acotado hace que
  las tareas sobrantes esperen turno en vez de fallar
- Identificadores con sql.Identifier y LIMIT/OFFSET como parámetros
- COUNT y SELECT usan conexiones distintas: no comparten snapshot, escrituras
  concurrentes en el origen pueden duplicar u omitir filas
- Todas las ventanas de un fetch van por la misma conexión, en orden
"""

import asyncio
import threading
from contextlib import contextmanager

import psycopg2
from psycopg2 import sql
from psycopg2.extras import RealDictCursor
from psycopg2.pool import ThreadedConnectionPool

from .base import BaseRowSource
from .chunking import is_unbounded
from .errors import SourceQueryError


def table_identifier(table_name):
    """
    Construye el identificador SQL citado de una tabla.

    'book' → "book", 'public.book' → "public"."book"

    Raises:
        SourceQueryError: Si el nombre (o alguna de sus partes) está vacío
    """
    if not isinstance(table_name, str):
        raise SourceQueryError(f"Nombre de tabla inválido: {table_name!r}")
    parts = table_name.split(".")
    if not all(part.strip() for part in parts):
        raise SourceQueryError(f"Nombre de tabla inválido: {table_name!r}", table_name)
    return sql.Identifier(*parts)


def build_count_query(table_name):
    return sql.SQL("SELECT COUNT(*) FROM {}").format(table_identifier(table_name))


def build_select_queries(table_name, plan):
    """
    Genera las consultas (query, params) de un plan de lectura.

    Returns:
        list[tuple]: Una consulta sin filtro si el plan no tiene límite,
                     o una consulta LIMIT/OFFSET por ventana
    """
    identifier = table_identifier(table_name)

    if is_unbounded(plan):
        return [(sql.SQL("SELECT * FROM {}").format(identifier), None)]

    query = sql.SQL("SELECT * FROM {} LIMIT %s OFFSET %s").format(identifier)
    return [(query, (chunk.limit, chunk.offset)) for chunk in plan]


def with_statement_timeout(connect_kwargs, statement_timeout_ms):
    """
    Agrega statement_timeout a las opciones de conexión de libpq.

    El servidor cancela la consulta al vencer el plazo, de modo que el hilo
    que espera en psycopg2 también termina.

    Returns:
        dict: Copia de connect_kwargs (sin cambios si el plazo es None)
    """
    kwargs = dict(connect_kwargs)
    if statement_timeout_ms is None:
        return kwargs
    option = f"-c statement_timeout={int(statement_timeout_ms)}"
    existing = kwargs.get("options")
    kwargs["options"] = f"{existing} {option}" if existing else option
    return kwargs


class SourceConnectionPool:
    """
    Handle explícito del pool de conexiones al origen.

    Ciclo de vida:
        pool = SourceConnectionPool(1, 10, **config.SOURCE_CONFIG)
        pool.open()
        with pool.connection() as conn:
            ...
        pool.close()

    Attributes:
        minconn, maxconn: Límites del pool
        statement_timeout_ms: statement_timeout de cada conexión (None = sin límite)
        closed (bool): True tras close(); el pool ya no entrega conexiones
    """

    def __init__(self, minconn, maxconn, pool_factory=ThreadedConnectionPool,
                 statement_timeout_ms=None, **connect_kwargs):
        if maxconn < 1 or minconn > maxconn:
            raise ValueError(f"Límites de pool inválidos: min={minconn}, max={maxconn}")
        self.minconn = minconn
        self.maxconn = maxconn
        self._pool_factory = pool_factory
        self.statement_timeout_ms = statement_timeout_ms
        self._connect_kwargs = with_statement_timeout(connect_kwargs, statement_timeout_ms)
        self._pool = None
        self._closed = False
        self._slots = threading.BoundedSemaphore(maxconn)
        self._lock = threading.Lock()

    @property
    def closed(self):
        return self._closed

    def open(self):
        """Crea el pool. Llamadas posteriores no hacen nada."""
        with self._lock:
            if self._closed:
                raise SourceQueryError("El pool de origen ya fue cerrado")
            if self._pool is not None:
                return self
            try:
                self._pool = self._pool_factory(
                    self.minconn, self.maxconn, **self._connect_kwargs
                )
            except psycopg2.Error as e:
                raise SourceQueryError(f"No se pudo conectar al origen: {e}") from e
        return self

    @contextmanager
    def connection(self):
        """
        Presta una conexión del pool y la devuelve al salir.

        Bloquea si todas las conexiones están en uso.

        Raises:
            SourceQueryError: Si el pool no está abierto o no entrega conexión
        """
        if self._closed or self._pool is None:
            raise SourceQueryError("El pool de origen no está abierto")

        self._slots.acquire()
        try:
            with self._lock:
                pool = self._pool
            if pool is None:
                raise SourceQueryError("El pool de origen no está abierto")
            try:
                conn = pool.getconn()
            except psycopg2.Error as e:
                raise SourceQueryError(f"No se pudo obtener conexión: {e}") from e
            try:
                yield conn
            finally:
                self._release(pool, conn)
        finally:
            self._slots.release()

    def _release(self, pool, conn):
        # El pool pudo cerrarse mientras la conexión estaba prestada
        # (ej: una tarea vencida cuyo hilo sigue en el driver)
        with self._lock:
            if self._closed or self._pool is not pool:
                if not conn.closed:
                    conn.close()
                return
            pool.putconn(conn, close=bool(conn.closed))

    def close(self):
        """Cierra todas las conexiones. Idempotente."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            if self._pool is not None:
                self._pool.closeall()
                self._pool = None


class PostgresRowSource(BaseRowSource):
    """
    Origen relacional sobre un SourceConnectionPool compartido.

    Attributes:
        pool: SourceConnectionPool abierto
    """

    def __init__(self, pool):
        self.pool = pool

    # =========================================================================
    # MÉTODOS PÚBLICOS (CORRUTINAS)
    # =========================================================================

    async def count(self, table):
        return await asyncio.to_thread(self._count_sync, table)

    async def fetch(self, table, plan):
        return await asyncio.to_thread(self._fetch_sync, table, plan)

    async def execute_statements(self, statements, multi_statements=True):
        """
        Ejecuta sentencias sueltas en una transacción (ej: limpieza previa).

        Args:
            statements: Lista de sentencias SQL de confianza
            multi_statements: True = un solo execute con las sentencias unidas
                              por ';', False = un execute por sentencia
        """
        return await asyncio.to_thread(
            self._execute_statements_sync, list(statements), multi_statements
        )

    # =========================================================================
    # MÉTODOS PRIVADOS (BLOQUEANTES, CORREN EN HILOS)
    # =========================================================================

    def _count_sync(self, table):
        query = build_count_query(table)
        with self.pool.connection() as conn:
            try:
                # `with conn` cierra la transacción (commit/rollback), no la conexión
                with conn, conn.cursor() as cursor:
                    cursor.execute(query)
                    row_count = cursor.fetchone()[0]
            except psycopg2.Error as e:
                raise SourceQueryError(f"Error contando filas de '{table}': {e}", table) from e
        return int(row_count)

    def _fetch_sync(self, table, plan):
        queries = build_select_queries(table, plan)
        rows = []
        with self.pool.connection() as conn:
            try:
                with conn, conn.cursor(cursor_factory=RealDictCursor) as cursor:
                    for query, params in queries:
                        cursor.execute(query, params)
                        rows.extend(cursor.fetchall())
            except psycopg2.Error as e:
                # Todo o nada: las ventanas ya leídas se descartan
                raise SourceQueryError(f"Error leyendo '{table}': {e}", table) from e
        return rows

    def _execute_statements_sync(self, statements, multi_statements):
        statements = [s.strip().rstrip(";") for s in statements if s and s.strip()]
        if not statements:
            return 0

        with self.pool.connection() as conn:
            try:
                with conn, conn.cursor() as cursor:
                    if multi_statements:
                        cursor.execute("; ".join(statements) + ";")
                    else:
                        for statement in statements:
                            cursor.execute(statement)
            except psycopg2.Error as e:
                raise SourceQueryError(f"Error ejecutando sentencias en el origen: {e}") from e
        return len(statements)
