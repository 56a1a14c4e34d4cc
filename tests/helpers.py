"""
Dobles de prueba compartidos por todos los tests.

Reemplazan PostgreSQL y MongoDB en memoria para que los tests NO necesiten
bases de datos reales:
- FakeRowSource / FakeDocumentSink: adaptadores asíncronos (contratos de dumpers.base)
- FakePgPool / FakePgConnection: piezas de psycopg2 para PostgresRowSource
- FakeMongoClient: pieza de pymongo para MongoDocumentSink
"""

import asyncio
import sys
import os
from types import SimpleNamespace

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dumpers.base import BaseDocumentSink, BaseRowSource
from dumpers.chunking import is_unbounded
from dumpers.errors import SinkWriteError, SourceQueryError
from dumpers.models import InsertAcknowledgment


# =========================================================================
# ADAPTADORES ASÍNCRONOS
# =========================================================================


class FakeRowSource(BaseRowSource):
    """
    Origen en memoria: {tabla: [filas]}.

    Attributes:
        fail_count / fail_fetch: Tablas cuyo count / fetch lanza SourceQueryError
        delays: {tabla: segundos} de espera antes de responder
        calls: Registro de llamadas ('count'|'fetch', tabla, plan)
    """

    def __init__(self, tables, fail_count=(), fail_fetch=(), delays=None):
        self.tables = {name: list(rows) for name, rows in tables.items()}
        self.fail_count = set(fail_count)
        self.fail_fetch = set(fail_fetch)
        self.delays = delays or {}
        self.calls = []

    async def count(self, table):
        self.calls.append(("count", table, None))
        await asyncio.sleep(self.delays.get(table, 0))
        if table in self.fail_count or table not in self.tables:
            raise SourceQueryError(f"tabla '{table}' no disponible", table)
        return len(self.tables[table])

    async def fetch(self, table, plan):
        self.calls.append(("fetch", table, plan))
        await asyncio.sleep(self.delays.get(table, 0))
        if table in self.fail_fetch:
            raise SourceQueryError(f"fetch de '{table}' falló", table)
        rows = self.tables[table]
        if is_unbounded(plan):
            return [dict(row) for row in rows]
        result = []
        for chunk in plan:
            result.extend(dict(row) for row in rows[chunk.offset:chunk.offset + chunk.limit])
        return result


class FakeDocumentSink(BaseDocumentSink):
    """
    Destino en memoria: {colección: [documentos]}.

    Attributes:
        fail_insert: Colecciones donde el borrado funciona pero la inserción falla
        events: Registro ordenado de ('delete'|'insert', colección)
    """

    def __init__(self, collections=None, fail_insert=(), delays=None):
        self.collections = {name: list(docs) for name, docs in (collections or {}).items()}
        self.fail_insert = set(fail_insert)
        self.delays = delays or {}
        self.events = []

    async def replace(self, collection, records):
        await asyncio.sleep(self.delays.get(collection, 0))
        deleted = len(self.collections.get(collection, []))
        self.collections[collection] = []
        self.events.append(("delete", collection))

        if collection in self.fail_insert:
            raise SinkWriteError(f"bulk insert en '{collection}' falló", collection)

        self.collections[collection] = [dict(record) for record in records]
        self.events.append(("insert", collection))
        return InsertAcknowledgment(collection, len(records), deleted)


def sample_tables():
    """Tablas de ejemplo con filas de distinto tamaño."""
    return {
        "member": [{"id": i, "name": f"member-{i}"} for i in range(1, 6)],
        "book": [{"id": i, "title": f"book-{i}", "pages": 100 + i} for i in range(1, 4)],
        "article": [],
    }


# =========================================================================
# PSYCOPG2
# =========================================================================


class FakePgCursor:
    """Cursor psycopg2 mínimo: responde con la función `responder(query, params)`."""

    def __init__(self, connection, cursor_factory=None):
        self.connection = connection
        self.cursor_factory = cursor_factory
        self._result = []

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, query, params=None):
        self.connection.executed.append((query, params))
        self._result = self.connection.responder(query, params)

    def fetchone(self):
        return self._result[0] if self._result else None

    def fetchall(self):
        return list(self._result)


class FakePgConnection:
    """Conexión psycopg2 mínima con soporte de `with conn:` (commit/rollback)."""

    def __init__(self, responder):
        self.responder = responder
        self.executed = []
        self.commits = 0
        self.rollbacks = 0
        self.closed = 0

    def cursor(self, cursor_factory=None):
        return FakePgCursor(self, cursor_factory)

    def close(self):
        self.closed = 1

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            self.commits += 1
        else:
            self.rollbacks += 1
        return False


class FakePgPool:
    """
    Sustituto de ThreadedConnectionPool.

    Se usa como pool_factory: FakePgPool.factory(responder)
    """

    def __init__(self, minconn, maxconn, responder=None, **kwargs):
        self.minconn = minconn
        self.maxconn = maxconn
        self.kwargs = kwargs
        self.connection = FakePgConnection(responder or (lambda query, params: []))
        self.checked_out = 0
        self.max_checked_out = 0
        self.returned = 0
        self.closeall_calls = 0

    @classmethod
    def factory(cls, responder, created=None):
        def build(minconn, maxconn, **kwargs):
            pool = cls(minconn, maxconn, responder=responder, **kwargs)
            if created is not None:
                created.append(pool)
            return pool
        return build

    def getconn(self):
        self.checked_out += 1
        self.max_checked_out = max(self.max_checked_out, self.checked_out)
        return self.connection

    def putconn(self, conn, close=False):
        self.checked_out -= 1
        self.returned += 1

    def closeall(self):
        self.closeall_calls += 1


# =========================================================================
# PYMONGO
# =========================================================================


class FakeMongoCollection:
    def __init__(self, name, documents=None, insert_error=None, delete_error=None):
        self.name = name
        self.documents = list(documents or [])
        self.insert_error = insert_error
        self.delete_error = delete_error
        self.insert_calls = []

    def delete_many(self, flt):
        if self.delete_error is not None:
            raise self.delete_error
        deleted = len(self.documents)
        self.documents = []
        return SimpleNamespace(deleted_count=deleted)

    def insert_many(self, documents, ordered=True):
        self.insert_calls.append({"count": len(documents), "ordered": ordered})
        if self.insert_error is not None:
            raise self.insert_error
        self.documents.extend(documents)
        return SimpleNamespace(inserted_ids=list(range(len(documents))))


class FakeMongoClient:
    """
    Sustituto de MongoClient: client[db][colección] → FakeMongoCollection.

    Todas las instancias creadas por una misma fábrica comparten `store`
    para poder inspeccionar el resultado después de cerrar el cliente.
    """

    def __init__(self, store, uri=None, **kwargs):
        self.store = store
        self.uri = uri
        self.kwargs = kwargs
        self.closed = False

    @classmethod
    def factory(cls, store, created=None):
        def build(uri, **kwargs):
            client = cls(store, uri, **kwargs)
            if created is not None:
                created.append(client)
            return client
        return build

    def __getitem__(self, database_name):
        return self.store.setdefault(database_name, _FakeDatabase())

    def close(self):
        self.closed = True


class _FakeDatabase(dict):
    def __getitem__(self, name):
        if name not in self:
            self[name] = FakeMongoCollection(name)
        return dict.__getitem__(self, name)


# =========================================================================
# EJECUCIÓN COMO SCRIPT
# =========================================================================


def run_test_functions(title, tests):
    """
    Ejecuta funciones test_* fuera de pytest y reporta el resultado.

    Returns:
        bool: True si todas pasaron
    """
    print("=" * 70)
    print(f"🧪 {title}")
    print("=" * 70)

    failed = 0
    for test_func in tests:
        try:
            test_func()
        except AssertionError as e:
            print(f"\n❌ FALLO: {test_func.__name__}")
            print(f"   {e}")
            failed += 1
        except Exception as e:
            print(f"\n❌ ERROR: {test_func.__name__}")
            print(f"   {type(e).__name__}: {e}")
            failed += 1

    print("\n" + "=" * 70)
    if failed == 0:
        print("✅ TODOS LOS TESTS PASARON")
    else:
        print(f"❌ {failed} TEST(S) FALLARON")
    print("=" * 70)
    return failed == 0
