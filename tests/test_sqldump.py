"""
Tests del script sqldump.py.

No abre conexiones reales: el pool usa FakePgPool y el destino se
reemplaza con unittest.mock.
"""

import sys
import os
import asyncio
from unittest.mock import patch

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import config
import sqldump
from dumpers.coordinator import MigrationCoordinator
from dumpers.errors import InvalidRequestError, SourceQueryError
from dumpers.models import MigrationOutcome
from dumpers.mongo_sink import MongoDocumentSink
from dumpers.postgres_source import PostgresRowSource, SourceConnectionPool
from tests.helpers import (
    FakeDocumentSink,
    FakePgPool,
    FakeRowSource,
    run_test_functions,
    sample_tables,
)


def _fake_pool(created=None):
    pool = SourceConnectionPool(1, 2, pool_factory=FakePgPool.factory(lambda q, p: [], created))
    return pool.open()


def test_build_coordinator_uses_config():
    pool = _fake_pool()
    coordinator = sqldump.build_coordinator(pool)

    assert isinstance(coordinator.source, PostgresRowSource)
    assert isinstance(coordinator.sink, MongoDocumentSink)
    assert coordinator.pool is pool
    assert coordinator.sink.uri == config.MONGO_URI
    assert coordinator.sink.database_name == config.MONGO_DATABASE_NAME
    assert coordinator.chunk_size == config.CHUNK_SIZE
    assert coordinator.timeout == config.OPERATION_TIMEOUT_SECONDS


def test_operation_timeout_reaches_drivers():
    created = []
    factory = FakePgPool.factory(lambda q, p: [], created)
    with patch.object(config, "OPERATION_TIMEOUT_SECONDS", 1.5), \
            patch.object(sqldump, "SourceConnectionPool",
                         lambda *args, **kwargs: SourceConnectionPool(*args, pool_factory=factory, **kwargs)):
        pool = sqldump.create_source_pool()
        coordinator = sqldump.build_coordinator(pool)

    assert pool.statement_timeout_ms == 1500
    assert "-c statement_timeout=1500" in created[0].kwargs["options"]
    assert coordinator.sink.timeout_ms == 1500
    assert coordinator.timeout == 1.5
    pool.close()
    print("✅ Plazo configurado llega a psycopg2 y pymongo")


def test_clean_source_runs_configured_statements():
    created = []
    pool = _fake_pool(created)
    statements = ["UPDATE author SET cache = NULL", "UPDATE book SET cache = NULL"]

    with patch.object(config, "SOURCE_MULTI_STATEMENTS", False):
        executed = asyncio.run(sqldump.clean_source(pool, statements))

    assert executed == 2
    assert [q for q, _ in created[0].connection.executed] == statements
    print("✅ Limpieza del origen ejecutada")


def test_run_dump_closes_pool_even_on_invalid_request():
    created = []
    pool = _fake_pool(created)

    try:
        asyncio.run(sqldump.run_dump(42, pool=pool))
        assert False, "Debería lanzar InvalidRequestError"
    except InvalidRequestError:
        pass

    assert pool.closed
    assert created[0].closeall_calls == 1


def test_run_dump_with_fake_adapters():
    pool = _fake_pool()
    sink = FakeDocumentSink()

    def fake_build(p):
        return MigrationCoordinator(FakeRowSource(sample_tables()), sink, pool=p)

    with patch.object(sqldump, "build_coordinator", fake_build):
        outcomes = asyncio.run(sqldump.run_dump(["member", "book"], pool=pool))

    assert [o.inserted_count for o in outcomes] == [5, 3]
    assert pool.closed


def test_main_exit_codes():
    ok = [MigrationOutcome.success("member", "member", 5)]
    mixed = ok + [MigrationOutcome.failure("book", "book", SourceQueryError("x", "book"))]

    with patch.object(sqldump, "dump_tables", return_value=ok) as dump:
        assert sqldump.main(["member", "--clean"]) == 0
        dump.assert_called_once_with(["member"], clean=True)

    with patch.object(sqldump, "dump_tables", return_value=mixed) as dump:
        assert sqldump.main([]) == 1
        dump.assert_called_once_with(config.get_dump_request(), clean=False)

    with patch.object(sqldump, "dump_tables", side_effect=SourceQueryError("sin conexión")):
        assert sqldump.main(["member"]) == 1
    print("✅ Códigos de salida del script")


# === EJECUCIÓN ===


def run_all_tests():
    return run_test_functions(
        "TESTS DEL SCRIPT sqldump.py",
        [
            test_build_coordinator_uses_config,
            test_operation_timeout_reaches_drivers,
            test_clean_source_runs_configured_statements,
            test_run_dump_closes_pool_even_on_invalid_request,
            test_run_dump_with_fake_adapters,
            test_main_exit_codes,
        ],
    )


if __name__ == "__main__":
    sys.exit(0 if run_all_tests() else 1)
