r"""
Script principal de volcado de tablas PostgreSQL a colecciones MongoDB.

Arquitectura:
- sqldump.py: Infraestructura (pool de origen, destino, script)
- dumpers/*.py: Adaptadores, tarea por tabla y coordinador
- config.py: Configuración centralizada

Flujo de ejecución:
1. Crear el pool de conexiones al origen (una vez por proceso)
2. (Opcional, --clean) Limpiar el origen con config.SOURCE_CLEANUP_STATEMENTS
3. Volcar las tablas pedidas en paralelo (una tarea por tabla)
4. Cerrar el pool cuando todas las tareas terminaron
5. Reportar el resultado de cada tabla

Uso:
    python sqldump.py                  # vuelca config.DUMP_TABLES
    python sqldump.py member book      # vuelca tablas sueltas
    python sqldump.py --clean          # limpia el origen antes de volcar

Desde código:
    outcomes = dump_tables({'member': 'Member', 'book': 'Publication'})
"""

import asyncio
import sys
import time

import config
from dumpers.coordinator import MigrationCoordinator
from dumpers.errors import DumpError
from dumpers.mongo_sink import MongoDocumentSink
from dumpers.postgres_source import PostgresRowSource, SourceConnectionPool


def create_source_pool():
    """
    Crea y abre el pool de conexiones a PostgreSQL con config.SOURCE_CONFIG.

    Returns:
        SourceConnectionPool: Pool abierto

    Raises:
        SourceQueryError: Si no puede conectar
    """
    print("🔌 Conectando a PostgreSQL (origen)...")
    pool = SourceConnectionPool(
        config.SOURCE_POOL_MIN,
        config.SOURCE_POOL_MAX,
        statement_timeout_ms=config.get_operation_timeout_ms(),
        **config.SOURCE_CONFIG,
    )
    pool.open()
    print("✅ Pool de origen listo")
    return pool


def build_coordinator(pool):
    """Arma el coordinador con los adaptadores configurados."""
    source = PostgresRowSource(pool)
    sink = MongoDocumentSink(
        config.MONGO_URI,
        config.MONGO_DATABASE_NAME,
        timeout_ms=config.get_operation_timeout_ms(),
    )
    return MigrationCoordinator(
        source,
        sink,
        pool=pool,
        chunk_size=config.CHUNK_SIZE,
        timeout=config.OPERATION_TIMEOUT_SECONDS,
    )


async def clean_source(pool, statements=None):
    """
    Ejecuta las sentencias de limpieza en el origen antes del volcado.

    Args:
        pool: SourceConnectionPool abierto
        statements: Sentencias a ejecutar (config.SOURCE_CLEANUP_STATEMENTS
                    por defecto)

    Returns:
        int: Número de sentencias ejecutadas

    Raises:
        SourceQueryError: Si alguna falla (se hace rollback de todas)
    """
    if statements is None:
        statements = config.SOURCE_CLEANUP_STATEMENTS

    print(f"🧹 Limpiando origen ({len(statements)} sentencias)...")
    executed = await PostgresRowSource(pool).execute_statements(
        statements, multi_statements=config.SOURCE_MULTI_STATEMENTS
    )
    print("✅ Origen limpio")
    return executed


async def run_dump(request, clean=False, pool=None):
    """
    Ejecuta el volcado completo (limpieza opcional + tablas).

    El pool se cierra siempre al final, incluso si la petición es inválida.
    """
    pool = pool or create_source_pool()
    try:
        if clean:
            await clean_source(pool)
        coordinator = build_coordinator(pool)
        return await coordinator.migrate(request)
    finally:
        pool.close()


def dump_tables(request, clean=False):
    """
    Versión síncrona de run_dump() para uso desde scripts.

    Args:
        request: Nombre de tabla, lista de nombres o dict tabla → colección

    Returns:
        list[MigrationOutcome]: Uno por tabla, en el orden de la petición
    """
    return asyncio.run(run_dump(request, clean=clean))


def print_summary(outcomes, elapsed):
    """Imprime resumen de resultados del volcado."""
    print("\n" + "=" * 70)
    print("📊 RESUMEN DEL VOLCADO")
    print("=" * 70)

    for outcome in outcomes:
        if outcome.succeeded:
            print(
                f"   ✅ {outcome.source_table} → {outcome.destination}: "
                f"{outcome.inserted_count:,} registros"
            )
        else:
            print(
                f"   ❌ {outcome.source_table} → {outcome.destination}: "
                f"{type(outcome.error).__name__}: {outcome.error}"
            )

    print("=" * 70)
    print(f"⏱️  Tiempo total: {elapsed:.2f}s")


def main(argv=None):
    """
    Función principal del script.

    Exit Codes:
        0: Todas las tablas volcadas
        1: Petición inválida, error de conexión o alguna tabla falló
    """
    args = list(sys.argv[1:] if argv is None else argv)
    clean = "--clean" in args
    tables = [arg for arg in args if arg != "--clean"]
    request = tables if tables else config.get_dump_request()

    print("=" * 70)
    print("🚀 VOLCADO POSTGRESQL → MONGODB")
    print("=" * 70)
    print(f"📍 PostgreSQL: {config.SOURCE_CONFIG['dbname']}")
    print(f"📍 MongoDB: {config.MONGO_DATABASE_NAME}")

    started = time.perf_counter()
    try:
        outcomes = dump_tables(request, clean=clean)
    except DumpError as e:
        print(f"\n❌ Error durante el volcado: {e}", file=sys.stderr)
        return 1

    print_summary(outcomes, time.perf_counter() - started)

    return 0 if all(outcome.succeeded for outcome in outcomes) else 1


if __name__ == "__main__":
    sys.exit(main())
