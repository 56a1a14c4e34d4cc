"""
Coordinador del volcado.

Acepta la petición en cualquiera de sus tres formas:
1. str con el nombre de una tabla: 'member'
2. lista de nombres: ['member', 'book', 'article']
3. dict tabla origen → colección destino: {'member': 'Member', 'book': 'Publication'}

Normaliza la petición en pares (tabla, colección), lanza una
TableMigrationTask por par en paralelo y espera a que TODAS terminen
(semántica "settled"): un fallo nunca cancela a las demás. Retorna un
MigrationOutcome por par, en el orden de la petición.

Uso:
    coordinator = MigrationCoordinator(source, sink, pool=pool)
    outcomes = await coordinator.migrate(['member', 'book'])
    for outcome in outcomes:
        print(outcome.as_dict())
"""

import asyncio
from collections.abc import Mapping

from .chunking import NO_CHUNKING
from .errors import InvalidRequestError
from .models import (
    MigrationOutcome,
    SingleTable,
    TableList,
    TableMapping,
    validate_collection_name,
)
from .table_task import TableMigrationTask


def _check_name(name, kind):
    if not isinstance(name, str) or not name.strip():
        raise InvalidRequestError(f"Nombre de {kind} inválido: {name!r}")
    return name


def parse_request(request):
    """
    Convierte la petición cruda en SingleTable, TableList o TableMapping.

    Raises:
        InvalidRequestError: Forma no reconocida, nombres vacíos o no
                             string, tablas o colecciones repetidas, o
                             colección inválida
    """
    if isinstance(request, (SingleTable, TableList, TableMapping)):
        parsed = request
    elif isinstance(request, str):
        parsed = SingleTable(_check_name(request, "tabla"))
    elif isinstance(request, (list, tuple)):
        parsed = TableList(tuple(_check_name(name, "tabla") for name in request))
    elif isinstance(request, Mapping):
        parsed = TableMapping(tuple(
            (_check_name(table, "tabla"), _check_name(collection, "colección"))
            for table, collection in request.items()
        ))
    else:
        raise InvalidRequestError(
            f"Petición no reconocida ({type(request).__name__}): se espera un nombre "
            f"de tabla, una lista de nombres o un dict tabla → colección"
        )

    pairs = parsed.to_pairs()
    seen = set()
    destinations = set()
    for table, collection in pairs:
        _check_name(table, "tabla")
        if table in seen:
            raise InvalidRequestError(f"Tabla repetida en la petición: '{table}'")
        seen.add(table)
        # Dos tareas sobre la misma colección se borrarían mutuamente los documentos
        if collection in destinations:
            raise InvalidRequestError(f"Colección destino repetida en la petición: '{collection}'")
        destinations.add(collection)
        try:
            validate_collection_name(collection)
        except ValueError as e:
            raise InvalidRequestError(str(e)) from e

    return parsed


def normalize_request(request):
    """Retorna la lista ordenada de pares (tabla origen, colección destino)."""
    return parse_request(request).to_pairs()


class MigrationCoordinator:
    """
    Ejecuta en paralelo el volcado de varias tablas.

    Attributes:
        source: BaseRowSource compartido por todas las tareas
        sink: BaseDocumentSink
        pool: Handle del pool de origen; se cierra al terminar migrate()
        chunk_size: Filas por consulta para cada tarea
        timeout: Plazo por operación para cada tarea
    """

    def __init__(self, source, sink, pool=None, chunk_size=NO_CHUNKING, timeout=None):
        self.source = source
        self.sink = sink
        self.pool = pool
        self.chunk_size = chunk_size
        self.timeout = timeout

    def build_tasks(self, pairs):
        return [
            TableMigrationTask(
                self.source,
                self.sink,
                table,
                collection,
                chunk_size=self.chunk_size,
                timeout=self.timeout,
            )
            for table, collection in pairs
        ]

    async def migrate(self, request):
        """
        Vuelca todas las tablas de la petición.

        Returns:
            list[MigrationOutcome]: Uno por tabla, en el orden de la petición

        Raises:
            InvalidRequestError: Solo si la petición está mal formada (antes
                                 de lanzar cualquier tarea)
        """
        pairs = normalize_request(request)
        tasks = self.build_tasks(pairs)

        print(f"🚚 Iniciando volcado de {len(tasks)} tabla(s)...")

        try:
            results = await asyncio.gather(
                *(task.run() for task in tasks), return_exceptions=True
            )
        finally:
            if self.pool is not None:
                self.pool.close()

        outcomes = []
        for task, result in zip(tasks, results):
            if isinstance(result, BaseException):
                outcomes.append(
                    MigrationOutcome.failure(task.source_table, task.destination, result)
                )
            else:
                outcomes.append(result)

        failed = sum(1 for outcome in outcomes if not outcome.succeeded)
        if failed:
            print(f"⚠️  Volcado terminado: {len(outcomes) - failed} ok, {failed} con error")
        else:
            print(f"✅ Volcado terminado: {len(outcomes)} tabla(s) ok")

        return outcomes
