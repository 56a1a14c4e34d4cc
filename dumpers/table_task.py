"""
Tarea de volcado de una tabla.

Máquina de estados:

    PENDING → COUNTING → FETCHING → INSERTING → DONE
                 │           │           │
                 └───────────┴───────────┴──→ FAILED

- COUNTING: COUNT(*) en el origen
- FETCHING: plan de lectura + SELECT(s) + conversión fila → documento
- INSERTING: borrado + inserción masiva en la colección destino
- DONE: imprime la línea de finalización y retorna MigrationOutcome

Cada tarea es independiente: no lee ni escribe el estado de otras tareas.
"""

import asyncio
import sys
from enum import Enum

from .chunking import NO_CHUNKING, build_chunk_plan
from .errors import SinkWriteError, SourceQueryError
from .models import MigrationOutcome
from .records import find_unencodable, rows_to_documents


class TaskState(str, Enum):
    PENDING = "pending"
    COUNTING = "counting"
    FETCHING = "fetching"
    INSERTING = "inserting"
    DONE = "done"
    FAILED = "failed"


TERMINAL_STATES = (TaskState.DONE, TaskState.FAILED)


class TableMigrationTask:
    """
    Vuelca una tabla origen a una colección destino.

    Attributes:
        source: BaseRowSource
        sink: BaseDocumentSink
        source_table: Tabla origen
        destination: Colección destino (por defecto, el nombre de la tabla)
        chunk_size: Filas por consulta (NO_CHUNKING = una sola consulta)
        timeout: Segundos máximos por operación (None = sin plazo)
        state: TaskState actual
        error: Excepción que llevó a FAILED
    """

    def __init__(self, source, sink, source_table, destination=None,
                 chunk_size=NO_CHUNKING, timeout=None):
        self.source = source
        self.sink = sink
        self.source_table = source_table
        self.destination = destination or source_table
        self.chunk_size = chunk_size
        self.timeout = timeout
        self.state = TaskState.PENDING
        self.error = None
        self.row_count = None

    @property
    def finished(self):
        return self.state in TERMINAL_STATES

    async def run(self) -> MigrationOutcome:
        """
        Ejecuta la tarea completa.

        Returns:
            MigrationOutcome: Éxito con destino e insertados

        Raises:
            SourceQueryError: Fallo en COUNTING o FETCHING (estado FAILED)
            SinkWriteError: Fallo en INSERTING (estado FAILED)
        """
        if self.state is not TaskState.PENDING:
            raise RuntimeError(f"La tarea de '{self.source_table}' ya fue ejecutada")

        try:
            self.state = TaskState.COUNTING
            self.row_count = await self._with_deadline(
                self.source.count(self.source_table), SourceQueryError
            )

            self.state = TaskState.FETCHING
            plan = build_chunk_plan(self.row_count, self.chunk_size)
            rows = await self._with_deadline(
                self.source.fetch(self.source_table, plan), SourceQueryError
            )
            documents = self._to_documents(rows)

            self.state = TaskState.INSERTING
            ack = await self._with_deadline(
                self.sink.replace(self.destination, documents), SinkWriteError
            )
        except Exception as e:
            self.state = TaskState.FAILED
            self.error = e
            print(f"❌ Falló el volcado de {self.source_table}: {e}", file=sys.stderr)
            raise

        self.state = TaskState.DONE
        print(f"✅ Volcados {ack.inserted_count:,} registros de {self.source_table} → {self.destination}")
        return MigrationOutcome.success(self.source_table, self.destination, ack.inserted_count)

    def _to_documents(self, rows):
        """
        Convierte las filas y verifica que BSON pueda codificarlas.

        Un valor no convertible falla la tarea en FETCHING, antes de que el
        destino sea vaciado.
        """
        try:
            documents = rows_to_documents(rows)
        except (TypeError, ValueError, ArithmeticError) as e:
            raise SourceQueryError(
                f"No se pudo convertir una fila de '{self.source_table}': {e}", self.source_table
            ) from e

        problem = find_unencodable(documents)
        if problem is not None:
            position, detail = problem
            raise SourceQueryError(
                f"Fila {position} de '{self.source_table}' no codificable en BSON: {detail}",
                self.source_table,
            )
        return documents

    async def _with_deadline(self, coro, error_class):
        """Espera la corrutina respetando self.timeout; el vencimiento se reporta como error_class."""
        if self.timeout is None:
            return await coro
        try:
            return await asyncio.wait_for(coro, self.timeout)
        except asyncio.TimeoutError as e:
            phase = self.state.value
            target = self.destination if error_class is SinkWriteError else self.source_table
            raise error_class(
                f"Plazo de {self.timeout}s vencido en fase '{phase}' de '{target}'", target
            ) from e
