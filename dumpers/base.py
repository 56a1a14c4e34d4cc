"""
Módulo base para adaptadores de origen y destino del volcado.

Define los contratos que TableMigrationTask usa sin conocer el motor
concreto que hay detrás.

Patrón de diseño: Strategy Pattern
- TableMigrationTask = Contexto
- BaseRowSource / BaseDocumentSink = Estrategias abstractas
- PostgresRowSource / MongoDocumentSink = Estrategias concretas

Todos los métodos son corrutinas: cada llamada es un punto de suspensión
de la tarea que la emite, y es el único lugar donde una tarea cede el
control a las demás.

Ejemplo de implementación:
    class MiOrigen(BaseRowSource):
        async def count(self, table):
            return 42

        async def fetch(self, table, plan):
            return [{'id': 1}, ...]
"""

from abc import ABC, abstractmethod
from typing import List

from .chunking import Chunk
from .models import InsertAcknowledgment


class BaseRowSource(ABC):
    """Origen relacional: cuenta y lee filas de una tabla."""

    @abstractmethod
    async def count(self, table: str) -> int:
        """
        Retorna el número de filas de la tabla.

        Raises:
            SourceQueryError: Error de conexión o de SQL
        """

    @abstractmethod
    async def fetch(self, table: str, plan: List[Chunk]) -> List[dict]:
        """
        Lee todas las ventanas del plan, en orden ascendente de offset.

        Si una ventana falla se descartan las anteriores: la lectura de
        una tabla es todo o nada.

        Args:
            table: Tabla origen
            plan: Resultado de build_chunk_plan()

        Returns:
            list[dict]: Registros en el orden del origen

        Raises:
            SourceQueryError: Error de conexión o de SQL
        """


class BaseDocumentSink(ABC):
    """Destino documental: reemplaza el contenido de una colección."""

    @abstractmethod
    async def replace(self, collection: str, records: List[dict]) -> InsertAcknowledgment:
        """
        Borra todos los documentos de la colección e inserta los registros.

        No es transaccional: si la inserción falla, la colección puede
        quedar vacía o parcialmente poblada.

        Raises:
            SinkWriteError: Error de conexión, borrado o inserción masiva
        """
