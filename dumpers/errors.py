"""
Errores del volcado.

Jerarquía:
    DumpError
    ├── InvalidRequestError: petición mal formada (antes de cualquier I/O)
    ├── SourceQueryError: fallo en count/fetch/limpieza del origen
    └── SinkWriteError: fallo en el borrado o inserción en MongoDB

Solo InvalidRequestError hace fallar MigrationCoordinator.migrate(); los
demás quedan registrados en el MigrationOutcome de su tabla.
"""


class DumpError(Exception):
    """Error base del volcado."""


class InvalidRequestError(DumpError):
    """La petición no es un nombre, una lista de nombres ni un mapeo tabla → colección."""


class SourceQueryError(DumpError):
    """
    Error al consultar la tabla origen.

    Attributes:
        table: Tabla origen afectada (None si no aplica, ej: limpieza)
    """

    def __init__(self, message, table=None):
        super().__init__(message)
        self.table = table


class SinkWriteError(DumpError):
    """
    Error al escribir en la colección destino.

    Attributes:
        collection: Colección destino afectada
        inserted_count: Documentos insertados antes del fallo (0 si se desconoce)
    """

    def __init__(self, message, collection=None, inserted_count=0):
        super().__init__(message)
        self.collection = collection
        self.inserted_count = inserted_count
