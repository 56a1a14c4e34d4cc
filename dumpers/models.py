"""
Modelos de datos del volcado.

PETICIÓN (tres formas aceptadas, resueltas en pares tabla → colección):
- SingleTable: 'member'
- TableList: ['member', 'book']  (colección = tabla)
- TableMapping: {'member': 'Member', 'book': 'Publication'}

RESULTADO:
- MigrationOutcome: uno por tabla pedida, éxito (colección + insertados)
  o fallo (excepción), en el orden de la petición.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple


def validate_collection_name(name) -> str:
    """
    Verifica que un nombre de colección sea aceptable para MongoDB.

    Returns:
        str: El mismo nombre

    Raises:
        ValueError: Si está vacío, contiene '$' o NUL, o empieza con 'system.'
    """
    if not isinstance(name, str) or not name.strip():
        raise ValueError(f"Nombre de colección inválido: {name!r}")
    if "$" in name or "\x00" in name:
        raise ValueError(f"Nombre de colección con caracteres no permitidos: {name!r}")
    if name.startswith("system."):
        raise ValueError(f"Colección reservada de MongoDB: {name!r}")
    return name


@dataclass(frozen=True)
class SingleTable:
    """Una sola tabla, volcada a una colección con su mismo nombre."""

    table: str

    def to_pairs(self) -> List[Tuple[str, str]]:
        return [(self.table, self.table)]


@dataclass(frozen=True)
class TableList:
    """Lista ordenada de tablas; cada una va a una colección homónima."""

    tables: Tuple[str, ...]

    def to_pairs(self) -> List[Tuple[str, str]]:
        return [(table, table) for table in self.tables]


@dataclass(frozen=True)
class TableMapping:
    """Mapeo tabla origen → colección destino (respeta el orden de inserción)."""

    mapping: Tuple[Tuple[str, str], ...]

    def to_pairs(self) -> List[Tuple[str, str]]:
        return list(self.mapping)


@dataclass
class InsertAcknowledgment:
    """Acuse del destino tras reemplazar una colección."""

    collection: str
    inserted_count: int
    deleted_count: int = 0


@dataclass
class MigrationOutcome:
    """
    Resultado "settled" de una tabla: siempre existe, haya éxito o fallo.

    Attributes:
        source_table: Tabla origen
        destination: Colección destino
        inserted_count: Documentos insertados (None si falló)
        error: Excepción que terminó la tarea (None si tuvo éxito)
    """

    source_table: str
    destination: str
    inserted_count: Optional[int] = None
    error: Optional[BaseException] = field(default=None, repr=False)

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, source_table, destination, inserted_count):
        return cls(source_table, destination, inserted_count=inserted_count)

    @classmethod
    def failure(cls, source_table, destination, error):
        return cls(source_table, destination, error=error)

    def as_dict(self) -> Dict:
        """Vista serializable para reportes."""
        if self.succeeded:
            return {
                "status": "fulfilled",
                "table": self.source_table,
                "collection": self.destination,
                "inserted": self.inserted_count,
            }
        return {
            "status": "rejected",
            "table": self.source_table,
            "collection": self.destination,
            "error": f"{type(self.error).__name__}: {self.error}",
        }
