"""
Plan de lectura paginada de una tabla.

Un plan es una lista ordenada de ventanas Chunk(offset, limit):
- chunk_size <= 0: una sola ventana sin límite, Chunk(0, None)
- chunk_size > 0: ventanas consecutivas de chunk_size filas; la última
  lleva el resto. Con 0 filas se genera igualmente una ventana completa
  para leer filas insertadas entre el COUNT y el SELECT.

Ejemplo:
    >>> build_chunk_plan(5, 2)
    [Chunk(offset=0, limit=2), Chunk(offset=2, limit=2), Chunk(offset=4, limit=1)]
    >>> build_chunk_plan(5, -1)
    [Chunk(offset=0, limit=None)]
"""

from typing import List, NamedTuple, Optional

# Paginación desactivada
NO_CHUNKING = -1


class Chunk(NamedTuple):
    offset: int
    limit: Optional[int]


def build_chunk_plan(row_count: int, chunk_size: int) -> List[Chunk]:
    """
    Genera las ventanas que cubren [0, row_count) sin huecos ni solapamientos.

    Args:
        row_count: Filas reportadas por COUNT(*)
        chunk_size: Filas por consulta (<= 0 desactiva la paginación)

    Returns:
        list[Chunk]: ceil(row_count / chunk_size) ventanas (mínimo 1)

    Raises:
        ValueError: Si row_count es negativo
    """
    if row_count < 0:
        raise ValueError(f"row_count no puede ser negativo: {row_count}")

    if chunk_size <= 0:
        return [Chunk(0, None)]

    plan = []
    offset = 0
    remaining = row_count

    while True:
        limit = chunk_size if remaining <= 0 else min(chunk_size, remaining)
        plan.append(Chunk(offset, limit))

        remaining -= chunk_size
        offset += chunk_size
        if remaining <= 0:
            break

    return plan


def is_unbounded(plan: List[Chunk]) -> bool:
    """True si el plan es la lectura completa en una sola consulta."""
    return len(plan) == 1 and plan[0].limit is None
