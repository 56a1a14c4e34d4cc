"""
Conversión de filas PostgreSQL a documentos MongoDB.

Copia 1:1: mismas columnas, mismo orden, sin renombrar ni descartar campos.
Solo se transforman los valores que BSON no puede codificar:

    Decimal            → bson.Decimal128 (str si no cabe en 34 dígitos)
    date               → datetime (medianoche)
    time               → str ISO ('13:45:00')
    timedelta          → float (segundos)
    memoryview/bytearray → bytes
    UUID               → str
    Range (psycopg2)   → {lower, upper, lower_inc, upper_inc, empty}
    list/tuple/dict    → recursivo
"""

import datetime
import decimal
import uuid

import bson
from bson.decimal128 import Decimal128
from bson.errors import BSONError
from psycopg2.extras import Range


def convert_value(value):
    """Convierte un valor de columna a un tipo codificable en BSON."""
    if value is None or isinstance(value, (bool, int, float, str, bytes)):
        return value

    if isinstance(value, decimal.Decimal):
        try:
            return Decimal128(value)
        except decimal.DecimalException:
            # numeric sin precisión declarada: más de 34 dígitos o exponente fuera de rango
            return str(value)

    # datetime hereda de date: se evalúa primero
    if isinstance(value, datetime.datetime):
        return value
    if isinstance(value, datetime.date):
        return datetime.datetime(value.year, value.month, value.day)
    if isinstance(value, datetime.time):
        return value.isoformat()
    if isinstance(value, datetime.timedelta):
        return value.total_seconds()

    if isinstance(value, (memoryview, bytearray)):
        return bytes(value)
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, Range):
        return {
            "lower": convert_value(value.lower),
            "upper": convert_value(value.upper),
            "lower_inc": value.lower_inc,
            "upper_inc": value.upper_inc,
            "empty": value.isempty,
        }

    if isinstance(value, dict):
        return {str(key): convert_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [convert_value(item) for item in value]

    return value


def row_to_document(row) -> dict:
    """
    Convierte una fila (RealDictRow o cualquier mapeo) en documento.

    Args:
        row: Mapeo columna → valor, en el orden del SELECT

    Returns:
        dict: Documento nuevo; la fila original no se modifica
    """
    return {column: convert_value(value) for column, value in row.items()}


def rows_to_documents(rows) -> list:
    """Convierte una secuencia de filas preservando su orden."""
    return [row_to_document(row) for row in rows]


def find_unencodable(records):
    """
    Busca el primer registro que BSON no puede codificar.

    Returns:
        tuple: (posición, mensaje de error) o None si todos son codificables
    """
    for position, record in enumerate(records):
        try:
            bson.encode(record)
        except BSONError as e:
            return position, str(e)
    return None
