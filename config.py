"""
Configuración centralizada para el volcado de tablas relacionales → MongoDB.

ARQUITECTURA:
- Origen: PostgreSQL (pool de conexiones compartido por todo el proceso)
- Destino: MongoDB (una colección por tabla, contenido reemplazado)
- Una pasada finita por invocación: no es una sincronización continua

FLUJO DE VOLCADO:
1. (Opcional) Limpiar el origen con SOURCE_CLEANUP_STATEMENTS
2. Volcar DUMP_TABLES en paralelo (una tarea por tabla)
3. Cerrar el pool de origen cuando todas las tareas terminaron

USO DE LAS FUNCIONES HELPER:
    # Obtener colección destino de una tabla
    destination = get_destination_for_table('book')  # 'Publication'

    # Obtener la petición por defecto del script
    request = get_dump_request()  # {'member': 'member', 'book': 'Publication'}

IMPORTANTE:
Los nombres de tablas y colecciones se consideran configuración de confianza,
nunca entrada externa.
"""

import os
from dotenv import load_dotenv

# Carga las variables del archivo .env en las variables de entorno del sistema
load_dotenv(override=True)


def parse_bool(value, default=False):
    """
    Interpreta un valor de entorno como booleano.

    Acepta 1/0, true/false, yes/no, si/no (sin distinguir mayúsculas).
    Un valor vacío o None retorna el default.

    Ejemplo:
        >>> parse_bool('SI')
        True
        >>> parse_bool(None, default=True)
        True
    """
    if value is None or str(value).strip() == "":
        return default
    return str(value).strip().lower() in ("1", "true", "yes", "si", "sí", "on")


def parse_optional_float(value):
    """Retorna float(value), o None si el valor está vacío o no es positivo."""
    if value is None or str(value).strip() == "":
        return None
    number = float(value)
    return number if number > 0 else None


# --- Configuración de PostgreSQL (Origen) ---
SOURCE_CONFIG = {
    "dbname": os.getenv("SOURCE_DB") or "",
    "user": os.getenv("SOURCE_USER") or "",
    "password": os.getenv("SOURCE_PASSWORD") or "",
    "host": os.getenv("SOURCE_HOST") or "localhost",
    "port": os.getenv("SOURCE_PORT") or "5432",
}

# Enviar varias sentencias en un solo execute (limpieza del origen)
SOURCE_MULTI_STATEMENTS = parse_bool(os.getenv("SOURCE_MULTI_STATEMENTS"), default=True)

# Límites del pool compartido. Tareas que superen el máximo esperan turno.
SOURCE_POOL_MIN = int(os.getenv("SOURCE_POOL_MIN") or 1)
SOURCE_POOL_MAX = int(os.getenv("SOURCE_POOL_MAX") or 10)

# --- Configuración de MongoDB (Destino) ---
MONGO_CONFIG = {
    "host": os.getenv("MONGO_HOST") or "localhost",
    "port": int(os.getenv("MONGO_PORT") or 27017),
    "database": os.getenv("MONGO_DB") or "dump",
}

if os.getenv("MONGO_USER"):
    MONGO_URI = (
        f"mongodb://{os.getenv('MONGO_USER')}:{os.getenv('MONGO_PASSWORD')}"
        f"@{MONGO_CONFIG['host']}:{MONGO_CONFIG['port']}/"
        f"?authSource={os.getenv('MONGO_AUTH_SOURCE') or 'admin'}"
    )
else:
    MONGO_URI = f"mongodb://{MONGO_CONFIG['host']}:{MONGO_CONFIG['port']}/"

MONGO_DATABASE_NAME = MONGO_CONFIG["database"]

# --- Configuración de Volcado ---
# Filas por consulta paginada. Valor <= 0 desactiva la paginación
# (una sola consulta por tabla).
CHUNK_SIZE = int(os.getenv("DUMP_CHUNK_SIZE") or -1)

# Plazo máximo por operación (count, fetch, replace) en segundos.
# None = sin plazo (una consulta colgada bloquea su tarea indefinidamente).
# El mismo plazo se pasa a los drivers (statement_timeout, timeoutMS).
OPERATION_TIMEOUT_SECONDS = parse_optional_float(os.getenv("DUMP_OPERATION_TIMEOUT"))

# --- Tablas a volcar ---
# Tabla origen → colección destino. Usado por sqldump.py sin argumentos.
DUMP_TABLES = {
    "articles": "articles",
    "author": "author",
    "book": "book",
}

# --- Limpieza del origen ---
# Sentencias ejecutadas antes del volcado con `python sqldump.py --clean`.
SOURCE_CLEANUP_STATEMENTS = [
    "UPDATE author SET cache = NULL, cache_printer_friendly = NULL",
    "UPDATE book SET cache = NULL, cache_printer_friendly = NULL, cache_ebook = NULL",
]


# --- Funciones Helper ---


def get_destination_for_table(table_name: str) -> str:
    """
    Obtiene la colección destino configurada para una tabla.

    Si la tabla no está en DUMP_TABLES, la colección se llama igual que
    la tabla.

    Args:
        table_name: Nombre de la tabla origen (ej: 'book')

    Returns:
        str: Nombre de la colección MongoDB destino
    """
    return DUMP_TABLES.get(table_name) or table_name


def get_operation_timeout_ms(seconds=None):
    """
    Convierte el plazo por operación a milisegundos para los drivers.

    Args:
        seconds: Plazo en segundos (por defecto OPERATION_TIMEOUT_SECONDS)

    Returns:
        int | None: Milisegundos (mínimo 1) o None si no hay plazo
    """
    if seconds is None:
        seconds = OPERATION_TIMEOUT_SECONDS
    if seconds is None:
        return None
    return max(1, int(seconds * 1000))


def get_dump_request() -> dict:
    """Retorna una copia de DUMP_TABLES lista para MigrationCoordinator.migrate()."""
    return {table: get_destination_for_table(table) for table in DUMP_TABLES}
