"""
Adaptador de destino MongoDB.

RESPONSABILIDAD:
Reemplazar el contenido completo de una colección:
1. delete_many({}) sobre la colección destino
2. insert_many(documentos, ordered=False)

DECISIONES DE DISEÑO:
- Un MongoClient por llamada a replace(): cada tarea abre y cierra su propia
  conexión al destino (no se comparte entre tablas)
- Borrado e inserción NO son atómicos: si la inserción falla la colección
  queda vacía o parcial; no hay reintento ni restauración
- Inserción desordenada: un documento rechazado no aborta a los demás;
  se reporta el error agregado, no el detalle por documento
"""

import asyncio

from bson.errors import BSONError
from pymongo import MongoClient
from pymongo.errors import BulkWriteError, PyMongoError

from .base import BaseDocumentSink
from .errors import SinkWriteError
from .models import InsertAcknowledgment, validate_collection_name
from .records import find_unencodable


class MongoDocumentSink(BaseDocumentSink):
    """
    Destino MongoDB.

    Attributes:
        uri: URI de conexión (config.MONGO_URI)
        database_name: Base de datos destino (config.MONGO_DATABASE_NAME)
        client_factory: Constructor del cliente (MongoClient por defecto)
        timeout_ms: Plazo por operación en el driver (timeoutMS); None = sin plazo
    """

    def __init__(self, uri, database_name, client_factory=MongoClient,
                 server_timeout_ms=5000, timeout_ms=None):
        self.uri = uri
        self.database_name = database_name
        self.client_factory = client_factory
        self.server_timeout_ms = server_timeout_ms
        self.timeout_ms = timeout_ms

    async def replace(self, collection, records):
        return await asyncio.to_thread(self._replace_sync, collection, list(records))

    def _client_options(self):
        options = {"serverSelectionTimeoutMS": self.server_timeout_ms}
        # timeoutMS corta las operaciones en el driver aunque la tarea ya haya vencido
        if self.timeout_ms is not None:
            options["timeoutMS"] = self.timeout_ms
        return options

    def _replace_sync(self, collection_name, records):
        try:
            validate_collection_name(collection_name)
        except ValueError as e:
            raise SinkWriteError(str(e), collection_name) from e

        # La colección solo se vacía si todos los documentos son codificables
        problem = find_unencodable(records)
        if problem is not None:
            position, detail = problem
            raise SinkWriteError(
                f"Documento {position} para '{collection_name}' no codificable en BSON: {detail}",
                collection_name,
            )

        client = None
        try:
            client = self.client_factory(self.uri, **self._client_options())
            collection = client[self.database_name][collection_name]

            deleted = collection.delete_many({}).deleted_count

            # insert_many no acepta listas vacías
            if not records:
                return InsertAcknowledgment(collection_name, 0, deleted)

            result = collection.insert_many(records, ordered=False)
            return InsertAcknowledgment(collection_name, len(result.inserted_ids), deleted)

        except BulkWriteError as e:
            inserted = (e.details or {}).get("nInserted", 0)
            errors = (e.details or {}).get("writeErrors", [])
            raise SinkWriteError(
                f"Inserción masiva en '{collection_name}' con {len(errors)} errores "
                f"({inserted} documentos insertados)",
                collection_name,
                inserted_count=inserted,
            ) from e
        except (PyMongoError, BSONError) as e:
            raise SinkWriteError(
                f"Error escribiendo en '{collection_name}': {e}", collection_name
            ) from e
        finally:
            if client is not None:
                client.close()
