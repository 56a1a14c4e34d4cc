"""
Componentes para volcar tablas PostgreSQL a colecciones MongoDB.

Estructura:
    base.py: Contratos abstractos BaseRowSource y BaseDocumentSink
    errors.py: Taxonomía de errores (InvalidRequestError, SourceQueryError, SinkWriteError)
    models.py: Petición de volcado, resultados por tabla y acuse de inserción
    chunking.py: Plan de lectura paginada (ventanas offset/limit)
    records.py: Conversión fila → documento BSON
    postgres_source.py: Adaptador de origen (pool psycopg2 + consultas)
    mongo_sink.py: Adaptador de destino (borrado + insert_many desordenado)
    table_task.py: Máquina de estados de una tabla (count → fetch → insert)
    coordinator.py: Normaliza la petición y ejecuta todas las tablas en paralelo

Flujo:
    MigrationCoordinator.migrate(request)
        → TableMigrationTask.run() por cada tabla (asyncio.gather)
            → PostgresRowSource.count() / fetch()
            → MongoDocumentSink.replace()
        → lista de MigrationOutcome en el orden de la petición
"""
