"""
Suite de tests para el volcado PostgreSQL → MongoDB.

Los tests NO se conectan a bases de datos reales, solo validan:
- Sintaxis de código Python
- Plan de lectura paginada y conversión de filas
- Adaptadores contra dobles de psycopg2 / pymongo
- Tarea por tabla y coordinador (semántica "settled")
"""
