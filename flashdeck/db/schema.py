"""
Defines the storage schema for flashdeck using a SQL string constant.
The snapshot is kept as JSON text under a single key in a key-value table.
"""

DB_SCHEMA_SQL = """
    CREATE TABLE IF NOT EXISTS kv_store (
        key VARCHAR PRIMARY KEY,
        value VARCHAR NOT NULL,
        updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT current_timestamp
    );
"""
