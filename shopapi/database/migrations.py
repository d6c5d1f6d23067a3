from shopapi.utils.logging import get_logger
from typing import Dict, List, Any

log = get_logger(__name__)

TABLE_KEYS = ("FOREIGN KEY", "UNIQUE")


def _map_type(col_type: str, backend: str) -> str:
    """Map schema type strings to DB-specific equivalents."""
    words = col_type.split()
    base_type = words[0].upper()
    constraints = " ".join(words[1:])

    type_map = {
        "INTEGER": {
            "sqlite": "INTEGER",
            "postgres": "INTEGER",
            "mysql": "INT",
        },
        "TEXT": {"sqlite": "TEXT", "postgres": "TEXT", "mysql": "VARCHAR(255)"},
        "FLOAT": {"sqlite": "REAL", "postgres": "DOUBLE PRECISION", "mysql": "DOUBLE"},
        "DECIMAL": {"sqlite": "NUMERIC", "postgres": "NUMERIC(18,2)", "mysql": "DECIMAL(18,2)"},
        "TIMESTAMP": {"sqlite": "TEXT", "postgres": "TIMESTAMP", "mysql": "TIMESTAMP NULL"},
        "BOOL": {"sqlite": "INTEGER", "postgres": "BOOLEAN", "mysql": "TINYINT(1)"},
    }
    mapped_base = type_map.get(base_type, {"sqlite": base_type, "postgres": base_type, "mysql": base_type})[backend]

    if "PRIMARY KEY" in constraints.upper():
        if "AUTOINCREMENT" in constraints.upper():
            if backend == "sqlite":
                return f"{mapped_base} PRIMARY KEY AUTOINCREMENT"
            elif backend == "postgres":
                return "SERIAL PRIMARY KEY"
            elif backend == "mysql":
                return f"{mapped_base} AUTO_INCREMENT PRIMARY KEY"
        return f"{mapped_base} PRIMARY KEY"

    if base_type == "BOOL" and backend == "postgres":
        constraints = constraints.replace("DEFAULT 1", "DEFAULT TRUE").replace("DEFAULT 0", "DEFAULT FALSE")
    return f"{mapped_base} {constraints}".strip()


def _table_exists(db: Any, table_name: str) -> bool:
    backend = db.backend
    if backend == "sqlite":
        query = "SELECT 1 FROM sqlite_master WHERE type='table' AND name=?"
    elif backend == "postgresql":
        query = "SELECT 1 FROM information_schema.tables WHERE table_name = ? AND table_schema = current_schema()"
    elif backend == "mysql":
        query = "SELECT 1 FROM information_schema.tables WHERE table_name = ? AND table_schema = DATABASE()"
    else:
        raise ValueError(f"Unsupported backend: {backend}")
    res = db.execute(query, (table_name,), fetch="one")
    return res is not None


def _create_table(cur: Any, table_name: str, cols_def: Dict[str, Any], backend: str) -> None:
    parts = []
    for col_name, col_type in cols_def.items():
        if col_name.upper() in TABLE_KEYS:
            continue
        parts.append(f"{col_name} {_map_type(col_type, backend)}")

    if "UNIQUE" in cols_def:
        u = cols_def["UNIQUE"]
        if isinstance(u, list) and u:
            parts.append(f"CONSTRAINT uniq_{table_name}_{'_'.join(u)} UNIQUE ({', '.join(u)})")

    if "FOREIGN KEY" in cols_def:
        fks = cols_def["FOREIGN KEY"] if isinstance(cols_def["FOREIGN KEY"], list) else [cols_def["FOREIGN KEY"]]
        for fk in fks:
            instr = fk.get("instruction", "").strip()
            parts.append(f"FOREIGN KEY ({fk['key']}) REFERENCES {fk['parent_table']}({fk['parent_key']}) {instr}".strip())
    cur.execute(f"CREATE TABLE {table_name} ({', '.join(parts)})")


def _add_column(cur: Any, table_name: str, col_name: str, col_type: str, backend: str) -> None:
    mapped_type = _map_type(col_type, backend)
    if "NOT NULL" in mapped_type.upper() and "DEFAULT" not in mapped_type.upper():
        # Existing rows need a value before the column can be NOT NULL
        default_val = "''" if "TEXT" in mapped_type.upper() or "CHAR" in mapped_type.upper() else "0"
        mapped_type += f" DEFAULT {default_val}"
    if "UNIQUE" in mapped_type.upper() and backend == "sqlite":
        # SQLite cannot ADD COLUMN with UNIQUE; the index is added separately
        cur.execute(f"ALTER TABLE {table_name} ADD COLUMN {col_name} {mapped_type.replace('UNIQUE', '')}")
        cur.execute(f"CREATE UNIQUE INDEX IF NOT EXISTS uniq_{table_name}_{col_name} ON {table_name} ({col_name})")
        return
    cur.execute(f"ALTER TABLE {table_name} ADD COLUMN {col_name} {mapped_type}")


def setupDB(schema: List[Dict[str, Any]], db: Any) -> None:
    """
    Synchronize DB schema safely:
    - Create missing tables with all columns/constraints.
    - Add missing columns to existing tables.
    - No data loss; use a real migration tool for destructive changes.
    """
    if not schema:
        log.error("No schema provided")
        return
    backend_str = db.backend
    if backend_str == "postgresql":
        backend_str = "postgres"

    with db.connection(autocommit=False) as (conn, cur):
        for table_def in schema:
            table_name = table_def["table_name"]
            cols_def = table_def["table_columns"]
            log.debug("Syncing %s", table_name)

            if not _table_exists(db, table_name):
                _create_table(cur, table_name, cols_def, backend_str)
                log.info("Created table %s", table_name)
                continue

            existing_cols = db.get_columns(table_name)
            for col_name, col_type in cols_def.items():
                if col_name.upper() in TABLE_KEYS:
                    continue
                if col_name.lower() not in existing_cols:
                    _add_column(cur, table_name, col_name, col_type, backend_str)
                    log.info("Added column %s.%s", table_name, col_name)

        conn.commit()
        log.info("Schema sync complete (%d tables)", len(schema))
