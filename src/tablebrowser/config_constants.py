from enum import Enum


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


API_VERSION = "0.1.0"

# -------------------------
# Catalog Constants
# -------------------------

# Schemas that belong to PostgreSQL itself and are never browsable.
# Anything matching SYSTEM_SCHEMA_PREFIX (pg_temp_N, pg_toast_temp_N, ...) is excluded too.
SYSTEM_SCHEMAS = ("information_schema", "pg_catalog", "pg_toast")
SYSTEM_SCHEMA_PREFIX = "pg_"

# PostgreSQL truncates identifiers longer than NAMEDATALEN - 1 bytes
MAX_IDENTIFIER_BYTES = 63

# Row key used when a table declares no primary key
CONVENTIONAL_ROW_KEY = "id"
