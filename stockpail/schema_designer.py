"""
Schema Designer Module

In-memory model of designed tables, CREATE TABLE generation, and a
regex-based CREATE TABLE importer.

The importer is a heuristic, not a SQL grammar. Field definitions are
split on every comma, so a type such as NUMERIC(10,2) is cut in two.
It never raises: unreadable input yields zero tables.
"""

import re
import uuid
from datetime import datetime
from typing import Dict, List, Optional

from .data_export import ExportFile, unix_ms
from .logging import get_logger
from .results import OperationResult

logger = get_logger(__name__)


FIELD_TYPES = (
    "UUID", "TEXT", "VARCHAR", "INTEGER", "BIGINT", "DECIMAL",
    "BOOLEAN", "DATE", "TIMESTAMP", "TIMESTAMPTZ", "JSONB",
)
FALLBACK_TYPE = "TEXT"

# Substring -> field type. ORDER MATTERS: more specific substrings first.
TYPE_PATTERNS = [
    ("UUID", "UUID"),
    ("TIMESTAMPTZ", "TIMESTAMPTZ"),
    ("TIMESTAMP", "TIMESTAMP"),
    ("BIGINT", "BIGINT"),
    ("INT", "INTEGER"),
    ("SERIAL", "INTEGER"),
    ("CHAR", "VARCHAR"),
    ("TEXT", "TEXT"),
    ("BOOL", "BOOLEAN"),
    ("DATE", "DATE"),
    ("DECIMAL", "DECIMAL"),
    ("NUMERIC", "DECIMAL"),
    ("REAL", "DECIMAL"),
    ("DOUBLE", "DECIMAL"),
    ("FLOAT", "DECIMAL"),
    ("JSON", "JSONB"),
]

CONSTRAINT_KEYWORDS = ("CONSTRAINT", "PRIMARY", "FOREIGN", "UNIQUE", "CHECK")

CREATE_TABLE_RE = re.compile(
    r"CREATE\s+TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?([\w.\"`]+)\s*\((.*?)\);",
    re.IGNORECASE | re.DOTALL,
)
ROW_SECURITY_RE = re.compile(
    r"ALTER\s+TABLE\s+([\w.\"`]+)\s+ENABLE\s+ROW\s+LEVEL\s+SECURITY",
    re.IGNORECASE,
)
DEFAULT_RE = re.compile(r"\bDEFAULT\s+(\S+)", re.IGNORECASE)
NOT_NULL_RE = re.compile(r"\bNOT\s+NULL\b", re.IGNORECASE)
PRIMARY_KEY_RE = re.compile(r"\bPRIMARY\s+KEY\b", re.IGNORECASE)
UNIQUE_RE = re.compile(r"\bUNIQUE\b", re.IGNORECASE)

NO_STATEMENTS = "No valid CREATE TABLE statements found"

TEMPLATES = {
    "Basic Table": """CREATE TABLE example_table (
  id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
  name TEXT NOT NULL,
  description TEXT,
  created_at TIMESTAMP WITH TIME ZONE DEFAULT now(),
  updated_at TIMESTAMP WITH TIME ZONE DEFAULT now()
);""",
    "Table with RLS": """CREATE TABLE user_data (
  id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
  user_id UUID NOT NULL,
  data JSONB,
  created_at TIMESTAMP WITH TIME ZONE DEFAULT now()
);

ALTER TABLE user_data ENABLE ROW LEVEL SECURITY;""",
}


def _new_id() -> str:
    return str(uuid.uuid4())


class SchemaField:
    """One column of a designed table."""

    def __init__(self, name: str, type: str = FALLBACK_TYPE, nullable: bool = True,
                 primary_key: bool = False, unique: bool = False, default_value: str = "",
                 id: Optional[str] = None):
        self.id = id or _new_id()
        self.name = name
        self.type = type
        self.nullable = nullable
        self.primary_key = primary_key
        self.unique = unique
        self.default_value = default_value

    def to_sql(self) -> str:
        parts = [f"{self.name} {self.type}"]
        if self.primary_key:
            parts.append("PRIMARY KEY")
        if not self.nullable:
            parts.append("NOT NULL")
        if self.unique:
            parts.append("UNIQUE")
        if self.default_value and self.default_value.strip():
            parts.append(f"DEFAULT {self.default_value.strip()}")
        return " ".join(parts)

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "nullable": self.nullable,
            "primaryKey": self.primary_key,
            "unique": self.unique,
            "defaultValue": self.default_value,
        }


class SchemaTable:
    """A named, ordered collection of fields."""

    def __init__(self, name: str, fields: Optional[List[SchemaField]] = None,
                 enable_row_security: bool = False, id: Optional[str] = None):
        self.id = id or _new_id()
        self.name = name
        self.fields = fields if fields is not None else []
        self.enable_row_security = enable_row_security

    @classmethod
    def with_defaults(cls, name: str) -> "SchemaTable":
        return cls(name, fields=[
            SchemaField("id", "UUID", nullable=False, primary_key=True, default_value="gen_random_uuid()"),
            SchemaField("created_at", "TIMESTAMPTZ", nullable=False, default_value="now()"),
        ])

    def field(self, field_id: str) -> Optional[SchemaField]:
        for field in self.fields:
            if field.id == field_id:
                return field
        return None

    def to_sql(self) -> List[str]:
        body = ",\n".join(f"  {field.to_sql()}" for field in self.fields)
        statements = [f"CREATE TABLE {self.name} (\n{body}\n);"]
        if self.enable_row_security:
            statements.append(f"ALTER TABLE {self.name} ENABLE ROW LEVEL SECURITY;")
        return statements

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "name": self.name,
            "enableRowSecurity": self.enable_row_security,
            "fields": [field.to_dict() for field in self.fields],
        }


# ═══════════════════════════════════════════════════════════════
# SQL GENERATION
# ═══════════════════════════════════════════════════════════════

def generate_sql(tables: List[SchemaTable]) -> str:
    statements = []
    for table in tables:
        statements.extend(table.to_sql())
    return "\n".join(statements)


# ═══════════════════════════════════════════════════════════════
# SQL IMPORT
# ═══════════════════════════════════════════════════════════════

class SqlImportResult:
    """Tables recovered from SQL text."""

    def __init__(self, tables: List[SchemaTable], message: str):
        self.tables = tables
        self.message = message

    @property
    def found(self) -> bool:
        return len(self.tables) > 0

    def __bool__(self):
        return self.found


def _identifier(raw: str) -> str:
    return raw.strip().strip('"`')


def classify_type(raw_type: str, fragment: str = "") -> str:
    """Map a SQL type token onto FIELD_TYPES by substring. Unknown types fall back to TEXT."""
    upper = raw_type.upper()
    for needle, field_type in TYPE_PATTERNS:
        if needle in upper:
            if field_type == "TIMESTAMP" and "WITH TIME ZONE" in fragment.upper():
                return "TIMESTAMPTZ"
            return field_type
    return FALLBACK_TYPE


def parse_field(fragment: str) -> Optional[SchemaField]:
    """Parse one field definition, or None for table constraints and empty fragments."""
    tokens = fragment.split()
    if not tokens:
        return None
    if tokens[0].upper() in CONSTRAINT_KEYWORDS:
        return None

    # Constraints are read only after the column name
    rest = " ".join(tokens[1:])
    raw_type = tokens[1] if len(tokens) > 1 else ""
    default_match = DEFAULT_RE.search(rest)

    return SchemaField(
        name=_identifier(tokens[0]),
        type=classify_type(raw_type, rest),
        nullable=NOT_NULL_RE.search(rest) is None,
        primary_key=PRIMARY_KEY_RE.search(rest) is not None,
        unique=UNIQUE_RE.search(rest) is not None,
        default_value=default_match.group(1).rstrip(",") if default_match else "",
    )


def import_sql(text: str) -> SqlImportResult:
    """
    Recover tables from free-text SQL.

    Returns:
        SqlImportResult. When nothing matches, tables is empty and the
        message says no valid statements were found.
    """
    tables = []
    for match in CREATE_TABLE_RE.finditer(text or ""):
        fields = []
        for fragment in match.group(2).split(","):
            field = parse_field(fragment)
            if field is not None:
                fields.append(field)
        tables.append(SchemaTable(_identifier(match.group(1)), fields))

    secured = {_identifier(name).lower() for name in ROW_SECURITY_RE.findall(text or "")}
    for table in tables:
        if table.name.lower() in secured:
            table.enable_row_security = True

    if not tables:
        logger.info("sql_import_no_statements")
        return SqlImportResult([], NO_STATEMENTS)

    logger.info("sql_imported", tables=[table.name for table in tables])
    return SqlImportResult(tables, f"Imported {len(tables)} table(s) from SQL")


# ═══════════════════════════════════════════════════════════════
# DESIGNER
# ═══════════════════════════════════════════════════════════════

FIELD_ATTRIBUTES = {
    "name": "name",
    "type": "type",
    "nullable": "nullable",
    "primaryKey": "primary_key",
    "primary_key": "primary_key",
    "unique": "unique",
    "defaultValue": "default_value",
    "default_value": "default_value",
}


class SchemaDesigner:
    """Session state of the visual table designer."""

    def __init__(self, tables: Optional[List[SchemaTable]] = None):
        self.tables: List[SchemaTable] = tables if tables is not None else []

    def table(self, table_id: str) -> Optional[SchemaTable]:
        for table in self.tables:
            if table.id == table_id:
                return table
        return None

    def add_table(self, name: str) -> OperationResult:
        name = (name or "").strip()
        if not name:
            return OperationResult.invalid("Please enter a table name")
        table = SchemaTable.with_defaults(name)
        self.tables.append(table)
        return OperationResult.ok(table, f"Table {name} created")

    def delete_table(self, table_id: str) -> OperationResult:
        table = self.table(table_id)
        if table is None:
            return OperationResult.invalid("Table not found")
        self.tables = [t for t in self.tables if t.id != table_id]
        return OperationResult.ok(table, f"Table {table.name} deleted")

    def add_field(self, table_id: str, name: str = "new_field", type: str = FALLBACK_TYPE) -> OperationResult:
        table = self.table(table_id)
        if table is None:
            return OperationResult.invalid("Table not found")
        if type not in FIELD_TYPES:
            return OperationResult.invalid(f"Unknown field type '{type}'")
        if not (name or "").strip():
            return OperationResult.invalid("Field name cannot be empty")
        field = SchemaField(name.strip(), type)
        table.fields.append(field)
        return OperationResult.ok(field)

    def update_field(self, table_id: str, field_id: str, **changes) -> OperationResult:
        table = self.table(table_id)
        if table is None:
            return OperationResult.invalid("Table not found")
        field = table.field(field_id)
        if field is None:
            return OperationResult.invalid("Field not found")

        unknown = [key for key in changes if key not in FIELD_ATTRIBUTES]
        if unknown:
            return OperationResult.invalid(f"Unknown field attribute(s): {', '.join(unknown)}")
        if "type" in changes and changes["type"] not in FIELD_TYPES:
            return OperationResult.invalid(f"Unknown field type '{changes['type']}'")
        if "name" in changes and not str(changes["name"] or "").strip():
            return OperationResult.invalid("Field name cannot be empty")

        for key, value in changes.items():
            if key == "name":
                value = str(value).strip()
            setattr(field, FIELD_ATTRIBUTES[key], value)
        return OperationResult.ok(field)

    def delete_field(self, table_id: str, field_id: str) -> OperationResult:
        table = self.table(table_id)
        if table is None:
            return OperationResult.invalid("Table not found")
        field = table.field(field_id)
        if field is None:
            return OperationResult.invalid("Field not found")
        if field.primary_key:
            return OperationResult.invalid("Primary key fields cannot be deleted")
        table.fields = [f for f in table.fields if f.id != field_id]
        return OperationResult.ok(field)

    def toggle_row_security(self, table_id: str) -> OperationResult:
        table = self.table(table_id)
        if table is None:
            return OperationResult.invalid("Table not found")
        table.enable_row_security = not table.enable_row_security
        return OperationResult.ok(table)

    def generate_sql(self) -> str:
        return generate_sql(self.tables)

    def export_file(self, now: Optional[datetime] = None) -> OperationResult:
        if not self.tables:
            return OperationResult.invalid("No tables to export")
        filename = f"database-design-{unix_ms(now)}.sql"
        return OperationResult.ok(ExportFile(filename, self.generate_sql(), "text/sql"), "SQL file saved successfully")

    def import_sql(self, text: str) -> OperationResult:
        """Replace the designed tables with those found in text. Nothing found leaves them untouched."""
        result = import_sql(text)
        if not result:
            return OperationResult.invalid(result.message)
        self.tables = result.tables
        return OperationResult.ok(result.tables, result.message)

    def load_template(self, name: str) -> OperationResult:
        if name not in TEMPLATES:
            return OperationResult.invalid(f"Unknown template '{name}'")
        return self.import_sql(TEMPLATES[name])
