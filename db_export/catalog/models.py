"""Catalog data models for schema introspection."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class ConstraintKind(str, Enum):
    """Kinds of table constraints."""
    PRIMARY_KEY = "PRIMARY KEY"
    FOREIGN_KEY = "FOREIGN KEY"
    UNIQUE = "UNIQUE"
    CHECK = "CHECK"

    @classmethod
    def parse(cls, value: str) -> "ConstraintKind":
        """Parse a catalog constraint type ('PRIMARY KEY', 'p', 'FOREIGN_KEY', ...)."""
        normalized = value.strip().upper().replace("_", " ")
        codes = {"P": cls.PRIMARY_KEY, "F": cls.FOREIGN_KEY, "U": cls.UNIQUE, "C": cls.CHECK}
        if normalized in codes:
            return codes[normalized]
        for kind in cls:
            if kind.value == normalized:
                return kind
        raise ValueError(f"Unknown constraint type: {value!r}")


class ReferentialAction(str, Enum):
    """Foreign key ON UPDATE / ON DELETE actions."""
    CASCADE = "CASCADE"
    SET_NULL = "SET NULL"
    SET_DEFAULT = "SET DEFAULT"
    RESTRICT = "RESTRICT"
    NO_ACTION = "NO ACTION"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ReferentialAction":
        """Parse pg_constraint codes (a, r, c, n, d) or information_schema rule names."""
        value = (value or "").strip()
        if not value:
            return cls.NO_ACTION
        codes = {
            "a": cls.NO_ACTION,
            "r": cls.RESTRICT,
            "c": cls.CASCADE,
            "n": cls.SET_NULL,
            "d": cls.SET_DEFAULT,
        }
        if value in codes:
            return codes[value]
        normalized = value.strip().upper().replace("_", " ")
        for action in cls:
            if action.value == normalized:
                return action
        raise ValueError(f"Unknown referential action: {value!r}")


@dataclass(frozen=True)
class EnumType:
    """Represents a native catalog enum type."""
    name: str
    values: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ColumnDefinition:
    """Represents a table column as reported by the catalog."""
    name: str
    data_type: str
    is_nullable: bool = True
    column_default: Optional[str] = None
    character_maximum_length: Optional[int] = None
    numeric_precision: Optional[int] = None
    numeric_scale: Optional[int] = None
    udt_name: Optional[str] = None
    ordinal_position: Optional[int] = None

    @property
    def is_array(self) -> bool:
        """Whether the column holds an array type."""
        data_type = self.data_type.strip()
        if data_type.upper() == "ARRAY" or data_type.upper().startswith("ARRAY["):
            return True
        return data_type.endswith("[]")

    @property
    def element_type(self) -> str:
        """Scalar type name, with any array spelling removed."""
        data_type = self.data_type.strip()
        if data_type.upper() == "ARRAY":
            if self.udt_name and self.udt_name.startswith("_"):
                return self.udt_name[1:]
            return self.udt_name or data_type
        if data_type.upper().startswith("ARRAY[") and data_type.endswith("]"):
            return data_type[6:-1].strip()
        while data_type.endswith("[]"):
            data_type = data_type[:-2].strip()
        return data_type

    @property
    def physical_type(self) -> str:
        """Type name usable in DDL (sentinels resolved through udt_name)."""
        data_type = self.data_type.strip()
        if data_type.upper() == "USER-DEFINED" and self.udt_name:
            return self.udt_name
        if self.is_array:
            return f"{self.element_type}[]"
        return data_type


@dataclass(frozen=True)
class ConstraintDefinition:
    """Represents a single logical table constraint."""
    name: str
    kind: ConstraintKind
    columns: List[str] = field(default_factory=list)
    referenced_table: Optional[str] = None
    referenced_columns: List[str] = field(default_factory=list)
    on_update: ReferentialAction = ReferentialAction.NO_ACTION
    on_delete: ReferentialAction = ReferentialAction.NO_ACTION
    check_clause: Optional[str] = None

    @property
    def referenced_column(self) -> Optional[str]:
        """First referenced column of a foreign key."""
        return self.referenced_columns[0] if self.referenced_columns else None


@dataclass(frozen=True)
class IndexDefinition:
    """Represents a table index."""
    name: str
    definition: str
    is_primary: bool = False
    is_unique: bool = False


@dataclass
class TableDefinition:
    """Represents a database table."""
    name: str
    columns: List[ColumnDefinition] = field(default_factory=list)
    constraints: List[ConstraintDefinition] = field(default_factory=list)
    indexes: List[IndexDefinition] = field(default_factory=list)

    @property
    def primary_key(self) -> Optional[ConstraintDefinition]:
        for constraint in self.constraints:
            if constraint.kind == ConstraintKind.PRIMARY_KEY:
                return constraint
        return None

    @property
    def primary_key_columns(self) -> List[str]:
        pk = self.primary_key
        return list(pk.columns) if pk else []

    @property
    def foreign_keys(self) -> List[ConstraintDefinition]:
        return [c for c in self.constraints if c.kind == ConstraintKind.FOREIGN_KEY]

    @property
    def check_constraints(self) -> List[ConstraintDefinition]:
        return [c for c in self.constraints if c.kind == ConstraintKind.CHECK]

    @property
    def secondary_indexes(self) -> List[IndexDefinition]:
        """Indexes not backing the primary key."""
        return [i for i in self.indexes if not i.is_primary]

    def get_column(self, name: str) -> Optional[ColumnDefinition]:
        for column in self.columns:
            if column.name == name:
                return column
        return None

    def foreign_key_for(self, column_name: str) -> Optional[ConstraintDefinition]:
        """Find the foreign key whose first column is column_name."""
        for fk in self.foreign_keys:
            if fk.columns and fk.columns[0] == column_name:
                return fk
        return None


@dataclass(frozen=True)
class FunctionDefinition:
    """Database function passed through verbatim."""
    name: str
    definition: str


@dataclass(frozen=True)
class TriggerDefinition:
    """Database trigger passed through verbatim."""
    name: str
    table: str
    definition: str


@dataclass
class SchemaSnapshot:
    """Canonical schema model for one export run."""
    enums: List[EnumType] = field(default_factory=list)
    tables: List[TableDefinition] = field(default_factory=list)
    functions: List[FunctionDefinition] = field(default_factory=list)
    triggers: List[TriggerDefinition] = field(default_factory=list)

    def get_table(self, table_name: str) -> Optional[TableDefinition]:
        """Find a table by name."""
        for table in self.tables:
            if table.name == table_name:
                return table
        return None
