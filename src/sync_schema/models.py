from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

# Canonical column types. Arrays are written as "<base>[]".
CANONICAL_SCALAR_TYPES = ("text", "bigint", "numeric", "boolean", "jsonb", "timestamp")


def is_array_type(canonical_type: str) -> bool:
    """Return True for canonical array types such as ``text[]``."""
    return canonical_type.endswith("[]")


def array_base_type(canonical_type: str) -> str:
    """Strip one array level from a canonical type."""
    return canonical_type[:-2] if is_array_type(canonical_type) else canonical_type


class IndexingOption(BaseModel):
    """Indexing recommendation for a column type."""

    type: Literal["btree", "gin", "gist"]
    description: str
    example: str

    model_config = {"frozen": True}


class ColumnDefinition(BaseModel):
    """Canonical representation of a table column."""

    name: str
    type: str
    nullable: bool = True
    primary_key: bool = False
    description: Optional[str] = None
    indexing_options: List[IndexingOption] = Field(default_factory=list)

    model_config = {"frozen": True}


class TableDefinition(BaseModel):
    """Canonical representation of a synced table.

    ``dependencies`` names the tables whose rows this table's rows may
    reference; it drives sync ordering only and is never persisted.
    """

    name: str
    columns: List[ColumnDefinition] = Field(default_factory=list)
    dependencies: List[str] = Field(default_factory=list)
    description: Optional[str] = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _unique_column_names(self) -> "TableDefinition":
        seen = set()
        for column in self.columns:
            if column.name in seen:
                raise ValueError(f"Duplicate column '{column.name}' in table '{self.name}'")
            seen.add(column.name)
        return self

    @property
    def column_names(self) -> List[str]:
        return [column.name for column in self.columns]

    @property
    def primary_key(self) -> List[str]:
        return [column.name for column in self.columns if column.primary_key]

    def get_column(self, name: str) -> Optional[ColumnDefinition]:
        for column in self.columns:
            if column.name == name:
                return column
        return None
