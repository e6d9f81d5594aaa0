"""
Catalog entity models and the entity-kind registry.

Every table-specific name (canonical table, id column, staging table,
link tables) lives in ENTITY_REGISTRY so the classifier, staging ledger
and commit engine stay generic over entity kinds.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from pydantic import ConfigDict, Field

from models.base import BaseSchema
from exceptions import UnsupportedEntityKindError


class EntityKind(str, Enum):
    """Kinds of canonical catalog entities."""
    BRAND = "brand"
    SUPPLIER = "supplier"
    DISTRIBUTOR = "distributor"
    CATEGORY = "category"
    SUB_CATEGORY = "sub_category"


@dataclass(frozen=True)
class LinkSpec:
    """
    Many-to-many association fed by a comma-separated row column.

    Example: brand row column "brand_categories" = "spirits, wine"
    links the brand to categories "spirits" and "wine" via the
    brand_categories table.
    """
    table: str
    row_field: str
    owner_column: str
    target_column: str
    target_kind: EntityKind
    extra: dict = field(default_factory=dict)

    @property
    def unique_columns(self) -> list[str]:
        return [self.owner_column, self.target_column]


@dataclass(frozen=True)
class EntityConfig:
    """Storage layout of one entity kind."""
    kind: EntityKind
    table: str
    id_column: str
    name_column: str
    url_column: Optional[str] = None
    logo_column: Optional[str] = None
    source_column: Optional[str] = None
    staging_table: Optional[str] = None
    import_type: Optional[str] = None
    links: tuple = ()

    @property
    def metadata_columns(self) -> list[str]:
        """Columns overwritten on every upsert, besides the name."""
        return [
            c for c in (self.url_column, self.logo_column, self.source_column)
            if c
        ]

    @property
    def select_columns(self) -> str:
        """Column list for catalog reads."""
        return ", ".join([self.id_column, self.name_column, *self.metadata_columns])

    @property
    def importable(self) -> bool:
        return self.staging_table is not None


ENTITY_REGISTRY: dict[EntityKind, EntityConfig] = {
    EntityKind.BRAND: EntityConfig(
        kind=EntityKind.BRAND,
        table="core_brands",
        id_column="brand_id",
        name_column="brand_name",
        url_column="brand_url",
        logo_column="brand_logo_url",
        source_column="data_source",
        staging_table="staging_brands",
        import_type="brand",
        links=(
            LinkSpec(
                table="brand_categories",
                row_field="brand_categories",
                owner_column="brand_id",
                target_column="category_id",
                target_kind=EntityKind.CATEGORY,
            ),
            LinkSpec(
                table="brand_sub_categories",
                row_field="brand_sub_categories",
                owner_column="brand_id",
                target_column="sub_category_id",
                target_kind=EntityKind.SUB_CATEGORY,
            ),
            LinkSpec(
                table="brand_supplier",
                row_field="brand_supplier",
                owner_column="brand_id",
                target_column="supplier_id",
                target_kind=EntityKind.SUPPLIER,
                extra={"relationship_source": "csv_import"},
            ),
            LinkSpec(
                table="brand_distributor",
                row_field="brand_distributor",
                owner_column="brand_id",
                target_column="distributor_id",
                target_kind=EntityKind.DISTRIBUTOR,
                extra={"relationship_source": "csv_import"},
            ),
        ),
    ),
    EntityKind.SUPPLIER: EntityConfig(
        kind=EntityKind.SUPPLIER,
        table="core_suppliers",
        id_column="supplier_id",
        name_column="supplier_name",
        url_column="supplier_url",
        logo_column="supplier_logo_url",
        staging_table="staging_suppliers",
        import_type="add_supplier",
    ),
    EntityKind.DISTRIBUTOR: EntityConfig(
        kind=EntityKind.DISTRIBUTOR,
        table="core_distributors",
        id_column="distributor_id",
        name_column="distributor_name",
        url_column="distributor_url",
        logo_column="distributor_logo_url",
        staging_table="staging_distributors",
        import_type="add_distributor",
    ),
    EntityKind.CATEGORY: EntityConfig(
        kind=EntityKind.CATEGORY,
        table="categories",
        id_column="category_id",
        name_column="category_name",
    ),
    EntityKind.SUB_CATEGORY: EntityConfig(
        kind=EntityKind.SUB_CATEGORY,
        table="sub_categories",
        id_column="sub_category_id",
        name_column="sub_category_name",
    ),
}


def get_entity_config(kind: EntityKind) -> EntityConfig:
    """Storage layout for a kind."""
    return ENTITY_REGISTRY[EntityKind(kind)]


def importable_kinds() -> list[str]:
    """Kinds that can be validated, staged and committed."""
    return [c.kind.value for c in ENTITY_REGISTRY.values() if c.importable]


def resolve_import_kind(value: str) -> EntityKind:
    """
    Resolve a URL/body type tag to an importable kind.

    Accepts the kind value ("brand") as well as the plural
    form used by the staging review screens ("brands", "suppliers").

    Raises:
        UnsupportedEntityKindError: If the tag names no importable kind
    """
    tag = (value or "").strip().lower().replace("-", "_")

    for config in ENTITY_REGISTRY.values():
        if not config.importable:
            continue
        if tag in (config.kind.value, f"{config.kind.value}s"):
            return config.kind

    raise UnsupportedEntityKindError(value, importable_kinds())


class CatalogEntity(BaseSchema):
    """
    Canonical catalog record, as seen by the classifier.

    The display name is the matching key; it is not stripped so that
    exact matching stays byte-for-byte.
    """

    id: str = Field(..., description="Entity identifier")
    name: str = Field(..., description="Display name (matching key)")
    kind: EntityKind = Field(..., description="Entity kind")
    url: Optional[str] = Field(None, description="Website URL")
    logo_url: Optional[str] = Field(None, description="Logo URL")
    data_source: Optional[str] = Field(None, description="Where the record came from")

    model_config = ConfigDict(str_strip_whitespace=False)

    @classmethod
    def from_row(cls, config: EntityConfig, row: dict[str, Any]) -> "CatalogEntity":
        """Build from a raw table row using the kind's column layout."""
        return cls(
            id=str(row[config.id_column]),
            name=row.get(config.name_column) or "",
            kind=config.kind,
            url=row.get(config.url_column) if config.url_column else None,
            logo_url=row.get(config.logo_column) if config.logo_column else None,
            data_source=row.get(config.source_column) if config.source_column else None,
        )
