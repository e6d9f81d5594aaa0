"""
Unit tests for CatalogService.

Run: pytest tests/unit/test_catalog_service.py -v
"""

import pytest

from services.catalog_service import CatalogService, get_catalog_service
from models.catalog import EntityKind
from exceptions import DatabaseError, DuplicateError, NotFoundError
from tests.factories import CatalogRowFactory


class TestFetchAll:
    """Tests for CatalogService.fetch_all()"""

    def test_reads_every_page(self, mock_db):
        """Should keep paging until a short page comes back."""
        names = [f"Brand {i:02d}" for i in range(7)]
        mock_db.set_table_data("core_brands", CatalogRowFactory.create_named(EntityKind.BRAND, names))

        entities = CatalogService(EntityKind.BRAND).fetch_all(page_size=3)

        assert [e.name for e in entities] == names
        assert all(e.kind == EntityKind.BRAND for e in entities)

    def test_exact_multiple_of_page_size(self, mock_db):
        """A full last page should be followed by one empty read, not an error."""
        mock_db.set_table_data("core_brands", CatalogRowFactory.create_named(
            EntityKind.BRAND, ["A", "B", "C", "D"]
        ))

        entities = CatalogService(EntityKind.BRAND).fetch_all(page_size=2)

        assert len(entities) == 4

    def test_maps_metadata_columns(self, mock_db):
        """Should map the kind's columns onto CatalogEntity."""
        mock_db.set_table_data("core_brands", [
            CatalogRowFactory.create(
                EntityKind.BRAND,
                name="Ardbeg",
                id="b-1",
                brand_url="https://ardbeg.com",
                data_source="scrape"
            )
        ])

        entity = CatalogService(EntityKind.BRAND).fetch_all()[0]

        assert entity.id == "b-1"
        assert entity.url == "https://ardbeg.com"
        assert entity.data_source == "scrape"
        assert entity.logo_url is None

    def test_store_failure_raises_database_error(self, mock_db):
        """A failed page read fails the whole load."""
        mock_db.fail_on("core_brands", "select")

        with pytest.raises(DatabaseError):
            CatalogService(EntityKind.BRAND).fetch_all()


class TestGetOrCreate:
    """Tests for CatalogService.get_or_create()"""

    def test_returns_existing_row(self, mock_db):
        """Should not insert when the name exists."""
        mock_db.set_table_data("categories", [
            CatalogRowFactory.create(EntityKind.CATEGORY, name="Spirits", id="c-1")
        ])

        row, created = CatalogService(EntityKind.CATEGORY).get_or_create("Spirits")

        assert created is False
        assert row["category_id"] == "c-1"
        assert mock_db.writes == []

    def test_inserts_missing_row(self, mock_db):
        """Should insert with the extra columns."""
        service = CatalogService(EntityKind.SUB_CATEGORY)

        row, created = service.get_or_create("Scotch", {"category_id": "c-1"})

        assert created is True
        assert row["sub_category_name"] == "Scotch"
        assert row["category_id"] == "c-1"
        assert len(mock_db.rows("sub_categories")) == 1

    def test_concurrent_insert_is_re_read(self, mock_db):
        """A unique violation from a racing writer should return the winner's row."""
        # Arrange: another writer inserts "Spirits" between our lookup and our insert
        def concurrent_writer():
            mock_db.rows("categories").append({"category_id": "c-race", "category_name": "Spirits"})

        mock_db.on_execute("categories", "insert", concurrent_writer)

        # Act
        row, created = CatalogService(EntityKind.CATEGORY).get_or_create("Spirits")

        # Assert
        assert created is False
        assert row["category_id"] == "c-race"
        assert len(mock_db.rows("categories")) == 1

    def test_gives_up_after_max_attempts(self, mock_db):
        """A conflict that never resolves should surface as DatabaseError."""
        service = CatalogService(EntityKind.CATEGORY)
        service.get_by_name = lambda name: None
        mock_db.set_table_data("categories", [{"category_id": "c-1", "category_name": "Spirits"}])

        with pytest.raises(DatabaseError, match="conflicted"):
            service.get_or_create("Spirits")


class TestInsertAndUpdate:
    """Tests for CatalogService.insert() and update()"""

    def test_insert_duplicate_raises_duplicate_error(self, mock_db):
        """Unique violation should map to DuplicateError."""
        mock_db.set_table_data("core_suppliers", [{"supplier_id": "s-1", "supplier_name": "Diageo"}])

        with pytest.raises(DuplicateError):
            CatalogService(EntityKind.SUPPLIER).insert({"supplier_name": "Diageo"})

    def test_insert_other_failure_raises_database_error(self, mock_db):
        """Any other store error should map to DatabaseError."""
        mock_db.fail_on("core_suppliers", "insert")

        with pytest.raises(DatabaseError):
            CatalogService(EntityKind.SUPPLIER).insert({"supplier_name": "Diageo"})

    def test_update_overwrites_columns(self, mock_db):
        """Should overwrite the given columns only."""
        mock_db.set_table_data("core_suppliers", [{
            "supplier_id": "s-1",
            "supplier_name": "Diageo",
            "supplier_url": "https://old.example",
        }])

        row = CatalogService(EntityKind.SUPPLIER).update("s-1", {"supplier_url": None})

        assert row["supplier_url"] is None
        assert row["supplier_name"] == "Diageo"

    def test_update_unknown_id_raises_not_found(self, mock_db):
        """Should raise NotFoundError when no row matches."""
        with pytest.raises(NotFoundError):
            CatalogService(EntityKind.SUPPLIER).update("missing", {"supplier_url": None})


class TestGetCatalogService:
    """Tests for the per-kind getter."""

    def test_one_instance_per_kind(self, mock_db):
        """Should cache one service per kind."""
        assert get_catalog_service(EntityKind.BRAND) is get_catalog_service("brand")
        assert get_catalog_service(EntityKind.BRAND) is not get_catalog_service(EntityKind.SUPPLIER)
