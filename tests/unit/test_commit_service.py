"""
Unit tests for CommitService.

Run: pytest tests/unit/test_commit_service.py -v
"""

import pytest
from postgrest.exceptions import APIError

from services.commit_service import CommitService
from models.catalog import EntityKind
from models.commit import CommitCounts
from models.import_run import MigrationStatus
from exceptions import CommitError, NoRowsProvidedError
from tests.factories import CatalogRowFactory, StagedRowFactory, ImportRunFactory


def brand_row(**overrides) -> dict:
    row = {
        "brand_name": "Acme",
        "brand_url": "https://acme.example",
        "brand_logo_url": "https://acme.example/logo.png",
        "brand_categories": "spirits,wine",
    }
    row.update(overrides)
    return row


class TestCommitRow:
    """Tests for CommitService.commit_row()"""

    def test_new_brand_is_inserted_with_links(self, mock_db):
        """Should insert the brand, create categories and link both."""
        counts = CommitCounts()

        brand_id = CommitService().commit_row(EntityKind.BRAND, brand_row(), counts)

        assert counts == CommitCounts(inserted=1, updated=0, linked=2, skipped=0)
        brand = mock_db.rows("core_brands")[0]
        assert brand["brand_id"] == brand_id
        assert brand["data_source"] == "csv_import"
        assert {c["category_name"] for c in mock_db.rows("categories")} == {"spirits", "wine"}
        assert len(mock_db.rows("brand_categories")) == 2

    def test_recommit_is_idempotent_for_links(self, mock_db):
        """Second commit of the same payload updates and links nothing new."""
        service = CommitService()
        service.commit_row(EntityKind.BRAND, brand_row(), CommitCounts())

        counts = CommitCounts()
        service.commit_row(EntityKind.BRAND, brand_row(), counts)

        assert counts == CommitCounts(inserted=0, updated=1, linked=0, skipped=0)
        assert len(mock_db.rows("core_brands")) == 1
        assert len(mock_db.rows("categories")) == 2
        assert len(mock_db.rows("brand_categories")) == 2

    def test_existing_brand_is_fully_overwritten(self, mock_db):
        """Missing metadata overwrites stored values with null."""
        mock_db.set_table_data("core_brands", [CatalogRowFactory.create(
            EntityKind.BRAND,
            name="Acme",
            id="b-1",
            brand_url="https://old.example",
            brand_logo_url="https://old.example/logo.png",
            data_source="scrape",
        )])
        counts = CommitCounts()

        CommitService().commit_row(EntityKind.BRAND, {"brand_name": "Acme"}, counts)

        brand = mock_db.rows("core_brands")[0]
        assert counts.updated == 1
        assert brand["brand_url"] is None
        assert brand["brand_logo_url"] is None
        assert brand["data_source"] == "csv_import"

    @pytest.mark.parametrize("row", [{"brand_name": ""}, {"brand_name": "   "}, {}, "not a row"])
    def test_empty_name_is_skipped_without_writes(self, mock_db, row):
        """Rows without a name produce zero writes."""
        counts = CommitCounts()

        result = CommitService().commit_row(EntityKind.BRAND, row, counts)

        assert result is None
        assert counts == CommitCounts(skipped=1)
        assert mock_db.writes == []

    def test_suppliers_and_distributors_are_linked(self, mock_db):
        """Supplier and distributor columns link with relationship_source."""
        counts = CommitCounts()

        CommitService().commit_row(EntityKind.BRAND, {
            "brand_name": "Acme",
            "brand_supplier": "Diageo",
            "brand_distributor": "Southern, Breakthru",
        }, counts)

        assert counts.linked == 3
        supplier_link = mock_db.rows("brand_supplier")[0]
        assert supplier_link["relationship_source"] == "csv_import"
        assert len(mock_db.rows("core_distributors")) == 2

    def test_new_sub_category_filed_under_first_category(self, mock_db):
        """A created sub-category takes the row's first category."""
        CommitService().commit_row(EntityKind.BRAND, {
            "brand_name": "Acme",
            "brand_categories": "Spirits, Wine",
            "brand_sub_categories": "Scotch",
        }, CommitCounts())

        spirits = next(c for c in mock_db.rows("categories") if c["category_name"] == "Spirits")
        scotch = mock_db.rows("sub_categories")[0]
        assert scotch["category_id"] == spirits["category_id"]

    def test_matched_entity_id_updates_chosen_entity(self, mock_db):
        """A reviewer-confirmed match updates that entity without renaming it."""
        mock_db.set_table_data("core_brands", [
            CatalogRowFactory.create(EntityKind.BRAND, name="Glenlivet Company", id="b-1")
        ])
        counts = CommitCounts()

        brand_id = CommitService().commit_row(
            EntityKind.BRAND,
            {"brand_name": "The Glenlivet Co", "brand_url": "https://glenlivet.example"},
            counts,
            matched_entity_id="b-1",
        )

        brands = mock_db.rows("core_brands")
        assert brand_id == "b-1"
        assert counts.updated == 1
        assert len(brands) == 1
        assert brands[0]["brand_name"] == "Glenlivet Company"
        assert brands[0]["brand_url"] == "https://glenlivet.example"

    def test_insert_race_falls_back_to_update(self, mock_db):
        """If another writer inserts the same brand first, update theirs."""
        mock_db.on_execute(
            "core_brands",
            "insert",
            lambda: mock_db.rows("core_brands").append({"brand_id": "b-race", "brand_name": "Acme"})
        )
        counts = CommitCounts()

        brand_id = CommitService().commit_row(EntityKind.BRAND, brand_row(brand_categories=None), counts)

        assert brand_id == "b-race"
        assert counts == CommitCounts(updated=1)
        assert mock_db.rows("core_brands")[0]["brand_url"] == "https://acme.example"

    def test_supplier_kind_upsert(self, mock_db):
        """Supplier rows upsert by supplier_name with no links."""
        counts = CommitCounts()

        CommitService().commit_row(EntityKind.SUPPLIER, {"supplier_name": "Diageo", "supplier_url": "d.example"}, counts)

        assert counts == CommitCounts(inserted=1)
        assert mock_db.rows("core_suppliers")[0]["supplier_url"] == "d.example"


class TestCommitRows:
    """Tests for CommitService.commit_rows()"""

    def test_later_rows_reuse_earlier_creations(self, mock_db):
        """A category created by row 1 is reused by row 2."""
        counts = CommitService().commit_rows(EntityKind.BRAND, [
            {"brand_name": "Acme", "brand_categories": "Spirits"},
            {"brand_name": "Beam", "brand_categories": "Spirits"},
            {"brand_name": ""},
        ])

        assert counts == CommitCounts(inserted=2, updated=0, linked=2, skipped=1)
        assert len(mock_db.rows("categories")) == 1

    def test_first_failure_aborts_remaining_rows(self, mock_db):
        """Earlier rows stay committed and their counts travel in the error."""
        inserts = []

        def fail_second_insert():
            inserts.append(1)
            if len(inserts) == 2:
                raise APIError({"code": "08006", "message": "connection failure"})

        mock_db.on_execute("core_brands", "insert", fail_second_insert, times=3)

        with pytest.raises(CommitError) as exc_info:
            CommitService().commit_rows(EntityKind.BRAND, [
                {"brand_name": "Acme"},
                {"brand_name": "Beam"},
                {"brand_name": "Cask"},
            ])

        error = exc_info.value
        assert error.status_code == 500
        assert error.details["row"] == 2
        assert error.details["committed"]["inserted"] == 1
        assert [b["brand_name"] for b in mock_db.rows("core_brands")] == ["Acme"]

    def test_empty_rows_rejected(self, mock_db):
        """Should raise before any store access."""
        with pytest.raises(NoRowsProvidedError):
            CommitService().commit_rows(EntityKind.BRAND, [])


class TestMigrateApproved:
    """Tests for CommitService.migrate_approved()"""

    def test_commits_and_removes_approved_rows(self, mock_db):
        """Approved rows are committed and deleted; others stay staged."""
        # Arrange
        mock_db.set_table_data("import_runs", [ImportRunFactory.create(status="completed")])
        mock_db.set_table_data("staging_brands", [
            StagedRowFactory.create(
                EntityKind.BRAND, name="Acme", staging_id="s-1", import_run_id="run-1",
                is_approved=True, raw_data=brand_row(),
            ),
            StagedRowFactory.create(
                EntityKind.BRAND, name="Beam", staging_id="s-2", import_run_id="run-1", is_approved=None,
            ),
        ])

        # Act
        result = CommitService().migrate_approved(EntityKind.BRAND, "run-1")

        # Assert
        assert result.success is True
        assert result.migrated == 1
        assert result.total == 1
        assert result.summary == CommitCounts(inserted=1, linked=2)
        assert [r["staging_id"] for r in mock_db.rows("staging_brands")] == ["s-2"]

        run = mock_db.rows("import_runs")[0]
        assert run["migration_status"] == MigrationStatus.MIGRATED.value
        assert run["migration_summary"]["migrated"] == 1

    def test_failed_row_stays_staged(self, mock_db):
        """Per-row failures are isolated and the run is marked partial."""
        mock_db.set_table_data("import_runs", [ImportRunFactory.create(status="completed")])
        mock_db.set_table_data("staging_brands", [
            StagedRowFactory.create(
                EntityKind.BRAND, name="Acme", staging_id="s-1", import_run_id="run-1",
                row_index=0, is_approved=True, matched_entity_id="gone",
            ),
            StagedRowFactory.create(
                EntityKind.BRAND, name="Beam", staging_id="s-2", import_run_id="run-1",
                row_index=1, is_approved=True,
            ),
        ])

        result = CommitService().migrate_approved(EntityKind.BRAND, "run-1")

        assert result.success is False
        assert result.migrated == 1
        assert result.errors[0].startswith("Row 1: ")
        assert [r["staging_id"] for r in mock_db.rows("staging_brands")] == ["s-1"]
        assert mock_db.rows("import_runs")[0]["migration_status"] == MigrationStatus.PARTIAL.value

    def test_nothing_approved(self, mock_db):
        """Should succeed with nothing to do."""
        result = CommitService().migrate_approved(EntityKind.BRAND)

        assert result.migrated == 0
        assert result.message == "No approved rows to migrate"
