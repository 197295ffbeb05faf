"""
Tests for local backup inventory (backup_audit/inventory.py).
"""

import pytest

from backup_audit.catalog import Catalog, CatalogEntry
from backup_audit.inventory import (
    InventoryRecord,
    parse_backup_name,
    scan_backups,
    catalog_candidates,
)


class TestParseBackupName:
    """Tests for backup file name parsing."""

    def test_simple_name(self):
        """Test a plain three-part name."""
        record = parse_backup_name("Celeste_504230_1234.7z")
        assert record == InventoryRecord(app_id=504230, name="Celeste", installed_version=1234)

    def test_name_with_underscores(self):
        """Test underscores inside the game name are kept."""
        record = parse_backup_name("Hollow_Knight_367520_8612345.7z")
        assert record.name == "Hollow_Knight"
        assert record.app_id == 367520
        assert record.installed_version == 8612345

    @pytest.mark.parametrize("filename", [
        "Celeste_504230.7z",
        "Celeste_abc_1234.7z",
        "Celeste_504230_beta.7z",
        "Celeste_504230_1234.zip",
        "_504230_1234.7z",
    ])
    def test_rejects_bad_names(self, filename):
        """Test names that do not follow the convention are ignored."""
        assert parse_backup_name(filename) is None


class TestScanBackups:
    """Tests for directory scanning."""

    def test_scan(self, tmp_path):
        """Test only well-named archives are returned, sorted."""
        (tmp_path / "Zeta_2_20.7z").write_bytes(b"")
        (tmp_path / "Alpha_1_10.7z").write_bytes(b"")
        (tmp_path / "notes.txt").write_text("x")
        (tmp_path / "broken.7z").write_bytes(b"")
        (tmp_path / "Dir_3_30.7z").mkdir()

        records = scan_backups(tmp_path)
        assert [r.app_id for r in records] == [1, 2]

    def test_missing_directory(self, tmp_path):
        """Test a missing directory yields no records."""
        assert scan_backups(tmp_path / "nope") == []


class TestCatalogCandidates:
    """Tests for whole-catalog candidate lists."""

    def test_candidates_mirror_entries(self):
        """Test every entry becomes a candidate with its stored fields."""
        catalog = Catalog()
        catalog.add(CatalogEntry(app_id=1, name="One", installed_version=5))
        catalog.add(CatalogEntry(app_id=2, name="Two"))
        candidates = catalog_candidates(catalog)
        assert candidates == [
            InventoryRecord(app_id=1, name="One", installed_version=5),
            InventoryRecord(app_id=2, name="Two", installed_version=None),
        ]
