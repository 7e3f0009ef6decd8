"""Legacy flat-file migration, import / export, and first-start seeding."""

from __future__ import annotations

import copy
import json
import logging
import sqlite3
from datetime import date
from pathlib import Path
from typing import Generator

import pytest

from sitecms.db.alerts import get_alert
from sitecms.db.connection import get_connection
from sitecms.db.items import add_item, count_items, list_items
from sitecms.db.legacy import (
    DEFAULT_CONTENT,
    UNTITLED,
    export_legacy,
    import_legacy_data,
    import_legacy_file,
    load_legacy_file,
    migrate_legacy_records,
)
from sitecms.db.migrations import current_version, init_db, initialise_store
from sitecms.errors import LegacyFormatError, ValidationError
from sitecms.storage import LocalFileStore

LEGACY = {
    "news": [
        {"content": "Old style news"},
        {
            "title": "Tax season",
            "content": "We are open late.",
            "editableDate": "2023-02-01",
            "lastUpdated": "2023-02-01T10:00:00.000Z",
        },
    ],
    "faq": [{"content": "", "editableDate": "2022-05-05"}],
    "forms": [
        {
            "title": "W-9",
            "content": "Request for TIN",
            "editableDate": "2023-01-01",
            "lastUpdated": "2023-01-01T00:00:00.000Z",
            "filename": "1700000000000.pdf",
        }
    ],
}


@pytest.fixture()
def conn() -> Generator[sqlite3.Connection, None, None]:
    connection = get_connection(db_path=":memory:")  # type: ignore[arg-type]
    init_db(connection)
    yield connection
    connection.close()


@pytest.fixture()
def legacy_file(tmp_path: Path) -> Path:
    path = tmp_path / "data.json"
    path.write_text(json.dumps(LEGACY), encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# migrate_legacy_records
# ---------------------------------------------------------------------------

class TestMigrateRecords:
    def test_untitled_records_rewritten(self) -> None:
        migrated = migrate_legacy_records(LEGACY)
        first = migrated["news"][0]
        assert first["title"] == UNTITLED
        assert first["content"] == "Old style news"
        assert first["editableDate"] == date.today().isoformat()
        assert first["lastUpdated"]
        assert first["filename"] == ""

    def test_default_content_and_kept_date(self) -> None:
        faq = migrate_legacy_records(LEGACY)["faq"][0]
        assert faq["content"] == DEFAULT_CONTENT
        assert faq["editableDate"] == "2022-05-05"

    def test_titled_records_pass_through(self) -> None:
        migrated = migrate_legacy_records(LEGACY)
        assert migrated["news"][1] == LEGACY["news"][1]
        assert migrated["forms"] == LEGACY["forms"]

    def test_missing_collections_added(self) -> None:
        assert migrate_legacy_records(LEGACY)["classes"] == []

    def test_idempotent(self) -> None:
        once = migrate_legacy_records(LEGACY)
        twice = migrate_legacy_records(copy.deepcopy(once))
        assert twice == once

    def test_input_not_mutated(self) -> None:
        original = copy.deepcopy(LEGACY)
        migrate_legacy_records(LEGACY)
        assert LEGACY == original

    @pytest.mark.parametrize("bad", [{"news": "nope"}, {"faq": ["not an object"]}])
    def test_malformed_collections(self, bad) -> None:
        with pytest.raises(LegacyFormatError):
            migrate_legacy_records(bad)


class TestLoadLegacyFile:
    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "data.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(LegacyFormatError):
            load_legacy_file(path)

    def test_top_level_must_be_object(self, tmp_path: Path) -> None:
        path = tmp_path / "data.json"
        path.write_text("[]", encoding="utf-8")
        with pytest.raises(LegacyFormatError):
            load_legacy_file(path)

    def test_loads_and_migrates(self, legacy_file: Path) -> None:
        data = load_legacy_file(legacy_file)
        assert all(record.get("title") for record in data["news"])


# ---------------------------------------------------------------------------
# import / export
# ---------------------------------------------------------------------------

class TestImport:
    def test_counts_and_order(self, conn, legacy_file) -> None:
        counts = import_legacy_file(conn, legacy_file)
        assert counts == {"news": 2, "faq": 1, "forms": 1, "classes": 0}
        assert [i.title for i in list_items(conn, "news")] == [UNTITLED, "Tax season"]

    def test_ids_are_generated(self, conn, legacy_file) -> None:
        import_legacy_file(conn, legacy_file)
        ids = [i.id for i in list_items(conn, "news")]
        assert len(set(ids)) == 2 and all(len(i) == 36 for i in ids)

    def test_fields_carried_over(self, conn, legacy_file) -> None:
        import_legacy_file(conn, legacy_file)
        form = list_items(conn, "forms")[0]
        assert form.filename == "1700000000000.pdf"
        assert form.editable_date == date(2023, 1, 1)
        assert form.last_updated.year == 2023

    def test_refuses_non_empty_store(self, conn, legacy_file) -> None:
        add_item(conn, "news", title="Existing", content="c")
        with pytest.raises(ValidationError):
            import_legacy_file(conn, legacy_file)
        assert count_items(conn) == 1

    def test_replace(self, conn, legacy_file) -> None:
        add_item(conn, "news", title="Existing", content="c")
        import_legacy_file(conn, legacy_file, replace=True)
        assert "Existing" not in [i.title for i in list_items(conn, "news")]
        assert count_items(conn) == 4

    def test_classes_with_roster(self, conn) -> None:
        data = {
            "classes": [
                {
                    "title": "Bookkeeping",
                    "content": "Basics",
                    "active": False,
                    "roster": [
                        {"firstName": "A", "lastName": "B", "email": "a@b.com",
                         "signupDate": "2024-01-02T03:04:05Z"}
                    ],
                }
            ]
        }
        import_legacy_data(conn, data)
        cls = list_items(conn, "classes")[0]
        assert cls.active is False
        assert cls.roster[0].email == "a@b.com"

    def test_unreadable_signup_date_falls_back_to_item_stamp(self, conn) -> None:
        data = {
            "classes": [
                {
                    "title": "T",
                    "content": "c",
                    "lastUpdated": "2024-05-01T00:00:00Z",
                    "roster": [
                        {"firstName": "A", "lastName": "B", "email": "a@b.com",
                         "signupDate": "garbage"}
                    ],
                }
            ]
        }
        import_legacy_data(conn, data)
        cls = list_items(conn, "classes")[0]
        assert cls.roster[0].signup_date == cls.last_updated

    @pytest.mark.parametrize("roster", [["x"], [None], "everyone"])
    def test_malformed_roster_is_rejected(self, conn, roster) -> None:
        data = {
            "news": [{"title": "N", "content": "c"}],
            "classes": [{"title": "T", "content": "c", "roster": roster}],
        }
        with pytest.raises(LegacyFormatError, match=r"classes\[0\]\.roster"):
            import_legacy_data(conn, data)
        assert count_items(conn) == 0

    def test_form_without_stored_file_is_logged(self, conn, tmp_path, caplog) -> None:
        files = LocalFileStore(tmp_path / "uploads")
        files.root.mkdir()
        (files.root / "present.pdf").write_bytes(b"%PDF")
        data = {
            "forms": [
                {"title": "Here", "content": "c", "filename": "present.pdf"},
                {"title": "Gone", "content": "c", "filename": "absent.pdf"},
            ]
        }
        with caplog.at_level(logging.WARNING, logger="sitecms.db.legacy"):
            import_legacy_data(conn, data, file_store=files)
        warnings = [r.getMessage() for r in caplog.records]
        assert any("absent.pdf" in m for m in warnings)
        assert not any("present.pdf" in m for m in warnings)
        assert [i.filename for i in list_items(conn, "forms")] == ["present.pdf", "absent.pdf"]

    def test_export_round_trip_keeps_order_and_titles(self, conn, legacy_file) -> None:
        import_legacy_file(conn, legacy_file)
        exported = export_legacy(conn)
        assert [r["title"] for r in exported["news"]] == [UNTITLED, "Tax season"]
        assert exported["forms"][0]["filename"] == "1700000000000.pdf"
        assert exported["classes"] == []


# ---------------------------------------------------------------------------
# initialise_store
# ---------------------------------------------------------------------------

class TestInitialiseStore:
    @pytest.fixture()
    def fresh(self) -> Generator[sqlite3.Connection, None, None]:
        connection = get_connection(db_path=":memory:")  # type: ignore[arg-type]
        yield connection
        connection.close()

    def test_first_start_seeds_defaults(self, fresh) -> None:
        assert initialise_store(fresh) is True
        assert count_items(fresh, "news") == 1
        assert count_items(fresh, "faq") == 1
        assert count_items(fresh, "classes") == 1
        assert count_items(fresh, "forms") == 0
        assert fresh.execute("SELECT COUNT(*) FROM alert").fetchone()[0] == 1
        assert get_alert(fresh).active is False

    def test_second_start_is_a_no_op(self, fresh) -> None:
        initialise_store(fresh)
        assert initialise_store(fresh) is False
        assert count_items(fresh) == 3

    def test_first_start_imports_legacy_file(self, fresh, legacy_file) -> None:
        initialise_store(fresh, legacy_file)
        assert count_items(fresh) == 4
        assert get_alert(fresh).color == "warning"

    def test_missing_legacy_file_falls_back_to_seed(self, fresh, tmp_path) -> None:
        initialise_store(fresh, tmp_path / "absent.json")
        assert count_items(fresh) == 3

    def test_corrupt_legacy_file_is_fatal(self, fresh, tmp_path) -> None:
        path = tmp_path / "data.json"
        path.write_text("{oops", encoding="utf-8")
        with pytest.raises(LegacyFormatError):
            initialise_store(fresh, path)

    def test_schema_version_starts_at_zero(self, fresh) -> None:
        initialise_store(fresh)
        assert current_version(fresh) == 0
