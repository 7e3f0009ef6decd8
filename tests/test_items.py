"""Collection store tests: items CRUD and ordering.

All tests use an in-memory SQLite database so they are:
- Fast (no disk I/O)
- Isolated (each fixture gets a fresh DB)
- Side-effect free (nothing written to ~/.sitecms_data)
"""

from __future__ import annotations

import sqlite3
from datetime import date
from typing import Generator
from unittest.mock import MagicMock

import pytest

from sitecms.db.connection import get_connection
from sitecms.db.items import (
    add_item,
    count_items,
    delete_item,
    get_item,
    list_items,
    reorder_items,
    update_item,
)
from sitecms.db.migrations import init_db
from sitecms.db.models import COLLECTIONS, ContentItem
from sitecms.errors import NotFoundError, UnknownCollectionError, ValidationError
from sitecms.storage import LocalFileStore


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def conn() -> Generator[sqlite3.Connection, None, None]:
    """In-memory connection with the schema initialised (no seed content)."""
    connection = get_connection(db_path=":memory:")  # type: ignore[arg-type]
    init_db(connection)
    yield connection
    connection.close()


def _ids(conn: sqlite3.Connection, collection: str) -> list[str]:
    return [item.id for item in list_items(conn, collection)]


# ---------------------------------------------------------------------------
# list / add
# ---------------------------------------------------------------------------

class TestListItems:
    @pytest.mark.parametrize("collection", COLLECTIONS)
    def test_every_collection_exists_when_empty(self, conn, collection) -> None:
        assert list_items(conn, collection) == []

    def test_unknown_collection(self, conn) -> None:
        with pytest.raises(UnknownCollectionError):
            list_items(conn, "blog")

    def test_uninitialised_store_lists_nothing(self) -> None:
        bare = get_connection(db_path=":memory:")  # type: ignore[arg-type]
        try:
            assert list_items(bare, "news") == []
        finally:
            bare.close()


class TestAddItem:
    def test_add_returns_item(self, conn) -> None:
        item = add_item(conn, "news", title="T", content="C")
        assert isinstance(item, ContentItem)
        assert item.id
        assert item.title == "T"
        assert item.content == "C"
        assert item.last_updated is not None
        assert item.created_at == item.last_updated

    def test_added_item_is_listed(self, conn) -> None:
        item = add_item(conn, "faq", title="Q?", content="A.")
        listed = list_items(conn, "faq")
        assert [i.id for i in listed] == [item.id]
        assert listed[0].last_updated == item.last_updated

    def test_appends_to_end(self, conn) -> None:
        first = add_item(conn, "news", title="1", content="c")
        second = add_item(conn, "news", title="2", content="c")
        third = add_item(conn, "news", title="3", content="c")
        assert _ids(conn, "news") == [first.id, second.id, third.id]
        assert [i.position for i in list_items(conn, "news")] == [0, 1, 2]

    def test_strips_text(self, conn) -> None:
        item = add_item(conn, "news", title="  Title  ", content=" <p>Body</p> ")
        assert item.title == "Title"
        assert item.content == "<p>Body</p>"

    @pytest.mark.parametrize("title, content", [("", "c"), ("   ", "c"), ("t", ""), ("t", "  ")])
    def test_blank_required_fields_rejected(self, conn, title, content) -> None:
        with pytest.raises(ValidationError):
            add_item(conn, "news", title=title, content=content)
        assert count_items(conn, "news") == 0

    def test_unknown_collection_rejected(self, conn) -> None:
        with pytest.raises(UnknownCollectionError):
            add_item(conn, "events", title="t", content="c")

    def test_forms_require_filename(self, conn) -> None:
        with pytest.raises(ValidationError):
            add_item(conn, "forms", title="W-9", content="Tax form")
        item = add_item(conn, "forms", title="W-9", content="Tax form", filename="a.pdf")
        assert item.filename == "a.pdf"

    def test_filename_only_for_forms(self, conn) -> None:
        with pytest.raises(ValidationError):
            add_item(conn, "news", title="t", content="c", filename="a.pdf")

    def test_classes_default_active(self, conn) -> None:
        item = add_item(conn, "classes", title="Tax 101", content="Intro")
        assert item.active is True
        closed = add_item(conn, "classes", title="Tax 102", content="More", active=False)
        assert get_item(conn, "classes", closed.id).active is False

    def test_active_only_for_classes(self, conn) -> None:
        with pytest.raises(ValidationError):
            add_item(conn, "faq", title="t", content="c", active=True)

    def test_editable_date(self, conn) -> None:
        item = add_item(conn, "news", title="t", content="c", editable_date="2024-03-01")
        assert get_item(conn, "news", item.id).editable_date == date(2024, 3, 1)

    def test_bad_editable_date(self, conn) -> None:
        with pytest.raises(ValidationError):
            add_item(conn, "news", title="t", content="c", editable_date="next tuesday")

    def test_get_item_is_scoped_to_collection(self, conn) -> None:
        item = add_item(conn, "news", title="t", content="c")
        assert get_item(conn, "faq", item.id) is None


# ---------------------------------------------------------------------------
# update
# ---------------------------------------------------------------------------

class TestUpdateItem:
    def test_partial_update(self, conn) -> None:
        item = add_item(conn, "news", title="T", content="C")
        updated = update_item(conn, "news", item.id, title="T2")
        assert updated.title == "T2"
        assert updated.content == "C"

    def test_last_updated_strictly_increases(self, conn) -> None:
        item = add_item(conn, "news", title="T", content="C")
        first = update_item(conn, "news", item.id, title="T2")
        second = update_item(conn, "news", item.id, title="T3")
        assert first.last_updated > item.last_updated
        assert second.last_updated > first.last_updated
        assert second.created_at == item.created_at

    def test_missing_item(self, conn) -> None:
        with pytest.raises(NotFoundError):
            update_item(conn, "news", "nope", title="x")

    def test_unknown_field(self, conn) -> None:
        item = add_item(conn, "news", title="T", content="C")
        with pytest.raises(ValidationError):
            update_item(conn, "news", item.id, position=3)

    def test_active_not_allowed_outside_classes(self, conn) -> None:
        item = add_item(conn, "news", title="T", content="C")
        with pytest.raises(ValidationError):
            update_item(conn, "news", item.id, active=False)

    def test_blank_title_rejected(self, conn) -> None:
        item = add_item(conn, "news", title="T", content="C")
        with pytest.raises(ValidationError):
            update_item(conn, "news", item.id, title="  ")
        assert get_item(conn, "news", item.id).title == "T"

    def test_empty_update_rejected(self, conn) -> None:
        item = add_item(conn, "news", title="T", content="C")
        with pytest.raises(ValidationError):
            update_item(conn, "news", item.id)

    def test_close_class(self, conn) -> None:
        item = add_item(conn, "classes", title="Tax 101", content="Intro")
        assert update_item(conn, "classes", item.id, active=False).active is False

    def test_clear_editable_date(self, conn) -> None:
        item = add_item(conn, "news", title="T", content="C", editable_date="2024-01-01")
        assert update_item(conn, "news", item.id, editable_date=None).editable_date is None

    def test_update_keeps_position(self, conn) -> None:
        a = add_item(conn, "news", title="A", content="c")
        b = add_item(conn, "news", title="B", content="c")
        update_item(conn, "news", a.id, title="A2")
        assert _ids(conn, "news") == [a.id, b.id]

    def test_form_filename_cannot_be_repointed(self, conn, tmp_path) -> None:
        files = LocalFileStore(tmp_path / "uploads")
        stored = files.save("w9.pdf", b"%PDF")
        item = add_item(conn, "forms", title="W-9", content="c", filename=stored)
        with pytest.raises(ValidationError):
            update_item(conn, "forms", item.id, filename="does-not-exist.pdf")
        assert get_item(conn, "forms", item.id).filename == stored
        assert files.exists(stored)


# ---------------------------------------------------------------------------
# delete
# ---------------------------------------------------------------------------

class TestDeleteItem:
    def test_delete_removes_item(self, conn) -> None:
        item = add_item(conn, "news", title="T", content="C")
        delete_item(conn, "news", item.id)
        assert list_items(conn, "news") == []

    def test_delete_missing(self, conn) -> None:
        with pytest.raises(NotFoundError):
            delete_item(conn, "news", "nope")

    def test_form_delete_removes_file_once(self, conn) -> None:
        item = add_item(conn, "forms", title="W-9", content="c", filename="x.pdf")
        files = MagicMock()
        files.delete.return_value = True
        delete_item(conn, "forms", item.id, file_store=files)
        files.delete.assert_called_once_with("x.pdf")

    def test_form_delete_with_missing_file(self, conn) -> None:
        item = add_item(conn, "forms", title="W-9", content="c", filename="gone.pdf")
        files = MagicMock()
        files.delete.return_value = False
        delete_item(conn, "forms", item.id, file_store=files)
        files.delete.assert_called_once_with("gone.pdf")
        assert list_items(conn, "forms") == []

    def test_storage_failure_is_swallowed(self, conn) -> None:
        item = add_item(conn, "forms", title="W-9", content="c", filename="x.pdf")
        files = MagicMock()
        files.delete.side_effect = OSError("disk on fire")
        delete_item(conn, "forms", item.id, file_store=files)
        assert files.delete.call_count == 1
        assert get_item(conn, "forms", item.id) is None

    def test_non_form_delete_does_not_touch_files(self, conn) -> None:
        item = add_item(conn, "news", title="T", content="C")
        files = MagicMock()
        delete_item(conn, "news", item.id, file_store=files)
        files.delete.assert_not_called()


# ---------------------------------------------------------------------------
# reorder
# ---------------------------------------------------------------------------

class TestReorder:
    @pytest.fixture()
    def three(self, conn) -> list[str]:
        return [add_item(conn, "faq", title=t, content="c").id for t in ("A", "B", "C")]

    def test_reorder_persists(self, conn, three) -> None:
        new_order = [three[2], three[0], three[1]]
        result = reorder_items(conn, "faq", new_order)
        assert [i.id for i in result] == new_order
        assert _ids(conn, "faq") == new_order

    def test_reorder_is_a_permutation(self, conn, three) -> None:
        before = sorted(_ids(conn, "faq"))
        reorder_items(conn, "faq", list(reversed(three)))
        assert sorted(_ids(conn, "faq")) == before

    def test_reorder_does_not_touch_fields(self, conn, three) -> None:
        stamps = {i.id: i.last_updated for i in list_items(conn, "faq")}
        reorder_items(conn, "faq", list(reversed(three)))
        assert {i.id: i.last_updated for i in list_items(conn, "faq")} == stamps

    @pytest.mark.parametrize(
        "make_ids",
        [
            lambda ids: ids + ["stranger"],
            lambda ids: ids[:2],
            lambda ids: [ids[0], ids[0], ids[1]],
            lambda ids: [ids[0], ids[1], "stranger"],
        ],
        ids=["extra", "missing", "duplicate", "unknown"],
    )
    def test_bad_reorder_rejected_and_unchanged(self, conn, three, make_ids) -> None:
        with pytest.raises(ValidationError):
            reorder_items(conn, "faq", make_ids(three))
        assert _ids(conn, "faq") == three

    def test_reorder_scoped_to_collection(self, conn, three) -> None:
        news = add_item(conn, "news", title="N", content="c")
        with pytest.raises(ValidationError):
            reorder_items(conn, "faq", three + [news.id])

    def test_reorder_empty_collection(self, conn) -> None:
        assert reorder_items(conn, "forms", []) == []

    def test_added_after_reorder_goes_last(self, conn, three) -> None:
        reorder_items(conn, "faq", list(reversed(three)))
        late = add_item(conn, "faq", title="D", content="c")
        assert _ids(conn, "faq")[-1] == late.id


# ---------------------------------------------------------------------------
# End-to-end
# ---------------------------------------------------------------------------

def test_news_lifecycle(conn) -> None:
    item = add_item(conn, "news", title="T", content="C")
    listed = list_items(conn, "news")
    assert len(listed) == 1 and listed[0].title == "T"

    updated = update_item(conn, "news", item.id, title="T2")
    assert updated.title == "T2"
    assert updated.last_updated > item.last_updated

    delete_item(conn, "news", item.id)
    assert list_items(conn, "news") == []
