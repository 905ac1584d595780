import json

from clipo.database import FileStorage, MemoryStorage
from clipo.models import ClipboardItem, ItemKind
from clipo.services import ClipboardHistory


def text_item(content: str, **kwargs) -> ClipboardItem:
    return ClipboardItem(content=content, kind=ItemKind.TEXT, **kwargs)


class FailingStorage(MemoryStorage):
    def _write_slot(self, key, value):
        raise OSError("disk full")


def test_duplicate_of_head_is_suppressed(history):
    assert history.ingest(text_item("hello"))
    assert not history.ingest(text_item("hello"))
    assert len(history) == 1


def test_same_content_with_other_kind_is_kept(history):
    history.ingest(text_item("https://example.com"))
    history.ingest(ClipboardItem(content="https://example.com", kind=ItemKind.URL))
    assert len(history) == 2


def test_duplicate_only_checked_against_head(history):
    history.ingest(text_item("a"))
    history.ingest(text_item("b"))
    history.ingest(text_item("a"))
    assert [item.content for item in history.items()] == ["a", "b", "a"]


def test_items_are_newest_first(history):
    a, b, c = text_item("A"), text_item("B"), text_item("C")
    for item in (a, b, c):
        history.ingest(item)
    assert history.view("All", "") == [c, b, a]
    assert history.head is c


def test_ingest_persists(history, storage):
    history.ingest(text_item("saved"))
    records = json.loads(storage.slots["clipboardItems"])
    assert [record["content"] for record in records] == ["saved"]


def test_category_round_trip(history):
    item = text_item("report")
    history.ingest(item)

    assert history.add_category("Work")
    assert history.recategorize(item.id, "Work")
    assert "Work" in history.categories()

    history.remove_category("Work")
    assert history.get(item.id).category == "General"
    assert "Work" not in history.categories()


def test_add_category_rejects_reserved_blank_and_duplicates(history):
    assert not history.add_category("   ")
    assert not history.add_category("All")
    assert not history.add_category("General")
    assert not history.add_category(" Favorites ")
    assert history.add_category("  Work ")
    assert not history.add_category("Work")
    assert history.add_category("Archive")
    assert history.user_categories == ["Archive", "Work"]


def test_categories_include_builtins_and_item_labels(history):
    history.ingest(text_item("x", category="Recipes"))
    history.add_category("Work")
    assert history.categories() == ["All", "Favorites", "General", "Recipes", "Work"]


def test_remove_category_resets_active_filter(history):
    history.add_category("Work")
    history.selected_category = "Work"
    history.remove_category("Work")
    assert history.selected_category == "All"


def test_user_categories_are_persisted(storage):
    history = ClipboardHistory(storage)
    history.add_category("Work")
    assert ClipboardHistory(storage).user_categories == ["Work"]


def test_search_and_category_intersect(history):
    work = text_item("abc", category="Work")
    general = text_item("abcdef")
    history.ingest(work)
    history.ingest(general)

    assert history.view("Work", "abc") == [work]
    assert history.view("All", "ABC") == [general, work]
    assert history.view("Work", "def") == []


def test_search_is_case_insensitive(history):
    url = ClipboardItem(content="https://docs.python.org/3/", kind=ItemKind.URL)
    history.ingest(url)
    assert history.view("All", "DOCS.python") == [url]


def test_favorites_filter(history):
    plain, starred = text_item("plain"), text_item("starred")
    history.ingest(plain)
    history.ingest(starred)
    assert history.toggle_favorite(starred.id) is True

    assert history.view("Favorites") == [starred]
    assert history.favorite_items() == [starred]

    history.selected_category = "Favorites"
    history.search_text = "plain"
    assert history.filtered_items() == []


def test_toggle_favorite_flips_back(history):
    item = text_item("x")
    history.ingest(item)
    history.toggle_favorite(item.id)
    assert history.toggle_favorite(item.id) is False
    assert not history.get(item.id).is_favorite


def test_missing_ids_are_noops(history, storage):
    history.ingest(text_item("x"))
    before = storage.slots["clipboardItems"]

    assert history.toggle_favorite("i_missing") is None
    assert history.delete("i_missing") is False
    assert history.recategorize("i_missing", "Work") is False
    assert history.edit("i_missing", "new") is None
    assert storage.slots["clipboardItems"] == before


def test_edit_recomputes_preview(history):
    item = text_item("short")
    history.ingest(item)

    updated = history.edit(item.id, "x" * 150)

    assert updated.content == "x" * 150
    assert updated.preview == "x" * 100
    assert updated.id == item.id
    assert history.get(item.id).preview == "x" * 100


def test_edit_keeps_kind_specific_preview(history):
    item = ClipboardItem(content="/tmp/a.txt", kind=ItemKind.FILE)
    history.ingest(item)
    assert history.edit(item.id, "/var/log/syslog").preview == "syslog"


def test_recategorize_refuses_blank_and_filter_names(history):
    item = text_item("x")
    history.ingest(item)
    assert not history.recategorize(item.id, " ")
    assert not history.recategorize(item.id, "Favorites")
    assert history.get(item.id).category == "General"


def test_delete_and_clear(history):
    a, b = text_item("a"), text_item("b")
    history.ingest(a)
    history.ingest(b)

    assert history.delete(a.id)
    assert history.items() == [b]

    history.clear_all()
    assert len(history) == 0


def test_add_text_item_uses_manual_source(history):
    item = history.add_text_item("note", category="Work")
    assert item.source_application == "Clipo"
    assert item.category == "Work"
    assert history.add_text_item("note") is None
    assert history.add_text_item("") is None


def test_listeners_receive_new_items(history):
    seen = []
    unsubscribe = history.subscribe(seen.append)

    history.ingest(text_item("one"))
    history.ingest(text_item("one"))
    unsubscribe()
    history.ingest(text_item("two"))

    assert [item.content for item in seen] == ["one"]


def test_listener_errors_do_not_break_ingest(history):
    def boom(item):
        raise RuntimeError("listener failed")

    history.subscribe(boom)
    assert history.ingest(text_item("still here"))
    assert len(history) == 1


def test_save_failure_keeps_memory_state():
    history = ClipboardHistory(FailingStorage())
    item = text_item("x")

    assert history.ingest(item)
    assert history.toggle_favorite(item.id) is True
    assert history.items() == [item]


def test_corrupt_storage_loads_empty():
    storage = MemoryStorage()
    storage.slots["clipboardItems"] = "{not json"
    storage.slots["userCategories"] = "[1, 2"
    history = ClipboardHistory(storage)
    assert history.items() == []
    assert history.user_categories == []


def test_changes_from_another_writer_are_reloaded_not_overwritten(tmp_path):
    daemon = ClipboardHistory(FileStorage(tmp_path))
    first = text_item("first")
    daemon.ingest(first)

    shell = ClipboardHistory(FileStorage(tmp_path))
    assert shell.toggle_favorite(first.id) is True
    assert shell.add_category("Work")

    daemon.ingest(text_item("second"))

    saved = ClipboardHistory(FileStorage(tmp_path))
    assert [item.content for item in saved.items()] == ["second", "first"]
    assert saved.get(first.id).is_favorite
    assert saved.user_categories == ["Work"]
