import time
from pathlib import Path

from clipo.models import ItemKind


def test_baseline_is_not_ingested(service, clipboard, history):
    clipboard.copy_text("already there")
    assert service.tick() is None
    assert len(history) == 0


def test_counter_change_ingests_text(service, clipboard, history):
    service.tick()
    clipboard.app = "Terminal"
    clipboard.copy_text("hello world")

    item = service.tick()

    assert item.kind is ItemKind.TEXT
    assert item.source_application == "Terminal"
    assert history.head is item


def test_unchanged_counter_is_a_noop(service, clipboard, history):
    service.tick()
    clipboard.copy_text("once")
    service.tick()
    clipboard.text = "changed without a counter bump"

    assert service.tick() is None
    assert len(history) == 1


def test_recopy_of_same_text_is_suppressed(service, clipboard, history):
    service.tick()
    clipboard.copy_text("same")
    service.tick()
    clipboard.copy_text("same")

    assert service.tick() is None
    assert len(history) == 1


def test_urls_and_existing_paths_are_classified(service, clipboard, history, tmp_path):
    target = tmp_path / "doc.md"
    target.write_text("# doc")
    service.tick()

    clipboard.copy_text("https://example.com")
    assert service.tick().kind is ItemKind.URL
    clipboard.copy_text(str(target))
    item = service.tick()
    assert item.kind is ItemKind.FILE
    assert item.preview == "doc.md"


def test_string_has_priority_over_image(service, clipboard, history):
    service.tick()
    clipboard.copy_text("caption")
    clipboard.image = (b"\x89PNG...", "png")

    assert service.tick().kind is ItemKind.TEXT


def test_image_is_written_to_blob_file(service, clipboard, history, file_manager):
    service.tick()
    clipboard.app = "Preview"
    clipboard.copy_image(b"\x89PNG-data", "png")

    item = service.tick()

    assert item.kind is ItemKind.IMAGE
    assert item.preview == "Image copied from Preview"
    blob = Path(item.content)
    assert blob.parent == file_manager.base_dir
    assert blob.suffix == ".png"
    assert blob.read_bytes() == b"\x89PNG-data"


def test_image_write_failure_abandons_tick(service, clipboard, history, file_manager):
    file_manager.save_image = lambda payload, image_format="png": None
    service.tick()
    clipboard.copy_image(b"data")

    assert service.tick() is None
    assert len(history) == 0


def test_file_list_is_ingested(service, clipboard, history):
    service.tick()
    clipboard.copy_files(["/x/a.txt", "/y/b.txt"])

    item = service.tick()

    assert item.kind is ItemKind.FILE
    assert item.content == "/x/a.txt\n/y/b.txt"


def test_empty_clipboard_creates_nothing(service, clipboard, history):
    service.tick()
    clipboard.copy_text("")
    assert service.tick() is None
    assert len(history) == 0


def test_read_errors_are_ignored(service, clipboard, history):
    def broken():
        raise OSError("clipboard busy")

    service.tick()
    clipboard.read_string = broken
    clipboard.copy_text("unreadable")

    assert service.tick() is None
    assert len(history) == 0


def test_paused_service_ignores_changes(service, clipboard, history):
    service.tick()
    service.monitoring_enabled = False
    clipboard.copy_text("while paused")
    assert service.tick() is None

    service.monitoring_enabled = True
    assert service.tick() is None
    assert len(history) == 0

    clipboard.copy_text("after resume")
    assert service.tick().content == "after resume"


def test_copy_item_writes_text_back(service, clipboard, history):
    item = history.add_text_item("copy me")

    assert service.copy_item(item.id)
    assert clipboard.writes == [("text", "copy me")]


def test_copy_item_writes_image_back(service, clipboard, history, file_manager):
    service.tick()
    clipboard.copy_image(b"pixels", "tiff")
    item = service.tick()

    assert service.copy_item(item)
    assert clipboard.writes[-1] == ("image", b"pixels", "tiff")


def test_copy_missing_item_fails(service, clipboard):
    assert not service.copy_item("i_missing")
    assert clipboard.writes == []


def test_background_thread_picks_up_copies(service, clipboard, history):
    service.start()
    try:
        clipboard.copy_text("from another app")
        deadline = time.monotonic() + 2.0
        while len(history) == 0 and time.monotonic() < deadline:
            time.sleep(0.01)
    finally:
        service.stop()

    assert [item.content for item in history.items()] == ["from another app"]
    assert not service.is_running
