import os
import time

from clipo.utils import FileManager, normalize_format


def test_each_save_gets_a_fresh_name(tmp_path):
    manager = FileManager(tmp_path)
    first = manager.save_image(b"a", "png")
    second = manager.save_image(b"a", "png")
    assert first != second
    assert first.read_bytes() == second.read_bytes() == b"a"


def test_formats_map_to_extensions():
    assert normalize_format("image/jpeg") == "jpeg"
    assert normalize_format(".TIF") == "tiff"
    assert normalize_format("unknown") == "png"


def test_save_failure_returns_none(tmp_path):
    manager = FileManager(tmp_path / "images")
    manager.base_dir = tmp_path / "removed"
    assert manager.save_image(b"data") is None


def test_read_image(tmp_path):
    manager = FileManager(tmp_path)
    path = manager.save_image(b"pixels", "tiff")
    assert manager.read_image(path) == (b"pixels", "tiff")
    assert manager.read_image(tmp_path / "missing.png") is None


def test_prune_keeps_referenced_blobs(tmp_path):
    manager = FileManager(tmp_path)
    kept = manager.save_image(b"keep")
    dropped = manager.save_image(b"drop")

    assert manager.prune([str(kept)]) == 1
    assert kept.exists()
    assert not dropped.exists()


def test_prune_spares_recent_blobs(tmp_path):
    manager = FileManager(tmp_path)
    fresh = manager.save_image(b"fresh")
    stale = manager.save_image(b"stale")
    old = time.time() - 3600
    os.utime(stale, (old, old))

    assert manager.prune([], min_age=60) == 1
    assert fresh.exists()
    assert not stale.exists()
