"""
Tests für die Persistenz-Grenze (JsonFileStore, MemoryStore)

Run: pytest test/test_persistence.py -v
"""

import pytest

from drawing.persistence import JsonFileStore, MemoryStore, is_valid_key
from sketcher.scene import DiffKind, Scene, SceneDiff
from sketcher.shapes import Wall


@pytest.fixture
def blob():
    scene = Scene()
    scene.apply(SceneDiff(DiffKind.ADD, Wall((0, 0), (400, 0))))
    return scene.to_blob()


@pytest.mark.parametrize("key, valid", [
    ("wohnung", True),
    ("plan-2.v1", True),
    ("", False),
    ("../etc/passwd", False),
    (".versteckt", False),
    ("a/b", False),
    (None, False),
])
def test_key_validation(key, valid):
    assert is_valid_key(key) is valid


class TestJsonFileStore:

    def test_roundtrip(self, tmp_path, blob):
        store = JsonFileStore(tmp_path / "plans")
        assert store.save("erdgeschoss", blob)
        assert store.load("erdgeschoss") == blob
        assert store.path_for("erdgeschoss").exists()
        assert store.keys() == ["erdgeschoss"]

    def test_overwrite_leaves_no_tmp_file(self, tmp_path, blob):
        store = JsonFileStore(tmp_path)
        store.save("plan", "{}")
        store.save("plan", blob)
        assert store.load("plan") == blob
        assert sorted(p.name for p in tmp_path.iterdir()) == ["plan.json"]

    def test_missing_key(self, tmp_path):
        assert JsonFileStore(tmp_path).load("gibtsnicht") is None

    def test_invalid_key_rejected(self, tmp_path, blob):
        store = JsonFileStore(tmp_path)
        assert store.save("../raus", blob) is False
        assert store.load("../raus") is None
        assert list(tmp_path.iterdir()) == []

    def test_filesystem_error_returns_false(self, tmp_path, blob):
        # Wurzel ist eine Datei: mkdir schlägt fehl
        root = tmp_path / "blockiert"
        root.write_text("", encoding="utf-8")
        assert JsonFileStore(root).save("plan", blob) is False

    def test_clear(self, tmp_path, blob):
        store = JsonFileStore(tmp_path)
        store.save("plan", blob)
        assert store.clear("plan")
        assert store.load("plan") is None
        assert store.clear("plan") is False

    def test_keys_without_root(self, tmp_path):
        assert JsonFileStore(tmp_path / "neu").keys() == []


class TestMemoryStore:

    def test_roundtrip(self, blob):
        store = MemoryStore()
        assert store.save("plan", blob)
        assert store.load("plan") == blob
        assert store.keys() == ["plan"]

    def test_quota_exceeded(self):
        store = MemoryStore(quota_bytes=10)
        assert store.save("a", "12345")
        assert store.save("b", "123456") is False
        assert store.load("b") is None
        assert store.used_bytes == 5

    def test_overwrite_counts_once(self):
        store = MemoryStore(quota_bytes=10)
        assert store.save("a", "12345678")
        assert store.save("a", "1234567890")
        assert store.used_bytes == 10

    def test_quota_counts_utf8_bytes(self):
        store = MemoryStore(quota_bytes=3)
        assert store.save("a", "äö") is False

    def test_clear(self):
        store = MemoryStore()
        store.save("plan", "{}")
        assert store.clear("plan")
        assert store.clear("plan") is False
