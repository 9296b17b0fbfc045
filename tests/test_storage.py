"""
File storage tests: upload/download/delete/list on a temporary root.
Run with: python3 -m pytest tests/test_storage.py -v
"""

import io
import os
import sys
from concurrent.futures import ThreadPoolExecutor

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from filegate.errors import BadRequest, InvalidFilename, NotFound, StorageWriteError
from filegate.storage import FileStorage


# ── Helpers ──────────────────────────────────────────────────────────────────

@pytest.fixture
def storage(tmp_path):
    s = FileStorage(tmp_path / "files")
    s.ensure_root()
    return s


def read_all(storage: FileStorage, filename: str) -> bytes:
    return storage.download(filename).read_bytes()


# ── Round trips ──────────────────────────────────────────────────────────────

def test_upload_then_download_is_byte_identical(storage):
    payload = bytes(range(256)) * 1000
    written = storage.upload("blob.bin", io.BytesIO(payload))
    assert written == len(payload)
    assert read_all(storage, "blob.bin") == payload


def test_upload_overwrites_existing(storage):
    storage.upload("report.txt", io.BytesIO(b"first version, longer"))
    storage.upload("report.txt", io.BytesIO(b"second"))
    assert read_all(storage, "report.txt") == b"second"


def test_upload_empty_file(storage):
    assert storage.upload("empty", io.BytesIO(b"")) == 0
    assert read_all(storage, "empty") == b""


def test_delete_then_download_is_not_found(storage):
    storage.upload("report.txt", io.BytesIO(b"hello"))
    storage.delete("report.txt")
    with pytest.raises(NotFound):
        storage.download("report.txt")


def test_download_missing_is_not_found(storage):
    with pytest.raises(NotFound):
        storage.download("ghost.txt")


def test_delete_missing_is_not_found(storage):
    with pytest.raises(NotFound):
        storage.delete("ghost.txt")


def test_delete_directory_is_write_error(storage):
    (storage.root / "subdir").mkdir()
    with pytest.raises(StorageWriteError):
        storage.delete("subdir")


def test_download_directory_is_not_found(storage):
    (storage.root / "subdir").mkdir()
    with pytest.raises(NotFound):
        storage.download("subdir")


def test_upload_into_missing_root_is_write_error(tmp_path):
    s = FileStorage(tmp_path / "never-created")
    with pytest.raises(StorageWriteError):
        s.upload("a.txt", io.BytesIO(b"x"))


# ── Listing ──────────────────────────────────────────────────────────────────

def test_list_empty_root(storage):
    assert storage.list() == []


def test_list_matches_directory_children(storage):
    for name in ["b.txt", "a.txt", "c.txt"]:
        storage.upload(name, io.BytesIO(name.encode()))
    storage.delete("b.txt")
    storage.upload("d.txt", io.BytesIO(b"d"))
    assert storage.list() == ["a.txt", "c.txt", "d.txt"]
    assert set(storage.list()) == set(os.listdir(storage.root))


def test_list_is_lexically_sorted(storage):
    names = ["zeta", "Alpha", "beta", "10.txt", "2.txt"]
    for name in names:
        storage.upload(name, io.BytesIO(b""))
    assert storage.list() == sorted(names)


# ── Filename policy ──────────────────────────────────────────────────────────

@pytest.mark.parametrize(
    "filename",
    ["", ".", "..", "../escape.txt", "sub/file.txt", "/etc/passwd", "..\\win.txt", "nul\x00byte"],
)
def test_path_traversal_names_rejected(storage, filename):
    with pytest.raises(InvalidFilename):
        storage.upload(filename, io.BytesIO(b"x"))
    with pytest.raises(BadRequest):
        storage.download(filename)
    with pytest.raises(BadRequest):
        storage.delete(filename)
    assert not (storage.root.parent / "escape.txt").exists()


def test_dotted_names_are_allowed(storage):
    storage.upload("..hidden", io.BytesIO(b"ok"))
    storage.upload("archive.tar.gz", io.BytesIO(b"ok"))
    assert storage.list() == ["..hidden", "archive.tar.gz"]


# ── Concurrency ──────────────────────────────────────────────────────────────

def test_concurrent_uploads_to_distinct_files(storage):
    def put(i):
        storage.upload(f"file-{i:02d}", io.BytesIO(str(i).encode() * 1000))

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(put, range(32)))

    assert storage.list() == [f"file-{i:02d}" for i in range(32)]
    for i in range(32):
        assert read_all(storage, f"file-{i:02d}") == str(i).encode() * 1000


def test_concurrent_uploads_same_name_last_write_wins(storage):
    payloads = [bytes([i]) * 4096 for i in range(8)]

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda p: storage.upload("shared.bin", io.BytesIO(p)), payloads))

    assert storage.list() == ["shared.bin"]
    assert len(read_all(storage, "shared.bin")) == 4096


def test_concurrent_deletes_at_most_one_succeeds(storage):
    storage.upload("once.txt", io.BytesIO(b"x"))

    def remove(_):
        try:
            storage.delete("once.txt")
            return True
        except NotFound:
            return False

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(remove, range(8)))

    assert results.count(True) == 1
    assert storage.list() == []


def test_download_returns_path_under_root(storage):
    storage.upload("report.txt", io.BytesIO(b"hello"))
    path = storage.download("report.txt")
    assert path.parent == storage.root
    assert path.name == "report.txt"
