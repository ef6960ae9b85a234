"""Tests for local binary artifact storage."""

import pytest

from flow_pipeline.services.file_storage import LocalFileStorage


@pytest.fixture
def storage(tmp_path):
    return LocalFileStorage(tmp_path / "files", "http://files.test/")


def test_save_writes_bytes_and_returns_public_url(storage):
    url = storage.save("proj/deck.pptx", b"PK\x03\x04")

    assert url == "http://files.test/api/v1/files/proj/deck.pptx"
    assert storage.resolve("proj/deck.pptx").read_bytes() == b"PK\x03\x04"


@pytest.mark.parametrize("key", ["../escape.txt", "proj/../../escape.txt", "", "."])
def test_keys_cannot_escape_the_root(storage, key):
    with pytest.raises(ValueError):
        storage.resolve(key)


def test_from_settings(fake_settings):
    storage = LocalFileStorage.from_settings(fake_settings)
    assert storage.url_for("a/b.pptx") == "http://testserver/api/v1/files/a/b.pptx"


def test_check_writable_creates_missing_root(storage):
    storage.check_writable()
    assert storage.root.is_dir()


def test_check_writable_fails_when_root_is_a_file(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x")

    with pytest.raises(OSError):
        LocalFileStorage(blocker, "http://files.test").check_writable()
