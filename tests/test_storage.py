import io
from datetime import timedelta

import pytest

from bubbleadmin.storage import LocalStorage, OssConfig, Storage, new_storage


@pytest.fixture
def store(tmp_path):
    return LocalStorage(OssConfig(bucket=str(tmp_path / "bucket")))


def test_upload_bytes_writes_file(store, tmp_path):
    key = store.upload("avatar.png", b"abc", 3, "image/png", False)
    assert key == "avatar.png"
    assert (tmp_path / "bucket" / "avatar.png").read_bytes() == b"abc"


def test_upload_stream_into_nested_dirs(store, tmp_path):
    key = store.upload("a/b/c.txt", io.BytesIO(b"hello"), 5, "text/plain", True)
    assert key == "a/b/c.txt"
    assert (tmp_path / "bucket" / "a" / "b" / "c.txt").read_bytes() == b"hello"


def test_upload_rejects_traversal(store, tmp_path):
    with pytest.raises(ValueError, match="invalid file path"):
        store.upload("../escape.txt", b"x", 1, "", False)
    assert not (tmp_path / "escape.txt").exists()


def test_leading_slash_stays_in_base(store, tmp_path):
    key = store.upload("/inside.txt", b"x", 1, "", False)
    assert key == "/inside.txt"
    assert (tmp_path / "bucket" / "inside.txt").read_bytes() == b"x"


def test_delete_removes_file(store, tmp_path):
    store.upload("gone.txt", b"x", 1, "", False)
    store.delete("gone.txt")
    assert not (tmp_path / "bucket" / "gone.txt").exists()
    with pytest.raises(FileNotFoundError):
        store.delete("gone.txt")


def test_delete_missing_raises(store):
    with pytest.raises(FileNotFoundError):
        store.delete("missing.txt")


def test_generate_url_with_domain(tmp_path):
    config = OssConfig(bucket=str(tmp_path), domain="cdn.example.com", use_https=True)
    url = LocalStorage(config).generate_url("a/b.png", False, timedelta(minutes=5))
    assert url == "https://cdn.example.com/a/b.png"


def test_generate_url_http_domain(tmp_path):
    config = OssConfig(bucket=str(tmp_path), domain="cdn.example.com")
    assert LocalStorage(config).generate_url("k.png").startswith("http://cdn.example.com/")


def test_generate_url_without_domain(store):
    assert store.generate_url("a/b.png", True, timedelta(hours=1)) == "/a/b.png"


def test_default_bucket_is_uploads(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    storage = LocalStorage(OssConfig())
    assert storage.base_dir == "uploads"
    assert (tmp_path / "uploads").is_dir()


def test_new_storage_without_config(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    storage = new_storage(None)
    assert isinstance(storage, Storage)
    assert storage.base_dir == "uploads"
    assert (tmp_path / "uploads").is_dir()


@pytest.mark.parametrize("provider", ["local", "", "other"])
def test_new_storage_local_and_fallback(tmp_path, provider):
    storage = new_storage(OssConfig(provider=provider, bucket=str(tmp_path / "b")))
    assert isinstance(storage, LocalStorage)
    assert storage.base_dir == str(tmp_path / "b")


@pytest.mark.parametrize("provider", ["aliyun", "qiniu", "minio"])
def test_new_storage_remote_providers_unavailable(tmp_path, provider):
    with pytest.raises(ValueError, match=provider):
        new_storage(OssConfig(provider=provider, bucket=str(tmp_path)))