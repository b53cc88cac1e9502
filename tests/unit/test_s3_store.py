from __future__ import annotations

import pytest
from botocore.exceptions import ClientError
from cryptography.fernet import Fernet

from onboarding.models import UserRecord
from onboarding.registration import RegistrationState
from store.errors import StorageConflictError, StorageError
from store.s3_store import S3KeyValueStore


class _FakeBody:
    def __init__(self, data: bytes) -> None:
        self._data = data

    def read(self) -> bytes:
        return self._data


class _FakeS3:
    def __init__(self) -> None:
        self._store = {}  # (bucket, key) -> {Body: bytes, ETag: str}
        self._version = 0
        self.fail_puts_with = None

    def put_object(self, *, Bucket: str, Key: str, Body: bytes, ContentType: str, IfMatch: str | None = None):
        if self.fail_puts_with:
            raise ClientError({"Error": {"Code": self.fail_puts_with}}, "PutObject")
        current = self._store.get((Bucket, Key))
        if IfMatch is not None and (not current or current["ETag"] != IfMatch):
            raise ClientError({"Error": {"Code": "PreconditionFailed"}}, "PutObject")
        self._version += 1
        etag = f'"fake-{self._version}"'
        self._store[(Bucket, Key)] = {"Body": Body, "ETag": etag}
        return {"ETag": etag}

    def get_object(self, *, Bucket: str, Key: str):
        item = self._store.get((Bucket, Key))
        if not item:
            raise ClientError({"Error": {"Code": "NoSuchKey"}}, "GetObject")
        return {"Body": _FakeBody(item["Body"]), "ETag": item["ETag"]}

    def raw(self, bucket: str, key: str) -> bytes:
        return self._store[(bucket, key)]["Body"]


@pytest.fixture
def fernet_key() -> bytes:
    return Fernet.generate_key()


def _store(s3: _FakeS3, key: bytes) -> S3KeyValueStore:
    return S3KeyValueStore(s3=s3, bucket="b", key="onboarding.json", fernet_key=key)


def test_missing_object_reads_empty(fernet_key):
    store = _store(_FakeS3(), fernet_key)
    assert store.read_all() == ({}, None)
    assert store.get("userName") is None


def test_registration_roundtrip_is_encrypted_at_rest(fernet_key):
    s3 = _FakeS3()
    store = _store(s3, fernet_key)

    RegistrationState(name="Ada", username="ada123", password="secret").save(store)

    assert b"secret" not in s3.raw("b", "onboarding.json")
    rec = UserRecord.from_store(_store(s3, fernet_key))
    assert rec == UserRecord(name="Ada", username="ada123", password="secret")


def test_set_many_merges_with_existing_entries(fernet_key):
    store = _store(_FakeS3(), fernet_key)
    store.set("theme", "dark")
    store.set_many({"userName": "Ada", "hasCompletedOnboarding": True})
    store.remove("theme")

    data, etag = store.read_all()
    assert data == {"userName": "Ada", "hasCompletedOnboarding": True}
    assert etag == '"fake-3"'


def test_wrong_key_raises_storage_error(fernet_key):
    s3 = _FakeS3()
    _store(s3, fernet_key).set("a", "b")
    with pytest.raises(StorageError):
        _store(s3, Fernet.generate_key()).get("a")


def test_stale_etag_raises_conflict(fernet_key):
    store = _store(_FakeS3(), fernet_key)
    etag1 = store.write_all({"a": "1"})
    store.write_all({"a": "2"}, if_match=etag1)
    with pytest.raises(StorageConflictError):
        store.write_all({"a": "3"}, if_match=etag1)
    assert store.get("a") == "2"


def test_put_failure_raises_storage_error(fernet_key):
    s3 = _FakeS3()
    s3.fail_puts_with = "AccessDenied"
    with pytest.raises(StorageError) as exc:
        _store(s3, fernet_key).set("a", "b")
    assert not isinstance(exc.value, StorageConflictError)
    assert isinstance(exc.value.__cause__, ClientError)


def test_invalid_fernet_key_rejected():
    with pytest.raises(ValueError):
        S3KeyValueStore(s3=_FakeS3(), bucket="b", key="k", fernet_key="not-a-key")
