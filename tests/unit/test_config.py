from __future__ import annotations

import pytest
from cryptography.fernet import Fernet

from store.config import StoreSettings, build_store
from store.kv_store import InMemoryStore, JsonFileStore
from store.s3_store import S3KeyValueStore


_ENV = (
    "ONBOARDING_STORE_BACKEND",
    "ONBOARDING_STORE_PATH",
    "ONBOARDING_STATE_BUCKET",
    "ONBOARDING_STATE_KEY",
    "ONBOARDING_FERNET_KEY",
    "AWS_REGION",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in _ENV:
        monkeypatch.delenv(name, raising=False)


def test_defaults_to_memory():
    settings = StoreSettings.from_env()
    assert settings.backend == "memory"
    assert isinstance(build_store(settings), InMemoryStore)


def test_file_backend_uses_path(monkeypatch, tmp_path):
    monkeypatch.setenv("ONBOARDING_STORE_BACKEND", "FILE")
    monkeypatch.setenv("ONBOARDING_STORE_PATH", str(tmp_path / "kv.json"))
    store = build_store(StoreSettings.from_env())
    assert isinstance(store, JsonFileStore)
    assert store.path == tmp_path / "kv.json"


def test_unknown_backend_rejected(monkeypatch):
    monkeypatch.setenv("ONBOARDING_STORE_BACKEND", "sqlite")
    with pytest.raises(ValueError):
        StoreSettings.from_env()


def test_s3_backend_missing_vars_raises(monkeypatch):
    monkeypatch.setenv("ONBOARDING_STORE_BACKEND", "s3")
    with pytest.raises(RuntimeError) as exc:
        StoreSettings.from_env()
    assert "ONBOARDING_STATE_BUCKET" in str(exc.value)
    assert "ONBOARDING_FERNET_KEY" in str(exc.value)


def test_s3_backend_built_with_injected_client(monkeypatch):
    monkeypatch.setenv("ONBOARDING_STORE_BACKEND", "s3")
    monkeypatch.setenv("ONBOARDING_STATE_BUCKET", "bucket")
    monkeypatch.setenv("ONBOARDING_FERNET_KEY", Fernet.generate_key().decode("ascii"))

    settings = StoreSettings.from_env()
    assert settings.key == "onboarding.json"
    store = build_store(settings, s3=object())
    assert isinstance(store, S3KeyValueStore)
