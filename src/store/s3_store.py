from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from cryptography.fernet import Fernet, InvalidToken

from .errors import StorageConflictError, StorageError
from .kv_store import StoreValue, check_entries


logger = logging.getLogger(__name__)

_MISSING_CODES = ("NoSuchKey", "404")
_CONFLICT_CODES = ("PreconditionFailed", "412", "ConditionalRequestConflict", "409")


def _to_fernet(key: str | bytes) -> Fernet:
    """Construct a Fernet instance from a urlsafe base64-encoded 32-byte key."""
    key_bytes = key.encode("utf-8") if isinstance(key, str) else key
    try:
        return Fernet(key_bytes)
    except (TypeError, ValueError) as ex:
        raise ValueError("Invalid Fernet key for S3 key-value store") from ex


def _error_code(err: ClientError) -> Optional[str]:
    return err.response.get("Error", {}).get("Code")


def _dump_entries(data: Dict[str, StoreValue]) -> bytes:
    # Deterministic JSON: stable key order, no extra whitespace
    return json.dumps(data, separators=(",", ":"), sort_keys=True).encode("utf-8")


@dataclass
class S3ObjectRef:
    bucket: str
    key: str

    def __str__(self) -> str:
        return f"s3://{self.bucket}/{self.key}"


class S3KeyValueStore:
    """
    Key-value store kept as one Fernet-encrypted JSON object in S3.

    Usage
    - Provide the S3 bucket/key and a Fernet key; an S3 client may be injected.
    - Reads fetch and decrypt the whole map. A missing object is an empty store.
    - `set_many` is a read-modify-write of the whole map. When the object already
      exists the put carries `IfMatch=<etag>`, so a concurrent writer from another
      process surfaces as `StorageConflictError` instead of a lost update.
    - Every S3, decryption or decoding failure is raised as `StorageError`.
    """

    def __init__(
        self,
        *,
        s3: Optional[object] = None,
        bucket: str,
        key: str,
        fernet_key: str | bytes,
        region_name: Optional[str] = None,
    ) -> None:
        self._s3 = s3 or boto3.client("s3", region_name=region_name)
        self._obj = S3ObjectRef(bucket=bucket, key=key)
        self._fernet = _to_fernet(fernet_key)

    # -------- Raw object access --------
    def read_all(self) -> Tuple[Dict[str, StoreValue], Optional[str]]:
        """Fetch and decrypt the stored map.

        Returns: (entries, etag); `({}, None)` if the object does not exist.
        """
        try:
            resp = self._s3.get_object(Bucket=self._obj.bucket, Key=self._obj.key)
            body = resp["Body"].read()
        except ClientError as e:
            if _error_code(e) in _MISSING_CODES:
                return ({}, None)
            raise StorageError(f"Failed to read {self._obj}") from e
        except BotoCoreError as e:
            raise StorageError(f"Failed to read {self._obj}") from e

        try:
            plaintext = self._fernet.decrypt(body)
        except InvalidToken as ex:
            raise StorageError(f"Failed to decrypt {self._obj}: invalid Fernet token") from ex

        try:
            raw = json.loads(plaintext.decode("utf-8"))
        except ValueError as ex:
            raise StorageError(f"Failed to parse decrypted JSON from {self._obj}") from ex
        if not isinstance(raw, dict):
            raise StorageError(f"{self._obj} does not contain a JSON object")
        return (check_entries(raw), resp.get("ETag"))

    def write_all(self, data: Mapping[str, StoreValue], *, if_match: Optional[str] = None) -> str:
        """Encrypt and write the whole map; returns the new ETag."""
        ciphertext = self._fernet.encrypt(_dump_entries(check_entries(data)))
        params = {
            "Bucket": self._obj.bucket,
            "Key": self._obj.key,
            "Body": ciphertext,
            "ContentType": "application/octet-stream",
        }
        if if_match is not None:
            params["IfMatch"] = if_match
        try:
            resp = self._s3.put_object(**params)
        except ClientError as e:
            if _error_code(e) in _CONFLICT_CODES:
                raise StorageConflictError(f"ETag mismatch for {self._obj}") from e
            logger.warning("put to %s failed: %s", self._obj, e)
            raise StorageError(f"Failed to write {self._obj}") from e
        except BotoCoreError as e:
            logger.warning("put to %s failed: %s", self._obj, e)
            raise StorageError(f"Failed to write {self._obj}") from e
        return str(resp.get("ETag"))

    # -------- KeyValueStore --------
    def get(self, key: str, default: StoreValue = None) -> StoreValue:
        data, _ = self.read_all()
        return data.get(key, default)

    def set(self, key: str, value: StoreValue) -> None:
        self.set_many({key: value})

    def set_many(self, entries: Mapping[str, StoreValue]) -> None:
        batch = check_entries(entries)
        data, etag = self.read_all()
        data.update(batch)
        self.write_all(data, if_match=etag)
        logger.debug("wrote %d entries to %s", len(batch), self._obj)

    def remove(self, key: str) -> None:
        data, etag = self.read_all()
        if key in data:
            del data[key]
            self.write_all(data, if_match=etag)
