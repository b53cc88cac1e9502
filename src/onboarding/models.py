from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from store.errors import StorageError
from store.kv_store import KeyValueStore, StoreValue


# Store keys written on registration
KEY_NAME = "userName"
KEY_USERNAME = "userUsername"
KEY_PASSWORD = "userPassword"
KEY_HAS_COMPLETED_ONBOARDING = "hasCompletedOnboarding"


class UserRecord(BaseModel):
    """
    The registration record as it lands in the key-value store.

    Fields
    - name, username, password: the raw strings the user typed (no trimming).
    - has_completed_onboarding: always True once a record has been saved.

    Notes
    - Field aliases are the store keys, so `to_entries()` is the exact batch
      written by `RegistrationState.save`.
    - The password is stored as entered. Hashing or keychain storage is not
      part of this model.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(alias=KEY_NAME)
    username: str = Field(alias=KEY_USERNAME)
    password: str = Field(alias=KEY_PASSWORD, repr=False)
    has_completed_onboarding: bool = Field(default=True, alias=KEY_HAS_COMPLETED_ONBOARDING)

    def to_entries(self) -> Dict[str, StoreValue]:
        return self.model_dump(by_alias=True)

    @classmethod
    def from_store(cls, store: KeyValueStore) -> Optional["UserRecord"]:
        """Load the saved record, or None if onboarding was never completed.

        Raises:
        - StorageError if the stored entries do not form a valid record.
        """
        if not has_completed_onboarding(store):
            return None
        raw = {
            KEY_NAME: store.get(KEY_NAME),
            KEY_USERNAME: store.get(KEY_USERNAME),
            KEY_PASSWORD: store.get(KEY_PASSWORD),
            KEY_HAS_COMPLETED_ONBOARDING: True,
        }
        try:
            return cls.model_validate(raw)
        except ValidationError as ex:
            raise StorageError("Stored registration record is incomplete or malformed") from ex


def has_completed_onboarding(store: KeyValueStore) -> bool:
    """True once a registration has been saved to `store`."""
    return store.get(KEY_HAS_COMPLETED_ONBOARDING, False) is True
