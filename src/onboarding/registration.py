from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

import regex

from store.kv_store import KeyValueStore

from .models import UserRecord


logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
PASSWORD_HINT = f"Password must be at least {MIN_PASSWORD_LENGTH} characters"


# Unicode separators, U+0009-U+000D and NEL; U+001C-U+001F are not blank.
_BLANK = regex.compile(r"[\p{Z}\x09-\x0d\x85]*")
_GRAPHEME = regex.compile(r"\X")


def _is_blank(value: str) -> bool:
    return _BLANK.fullmatch(value) is not None


def character_count(value: str) -> int:
    """Number of user-perceived characters (extended grapheme clusters)."""
    return len(_GRAPHEME.findall(value))


@dataclass
class RegistrationState:
    """
    Registration form input for the onboarding flow.

    - Fields are plain mutable strings, updated as the user types.
    - `is_valid()` is derived from the current fields on every call.
    - `save()` commits the fields to a key-value store as one batch. It does not
      re-check validity; callers gate it on `is_valid()`.
    """

    name: str = ""
    username: str = ""
    password: str = field(default="", repr=False)

    def set_name(self, value: str) -> None:
        self.name = value

    def set_username(self, value: str) -> None:
        self.username = value

    def set_password(self, value: str) -> None:
        self.password = value

    def is_valid(self) -> bool:
        """True iff name and username are non-blank and the password has 6+ characters."""
        return (
            not _is_blank(self.name)
            and not _is_blank(self.username)
            and character_count(self.password) >= MIN_PASSWORD_LENGTH
        )

    def password_hint(self) -> Optional[str]:
        """Inline hint shown under the password field once the user starts typing."""
        if self.password and character_count(self.password) < MIN_PASSWORD_LENGTH:
            return PASSWORD_HINT
        return None

    def to_record(self) -> UserRecord:
        return UserRecord(name=self.name, username=self.username, password=self.password)

    def save(self, store: KeyValueStore) -> UserRecord:
        """Write userName, userUsername, userPassword and hasCompletedOnboarding.

        Returns the record written.
        Raises:
        - StorageError if the store rejects the batch; nothing is swallowed.
        """
        record = self.to_record()
        store.set_many(record.to_entries())
        logger.info("saved registration record")
        return record
