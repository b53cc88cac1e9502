from __future__ import annotations

import logging
from enum import IntEnum
from typing import Optional

from store.kv_store import KeyValueStore

from .models import UserRecord
from .registration import RegistrationState


logger = logging.getLogger(__name__)


class Page(IntEnum):
    WELCOME = 0
    FEATURE_ONE = 1
    FEATURE_TWO = 2
    REGISTRATION = 3


class FlowError(Exception):
    """Raised on an illegal page transition or a premature submit."""
    pass


class OnboardingFlow:
    """
    Page sequencing for the onboarding carousel.

    The presentation layer renders `current_page`, calls `advance()` from its
    Next button or `go_to()` on a swipe, and calls `submit()` from the
    registration screen's confirmation control.
    """

    def __init__(self, registration: Optional[RegistrationState] = None) -> None:
        self.registration = registration or RegistrationState()
        self._page = Page.WELCOME
        self._completed = False

    @property
    def current_page(self) -> Page:
        return self._page

    @property
    def completed(self) -> bool:
        return self._completed

    def go_to(self, page: int) -> Page:
        if isinstance(page, bool) or not isinstance(page, int):
            raise FlowError(f"Onboarding page must be an int, got {page!r}")
        try:
            target = Page(page)
        except ValueError as ex:
            raise FlowError(f"Unknown onboarding page: {page!r}") from ex
        logger.debug("onboarding page %s -> %s", self._page.name, target.name)
        self._page = target
        return target

    def advance(self) -> Page:
        if self._page is Page.REGISTRATION:
            raise FlowError("Already on the last onboarding page")
        return self.go_to(self._page + 1)

    def shows_page_indicator(self) -> bool:
        return self._page < Page.REGISTRATION

    def shows_next_button(self) -> bool:
        return self._page < Page.REGISTRATION

    def can_submit(self) -> bool:
        return (
            not self._completed
            and self._page is Page.REGISTRATION
            and self.registration.is_valid()
        )

    def submit(self, store: KeyValueStore) -> UserRecord:
        """Save the registration and mark onboarding complete.

        Raises:
        - FlowError if already completed, not on the registration page, or the
          form is invalid.
        - StorageError from the store; the flow then stays incomplete.
        """
        if self._completed:
            raise FlowError("Onboarding has already been completed")
        if not self.can_submit():
            raise FlowError("Registration form is not ready to submit")
        record = self.registration.save(store)
        self._completed = True
        logger.info("onboarding completed")
        return record
