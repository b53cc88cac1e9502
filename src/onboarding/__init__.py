"""
Onboarding logic for the note-taking app.

Modules:
- registration: form state, validity flag and save
- models: persisted user record and store keys
- flow: carousel page sequencing and submission gating
"""

from .flow import FlowError, OnboardingFlow, Page
from .models import UserRecord, has_completed_onboarding
from .registration import RegistrationState

__all__ = [
    "FlowError",
    "OnboardingFlow",
    "Page",
    "RegistrationState",
    "UserRecord",
    "has_completed_onboarding",
]
