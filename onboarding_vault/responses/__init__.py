"""Storage of onboarding answers, encrypted or verbatim."""

from onboarding_vault.responses.models import StoredResponse, response_to_dict
from onboarding_vault.responses.store import ResponseStore

__all__ = ["ResponseStore", "StoredResponse", "response_to_dict"]
