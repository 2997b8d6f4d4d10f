"""
credentials.py

Per-organization Mailchimp token lookup.
"""

import logging
from typing import Any

from .errors import MissingCredentialError
from .store import DataStore

logger = logging.getLogger(__name__)


def get_mailchimp_token(store: DataStore, organization_id: Any) -> str:
    """
    Return the Mailchimp OAuth token on file for an organization.

    Raises MissingCredentialError when none is stored, before any network
    call is made, so the whole workflow aborts.
    """
    token = store.get_token(organization_id)
    if token is None or not str(token).strip():
        logger.error(f"No Mailchimp token for organization {organization_id}")
        raise MissingCredentialError(organization_id)
    return str(token).strip()
