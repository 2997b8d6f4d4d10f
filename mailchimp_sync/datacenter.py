"""
datacenter.py

Mailchimp accounts are sharded across regional hosts (us1, us6, ...). The
OAuth metadata endpoint tells us which one serves a token; every other call
goes to that host.
"""

import logging
import time
from typing import Optional

import requests

from .config import ClientSettings
from .errors import ConnectivityError, VendorRequestError, MalformedResponseError
from .schemas import DatacenterMetadata

logger = logging.getLogger(__name__)


def fetch_metadata(token: str, settings: Optional[ClientSettings] = None,
                   session: Optional[requests.Session] = None) -> DatacenterMetadata:
    """Look up the OAuth metadata for a token, retrying transport failures"""
    settings = settings or ClientSettings()
    http = session or requests
    headers = {
        "User-Agent": "oauth2-draft-v10",
        "Accept": "application/json",
        "Authorization": f"OAuth {token}",
    }

    for attempt in range(settings.max_retries):
        try:
            response = http.get(settings.metadata_url, headers=headers, timeout=settings.timeout)
            break
        except requests.exceptions.RequestException as e:
            if attempt < settings.max_retries - 1:
                logger.warning(f"Mailchimp metadata lookup failed: {e}. "
                               f"Retrying in {settings.retry_delay} seconds...")
                time.sleep(settings.retry_delay)
            else:
                logger.error(f"Mailchimp metadata lookup failed after {settings.max_retries} attempts: {e}")
                raise ConnectivityError(f"Could not reach {settings.metadata_url}: {e}") from e

    if not 200 <= response.status_code < 300:
        raise VendorRequestError("Mailchimp metadata lookup failed",
                                 status_code=response.status_code,
                                 detail=response.text[:500],
                                 url=settings.metadata_url)
    try:
        payload = response.json()
    except ValueError as e:
        raise MalformedResponseError(f"Mailchimp metadata response is not JSON: {e}") from e

    return DatacenterMetadata.from_payload(payload)


def get_datacenter(token: str, settings: Optional[ClientSettings] = None,
                   session: Optional[requests.Session] = None) -> str:
    """Datacenter subdomain (e.g. "us6") serving this token's account"""
    metadata = fetch_metadata(token, settings=settings, session=session)
    logger.debug(f"Resolved Mailchimp datacenter: {metadata.dc}")
    return metadata.dc


def base_uri(token: str, settings: Optional[ClientSettings] = None,
             session: Optional[requests.Session] = None) -> str:
    """https://{dc}.api.mailchimp.com/3.0 for this token"""
    settings = settings or ClientSettings()
    return settings.base_uri(get_datacenter(token, settings=settings, session=session))
