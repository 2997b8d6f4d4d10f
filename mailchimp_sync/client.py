#!/usr/bin/env python3
"""
client.py

Mailchimp Marketing API client bound to one token. Each instance owns its
session and resolved base URI, so no credentials live at module level.
"""

import logging
import time
from typing import Any, Dict, Optional

import requests

from .config import ClientSettings
from .credentials import get_mailchimp_token
from .datacenter import base_uri as resolve_base_uri
from .errors import ConnectivityError, MalformedResponseError, VendorRequestError
from .store import DataStore

logger = logging.getLogger(__name__)


class MailchimpClient:
    """Thin JSON-over-HTTPS wrapper around the Mailchimp v3 API"""

    def __init__(self, token: str, settings: Optional[ClientSettings] = None,
                 base_uri: Optional[str] = None, session: Optional[requests.Session] = None):
        self.settings = settings or ClientSettings()
        self.token = token
        self.session = session or requests.Session()
        # Session basic auth would replace the OAuth header on the metadata call,
        # so the datacenter is resolved before auth is attached
        try:
            self.base_uri = (base_uri or resolve_base_uri(token, settings=self.settings,
                                                         session=self.session)).rstrip("/")
        except Exception:
            if session is None:
                self.session.close()
            raise
        self.session.auth = (self.settings.app_name, token)
        self.session.headers.update({
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": f"{self.settings.app_name}-Mailchimp-Sync/1.0",
        })

    @classmethod
    def for_organization(cls, store: DataStore, organization_id: Any,
                         settings: Optional[ClientSettings] = None,
                         session: Optional[requests.Session] = None) -> "MailchimpClient":
        """Resolve the organization's token, then its datacenter"""
        token = get_mailchimp_token(store, organization_id)
        client = cls(token, settings=settings, session=session)
        logger.info(f"Mailchimp client ready for organization {organization_id} ({client.base_uri})")
        return client

    def url(self, path: str) -> str:
        return f"{self.base_uri}/{path.lstrip('/')}"

    def request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None,
                retry: bool = False) -> Optional[Dict[str, Any]]:
        """
        Send one request and return the decoded JSON body (None for 204).

        Only idempotent reads should pass retry=True; those are re-sent on
        transport failures up to settings.max_retries times.

        Raises:
            ConnectivityError: DNS, refused connection, timeout
            VendorRequestError: any non-2xx response
            MalformedResponseError: a 2xx body that is not JSON
        """
        url = self.url(path)
        attempts = self.settings.max_retries if retry else 1
        logger.debug(f"{method} {url}")

        for attempt in range(attempts):
            try:
                response = self.session.request(method, url, json=json, timeout=self.settings.timeout)
                break
            except requests.exceptions.RequestException as e:
                if attempt < attempts - 1:
                    logger.warning(f"Mailchimp request failed: {e}. Retrying in {self.settings.retry_delay} seconds...")
                    time.sleep(self.settings.retry_delay)
                else:
                    logger.error(f"Mailchimp request failed: {method} {url} - {e}")
                    raise ConnectivityError(f"{method} {url} failed: {e}") from e

        if not 200 <= response.status_code < 300:
            detail = _problem_detail(response)
            logger.error(f"Mailchimp API error: {method} {url} -> {response.status_code} {detail}")
            raise VendorRequestError(f"{method} {path} failed", status_code=response.status_code,
                                     detail=detail, url=url)

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError(f"{method} {path}: response is not JSON: {e}") from e

    def get(self, path: str) -> Optional[Dict[str, Any]]:
        return self.request("GET", path, retry=True)

    def post(self, path: str, body: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self.request("POST", path, json=body)

    def delete(self, path: str) -> Optional[Dict[str, Any]]:
        return self.request("DELETE", path)

    def close(self):
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def __repr__(self) -> str:
        return f"MailchimpClient(base_uri={self.base_uri!r})"


def _problem_detail(response: requests.Response) -> str:
    """Mailchimp errors are RFC 7807 problem documents; fall back to raw text"""
    try:
        body = response.json()
    except ValueError:
        return response.text[:500]
    if isinstance(body, dict):
        return body.get("detail") or body.get("title") or str(body)[:500]
    return str(body)[:500]
