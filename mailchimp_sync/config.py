#!/usr/bin/env python3
"""
config.py

Central configuration for the tag category → Mailchimp list sync.
Values come from the environment (a local .env is loaded first) and are
collected into a ClientSettings object that each client is built with.
"""

import os
from typing import Optional
from dotenv import load_dotenv

load_dotenv(override=True)

# =============================================================================
# 🔐 MAILCHIMP ENDPOINTS
# =============================================================================

# OAuth metadata lookup used to find the account's datacenter
MAILCHIMP_METADATA_URL = os.getenv("MAILCHIMP_METADATA_URL", "https://login.mailchimp.com/oauth2/metadata")

# Regional API host, formatted with the datacenter (e.g. "us6")
MAILCHIMP_API_HOST = os.getenv("MAILCHIMP_API_HOST", "api.mailchimp.com")
MAILCHIMP_API_VERSION = os.getenv("MAILCHIMP_API_VERSION", "3.0")

# Basic auth username; Mailchimp ignores it but requires one
MAILCHIMP_APP_NAME = os.getenv("MAILCHIMP_APP_NAME", "CommitChange")

# =============================================================================
# 📋 LIST DEFAULTS
# =============================================================================

PLATFORM_SUPPORT_EMAIL = os.getenv("PLATFORM_SUPPORT_EMAIL", "support@commitchange.com")
LIST_NAME_PREFIX = os.getenv("LIST_NAME_PREFIX", "CommitChange-")
PERMISSION_REMINDER = "You are a registered supporter of our nonprofit."
DEFAULT_SUBJECT = "Enter your subject here..."
DEFAULT_LANGUAGE = "en"

# =============================================================================
# ⚙️ TRANSPORT & POLLING
# =============================================================================

REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", 30))      # seconds per HTTP call
MAX_RETRIES = int(os.getenv("MAX_RETRIES", 3))                 # attempts for idempotent reads
RETRY_DELAY = float(os.getenv("RETRY_DELAY", 2))               # seconds between retries

BATCH_POLL_INTERVAL = float(os.getenv("BATCH_POLL_INTERVAL", 5))
BATCH_POLL_MAX_ATTEMPTS = int(os.getenv("BATCH_POLL_MAX_ATTEMPTS", 60))
BATCH_POLL_BACKOFF = float(os.getenv("BATCH_POLL_BACKOFF", 1.5))
BATCH_POLL_MAX_INTERVAL = float(os.getenv("BATCH_POLL_MAX_INTERVAL", 60))

# =============================================================================
# 🗂️ LOGGING, NOTIFICATIONS & STORAGE
# =============================================================================

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_DIR = os.getenv("LOG_DIR", "logs")

# Teams notification webhook URL (empty = console only)
TEAMS_WEBHOOK_URL = os.getenv("TEAMS_WEBHOOK_URL", "")

# JSON file backing the development data store
DATA_STORE_PATH = os.getenv("DATA_STORE_PATH", "data_store.json")


class ClientSettings:
    """Transport settings handed to every Mailchimp client instance"""

    def __init__(self,
                 metadata_url: str = MAILCHIMP_METADATA_URL,
                 api_host: str = MAILCHIMP_API_HOST,
                 api_version: str = MAILCHIMP_API_VERSION,
                 app_name: str = MAILCHIMP_APP_NAME,
                 timeout: float = REQUEST_TIMEOUT,
                 max_retries: int = MAX_RETRIES,
                 retry_delay: float = RETRY_DELAY,
                 support_email: Optional[str] = None,
                 list_name_prefix: Optional[str] = None):
        self.metadata_url = metadata_url
        self.api_host = api_host
        self.api_version = api_version
        self.app_name = app_name
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self.support_email = support_email or PLATFORM_SUPPORT_EMAIL
        self.list_name_prefix = LIST_NAME_PREFIX if list_name_prefix is None else list_name_prefix

    @classmethod
    def from_env(cls) -> "ClientSettings":
        """Build settings from the current environment variables"""
        return cls(
            metadata_url=os.getenv("MAILCHIMP_METADATA_URL", MAILCHIMP_METADATA_URL),
            api_host=os.getenv("MAILCHIMP_API_HOST", MAILCHIMP_API_HOST),
            api_version=os.getenv("MAILCHIMP_API_VERSION", MAILCHIMP_API_VERSION),
            app_name=os.getenv("MAILCHIMP_APP_NAME", MAILCHIMP_APP_NAME),
            timeout=float(os.getenv("REQUEST_TIMEOUT", REQUEST_TIMEOUT)),
            max_retries=int(os.getenv("MAX_RETRIES", MAX_RETRIES)),
            retry_delay=float(os.getenv("RETRY_DELAY", RETRY_DELAY)),
            support_email=os.getenv("PLATFORM_SUPPORT_EMAIL", PLATFORM_SUPPORT_EMAIL),
            list_name_prefix=os.getenv("LIST_NAME_PREFIX", LIST_NAME_PREFIX),
        )

    def base_uri(self, datacenter: str) -> str:
        """Regional API root for a datacenter"""
        return f"https://{datacenter}.{self.api_host}/{self.api_version}"

    def __repr__(self) -> str:
        return (f"ClientSettings(api_host={self.api_host!r}, api_version={self.api_version!r}, "
                f"timeout={self.timeout}, max_retries={self.max_retries})")
