"""
Tag Category → Mailchimp List Sync - Core Package

Mirrors a nonprofit's tag categories as Mailchimp lists and bulk-syncs
supporter memberships through Mailchimp batch operations.

Core modules:
- credentials / datacenter: token lookup and regional endpoint discovery
- client: per-token Mailchimp API client
- list_manager: list creation, deletion and single signups
- batch: batch job submission and completion polling
- sync: supporter membership sync from tag selections
- notifications: Teams notifications for sync runs
- main: command line control center
"""

__version__ = "1.0.0"

from .batch import BatchOperation, BatchOperationExecutor, PollPolicy
from .client import MailchimpClient
from .config import ClientSettings
from .errors import (
    MailchimpSyncError, MissingCredentialError, VendorRequestError,
    ConnectivityError, MalformedResponseError, BatchTimeoutError
)
from .list_manager import CreatedList, MailchimpListManager
from .store import DataStore, InMemoryStore
from .sync import MembershipSyncOrchestrator, SyncResult, TagSelection, build_operations, subscriber_hash

__all__ = [
    'BatchOperation', 'BatchOperationExecutor', 'PollPolicy',
    'MailchimpClient', 'ClientSettings',
    'MailchimpSyncError', 'MissingCredentialError', 'VendorRequestError',
    'ConnectivityError', 'MalformedResponseError', 'BatchTimeoutError',
    'CreatedList', 'MailchimpListManager',
    'DataStore', 'InMemoryStore',
    'MembershipSyncOrchestrator', 'SyncResult', 'TagSelection',
    'build_operations', 'subscriber_hash',
]
