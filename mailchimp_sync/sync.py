#!/usr/bin/env python
"""
Supporter → Mailchimp list membership sync

Given supporters and the tag categories selected (or deselected) for them,
subscribes every supporter to the Mailchimp lists of the selected tags and
removes them from the lists of the deselected tags, all in one batch job.
Tag categories with no Mailchimp list yet are left out.
"""

import hashlib
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from . import config
from .batch import BatchOperation, BatchOperationExecutor, PollPolicy
from .client import MailchimpClient
from .credentials import get_mailchimp_token
from .errors import MailchimpSyncError
from .notifications import notify_error, notify_info
from .schemas import BatchStatus
from .store import DataStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TagSelection:
    """Whether a tag category is selected for the supporters being synced"""

    tag_category_id: Any
    selected: bool

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TagSelection":
        """Accepts {"tag_category_id" | "tag_master_id": id, "selected": bool}"""
        tag_id = data.get("tag_category_id", data.get("tag_master_id"))
        if tag_id is None:
            raise ValueError(f"Tag selection without a tag category id: {dict(data)}")
        return cls(tag_category_id=tag_id, selected=bool(data.get("selected")))


@dataclass
class SyncResult:
    """Outcome of one membership sync"""

    job_id: str
    operation_count: int
    added_list_ids: List[str] = field(default_factory=list)
    removed_list_ids: List[str] = field(default_factory=list)
    status: Optional[BatchStatus] = None


def subscriber_hash(email: str) -> str:
    """Mailchimp member id: MD5 of the lower-cased email address"""
    return hashlib.md5(email.lower().encode()).hexdigest()


def build_operations(emails: Iterable[str], to_add: Iterable[str],
                     to_remove: Iterable[str]) -> List[BatchOperation]:
    """Every email × list subscribe, followed by every email × list removal"""
    emails = list(emails)
    to_add = list(to_add)
    to_remove = list(to_remove)

    subscribes = [
        BatchOperation("POST", f"lists/{list_id}/members",
                       {"email_address": email, "status": "subscribed"})
        for email in emails
        for list_id in to_add
    ]
    removals = [
        BatchOperation("DELETE", f"lists/{list_id}/members/{subscriber_hash(email)}")
        for email in emails
        for list_id in to_remove
    ]
    return subscribes + removals


class MembershipSyncOrchestrator:
    """Turns tag selections into one Mailchimp batch job"""

    def __init__(self, store: DataStore, settings: Optional[config.ClientSettings] = None,
                 executor: Optional[BatchOperationExecutor] = None,
                 client_factory=MailchimpClient.for_organization):
        self.store = store
        self.settings = settings or config.ClientSettings()
        self.executor = executor or BatchOperationExecutor(store, settings=self.settings,
                                                           client_factory=client_factory)
        self._client_factory = client_factory

    def list_ids_for(self, selections: List[TagSelection], selected: bool) -> List[str]:
        tag_ids = [s.tag_category_id for s in selections if s.selected == selected]
        if not tag_ids:
            return []
        return self.store.get_remote_list_ids(tag_ids)

    def sync_supporters(self, organization_id: Any, supporter_ids: Iterable[Any],
                        tag_selections: Iterable[Union[TagSelection, Dict[str, Any]]],
                        wait: bool = False, policy: Optional[PollPolicy] = None) -> Optional[SyncResult]:
        """
        Sync supporters' list memberships from their tag selections.

        Returns None when nothing needs to change (no provisioned list among
        the selections, or no supporter emails). With wait=True the batch is
        polled until finished and the final status is attached to the result.

        Raises:
            MissingCredentialError: organization has no Mailchimp token
            VendorRequestError, ConnectivityError, MalformedResponseError
            BatchTimeoutError: wait=True and the batch never finished
        """
        get_mailchimp_token(self.store, organization_id)

        selections = [s if isinstance(s, TagSelection) else TagSelection.from_dict(s)
                      for s in tag_selections]
        emails = self.store.get_supporter_emails(supporter_ids)
        to_add = self.list_ids_for(selections, True)
        to_remove = self.list_ids_for(selections, False)

        if not to_add and not to_remove:
            logger.info(f"No provisioned Mailchimp lists in selection for organization {organization_id}; nothing to sync")
            return None

        operations = build_operations(emails, to_add, to_remove)
        if not operations:
            logger.info(f"No supporter emails to sync for organization {organization_id}")
            return None

        logger.info(f"Syncing {len(emails)} supporters: +{len(to_add)} lists, -{len(to_remove)} lists "
                    f"({len(operations)} operations)")
        try:
            client = self._client_factory(self.store, organization_id, settings=self.settings)
            try:
                job_id = self.executor.submit(organization_id, operations, client=client)
                result = SyncResult(job_id=job_id, operation_count=len(operations),
                                    added_list_ids=to_add, removed_list_ids=to_remove)
                if wait:
                    result.status = self.executor.wait_for_completion(organization_id, job_id,
                                                                      policy=policy, client=client)
            finally:
                client.close()
        except MailchimpSyncError as e:
            notify_error("Mailchimp membership sync failed",
                         {"organization_id": organization_id, "error": str(e)})
            raise

        notify_info("Mailchimp membership sync submitted",
                    {"organization_id": organization_id, "batch_id": job_id,
                     "operations": len(operations)})
        return result
