#!/usr/bin/env python3
"""
list_manager.py

Mailchimp list management for tag categories. Each tag category an
organization mirrors gets its own Mailchimp list; lists are never renamed
in place, only created and deleted.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from tqdm import tqdm

from . import config
from .client import MailchimpClient
from .credentials import get_mailchimp_token
from .errors import MalformedResponseError, VendorRequestError
from .schemas import ListMember, RemoteList
from .store import DataStore, Organization

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CreatedList:
    """A Mailchimp list created for a tag category"""

    remote_list_id: str
    name: str
    tag_category_id: Any


class MailchimpListManager:
    """Creates and deletes the Mailchimp lists backing tag categories"""

    def __init__(self, store: DataStore, settings: Optional[config.ClientSettings] = None,
                 client_factory=MailchimpClient.for_organization):
        self.store = store
        self.settings = settings or config.ClientSettings()
        self._client_factory = client_factory

    def _client(self, organization_id: Any) -> MailchimpClient:
        return self._client_factory(self.store, organization_id, settings=self.settings)

    def list_payload(self, organization: Organization, tag_name: str) -> Dict[str, Any]:
        """Body of POST /lists for one tag category"""
        from_email = organization.email if organization.email and organization.email.strip() \
            else self.settings.support_email
        return {
            "name": f"{self.settings.list_name_prefix}{tag_name}",
            "contact": {
                "company": organization.name or "",
                "address1": organization.address or "",
                "city": organization.city or "",
                "state": organization.state_code or "",
                "zip": organization.zip_code or "",
                "country": organization.state_code or "",
                "phone": organization.phone or "",
            },
            "permission_reminder": config.PERMISSION_REMINDER,
            "campaign_defaults": {
                "from_name": organization.name or "",
                "from_email": from_email,
                "subject": config.DEFAULT_SUBJECT,
                "language": config.DEFAULT_LANGUAGE,
            },
            "email_type_option": False,
            "visibility": "prv",
        }

    def create_lists(self, organization_id: Any, tag_category_ids: Iterable[Any]) -> List[CreatedList]:
        """
        Create a Mailchimp list for every tag category that lacks one.

        The first failed creation raises VendorRequestError (or
        MalformedResponseError for an unreadable reply) and no further
        lists are attempted. Lists created before the failure stay recorded
        in the store.

        Returns:
            One CreatedList per list created, in request order
        """
        tag_category_ids = list(tag_category_ids)
        get_mailchimp_token(self.store, organization_id)
        organization = self.store.get_organization(organization_id)

        categories = self.store.get_tag_categories(organization_id, tag_category_ids)
        pending = [c for c in categories if not self.store.get_remote_list_id(c.id)]
        skipped = len(categories) - len(pending)
        if skipped:
            logger.info(f"Skipping {skipped} tag categories that already have a Mailchimp list")
        if not pending:
            logger.info(f"No Mailchimp lists to create for organization {organization_id}")
            return []

        client = self._client(organization_id)
        created = []
        try:
            for category in tqdm(pending, desc="Creating Mailchimp lists", unit="list", disable=len(pending) < 2):
                payload = self.list_payload(organization, category.name)
                try:
                    body = client.post("lists", payload)
                except VendorRequestError as e:
                    logger.error(f"❌ Failed to create list for tag '{category.name}' ({category.id}): {e}")
                    raise
                try:
                    remote = RemoteList.from_payload(body, tag_category_id=category.id)
                except MalformedResponseError:
                    # The list may already exist on Mailchimp without being recorded
                    remote_id = body.get("id") if isinstance(body, dict) else None
                    logger.error(f"❌ Unreadable create response for tag '{category.name}' ({category.id}); "
                                 f"possibly orphaned Mailchimp list id: {remote_id}")
                    raise
                self.store.save_remote_list(category.id, remote.id)
                created.append(CreatedList(remote_list_id=remote.id, name=remote.name, tag_category_id=category.id))
                logger.info(f"✅ Created Mailchimp list '{remote.name}' ({remote.id}) for tag {category.id}")
        finally:
            client.close()

        return created

    def delete_lists(self, organization_id: Any, remote_list_ids: Iterable[str]) -> List[str]:
        """
        Delete Mailchimp lists one by one; the first failure propagates.

        Returns:
            The ids that were deleted
        """
        remote_list_ids = list(remote_list_ids)
        get_mailchimp_token(self.store, organization_id)
        if not remote_list_ids:
            return []
        client = self._client(organization_id)
        deleted = []
        try:
            for list_id in remote_list_ids:
                client.delete(f"lists/{list_id}")
                self.store.remove_remote_list(list_id)
                deleted.append(list_id)
                logger.info(f"🗑️ Deleted Mailchimp list {list_id}")
        finally:
            client.close()
        return deleted

    def signup(self, organization_id: Any, email: str, remote_list_id: str) -> ListMember:
        """Subscribe a single address to one list"""
        client = self._client(organization_id)
        try:
            body = client.post(f"lists/{remote_list_id}/members",
                               {"email_address": email, "status": "subscribed"})
        finally:
            client.close()
        member = ListMember.from_payload(body)
        logger.info(f"Subscribed {email} to list {remote_list_id} (status: {member.status})")
        return member
