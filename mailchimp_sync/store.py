"""
store.py

Data access the sync workflow depends on. The application database is an
external collaborator, so the workflow only talks to the DataStore
interface. InMemoryStore backs the command line and tests and can be loaded
from / saved to a JSON file:

    {
      "organizations":  {"<org id>": {"name": ..., "email": ..., "mailchimp_token": ...}},
      "tag_categories": {"<tag id>": {"name": ..., "organization_id": "<org id>"}},
      "supporters":     {"<supporter id>": {"email": ...}},
      "email_lists":    {"<tag id>": "<mailchimp list id>"}
    }
"""

import json
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class Organization:
    """Nonprofit contact details used as Mailchimp list defaults"""

    id: Any
    name: str = ""
    email: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state_code: Optional[str] = None
    zip_code: Optional[str] = None
    phone: Optional[str] = None


@dataclass
class TagCategory:
    id: Any
    name: str
    organization_id: Any


class DataStore(ABC):
    """Lookups the sync needs from the application database"""

    @abstractmethod
    def get_token(self, organization_id: Any) -> Optional[str]:
        """Mailchimp token for the organization, or None"""

    @abstractmethod
    def get_organization(self, organization_id: Any) -> Organization:
        """Raise LookupError when the organization does not exist"""

    @abstractmethod
    def get_tag_categories(self, organization_id: Any, tag_category_ids: Iterable[Any]) -> List[TagCategory]:
        """Tag categories among `tag_category_ids` owned by the organization"""

    @abstractmethod
    def get_supporter_emails(self, supporter_ids: Iterable[Any]) -> List[str]:
        """Emails of the given supporters; unknown ids and blank emails are skipped"""

    @abstractmethod
    def get_remote_list_ids(self, tag_category_ids: Iterable[Any]) -> List[str]:
        """Inner join of tag categories onto their Mailchimp list ids"""

    @abstractmethod
    def get_remote_list_id(self, tag_category_id: Any) -> Optional[str]:
        """Mailchimp list id already provisioned for a tag category, or None"""

    @abstractmethod
    def save_remote_list(self, tag_category_id: Any, remote_list_id: str) -> None:
        """Remember the Mailchimp list created for a tag category"""

    @abstractmethod
    def remove_remote_list(self, remote_list_id: str) -> None:
        """Forget a deleted Mailchimp list"""


class InMemoryStore(DataStore):
    """Dictionary-backed store; every id is normalised to str"""

    def __init__(self,
                 organizations: Optional[Dict[Any, Dict[str, Any]]] = None,
                 tag_categories: Optional[Dict[Any, Dict[str, Any]]] = None,
                 supporters: Optional[Dict[Any, Dict[str, Any]]] = None,
                 email_lists: Optional[Dict[Any, str]] = None,
                 path: Optional[str] = None):
        self.organizations = {str(k): dict(v) for k, v in (organizations or {}).items()}
        self.tag_categories = {str(k): dict(v) for k, v in (tag_categories or {}).items()}
        self.supporters = {str(k): dict(v) for k, v in (supporters or {}).items()}
        self.email_lists = {str(k): str(v) for k, v in (email_lists or {}).items()}
        self.path = path

    # ── persistence ──────────────────────────────────────────────────────────

    @classmethod
    def load(cls, path: str) -> "InMemoryStore":
        """Load a store from a JSON file; a missing file gives an empty store"""
        if not os.path.exists(path):
            logger.warning(f"Data store {path} not found, starting empty")
            return cls(path=path)
        with open(path, "r") as f:
            data = json.load(f)
        return cls(
            organizations=data.get("organizations"),
            tag_categories=data.get("tag_categories"),
            supporters=data.get("supporters"),
            email_lists=data.get("email_lists"),
            path=path,
        )

    def save(self) -> None:
        if not self.path:
            return
        with open(self.path, "w") as f:
            json.dump({
                "organizations": self.organizations,
                "tag_categories": self.tag_categories,
                "supporters": self.supporters,
                "email_lists": self.email_lists,
            }, f, indent=2)
        logger.debug(f"Saved data store to {self.path}")

    # ── DataStore ────────────────────────────────────────────────────────────

    def get_token(self, organization_id: Any) -> Optional[str]:
        org = self.organizations.get(str(organization_id)) or {}
        return org.get("mailchimp_token")

    def get_organization(self, organization_id: Any) -> Organization:
        org = self.organizations.get(str(organization_id))
        if org is None:
            raise LookupError(f"Unknown organization: {organization_id}")
        fields = {k: v for k, v in org.items() if k in Organization.__dataclass_fields__ and k != "id"}
        return Organization(id=str(organization_id), **fields)

    def get_tag_categories(self, organization_id: Any, tag_category_ids: Iterable[Any]) -> List[TagCategory]:
        found = []
        seen = set()
        for tag_id in (str(t) for t in tag_category_ids):
            tag = self.tag_categories.get(tag_id)
            if tag_id in seen or tag is None:
                continue
            if str(tag.get("organization_id")) != str(organization_id):
                continue
            seen.add(tag_id)
            found.append(TagCategory(id=tag_id, name=tag.get("name", ""), organization_id=str(organization_id)))
        return found

    def get_supporter_emails(self, supporter_ids: Iterable[Any]) -> List[str]:
        emails = []
        seen = set()
        for supporter_id in (str(s) for s in supporter_ids):
            if supporter_id in seen:
                continue
            seen.add(supporter_id)
            email = (self.supporters.get(supporter_id) or {}).get("email")
            if not email:
                logger.debug(f"Skipping supporter {supporter_id} with no email")
                continue
            emails.append(email)
        return emails

    def get_remote_list_ids(self, tag_category_ids: Iterable[Any]) -> List[str]:
        list_ids = []
        for tag_id in (str(t) for t in tag_category_ids):
            remote_id = self.email_lists.get(tag_id)
            if remote_id and remote_id not in list_ids:
                list_ids.append(remote_id)
        return list_ids

    def save_remote_list(self, tag_category_id: Any, remote_list_id: str) -> None:
        self.email_lists[str(tag_category_id)] = str(remote_list_id)

    def remove_remote_list(self, remote_list_id: str) -> None:
        for tag_id in [k for k, v in self.email_lists.items() if v == str(remote_list_id)]:
            del self.email_lists[tag_id]

    def get_remote_list_id(self, tag_category_id: Any) -> Optional[str]:
        return self.email_lists.get(str(tag_category_id))

    def __repr__(self) -> str:
        return (f"InMemoryStore(organizations={len(self.organizations)}, "
                f"tag_categories={len(self.tag_categories)}, supporters={len(self.supporters)}, "
                f"email_lists={len(self.email_lists)})")

