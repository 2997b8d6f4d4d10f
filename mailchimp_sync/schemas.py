"""
schemas.py

Response types for the Mailchimp endpoints the sync touches. Each type is
built from the decoded JSON with from_payload(), which raises
MalformedResponseError when a required field is missing.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional

from .errors import MalformedResponseError


def _require(payload: Any, fields: Iterable[str], schema: str) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        raise MalformedResponseError(f"{schema}: expected a JSON object, got {type(payload).__name__}")
    missing = [name for name in fields if payload.get(name) in (None, "")]
    if missing:
        raise MalformedResponseError(f"{schema}: missing required field(s) {', '.join(missing)}")
    return payload


@dataclass(frozen=True)
class DatacenterMetadata:
    """GET /oauth2/metadata"""

    dc: str
    api_endpoint: Optional[str] = None
    account_name: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "DatacenterMetadata":
        data = _require(payload, ("dc",), "DatacenterMetadata")
        return cls(
            dc=str(data["dc"]),
            api_endpoint=data.get("api_endpoint"),
            account_name=data.get("accountname"),
        )


@dataclass(frozen=True)
class RemoteList:
    """POST /lists"""

    id: str
    name: str
    tag_category_id: Optional[Any] = None

    @classmethod
    def from_payload(cls, payload: Any, tag_category_id: Optional[Any] = None) -> "RemoteList":
        data = _require(payload, ("id", "name"), "RemoteList")
        return cls(id=str(data["id"]), name=data["name"], tag_category_id=tag_category_id)


@dataclass(frozen=True)
class ListMember:
    """POST /lists/{list_id}/members"""

    id: str
    email_address: str
    status: str
    list_id: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "ListMember":
        data = _require(payload, ("id", "email_address", "status"), "ListMember")
        return cls(
            id=str(data["id"]),
            email_address=data["email_address"],
            status=data["status"],
            list_id=data.get("list_id"),
        )


@dataclass(frozen=True)
class BatchStatus:
    """
    POST /batches and GET /batches/{batch_id}

    Mailchimp reports one of pending, preprocessing, started, finalizing or
    finished. The decoded payload is kept on `raw` for callers that need
    fields not modelled here.
    """

    id: str
    status: str
    total_operations: int = 0
    finished_operations: int = 0
    errored_operations: int = 0
    submitted_at: Optional[str] = None
    completed_at: Optional[str] = None
    response_body_url: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def is_finished(self) -> bool:
        return self.status == "finished"

    @classmethod
    def from_payload(cls, payload: Any) -> "BatchStatus":
        data = _require(payload, ("id", "status"), "BatchStatus")
        return cls(
            id=str(data["id"]),
            status=data["status"],
            total_operations=int(data.get("total_operations") or 0),
            finished_operations=int(data.get("finished_operations") or 0),
            errored_operations=int(data.get("errored_operations") or 0),
            submitted_at=data.get("submitted_at") or None,
            completed_at=data.get("completed_at") or None,
            response_body_url=data.get("response_body_url") or None,
            raw=dict(data),
        )
