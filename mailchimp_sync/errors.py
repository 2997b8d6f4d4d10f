"""
errors.py

Error taxonomy for the Mailchimp sync workflow. Errors propagate to the
caller; nothing in the package turns them into partial-success reports.
"""

from typing import Any, Optional


class MailchimpSyncError(Exception):
    """Base class for all sync failures"""


class MissingCredentialError(MailchimpSyncError):
    """No Mailchimp token is on file for the organization"""

    def __init__(self, organization_id: Any):
        self.organization_id = organization_id
        super().__init__(f"No Mailchimp connection for this nonprofit: {organization_id}")


class VendorRequestError(MailchimpSyncError):
    """Mailchimp answered with a non-2xx status"""

    def __init__(self, message: str, status_code: Optional[int] = None,
                 detail: Optional[str] = None, url: Optional[str] = None):
        self.status_code = status_code
        self.detail = detail
        self.url = url
        text = message
        if status_code is not None:
            text += f" (HTTP {status_code})"
        if detail:
            text += f": {detail}"
        super().__init__(text)


class ConnectivityError(MailchimpSyncError):
    """Transport-level failure: DNS, refused connection, timeout, bad URI"""


class MalformedResponseError(MailchimpSyncError):
    """A Mailchimp response is missing fields its schema requires"""


class BatchTimeoutError(MailchimpSyncError):
    """A batch job did not reach a terminal status within the poll policy"""

    def __init__(self, job_id: str, attempts: int, last_status: Optional[str] = None):
        self.job_id = job_id
        self.attempts = attempts
        self.last_status = last_status
        super().__init__(
            f"Batch {job_id} still '{last_status}' after {attempts} status checks"
        )
