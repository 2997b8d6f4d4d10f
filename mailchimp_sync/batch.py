#!/usr/bin/env python3
"""
batch.py

Mailchimp batch operations: many member add/remove calls bundled into one
asynchronous job. Mailchimp processes each operation independently, so a
failed operation shows up in the job's errored_operations count rather than
failing the job.
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional

from . import config
from .client import MailchimpClient
from .credentials import get_mailchimp_token
from .errors import BatchTimeoutError
from .schemas import BatchStatus
from .store import DataStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchOperation:
    """One entry of a batch request; body is sent as a JSON string"""

    method: str
    path: str
    body: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        operation = {"method": self.method, "path": self.path}
        if self.body is not None:
            operation["body"] = json.dumps(self.body)
        return operation


def _finished(status: BatchStatus) -> bool:
    return status.is_finished


@dataclass
class PollPolicy:
    """
    How to wait for a batch job.

    interval: seconds before the second status check
    max_attempts: total status checks before giving up
    backoff: multiplier applied to the interval after each check
    max_interval: upper bound on the wait between checks
    is_terminal: predicate that ends polling
    """

    interval: float = config.BATCH_POLL_INTERVAL
    max_attempts: int = config.BATCH_POLL_MAX_ATTEMPTS
    backoff: float = config.BATCH_POLL_BACKOFF
    max_interval: float = config.BATCH_POLL_MAX_INTERVAL
    is_terminal: Callable[[BatchStatus], bool] = _finished

    def delays(self):
        """Waits between consecutive checks (max_attempts - 1 of them)"""
        delay = self.interval
        for _ in range(max(0, self.max_attempts - 1)):
            yield min(delay, self.max_interval)
            delay *= self.backoff


class BatchOperationExecutor:
    """Submits batch jobs and reads their status"""

    def __init__(self, store: DataStore, settings: Optional[config.ClientSettings] = None,
                 client_factory=MailchimpClient.for_organization, sleep=time.sleep):
        self.store = store
        self.settings = settings or config.ClientSettings()
        self._client_factory = client_factory
        self._sleep = sleep

    def _client(self, organization_id: Any, client: Optional[MailchimpClient]) -> MailchimpClient:
        if client is not None:
            return client
        return self._client_factory(self.store, organization_id, settings=self.settings)

    def submit(self, organization_id: Any, operations: Iterable[BatchOperation],
               client: Optional[MailchimpClient] = None) -> Optional[str]:
        """
        Submit all operations as a single batch job.

        The credential check always runs; when there is nothing to send it
        returns None without touching the network. Otherwise returns the
        Mailchimp batch id. A client passed in is left open for the caller.
        """
        operations = list(operations)
        if client is None:
            get_mailchimp_token(self.store, organization_id)
        if not operations:
            logger.debug("No batch operations to submit")
            return None

        owned = client is None
        client = self._client(organization_id, client)
        try:
            body = client.post("batches", {"operations": [op.to_dict() for op in operations]})
        finally:
            if owned:
                client.close()
        status = BatchStatus.from_payload(body)
        logger.info(f"📦 Submitted batch {status.id} with {len(operations)} operations "
                    f"for organization {organization_id} (status: {status.status})")
        return status.id

    def poll_status(self, organization_id: Any, job_id: str,
                    client: Optional[MailchimpClient] = None) -> BatchStatus:
        """Read the batch status once"""
        owned = client is None
        client = self._client(organization_id, client)
        try:
            status = BatchStatus.from_payload(client.get(f"batches/{job_id}"))
        finally:
            if owned:
                client.close()
        logger.debug(f"Batch {job_id}: {status.status} "
                     f"({status.finished_operations}/{status.total_operations} done, "
                     f"{status.errored_operations} errored)")
        return status

    def wait_for_completion(self, organization_id: Any, job_id: str,
                            policy: Optional[PollPolicy] = None,
                            client: Optional[MailchimpClient] = None) -> BatchStatus:
        """
        Poll until policy.is_terminal(status) holds.

        Raises BatchTimeoutError once policy.max_attempts checks have been
        made without reaching a terminal status.
        """
        policy = policy or PollPolicy()
        owned = client is None
        client = self._client(organization_id, client)
        try:
            return self._poll_until_terminal(organization_id, job_id, policy, client)
        finally:
            if owned:
                client.close()

    def _poll_until_terminal(self, organization_id: Any, job_id: str,
                             policy: PollPolicy, client: MailchimpClient) -> BatchStatus:
        delays = policy.delays()
        attempts = 0

        while True:
            status = self.poll_status(organization_id, job_id, client=client)
            attempts += 1
            if policy.is_terminal(status):
                if status.errored_operations:
                    logger.warning(f"⚠️ Batch {job_id} finished with {status.errored_operations} "
                                   f"of {status.total_operations} operations errored; "
                                   f"results at {status.response_body_url}")
                else:
                    logger.info(f"✅ Batch {job_id} finished: {status.finished_operations} operations")
                return status
            delay = next(delays, None)
            if delay is None:
                raise BatchTimeoutError(job_id, attempts, status.status)
            logger.debug(f"Batch {job_id} is '{status.status}', checking again in {delay:.1f}s")
            self._sleep(delay)
