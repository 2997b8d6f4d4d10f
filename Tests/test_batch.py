"""
Batch submission and completion polling tests.
"""

import json
from unittest.mock import Mock

import pytest

from mailchimp_sync.batch import BatchOperation, BatchOperationExecutor, PollPolicy
from mailchimp_sync.errors import (
    BatchTimeoutError, MalformedResponseError, MissingCredentialError, VendorRequestError
)


def status_body(status, total=4, finished=0, errored=0, batch_id="b-123"):
    return {
        "id": batch_id,
        "status": status,
        "total_operations": total,
        "finished_operations": finished,
        "errored_operations": errored,
        "submitted_at": "2026-10-19T10:00:00+00:00",
        "completed_at": "2026-10-19T10:01:00+00:00" if status == "finished" else "",
        "response_body_url": "https://mailchimp-api-batch.s3.amazonaws.com/b-123.tar.gz" if status == "finished" else "",
    }


@pytest.fixture
def sleep():
    return Mock()


@pytest.fixture
def executor(store, settings, client_factory, sleep):
    return BatchOperationExecutor(store, settings=settings, client_factory=client_factory, sleep=sleep)


OPERATIONS = [
    BatchOperation("POST", "lists/L1/members", {"email_address": "a@x.com", "status": "subscribed"}),
    BatchOperation("DELETE", "lists/L2/members/0cc175b9c0f1b6a831c399e269772661"),
]


class TestBatchOperation:

    def test_body_is_json_encoded(self):
        op = OPERATIONS[0].to_dict()
        assert op["method"] == "POST"
        assert json.loads(op["body"]) == {"email_address": "a@x.com", "status": "subscribed"}

    def test_delete_has_no_body(self):
        assert OPERATIONS[1].to_dict() == {
            "method": "DELETE",
            "path": "lists/L2/members/0cc175b9c0f1b6a831c399e269772661",
        }


class TestSubmit:

    def test_empty_operations_is_noop(self, executor, client_factory):
        assert executor.submit("1", []) is None
        client_factory.assert_not_called()

    def test_empty_operations_still_requires_token(self, executor, client_factory):
        with pytest.raises(MissingCredentialError):
            executor.submit("3", [])
        client_factory.assert_not_called()

    def test_submits_one_batch_and_returns_id(self, executor, fake_client):
        fake_client.post.return_value = status_body("pending", total=0)

        assert executor.submit("1", OPERATIONS) == "b-123"

        path, body = fake_client.post.call_args[0]
        assert path == "batches"
        assert [op["method"] for op in body["operations"]] == ["POST", "DELETE"]

    def test_response_without_id_is_malformed(self, executor, fake_client):
        fake_client.post.return_value = {"status": "pending"}
        with pytest.raises(MalformedResponseError):
            executor.submit("1", OPERATIONS)


class TestPolling:

    def test_poll_status_reads_once(self, executor, fake_client):
        fake_client.get.return_value = status_body("started", finished=1)

        status = executor.poll_status("1", "b-123")

        fake_client.get.assert_called_once_with("batches/b-123")
        assert status.status == "started"
        assert status.finished_operations == 1
        assert not status.is_finished
        assert status.raw["submitted_at"] == "2026-10-19T10:00:00+00:00"

    def test_wait_polls_until_finished_with_backoff(self, executor, fake_client, client_factory, sleep):
        fake_client.get.side_effect = [
            status_body("pending"),
            status_body("started", finished=2),
            status_body("finished", finished=4),
        ]
        policy = PollPolicy(interval=1, max_attempts=5, backoff=2, max_interval=10)

        status = executor.wait_for_completion("1", "b-123", policy)

        assert status.is_finished
        assert fake_client.get.call_count == 3
        assert [c[0][0] for c in sleep.call_args_list] == [1, 2]
        assert client_factory.call_count == 1

    def test_wait_caps_interval(self, executor, fake_client, sleep):
        fake_client.get.side_effect = [status_body("started")] * 4 + [status_body("finished", finished=4)]
        policy = PollPolicy(interval=4, max_attempts=5, backoff=3, max_interval=10)

        executor.wait_for_completion("1", "b-123", policy)

        assert [c[0][0] for c in sleep.call_args_list] == [4, 10, 10, 10]

    def test_wait_gives_up_after_max_attempts(self, executor, fake_client, sleep):
        fake_client.get.return_value = status_body("started")
        policy = PollPolicy(interval=0.5, max_attempts=3, backoff=1)

        with pytest.raises(BatchTimeoutError) as exc:
            executor.wait_for_completion("1", "b-123", policy)

        assert fake_client.get.call_count == 3
        assert sleep.call_count == 2
        assert exc.value.attempts == 3
        assert exc.value.last_status == "started"

    def test_custom_terminal_predicate(self, executor, fake_client, sleep):
        fake_client.get.side_effect = [status_body("pending"), status_body("finalizing", finished=4)]
        policy = PollPolicy(interval=0, max_attempts=5,
                            is_terminal=lambda s: s.status in ("finalizing", "finished"))

        status = executor.wait_for_completion("1", "b-123", policy)

        assert status.status == "finalizing"
        assert fake_client.get.call_count == 2

    def test_errored_operations_do_not_raise(self, executor, fake_client):
        fake_client.get.return_value = status_body("finished", finished=4, errored=1)

        status = executor.wait_for_completion("1", "b-123", PollPolicy(max_attempts=1))

        assert status.errored_operations == 1


class TestClientLifetime:

    def test_submit_closes_client_it_created(self, executor, fake_client):
        fake_client.post.return_value = status_body("pending", total=0)

        executor.submit("1", OPERATIONS)

        fake_client.close.assert_called_once()

    def test_submit_closes_client_on_failure(self, executor, fake_client):
        fake_client.post.side_effect = VendorRequestError("POST batches failed", status_code=500)

        with pytest.raises(VendorRequestError):
            executor.submit("1", OPERATIONS)

        fake_client.close.assert_called_once()

    def test_wait_closes_client_once_after_polling(self, executor, fake_client):
        fake_client.get.side_effect = [status_body("pending"), status_body("finished", finished=4)]

        executor.wait_for_completion("1", "b-123", PollPolicy(interval=0, max_attempts=3))

        fake_client.close.assert_called_once()

    def test_wait_closes_client_on_timeout(self, executor, fake_client):
        fake_client.get.return_value = status_body("started")

        with pytest.raises(BatchTimeoutError):
            executor.wait_for_completion("1", "b-123", PollPolicy(interval=0, max_attempts=2))

        fake_client.close.assert_called_once()

    def test_caller_client_is_left_open(self, executor, fake_client, client_factory):
        fake_client.post.return_value = status_body("pending", total=0)
        fake_client.get.return_value = status_body("finished", finished=4)

        executor.submit("1", OPERATIONS, client=fake_client)
        executor.poll_status("1", "b-123", client=fake_client)
        executor.wait_for_completion("1", "b-123", PollPolicy(max_attempts=1), client=fake_client)

        client_factory.assert_not_called()
        fake_client.close.assert_not_called()
