"""
Pytest configuration and shared fixtures.

No test touches the network: HTTP is replaced with unittest.mock objects.
"""

import json
import sys
from pathlib import Path
from unittest.mock import Mock

import pytest

# Add the project root to sys.path so the package imports without install
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from mailchimp_sync import notifications  # noqa: E402
from mailchimp_sync.client import MailchimpClient  # noqa: E402
from mailchimp_sync.config import ClientSettings  # noqa: E402
from mailchimp_sync.store import InMemoryStore  # noqa: E402


def make_response(status_code=200, payload=None, text=None):
    """Stand-in for requests.Response"""
    response = Mock()
    response.status_code = status_code
    if payload is None:
        response.content = b""
        response.json.side_effect = ValueError("No JSON object could be decoded")
        response.text = text or ""
    else:
        body = json.dumps(payload)
        response.content = body.encode()
        response.json.return_value = payload
        response.text = text or body
    return response


@pytest.fixture(scope="session")
def fixtures_dir():
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def store_data(fixtures_dir):
    with open(fixtures_dir / "store.json") as f:
        return json.load(f)


@pytest.fixture
def store(store_data):
    return InMemoryStore(**store_data)


@pytest.fixture
def settings():
    return ClientSettings(max_retries=3, retry_delay=0, timeout=5)


@pytest.fixture
def fake_client():
    """MailchimpClient double with post/get/delete under test control"""
    client = Mock(spec=MailchimpClient)
    client.base_uri = "https://us6.api.mailchimp.com/3.0"
    return client


@pytest.fixture
def client_factory(fake_client):
    """Replaces MailchimpClient.for_organization; records every call"""
    return Mock(return_value=fake_client)


@pytest.fixture(autouse=True)
def reset_notifier():
    notifications._notifier = None
    yield
    notifications._notifier = None


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: unit test (no external dependencies)")
