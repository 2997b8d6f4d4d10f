"""
Command line tests. HTTP goes through a mocked requests.Session.
"""

import json
from unittest.mock import patch

import pytest

from conftest import make_response
from mailchimp_sync import main as cli


@pytest.fixture
def store_file(tmp_path, store_data, monkeypatch):
    monkeypatch.chdir(tmp_path)
    path = tmp_path / "store.json"
    path.write_text(json.dumps(store_data))
    return path


@pytest.fixture
def session():
    with patch("mailchimp_sync.client.requests.Session") as session_cls:
        session = session_cls.return_value
        session.headers = {}
        session.get.return_value = make_response(200, {"dc": "us6"})
        yield session


class TestCommandLine:

    def test_create_lists_persists_mapping(self, store_file, session, capsys):
        session.request.return_value = make_response(200, {"id": "L3", "name": "CommitChange-Board"})

        code = cli.main(["--store", str(store_file), "create-lists", "1", "12"])

        assert code == 0
        assert json.loads(store_file.read_text())["email_lists"]["12"] == "L3"
        assert "L3" in capsys.readouterr().out

    def test_sync_submits_batch(self, store_file, session, capsys):
        session.request.return_value = make_response(200, {"id": "b-9", "status": "pending"})

        code = cli.main(["--store", str(store_file), "sync", "1",
                         "--supporters", "100", "101", "--select", "10", "--deselect", "11"])

        assert code == 0
        method, url = session.request.call_args[0]
        assert (method, url) == ("POST", "https://us6.api.mailchimp.com/3.0/batches")
        assert len(session.request.call_args[1]["json"]["operations"]) == 4
        assert "b-9" in capsys.readouterr().out

    def test_batch_status(self, store_file, session, capsys):
        session.request.return_value = make_response(200, {
            "id": "b-9", "status": "finished", "total_operations": 4,
            "finished_operations": 4, "errored_operations": 0})

        assert cli.main(["--store", str(store_file), "batch-status", "1", "b-9"]) == 0
        assert "finished" in capsys.readouterr().out

    def test_missing_token_exits_nonzero_without_network(self, store_file, session):
        code = cli.main(["--store", str(store_file), "create-lists", "3", "30"])

        assert code == 1
        session.get.assert_not_called()
        session.request.assert_not_called()

    def test_parser_requires_command(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])
