"""
Tests for the command line front end with the backend session mocked out.
"""

import json
import os
from unittest.mock import MagicMock

import pytest
import requests

from config_manager import ConfigManager
from main import Application, cmd_domains, cmd_records, create_parser, main


@pytest.fixture
def config_dir(tmp_path):
    return os.path.join(str(tmp_path), "config")


def test_parser_requires_known_command():
    parser = create_parser()
    with pytest.raises(SystemExit):
        parser.parse_args(["frobnicate"])


def test_check_records_exit_codes(qapp, tmp_path, config_dir, capsys):
    good = tmp_path / "good.txt"
    good.write_text("A|www|192.0.2.1\nCNAME|blog|@|true\n")
    bad = tmp_path / "bad.txt"
    bad.write_text("A|www|192.0.2.1\nBAD LINE\n")

    assert main(["--config-dir", config_dir, "check-records", str(good)]) == 0
    assert main(["--config-dir", config_dir, "check-records", str(bad)]) == 1
    assert "FAIL Line 2: Invalid format 'BAD LINE'" in capsys.readouterr().out


def test_templates_list_shows_default(qapp, config_dir, capsys):
    assert main(["--config-dir", config_dir, "templates", "list"]) == 0
    assert "default (default)  Default Template  4 DNS records" in capsys.readouterr().out


def test_credentials_list_when_empty(qapp, config_dir, capsys):
    assert main(["--config-dir", config_dir, "credentials", "list"]) == 0
    assert "No stored credentials" in capsys.readouterr().out


def _response(status, body):
    response = requests.Response()
    response.status_code = status
    response.url = "http://localhost:3000/test"
    response._content = json.dumps(body).encode()
    return response


@pytest.fixture
def logged_in_app(qapp, config_dir):
    session = MagicMock()
    app = Application(ConfigManager(config_dir), session=session)
    app.credential_store.save("a@example.com", "key")
    return app, session


def test_rejected_records_load_exits_nonzero(logged_in_app, capsys):
    app, session = logged_in_app
    session.request.side_effect = [
        _response(200, {"success": True, "message": "API credentials validated successfully"}),
        _response(401, {"message": "Unauthorized"}),
    ]

    assert cmd_records(app, create_parser().parse_args(["records", "example.com"])) == 1
    assert "Total records" not in capsys.readouterr().out
    assert app.credential_store.get("a@example.com") is None


def test_rejected_domains_load_exits_nonzero(logged_in_app):
    app, session = logged_in_app
    session.request.side_effect = [
        _response(200, {"success": True, "message": "API credentials validated successfully"}),
        _response(401, {"message": "Unauthorized"}),
    ]

    assert cmd_domains(app, create_parser().parse_args(["domains"])) == 1
