"""Tests for the verity command line."""

import hashlib
from unittest.mock import Mock, patch

import pytest
from conftest import ENV_VARS
from typer.testing import CliRunner

from verity import __version__
from verity.cli import app
from verity.record_index import RecordIndex

runner = CliRunner()
CID = "QmYwAPJzv5CZsnA625s3Xf2nemtYgPpHdWEz79ojWnPbdG"


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """Clean environment, no ledgers, Pinata JWT present."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("PINATA_JWT", "jwt")
    (tmp_path / "pyproject.toml").write_text("[project]\nname = 'x'\n")
    monkeypatch.chdir(tmp_path)
    return tmp_path


def _ok(json_body=None, content=b""):
    response = Mock()
    response.status_code = 200
    response.ok = True
    response.json.return_value = json_body
    response.content = content
    return response


def _upload(workdir, content=b"hello world!"):
    clip = workdir / "clip.mp4"
    clip.write_bytes(content)
    with patch("verity.content_store.requests.post", return_value=_ok({"IpfsHash": CID})):
        return runner.invoke(app, ["upload", str(clip), "--plate", "ABC123"])


def test_version():
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert f"Verity v{__version__}" in result.stdout


def test_upload_in_demo_mode(workdir):
    result = _upload(workdir)

    assert result.exit_code == 0, result.stdout
    assert "Evidence anchored" in result.stdout
    assert hashlib.sha256(b"hello world!").hexdigest() in result.stdout
    assert "No ledger configured" in result.stdout
    assert (workdir / "db" / "records.json").exists()


def test_upload_without_jwt_fails(workdir, monkeypatch):
    monkeypatch.delenv("PINATA_JWT")
    clip = workdir / "clip.mp4"
    clip.write_bytes(b"data")

    result = runner.invoke(app, ["upload", str(clip), "--plate", "ABC123"])

    assert result.exit_code == 1
    assert "content_store_auth" in result.stdout


def test_records_empty(workdir):
    result = runner.invoke(app, ["records"])

    assert result.exit_code == 0
    assert "No records" in result.stdout


def test_records_after_upload(workdir):
    _upload(workdir)

    result = runner.invoke(app, ["records", "--plate", "abc123"])

    assert result.exit_code == 0
    assert "1 record(s)" in result.stdout


def test_verify_intact_and_altered(workdir):
    assert _upload(workdir).exit_code == 0
    record_id = RecordIndex(workdir / "db" / "records.json").all()[0].record_id

    with patch("verity.content_store.requests.get", return_value=_ok(content=b"hello world!")):
        result = runner.invoke(app, ["verify", record_id])
    assert result.exit_code == 0
    assert "Verified" in result.stdout

    with patch("verity.content_store.requests.get", return_value=_ok(content=b"hello world?")):
        result = runner.invoke(app, ["verify", record_id])
    assert result.exit_code == 2
    assert "ALTERED" in result.stdout


def test_verify_unknown_record(workdir):
    result = runner.invoke(app, ["verify", "ZZZ999-1700000000"])

    assert result.exit_code == 1
    assert "not_found" in result.stdout


def test_check_config_offline(workdir):
    result = runner.invoke(app, ["check-config", "--offline"])

    assert result.exit_code == 0
    assert "PRIVATE_KEY" in result.stdout
    assert "Skipped" in result.stdout


def test_check_config_reports_non_numeric_setting(workdir, monkeypatch):
    monkeypatch.setenv("NETWORK_CONFIRMATIONS", "lots")

    result = runner.invoke(app, ["check-config", "--offline"])

    assert result.exit_code == 1
    assert "config" in result.stdout
    assert "NETWORK_CONFIRMATIONS" in result.stdout


@patch("verity.content_store.requests.request")
def test_pins_remove_unknown(mock_request, workdir):
    response = Mock(status_code=404, ok=False, text="not pinned")
    mock_request.return_value = response

    result = runner.invoke(app, ["pins", "remove", CID])

    assert result.exit_code == 0
    assert "was not pinned" in result.stdout


def test_verify_plate_lists_records(workdir):
    _upload(workdir)

    with patch("verity.content_store.requests.get") as mock_get:
        result = runner.invoke(app, ["verify", "abc123"])

    assert result.exit_code == 0
    assert "Records for ABC123" in result.stdout
    mock_get.assert_not_called()
