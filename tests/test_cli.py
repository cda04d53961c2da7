"""Tests for the command-line interface."""

from __future__ import annotations

import json

from click.testing import CliRunner

from omnitool.cli import main

SECRET = "JBSWY3DPEHPK3PXP"


def _invoke(data_file, *args):
    return CliRunner().invoke(main, ["--data-file", str(data_file), *args])


def _stored(data_file):
    return json.loads(data_file.read_text())["totpAccounts"]


def test_add_and_list_codes(tmp_path):
    data = tmp_path / "data.json"
    result = _invoke(data, "add", "GitHub", "jbsw y3dp ehpk 3pxp", "--account", "me@example.com")
    assert result.exit_code == 0, result.output
    assert "Added" in result.output

    stored = _stored(data)
    assert stored[0]["issuer"] == "GitHub"
    assert stored[0]["secret"] == "jbswy3dpehpk3pxp"
    assert stored[0]["order"] == 0
    assert stored[0]["algorithm"] == "SHA1"

    result = _invoke(data, "codes")
    assert result.exit_code == 0, result.output
    assert "GitHub" in result.output


def test_codes_empty(tmp_path):
    result = _invoke(tmp_path / "data.json", "codes")
    assert result.exit_code == 0
    assert "No accounts" in result.output


def test_add_rejects_bad_secret(tmp_path):
    data = tmp_path / "data.json"
    result = _invoke(data, "add", "GitHub", "not-base32!")
    assert result.exit_code == 1
    assert "Invalid Base32 character" in result.output
    assert _stored(data) == []


def test_add_rejects_zero_digits(tmp_path):
    result = _invoke(tmp_path / "data.json", "add", "GitHub", SECRET, "--digits", "0")
    assert result.exit_code == 1
    assert "digits" in result.output


def test_add_uri(tmp_path):
    data = tmp_path / "data.json"
    uri = f"otpauth://totp/Example:alice@example.com?secret={SECRET}&issuer=Example&period=60"
    result = _invoke(data, "add-uri", uri)
    assert result.exit_code == 0, result.output
    stored = _stored(data)
    assert stored[0]["issuer"] == "Example"
    assert stored[0]["account"] == "alice@example.com"
    assert stored[0]["period"] == 60


def test_add_uri_invalid(tmp_path):
    result = _invoke(tmp_path / "data.json", "add-uri", "https://example.com")
    assert result.exit_code == 1
    assert "Invalid OTP Auth URI" in result.output


def test_update_and_delete(tmp_path):
    data = tmp_path / "data.json"
    _invoke(data, "add", "GitHub", SECRET)
    account_id = _stored(data)[0]["id"]

    result = _invoke(data, "update", account_id, "--issuer", "GitLab", "--digits", "8")
    assert result.exit_code == 0, result.output
    assert _stored(data)[0]["issuer"] == "GitLab"
    assert _stored(data)[0]["digits"] == 8

    assert _invoke(data, "update", "missing-id", "--issuer", "X").exit_code == 0
    assert _invoke(data, "delete", "missing-id").exit_code == 0
    assert len(_stored(data)) == 1

    assert _invoke(data, "delete", account_id).exit_code == 0
    assert _stored(data) == []


def test_export_import_roundtrip(tmp_path):
    src = tmp_path / "src.json"
    dst = tmp_path / "dst.json"
    backup = tmp_path / "backup.json"
    _invoke(src, "add", "GitHub", SECRET)
    _invoke(src, "add", "AWS", SECRET, "--digits", "8")

    result = _invoke(src, "export", str(backup))
    assert result.exit_code == 0, result.output
    payload = json.loads(backup.read_text())
    assert payload["version"] == "1.0"
    assert len(payload["accounts"]) == 2

    result = _invoke(dst, "import", str(backup))
    assert result.exit_code == 0, result.output
    assert "Imported 2" in result.output
    assert _stored(dst) == _stored(src)

    result = _invoke(dst, "import", str(backup))
    assert "Imported 0" in result.output
    assert "skipped 2" in result.output


def test_import_invalid_payload(tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"accounts": []}))
    result = _invoke(tmp_path / "data.json", "import", str(bad))
    assert result.exit_code == 1
    assert "Invalid data format" in result.output


def test_status(tmp_path):
    result = _invoke(tmp_path / "data.json", "status")
    assert result.exit_code == 0
    assert "OmniTool Status" in result.output


def test_codes_search(tmp_path):
    data = tmp_path / "data.json"
    _invoke(data, "add", "GitHub", SECRET)
    _invoke(data, "add", "AWS", SECRET, "--account", "ops")

    result = _invoke(data, "codes", "--search", "github")
    assert result.exit_code == 0, result.output
    assert "GitHub" in result.output
    assert "AWS" not in result.output

    result = _invoke(data, "codes", "--search", "OPS")
    assert "AWS" in result.output
    assert "GitHub" not in result.output

    result = _invoke(data, "codes", "--search", "zzz")
    assert "No matching accounts" in result.output
