"""Tests for the CLI."""

import json

import pytest
from click.testing import CliRunner

from regcred.cli import main

from authdata import ABNORMAL, EXAMPLE, IDENTITY_TOKEN, LEGACY, write_json


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep the real home directory and auth files out of reach."""
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.delenv("XDG_RUNTIME_DIR", raising=False)
    monkeypatch.delenv("REGISTRY_AUTH_FILE", raising=False)


@pytest.fixture
def auth_file(tmp_path):
    return tmp_path / "auth.json"


def _invoke(auth_file, *args, **kwargs):
    runner = CliRunner()
    return runner.invoke(main, ["--authfile", str(auth_file), *args], **kwargs)


class TestCliBasics:
    """Test basic CLI behavior."""

    def test_help(self):
        runner = CliRunner()
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "regcred" in result.output

    def test_path_uses_authfile(self, auth_file):
        result = _invoke(auth_file, "path")
        assert result.exit_code == 0
        assert result.output.strip() == f"{auth_file} (auths)"

    def test_path_from_environment(self, auth_file):
        runner = CliRunner()
        result = runner.invoke(main, ["path"], env={"REGISTRY_AUTH_FILE": str(auth_file)})
        assert result.exit_code == 0
        assert str(auth_file) in result.output

    def test_path_legacy(self, tmp_path):
        legacy = tmp_path / "legacy.json"
        runner = CliRunner()
        result = runner.invoke(main, ["--legacy-authfile", str(legacy), "path"])
        assert result.exit_code == 0
        assert "(legacy)" in result.output


class TestGet:
    """Test ``regcred get``."""

    def test_username(self, auth_file):
        write_json(auth_file, EXAMPLE)
        result = _invoke(auth_file, "get", "https://example.org/v2/")
        assert result.exit_code == 0
        assert result.output.strip() == "example"

    def test_json(self, auth_file):
        write_json(auth_file, IDENTITY_TOKEN)
        result = _invoke(auth_file, "get", "example.org", "--json")
        assert result.exit_code == 0
        payload = json.loads(result.output)
        assert payload["identity_token"] == "some very long identity token"
        assert payload["source"] == str(auth_file)
        assert payload["legacy_format"] is False

    def test_not_logged_in(self, auth_file):
        write_json(auth_file, EXAMPLE)
        result = _invoke(auth_file, "get", "registry.example.org")
        assert result.exit_code == 1
        assert "not logged into registry.example.org" in result.output

    def test_auth_override(self, auth_file):
        write_json(auth_file, EXAMPLE)
        result = _invoke(
            auth_file,
            "get",
            "example.org",
            "--auth",
            "quay.io=other:pass",
            "--auth",
            "example.org=override_user:override_pass",
        )
        assert result.exit_code == 0
        assert result.output.strip() == "override_user"

    def test_auth_override_bad_format(self, auth_file):
        result = _invoke(auth_file, "get", "example.org", "--auth", "nonsense")
        assert result.exit_code != 0
        assert "registry=user:pass" in result.output

    def test_malformed_file(self, auth_file):
        auth_file.write_text("Json rocks! Unless it doesn't.", encoding="utf-8")
        result = _invoke(auth_file, "get", "example.org")
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_legacy_authfile(self, tmp_path):
        legacy = write_json(tmp_path / "legacy.json", LEGACY)
        runner = CliRunner()
        result = runner.invoke(
            main, ["--legacy-authfile", str(legacy), "get", "https://docker.io/v1"]
        )
        assert result.exit_code == 0
        assert result.output.strip() == "docker"


class TestLoginLogout:
    """Test ``regcred login`` and ``regcred logout``."""

    def test_login_with_password(self, auth_file):
        result = _invoke(auth_file, "login", "quay.io", "-u", "me", "-p", "secret")
        assert result.exit_code == 0
        assert "Login Succeeded!" in result.output

        result = _invoke(auth_file, "get", "quay.io")
        assert result.output.strip() == "me"

    def test_login_password_stdin(self, auth_file):
        result = _invoke(
            auth_file, "login", "quay.io", "-u", "me", "--password-stdin", input="secret\n"
        )
        assert result.exit_code == 0
        stored = json.loads(auth_file.read_text(encoding="utf-8"))
        assert stored["auths"]["quay.io"] == {"auth": "bWU6c2VjcmV0"}  # me:secret

    def test_login_prompts_for_password(self, auth_file):
        result = _invoke(auth_file, "login", "quay.io", "-u", "me", input="secret\n")
        assert result.exit_code == 0
        assert auth_file.exists()

    def test_login_rejects_both_password_sources(self, auth_file):
        result = _invoke(
            auth_file, "login", "quay.io", "-u", "me", "-p", "x", "--password-stdin", input="y"
        )
        assert result.exit_code == 2
        assert not auth_file.exists()

    def test_login_legacy_file_refused(self, tmp_path):
        runner = CliRunner()
        result = runner.invoke(
            main,
            [
                "--legacy-authfile",
                str(tmp_path / "legacy.json"),
                "login",
                "quay.io",
                "-u",
                "me",
                "-p",
                "secret",
            ],
        )
        assert result.exit_code == 1
        assert "legacy format" in result.output

    def test_logout(self, auth_file):
        write_json(auth_file, ABNORMAL)
        result = _invoke(auth_file, "logout", "https://127.0.0.1:5000")
        assert result.exit_code == 0
        stored = json.loads(auth_file.read_text(encoding="utf-8"))["auths"]
        assert "https://127.0.0.1:5000" not in stored
        assert "https://index.docker.io/v1/" in stored

    def test_logout_normalized(self, auth_file):
        _invoke(auth_file, "login", "docker.io", "-u", "me", "-p", "secret")
        result = _invoke(auth_file, "logout", "index.docker.io")
        assert result.exit_code == 0
        assert json.loads(auth_file.read_text(encoding="utf-8"))["auths"] == {}

    def test_logout_not_logged_in(self, auth_file):
        write_json(auth_file, EXAMPLE)
        result = _invoke(auth_file, "logout", "quay.io")
        assert result.exit_code == 1
        assert "Not logged into quay.io" in result.output

    def test_logout_all(self, auth_file):
        write_json(auth_file, ABNORMAL)
        result = _invoke(auth_file, "logout", "--all")
        assert result.exit_code == 0
        assert json.loads(auth_file.read_text(encoding="utf-8"))["auths"] == {}

    def test_logout_needs_target(self, auth_file):
        result = _invoke(auth_file, "logout")
        assert result.exit_code == 2


class TestList:
    """Test ``regcred list``."""

    def test_list(self, auth_file):
        write_json(auth_file, EXAMPLE)
        result = _invoke(auth_file, "list")
        assert result.exit_code == 0
        assert "example.org" in result.output
        assert "example" in result.output

    def test_list_json(self, auth_file):
        write_json(auth_file, ABNORMAL)
        result = _invoke(auth_file, "list", "--json")
        assert result.exit_code == 0
        assert json.loads(result.output) == {
            "http://localhost:5000/v2": "local",
            "https://127.0.0.1:5000": "127.0",
            "https://index.docker.io/v1/": "index",
        }

    def test_list_empty(self, auth_file):
        result = _invoke(auth_file, "list")
        assert result.exit_code == 0
        assert "No credentials stored." in result.output
