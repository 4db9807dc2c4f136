"""Tests for the roble command line interface."""

import json

import pytest
from click.testing import CliRunner

import roble_client.cli as cli_module
from roble_client.api_clients import RobleDatabase
from roble_client.cli import cli
from roble_client.config import ConfigManager
from tests.infrastructure.roble_test_server import TEST_EMAIL, TEST_PASSWORD

CLEAN_ENV = {
    "ROBLE_AUTH_URL": None,
    "ROBLE_DATA_URL": None,
    "ROBLE_ACCESS_TOKEN": None,
    "ROBLE_REFRESH_TOKEN": None,
}


@pytest.fixture
def runner():
    return CliRunner(env=CLEAN_ENV)


@pytest.fixture
def config_file(tmp_path, roble_server):
    path = tmp_path / "config.json"
    ConfigManager(path).save(roble_server.config())
    return path


@pytest.fixture
def served_cli(monkeypatch, roble_server):
    """Route every CLI-built client to the in-memory backend."""

    class ServedDatabase(RobleDatabase):
        def __init__(self, config):
            super().__init__(config, session=roble_server.create_session())
            self._owns_session = True

    monkeypatch.setattr(cli_module, "RobleDatabase", ServedDatabase)
    return roble_server


class TestInit:
    def test_saves_urls(self, runner, tmp_path):
        path = tmp_path / "nested" / "config.json"

        result = runner.invoke(
            cli,
            [
                "--config", str(path),
                "--auth-url", "https://api.example.com/auth/db1/",
                "--data-url", "https://api.example.com/database/db1",
                "init",
            ],
        )

        assert result.exit_code == 0, result.output
        assert "Configuration saved" in result.output
        saved = json.loads(path.read_text())
        assert saved["auth_url"] == "https://api.example.com/auth/db1"
        assert saved["data_url"] == "https://api.example.com/database/db1"

    def test_requires_both_urls(self, runner, tmp_path):
        result = runner.invoke(
            cli,
            ["--config", str(tmp_path / "c.json"), "--auth-url", "https://a.example.com", "init"],
        )

        assert result.exit_code == 1
        assert "--data-url" in result.output

    def test_rejects_relative_url(self, runner, tmp_path):
        path = tmp_path / "c.json"

        result = runner.invoke(
            cli,
            ["--config", str(path), "--auth-url", "auth/db1", "--data-url", "https://d.example.com", "init"],
        )

        assert result.exit_code == 1
        assert "❌" in result.output
        assert not path.exists()


class TestErrorReporting:
    def test_missing_config_file(self, runner, tmp_path):
        result = runner.invoke(cli, ["--config", str(tmp_path / "none.json"), "read", "tasks"])

        assert result.exit_code == 1
        assert "Configuration file not found" in result.output

    def test_unreachable_server(self, runner, unused_local_url):
        result = runner.invoke(
            cli,
            [
                "--auth-url", f"{unused_local_url}/auth",
                "--data-url", f"{unused_local_url}/data",
                "read", "tasks",
            ],
        )

        assert result.exit_code == 1
        assert "❌ Read failed" in result.output
        assert "Troubleshooting" in result.output

    def test_bad_where_clause(self, runner, config_file):
        result = runner.invoke(cli, ["--config", str(config_file), "read", "tasks", "--where", "done"])

        assert result.exit_code == 2
        assert "key=value" in result.output

    def test_bad_column_spec(self, runner, config_file):
        result = runner.invoke(
            cli, ["--config", str(config_file), "create-table", "tasks", "--column", ":text"]
        )

        assert result.exit_code == 2
        assert "Invalid column spec" in result.output

    def test_record_must_be_json_object(self, runner, config_file):
        result = runner.invoke(cli, ["--config", str(config_file), "insert", "tasks", "[1, 2]"])

        assert result.exit_code == 2
        assert "JSON object" in result.output

    def test_http_error(self, runner, config_file, served_cli):
        result = runner.invoke(cli, ["--config", str(config_file), "read", "tasks"])

        assert result.exit_code == 1
        assert "HTTP 401: Unauthorized" in result.output


class TestCommandsAgainstBackend:
    def test_login_prints_tokens(self, runner, config_file, served_cli):
        result = runner.invoke(
            cli,
            ["--config", str(config_file), "login", "--email", TEST_EMAIL, "--password", TEST_PASSWORD],
        )

        assert result.exit_code == 0, result.output
        assert "accessToken" in result.output
        assert "refreshToken" in result.output

    def test_read_with_expired_token_refreshes(self, runner, config_file, served_cli):
        served_cli.add_table("tasks", [{"_id": "t1", "title": "write tests"}])
        access, refresh = served_cli.issue_tokens(TEST_EMAIL)
        served_cli.expire_access_tokens()

        result = runner.invoke(
            cli,
            ["--config", str(config_file), "read", "tasks", "--json"],
            env={**CLEAN_ENV, "ROBLE_ACCESS_TOKEN": access, "ROBLE_REFRESH_TOKEN": refresh},
        )

        assert result.exit_code == 0, result.output
        assert "write tests" in result.output
        assert len(served_cli.requests_to("refresh-token")) == 1

    def test_insert_and_read(self, runner, config_file, served_cli):
        served_cli.add_table("tasks")
        access, refresh = served_cli.issue_tokens(TEST_EMAIL)
        tokens = ["--access-token", access, "--refresh-token", refresh]

        inserted = runner.invoke(
            cli, ["--config", str(config_file), *tokens, "insert", "tasks", '{"title": "ship"}']
        )
        listed = runner.invoke(cli, ["--config", str(config_file), *tokens, "read", "tasks"])

        assert inserted.exit_code == 0, inserted.output
        assert "id1" in inserted.output
        assert listed.exit_code == 0, listed.output
        assert "ship" in listed.output

    def test_demo_round_trip(self, runner, config_file, served_cli):
        result = runner.invoke(cli, ["--config", str(config_file), "demo"])

        assert result.exit_code == 0, result.output
        assert "Logged out" in result.output
        assert served_cli.tables["users_test"].rows == []
        assert [r.endpoint for r in served_cli.requests][-1] == "logout"
