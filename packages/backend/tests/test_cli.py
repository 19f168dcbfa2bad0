"""gabriel CLI tests.

Learn: Click's CliRunner invokes commands in-process. Database commands
build their own engine from settings, so DATABASE_URL is pointed at a
throwaway SQLite file for the duration of the test.
"""

import pytest
from click.testing import CliRunner

from littlegabriel.auth.password import verify_password
from littlegabriel.cli.main import main
from littlegabriel.config import settings


@pytest.fixture()
def runner():
    return CliRunner()


@pytest.fixture()
def cli_db(tmp_path, monkeypatch, runner):
    monkeypatch.setattr(settings, "database_url", f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}")
    result = runner.invoke(main, ["db", "init"])
    assert result.exit_code == 0, result.output


def test_version(runner):
    result = runner.invoke(main, ["--version"])
    assert result.exit_code == 0
    assert "gabriel" in result.output


def test_hash_password(runner):
    result = runner.invoke(main, ["hash-password", "shalom"])
    assert result.exit_code == 0
    assert verify_password("shalom", result.output.strip())


def test_check_env_reports_missing(runner, monkeypatch):
    monkeypatch.setattr(settings, "openai_api_key", "sk-do-not-print-me")
    result = runner.invoke(main, ["check", "env"])
    assert result.exit_code == 1
    assert "sk-do-not-print-me" not in result.output
    assert "OPENAI_API_KEY" in result.output
    assert "Missing required: BIBLE_API_KEY" in result.output


def test_check_db(runner, cli_db):
    result = runner.invoke(main, ["check", "db"])
    assert result.exit_code == 0
    assert "database" in result.output


def test_check_bible_without_key(runner):
    result = runner.invoke(main, ["check", "bible"])
    assert result.exit_code == 1
    assert "Bible API key is not configured" in result.output


def test_users_create_promote_list(runner, cli_db):
    result = runner.invoke(
        main,
        ["users", "create", "Deborah@Example.com", "--name", "Deborah", "--password", "judge-of-israel"],
    )
    assert result.exit_code == 0, result.output
    assert "Created deborah@example.com (user)" in result.output

    result = runner.invoke(
        main,
        ["users", "create", "deborah@example.com", "--name", "Again", "--password", "whatever1"],
    )
    assert result.exit_code == 1
    assert "already exists" in result.output

    result = runner.invoke(main, ["users", "promote", "deborah@example.com"])
    assert result.exit_code == 0
    assert "is now an admin" in result.output

    result = runner.invoke(main, ["users", "list"])
    assert result.exit_code == 0
    assert "deborah@example.com" in result.output
    assert "admin" in result.output


def test_users_promote_unknown(runner, cli_db):
    result = runner.invoke(main, ["users", "promote", "ghost@example.com"])
    assert result.exit_code == 1
    assert "No user found" in result.output
