from __future__ import annotations

from pathlib import Path

import pytest

import main
from main import _parse_args
from userbook.database import Database
from userbook.models import UserInput
from userbook.service import UserService


def test_default_command_invokes_serve() -> None:
    args = _parse_args([])
    assert args.command == "serve"
    assert args.config is None


def test_default_command_accepts_options_without_subcommand() -> None:
    args = _parse_args(["--host", "127.0.0.1", "--port", "8080"])
    assert args.command == "serve"
    assert args.host == "127.0.0.1"
    assert args.port == 8080


def test_admin_subcommand_still_available() -> None:
    args = _parse_args(["admin"])
    assert args.command == "admin"


def test_config_option_is_accepted_by_every_command() -> None:
    assert _parse_args(["init-db", "--config", "a.yaml"]).config == "a.yaml"
    assert _parse_args(["--config", "b.yaml"]).config == "b.yaml"
    assert _parse_args(["admin", "--config", "c.yaml"]).config == "c.yaml"


def test_init_db_creates_database_from_config(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    config_file = tmp_path / "userbook.yaml"
    config_file.write_text("database_path: store/users.sqlite3\n", encoding="utf-8")

    exit_code = main.main(["init-db", "--config", str(config_file)])

    assert exit_code == 0
    assert (tmp_path / "store" / "users.sqlite3").exists()
    assert "Database initialisation complete." in capsys.readouterr().out


@pytest.fixture()
def service(tmp_path: Path) -> UserService:
    database = Database(tmp_path / "admin.sqlite3")
    database.initialize()
    return UserService(database)


def _feed_input(monkeypatch: pytest.MonkeyPatch, *answers: str) -> None:
    replies = iter(answers)
    monkeypatch.setattr("builtins.input", lambda _prompt="": next(replies))


def test_admin_add_and_list_users(
    service: UserService,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    _feed_input(monkeypatch, "Ann", "ann@x.com")
    main._add_user(service)
    assert "Created user #1: Ann <ann@x.com>" in capsys.readouterr().out

    main._list_users(service)
    listing = capsys.readouterr().out
    assert "1 user(s) found:" in listing
    assert "ann@x.com" in listing


def test_admin_add_reports_duplicate_email(
    service: UserService,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    service.create_user(UserInput(name="Ann", email="ann@x.com"))
    _feed_input(monkeypatch, "Other Ann", "ann@x.com")

    main._add_user(service)

    assert "ann@x.com is already registered" in capsys.readouterr().out
    assert len(service.list_users()) == 1


def test_admin_delete_user(
    service: UserService,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    user = service.create_user(UserInput(name="Ann", email="ann@x.com"))

    _feed_input(monkeypatch, str(user.id))
    main._delete_user(service)
    assert f"Deleted user #{user.id}." in capsys.readouterr().out

    _feed_input(monkeypatch, str(user.id))
    main._delete_user(service)
    assert f"User #{user.id} not found." in capsys.readouterr().out

    _feed_input(monkeypatch, "abc")
    main._delete_user(service)
    assert "'abc' is not a valid user ID." in capsys.readouterr().out


def test_admin_console_menu_exits(
    service: UserService,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    _feed_input(monkeypatch, "1", "9", "4")

    main._run_admin_cli(service)

    output = capsys.readouterr().out
    assert "No users are currently registered." in output
    assert "Invalid selection" in output
    assert "Goodbye!" in output


def test_admin_console_survives_storage_errors(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    uninitialised = UserService(Database(tmp_path / "missing-schema.sqlite3"))
    _feed_input(monkeypatch, "1", "3", "7", "4")

    main._run_admin_cli(uninitialised)

    output = capsys.readouterr().out
    assert output.count("Storage error: no such table: users") == 2
    assert "Goodbye!" in output
