"""!
@brief Tests for the ``password-expiry`` command-line entry point.
"""

from __future__ import annotations

import datetime as _dt
import json
import pathlib
import sys

import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from sensor_janitor import identity, password_cli  # noqa: E402

RECENT = _dt.datetime.now(_dt.timezone.utc) - _dt.timedelta(days=10)


class _Client:
    def __init__(self, outcome) -> None:
        self.outcome = outcome
        self.usernames: list[str] = []

    def find_user(self, username: str) -> identity.DirectoryUser:
        self.usernames.append(username)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


def _user(**overrides) -> identity.DirectoryUser:
    values = dict(
        user_principal_name="alice@contoso.com",
        display_name="Alice Example",
        enabled=True,
        synced_from_on_prem=True,
        last_password_change=RECENT,
        password_never_expires=False,
        matched_by="account name",
    )
    values.update(overrides)
    return identity.DirectoryUser(**values)


def test_json_report(capsys) -> None:
    client = _Client(_user())

    code = password_cli.main(["alice", "--json", "--max-age-days", "30"], client=client)

    assert code == password_cli.EXIT_OK
    assert client.usernames == ["alice"]
    payload = json.loads(capsys.readouterr().out)
    assert payload["matched_by"] == "account name"
    assert payload["policy_age_days"] == 30
    assert payload["status"] == "normal"
    assert payload["days_remaining"] in (19, 20)


def test_text_report_without_color(capsys) -> None:
    code = password_cli.main(["alice", "--no-color"], client=_Client(_user(password_never_expires=True)))

    out = capsys.readouterr().out
    assert code == password_cli.EXIT_OK
    assert "Password never expires" in out
    assert "\x1b[" not in out


def test_unknown_user_exits_with_not_found(capsys) -> None:
    client = _Client(identity.UserNotFoundError("No directory user matches 'ghost'"))

    assert password_cli.main(["ghost"], client=client) == password_cli.EXIT_NOT_FOUND
    assert "ghost" in capsys.readouterr().err


def test_directory_failure_exits_with_failure() -> None:
    client = _Client(identity.DirectoryError("HTTP 401"))

    assert password_cli.main(["alice"], client=client) == password_cli.EXIT_FAILURE


def test_missing_credentials_fail_without_network(monkeypatch) -> None:
    monkeypatch.delenv("AZURE_TENANT_ID", raising=False)
    monkeypatch.delenv("AZURE_CLIENT_ID", raising=False)
    monkeypatch.delenv("AZURE_CLIENT_SECRET", raising=False)

    assert password_cli.main(["alice"]) == password_cli.EXIT_FAILURE


def test_max_age_defaults_from_environment() -> None:
    parser = password_cli.build_arg_parser({password_cli.MAX_AGE_ENV: "42"})
    assert parser.parse_args(["alice"]).max_age_days == 42

    parser = password_cli.build_arg_parser({password_cli.MAX_AGE_ENV: "soon"})
    assert parser.parse_args(["alice"]).max_age_days == 90


def test_non_positive_max_age_is_rejected() -> None:
    with pytest.raises(SystemExit):
        password_cli.build_arg_parser({}).parse_args(["alice", "--max-age-days", "0"])


def test_logdir_writes_audit_files(tmp_path) -> None:
    code = password_cli.main(["alice", "--json", "--logdir", str(tmp_path)], client=_Client(_user()))

    assert code == password_cli.EXIT_OK
    events = list(tmp_path.glob("sensor-janitor-*.jsonl"))
    assert len(events) == 1
    entries = [json.loads(line) for line in events[0].read_text(encoding="utf-8").splitlines() if line.strip()]
    assert entries[-1]["event"] == "password_expiry"
