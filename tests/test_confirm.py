"""!
@brief Tests for the phase confirmation gate.
"""

from __future__ import annotations

import io
import pathlib
import sys

import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from sensor_janitor.confirm import Confirmer  # noqa: E402


@pytest.mark.parametrize(
    "answer, expected",
    [
        ("yes", True),
        ("  yes\n", True),
        ("y", False),
        ("YES", False),
        ("", False),
        ("no", False),
        ("yes please", False),
    ],
)
def test_only_exact_token_proceeds(answer: str, expected: bool) -> None:
    confirmer = Confirmer(input_func=lambda prompt: answer)

    assert confirmer("services", services="AATPSensor") is expected


def test_prompt_includes_phase_details() -> None:
    prompts: list[str] = []

    def fake_input(prompt: str) -> str:
        prompts.append(prompt)
        return "yes"

    confirmer = Confirmer(input_func=fake_input)
    confirmer("install-folder", path=r"C:\Program Files\Sensor")
    confirmer("registry")

    assert r"C:\Program Files\Sensor" in prompts[0]
    assert "folders for ??" in prompts[1]
    assert confirmer.asked == ["install-folder", "registry"]


def test_assume_yes_never_reads_input() -> None:
    def fail(prompt: str) -> str:
        raise AssertionError("input should not be requested")

    confirmer = Confirmer(assume_yes=True, input_func=fail)

    assert confirmer("services")
    assert confirmer.asked == ["services"]


@pytest.mark.parametrize(
    "piped, expected",
    [
        ("yes\n", True),
        ("no\n", False),
        ("", False),
    ],
)
def test_piped_stdin_is_read_without_a_terminal(monkeypatch, capsys, piped: str, expected: bool) -> None:
    monkeypatch.setattr(sys, "stdin", io.StringIO(piped))

    assert Confirmer()("services", services="AATPSensor") is expected
    assert "Stop and delete services AATPSensor?" in capsys.readouterr().out


def test_eof_declines() -> None:
    def closed(prompt: str) -> str:
        raise EOFError

    assert Confirmer(input_func=closed)("registry", guids="{G}") is False
