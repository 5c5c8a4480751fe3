"""!
@brief Confirmation gate for destructive phases.
@details Each cleanup phase asks before it mutates anything. Only the exact
token ``yes`` proceeds; any other answer (including an empty line or ``y``)
declines. Answers are read from stdin whether or not it is a terminal, so a
piped ``yes`` per phase works the same as typing it. A closed stdin declines.
The gate can also be satisfied up front with ``--yes``.
"""

from __future__ import annotations

from typing import Callable

ACCEPT_TOKEN = "yes"

PHASE_PROMPTS = {
    "services": "Stop and delete services {services}? Type 'yes' to continue:",
    "registry": "Delete registry entries and package cache folders for {guids}? Type 'yes' to continue:",
    "install-folder": "Delete the install folder {path}? Type 'yes' to continue:",
}


class _Details(dict):
    def __missing__(self, key: str) -> str:
        return "?"


class Confirmer:
    """!
    @brief Answer phase confirmations from stdin or from a preset decision.
    @param assume_yes Accept every prompt without asking.
    @param input_func Input function override, defaults to :func:`input`.
    """

    def __init__(
        self,
        *,
        assume_yes: bool = False,
        input_func: Callable[[str], str] | None = None,
    ) -> None:
        self.assume_yes = assume_yes
        self._input = input_func or input
        self.asked: list[str] = []

    def __call__(self, phase: str, **details: object) -> bool:
        """!
        @brief Ask whether ``phase`` may proceed.
        @param phase Key into :data:`PHASE_PROMPTS`.
        @param details Values interpolated into the prompt text.
        @returns ``True`` only for an affirmative answer.
        """

        self.asked.append(phase)
        if self.assume_yes:
            return True

        template = PHASE_PROMPTS.get(phase, f"Proceed with {phase}? Type 'yes' to continue:")
        try:
            response = self._input(template.format_map(_Details(details)) + " ")
        except EOFError:
            return False
        return response.strip() == ACCEPT_TOKEN


__all__ = ["ACCEPT_TOKEN", "Confirmer", "PHASE_PROMPTS"]
