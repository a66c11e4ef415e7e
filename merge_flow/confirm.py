"""
Operator confirmation for state-mutating actions.

Every mutation (git change, package manager run, merge call) is described
to the operator together with the command that reproduces it, and only
runs after an explicit yes.
"""

import logging
from typing import Callable, Optional

from .errors import UserAbortError

logger = logging.getLogger(__name__)

BANNER = "=" * 80


class Confirmer:
    """Base confirmation capability.

    Subclasses implement :meth:`confirm`; :meth:`require` turns a refusal
    into a ``UserAbortError``.
    """

    def confirm(self, description: str, command: str = "") -> bool:
        raise NotImplementedError

    def require(self, description: str, command: str = "") -> None:
        """Ask for confirmation and abort the run if it is declined."""
        if not self.confirm(description, command):
            logger.info("Operator declined: %s", description)
            raise UserAbortError(f"Operation aborted by user: {description}")


class TerminalConfirmer(Confirmer):
    """Asks on the terminal; any answer starting with 'y' is a yes."""

    def __init__(self, input_func: Optional[Callable[[str], str]] = None):
        self._input = input_func or input

    def confirm(self, description: str, command: str = "") -> bool:
        print(f"\n{BANNER}")
        print(f"ACTION: {description}")
        if command:
            print(f"REPRODUCIBLE COMMAND/API CALL:\n{command}")
        print(BANNER)
        try:
            answer = self._input("Do you want to continue? (y/n): ")
        except EOFError:
            # stdin closed: nobody is there to say yes
            answer = ""
        logger.debug("Operator answer: %r", answer)
        return answer.strip().lower().startswith("y")

