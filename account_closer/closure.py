"""
Closure action: sets a directory account's status to closed.

The production implementation shells out to zmprov:

    zmprov ma <email> zimbraAccountStatus closed

Failures are returned as ClosureResult(success=False, ...) rather than
raised, so the driver can report them and move on to the next account.
In simulate mode nothing is executed; the command that would have run is
written to the diagnostic log.
"""
import logging
import os
import shlex
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from account_closer.config_schema import DEFAULT_CLOSE_COMMAND, DEFAULT_PATH_PREPEND
from account_closer.error_handling import ClosureError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClosureResult:
    """Outcome of one closure attempt."""
    success: bool
    detail: str = ""
    simulated: bool = False


class ClosureAction(ABC):
    """Abstract base class for anything that can close an account."""

    @abstractmethod
    def close(self, email: str, simulate: bool = False) -> ClosureResult:
        """
        Close one account, or only describe what would be done when simulate is True.

        Returns:
            ClosureResult; failures are reported in the result, not raised
        """
        pass


class ZmprovClosureAction(ClosureAction):
    """
    Runs the configured closure command for each account.

    Args:
        command: Command template; every '{email}' is replaced by the address
        path_prepend: Directories put in front of PATH for the child process
        runner: subprocess.run compatible callable (default: subprocess.run)
    """

    def __init__(
        self,
        command: Optional[Sequence[str]] = None,
        path_prepend: Optional[Sequence[str]] = None,
        runner=None,
    ):
        self.command = list(command or DEFAULT_CLOSE_COMMAND)
        self.path_prepend = list(DEFAULT_PATH_PREPEND if path_prepend is None else path_prepend)
        self._runner = runner or subprocess.run

    def build_command(self, email: str) -> List[str]:
        """
        Substitute the address into the command template.

        Raises:
            ClosureError: If the address is empty or contains whitespace
        """
        if not email or any(ch.isspace() for ch in email):
            raise ClosureError(f"Refusing to build closure command for address {email!r}")
        return [part.replace('{email}', email) for part in self.command]

    def _environment(self) -> Dict[str, str]:
        env = dict(os.environ)
        if self.path_prepend:
            current = env.get('PATH', '')
            env['PATH'] = os.pathsep.join(self.path_prepend + ([current] if current else []))
        return env

    def close(self, email: str, simulate: bool = False) -> ClosureResult:
        """
        Close one account, or only describe what would be done.

        Returns:
            ClosureResult; success is False for a non-zero exit status or
            when the command cannot be started

        Raises:
            ClosureError: If no command can be built for the address
        """
        argv = self.build_command(email)
        printable = shlex.join(argv)

        if simulate:
            logger.info(f"[DRY-RUN] {printable}")
            return ClosureResult(success=True, detail=printable, simulated=True)

        logger.debug(f"Running: {printable}")
        try:
            completed = self._runner(
                argv,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                env=self._environment(),
                check=False,
            )
        except OSError as e:
            return ClosureResult(success=False, detail=f"cannot run {argv[0]}: {e}")

        if completed.returncode != 0:
            output = (completed.stderr or completed.stdout or "").strip()
            return ClosureResult(
                success=False,
                detail=f"exit status {completed.returncode}" + (f": {output}" if output else ""),
            )

        return ClosureResult(success=True, detail=printable)
