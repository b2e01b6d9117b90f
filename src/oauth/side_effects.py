"""
Trailing side effects after credentials change.

Backup sync and gateway restart are owned by external tooling; the broker
only invokes them as shell hooks. They run after the primary operation has
committed, and their failures are logged, never returned to the caller.
"""

import logging
import shlex
import subprocess
from typing import Callable, Optional

from .config import DEFAULT_HOOK_TIMEOUT
from .exceptions import SideEffectError

logger = logging.getLogger(__name__)


class CommandHook:
    """
    Shell command run as a side effect.

    A hook without a command is disabled and does nothing.
    """

    def __init__(self, name: str, command: Optional[str], timeout: int = DEFAULT_HOOK_TIMEOUT):
        """
        Initialize command hook.

        Args:
            name: Hook name used in logs
            command: Command line, split with shell quoting rules
            timeout: Seconds allowed for the command
        """
        self.name = name
        self.command = command
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.command)

    def __call__(self) -> None:
        """
        Run the command.

        Raises:
            SideEffectError: If the command fails, times out or cannot start
        """
        if not self.enabled:
            logger.debug(f"{self.name} hook not configured, skipping")
            return

        logger.info(f"Running {self.name} hook")
        try:
            result = subprocess.run(
                shlex.split(self.command),
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=True,
            )
        except subprocess.TimeoutExpired as e:
            raise SideEffectError(f"{self.name} hook timed out after {self.timeout}s") from e
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or "").strip()[:200]
            raise SideEffectError(
                f"{self.name} hook exited with status {e.returncode}: {stderr}"
            ) from e
        except OSError as e:
            raise SideEffectError(f"{self.name} hook could not be started: {e}") from e

        logger.info(f"{self.name} hook completed")
        if result.stdout:
            logger.debug(f"{self.name} output: {result.stdout.strip()[:500]}")


def run_guarded(name: str, effect: Callable[[], None], context: str = "") -> None:
    """
    Run a side effect, logging instead of raising on failure.

    Args:
        name: Effect name used in logs
        effect: Zero-argument callable
        context: Operation that triggered the effect
    """
    suffix = f" after {context}" if context else ""
    try:
        effect()
    except Exception as e:
        logger.error(f"{name} failed{suffix}: {e}", exc_info=not isinstance(e, SideEffectError))
