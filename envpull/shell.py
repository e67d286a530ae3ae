"""
Running external command line tools (git, gcloud).

Everything that shells out goes through a CommandRunner so it can be
replaced with a fake in tests.
"""

import logging
import subprocess
from typing import List, Tuple

logger = logging.getLogger(__name__)

# Exit status reported when the executable itself cannot be found
COMMAND_NOT_FOUND = 127


class CommandRunner:
    """Synchronous subprocess runner."""

    def run_and_capture(self, args: List[str]) -> Tuple[str, int]:
        """
        Run a command and capture its standard output.

        Args:
            args: Program and arguments

        Returns:
            Tuple of (stdout, exit status)
        """
        logger.debug("Running %s", " ".join(args))
        try:
            completed = subprocess.run(
                args,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                stdin=subprocess.DEVNULL,
                universal_newlines=True,
            )
        except FileNotFoundError:
            logger.debug("Executable not found: %s", args[0])
            return "", COMMAND_NOT_FOUND
        logger.debug("%s exited with %d", args[0], completed.returncode)
        return completed.stdout, completed.returncode

    def run_interactive(self, args: List[str]) -> int:
        """Run a command attached to the current terminal and return its exit status."""
        logger.debug("Running interactively %s", " ".join(args))
        try:
            return subprocess.call(args)
        except FileNotFoundError:
            logger.debug("Executable not found: %s", args[0])
            return COMMAND_NOT_FOUND
