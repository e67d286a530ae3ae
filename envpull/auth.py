"""
Google Cloud authentication through the gcloud CLI.

envpull uses Application Default Credentials; these helpers only wrap the
gcloud commands that set them up and report the active identity.
"""

from typing import Optional

from .errors import AuthError
from .shell import CommandRunner

INSTALL_HINT = "Install it from: https://cloud.google.com/sdk/docs/install"


class GcloudAuth:
    """Thin wrapper over gcloud auth and config commands."""

    def __init__(self, runner: Optional[CommandRunner] = None):
        self.runner = runner or CommandRunner()

    def is_gcloud_installed(self) -> bool:
        _, status = self.runner.run_and_capture(["gcloud", "version"])
        return status == 0

    def ensure_installed(self) -> None:
        if not self.is_gcloud_installed():
            raise AuthError(f"gcloud CLI is not installed\n\n{INSTALL_HINT}")

    def login(self) -> None:
        """Run ``gcloud auth application-default login`` interactively."""
        self.ensure_installed()
        status = self.runner.run_interactive(["gcloud", "auth", "application-default", "login"])
        if status != 0:
            raise AuthError(f"authentication failed: gcloud exited with status {status}")

    def get_current_user(self) -> str:
        """
        Return the active gcloud account.

        Raises:
            AuthError: If no account is configured
        """
        stdout, status = self.runner.run_and_capture(["gcloud", "config", "get-value", "account"])
        account = stdout.strip()
        if status != 0 or not account:
            raise AuthError("not authenticated: no gcloud account configured\n\n"
                            "Run 'envpull login' to authenticate")
        return account

    def get_current_project(self) -> str:
        """Return the active gcloud project, or an empty string."""
        stdout, status = self.runner.run_and_capture(["gcloud", "config", "get-value", "project"])
        if status != 0:
            return ""
        return stdout.strip()
