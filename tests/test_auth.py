"""
Tests for auth and shell modules.
"""

from unittest.mock import patch

import pytest

from envpull.auth import GcloudAuth
from envpull.errors import AuthError
from envpull.shell import COMMAND_NOT_FOUND, CommandRunner


class TestGcloudAuth:
    """Test the gcloud wrapper."""

    def test_current_user_and_project(self, runner):
        auth = GcloudAuth(runner)
        assert auth.get_current_user() == "dev@example.com"
        assert auth.get_current_project() == "acme-prod"

    def test_no_account_configured(self, runner):
        runner.responses[("gcloud", "config", "get-value", "account")] = ("\n", 0)
        with pytest.raises(AuthError) as exc_info:
            GcloudAuth(runner).get_current_user()
        assert "envpull login" in str(exc_info.value)

    def test_project_lookup_failure_is_empty(self, runner):
        runner.responses[("gcloud", "config", "get-value", "project")] = ("", 1)
        assert GcloudAuth(runner).get_current_project() == ""

    def test_login_runs_interactively(self, runner):
        GcloudAuth(runner).login()
        assert runner.calls[-1] == ["gcloud", "auth", "application-default", "login"]

    def test_login_failure(self, runner):
        runner.interactive_status = 1
        with pytest.raises(AuthError) as exc_info:
            GcloudAuth(runner).login()
        assert "authentication failed" in str(exc_info.value)

    def test_gcloud_not_installed(self, runner):
        del runner.responses[("gcloud", "version")]
        auth = GcloudAuth(runner)
        assert not auth.is_gcloud_installed()
        with pytest.raises(AuthError) as exc_info:
            auth.login()
        assert "not installed" in str(exc_info.value)


class TestCommandRunner:
    """Test the subprocess runner without starting real processes."""

    @patch('envpull.shell.subprocess.run')
    def test_run_and_capture(self, mock_run):
        mock_run.return_value.stdout = "out\n"
        mock_run.return_value.returncode = 0
        assert CommandRunner().run_and_capture(["git", "status"]) == ("out\n", 0)
        assert mock_run.call_args[0][0] == ["git", "status"]

    @patch('envpull.shell.subprocess.run', side_effect=FileNotFoundError)
    def test_missing_executable(self, mock_run):
        assert CommandRunner().run_and_capture(["gcloud", "version"]) == ("", COMMAND_NOT_FOUND)

    @patch('envpull.shell.subprocess.call', return_value=3)
    def test_run_interactive(self, mock_call):
        assert CommandRunner().run_interactive(["gcloud", "auth"]) == 3

    @patch('envpull.shell.subprocess.call', side_effect=FileNotFoundError)
    def test_run_interactive_missing_executable(self, mock_call):
        assert CommandRunner().run_interactive(["gcloud"]) == COMMAND_NOT_FOUND
