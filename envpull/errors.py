"""
Exceptions raised by envpull.

Every failure a command can hit is an EnvPullError; the CLI reports it once
and exits with status 1.
"""

from typing import List, Optional


class EnvPullError(Exception):
    """Base exception for all envpull failures."""


class ConfigNotFoundError(EnvPullError):
    """Raised when no .envpull.yml exists in the working directory or above."""

    def __init__(self, start_dir: str, file_name: str = ".envpull.yml"):
        self.start_dir = start_dir
        self.file_name = file_name
        super().__init__(
            f"config not found: no {file_name} found in {start_dir} or any parent directory\n\n"
            "Run 'envpull init' to create a configuration"
        )


class ConfigError(EnvPullError):
    """Raised when the configuration cannot be read, parsed or validated."""

    def __init__(self, path: str, message: str):
        self.path = path
        self.message = message
        super().__init__(f"Invalid config in {path}: {message}")


class CacheError(EnvPullError):
    """Raised when the last-used cache cannot be read or written."""

    def __init__(self, path: str, message: str):
        self.path = path
        self.message = message
        super().__init__(f"Cache error in {path}: {message}")


class SourceNotFoundError(EnvPullError):
    """Raised when a source name is not defined in the configuration."""

    def __init__(self, name: str, available: Optional[List[str]] = None):
        self.name = name
        self.available = list(available or [])
        message = f"source '{name}' not found in config"
        if self.available:
            message += f"\n\nAvailable sources: {', '.join(self.available)}"
        super().__init__(message)


class NoSourceAvailableError(EnvPullError):
    """Raised when neither the command line nor the cache names a source."""

    def __init__(self, command: str = "pull"):
        self.command = command
        super().__init__(
            "no source specified and no cached source found\n\n"
            f"Usage: envpull {command} <source>"
        )


class AmbiguousSourceError(EnvPullError):
    """Raised when a command needs one source and several could apply."""

    def __init__(self, available: List[str]):
        self.available = list(available)
        super().__init__(
            "multiple sources found, please specify one with --source\n\n"
            f"Available sources: {', '.join(self.available)}"
        )


class RemoteObjectNotFoundError(EnvPullError):
    """Raised when an environment does not exist in the bucket."""

    def __init__(self, env: str, bucket: str, project: str):
        self.env = env
        self.bucket = bucket
        self.project = project
        super().__init__(f"env '{env}' not found in {bucket}/{project}")


class RemoteTransportError(EnvPullError):
    """Raised for any other failure talking to remote storage."""


class ProjectUndetectableError(EnvPullError):
    """Raised when the project name cannot be derived from git."""


class LocalFileError(EnvPullError):
    """Raised when a local env file is missing or cannot be read or written."""

    def __init__(self, path: str, message: str):
        self.path = path
        self.message = message
        super().__init__(f"{message}: {path}")


class AuthError(EnvPullError):
    """Raised when gcloud is unavailable or not authenticated."""
