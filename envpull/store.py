"""
Remote storage interface for env files.

Objects live at ``<project>/<env>.env`` inside a bucket. Bucket names are
accepted with or without a ``gs://`` prefix and a trailing slash. Sharing a
bucket is expressed as user bindings to the storage object roles.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional

BUCKET_SCHEME = "gs://"
ENV_SUFFIX = ".env"

IAM_POLICY_VERSION = 3
USER_PREFIX = "user:"

ROLE_READ_ONLY = "roles/storage.objectViewer"
ROLE_READ_WRITE = "roles/storage.objectAdmin"
ROLE_STORAGE_ADMIN = "roles/storage.admin"

# Roles shown by `envpull grants`, lowest privilege first
ACCESS_ROLES = [ROLE_READ_ONLY, ROLE_READ_WRITE, ROLE_STORAGE_ADMIN]

ROLE_LABELS = {
    ROLE_READ_ONLY: "Viewer (read-only)",
    ROLE_READ_WRITE: "Admin (read-write)",
    ROLE_STORAGE_ADMIN: "Storage Admin",
}


@dataclass(frozen=True)
class ObjectVersion:
    """One stored generation of an env object."""

    generation: str
    updated: Optional[datetime]
    size: int
    live: bool = True


@dataclass(frozen=True)
class AccessGrant:
    """A user holding one of the storage roles on a bucket."""

    email: str
    role: str

    @property
    def label(self) -> str:
        return ROLE_LABELS.get(self.role, self.role.replace("roles/", ""))


def normalize_bucket_name(bucket: str) -> str:
    """Strip a gs:// prefix and a trailing slash from a bucket name."""
    if bucket.startswith(BUCKET_SCHEME):
        bucket = bucket[len(BUCKET_SCHEME):]
    if bucket.endswith('/'):
        bucket = bucket[:-1]
    return bucket


def object_path(project: str, env: str) -> str:
    return f"{project}/{env}{ENV_SUFFIX}"


def env_names_from_objects(project: str, object_names: Iterable[str]) -> List[str]:
    """
    Extract environment names from object names under a project.

    ``<project>/<env>.env`` yields ``<env>``. Objects outside the project,
    without the .env suffix, with an empty name or nested deeper are skipped.

    Returns:
        Sorted, de-duplicated environment names
    """
    prefix = project + "/"
    names = set()
    for name in object_names:
        if not name.startswith(prefix) or not name.endswith(ENV_SUFFIX):
            continue
        env = name[len(prefix):-len(ENV_SUFFIX)]
        if env and '/' not in env:
            names.add(env)
    return sorted(names)


def user_grants(bindings: Iterable[Dict]) -> List[AccessGrant]:
    """
    Reduce IAM policy bindings to the storage role of each user.

    Only ``user:`` members of the roles in ACCESS_ROLES are kept. A user
    bound to several of them is reported once with the highest role.

    Args:
        bindings: Policy bindings, each with ``role`` and ``members``

    Returns:
        Grants sorted by role, then email
    """
    roles = {}
    for binding in bindings:
        role = binding["role"]
        if role not in ACCESS_ROLES:
            continue
        for member in binding["members"]:
            if not member.startswith(USER_PREFIX):
                continue
            email = member[len(USER_PREFIX):]
            current = roles.get(email)
            if current is None or ACCESS_ROLES.index(role) > ACCESS_ROLES.index(current):
                roles[email] = role
    grants = [AccessGrant(email=email, role=role) for email, role in roles.items()]
    return sorted(grants, key=lambda g: (g.role, g.email))


class RemoteObjectStore(ABC):
    """Contract for the storage backend holding env files.

    All methods accept bucket names in either form and block until the
    remote call completes. Missing objects raise RemoteObjectNotFoundError;
    every other failure raises RemoteTransportError.
    """

    @abstractmethod
    def download(self, bucket: str, project: str, env: str) -> bytes:
        """Return the content of an environment."""

    @abstractmethod
    def upload(self, bucket: str, project: str, env: str, data: bytes) -> None:
        """Create or replace an environment."""

    @abstractmethod
    def exists(self, bucket: str, project: str, env: str) -> bool:
        """Check whether an environment exists."""

    @abstractmethod
    def list_envs(self, bucket: str, project: str) -> List[str]:
        """List environment names stored for a project."""

    @abstractmethod
    def delete(self, bucket: str, project: str, env: str) -> None:
        """Delete an environment."""

    @abstractmethod
    def bucket_exists(self, bucket: str) -> bool:
        """Check whether a bucket exists and is accessible."""

    @abstractmethod
    def create_bucket(self, bucket: str, project: str) -> None:
        """Create a bucket in the given cloud project."""

    @abstractmethod
    def list_versions(self, bucket: str, project: str, env: str) -> List[ObjectVersion]:
        """List stored generations of an environment, oldest first."""

    @abstractmethod
    def rollback(self, bucket: str, project: str, env: str, generation: str) -> None:
        """Restore a stored generation as the live content of an environment."""

    @abstractmethod
    def get_access(self, bucket: str) -> List[AccessGrant]:
        """List users with a storage role on the bucket."""

    @abstractmethod
    def grant_access(self, bucket: str, email: str, role: str) -> None:
        """Bind a user to a storage role on the bucket, keeping existing members."""
