"""
Google Cloud Storage backend.

Uses Application Default Credentials; run ``envpull login`` to set them up.
"""

import logging
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional

import requests
from google.api_core import exceptions as gcs_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import storage

from .errors import EnvPullError, RemoteObjectNotFoundError, RemoteTransportError
from .store import (
    IAM_POLICY_VERSION,
    AccessGrant,
    ObjectVersion,
    RemoteObjectStore,
    env_names_from_objects,
    normalize_bucket_name,
    object_path,
    user_grants,
)

logger = logging.getLogger(__name__)

LOGIN_HINT = "Try running: envpull login"

# Network failures surface from the HTTP layer rather than the API client
NETWORK_ERRORS = (
    auth_exceptions.TransportError,
    requests.exceptions.RequestException,
    gcs_exceptions.RetryError,
)


@contextmanager
def remote_errors(action: str) -> Iterator[None]:
    """
    Translate google-cloud and HTTP errors into RemoteTransportError.

    Args:
        action: Description of the failed step, e.g. "failed to read from GCS"
    """
    try:
        yield
    except NETWORK_ERRORS as e:
        raise RemoteTransportError(f"{action}: {e}") from e
    except auth_exceptions.GoogleAuthError as e:
        raise RemoteTransportError(f"{action}: {e}\n\n{LOGIN_HINT}") from e
    except gcs_exceptions.GoogleAPICallError as e:
        raise RemoteTransportError(f"{action}: {e}") from e


class GCSStore(RemoteObjectStore):
    """RemoteObjectStore backed by google-cloud-storage."""

    def __init__(self, client: Optional[storage.Client] = None,
                 client_factory: Callable[[], storage.Client] = storage.Client):
        """
        Initialize the store.

        Args:
            client: Ready storage client, created lazily when omitted
            client_factory: Callable creating the client on first use
        """
        self._client = client
        self._client_factory = client_factory

    @property
    def client(self) -> storage.Client:
        if self._client is None:
            try:
                self._client = self._client_factory()
            except (auth_exceptions.GoogleAuthError, OSError) as e:
                raise RemoteTransportError(f"failed to create GCS client: {e}\n\n{LOGIN_HINT}") from e
        return self._client

    def _blob(self, bucket: str, project: str, env: str) -> storage.Blob:
        return self.client.bucket(normalize_bucket_name(bucket)).blob(object_path(project, env))

    def download(self, bucket: str, project: str, env: str) -> bytes:
        blob = self._blob(bucket, project, env)
        logger.debug("Downloading gs://%s/%s", blob.bucket.name, blob.name)
        with remote_errors("failed to read from GCS"):
            try:
                return blob.download_as_bytes()
            except gcs_exceptions.NotFound as e:
                raise RemoteObjectNotFoundError(env, normalize_bucket_name(bucket), project) from e

    def upload(self, bucket: str, project: str, env: str, data: bytes) -> None:
        blob = self._blob(bucket, project, env)
        logger.debug("Uploading %d bytes to gs://%s/%s", len(data), blob.bucket.name, blob.name)
        with remote_errors("failed to write to GCS"):
            blob.upload_from_string(data, content_type="text/plain")

    def exists(self, bucket: str, project: str, env: str) -> bool:
        blob = self._blob(bucket, project, env)
        with remote_errors("failed to check object existence"):
            return blob.exists()

    def list_envs(self, bucket: str, project: str) -> List[str]:
        bucket_name = normalize_bucket_name(bucket)
        with remote_errors("failed to list objects"):
            names = [blob.name for blob in self.client.list_blobs(bucket_name, prefix=project + "/")]
        return env_names_from_objects(project, names)

    def delete(self, bucket: str, project: str, env: str) -> None:
        blob = self._blob(bucket, project, env)
        with remote_errors("failed to delete from GCS"):
            try:
                blob.delete()
            except gcs_exceptions.NotFound as e:
                raise RemoteObjectNotFoundError(env, normalize_bucket_name(bucket), project) from e

    def bucket_exists(self, bucket: str) -> bool:
        with remote_errors("failed to check bucket"):
            return self.client.bucket(normalize_bucket_name(bucket)).exists()

    def create_bucket(self, bucket: str, project: str) -> None:
        with remote_errors("failed to create bucket"):
            self.client.create_bucket(normalize_bucket_name(bucket), project=project)

    def list_versions(self, bucket: str, project: str, env: str) -> List[ObjectVersion]:
        bucket_name = normalize_bucket_name(bucket)
        path = object_path(project, env)
        with remote_errors("failed to list versions"):
            blobs = [blob for blob in self.client.list_blobs(bucket_name, prefix=path, versions=True)
                     if blob.name == path]

        versions = [
            ObjectVersion(
                generation=str(blob.generation),
                updated=blob.updated,
                size=blob.size or 0,
                live=blob.time_deleted is None,
            )
            for blob in blobs
        ]
        versions.sort(key=lambda v: int(v.generation))
        return versions

    def rollback(self, bucket: str, project: str, env: str, generation: str) -> None:
        try:
            source_generation = int(generation)
        except ValueError as e:
            raise EnvPullError(f"invalid generation '{generation}': expected a number "
                               "(see 'envpull history')") from e

        bucket_handle = self.client.bucket(normalize_bucket_name(bucket))
        path = object_path(project, env)
        with remote_errors("failed to roll back"):
            try:
                bucket_handle.copy_blob(bucket_handle.blob(path), bucket_handle, path,
                                        source_generation=source_generation)
            except gcs_exceptions.NotFound as e:
                raise RemoteObjectNotFoundError(f"{env}@{generation}", bucket_handle.name, project) from e

    def get_access(self, bucket: str) -> List[AccessGrant]:
        bucket_handle = self.client.bucket(normalize_bucket_name(bucket))
        with remote_errors("failed to read bucket IAM policy"):
            policy = bucket_handle.get_iam_policy(requested_policy_version=IAM_POLICY_VERSION)
        return user_grants(policy.bindings)

    def grant_access(self, bucket: str, email: str, role: str) -> None:
        bucket_handle = self.client.bucket(normalize_bucket_name(bucket))
        member = f"user:{email}"
        logger.debug("Granting %s on gs://%s to %s", role, bucket_handle.name, member)
        with remote_errors("failed to update bucket IAM policy"):
            policy = bucket_handle.get_iam_policy(requested_policy_version=IAM_POLICY_VERSION)
            for binding in policy.bindings:
                if binding["role"] == role:
                    binding["members"] = set(binding["members"]) | {member}
                    break
            else:
                policy.bindings.append({"role": role, "members": {member}})
            bucket_handle.set_iam_policy(policy)
