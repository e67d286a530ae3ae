"""
Shared pytest fixtures and configuration for envpull tests.

Nothing here touches the network or spawns a process: the remote store lives
in a dict and git/gcloud answers come from a lookup table.
"""

import os
import shutil
import sys
import tempfile
from contextlib import contextmanager
from io import StringIO

import pytest

from envpull.env_pull import EnvPull
from envpull.errors import RemoteObjectNotFoundError
from envpull.store import (
    ObjectVersion,
    RemoteObjectStore,
    env_names_from_objects,
    normalize_bucket_name,
    object_path,
    user_grants,
)
from envpull.ui import UI


class MemoryStore(RemoteObjectStore):
    """In-memory RemoteObjectStore keeping every generation."""

    def __init__(self):
        self.objects = {}
        self.generations = {}
        self.buckets = set()
        self.bindings = {}
        self.calls = []

    def _key(self, bucket, project, env):
        return normalize_bucket_name(bucket), object_path(project, env)

    def put_object(self, bucket, project, env, data):
        key = self._key(bucket, project, env)
        self.buckets.add(key[0])
        self.objects[key] = data
        self.generations.setdefault(key, []).append(data)

    def download(self, bucket, project, env):
        self.calls.append(('download', bucket, project, env))
        key = self._key(bucket, project, env)
        if key not in self.objects:
            raise RemoteObjectNotFoundError(env, key[0], project)
        return self.objects[key]

    def upload(self, bucket, project, env, data):
        self.calls.append(('upload', bucket, project, env))
        self.put_object(bucket, project, env, data)

    def exists(self, bucket, project, env):
        self.calls.append(('exists', bucket, project, env))
        return self._key(bucket, project, env) in self.objects

    def list_envs(self, bucket, project):
        self.calls.append(('list_envs', bucket, project))
        bucket_name = normalize_bucket_name(bucket)
        return env_names_from_objects(project, [path for b, path in self.objects if b == bucket_name])

    def delete(self, bucket, project, env):
        self.calls.append(('delete', bucket, project, env))
        key = self._key(bucket, project, env)
        if key not in self.objects:
            raise RemoteObjectNotFoundError(env, key[0], project)
        del self.objects[key]

    def bucket_exists(self, bucket):
        return normalize_bucket_name(bucket) in self.buckets

    def create_bucket(self, bucket, project):
        self.calls.append(('create_bucket', bucket, project))
        self.buckets.add(normalize_bucket_name(bucket))

    def list_versions(self, bucket, project, env):
        key = self._key(bucket, project, env)
        history = self.generations.get(key, [])
        return [
            ObjectVersion(generation=str(i + 1), updated=None, size=len(data),
                          live=(i == len(history) - 1))
            for i, data in enumerate(history)
        ]

    def rollback(self, bucket, project, env, generation):
        key = self._key(bucket, project, env)
        history = self.generations.get(key, [])
        index = int(generation) - 1
        if not 0 <= index < len(history):
            raise RemoteObjectNotFoundError(f"{env}@{generation}", key[0], project)
        self.put_object(bucket, project, env, history[index])

    def get_access(self, bucket):
        return user_grants(self.bindings.get(normalize_bucket_name(bucket), []))

    def grant_access(self, bucket, email, role):
        self.calls.append(('grant_access', bucket, email, role))
        bindings = self.bindings.setdefault(normalize_bucket_name(bucket), [])
        member = f"user:{email}"
        for binding in bindings:
            if binding["role"] == role:
                binding["members"].add(member)
                return
        bindings.append({"role": role, "members": {member}})


class FakeRunner:
    """CommandRunner answering from a table of canned results."""

    def __init__(self, responses=None, interactive_status=0):
        self.responses = dict(responses or {})
        self.interactive_status = interactive_status
        self.calls = []

    def run_and_capture(self, args):
        self.calls.append(list(args))
        return self.responses.get(tuple(args), ("", 1))

    def run_interactive(self, args):
        self.calls.append(list(args))
        return self.interactive_status


GIT_REMOTE = ("git", "remote", "get-url", "origin")
GIT_DIR = ("git", "rev-parse", "--git-dir")

SAMPLE_CONFIG = """sources:
  - name: simon
    bucket: gs://simon-envs
    project: simon-project
  - name: team
    bucket: team-envs/
    project: team-project
"""


@pytest.fixture
def temp_dir():
    """Create a temporary directory that's automatically cleaned up."""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@contextmanager
def capture_output():
    """Context manager to capture stdout and stderr."""
    old_stdout = sys.stdout
    old_stderr = sys.stderr
    stdout_capture = StringIO()
    stderr_capture = StringIO()

    try:
        sys.stdout = stdout_capture
        sys.stderr = stderr_capture
        yield stdout_capture, stderr_capture
    finally:
        sys.stdout = old_stdout
        sys.stderr = old_stderr


@pytest.fixture
def project_dir(temp_dir):
    """A working tree with a two-source .envpull.yml."""
    with open(os.path.join(temp_dir, ".envpull.yml"), 'w') as f:
        f.write(SAMPLE_CONFIG)
    return temp_dir


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def runner():
    return FakeRunner({
        GIT_REMOTE: ("git@github.com:acme/webapp.git\n", 0),
        GIT_DIR: (".git\n", 0),
        ("gcloud", "version"): ("Google Cloud SDK 450.0.0\n", 0),
        ("gcloud", "config", "get-value", "account"): ("dev@example.com\n", 0),
        ("gcloud", "config", "get-value", "project"): ("acme-prod\n", 0),
    })


@pytest.fixture
def answers():
    """Queue of answers given to prompts, 'n' once exhausted."""
    return []


@pytest.fixture
def ui(answers):
    prompts = []

    def fake_input(label):
        prompts.append(label)
        return answers.pop(0) if answers else "n"

    ui = UI(color=False, input_func=fake_input)
    ui.prompts = prompts
    return ui


@pytest.fixture
def env_pull(project_dir, store, runner, ui):
    return EnvPull(ui=ui, store=store, runner=runner, cwd=project_dir)


def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
