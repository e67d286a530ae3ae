"""
envpull command implementations.

The EnvPull class ties the pieces together for each command: it finds and
loads the configuration, resolves the target source and environment, talks
to the remote store and reports progress through the UI.
"""

import os
from typing import List, Optional, Tuple

from . import git
from .auth import GcloudAuth
from .config import (
    CACHE_FILE_NAME,
    CONFIG_FILE_NAME,
    Cache,
    Config,
    Source,
    config_exists,
    find_config_dir,
    load_cache,
    load_config,
    save_cache,
    save_config,
)
from .diff import DiffResult, compare_envs
from .env_file import file_exists, parse_env, read_env_bytes, write_env_bytes
from .errors import (
    AmbiguousSourceError,
    CacheError,
    ConfigError,
    EnvPullError,
    LocalFileError,
    NoSourceAvailableError,
    ProjectUndetectableError,
    SourceNotFoundError,
)
from .resolution import (
    DEFAULT_ENV_FILE,
    Failed,
    Resolved,
    resolve_source,
    resolve_target,
    updated_state,
)
from .shell import CommandRunner
from .store import (
    BUCKET_SCHEME,
    ROLE_LABELS,
    ROLE_READ_ONLY,
    ROLE_READ_WRITE,
    AccessGrant,
    RemoteObjectStore,
    normalize_bucket_name,
)
from .ui import UI

DEFAULT_SOURCE_NAME = "default"


class EnvPull:
    """Main class for env file synchronization commands."""

    def __init__(self, ui: Optional[UI] = None, store: Optional[RemoteObjectStore] = None,
                 runner: Optional[CommandRunner] = None, cwd: Optional[str] = None):
        """
        Initialize the EnvPull commands.

        Args:
            ui: Output and prompt handler
            store: Remote storage backend (defaults to Google Cloud Storage)
            runner: Runner for git and gcloud invocations
            cwd: Working directory (defaults to the process working directory)
        """
        self.ui = ui or UI()
        self.runner = runner or CommandRunner()
        self.cwd = os.path.abspath(cwd or os.getcwd())
        self._store = store
        self.auth = GcloudAuth(self.runner)

    @property
    def store(self) -> RemoteObjectStore:
        if self._store is None:
            # Imported here so commands that never touch GCS work without credentials
            from .gcs import GCSStore
            self._store = GCSStore()
        return self._store

    # -- shared steps -----------------------------------------------------

    def _local_path(self, file_path: str) -> str:
        return os.path.join(self.cwd, file_path)

    def load_context(self) -> Tuple[str, Config, Cache]:
        """
        Find the config directory and load the config and cache from it.

        An unreadable cache is reported as a warning and treated as empty.

        Returns:
            Tuple of (config directory, Config, Cache)
        """
        config_dir = find_config_dir(self.cwd)
        config = load_config(config_dir)
        try:
            cache = load_cache(config_dir)
        except CacheError as e:
            self.ui.warning(f"Ignoring cache: {e}")
            cache = Cache()
        return config_dir, config, cache

    def lookup_source(self, config: Config, name: str) -> Source:
        source = config.get_source(name)
        if source is None:
            raise SourceNotFoundError(name, config.source_names())
        return source

    def resolve(self, command: str, source_arg: Optional[str], env: Optional[str], cache: Cache,
                file_path: str = DEFAULT_ENV_FILE, announce: bool = True) -> Resolved:
        """
        Resolve the target of a command, failing when no source is known.

        Args:
            command: Command name used in the usage hint
            source_arg: Source given on the command line
            env: Value of the --env flag
            cache: Last used values
            file_path: Local env file path
            announce: Report values taken from the cache

        Returns:
            The resolved target
        """
        target = resolve_target(source_arg, env, cache, file_path)
        if isinstance(target, Failed):
            raise NoSourceAvailableError(command)
        if announce and target.source_from_cache:
            self.ui.info(f"Using cached source: {target.source}")
        if announce and target.environment_from_cache:
            self.ui.info(f"Using cached env: {target.environment}")
        return target

    def remember(self, config_dir: str, cache: Cache, target: Resolved) -> None:
        """Persist the target of a successful pull or push as the last used values."""
        try:
            save_cache(config_dir, updated_state(cache, target.source, target.environment))
        except CacheError as e:
            self.ui.warning(f"Failed to update cache: {e}")

    def project_name(self) -> str:
        return git.get_project_name(self.runner)

    # -- transfer commands ------------------------------------------------

    def pull(self, source_arg: Optional[str] = None, env: Optional[str] = None,
             file_path: str = DEFAULT_ENV_FILE, force: bool = False) -> bool:
        """
        Download an environment into a local file.

        Args:
            source_arg: Source name, defaults to the cached source
            env: Environment name, defaults to the cached or default environment
            file_path: Local file to write
            force: Overwrite an existing file without asking

        Returns:
            True if the file was written, False if the user aborted
        """
        config_dir, config, cache = self.load_context()
        target = self.resolve("pull", source_arg, env, cache, file_path)
        source = self.lookup_source(config, target.source)
        project = self.project_name()

        local_path = self._local_path(target.file_path)
        if file_exists(local_path) and not force:
            self.ui.warning(f"File '{target.file_path}' already exists")
            if not self.ui.confirm("Overwrite?"):
                self.ui.info("Aborted")
                return False

        self.ui.info(f"Pulling {project}/{target.environment} from {target.source}...")
        data = self.store.download(source.bucket, project, target.environment)

        try:
            write_env_bytes(local_path, data)
        except OSError as e:
            raise LocalFileError(target.file_path, f"failed to write file ({e.strerror})") from e

        self.remember(config_dir, cache, target)
        self.ui.success(f"Pulled {project}/{target.environment}.env to {target.file_path} ({len(data)} bytes)")
        return True

    def push(self, source_arg: Optional[str] = None, env: Optional[str] = None,
             file_path: str = DEFAULT_ENV_FILE, force: bool = False) -> bool:
        """
        Upload a local file as an environment.

        Args:
            source_arg: Source name, defaults to the cached source
            env: Environment name, defaults to the cached or default environment
            file_path: Local file to read
            force: Replace an existing remote environment without asking

        Returns:
            True if the file was uploaded, False if the user aborted
        """
        local_path = self._local_path(file_path)
        if not file_exists(local_path):
            raise LocalFileError(file_path, "file not found")

        config_dir, config, cache = self.load_context()
        target = self.resolve("push", source_arg, env, cache, file_path)
        source = self.lookup_source(config, target.source)
        project = self.project_name()

        try:
            data = read_env_bytes(local_path)
        except OSError as e:
            raise LocalFileError(target.file_path, f"failed to read file ({e.strerror})") from e

        if not force:
            try:
                exists = self.store.exists(source.bucket, project, target.environment)
            except EnvPullError as e:
                self.ui.warning(f"Could not check if remote exists: {e}")
                exists = False
            if exists:
                self.ui.warning(f"Remote {project}/{target.environment}.env already exists in {target.source}")
                if not self.ui.confirm("Overwrite?"):
                    self.ui.info("Aborted")
                    return False

        remote = f"{target.source}/{project}/{target.environment}.env"
        self.ui.info(f"Pushing {target.file_path} to {remote}...")
        self.store.upload(source.bucket, project, target.environment, data)

        self.remember(config_dir, cache, target)
        self.ui.success(f"Pushed {target.file_path} to {remote} ({len(data)} bytes)")
        return True

    def diff(self, source_arg: Optional[str] = None, env: Optional[str] = None,
             file_path: str = DEFAULT_ENV_FILE) -> DiffResult:
        """
        Compare a local file with the remote environment.

        A missing local file compares as empty.

        Returns:
            The computed DiffResult
        """
        _, config, cache = self.load_context()
        target = self.resolve("diff", source_arg, env, cache, file_path)
        source = self.lookup_source(config, target.source)
        project = self.project_name()

        local_path = self._local_path(target.file_path)
        if file_exists(local_path):
            try:
                local_vars = parse_env(read_env_bytes(local_path))
            except OSError as e:
                raise LocalFileError(target.file_path, f"failed to read file ({e.strerror})") from e
        else:
            self.ui.warning(f"Local file '{target.file_path}' does not exist")
            local_vars = {}

        self.ui.info(f"Comparing local '{target.file_path}' with remote "
                     f"{target.source}/{project}/{target.environment}.env...")
        remote_vars = parse_env(self.store.download(source.bucket, project, target.environment))

        result = compare_envs(local_vars, remote_vars)
        if not result.has_changes():
            self.ui.success("No differences found")
            return result

        self.ui.println()
        self.ui.print_diff(result)
        self.ui.print_diff_summary(result)
        return result

    def show(self, source_arg: Optional[str] = None, env: Optional[str] = None) -> bytes:
        """Print the content of a remote environment to stdout."""
        _, config, cache = self.load_context()
        target = self.resolve("show", source_arg, env, cache, announce=False)
        source = self.lookup_source(config, target.source)
        project = self.project_name()

        data = self.store.download(source.bucket, project, target.environment)
        self.ui.raw(data.decode('utf-8', errors='replace'))
        return data

    # -- remote inspection ------------------------------------------------

    def list_envs(self, source_arg: Optional[str] = None) -> List[str]:
        """List the environments stored for this project in a source."""
        _, config, cache = self.load_context()
        result = resolve_source(source_arg, cache)
        if isinstance(result, Failed):
            raise NoSourceAvailableError("ls")
        if result.source_from_cache:
            self.ui.info(f"Using cached source: {result.source}")
        source = self.lookup_source(config, result.source)
        project = self.project_name()

        env_names = self.store.list_envs(source.bucket, project)
        if not env_names:
            self.ui.info(f"No environments found for project '{project}' in source '{source.name}'")
            return env_names

        self.ui.println(f"\nEnvironments for {project} in {source.name}:\n")
        for name in env_names:
            marker = "*" if cache.last_source == source.name and cache.last_env == name else " "
            self.ui.println(f"  {marker} {name}")
        self.ui.println()
        return env_names

    def delete(self, source_arg: Optional[str] = None, env: Optional[str] = None,
               force: bool = False) -> bool:
        """
        Delete a remote environment.

        Returns:
            True if deleted, False if the user aborted
        """
        _, config, cache = self.load_context()
        target = self.resolve("rm", source_arg, env, cache)
        source = self.lookup_source(config, target.source)
        project = self.project_name()

        remote = f"{target.source}/{project}/{target.environment}.env"
        if not force and not self.ui.confirm(f"Delete {remote}?"):
            self.ui.info("Aborted")
            return False

        self.store.delete(source.bucket, project, target.environment)
        self.ui.success(f"Deleted {remote}")
        return True

    def history(self, source_arg: Optional[str] = None, env: Optional[str] = None) -> list:
        """Show the stored generations of a remote environment."""
        _, config, cache = self.load_context()
        target = self.resolve("history", source_arg, env, cache)
        source = self.lookup_source(config, target.source)
        project = self.project_name()

        versions = self.store.list_versions(source.bucket, project, target.environment)
        if not versions:
            self.ui.info("No versions found.")
            return versions

        self.ui.println(f"History for {project}/{target.environment} (source: {target.source})",
                        style="bold")
        self.ui.println()
        rows = []
        for version in versions:
            updated = version.updated.strftime("%Y-%m-%d %H:%M:%S") if version.updated else "-"
            rows.append([version.generation, updated, f"{version.size} B",
                         "live" if version.live else ""])
        self.ui.table(["GENERATION", "UPDATED", "SIZE", ""], rows)
        return versions

    def rollback(self, generation: str, source_arg: Optional[str] = None,
                 env: Optional[str] = None) -> None:
        """Restore an earlier generation as the live remote environment."""
        _, config, cache = self.load_context()
        target = self.resolve("rollback", source_arg, env, cache)
        source = self.lookup_source(config, target.source)
        project = self.project_name()

        self.store.rollback(source.bucket, project, target.environment, generation)
        self.ui.success(f"Rolled back {project}/{target.environment} to generation {generation}")
        self.ui.info("Run 'envpull pull' to update your local file.")

    # -- source management ------------------------------------------------

    def list_sources(self) -> List[Source]:
        """Print the configured sources, marking the cached one."""
        _, config, cache = self.load_context()
        if not config.sources:
            self.ui.info("No sources configured")
            self.ui.println("\nAdd a source with: envpull source add NAME --bucket BUCKET --project PROJECT")
            return []

        self.ui.println("\nConfigured sources:\n")
        rows = []
        for source in config.sources:
            name = source.name + (" *" if cache.last_source == source.name else "")
            rows.append([name, source.bucket, source.project])
        self.ui.table(["NAME", "BUCKET", "PROJECT"], rows)
        self.ui.println()
        return config.sources

    def add_source(self, name: str, bucket: str, project: str) -> Source:
        """Add a source to the configuration."""
        config_dir = find_config_dir(self.cwd)
        config = load_config(config_dir)
        if config.has_source(name):
            raise ConfigError(os.path.join(config_dir, CONFIG_FILE_NAME),
                              f"source '{name}' already exists")

        source = Source(name=name, bucket=bucket, project=project)
        config.add_source(source)
        save_config(config_dir, config)
        self.ui.success(f"Added source '{name}'")
        return source

    def remove_source(self, name: str, force: bool = False) -> bool:
        """
        Remove a source from the configuration.

        Returns:
            True if removed, False if the user aborted
        """
        config_dir = find_config_dir(self.cwd)
        config = load_config(config_dir)
        if not config.has_source(name):
            raise SourceNotFoundError(name, config.source_names())

        if not force and not self.ui.confirm(f"Remove source '{name}'?"):
            self.ui.info("Aborted")
            return False

        config.remove_source(name)
        save_config(config_dir, config)
        self.ui.success(f"Removed source '{name}'")
        return True

    # -- bucket access ----------------------------------------------------

    def select_source(self, config_dir: str, config: Config, cache: Cache,
                      name: Optional[str] = None) -> Source:
        """
        Pick the source whose bucket an access command works on.

        An explicit name wins, then the cached source, then a source called
        ``default``, then the only configured source.
        """
        if name:
            return self.lookup_source(config, name)
        if cache.last_source and config.has_source(cache.last_source):
            self.ui.info(f"Using cached source: {cache.last_source}")
            return config.get_source(cache.last_source)
        if config.has_source(DEFAULT_SOURCE_NAME):
            return config.get_source(DEFAULT_SOURCE_NAME)
        if len(config.sources) == 1:
            return config.sources[0]
        if not config.sources:
            raise ConfigError(os.path.join(config_dir, CONFIG_FILE_NAME),
                              "no sources configured, run 'envpull init' to set one up")
        raise AmbiguousSourceError(config.source_names())

    def grant(self, email: str, source_name: Optional[str] = None, read_write: bool = False,
              force: bool = False) -> bool:
        """
        Give a teammate access to the bucket of a source.

        Args:
            email: Google account to grant access to
            source_name: Source name (see select_source when omitted)
            read_write: Grant object admin instead of object viewer
            force: Skip the confirmation prompt

        Returns:
            True if access was granted, False if the user aborted
        """
        if '@' not in email:
            raise EnvPullError(f"invalid email address: {email}\n\n"
                               "Provide a valid email address (e.g., teammate@example.com)")

        config_dir, config, cache = self.load_context()
        source = self.select_source(config_dir, config, cache, source_name)
        bucket = normalize_bucket_name(source.bucket)
        role = ROLE_READ_WRITE if read_write else ROLE_READ_ONLY
        access = "read-write" if read_write else "read-only"

        if not force:
            self.ui.println("\nGrant Access\n", style="bold")
            self.ui.println(f"  Bucket: {bucket}")
            self.ui.println(f"  Email:  {email}")
            self.ui.println(f"  Role:   {ROLE_LABELS[role]}")
            self.ui.println()
            if not self.ui.confirm(f"Grant {access} access to {email}?"):
                self.ui.info("Aborted")
                return False

        self.store.grant_access(source.bucket, email, role)
        self.ui.success(f"Granted {access} access to {email}")
        self.ui.dim("They can now run: envpull pull")
        return True

    def grants(self, source_name: Optional[str] = None) -> List[AccessGrant]:
        """Show which users have access to the bucket of a source."""
        config_dir, config, cache = self.load_context()
        source = self.select_source(config_dir, config, cache, source_name)
        bucket = normalize_bucket_name(source.bucket)

        access = self.store.get_access(source.bucket)

        self.ui.println(f"\nBucket access: {bucket}", style="bold")
        self.ui.dim(f"Source: {source.name}")
        self.ui.println()
        if not access:
            self.ui.warning("No individual user grants found")
            self.ui.dim("Grant access with: envpull grant <email>")
            return access

        self.ui.table(["EMAIL", "ROLE"], [[grant.email, grant.label] for grant in access])
        self.ui.println()
        return access

    # -- setup ------------------------------------------------------------

    def init(self) -> bool:
        """
        Create .envpull.yml in the working directory interactively.

        Returns:
            True if a configuration was written, False if the user aborted
        """
        if config_exists(self.cwd):
            self.ui.warning("Configuration already exists in this directory")
            if not self.ui.confirm("Reinitialize?"):
                self.ui.info("Aborted")
                return False

        if not git.is_git_repo(self.runner):
            self.ui.warning("Not in a git repository")
            self.ui.info("envpull uses git remote to detect project name")

        try:
            project = self.project_name()
            self.ui.success(f"Detected project: {project}")
        except ProjectUndetectableError as e:
            self.ui.warning(f"Could not detect project name from git: {e}")
            project = self.ui.prompt_required("Project name")

        self.ui.println("\nLet's configure your first source:\n")

        source_name = self.ui.prompt("Source name (e.g., your name or 'team')")
        if not source_name:
            raise ConfigError(CONFIG_FILE_NAME, "source name is required")

        bucket = self.ui.prompt("GCS bucket (e.g., gs://my-envs)")
        if not bucket:
            raise ConfigError(CONFIG_FILE_NAME, "bucket name is required")
        if not bucket.startswith(BUCKET_SCHEME):
            bucket = BUCKET_SCHEME + bucket

        gcp_project = self.ui.prompt("GCP project ID", self.auth.get_current_project())
        if not gcp_project:
            raise ConfigError(CONFIG_FILE_NAME, "GCP project is required")

        self._verify_bucket(bucket, gcp_project)

        save_config(self.cwd, Config(sources=[Source(name=source_name, bucket=bucket, project=gcp_project)]))
        self.ui.success(f"Created {CONFIG_FILE_NAME}")

        try:
            if add_to_gitignore(self.cwd, CACHE_FILE_NAME):
                self.ui.success(f"Added {CACHE_FILE_NAME} to .gitignore")
        except OSError as e:
            self.ui.warning(f"Could not update .gitignore: {e}")

        self.ui.println("\nenvpull is ready!")
        self.ui.println("\nNext steps:")
        self.ui.println(f"  * Push your first env:  envpull push {source_name}")
        self.ui.println(f"  * Pull an env:          envpull {source_name}")
        self.ui.println(f"  * List environments:    envpull ls {source_name}")
        self.ui.println(f"  (project: {project})")
        return True

    def _verify_bucket(self, bucket: str, gcp_project: str) -> None:
        """Check the bucket is reachable, offering to create it when missing."""
        try:
            exists = self.store.bucket_exists(bucket)
        except EnvPullError as e:
            self.ui.warning(f"Could not verify bucket access: {e}")
            self.ui.info("You may need to run 'envpull login' first")
            return

        if exists:
            self.ui.success("Verified bucket access")
            return

        self.ui.warning(f"Bucket '{bucket}' does not exist")
        if self.ui.confirm("Create it?"):
            self.store.create_bucket(bucket, gcp_project)
            self.ui.success(f"Created bucket '{normalize_bucket_name(bucket)}'")

    def login(self) -> None:
        self.ui.info("Running gcloud auth application-default login...")
        self.ui.println()
        self.auth.login()
        self.ui.println()
        self.ui.success("Authentication complete!")

    def whoami(self) -> Tuple[str, str]:
        """Print the active gcloud account and project."""
        self.auth.ensure_installed()
        user = self.auth.get_current_user()
        project = self.auth.get_current_project()

        self.ui.println("\nGoogle Cloud Identity:")
        self.ui.println(f"  Account: {user}")
        if project:
            self.ui.println(f"  Project: {project}")
        self.ui.println()
        return user, project


def add_to_gitignore(directory: str, entry: str) -> bool:
    """
    Append an entry to .gitignore unless it is already listed.

    Returns:
        True if the file was changed
    """
    path = os.path.join(directory, ".gitignore")
    content = ""
    if os.path.exists(path):
        with open(path, 'r') as f:
            content = f.read()

    if any(line.strip() == entry for line in content.split("\n")):
        return False

    with open(path, 'a') as f:
        if content and not content.endswith("\n"):
            f.write("\n")
        f.write(entry + "\n")
    return True
