"""
Resolution of the source and environment a command acts on.

Precedence, highest first:

1. the source argument and ``--env`` flag given on the command line
2. the cached last-used source, and the cached environment only when the
   cached source is the one being used
3. failure, a source is never guessed

The functions here are pure. Looking the resolved source up in the
configuration is a separate step done by the caller.
"""

from dataclasses import dataclass
from typing import Optional, Union

from .config import Cache

DEFAULT_ENVIRONMENT = "default"
DEFAULT_ENV_FILE = ".env"

NO_SOURCE_AVAILABLE = "no_source_available"


@dataclass(frozen=True)
class Resolved:
    """The effective target of one invocation."""

    source: str
    environment: str = DEFAULT_ENVIRONMENT
    file_path: str = DEFAULT_ENV_FILE
    source_from_cache: bool = False
    environment_from_cache: bool = False


@dataclass(frozen=True)
class Failed:
    """Resolution could not produce a target."""

    reason: str


Resolution = Union[Resolved, Failed]


def resolve_source(source_arg: Optional[str], state: Cache) -> Resolution:
    """
    Pick the source name from the argument or the cache.

    Args:
        source_arg: Source name given on the command line, if any
        state: The persisted last-used values

    Returns:
        Resolved with only the source slot meaningful, or Failed
    """
    if source_arg:
        return Resolved(source=source_arg)
    if state.last_source:
        return Resolved(source=state.last_source, source_from_cache=True)
    return Failed(reason=NO_SOURCE_AVAILABLE)


def resolve_target(source_arg: Optional[str], env_flag: Optional[str], state: Cache,
                   file_path: str = DEFAULT_ENV_FILE) -> Resolution:
    """
    Decide the source, environment and local file for a command.

    An environment flag equal to the default sentinel counts as not given,
    so the cached environment may replace it. The cached environment is only
    used when the cached source matches the resolved source.

    Args:
        source_arg: Source name given on the command line, if any
        env_flag: Value of the ``--env`` flag, if any
        state: The persisted last-used values
        file_path: Local env file path

    Returns:
        Resolved target, or Failed(NO_SOURCE_AVAILABLE)
    """
    result = resolve_source(source_arg, state)
    if isinstance(result, Failed):
        return result

    environment = env_flag or DEFAULT_ENVIRONMENT
    env_from_cache = False
    if (environment == DEFAULT_ENVIRONMENT
            and state.last_source == result.source
            and state.last_env):
        environment = state.last_env
        env_from_cache = True

    return Resolved(
        source=result.source,
        environment=environment,
        file_path=file_path or DEFAULT_ENV_FILE,
        source_from_cache=result.source_from_cache,
        environment_from_cache=env_from_cache,
    )


def updated_state(state: Cache, source: Optional[str], environment: Optional[str]) -> Cache:
    """
    Return the state to persist after a successful pull or push.

    Each field is overwritten only when the new value is non-empty.
    """
    return Cache(
        last_source=source or state.last_source,
        last_env=environment or state.last_env,
    )
