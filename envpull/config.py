"""
Configuration and cache files.

Each repository carries a ``.envpull.yml`` listing named sources, and a
``.envpull.cache`` next to it remembering the last source and environment
used by a successful pull or push.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import jsonschema
import ruamel.yaml
from ruamel.yaml.error import YAMLError

from .config_schema import validate_cache, validate_config
from .errors import CacheError, ConfigError, ConfigNotFoundError

CONFIG_FILE_NAME = ".envpull.yml"
CACHE_FILE_NAME = ".envpull.cache"


@dataclass
class Source:
    """A named remote location for env files."""

    name: str
    bucket: str
    project: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {'name': self.name, 'bucket': self.bucket, 'project': self.project}


@dataclass
class Config:
    """Contents of .envpull.yml."""

    sources: List[Source] = field(default_factory=list)

    def get_source(self, name: str) -> Optional[Source]:
        """Return the first source with the given name, or None."""
        for source in self.sources:
            if source.name == name:
                return source
        return None

    def has_source(self, name: str) -> bool:
        return self.get_source(name) is not None

    def add_source(self, source: Source) -> None:
        self.sources.append(source)

    def remove_source(self, name: str) -> bool:
        """Remove a source by name, returning True if one was removed."""
        for i, source in enumerate(self.sources):
            if source.name == name:
                del self.sources[i]
                return True
        return False

    def source_names(self) -> List[str]:
        return [source.name for source in self.sources]


@dataclass
class Cache:
    """Last source and environment used by a successful pull or push."""

    last_source: str = ""
    last_env: str = ""


def _yaml() -> ruamel.yaml.YAML:
    yaml = ruamel.yaml.YAML()
    yaml.indent(mapping=2, sequence=4, offset=2)
    return yaml


def find_config_dir(start: Optional[str] = None) -> str:
    """
    Find the nearest directory containing .envpull.yml.

    Args:
        start: Directory to start from (defaults to the current directory)

    Returns:
        Absolute path of the directory holding the config file
    """
    start_dir = os.path.abspath(start or os.getcwd())
    current = start_dir
    while True:
        if os.path.isfile(os.path.join(current, CONFIG_FILE_NAME)):
            return current
        parent = os.path.dirname(current)
        if parent == current:
            raise ConfigNotFoundError(start_dir, CONFIG_FILE_NAME)
        current = parent


def config_exists(directory: str) -> bool:
    return os.path.isfile(os.path.join(directory, CONFIG_FILE_NAME))


def load_config(directory: str) -> Config:
    """
    Load and validate .envpull.yml from a directory.

    Args:
        directory: Directory holding the config file

    Returns:
        The parsed Config
    """
    path = os.path.join(directory, CONFIG_FILE_NAME)
    try:
        with open(path, 'r') as f:
            data = _yaml().load(f)
    except OSError as e:
        raise ConfigError(path, f"failed to read config file: {e}") from e
    except YAMLError as e:
        raise ConfigError(path, f"failed to parse config file: {e}") from e

    if data is None:
        data = {'sources': []}

    try:
        validate_config(data)
    except jsonschema.ValidationError as e:
        raise ConfigError(path, e.message) from e

    config = Config()
    for entry in data['sources']:
        name = entry['name']
        if config.has_source(name):
            raise ConfigError(path, f"duplicate source name '{name}'")
        config.add_source(Source(
            name=name,
            bucket=entry['bucket'],
            project=entry.get('project') or '',
        ))
    return config


def save_config(directory: str, config: Config) -> None:
    """Write a Config to .envpull.yml in the given directory."""
    path = os.path.join(directory, CONFIG_FILE_NAME)
    data = {'sources': [source.to_dict() for source in config.sources]}
    try:
        with open(path, 'w') as f:
            _yaml().dump(data, f)
    except OSError as e:
        raise ConfigError(path, f"failed to write config file: {e}") from e


def load_cache(directory: str) -> Cache:
    """
    Load .envpull.cache from a directory.

    A missing cache file is not an error and yields an empty Cache.
    """
    path = os.path.join(directory, CACHE_FILE_NAME)
    if not os.path.exists(path):
        return Cache()

    try:
        with open(path, 'r') as f:
            data = _yaml().load(f)
    except OSError as e:
        raise CacheError(path, f"failed to read cache file: {e}") from e
    except YAMLError as e:
        raise CacheError(path, f"failed to parse cache file: {e}") from e

    if data is None:
        return Cache()

    try:
        validate_cache(data)
    except jsonschema.ValidationError as e:
        raise CacheError(path, e.message) from e

    return Cache(
        last_source=data.get('last_source') or '',
        last_env=data.get('last_env') or '',
    )


def save_cache(directory: str, cache: Cache) -> None:
    """Write a Cache to .envpull.cache, leaving out empty fields."""
    path = os.path.join(directory, CACHE_FILE_NAME)
    data = {}
    if cache.last_source:
        data['last_source'] = cache.last_source
    if cache.last_env:
        data['last_env'] = cache.last_env
    try:
        with open(path, 'w') as f:
            _yaml().dump(data, f)
    except OSError as e:
        raise CacheError(path, f"failed to write cache file: {e}") from e
