"""
Test for config module.

Config and cache files are where a tool remembers things; forgetting
the wrong thing silently is worse than forgetting everything loudly.
"""

import os

import pytest

from envpull.config import (
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
from envpull.errors import CacheError, ConfigError, ConfigNotFoundError


class TestFindConfigDir:
    """Test locating .envpull.yml."""

    def test_finds_config_in_start_dir(self, project_dir):
        assert find_config_dir(project_dir) == os.path.abspath(project_dir)

    def test_walks_up_to_parent(self, project_dir):
        nested = os.path.join(project_dir, "src", "app")
        os.makedirs(nested)
        assert find_config_dir(nested) == os.path.abspath(project_dir)

    def test_missing_config_raises(self, temp_dir):
        with pytest.raises(ConfigNotFoundError) as exc_info:
            find_config_dir(temp_dir)
        assert "envpull init" in str(exc_info.value)

    def test_config_exists(self, project_dir):
        assert config_exists(project_dir)


class TestLoadConfig:
    """Test reading .envpull.yml."""

    def test_loads_sources_in_order(self, project_dir):
        config = load_config(project_dir)
        assert config.source_names() == ["simon", "team"]
        assert config.get_source("simon") == Source("simon", "gs://simon-envs", "simon-project")

    def test_empty_file_has_no_sources(self, temp_dir):
        open(os.path.join(temp_dir, CONFIG_FILE_NAME), 'w').close()
        assert load_config(temp_dir).sources == []

    def test_missing_project_defaults_to_empty(self, temp_dir):
        with open(os.path.join(temp_dir, CONFIG_FILE_NAME), 'w') as f:
            f.write("sources:\n  - name: a\n    bucket: b\n")
        assert load_config(temp_dir).get_source("a").project == ""

    def test_invalid_yaml_raises_config_error(self, temp_dir):
        with open(os.path.join(temp_dir, CONFIG_FILE_NAME), 'w') as f:
            f.write("sources: [unclosed\n")
        with pytest.raises(ConfigError) as exc_info:
            load_config(temp_dir)
        assert "failed to parse config file" in str(exc_info.value)

    def test_schema_violation_raises_config_error(self, temp_dir):
        with open(os.path.join(temp_dir, CONFIG_FILE_NAME), 'w') as f:
            f.write("sources:\n  - name: a\n")
        with pytest.raises(ConfigError) as exc_info:
            load_config(temp_dir)
        assert "'bucket' is a required property" in str(exc_info.value)

    def test_duplicate_names_are_rejected(self, temp_dir):
        with open(os.path.join(temp_dir, CONFIG_FILE_NAME), 'w') as f:
            f.write("sources:\n  - name: a\n    bucket: b\n  - name: a\n    bucket: c\n")
        with pytest.raises(ConfigError) as exc_info:
            load_config(temp_dir)
        assert "duplicate source name 'a'" in str(exc_info.value)

    def test_missing_file_raises_config_error(self, temp_dir):
        with pytest.raises(ConfigError):
            load_config(temp_dir)


class TestConfigModel:
    """Test the Config helpers."""

    def test_add_and_remove(self):
        config = Config()
        config.add_source(Source("a", "b"))
        assert config.has_source("a")
        assert config.remove_source("a")
        assert not config.remove_source("a")
        assert config.get_source("a") is None


class TestSaveConfig:
    """Test writing .envpull.yml."""

    def test_save_and_reload(self, temp_dir):
        config = Config(sources=[Source("simon", "gs://x", "p1"), Source("team", "y", "p2")])
        save_config(temp_dir, config)
        assert load_config(temp_dir) == config

    def test_saved_layout(self, temp_dir):
        save_config(temp_dir, Config(sources=[Source("simon", "gs://x", "p1")]))
        with open(os.path.join(temp_dir, CONFIG_FILE_NAME)) as f:
            content = f.read()
        assert content == "sources:\n  - name: simon\n    bucket: gs://x\n    project: p1\n"


class TestCache:
    """Test reading and writing .envpull.cache."""

    def test_missing_cache_is_empty(self, temp_dir):
        assert load_cache(temp_dir) == Cache()

    def test_save_and_load(self, temp_dir):
        save_cache(temp_dir, Cache(last_source="simon", last_env="prod"))
        assert load_cache(temp_dir) == Cache(last_source="simon", last_env="prod")

    def test_empty_fields_are_not_written(self, temp_dir):
        save_cache(temp_dir, Cache(last_source="simon"))
        with open(os.path.join(temp_dir, CACHE_FILE_NAME)) as f:
            content = f.read()
        assert "last_env" not in content
        assert "last_source: simon" in content

    def test_empty_cache_file(self, temp_dir):
        open(os.path.join(temp_dir, CACHE_FILE_NAME), 'w').close()
        assert load_cache(temp_dir) == Cache()

    def test_corrupt_cache_raises_cache_error(self, temp_dir):
        with open(os.path.join(temp_dir, CACHE_FILE_NAME), 'w') as f:
            f.write("last_source: [a, b]\n")
        with pytest.raises(CacheError):
            load_cache(temp_dir)

    def test_save_failure_raises_cache_error(self, temp_dir):
        os.makedirs(os.path.join(temp_dir, CACHE_FILE_NAME))
        with pytest.raises(CacheError):
            save_cache(temp_dir, Cache(last_source="simon"))
