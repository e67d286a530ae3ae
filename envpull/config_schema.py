"""
Configuration schemas for envpull.

This module defines the expected structure of the per-repository
``.envpull.yml`` configuration and the ``.envpull.cache`` last-used file.
"""

import jsonschema
from typing import Dict, Any


CONFIG_SCHEMA = {
    "type": "object",
    "required": ["sources"],
    "properties": {
        "sources": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["name", "bucket"],
                "properties": {
                    "name": {
                        "type": "string",
                        "minLength": 1,
                        "description": "Name used to refer to the source on the command line"
                    },
                    "bucket": {
                        "type": "string",
                        "minLength": 1,
                        "description": "GCS bucket, with or without the gs:// prefix"
                    },
                    "project": {
                        "type": "string",
                        "description": "GCP project that owns the bucket"
                    }
                }
            }
        }
    }
}


CACHE_SCHEMA = {
    "type": "object",
    "properties": {
        "last_source": {"type": "string"},
        "last_env": {"type": "string"}
    }
}


def validate_config(config: Dict[str, Any]) -> bool:
    """
    Validate the configuration against the schema.

    Args:
        config: Configuration dictionary to validate

    Returns:
        True if valid, raises jsonschema.ValidationError otherwise
    """
    jsonschema.validate(instance=config, schema=CONFIG_SCHEMA)
    return True


def validate_cache(cache: Dict[str, Any]) -> bool:
    """
    Validate the cache file content against the schema.

    Args:
        cache: Cache dictionary to validate

    Returns:
        True if valid, raises jsonschema.ValidationError otherwise
    """
    jsonschema.validate(instance=cache, schema=CACHE_SCHEMA)
    return True
