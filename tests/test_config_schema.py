"""
Test for config_schema module.

Testing schema validation because invalid configs are like typos in production -
they only hurt when customers find them.
"""

import unittest
import jsonschema
from envpull.config_schema import validate_config, validate_cache, CONFIG_SCHEMA, CACHE_SCHEMA


class TestConfigSchema(unittest.TestCase):
    """Test configuration schema validation."""

    def test_valid_config_passes_validation(self):
        """Test that a valid configuration passes validation."""
        valid_config = {
            "sources": [
                {
                    "name": "simon",
                    "bucket": "gs://simon-envs",
                    "project": "simon-project"
                }
            ]
        }
        self.assertTrue(validate_config(valid_config))

    def test_missing_sources_fails(self):
        """Test that missing sources fails validation."""
        with self.assertRaises(jsonschema.ValidationError) as context:
            validate_config({})
        self.assertIn("'sources' is a required property", str(context.exception))

    def test_empty_sources_is_valid(self):
        """Test that an empty sources list is valid."""
        self.assertTrue(validate_config({"sources": []}))

    def test_missing_bucket_fails(self):
        """Test that a source without bucket fails validation."""
        with self.assertRaises(jsonschema.ValidationError) as context:
            validate_config({"sources": [{"name": "simon"}]})
        self.assertIn("'bucket' is a required property", str(context.exception))

    def test_empty_name_fails(self):
        """Test that an empty source name fails validation."""
        with self.assertRaises(jsonschema.ValidationError):
            validate_config({"sources": [{"name": "", "bucket": "b"}]})

    def test_project_is_optional(self):
        """Test that project may be left out."""
        self.assertTrue(validate_config({"sources": [{"name": "a", "bucket": "b"}]}))

    def test_non_string_bucket_fails(self):
        """Test that a non-string bucket fails validation."""
        with self.assertRaises(jsonschema.ValidationError) as context:
            validate_config({"sources": [{"name": "a", "bucket": 123}]})
        self.assertIn("123 is not of type 'string'", str(context.exception))

    def test_sources_must_be_array(self):
        """Test that a mapping of sources is rejected."""
        with self.assertRaises(jsonschema.ValidationError):
            validate_config({"sources": {"simon": {"bucket": "b"}}})

    def test_additional_properties_allowed(self):
        """Test that unknown keys are tolerated."""
        config = {
            "sources": [{"name": "a", "bucket": "b", "description": "shared"}],
            "extra_top_level": "fine"
        }
        self.assertTrue(validate_config(config))

    def test_cache_schema(self):
        """Test cache validation."""
        self.assertTrue(validate_cache({"last_source": "simon", "last_env": "prod"}))
        self.assertTrue(validate_cache({}))
        with self.assertRaises(jsonschema.ValidationError):
            validate_cache({"last_source": ["simon"]})

    def test_schema_constants(self):
        """Test that the schema constants are properly defined."""
        self.assertEqual(CONFIG_SCHEMA["type"], "object")
        self.assertIn("sources", CONFIG_SCHEMA["required"])
        self.assertEqual(CACHE_SCHEMA["type"], "object")


if __name__ == '__main__':
    unittest.main()
