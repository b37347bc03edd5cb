#!/usr/bin/env python3
"""
Test suite for the configuration schema.

Tests the JSON Schema that documents the style checker's YAML config.
"""

import json
import pytest
from pathlib import Path
from jsonschema import validate, ValidationError, Draft7Validator
from check_style import DEFAULT_SETTINGS


# Load schema once at module level
SCHEMA_PATH = Path(__file__).parent / "config_schema.json"
with open(SCHEMA_PATH) as f:
    CONFIG_SCHEMA = json.load(f)


def test_schema_is_valid_json_schema():
    """Config schema itself must be a valid JSON Schema Draft 7."""
    Draft7Validator.check_schema(CONFIG_SCHEMA)


def test_minimal_valid_config():
    """Minimal config with only schema_version."""
    validate(instance={"schema_version": 1}, schema=CONFIG_SCHEMA)


def test_default_settings_are_valid():
    """Built-in defaults must satisfy the schema."""
    validate(instance=DEFAULT_SETTINGS, schema=CONFIG_SCHEMA)


def test_schema_version_required():
    """schema_version field is required."""
    with pytest.raises(ValidationError) as exc_info:
        validate(instance={"maximum-line-length": 80}, schema=CONFIG_SCHEMA)
    assert "schema_version" in str(exc_info.value).lower()


@pytest.mark.parametrize("version", ["1", 2, 0])
def test_schema_version_must_be_one(version):
    """schema_version must be the integer 1."""
    with pytest.raises(ValidationError):
        validate(instance={"schema_version": version}, schema=CONFIG_SCHEMA)


@pytest.mark.parametrize("value", [1, 2, 4, "consistent", False])
def test_blockquote_indentation_accepted(value):
    """Positive integers, 'consistent' and false are accepted."""
    validate(instance={"schema_version": 1, "blockquote-indentation": value}, schema=CONFIG_SCHEMA)


@pytest.mark.parametrize("value", [0, -1, "wide", True, 2.5, None])
def test_blockquote_indentation_rejected(value):
    """Anything else is rejected."""
    with pytest.raises(ValidationError):
        validate(instance={"schema_version": 1, "blockquote-indentation": value}, schema=CONFIG_SCHEMA)


@pytest.mark.parametrize("value", [40, 80, 120, True, False])
def test_maximum_line_length_accepted(value):
    """Positive integers and booleans are accepted."""
    validate(instance={"schema_version": 1, "maximum-line-length": value}, schema=CONFIG_SCHEMA)


@pytest.mark.parametrize("value", [0, -80, "80", None])
def test_maximum_line_length_rejected(value):
    """Anything else is rejected."""
    with pytest.raises(ValidationError):
        validate(instance={"schema_version": 1, "maximum-line-length": value}, schema=CONFIG_SCHEMA)


def test_unknown_rule_rejected():
    """Unknown keys are rejected."""
    with pytest.raises(ValidationError):
        validate(instance={"schema_version": 1, "heading-style": "atx"}, schema=CONFIG_SCHEMA)
