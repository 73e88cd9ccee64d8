import copy
from pathlib import Path

import yaml
from jsonschema import ValidationError as JsonSchemaValidationError
from jsonschema import validate

from .exceptions import ConfigurationError

CONFIG_FILE = "gitflow.yaml"
CONFIG_SECTION = "gitflow"

DEFAULT_COMMIT_MESSAGES = {
    "release_start": "updating versions for release",
    "release_candidate": "updating versions for release candidate",
    "update_version": "updating for next development version",
}

DEFAULT_CONFIG = {
    "origin": "origin",
    "production_branch": "master",
    "development_branch": "develop",
    "feature_branch_prefix": "feature/",
    "release_branch_prefix": "release/",
    "hotfix_branch_prefix": "hotfix/",
    "support_branch_prefix": "support/",
    "version_tag_prefix": "",
    "same_branch_name": False,
    "release_version": "",
    "use_release_candidate": False,
    "allow_snapshots": False,
    "fetch_remote": True,
    "install_project": False,
    "tycho_build": False,
    "mvn_executable": "mvn",
    "arg_line": "",
    "commit_messages": DEFAULT_COMMIT_MESSAGES,
}

_STRING = {"type": "string"}
_BOOLEAN = {"type": "boolean"}

CONFIG_SCHEMA = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "origin": {"type": "string", "minLength": 1},
        "production_branch": {"type": "string", "minLength": 1},
        "development_branch": {"type": "string", "minLength": 1},
        "feature_branch_prefix": _STRING,
        "release_branch_prefix": _STRING,
        "hotfix_branch_prefix": _STRING,
        "support_branch_prefix": _STRING,
        "version_tag_prefix": _STRING,
        "same_branch_name": _BOOLEAN,
        # Quote numeric versions in YAML: 1.10 would load as the float 1.1.
        "release_version": _STRING,
        "use_release_candidate": _BOOLEAN,
        "allow_snapshots": _BOOLEAN,
        "fetch_remote": _BOOLEAN,
        "install_project": _BOOLEAN,
        "tycho_build": _BOOLEAN,
        "mvn_executable": {"type": "string", "minLength": 1},
        "arg_line": _STRING,
        "commit_messages": {
            "type": "object",
            "additionalProperties": False,
            "properties": {key: {"type": "string", "minLength": 1} for key in DEFAULT_COMMIT_MESSAGES},
        },
    },
}


def load_yaml(path: Path):
    """Loads a YAML file."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            content = f.read()
            if not content.strip():
                return None
            return yaml.safe_load(content)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Configuration file not found at: {path}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"YAML syntax error in {path}: {e}") from e


def build_config(settings=None, overrides=None):
    """
    Validates the settings mapping and merges it, then the overrides, over the defaults.
    Overrides with a value of None are ignored.
    """
    settings = settings or {}
    try:
        validate(instance=settings, schema=CONFIG_SCHEMA)
    except JsonSchemaValidationError as e:
        location = ".".join(str(p) for p in e.absolute_path) or CONFIG_SECTION
        raise ConfigurationError(f"Invalid configuration at '{location}': {e.message}") from e

    config = copy.deepcopy(DEFAULT_CONFIG)
    for key, value in settings.items():
        if key == "commit_messages":
            config["commit_messages"].update(value)
        else:
            config[key] = value
    for key, value in (overrides or {}).items():
        if value is not None:
            config[key] = value
    return config


def load_config(path: Path = None, overrides=None):
    """
    Loads the 'gitflow' section of the configuration file.
    Without an explicit path, a missing gitflow.yaml in the working directory means all defaults.
    """
    if path is None:
        path = Path(CONFIG_FILE)
        if not path.exists():
            return build_config({}, overrides)
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found at: {path}")

    data = load_yaml(path) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file {path} must contain a mapping.")
    settings = data.get(CONFIG_SECTION) or {}
    if not isinstance(settings, dict):
        raise ConfigurationError(f"'{CONFIG_SECTION}' in {path} must be a mapping.")
    return build_config(settings, overrides)
