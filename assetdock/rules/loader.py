import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from assetdock.rules.models import AssetRules

RULES_ENV = "ASSETDOCK_RULES"
STORAGE_ROOT_ENV = "ASSETDOCK_STORAGE_ROOT"
TEMP_URL_SECRET_ENV = "ASSETDOCK_TEMP_URL_SECRET"


def load_rules(path: Path) -> AssetRules:
    """
    Load and validate the rules file.
    Raises FileNotFoundError if file missing.
    Raises ValueError if the YAML or the schema is invalid.
    """
    if not path.exists():
        raise FileNotFoundError(f"Rules file not found at: {path}")

    with open(path) as f:
        content = f.read()

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax in rules file: {e}") from e

    # An empty file means all defaults
    if data is None:
        data = {}

    try:
        rules = AssetRules.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Rules validation failed:\n{e}") from e

    return apply_env_overrides(rules)


def apply_env_overrides(rules: AssetRules) -> AssetRules:
    """Environment variables win over file values for deploy-specific settings."""
    storage_root = os.environ.get(STORAGE_ROOT_ENV)
    if storage_root:
        rules.storage.root = storage_root

    secret = os.environ.get(TEMP_URL_SECRET_ENV)
    if secret:
        rules.temp_urls.secret_key = secret

    return rules


def load_rules_from_env(default_path: str = "assetdock.yaml") -> AssetRules:
    """Load the rules file named by ASSETDOCK_RULES, or defaults if absent."""
    path = Path(os.environ.get(RULES_ENV, default_path))
    if not path.exists():
        return apply_env_overrides(AssetRules())
    return load_rules(path)
