from assetdock.rules.loader import load_rules, load_rules_from_env
from assetdock.rules.models import AssetRules

__all__ = ["AssetRules", "load_rules", "load_rules_from_env"]
