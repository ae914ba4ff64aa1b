"""
Unit tests for rules loading and environment overrides.
"""

from pathlib import Path

import pytest

from assetdock.rules import load_rules, load_rules_from_env
from assetdock.rules.models import AssetRules

SAMPLE_RULES = Path(__file__).resolve().parents[2] / "assetdock.yaml"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("ASSETDOCK_RULES", "ASSETDOCK_STORAGE_ROOT", "ASSETDOCK_TEMP_URL_SECRET"):
        monkeypatch.delenv(name, raising=False)


class TestLoadRules:
    def test_sample_rules_file(self):
        rules = load_rules(SAMPLE_RULES)

        assert rules.variants.max_attempts == 2
        assert rules.variants.persist_partial_variants is False
        assert rules.pending.default_ttl_seconds == 86400
        assert rules.collections["avatars"].single_file is True
        assert rules.collections["attachments"].visibility == "private"
        assert rules.collections["attachments"].keep_latest == 10

    def test_defaults(self):
        rules = AssetRules()

        assert rules.storage.pending_dir == "assets_pending"
        assert rules.pending.token.provider == "session"
        assert rules.pending.token.ttl_seconds == 604800
        assert rules.pending.token.length_bytes == 16
        assert rules.variants.queue_name == "asset_queue"
        assert rules.variants.retry_after_seconds == 60
        assert rules.variants.gc_batch_size == 1000

    def test_empty_file_means_defaults(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text("")
        assert load_rules(path) == AssetRules()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_rules(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text("variants: [unclosed")
        with pytest.raises(ValueError, match="Invalid YAML"):
            load_rules(path)

    @pytest.mark.parametrize(
        "content",
        [
            "pending:\n  token:\n    length_bytes: 65\n",
            "pending:\n  token:\n    provider: carrier-pigeon\n",
            "variants:\n  max_attempts: 0\n",
            "collections:\n  docs:\n    keep_latest: 0\n",
        ],
    )
    def test_schema_violations(self, tmp_path, content):
        path = tmp_path / "rules.yaml"
        path.write_text(content)
        with pytest.raises(ValueError, match="Rules validation failed"):
            load_rules(path)


class TestEnvOverrides:
    def test_storage_root_and_secret(self, tmp_path, monkeypatch):
        path = tmp_path / "rules.yaml"
        path.write_text("storage:\n  root: /srv/assets\n")
        monkeypatch.setenv("ASSETDOCK_STORAGE_ROOT", "/data/assets")
        monkeypatch.setenv("ASSETDOCK_TEMP_URL_SECRET", "s3cret")

        rules = load_rules(path)

        assert rules.storage.root == "/data/assets"
        assert rules.temp_urls.secret_key == "s3cret"

    def test_rules_path_from_env(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.yaml"
        path.write_text("variants:\n  run_on_queue: false\n")
        monkeypatch.setenv("ASSETDOCK_RULES", str(path))

        assert load_rules_from_env().variants.run_on_queue is False

    def test_missing_default_file_gives_defaults(self, tmp_path):
        rules = load_rules_from_env(str(tmp_path / "absent.yaml"))
        assert rules == AssetRules()
