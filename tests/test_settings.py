from __future__ import annotations

import pytest

from heritagetrail.config.settings import get_logging_config, get_settings


@pytest.fixture(autouse=True)
def _fresh_settings():
    # get_settings() is cached; each test needs to see its own environment.
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_packaged_defaults_carry_the_visit_policy():
    settings = get_settings()

    assert settings.verification.radius_km == 0.1
    assert settings.verification.fetch_timeout_seconds == 10
    assert settings.app.timezone == "Asia/Manila"
    assert settings.visit_log.enabled is False


def test_env_overrides_apply_to_whitelisted_keys(monkeypatch):
    monkeypatch.setenv("HERITAGETRAIL_VISIT_RADIUS_KM", "0.25")
    monkeypatch.setenv("HERITAGETRAIL_LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("HERITAGETRAIL_STORAGE_DIR", "/tmp/heritagetrail-test")
    monkeypatch.setenv("HERITAGETRAIL_VISIT_LOG_URL", "https://collector.test/visits")

    settings = get_settings()

    assert settings.verification.radius_km == 0.25
    assert settings.app.log_level == "DEBUG"
    assert settings.storage.dir == "/tmp/heritagetrail-test"
    assert settings.visit_log.enabled is True
    assert settings.visit_log.url == "https://collector.test/visits"


def test_external_config_file_replaces_packaged_defaults(monkeypatch, tmp_path):
    config = tmp_path / "heritagetrail.yaml"
    config.write_text("verification:\n  radius_km: 0.05\ncatalog:\n  path: other/sites.json\n", encoding="utf-8")
    monkeypatch.setenv("HERITAGETRAIL_CONFIG_PATH", str(config))

    settings = get_settings()

    assert settings.verification.radius_km == 0.05
    assert settings.catalog.path == "other/sites.json"
    assert settings.app.name == "HeritageTrail"


def test_non_mapping_config_file_is_rejected(monkeypatch, tmp_path):
    config = tmp_path / "broken.yaml"
    config.write_text("- just\n- a list\n", encoding="utf-8")
    monkeypatch.setenv("HERITAGETRAIL_CONFIG_PATH", str(config))

    with pytest.raises(ValueError, match="expected a mapping"):
        get_settings()


def test_logging_config_is_a_dict_config():
    config = get_logging_config()
    assert config["version"] == 1
    assert "console" in config["handlers"]
