from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from newsgate.config import FallbackConfig, GlobalConfig, ProviderConfig, Tier, normalise_provider_id


def test_provider_id_is_normalised(sample_provider_config) -> None:
    provider = sample_provider_config(provider_id="  dd   news ")
    assert provider.provider_id == "DD NEWS"
    assert provider.display_name == "Dd News"
    assert provider.tier is Tier.FAST
    assert normalise_provider_id("pib") == "PIB"


def test_provider_requires_candidate_urls(sample_provider_config) -> None:
    with pytest.raises(ValidationError):
        sample_provider_config(candidate_urls=[])
    with pytest.raises(ValidationError):
        sample_provider_config(deadline_seconds=0)
    with pytest.raises(ValidationError):
        sample_provider_config(max_records=0)
    with pytest.raises(ValidationError):
        sample_provider_config(item_selectors=[], link_fallback_selector=None)


def test_region_scoped_urls(sample_provider_config) -> None:
    provider = sample_provider_config(region_scoped_urls=["/India"])
    assert provider.is_region_scoped("https://news.example.com/india/latest")
    assert not provider.is_region_scoped("https://news.example.com/world")


def test_global_config_defaults_and_validation() -> None:
    config = GlobalConfig()
    assert config.cache_ttl_seconds == 600
    assert config.global_deadline_seconds == 50
    assert config.slow_tier_attempts == 3
    assert config.join_in_flight is False
    assert "pakistan" in config.keywords
    for field, value in (
        ("cache_ttl_seconds", 0),
        ("global_deadline_seconds", -1),
        ("slow_tier_attempts", 0),
        ("slow_tier_backoff_seconds", -0.5),
        ("warmup_interval_seconds", 0),
    ):
        with pytest.raises(ValidationError):
            GlobalConfig(**{field: value})


def test_global_config_provider_deadline(sample_provider_config) -> None:
    config = GlobalConfig(default_provider_deadline=9)
    assert config.provider_deadline(sample_provider_config()) == 9
    assert config.provider_deadline(sample_provider_config(deadline_seconds=20)) == 20


def test_global_config_supports_user_agent_file(tmp_path: Path) -> None:
    ua_file = tmp_path / "uas.txt"
    ua_file.write_text("UA-1\nUA-2\n", encoding="utf-8")
    config = GlobalConfig(user_agent_list=ua_file)
    assert config.user_agent_list == ["UA-1", "UA-2"]
    with pytest.raises(ValidationError):
        GlobalConfig(user_agent_list=tmp_path / "missing.txt")


def test_fallback_config_normalises_keys() -> None:
    config = FallbackConfig(providers={"dd news": [{"title": "T", "url": "https://dd.example.com/1"}], "pib": None})
    payload = config.as_payload()
    assert set(payload) == {"DD NEWS", "PIB"}
    assert payload["DD NEWS"][0]["title"] == "T"
    assert payload["PIB"] == []
