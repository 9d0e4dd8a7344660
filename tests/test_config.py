"""Tests for configuration loading."""

import json

from seo_discovery.config import DiscoveryConfig, LinkThresholds
from seo_discovery.constants import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_MAX_PAGES_TO_CRAWL,
    DEEP_PAGE_DEPTH,
    MIN_DEEP_LINK_RATIO,
)


class TestDiscoveryConfig:
    """Test cases for DiscoveryConfig."""

    def test_defaults(self):
        """Defaults come from constants."""
        config = DiscoveryConfig()

        assert config.max_pages == DEFAULT_MAX_PAGES_TO_CRAWL
        assert config.batch_size == DEFAULT_BATCH_SIZE
        assert config.page_timeout == 10.0
        assert config.robots_timeout == 5.0
        assert config.respect_robots is True
        assert config.render_first_page is False

    def test_from_env(self, monkeypatch):
        """SEO_DISCOVERY_* variables override defaults."""
        monkeypatch.setenv("SEO_DISCOVERY_MAX_PAGES", "20")
        monkeypatch.setenv("SEO_DISCOVERY_BATCH_DELAY", "1.5")
        monkeypatch.setenv("SEO_DISCOVERY_RESPECT_ROBOTS", "false")
        monkeypatch.setenv("SEO_DISCOVERY_RENDER_FIRST_PAGE", "yes")
        monkeypatch.setenv("USER_AGENT", "TestBot/2.0")

        config = DiscoveryConfig.from_env()

        assert config.max_pages == 20
        assert config.batch_delay == 1.5
        assert config.respect_robots is False
        assert config.render_first_page is True
        assert config.user_agent == "TestBot/2.0"


class TestLinkThresholds:
    """Test cases for LinkThresholds."""

    def test_defaults(self):
        """Defaults come from constants."""
        thresholds = LinkThresholds()

        assert thresholds.deep_page_depth == DEEP_PAGE_DEPTH
        assert thresholds.min_deep_link_ratio == MIN_DEEP_LINK_RATIO

    def test_from_env(self, monkeypatch):
        """SEO_LINK_THRESHOLD_* variables override defaults; bad values are ignored."""
        monkeypatch.setenv("SEO_LINK_THRESHOLD_DEEP_PAGE_DEPTH", "4")
        monkeypatch.setenv("SEO_LINK_THRESHOLD_MIN_DEEP_LINK_RATIO", "0.5")
        monkeypatch.setenv("SEO_LINK_THRESHOLD_OVER_OPTIMIZED_ANCHOR_COUNT", "lots")

        thresholds = LinkThresholds.from_env()

        assert thresholds.deep_page_depth == 4
        assert thresholds.min_deep_link_ratio == 0.5
        assert thresholds.over_optimized_anchor_count == 5

    def test_file_round_trip(self, tmp_path):
        """Saved thresholds load back unchanged."""
        path = tmp_path / "thresholds.json"
        LinkThresholds(deep_page_depth=6).save_to_file(str(path))

        assert json.loads(path.read_text())["thresholds"]["deep_page_depth"] == 6
        assert LinkThresholds.from_file(str(path)).deep_page_depth == 6

    def test_from_missing_file(self, tmp_path):
        """A missing file gives the defaults."""
        thresholds = LinkThresholds.from_file(str(tmp_path / "nope.json"))

        assert thresholds.to_dict() == LinkThresholds().to_dict()
