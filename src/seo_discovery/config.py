from dotenv import load_dotenv
from dataclasses import dataclass
from pathlib import Path
import json
import os

from seo_discovery.constants import (
    DEFAULT_USER_AGENT,
    PAGE_FETCH_TIMEOUT_SECONDS,
    SITEMAP_FETCH_TIMEOUT_SECONDS,
    ROBOTS_FETCH_TIMEOUT_SECONDS,
    DEFAULT_MAX_PAGES_TO_CRAWL,
    DEFAULT_MAX_CRAWL_DEPTH,
    DEFAULT_MAX_LINKS_PER_PAGE,
    DEFAULT_BATCH_SIZE,
    DEFAULT_BATCH_DELAY_SECONDS,
    DEEP_PAGE_DEPTH,
    OVER_OPTIMIZED_ANCHOR_COUNT,
    MIN_DEEP_LINK_RATIO,
)

load_dotenv()  # Loads variables from .env file


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """
    Manages application settings loaded from environment variables.
    """
    USER_AGENT = os.getenv("USER_AGENT", DEFAULT_USER_AGENT)
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE = os.getenv("LOG_FILE")


settings = Settings()


@dataclass
class DiscoveryConfig:
    """Configuration for one discovery session."""
    user_agent: str = DEFAULT_USER_AGENT
    page_timeout: float = PAGE_FETCH_TIMEOUT_SECONDS
    sitemap_timeout: float = SITEMAP_FETCH_TIMEOUT_SECONDS
    robots_timeout: float = ROBOTS_FETCH_TIMEOUT_SECONDS
    max_pages: int = DEFAULT_MAX_PAGES_TO_CRAWL
    max_depth: int = DEFAULT_MAX_CRAWL_DEPTH
    max_links_per_page: int = DEFAULT_MAX_LINKS_PER_PAGE
    batch_size: int = DEFAULT_BATCH_SIZE
    batch_delay: float = DEFAULT_BATCH_DELAY_SECONDS
    render_first_page: bool = False
    respect_robots: bool = True
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "DiscoveryConfig":
        """Load configuration from environment variables.

        Returns:
            DiscoveryConfig: Configuration instance with values from environment
        """
        return cls(
            user_agent=os.getenv("USER_AGENT", DEFAULT_USER_AGENT),
            page_timeout=float(os.getenv("SEO_DISCOVERY_PAGE_TIMEOUT", str(PAGE_FETCH_TIMEOUT_SECONDS))),
            sitemap_timeout=float(os.getenv("SEO_DISCOVERY_SITEMAP_TIMEOUT", str(SITEMAP_FETCH_TIMEOUT_SECONDS))),
            robots_timeout=float(os.getenv("SEO_DISCOVERY_ROBOTS_TIMEOUT", str(ROBOTS_FETCH_TIMEOUT_SECONDS))),
            max_pages=int(os.getenv("SEO_DISCOVERY_MAX_PAGES", str(DEFAULT_MAX_PAGES_TO_CRAWL))),
            max_depth=int(os.getenv("SEO_DISCOVERY_MAX_DEPTH", str(DEFAULT_MAX_CRAWL_DEPTH))),
            max_links_per_page=int(os.getenv("SEO_DISCOVERY_MAX_LINKS_PER_PAGE", str(DEFAULT_MAX_LINKS_PER_PAGE))),
            batch_size=int(os.getenv("SEO_DISCOVERY_BATCH_SIZE", str(DEFAULT_BATCH_SIZE))),
            batch_delay=float(os.getenv("SEO_DISCOVERY_BATCH_DELAY", str(DEFAULT_BATCH_DELAY_SECONDS))),
            render_first_page=_env_bool("SEO_DISCOVERY_RENDER_FIRST_PAGE", False),
            respect_robots=_env_bool("SEO_DISCOVERY_RESPECT_ROBOTS", True),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )


@dataclass
class LinkThresholds:
    """Configurable thresholds for link graph analysis."""

    # Clicks from the homepage above which a page is "deep"
    deep_page_depth: int = DEEP_PAGE_DEPTH

    # Uses of one anchor text for one target before it counts as over-optimized
    over_optimized_anchor_count: int = OVER_OPTIMIZED_ANCHOR_COUNT

    # Share of internal links that should point past the homepage
    min_deep_link_ratio: float = MIN_DEEP_LINK_RATIO

    @classmethod
    def from_env(cls) -> "LinkThresholds":
        """Load thresholds from environment variables.

        Environment variables should be prefixed with SEO_LINK_THRESHOLD_
        e.g., SEO_LINK_THRESHOLD_DEEP_PAGE_DEPTH=4

        Returns:
            LinkThresholds with values from environment
        """
        thresholds = cls()
        prefix = "SEO_LINK_THRESHOLD_"

        for field_name in thresholds.__dataclass_fields__:
            env_key = f"{prefix}{field_name.upper()}"
            env_value = os.getenv(env_key)

            if env_value is not None:
                field_type = thresholds.__dataclass_fields__[field_name].type
                try:
                    if field_type in (int, "int"):
                        setattr(thresholds, field_name, int(env_value))
                    elif field_type in (float, "float"):
                        setattr(thresholds, field_name, float(env_value))
                except ValueError:
                    pass  # Keep default if conversion fails

        return thresholds

    @classmethod
    def from_file(cls, path: str) -> "LinkThresholds":
        """Load thresholds from a JSON configuration file.

        Args:
            path: Path to JSON configuration file

        Returns:
            LinkThresholds with values from file
        """
        thresholds = cls()
        file_path = Path(path)

        if not file_path.exists():
            return thresholds

        with open(file_path, 'r') as f:
            config = json.load(f)

        threshold_config = config.get('thresholds', config)

        for field_name in thresholds.__dataclass_fields__:
            if field_name in threshold_config:
                setattr(thresholds, field_name, threshold_config[field_name])

        return thresholds

    def to_dict(self) -> dict:
        """Convert thresholds to dictionary.

        Returns:
            Dictionary of all threshold values
        """
        return {
            field_name: getattr(self, field_name)
            for field_name in self.__dataclass_fields__
        }

    def save_to_file(self, path: str) -> None:
        """Save current thresholds to a JSON file.

        Args:
            path: Path to save configuration
        """
        with open(path, 'w') as f:
            json.dump({'thresholds': self.to_dict()}, f, indent=2)


# Global default thresholds instance
default_thresholds = LinkThresholds()
