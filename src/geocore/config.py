"""geocore configuration using pydantic-settings.

All configuration is strongly typed and supports environment variables
and .env files.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict

# R*-tree nodes below this capacity cannot be split into two legal halves.
_MIN_NODE_CAPACITY = 4


class ConfigError(Exception):
    """Raised when configuration values are missing or inconsistent.

    Example:
        >>> Settings(_env_file=None, INDEX_MAX_ENTRIES=2).index_min_entries()
        Traceback (most recent call last):
        ...
        ConfigError: INDEX_MAX_ENTRIES must be at least 4, got 2.
    """

    def __init__(self, key_name: str, detail: str) -> None:
        """Initialize configuration error.

        Args:
            key_name: Name of the offending setting.
            detail: What is wrong with it.
        """
        self.key_name = key_name
        self.detail = detail
        super().__init__(f"{key_name} {detail}.")


class Settings(BaseSettings):
    """Application settings loaded from environment variables or .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "console"  # "console" or "json"

    # Geometry
    DEFAULT_SRID: int = 4326  # WGS84

    # Spatial index (R*-tree)
    INDEX_MAX_ENTRIES: int = 16  # M: node capacity
    INDEX_MIN_FILL: float = 0.4  # m = M * fill, R* paper recommends 40%
    INDEX_REINSERT_FRACTION: float = 0.3  # p: share of entries force-reinserted

    def index_min_entries(self) -> int:
        """Return the minimum node fill m derived from M and the fill ratio.

        Returns:
            Minimum number of entries per non-root node.

        Raises:
            ConfigError: If M is too small or the fill ratio is out of range.
        """
        if self.INDEX_MAX_ENTRIES < _MIN_NODE_CAPACITY:
            raise ConfigError(
                "INDEX_MAX_ENTRIES",
                f"must be at least {_MIN_NODE_CAPACITY}, got {self.INDEX_MAX_ENTRIES}",
            )
        if not 0.0 < self.INDEX_MIN_FILL <= 0.5:
            raise ConfigError(
                "INDEX_MIN_FILL",
                f"must be in (0, 0.5], got {self.INDEX_MIN_FILL}",
            )
        return max(2, int(self.INDEX_MAX_ENTRIES * self.INDEX_MIN_FILL))

    def index_reinsert_count(self) -> int:
        """Return how many entries an overflowing node force-reinserts.

        Raises:
            ConfigError: If the reinsert fraction is out of range.
        """
        if not 0.0 <= self.INDEX_REINSERT_FRACTION < 1.0:
            raise ConfigError(
                "INDEX_REINSERT_FRACTION",
                f"must be in [0, 1), got {self.INDEX_REINSERT_FRACTION}",
            )
        return int((self.INDEX_MAX_ENTRIES + 1) * self.INDEX_REINSERT_FRACTION)


# Singleton instance for import convenience
settings = Settings()
