"""
Application configuration using pydantic-settings.
Loads environment variables from the .env file.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from the environment / .env"""

    # Database
    database_path: str = "./data/storytags.db"

    # Tag discovery
    tag_page_size: int = 24
    related_tags_search_limit: int = 20
    related_tags_default_limit: int = 10
    related_tags_max_limit: int = 50

    # Above this many candidate novels, co-occurrence is counted by the database
    related_in_memory_threshold: int = 200

    # Tag browsing
    popular_tags_default_limit: int = 15
    popular_tags_max_limit: int = 50
    suggest_tags_default_limit: int = 10
    suggest_tags_max_limit: int = 20

    # Rate limiting HTTP
    search_rate_limit: str = "120/minute"

    # Logging
    log_level: str = "INFO"
    log_file: str = "./data/app.log"

    # Security
    cors_origins: str = "http://localhost:3000"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def __init__(self, **kwargs):
        """Validate pagination and limit settings"""
        super().__init__(**kwargs)

        if self.tag_page_size < 1:
            raise ValueError(
                f"TAG_PAGE_SIZE must be at least 1. Current value: {self.tag_page_size}"
            )

        if self.related_tags_default_limit > self.related_tags_max_limit:
            raise ValueError(
                f"RELATED_TAGS_DEFAULT_LIMIT ({self.related_tags_default_limit}) "
                f"cannot exceed RELATED_TAGS_MAX_LIMIT ({self.related_tags_max_limit})"
            )

    @property
    def database_url(self) -> str:
        """SQLAlchemy URL for the configured SQLite file."""
        return f"sqlite:///{self.database_path}"


# Global configuration instance
settings = Settings()
