"""
Configuration settings for the application.
"""

import logging
import os

from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    # Environment
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    # Redis document store settings
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    STORE_KEY_PREFIX: str = os.getenv("STORE_KEY_PREFIX", "phoneshop:")
    # Comma separated "collection:field+field:orderField" entries. Empty means
    # every ordered query is allowed.
    STORE_ORDERED_INDEXES: str = os.getenv("STORE_ORDERED_INDEXES", "")

    # Collections
    PRODUCTS_COLLECTION: str = os.getenv("PRODUCTS_COLLECTION", "PhoneDB")
    FAVORITES_COLLECTION: str = os.getenv("FAVORITES_COLLECTION", "favorites")
    REVIEWS_COLLECTION: str = os.getenv("REVIEWS_COLLECTION", "reviews")
    ORDERS_COLLECTION: str = os.getenv("ORDERS_COLLECTION", "orders")

    # Catalog cache
    CATALOG_TTL_SECONDS: float = float(os.getenv("CATALOG_TTL_SECONDS", "60"))
    CATALOG_ALLOW_EMPTY: bool = (
        os.getenv("CATALOG_ALLOW_EMPTY", "false").lower() == "true"
    )

    @property
    def is_production(self) -> bool:
        """
        Check if running in production environment.
        """
        return self.ENVIRONMENT.lower() == "production"

    @property
    def ordered_indexes(self) -> set[tuple[str, tuple[str, ...], str]] | None:
        """Parse STORE_ORDERED_INDEXES, None when no index list is configured."""
        raw = self.STORE_ORDERED_INDEXES.strip()
        if not raw:
            return None

        indexes: set[tuple[str, tuple[str, ...], str]] = set()
        for entry in raw.split(","):
            parts = entry.strip().split(":")
            if len(parts) != 3:
                self.logger.warning("Ignoring malformed index entry %r", entry)
                continue
            collection, fields, order_field = parts
            filter_fields = tuple(sorted(f for f in fields.split("+") if f))
            indexes.add((collection, filter_fields, order_field))
        return indexes

    def __init__(self):
        self.env = os.getenv("ENV", "dev")
        self.debug = os.getenv("DEBUG", "false").lower() == "true"
        self.log_level = os.getenv("LOG_LEVEL", "INFO")
        logging.basicConfig(level=self.log_level)
        self.logger = logging.getLogger(__name__)

        self.logger.debug(
            f"Config initialized with env={self.env}, debug={self.debug}, "
            f"log_level={self.log_level}"
        )


# Create a global settings instance for import
settings = Settings()
