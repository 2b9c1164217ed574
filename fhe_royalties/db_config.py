# fhe_royalties/db_config.py
"""Database URL validation and engine options"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from sqlalchemy.pool import StaticPool

from fhe_royalties.config import settings

SUPPORTED_SCHEMES = ('sqlite', 'postgresql')

@dataclass
class DatabaseOptions:
    """Connection string plus keyword arguments for create_engine"""
    url: str
    engine_kwargs: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_memory(self) -> bool:
        return self.url in ('sqlite://', 'sqlite:///:memory:')

class DatabaseManager:
    """Builds engine configuration for the royalty ledger"""

    @staticmethod
    def validate_url(url: str) -> bool:
        """Validate database URL scheme"""
        try:
            scheme = urlparse(url).scheme
        except ValueError:
            return False
        # Accept driver suffixes such as postgresql+psycopg
        return scheme.split('+')[0] in SUPPORTED_SCHEMES

    @classmethod
    def get_options(cls, url: str) -> DatabaseOptions:
        """
        Generate engine options for a database URL

        Args:
            url: SQLAlchemy database URL

        Returns:
            DatabaseOptions with connection arguments suitable for the backend

        Raises:
            ValueError: If the URL scheme is not supported
        """
        if not cls.validate_url(url):
            raise ValueError(f"Unsupported database URL: {url}")

        options = DatabaseOptions(url=url)
        if url.startswith('sqlite'):
            # Oracle callbacks may arrive on any thread
            options.engine_kwargs['connect_args'] = {'check_same_thread': False, 'timeout': 30}
            if options.is_memory:
                options.engine_kwargs['poolclass'] = StaticPool
        return options

    @classmethod
    def initialize_from_env(cls, url: Optional[str] = None) -> DatabaseOptions:
        """
        Initialize database options from settings

        Raises:
            ValueError: If no database URL is configured
        """
        url = url or settings.DATABASE_URL
        if not url:
            raise ValueError("DATABASE_URL setting is required")
        return cls.get_options(url)
