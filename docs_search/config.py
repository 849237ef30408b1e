"""Base configuration for the docs search server and CLI."""

from typing import Literal, Optional


class ServerConfig:
    """Base configuration class for docs search.

    Projects can subclass this and override as needed.
    """

    # Corpus
    CONTENT_DIR: str = "content/entries"

    # Vector search configuration
    VECTOR_SEARCH_ENABLED: bool = False
    VECTOR_SEARCH_MODE: Literal["vector", "hybrid"] = "vector"
    VECTOR_SIMILARITY_THRESHOLD: float = 0.15
    VECTOR_TIMEOUT: int = 10  # Seconds per embedding / search request

    # Supabase (pgvector) backend
    SUPABASE_URL: Optional[str] = None
    SUPABASE_SERVICE_KEY: Optional[str] = None
    SUPABASE_ANON_KEY: Optional[str] = None

    # Embedding providers
    EMBEDDING_PROVIDER: Optional[Literal["openai", "workers-ai"]] = None  # None = auto-detect
    OPENAI_API_KEY: Optional[str] = None
    CLOUDFLARE_ACCOUNT_ID: Optional[str] = None
    CLOUDFLARE_API_TOKEN: Optional[str] = None

    # Server configuration
    DEFAULT_HOST: str = "127.0.0.1"  # Default to localhost for security (use 0.0.0.0 for all interfaces)
    DEFAULT_PORT: int = 8000
    DEFAULT_SEARCH_LIMIT: int = 50
    DEFAULT_CHUNK_LIMIT: int = 5

    # Debug settings
    DEBUG_LOG: bool = False
    DEBUG_LOG_FILE: str = "docs_search_debug.log"
    DEBUG_LOG_MAX_BYTES: int = 10 * 1024 * 1024  # 10MB default
    DEBUG_LOG_BACKUP_COUNT: int = 5  # Keep 5 backup files
    LOG_SEARCH_PERFORMANCE: bool = False  # Log source diversity of chunk searches

    @property
    def supabase_key(self) -> Optional[str]:
        """Service key if set, otherwise the anon key."""
        return self.SUPABASE_SERVICE_KEY or self.SUPABASE_ANON_KEY

    @classmethod
    def from_env(cls, env_prefix: str = ""):
        """Create config from environment variables with optional prefix.

        Args:
            env_prefix: Prefix for environment variables (e.g., "DOCS_")

        Returns:
            ServerConfig instance populated from environment
        """
        import os

        from dotenv import load_dotenv

        load_dotenv()

        config = cls()

        # Helper to get env var with prefix
        def get_env(name: str, default):
            # Try with prefix first, then without
            prefixed = os.getenv(f"{env_prefix}{name}", None)
            if prefixed is not None:
                return prefixed
            return os.getenv(name, default)

        def get_bool(name: str, default: bool) -> bool:
            value = get_env(name, None)
            if value is None:
                return default
            return value.lower() in ("true", "1", "yes")

        # Load configuration from environment
        config.CONTENT_DIR = get_env("CONTENT_DIR", cls.CONTENT_DIR)
        config.VECTOR_SEARCH_ENABLED = get_bool("VECTOR_SEARCH_ENABLED", cls.VECTOR_SEARCH_ENABLED)
        config.VECTOR_SEARCH_MODE = get_env("VECTOR_SEARCH_MODE", cls.VECTOR_SEARCH_MODE)
        config.VECTOR_SIMILARITY_THRESHOLD = float(
            get_env("VECTOR_SIMILARITY_THRESHOLD", str(cls.VECTOR_SIMILARITY_THRESHOLD))
        )
        config.VECTOR_TIMEOUT = int(get_env("VECTOR_TIMEOUT", str(cls.VECTOR_TIMEOUT)))
        config.SUPABASE_URL = get_env("SUPABASE_URL", cls.SUPABASE_URL)
        config.SUPABASE_SERVICE_KEY = get_env("SUPABASE_SERVICE_KEY", cls.SUPABASE_SERVICE_KEY)
        config.SUPABASE_ANON_KEY = get_env("SUPABASE_ANON_KEY", cls.SUPABASE_ANON_KEY)
        config.EMBEDDING_PROVIDER = get_env("EMBEDDING_PROVIDER", cls.EMBEDDING_PROVIDER)
        config.OPENAI_API_KEY = get_env("OPENAI_API_KEY", cls.OPENAI_API_KEY)
        config.CLOUDFLARE_ACCOUNT_ID = get_env("CLOUDFLARE_ACCOUNT_ID", cls.CLOUDFLARE_ACCOUNT_ID)
        config.CLOUDFLARE_API_TOKEN = get_env("CLOUDFLARE_API_TOKEN", cls.CLOUDFLARE_API_TOKEN)
        config.DEFAULT_HOST = get_env("HOST", cls.DEFAULT_HOST)
        config.DEFAULT_PORT = int(get_env("PORT", str(cls.DEFAULT_PORT)))
        config.DEFAULT_SEARCH_LIMIT = int(get_env("DEFAULT_SEARCH_LIMIT", str(cls.DEFAULT_SEARCH_LIMIT)))
        config.DEFAULT_CHUNK_LIMIT = int(get_env("DEFAULT_CHUNK_LIMIT", str(cls.DEFAULT_CHUNK_LIMIT)))
        config.DEBUG_LOG = get_bool("DEBUG_LOG", cls.DEBUG_LOG)
        config.DEBUG_LOG_FILE = get_env("DEBUG_LOG_FILE", cls.DEBUG_LOG_FILE)
        config.DEBUG_LOG_MAX_BYTES = int(get_env("DEBUG_LOG_MAX_BYTES", str(cls.DEBUG_LOG_MAX_BYTES)))
        config.DEBUG_LOG_BACKUP_COUNT = int(get_env("DEBUG_LOG_BACKUP_COUNT", str(cls.DEBUG_LOG_BACKUP_COUNT)))
        config.LOG_SEARCH_PERFORMANCE = get_bool("LOG_SEARCH_PERFORMANCE", cls.LOG_SEARCH_PERFORMANCE)

        return config
