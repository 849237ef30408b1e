"""Vector search backend: embedding providers and Supabase similarity search."""

import logging
from typing import Any, Optional

import requests

logger = logging.getLogger(__name__)

OPENAI_EMBEDDINGS_ENDPOINT = "https://api.openai.com/v1/embeddings"
WORKERS_AI_ENDPOINT = "https://api.cloudflare.com/client/v4/accounts/{account_id}/ai/run/{model}"


class VectorBackendError(Exception):
    """Any failure talking to the embedding provider or the vector store."""


class OpenAIEmbeddingProvider:
    """OpenAI text-embedding-3-small over the REST API."""

    name = "openai"
    model = "text-embedding-3-small"
    dimensions = 1536
    max_input_chars = 8191

    def __init__(self, api_key: str, timeout: float = 10):
        self.api_key = api_key
        self.timeout = timeout

    def embed(self, text: str) -> list[float]:
        try:
            response = requests.post(
                OPENAI_EMBEDDINGS_ENDPOINT,
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={"model": self.model, "input": text[: self.max_input_chars]},
                timeout=self.timeout,
            )
            response.raise_for_status()
            embedding = response.json()["data"][0]["embedding"]
        except requests.RequestException as e:
            raise VectorBackendError(f"OpenAI embedding request failed: {e}") from e
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise VectorBackendError(f"OpenAI returned an invalid response: {e}") from e

        if len(embedding) != self.dimensions:
            raise VectorBackendError(f"OpenAI returned {len(embedding)} dimensions (expected {self.dimensions})")
        return embedding


class WorkersAIEmbeddingProvider:
    """Cloudflare Workers AI BGE-large-en-v1.5 over the REST API."""

    name = "workers-ai"
    model = "@cf/baai/bge-large-en-v1.5"
    dimensions = 1024
    max_input_chars = 2000  # BGE has a 512-token context window

    def __init__(self, account_id: str, api_token: str, timeout: float = 10):
        self.account_id = account_id
        self.api_token = api_token
        self.timeout = timeout

    def embed(self, text: str) -> list[float]:
        endpoint = WORKERS_AI_ENDPOINT.format(account_id=self.account_id, model=self.model)
        try:
            response = requests.post(
                endpoint,
                headers={"Authorization": f"Bearer {self.api_token}"},
                json={"text": [text[: self.max_input_chars]]},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise VectorBackendError(f"Workers AI request failed: {e}") from e

        if not response.ok:
            raise VectorBackendError(f"Workers AI API error ({response.status_code}): {response.text[:300]}")

        try:
            data = response.json()
        except ValueError as e:
            raise VectorBackendError(f"Workers AI returned invalid JSON: {e}") from e

        result = (data.get("result") or {}).get("data") or []
        if not data.get("success") or not result:
            raise VectorBackendError(f"Workers AI returned invalid response: {data.get('errors') or []}")

        embedding = result[0]
        if len(embedding) != self.dimensions:
            raise VectorBackendError(f"Workers AI returned {len(embedding)} dimensions (expected {self.dimensions})")
        return embedding


def detect_provider(config) -> str:
    """Pick the embedding provider: explicit setting, else OpenAI if keyed, else Workers AI."""
    if config.EMBEDDING_PROVIDER in ("openai", "workers-ai"):
        return config.EMBEDDING_PROVIDER
    if config.OPENAI_API_KEY:
        return "openai"
    return "workers-ai"


def create_embedding_provider(config):
    """Create the configured embedding provider.

    Raises:
        VectorBackendError: If the provider's credentials are missing
    """
    provider = detect_provider(config)
    if provider == "openai":
        if not config.OPENAI_API_KEY:
            raise VectorBackendError("OPENAI_API_KEY is required for the openai embedding provider")
        return OpenAIEmbeddingProvider(config.OPENAI_API_KEY, timeout=config.VECTOR_TIMEOUT)

    if not (config.CLOUDFLARE_ACCOUNT_ID and config.CLOUDFLARE_API_TOKEN):
        raise VectorBackendError(
            "CLOUDFLARE_ACCOUNT_ID and CLOUDFLARE_API_TOKEN are required for the workers-ai embedding provider"
        )
    return WorkersAIEmbeddingProvider(
        config.CLOUDFLARE_ACCOUNT_ID, config.CLOUDFLARE_API_TOKEN, timeout=config.VECTOR_TIMEOUT
    )


class SupabaseVectorBackend:
    """Similarity search through the ``search_content`` PostgREST function."""

    def __init__(self, config, embedder):
        """Initialize the backend.

        Args:
            config: ServerConfig instance (SUPABASE_URL, keys, VECTOR_TIMEOUT)
            embedder: Embedding provider with an ``embed(text)`` method
        """
        self.config = config
        self.embedder = embedder
        self.base_url = (config.SUPABASE_URL or "").rstrip("/")
        self.timeout = config.VECTOR_TIMEOUT

    def _headers(self) -> dict[str, str]:
        key = self.config.supabase_key or ""
        return {"apikey": key, "Authorization": f"Bearer {key}", "Content-Type": "application/json"}

    def embed(self, text: str) -> list[float]:
        return self.embedder.embed(text)

    def similarity_search(
        self,
        embedding: list[float],
        text: str,
        threshold: float,
        limit: int,
        category: Optional[str] = None,
        tags: Optional[list[str]] = None,
    ) -> list[dict[str, Any]]:
        """Run the ``search_content`` RPC.

        Returns:
            Result rows (id, title, content, category, tags, confidence, similarity, ...)

        Raises:
            VectorBackendError: On network errors, non-2xx responses or a malformed body
        """
        payload = {
            "query_embedding": embedding,
            "query_text": text,
            "match_threshold": threshold,
            "match_count": limit,
            "filter_category": category,
            "filter_tags": tags,
        }
        try:
            response = requests.post(
                f"{self.base_url}/rest/v1/rpc/search_content",
                headers=self._headers(),
                json=payload,
                timeout=self.timeout,
            )
            response.raise_for_status()
            rows = response.json()
        except requests.RequestException as e:
            raise VectorBackendError(f"Supabase search failed: {e}") from e
        except ValueError as e:
            raise VectorBackendError(f"Supabase returned invalid JSON: {e}") from e

        if not isinstance(rows, list):
            raise VectorBackendError(f"Supabase returned {type(rows).__name__}, expected a list of rows")

        if self.config.LOG_SEARCH_PERFORMANCE:
            logger.info(f"[VECTOR] query={text!r} results={len(rows)} threshold={threshold}")
        return rows

    def check_health(self, timeout: int = 5) -> tuple[bool, str]:
        """Check that Supabase is reachable with the configured key.

        Returns:
            Tuple of (is_healthy: bool, message: str)
        """
        try:
            response = requests.get(f"{self.base_url}/rest/v1/", headers=self._headers(), timeout=timeout)
            response.raise_for_status()
            return True, f"Supabase is healthy at {self.base_url}"
        except requests.Timeout:
            return False, f"Supabase health check timed out after {timeout}s."
        except requests.ConnectionError:
            return False, f"Cannot connect to Supabase at {self.base_url}."
        except Exception as e:
            return False, f"Supabase health check failed: {e!s}"


def create_vector_backend(config) -> Optional[SupabaseVectorBackend]:
    """Build the vector backend, or None when vector search is off or unconfigured."""
    if not config.VECTOR_SEARCH_ENABLED:
        return None
    if config.VECTOR_SEARCH_MODE != "vector":
        logger.info(f"[VECTOR] Vector search mode {config.VECTOR_SEARCH_MODE!r} not supported, using keyword search")
        return None
    if not (config.SUPABASE_URL and config.supabase_key):
        logger.warning("[VECTOR] Vector search enabled but SUPABASE_URL or key missing, using keyword search")
        return None

    try:
        embedder = create_embedding_provider(config)
    except VectorBackendError as e:
        logger.warning(f"[VECTOR] {e}, using keyword search")
        return None

    logger.info(f"[VECTOR] Using Supabase vector search with {embedder.name} embeddings")
    return SupabaseVectorBackend(config, embedder)
