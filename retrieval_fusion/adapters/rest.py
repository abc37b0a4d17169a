"""JSON-over-HTTP clients for retrieval collaborators, built on aiohttp.

All clients share one ``RestSessionPool`` so that concurrent requests reuse a
single pooled connector. Wire contract:

- lexical: ``POST {path}`` ``{"query": str, "limit": int}`` -> ``{"results": [{"id", "score"}]}``
- vector: ``POST {path}`` ``{"embedding": [float], "limit": int}`` -> ``{"results": [{"id", "score"}]}``
- records: ``POST {path}`` ``{"ids": [id]}`` -> ``{"records": [{...}]}``
- embedding: ``POST {path}`` ``{"text": str}`` -> ``{"embedding": [float]}``
"""

import json
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence
from urllib.parse import urljoin

import aiohttp

from .base import AdapterConnectionError, AdapterError
from .collaborators import LexicalRetriever, QueryEmbedder, RecordStore, ScoredId, VectorRetriever
from ..models.core import Record, RecordId


logger = logging.getLogger(__name__)


class RestSessionPool:
    """Owns the shared aiohttp session used by every REST collaborator."""

    def __init__(self, base_url: str, timeout: float = 5.0, max_connections: int = 100,
                 headers: Optional[Dict[str, str]] = None,
                 session: Optional[aiohttp.ClientSession] = None):
        """Initialize the session pool.

        Args:
            base_url: Base URL of the retrieval service
            timeout: Total timeout per HTTP call in seconds
            max_connections: Connector pool size
            headers: Extra headers sent with every call
            session: Pre-built session (the pool does not close injected sessions)
        """
        self.base_url = base_url.rstrip("/") + "/"
        self.timeout = timeout
        self.max_connections = max_connections
        self.headers = headers or {}
        self._session = session
        self._owns_session = session is None

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                connector=aiohttp.TCPConnector(limit=self.max_connections),
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={'Content-Type': 'application/json', **self.headers}
            )
            self._owns_session = True
        return self._session

    async def post_json(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST ``payload`` to ``path`` and return the decoded JSON body.

        Raises:
            AdapterConnectionError: If the service cannot be reached
            AdapterError: On non-200 responses or undecodable bodies
        """
        url = urljoin(self.base_url, path.lstrip("/"))
        try:
            async with self.session.post(url, json=payload) as response:
                if response.status != 200:
                    error_text = await response.text()
                    raise AdapterError(
                        f"POST {url} failed with status {response.status}: {error_text}"
                    )
                return await response.json()
        except aiohttp.ClientError as e:
            raise AdapterConnectionError(f"Failed to connect to {url}: {str(e)}") from e
        except json.JSONDecodeError as e:
            raise AdapterError(f"Invalid JSON response from {url}: {str(e)}") from e

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None


def _parse_scored_ids(data: Dict[str, Any]) -> List[ScoredId]:
    results = data.get("results")
    if not isinstance(results, list):
        raise AdapterError("Response is missing a 'results' list")
    return [(item["id"], float(item["score"])) for item in results if "id" in item and "score" in item]


class RestLexicalRetriever(LexicalRetriever):
    """Lexical relevance engine reached over HTTP."""

    def __init__(self, pool: RestSessionPool, path: str = "/lexical/search"):
        self.pool = pool
        self.path = path

    async def search(self, query_text: str, limit: int) -> List[ScoredId]:
        data = await self.pool.post_json(self.path, {"query": query_text, "limit": limit})
        return _parse_scored_ids(data)


class RestVectorRetriever(VectorRetriever):
    """Vector similarity engine reached over HTTP."""

    def __init__(self, pool: RestSessionPool, path: str = "/vector/search"):
        self.pool = pool
        self.path = path

    async def search(self, query_embedding: Sequence[float], limit: int) -> List[ScoredId]:
        data = await self.pool.post_json(
            self.path, {"embedding": [float(v) for v in query_embedding], "limit": limit}
        )
        return _parse_scored_ids(data)


class RestRecordStore(RecordStore):
    """Record storage reached over HTTP."""

    def __init__(self, pool: RestSessionPool, path: str = "/records/batch"):
        self.pool = pool
        self.path = path

    async def fetch_by_ids(self, ids: Iterable[RecordId]) -> Dict[RecordId, Record]:
        ids = list(ids)
        if not ids:
            return {}

        data = await self.pool.post_json(self.path, {"ids": ids})
        records = {}
        for row in data.get("records") or []:
            try:
                record = Record.from_dict(row)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed record from storage: {e}")
                continue
            records[record.id] = record
        return records


class RestQueryEmbedder(QueryEmbedder):
    """Embedding provider reached over HTTP."""

    def __init__(self, pool: RestSessionPool, path: str = "/embed"):
        self.pool = pool
        self.path = path

    async def embed(self, query_text: str) -> List[float]:
        data = await self.pool.post_json(self.path, {"text": query_text})
        embedding = data.get("embedding")
        if not isinstance(embedding, list):
            raise AdapterError("Response is missing an 'embedding' list")
        return [float(v) for v in embedding]
