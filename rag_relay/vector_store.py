"""
Clients for querying a named embeddings collection.
"""

import asyncio
import json
import logging
import os
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

import httpx
import numpy as np
from sklearn.metrics.pairwise import cosine_similarity

from .data_models import RetrievedPassage
from .exceptions import StoreUnavailable

logger = logging.getLogger(__name__)


class VectorStoreClient(ABC):
    """Embeds a question and returns the closest passages from a collection.

    Subclasses implement ``_search`` for a concrete backend. Everything that
    can go wrong while querying (embedding errors, transport errors, bad
    payloads, timeouts) is reported as ``StoreUnavailable``.
    """

    def __init__(self, embedder, min_score: float = 0.75, timeout: float = 10.0):
        """Initialize the client.

        Args:
            embedder: Object with an async ``generate_single_embedding(text)``
            min_score: Passages scoring below this are discarded
            timeout: Seconds allowed for embedding plus search
        """
        self.embedder = embedder
        self.min_score = min_score
        self.timeout = timeout

    async def query(self, collection_name: str, question_text: str, top_k: int) -> List[RetrievedPassage]:
        """Return up to ``top_k`` passages ordered by descending similarity.

        Args:
            collection_name: Name of the embeddings collection
            question_text: The user's question
            top_k: Maximum number of passages to return

        Returns:
            List[RetrievedPassage]: Qualifying passages, possibly empty

        Raises:
            StoreUnavailable: If the collection cannot be queried in time
        """
        try:
            passages = await asyncio.wait_for(
                self._embed_and_search(collection_name, question_text, top_k),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            raise StoreUnavailable(
                f"Query on collection {collection_name!r} timed out after {self.timeout}s"
            )
        except StoreUnavailable:
            raise
        except Exception as e:
            raise StoreUnavailable(f"Query on collection {collection_name!r} failed: {e}") from e

        qualifying = [p for p in passages if p.similarity_score >= self.min_score]
        qualifying.sort(key=lambda p: p.similarity_score, reverse=True)
        for p in qualifying:
            logger.debug("Retrieved passage score=%.3f text=%s", p.similarity_score, p.text[:256])
        return qualifying[:top_k]

    async def _embed_and_search(self, collection_name: str, question_text: str, top_k: int) -> List[RetrievedPassage]:
        vector = await self.embedder.generate_single_embedding(question_text)
        if not vector:
            raise StoreUnavailable("Embedding model returned no vector for the question")
        return await self._search(collection_name, vector, top_k)

    @abstractmethod
    async def _search(self, collection_name: str, vector: List[float], limit: int) -> List[RetrievedPassage]:
        """Return candidate passages for ``vector`` from the backend."""

    async def aclose(self) -> None:
        """Release any resources held by the client."""


class HttpVectorStore(VectorStoreClient):
    """Collection hosted by a Qdrant-compatible HTTP service."""

    def __init__(
        self,
        embedder,
        base_url: str,
        api_key: Optional[str] = None,
        min_score: float = 0.75,
        timeout: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(embedder, min_score=min_score, timeout=timeout)
        self.base_url = base_url.rstrip("/")
        headers = {"api-key": api_key} if api_key else {}
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout, headers=headers)

    async def _search(self, collection_name: str, vector: List[float], limit: int) -> List[RetrievedPassage]:
        url = f"{self.base_url}/collections/{collection_name}/points/search"
        payload = {"vector": list(vector), "limit": limit, "with_payload": True}
        try:
            response = await self._client.post(url, json=payload)
        except httpx.TimeoutException as e:
            raise StoreUnavailable(f"Vector store request timed out: {e}") from e
        except httpx.RequestError as e:
            raise StoreUnavailable(f"Vector store connection failed: {e}") from e

        if response.status_code >= 400:
            raise StoreUnavailable(
                f"Vector store returned {response.status_code} for collection {collection_name!r}"
            )

        try:
            points = response.json()["result"]
        except (ValueError, KeyError, TypeError) as e:
            raise StoreUnavailable("Vector store returned an invalid payload") from e

        return [self._to_passage(point) for point in points if self._has_text(point)]

    @staticmethod
    def _has_text(point: Dict[str, Any]) -> bool:
        text = (point.get("payload") or {}).get("text")
        return isinstance(text, str) and bool(text.strip())

    @staticmethod
    def _to_passage(point: Dict[str, Any]) -> RetrievedPassage:
        return RetrievedPassage(
            text=point["payload"]["text"],
            similarity_score=float(point.get("score", 0.0)),
            source_id=str(point.get("id", "")),
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class LocalVectorStore(VectorStoreClient):
    """Collection stored on disk as ``<base_path>/<collection_name>.json``.

    The file holds a list of ``{"id", "text", "vector"}`` records. Each
    collection is read once and kept in memory; it is never modified.
    """

    def __init__(self, embedder, base_path: str = "./filestore/collections", min_score: float = 0.75, timeout: float = 10.0):
        super().__init__(embedder, min_score=min_score, timeout=timeout)
        self.base_path = base_path
        self._collections: Dict[str, Tuple[List[Dict[str, Any]], np.ndarray]] = {}

    def collection_path(self, collection_name: str) -> str:
        return os.path.join(self.base_path, f"{collection_name}.json")

    async def _search(self, collection_name: str, vector: List[float], limit: int) -> List[RetrievedPassage]:
        records, matrix = await self._load(collection_name)
        if not records:
            return []
        return await asyncio.to_thread(self._rank, records, matrix, vector, limit)

    async def _load(self, collection_name: str) -> Tuple[List[Dict[str, Any]], np.ndarray]:
        if collection_name not in self._collections:
            self._collections[collection_name] = await asyncio.to_thread(
                self._read_collection, collection_name
            )
        return self._collections[collection_name]

    def _read_collection(self, collection_name: str) -> Tuple[List[Dict[str, Any]], np.ndarray]:
        path = self.collection_path(collection_name)
        if not os.path.exists(path):
            raise StoreUnavailable(f"Collection not found: {collection_name}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            records = [r for r in data if isinstance(r.get("text"), str) and r["text"].strip()]
            matrix = np.array([r["vector"] for r in records], dtype=float)
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            raise StoreUnavailable(f"Collection {collection_name!r} could not be read: {e}") from e

        if records and matrix.ndim != 2:
            raise StoreUnavailable(f"Collection {collection_name!r} has inconsistent vector sizes")

        logger.info("Loaded collection %s with %d passages", collection_name, len(records))
        return records, matrix

    @staticmethod
    def _rank(records: List[Dict[str, Any]], matrix: np.ndarray, vector: List[float], limit: int) -> List[RetrievedPassage]:
        query = np.array(vector, dtype=float).reshape(1, -1)
        if query.shape[1] != matrix.shape[1]:
            raise StoreUnavailable(
                f"Question vector has {query.shape[1]} dimensions, collection has {matrix.shape[1]}"
            )

        similarities = cosine_similarity(query, matrix)[0]
        top_indices = np.argsort(similarities, kind="stable")[::-1][:limit]

        return [
            RetrievedPassage(
                text=records[idx]["text"],
                similarity_score=float(similarities[idx]),
                source_id=str(records[idx].get("id", idx)),
            )
            for idx in top_indices
        ]


def create_vector_store(config, embedder) -> VectorStoreClient:
    """Pick the backend named by the configuration."""
    if config.vector_store_url:
        return HttpVectorStore(
            embedder,
            base_url=config.vector_store_url,
            api_key=config.vector_store_api_key,
            min_score=config.min_score,
            timeout=config.store_timeout,
        )
    return LocalVectorStore(
        embedder,
        base_path=config.vector_store_path,
        min_score=config.min_score,
        timeout=config.store_timeout,
    )
