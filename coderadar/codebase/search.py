# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Semantic search over a named index."""

import logging
from typing import List, Optional

from coderadar.codebase.embeddings.base import EmbeddingProvider
from coderadar.codebase.embeddings.lancedb_store import VectorIndexStore
from coderadar.codebase.embeddings.mmr import rerank_with_mmr
from coderadar.codebase.embeddings.models import SearchResult
from coderadar.errors import CodeRadarError, EmbeddingFailureError

logger = logging.getLogger(__name__)

MMR_OVERFETCH = 3


class SemanticSearch:
    """Embeds a query and returns the nearest chunks of an index."""

    def __init__(self, store: VectorIndexStore, embedder: EmbeddingProvider):
        self.store = store
        self.embedder = embedder

    async def embed_query(self, query: str) -> List[float]:
        result = await self.embedder.embed_query(query)
        if not result.embeddings:
            raise EmbeddingFailureError("Provider returned no vector for the query")
        return result.embeddings[0]

    async def search(
        self,
        index_name: str,
        query: str,
        limit: int = 10,
        mmr: bool = False,
        lambda_: float = 0.5,
        file_type: Optional[str] = None,
    ) -> List[SearchResult]:
        """Search an index.

        Args:
            index_name: Index to search
            query: Natural language query
            limit: Maximum number of results
            mmr: Rerank an over-fetched candidate set for diversity
            lambda_: MMR relevance/diversity trade-off
            file_type: Keep only chunks of this extension (without dot)

        Returns:
            Results ordered by relevance (or MMR selection order)

        Raises:
            IndexNotFoundError: No such index
        """
        meta = await self.store.require_index(index_name)
        if meta.embedding_model != self.embedder.model_id:
            raise CodeRadarError(
                f"Index '{index_name}' was built with '{meta.embedding_model}', "
                f"provider uses '{self.embedder.model_id}'"
            )

        query_vector = await self.embed_query(query)
        fetch = limit * MMR_OVERFETCH if mmr or file_type else limit
        results = await self.store.search_chunks(meta, query_vector, limit=fetch)
        if file_type:
            wanted = file_type.lower().lstrip(".")
            results = [r for r in results if r.relative_path.lower().endswith("." + wanted)]

        if mmr:
            results = rerank_with_mmr(results, query_vector, lambda_)
        logger.debug(f"Search '{query}' on '{index_name}': {len(results[:limit])} results")
        return results[:limit]
