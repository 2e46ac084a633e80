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

"""Embedding system for coderadar.

This package combines:
1. Provider contracts and the Ollama reference providers
2. A content-addressed embedding cache
3. The per-index LanceDB vector store with file metadata
4. MMR reranking of search results
"""

from coderadar.codebase.embeddings.base import (
    EmbeddingProvider,
    EmbeddingResult,
    HealthStatus,
    TextGenerationProvider,
)
from coderadar.codebase.embeddings.cache import EmbeddingCache
from coderadar.codebase.embeddings.lancedb_store import VectorIndexStore
from coderadar.codebase.embeddings.mmr import rerank_with_mmr
from coderadar.codebase.embeddings.models import (
    DocumentChunk,
    FileMetadataRecord,
    IndexMetadata,
    IndexStatus,
    SearchResult,
)

__all__ = [
    "EmbeddingProvider",
    "EmbeddingResult",
    "HealthStatus",
    "TextGenerationProvider",
    "EmbeddingCache",
    "VectorIndexStore",
    "rerank_with_mmr",
    "DocumentChunk",
    "FileMetadataRecord",
    "IndexMetadata",
    "IndexStatus",
    "SearchResult",
]
