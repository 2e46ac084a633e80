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

"""coderadar: incremental semantic and code-graph indexing.

Indexes a source tree into a LanceDB vector index of overlapping chunks plus a
code graph of symbols, imports and calls, and serves semantic search, graph
analyses and token-bounded LLM context packages over it.

Package Structure:
    engine.py                 - CodeRadar facade (async context manager)
    config.py                 - Indexing, context and provider configuration
    errors.py                 - Exception hierarchy
    codebase/                 - Chunking, walking, indexing, search, context
    codebase/embeddings/      - Providers, embedding cache, vector index store, MMR
    codebase/graph/           - Graph schema, graph store and analyses
    languages/                - Per-language structural front ends

Usage:
    from coderadar import CodeRadar
    from coderadar.codebase.embeddings.ollama import OllamaEmbeddingProvider

    async with CodeRadar(embedder=OllamaEmbeddingProvider()) as radar:
        await radar.index("myproj", Path("~/src/myproj"))
"""

from coderadar.config import ContextConfig, IndexingConfig, OllamaConfig
from coderadar.engine import CodeRadar
from coderadar.errors import (
    CodeRadarError,
    EmbeddingFailureError,
    ExtractionFailureError,
    IndexAlreadyExistsError,
    IndexNotFoundError,
    MalformedCacheEntryError,
    ProviderUnavailableError,
)

__version__ = "0.1.0"

__all__ = [
    "CodeRadar",
    "ContextConfig",
    "IndexingConfig",
    "OllamaConfig",
    "CodeRadarError",
    "EmbeddingFailureError",
    "ExtractionFailureError",
    "IndexAlreadyExistsError",
    "IndexNotFoundError",
    "MalformedCacheEntryError",
    "ProviderUnavailableError",
]
