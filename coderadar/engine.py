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

"""Public entry point tying stores, providers and pipelines together.

Usage:
    async with CodeRadar(embedder=OllamaEmbeddingProvider()) as radar:
        await radar.index("myproj", Path("~/src/myproj"))
        hits = await radar.search("myproj", "where are tokens refreshed?", mmr=True)
        package = await radar.build_context("myproj", "add rate limiting to login")

Thin command-line or server callers are expected to sit on top of this class;
it holds no global state, and every collaborator can be injected.
"""

from pathlib import Path
from typing import Callable, Dict, List, Optional

from coderadar.codebase.context_builder import ContextBuilder, ContextPackage
from coderadar.codebase.embeddings.base import EmbeddingProvider, TextGenerationProvider
from coderadar.codebase.embeddings.cache import EmbeddingCache
from coderadar.codebase.embeddings.lancedb_store import VectorIndexStore
from coderadar.codebase.embeddings.models import IndexMetadata, SearchResult
from coderadar.codebase.graph import analysis
from coderadar.codebase.graph.analysis import DeadSymbol, Dependent, ImpactReport
from coderadar.codebase.graph.protocol import CallEdge, CodeDependency, CodeSymbol
from coderadar.codebase.graph.store import CodeGraphStore
from coderadar.codebase.indexer import IndexingPipeline, IndexProgress, IndexStats
from coderadar.codebase.search import SemanticSearch
from coderadar.codebase.summarizer import ApproachSuggester
from coderadar.config import ContextConfig, IndexingConfig
from coderadar.languages.registry import FrontEndRegistry, create_default_registry


class CodeRadar:
    """Facade over indexing, search, graph queries and context building."""

    def __init__(
        self,
        embedder: EmbeddingProvider,
        config: Optional[IndexingConfig] = None,
        context_config: Optional[ContextConfig] = None,
        generator: Optional[TextGenerationProvider] = None,
        registry: Optional[FrontEndRegistry] = None,
        progress: Optional[Callable[[IndexProgress], None]] = None,
    ):
        self.config = config or IndexingConfig()
        self.embedder = embedder
        self.generator = generator
        self.store = VectorIndexStore(self.config.db_path)
        self.cache = EmbeddingCache(self.config.db_path)
        self.registry = registry or create_default_registry()
        self._graphs: Dict[str, CodeGraphStore] = {}

        suggester = ApproachSuggester(generator) if generator is not None else None
        self.pipeline = IndexingPipeline(
            self.store,
            self.cache,
            embedder,
            self.config,
            self.registry,
            progress,
            self.graph,
            suggester=suggester,
        )
        self.searcher = SemanticSearch(self.store, embedder)
        self.context_builder = ContextBuilder(
            self.store, self.graph, embedder, suggester, context_config
        )

    async def __aenter__(self) -> "CodeRadar":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        """Close stores and providers."""
        for graph in self._graphs.values():
            graph.close()
        self._graphs.clear()
        self.store.close()
        self.cache.close()
        await self.embedder.close()
        if self.generator is not None:
            await self.generator.close()

    def graph(self, index_name: str) -> CodeGraphStore:
        """Code graph store of an index (one shared instance per name)."""
        if index_name not in self._graphs:
            self._graphs[index_name] = CodeGraphStore(self.config.db_path, index_name)
        return self._graphs[index_name]

    async def _graph_of(self, index_name: str) -> CodeGraphStore:
        await self.store.require_index(index_name)
        return self.graph(index_name)

    # Index lifecycle ---------------------------------------------------

    async def create_index(self, name: str, root: Path) -> IndexMetadata:
        """Register an empty index without indexing anything."""
        return await self.store.create_index(
            name,
            str(root.expanduser().resolve()),
            self.embedder.model_id,
            self.embedder.get_dimensions(),
        )

    async def get_index(self, name: str) -> Optional[IndexMetadata]:
        return await self.store.get_index(name)

    async def list_indexes(self) -> List[IndexMetadata]:
        return await self.store.list_indexes()

    async def delete_index(self, name: str) -> bool:
        graph = self._graphs.pop(name, None)
        if graph is not None:
            graph.close()
        return await self.store.delete_index(name)

    async def get_stats(self, name: str) -> Dict[str, int]:
        """Chunk, file and graph row counts of an index."""
        meta = await self.store.require_index(name)
        stats = await self.store.get_stats(meta)
        stats.update(await self.graph(name).get_stats())
        return stats

    async def index(self, name: str, root: Path) -> IndexStats:
        """Create and fully index ``name``, or update it if it already exists."""
        if await self.store.get_index(name) is None:
            return await self.pipeline.build(name, root)
        return await self.pipeline.update(name)

    async def update(self, name: str) -> IndexStats:
        return await self.pipeline.update(name)

    async def retry(self, name: str) -> IndexStats:
        return await self.pipeline.retry(name)

    # Retrieval ---------------------------------------------------------

    async def search(
        self,
        name: str,
        query: str,
        limit: int = 10,
        mmr: bool = False,
        lambda_: float = 0.5,
        file_type: Optional[str] = None,
    ) -> List[SearchResult]:
        return await self.searcher.search(name, query, limit, mmr, lambda_, file_type)

    async def build_context(
        self,
        name: str,
        task: str,
        limit: Optional[int] = None,
        max_tokens: Optional[int] = None,
        depth: Optional[int] = None,
        include_approach: bool = True,
    ) -> ContextPackage:
        return await self.context_builder.build(
            name, task, limit, max_tokens, depth, include_approach
        )

    # Code graph --------------------------------------------------------

    async def symbols(
        self, name: str, kind: Optional[str] = None, file_path: Optional[str] = None
    ) -> List[CodeSymbol]:
        graph = await self._graph_of(name)
        return await graph.get_symbols(kind=kind, file_path=file_path)

    async def dependencies(
        self, name: str, file_path: Optional[str] = None, is_external: Optional[bool] = None
    ) -> List[CodeDependency]:
        graph = await self._graph_of(name)
        return await graph.get_dependencies(file_path=file_path, is_external=is_external)

    async def calls(
        self,
        name: str,
        caller_id: Optional[str] = None,
        callee_id: Optional[str] = None,
        caller_file: Optional[str] = None,
    ) -> List[CallEdge]:
        graph = await self._graph_of(name)
        return await graph.get_calls(
            caller_id=caller_id, callee_id=callee_id, caller_file=caller_file
        )

    async def dependents(self, name: str, module: str) -> List[Dependent]:
        return await analysis.find_dependents(await self._graph_of(name), module)

    async def callers(self, name: str, symbol: str) -> List[CallEdge]:
        return await analysis.find_callers(await self._graph_of(name), symbol)

    async def dead_code(self, name: str) -> List[DeadSymbol]:
        return await analysis.find_dead_symbols(await self._graph_of(name))

    async def cycles(self, name: str) -> List[List[str]]:
        return await analysis.detect_cycles(await self._graph_of(name))

    async def impact(self, name: str, symbol: str) -> ImpactReport:
        return await analysis.analyze_impact(await self._graph_of(name), symbol)
