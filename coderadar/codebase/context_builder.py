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

"""Graph-aware context packages for LLM tasks.

Steps:
1. Embed the task and over-fetch chunks from the vector index
2. Collect the distinct files hit and their symbols
3. Expand those symbols breadth-first through calls/called_by up to ``depth``
4. Score files by best chunk relevance, symbols by graph distance and export
5. Pack files then symbols greedily under the token budget
6. Optionally ask a text generation provider for approach steps
"""

import logging
from collections import deque
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from coderadar.codebase.chunker import estimate_tokens
from coderadar.codebase.embeddings.base import EmbeddingProvider
from coderadar.codebase.embeddings.lancedb_store import VectorIndexStore
from coderadar.codebase.embeddings.models import SearchResult
from coderadar.codebase.graph.protocol import CodeSymbol
from coderadar.codebase.graph.store import CodeGraphStore
from coderadar.codebase.summarizer import (
    ApproachStep,
    ApproachSuggester,
    FileBrief,
    SymbolBrief,
)
from coderadar.config import ContextConfig
from coderadar.errors import EmbeddingFailureError

logger = logging.getLogger(__name__)

APPROACH_CONTEXT_SIZE = 10


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RelevantFile(_CamelModel):
    """A file selected for the package."""

    file_path: str
    relative_path: str
    score: float = Field(description="1 - best chunk distance")
    reason: str
    content: str = Field(default="", description="Best-matching chunk of the file")
    line_start: Optional[int] = None
    line_end: Optional[int] = None


class KeySymbol(_CamelModel):
    """A symbol selected for the package."""

    id: str
    name: str
    kind: str
    file: str = Field(description="Relative path of the declaring file")
    line: int
    summary: str
    score: float
    distance: int = Field(description="Call graph hops from a directly matched file")
    is_exported: bool = False


class ContextPackage(_CamelModel):
    """Token-bounded context for one task. Built per request, never stored."""

    task: str
    index_name: str
    relevant_files: List[RelevantFile] = Field(default_factory=list)
    key_symbols: List[KeySymbol] = Field(default_factory=list)
    suggested_approach: List[ApproachStep] = Field(default_factory=list)
    token_count: int = 0
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_markdown(self) -> str:
        """Render the package as markdown for an LLM prompt."""
        lines = [f"# Context: {self.task}", ""]

        if self.relevant_files:
            lines.append("## Relevant Files")
            lines.append("")
            for f in self.relevant_files:
                location = f.relative_path
                if f.line_start is not None:
                    location += f":{f.line_start}-{f.line_end}"
                lines.append(f"### {location} (score {f.score:.2f})")
                lines.append("")
                lines.append("```")
                lines.append(f.content.rstrip())
                lines.append("```")
                lines.append("")

        if self.key_symbols:
            lines.append("## Key Symbols")
            lines.append("")
            for s in self.key_symbols:
                lines.append(f"- `{s.name}` ({s.kind}) in {s.file}:{s.line}: {s.summary}")
            lines.append("")

        if self.suggested_approach:
            lines.append("## Suggested Approach")
            lines.append("")
            for step in self.suggested_approach:
                targets = f" ({', '.join(step.target_files)})" if step.target_files else ""
                lines.append(f"{step.step}. {step.description}{targets}")
            lines.append("")

        return "\n".join(lines).rstrip() + "\n"


def expand_call_graph(
    seeds: Iterable[str],
    adjacency: Dict[str, Dict[str, Set[str]]],
    depth: int,
) -> Dict[str, int]:
    """Breadth-first expansion over calls and called_by.

    Returns:
        Minimum hop distance per reached symbol id (seeds at 0)
    """
    distances: Dict[str, int] = {}
    queue = deque()
    for seed in sorted(set(seeds)):
        distances[seed] = 0
        queue.append(seed)

    calls = adjacency.get("calls", {})
    called_by = adjacency.get("called_by", {})
    while queue:
        current = queue.popleft()
        hops = distances[current]
        if hops >= depth:
            continue
        neighbours = calls.get(current, set()) | called_by.get(current, set())
        for neighbour in sorted(neighbours):
            if neighbour not in distances:
                distances[neighbour] = hops + 1
                queue.append(neighbour)
    return distances


class ContextBuilder:
    """Builds ContextPackages from a vector index and its code graph.

    Example:
        builder = ContextBuilder(store, graph_for, embedder, suggester)
        package = await builder.build("myproj", "add rate limiting to login")
        print(package.to_markdown())
    """

    def __init__(
        self,
        store: VectorIndexStore,
        graph_for: Callable[[str], CodeGraphStore],
        embedder: EmbeddingProvider,
        suggester: Optional[ApproachSuggester] = None,
        config: Optional[ContextConfig] = None,
    ):
        self.store = store
        self.graph_for = graph_for
        self.embedder = embedder
        self.suggester = suggester
        self.config = config or ContextConfig()

    async def build(
        self,
        index_name: str,
        task: str,
        limit: Optional[int] = None,
        max_tokens: Optional[int] = None,
        depth: Optional[int] = None,
        include_approach: bool = True,
    ) -> ContextPackage:
        """Build a context package for ``task``.

        Raises:
            IndexNotFoundError: No such index
            EmbeddingFailureError: The task could not be embedded
        """
        limit = self.config.limit if limit is None else limit
        max_tokens = self.config.max_tokens if max_tokens is None else max_tokens
        depth = self.config.depth if depth is None else depth

        meta = await self.store.require_index(index_name)
        result = await self.embedder.embed_query(task)
        if not result.embeddings:
            raise EmbeddingFailureError("Provider returned no vector for the task", index_name)

        hits = await self.store.search_chunks(
            meta, result.embeddings[0], limit=limit * self.config.overfetch_multiplier
        )
        files = self.score_files(hits)[:limit]

        graph = self.graph_for(index_name)
        symbols = await graph.get_symbols()
        by_id = {s.id: s for s in symbols}
        hit_paths = {h.file_path for h in hits}
        seeds = [s.id for s in symbols if s.file_path in hit_paths]
        distances = expand_call_graph(seeds, await graph.get_call_graph(), depth)
        key_symbols = self.score_symbols(
            [(by_id[sid], d) for sid, d in distances.items() if sid in by_id]
        )

        package = self.pack(index_name, task, files, key_symbols, max_tokens)
        if include_approach and self.suggester is not None and package.relevant_files:
            package.suggested_approach = await self.suggester.suggest_approach(
                task,
                [
                    SymbolBrief(name=s.name, kind=s.kind, summary=s.summary)
                    for s in package.key_symbols[:APPROACH_CONTEXT_SIZE]
                ],
                [
                    FileBrief(
                        path=f.relative_path,
                        symbols=[s.name for s in package.key_symbols if s.file == f.relative_path],
                    )
                    for f in package.relevant_files[:APPROACH_CONTEXT_SIZE]
                ],
            )

        logger.info(
            f"Context for '{index_name}': {len(package.relevant_files)} files, "
            f"{len(package.key_symbols)} symbols, {package.token_count}/{max_tokens} tokens"
        )
        return package

    @staticmethod
    def score_files(hits: List[SearchResult]) -> List[RelevantFile]:
        """One entry per file, scored by its best chunk; best first."""
        best: Dict[str, SearchResult] = {}
        for hit in hits:
            current = best.get(hit.file_path)
            if current is None or hit.distance < current.distance:
                best[hit.file_path] = hit

        files = [
            RelevantFile(
                file_path=hit.file_path,
                relative_path=hit.relative_path,
                score=1.0 - hit.distance,
                reason=f"Relevant based on semantic similarity (score: {1.0 - hit.distance:.2f})",
                content=hit.content,
                line_start=hit.line_start,
                line_end=hit.line_end,
            )
            for hit in best.values()
        ]
        return sorted(files, key=lambda f: (-f.score, f.relative_path))

    def score_symbols(self, reached: List[Tuple[CodeSymbol, int]]) -> List[KeySymbol]:
        """Score ``(symbol, distance)`` pairs; best first."""
        cfg = self.config
        scored = []
        for symbol, distance in reached:
            bonus = cfg.exported_bonus if symbol.is_exported else 0.0
            score = cfg.relevance_weight / (1 + distance) + cfg.export_weight * bonus
            scored.append(
                KeySymbol(
                    id=symbol.id,
                    name=symbol.name,
                    kind=symbol.kind,
                    file=symbol.relative_path,
                    line=symbol.line_start,
                    summary=symbol.describe(),
                    score=score,
                    distance=distance,
                    is_exported=symbol.is_exported,
                )
            )
        return sorted(scored, key=lambda s: (-s.score, s.distance, s.name, s.id))

    @staticmethod
    def pack(
        index_name: str,
        task: str,
        files: List[RelevantFile],
        symbols: List[KeySymbol],
        max_tokens: int,
    ) -> ContextPackage:
        """Greedy packing in score order; items that don't fit are skipped."""
        tokens = 0
        included_files = []
        for f in files:
            cost = estimate_tokens(f.content)
            if tokens + cost <= max_tokens:
                included_files.append(f)
                tokens += cost

        included_symbols = []
        for s in symbols:
            cost = estimate_tokens(s.summary)
            if tokens + cost <= max_tokens:
                included_symbols.append(s)
                tokens += cost

        return ContextPackage(
            task=task,
            index_name=index_name,
            relevant_files=included_files,
            key_symbols=included_symbols,
            token_count=tokens,
        )
