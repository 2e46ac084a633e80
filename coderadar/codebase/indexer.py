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

"""Incremental indexing pipeline.

Builds and updates a named index from a source tree:

    pipeline = IndexingPipeline(store, cache, embedder, config)
    stats = await pipeline.build("myproj", Path("~/src/myproj"))
    ...
    stats = await pipeline.update("myproj")   # only changed files

Change detection compares each file's content hash with the hash stored in
the file metadata table:
- Unchanged: skipped (no re-chunk, no re-extract)
- Changed: old chunks and graph rows deleted, then processed as new
- New: chunked, embedded, extracted and inserted
- Vanished: chunks, graph rows and metadata record deleted

Embedding goes through two bounded buffers. Cache-miss chunks wait in the
embed buffer until ``embed_batch_size`` of them can go to the provider in
one call; embedded chunks wait in the write buffer until ``write_batch_size``
of them can be written in one store call. A file's metadata record is only
written once all of its chunks are in the store.

When a suggester is injected, the pass then summarizes functions, classes
and methods that have no summary yet (``config.summarize``; every one of
them with ``config.resummarize``). Summaries are best effort: an unhealthy
provider skips the step and a failed summary is only counted.

A pass ends with the index ``ready``. Any failure while embedding or writing
marks it ``failed`` and re-raises; a failed index is rebuilt by ``retry``.
"""

import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Generic,
    List,
    Optional,
    Set,
    TypeVar,
)

from coderadar.codebase.chunker import chunk_file_text
from coderadar.codebase.embeddings.base import EmbeddingProvider
from coderadar.codebase.embeddings.cache import EmbeddingCache
from coderadar.codebase.embeddings.lancedb_store import VectorIndexStore
from coderadar.codebase.embeddings.models import (
    DocumentChunk,
    FileMetadataRecord,
    IndexMetadata,
    IndexStatus,
)
from coderadar.codebase.graph.protocol import CodeSymbol, SymbolKind
from coderadar.codebase.graph.store import CodeGraphStore
from coderadar.codebase.hashing import hash_content
from coderadar.codebase.summarizer import ApproachSuggester
from coderadar.codebase.symbol_resolver import SymbolResolver
from coderadar.codebase.walker import WalkedFile, walk_files
from coderadar.config import IndexingConfig
from coderadar.errors import (
    CodeRadarError,
    EmbeddingFailureError,
    ExtractionFailureError,
    IndexAlreadyExistsError,
)
from coderadar.languages.registry import FrontEndRegistry, create_default_registry

logger = logging.getLogger(__name__)

T = TypeVar("T")

SUMMARIZED_KINDS = {SymbolKind.FUNCTION, SymbolKind.CLASS, SymbolKind.METHOD}

# Source characters sent to the generator per symbol
MAX_SUMMARY_SOURCE_CHARS = 2000


class BatchBuffer(Generic[T]):
    """Fixed-size pending buffer.

    ``add`` triggers a flush when the buffer is full; callers flush once more
    at the end of input. The flush callback is the only suspension point.
    """

    def __init__(self, capacity: int, flush: Callable[[List[T]], Awaitable[None]]):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._flush = flush
        self._items: List[T] = []

    def __len__(self) -> int:
        return len(self._items)

    async def add(self, item: T) -> None:
        self._items.append(item)
        if len(self._items) >= self.capacity:
            await self.flush()

    async def flush(self) -> None:
        if not self._items:
            return
        batch, self._items = self._items, []
        await self._flush(batch)


@dataclass
class IndexProgress:
    """Progress event passed to the optional progress callback."""

    phase: str  # "scan", "index", "link", "summarize", "done"
    current: int
    total: int
    file: Optional[str] = None


@dataclass
class IndexStats:
    """Outcome of one indexing pass."""

    added: int = 0
    updated: int = 0
    removed: int = 0
    unchanged: int = 0
    chunks_written: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    extraction_errors: int = 0
    read_errors: int = 0
    symbols: int = 0
    dependencies: int = 0
    calls: int = 0
    symbols_summarized: int = 0
    summarization_errors: int = 0
    summarization_skipped: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class _PendingChunk:
    chunk: DocumentChunk  # vector still empty
    file_path: str


@dataclass
class _PendingFile:
    record: FileMetadataRecord
    remaining: int
    relative_path: str = ""


class IndexingPipeline:
    """Builds and incrementally updates named indexes.

    Collaborators are injected and owned by the caller; the pipeline never
    opens providers or stores itself.
    """

    def __init__(
        self,
        store: VectorIndexStore,
        cache: EmbeddingCache,
        embedder: EmbeddingProvider,
        config: Optional[IndexingConfig] = None,
        registry: Optional[FrontEndRegistry] = None,
        progress: Optional[Callable[[IndexProgress], None]] = None,
        graph_for: Optional[Callable[[str], CodeGraphStore]] = None,
        suggester: Optional[ApproachSuggester] = None,
    ):
        self.store = store
        self.cache = cache
        self.embedder = embedder
        self.config = config or IndexingConfig()
        self.registry = registry or create_default_registry()
        self.progress = progress
        self.graph_for = graph_for or (lambda name: CodeGraphStore(store.db_path, name))
        self.suggester = suggester

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def build(self, name: str, root: Path) -> IndexStats:
        """Create an index and run a full pass over ``root``.

        Raises:
            IndexAlreadyExistsError: The index exists (use ``update``)
            EmbeddingFailureError: The pass failed; the index is ``failed``
        """
        if await self.store.get_index(name) is not None:
            raise IndexAlreadyExistsError(name)
        root = root.expanduser().resolve()
        meta = await self.store.create_index(
            name, str(root), self.embedder.model_id, self.embedder.get_dimensions()
        )
        return await self._run_pass(meta)

    async def update(self, name: str) -> IndexStats:
        """Re-index only files whose content changed since the last pass.

        Raises:
            IndexNotFoundError: No such index
            CodeRadarError: The index is ``failed`` (use ``retry``)
        """
        meta = await self.store.require_index(name)
        if meta.status == IndexStatus.FAILED:
            raise CodeRadarError(
                f"Index '{name}' is in failed state; run retry to rebuild it"
            )
        self._check_model(meta)
        return await self._run_pass(meta)

    async def retry(self, name: str) -> IndexStats:
        """Start a fresh full pass, discarding whatever a failed pass left."""
        meta = await self.store.require_index(name)
        self._check_model(meta)
        logger.info(f"Retrying index '{name}' from scratch")
        for table in (meta.chunks_table, meta.files_table):
            self.store.drop_table(table)
        await self.graph_for(name).clear()
        return await self._run_pass(meta)

    def _check_model(self, meta: IndexMetadata) -> None:
        if meta.embedding_model != self.embedder.model_id:
            raise CodeRadarError(
                f"Index '{meta.name}' was built with '{meta.embedding_model}', "
                f"provider uses '{self.embedder.model_id}'"
            )

    # ------------------------------------------------------------------
    # Pass
    # ------------------------------------------------------------------

    def _emit(self, phase: str, current: int, total: int, file: Optional[str] = None) -> None:
        if self.progress is not None:
            self.progress(IndexProgress(phase=phase, current=current, total=total, file=file))

    async def _run_pass(self, meta: IndexMetadata) -> IndexStats:
        meta = await self.store.update_index_status(meta, IndexStatus.BUILDING)
        try:
            stats = await self._process(meta)
        except BaseException:
            logger.error(f"Indexing pass for '{meta.name}' failed; marking index failed")
            await self.store.update_index_status(meta, IndexStatus.FAILED)
            raise
        meta = await self.store.update_index_status(meta, IndexStatus.READY)
        logger.info(
            f"Index '{meta.name}' ready: {stats.added} added, {stats.updated} updated, "
            f"{stats.removed} removed, {stats.unchanged} unchanged, {meta.chunk_count} chunks"
        )
        self._emit("done", 1, 1)
        return stats

    async def _process(self, meta: IndexMetadata) -> IndexStats:
        root = Path(meta.root_path)
        stats = IndexStats()
        graph = self.graph_for(meta.name)
        resolver = SymbolResolver(self.registry, root)

        self._emit("scan", 0, 0)
        files = walk_files(root, self.config)
        known_files = {str(f.absolute_path) for f in files}
        metadata_table_present = self.store.has_file_metadata(meta)
        stored_hashes = await self.store.get_file_content_hashes(meta)

        for vanished in sorted(set(stored_hashes) - known_files):
            await self._remove_file(meta, graph, vanished)
            stats.removed += 1

        pending_files: Dict[str, _PendingFile] = {}

        async def write_chunks(batch: List[DocumentChunk]) -> None:
            try:
                written = await self.store.add_chunks(meta, batch)
            except Exception as e:
                raise EmbeddingFailureError(
                    f"Vector store write failed: {e}", index_name=meta.name
                ) from e
            stats.chunks_written += written
            finished = []
            for chunk in batch:
                pending = pending_files[chunk.file_path]
                pending.remaining -= 1
                if pending.remaining == 0:
                    finished.append(pending_files.pop(chunk.file_path).record)
            await self.store.upsert_file_metadata(meta, finished)

        write_buffer: BatchBuffer[DocumentChunk] = BatchBuffer(
            self.config.write_batch_size, write_chunks
        )

        async def embed_chunks(batch: List[_PendingChunk]) -> None:
            vectors = await self._embed_texts([p.chunk.content for p in batch], stats, meta)
            for pending, vector in zip(batch, vectors):
                pending.chunk.vector = vector
                await write_buffer.add(pending.chunk)

        embed_buffer: BatchBuffer[_PendingChunk] = BatchBuffer(
            self.config.embed_batch_size, embed_chunks
        )

        for position, walked in enumerate(files, start=1):
            path = str(walked.absolute_path)
            self._emit("index", position, len(files), walked.relative_path)
            try:
                text = walked.absolute_path.read_text(encoding="utf-8", errors="replace")
            except OSError as e:
                logger.warning(f"Cannot read {walked.relative_path}: {e}")
                stats.read_errors += 1
                continue

            content_hash = hash_content(text)
            previous = stored_hashes.get(path)
            if previous == content_hash:
                stats.unchanged += 1
                if not metadata_table_present:
                    # Pre-metadata index: backfill records for untouched files
                    count = len(await self.store.get_chunks_by_file_path(meta, path))
                    await self.store.upsert_file_metadata(
                        meta,
                        [
                            FileMetadataRecord(
                                file_path=path, content_hash=content_hash, chunk_count=count
                            )
                        ],
                    )
                continue

            if previous is None:
                stats.added += 1
            else:
                stats.updated += 1
                logger.debug(f"Changed: {walked.relative_path}")

            # Also clears leftovers of a failed earlier pass for new files
            await self.store.delete_chunks_by_file_path(meta, path)
            await graph.delete_file(path)

            chunks = self._make_chunks(walked, text, content_hash)
            record = FileMetadataRecord(
                file_path=path, content_hash=content_hash, chunk_count=len(chunks)
            )
            if chunks:
                pending_files[path] = _PendingFile(
                    record=record, remaining=len(chunks), relative_path=walked.relative_path
                )
                for chunk in chunks:
                    await embed_buffer.add(_PendingChunk(chunk=chunk, file_path=path))
            else:
                await self.store.upsert_file_metadata(meta, [record])

            if self.config.extract_structure:
                await self._extract(walked, text, graph, resolver, known_files, stats)

        await embed_buffer.flush()
        await write_buffer.flush()

        if self.config.extract_structure:
            self._emit("link", 0, 0)
            await resolver.refresh(graph, known_files)
            if self.suggester is not None and self.config.summarize:
                await self._summarize(graph, stats)

        return stats

    def _make_chunks(self, walked: WalkedFile, text: str, content_hash: str) -> List[DocumentChunk]:
        fragments = chunk_file_text(
            text, walked.relative_path, self.config.chunk_size, self.config.chunk_overlap
        )
        return [
            DocumentChunk(
                id=DocumentChunk.make_id(walked.relative_path, content_hash, fragment.index),
                file_path=str(walked.absolute_path),
                relative_path=walked.relative_path,
                content_hash=content_hash,
                chunk_index=fragment.index,
                content=fragment.content,
                vector=[],
                line_start=fragment.start_line,
                line_end=fragment.end_line,
                file_type=walked.extension.lstrip("."),
            )
            for fragment in fragments
        ]

    async def _embed_texts(
        self, texts: List[str], stats: IndexStats, meta: IndexMetadata
    ) -> List[List[float]]:
        """Vectors for ``texts``, from the cache or one provider call."""
        model = self.embedder.model_id
        cached = await self.cache.get_many(model, texts)
        misses = list(dict.fromkeys(t for t in texts if t not in cached))
        stats.cache_hits += len(texts) - sum(1 for t in texts if t not in cached)
        stats.cache_misses += len(misses)

        if misses:
            try:
                result = await self.embedder.embed(misses)
            except EmbeddingFailureError:
                raise
            except Exception as e:
                raise EmbeddingFailureError(
                    f"Embedding provider failed: {e}", index_name=meta.name
                ) from e
            if len(result.embeddings) != len(misses):
                raise EmbeddingFailureError(
                    f"Provider returned {len(result.embeddings)} vectors for {len(misses)} texts",
                    index_name=meta.name,
                )
            for vector in result.embeddings:
                if len(vector) != meta.dimensions:
                    raise EmbeddingFailureError(
                        f"Provider returned {len(vector)}-dim vectors, index expects "
                        f"{meta.dimensions}",
                        index_name=meta.name,
                    )
            fresh = dict(zip(misses, result.embeddings))
            await self.cache.set_many(model, list(fresh.items()))
            cached.update(fresh)

        return [cached[t] for t in texts]

    async def _extract(
        self,
        walked: WalkedFile,
        text: str,
        graph: CodeGraphStore,
        resolver: SymbolResolver,
        known_files: Set[str],
        stats: IndexStats,
    ) -> None:
        try:
            result = self.registry.try_extract(
                text, str(walked.absolute_path), walked.relative_path
            )
        except ExtractionFailureError as e:
            logger.warning(f"{e}; indexing chunks only")
            stats.extraction_errors += 1
            return

        resolver.resolve_dependencies(result.dependencies, known_files)
        stats.symbols += await graph.add_symbols(result.symbols)
        stats.dependencies += await graph.add_dependencies(result.dependencies)
        stats.calls += await graph.add_calls(result.calls)

    async def _summarize(self, graph: CodeGraphStore, stats: IndexStats) -> None:
        """Generate and store summaries for symbols that need one."""
        candidates = [
            s
            for s in await graph.get_symbols()
            if s.kind in SUMMARIZED_KINDS and (self.config.resummarize or not s.summary)
        ]
        if not candidates:
            return

        try:
            healthy = (await self.suggester.generator.health_check()).healthy
        except Exception as e:
            logger.warning(f"Text generation health check failed: {e}")
            healthy = False
        if not healthy:
            logger.warning("Text generation provider unavailable; skipping symbol summaries")
            stats.summarization_skipped = True
            return

        sources: Dict[str, List[str]] = {}
        summaries: Dict[str, str] = {}
        for position, symbol in enumerate(candidates, start=1):
            self._emit("summarize", position, len(candidates), symbol.relative_path)
            try:
                summary = await self.suggester.summarize_symbol(
                    symbol.name,
                    symbol.kind,
                    self._symbol_source(symbol, sources),
                    signature=symbol.signature,
                    documentation=symbol.documentation,
                )
            except Exception as e:
                logger.warning(f"Cannot summarize {symbol.id}: {e}")
                stats.summarization_errors += 1
                continue
            if not summary:
                stats.summarization_errors += 1
                continue
            summaries[symbol.id] = summary

        stats.symbols_summarized += await graph.set_summaries(summaries)
        logger.info(f"Summarized {stats.symbols_summarized} of {len(candidates)} symbols")

    @staticmethod
    def _symbol_source(symbol: CodeSymbol, sources: Dict[str, List[str]]) -> str:
        """Source lines of a symbol, read once per file."""
        if symbol.file_path not in sources:
            text = Path(symbol.file_path).read_text(encoding="utf-8", errors="replace")
            sources[symbol.file_path] = text.splitlines()
        lines = sources[symbol.file_path][symbol.range.start.line - 1 : symbol.range.end.line]
        return "\n".join(lines)[:MAX_SUMMARY_SOURCE_CHARS]

    async def _remove_file(self, meta: IndexMetadata, graph: CodeGraphStore, path: str) -> None:
        deleted = await self.store.delete_chunks_by_file_path(meta, path)
        await self.store.delete_file_metadata(meta, path)
        await graph.delete_file(path)
        logger.debug(f"Removed {path} ({deleted} chunks)")
