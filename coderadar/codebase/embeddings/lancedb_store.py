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

"""LanceDB vector index store.

Persists chunks and their vectors per named index, with hash-based change
tracking for incremental updates.

Layout under ``db_path``:
- ``<name>/meta.json``: IndexMetadata (camelCase JSON, schema-versioned)
- ``<name>_chunks``: one row per chunk, cosine-searchable ``vector`` column
- ``<name>_files``: one FileMetadataRecord row per indexed file

The code graph tables of an index (``<name>_symbols``, ``<name>_dependencies``,
``<name>_calls``) live in the same directory and are dropped together with
the index.

Advantages of keeping a file metadata table:
- Change detection reads O(files) rows instead of O(chunks)
- Indexes written before the table existed still work: hashes fall back to a
  chunk scan and the table is rebuilt as files are reprocessed
"""

import json
import logging
import shutil
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pyarrow as pa

from coderadar.codebase.embeddings.models import (
    DocumentChunk,
    FileMetadataRecord,
    IndexMetadata,
    IndexStatus,
    SearchResult,
    utc_now,
)
from coderadar.codebase.lance_tables import LanceTables, quote
from coderadar.errors import IndexAlreadyExistsError, IndexNotFoundError

logger = logging.getLogger(__name__)

META_FILE = "meta.json"

# Suffixes of every table owned by a named index
INDEX_TABLE_SUFFIXES = ("_chunks", "_files", "_symbols", "_dependencies", "_calls")

FILES_SCHEMA = pa.schema(
    [
        pa.field("file_path", pa.string()),
        pa.field("content_hash", pa.string()),
        pa.field("chunk_count", pa.int64()),
        pa.field("updated_at", pa.string()),
    ]
)


def chunk_schema(dimensions: int) -> pa.Schema:
    """Arrow schema of a chunk table for the given vector size."""
    return pa.schema(
        [
            pa.field("id", pa.string()),
            pa.field("file_path", pa.string()),
            pa.field("relative_path", pa.string()),
            pa.field("content_hash", pa.string()),
            pa.field("chunk_index", pa.int64()),
            pa.field("content", pa.string()),
            pa.field("vector", pa.list_(pa.float32(), dimensions)),
            pa.field("line_start", pa.int64()),
            pa.field("line_end", pa.int64()),
            pa.field("file_type", pa.string()),
            pa.field("created_at", pa.string()),
        ]
    )


class VectorIndexStore(LanceTables):
    """Named vector indexes in one LanceDB directory.

    Usage:
        store = VectorIndexStore(Path("~/.coderadar/db"))
        meta = await store.create_index("myproj", "/src/myproj", "mxbai-embed-large", 1024)
        await store.add_chunks(meta, chunks)
        results = await store.search_chunks(meta, query_vector, limit=10)
    """

    # ------------------------------------------------------------------
    # Index lifecycle
    # ------------------------------------------------------------------

    def _meta_path(self, name: str) -> Path:
        return self.db_path / name / META_FILE

    def _write_metadata(self, meta: IndexMetadata) -> None:
        path = self._meta_path(meta.name)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(
            json.dumps(meta.model_dump(by_alias=True, mode="json"), indent=2), encoding="utf-8"
        )
        tmp.replace(path)

    async def create_index(
        self, name: str, root_path: str, model: str, dimensions: int
    ) -> IndexMetadata:
        """Create an index in ``building`` state.

        Raises:
            IndexAlreadyExistsError: A metadata record for ``name`` exists
        """
        if self._meta_path(name).exists():
            raise IndexAlreadyExistsError(name)

        meta = IndexMetadata(
            name=name,
            root_path=str(root_path),
            status=IndexStatus.BUILDING,
            embedding_model=model,
            dimensions=dimensions,
            generation_id=1,
        )
        self._write_metadata(meta)
        logger.info(f"Created index '{name}' ({model}, {dimensions} dims)")
        return meta

    async def get_index(self, name: str) -> Optional[IndexMetadata]:
        path = self._meta_path(name)
        if not path.exists():
            return None
        return IndexMetadata.model_validate(json.loads(path.read_text(encoding="utf-8")))

    async def require_index(self, name: str) -> IndexMetadata:
        """Like ``get_index`` but raises IndexNotFoundError when absent."""
        meta = await self.get_index(name)
        if meta is None:
            raise IndexNotFoundError(name)
        return meta

    async def list_indexes(self) -> List[IndexMetadata]:
        indexes = []
        for meta_path in sorted(self.db_path.glob(f"*/{META_FILE}")):
            meta = await self.get_index(meta_path.parent.name)
            if meta is not None:
                indexes.append(meta)
        return indexes

    async def delete_index(self, name: str) -> bool:
        """Delete an index and all of its tables.

        Returns:
            False if the index did not exist
        """
        meta_dir = self.db_path / name
        existed = (meta_dir / META_FILE).exists()
        for suffix in INDEX_TABLE_SUFFIXES:
            existed = self.drop_table(f"{name}{suffix}") or existed
        if meta_dir.exists():
            shutil.rmtree(meta_dir)
        if existed:
            logger.info(f"Deleted index '{name}'")
        return existed

    async def update_index_status(
        self, meta: IndexMetadata, status: IndexStatus
    ) -> IndexMetadata:
        """Transition an index to ``status`` and refresh its counts.

        ``chunk_count`` is recomputed from the live chunk table and
        ``document_count`` from the file metadata table. Entering
        ``building`` from another state starts a new generation.

        Returns:
            The persisted metadata
        """
        current = await self.require_index(meta.name)
        generation = current.generation_id
        if status == IndexStatus.BUILDING and current.status != IndexStatus.BUILDING:
            generation += 1

        updated = current.model_copy(
            update={
                "status": status,
                "chunk_count": await self.count_chunks(current),
                "document_count": await self._count_documents(current),
                "generation_id": generation,
                "updated_at": utc_now(),
            }
        )
        self._write_metadata(updated)
        logger.debug(
            f"Index '{meta.name}' -> {status.value} "
            f"({updated.chunk_count} chunks, {updated.document_count} files)"
        )
        return updated

    # ------------------------------------------------------------------
    # Chunks
    # ------------------------------------------------------------------

    async def add_chunks(self, meta: IndexMetadata, chunks: Sequence[DocumentChunk]) -> int:
        """Append chunks, creating the chunk table on first write.

        Returns:
            Number of rows written
        """
        if not chunks:
            return 0
        for chunk in chunks:
            if len(chunk.vector) != meta.dimensions:
                raise ValueError(
                    f"Chunk {chunk.id} has {len(chunk.vector)} dims, index "
                    f"'{meta.name}' expects {meta.dimensions}"
                )
        table = self.ensure_table(meta.chunks_table, chunk_schema(meta.dimensions))
        table.add([chunk.model_dump() for chunk in chunks])
        return len(chunks)

    async def search_chunks(
        self, meta: IndexMetadata, query_vector: Sequence[float], limit: int = 10
    ) -> List[SearchResult]:
        """Nearest chunks by cosine distance, most relevant first.

        A missing or empty chunk table yields an empty list.
        """
        table = self.open_table(meta.chunks_table)
        if table is None or limit <= 0 or table.count_rows() == 0:
            return []

        rows = (
            table.search(list(query_vector))
            .distance_type("cosine")
            .limit(limit)
            .to_list()
        )
        return [SearchResult.from_row(row) for row in rows]

    async def count_chunks(self, meta: IndexMetadata) -> int:
        table = self.open_table(meta.chunks_table)
        return table.count_rows() if table is not None else 0

    async def get_chunks_by_file_path(
        self, meta: IndexMetadata, file_path: str
    ) -> List[DocumentChunk]:
        table = self.open_table(meta.chunks_table)
        if table is None:
            return []
        rows = self.scan(table, f"file_path = {quote(file_path)}")
        chunks = [
            DocumentChunk.model_validate({k: v for k, v in row.items() if not k.startswith("_")})
            for row in rows
        ]
        return sorted(chunks, key=lambda c: c.chunk_index)

    async def delete_chunks_by_file_path(self, meta: IndexMetadata, file_path: str) -> int:
        """Delete every chunk of a file.

        Returns:
            Number of rows deleted
        """
        table = self.open_table(meta.chunks_table)
        if table is None:
            return 0
        predicate = f"file_path = {quote(file_path)}"
        count = table.count_rows(predicate)
        if count:
            table.delete(predicate)
        return count

    # ------------------------------------------------------------------
    # File metadata
    # ------------------------------------------------------------------

    def has_file_metadata(self, meta: IndexMetadata) -> bool:
        return self.table_exists(meta.files_table)

    async def get_file_content_hashes(self, meta: IndexMetadata) -> Dict[str, str]:
        """Map of file path -> content hash for every indexed file.

        Reads the file metadata table when present, otherwise scans the chunk
        table (indexes created before the metadata table existed).
        """
        files = self.open_table(meta.files_table)
        if files is not None:
            return {row["file_path"]: row["content_hash"] for row in self.scan(files)}

        chunks = self.open_table(meta.chunks_table)
        if chunks is None:
            return {}
        logger.info(f"Index '{meta.name}' has no file metadata table; scanning chunks")
        hashes: Dict[str, str] = {}
        for row in self.scan(chunks):
            hashes.setdefault(row["file_path"], row["content_hash"])
        return hashes

    async def upsert_file_metadata(
        self, meta: IndexMetadata, records: Sequence[FileMetadataRecord]
    ) -> None:
        """Insert or replace file metadata rows keyed by file path."""
        if not records:
            return
        table = self.ensure_table(meta.files_table, FILES_SCHEMA)
        paths = ", ".join(quote(r.file_path) for r in records)
        table.delete(f"file_path IN ({paths})")
        table.add([r.model_dump() for r in records])

    async def delete_file_metadata(self, meta: IndexMetadata, file_path: str) -> int:
        table = self.open_table(meta.files_table)
        if table is None:
            return 0
        predicate = f"file_path = {quote(file_path)}"
        count = table.count_rows(predicate)
        if count:
            table.delete(predicate)
        return count

    async def _count_documents(self, meta: IndexMetadata) -> int:
        files = self.open_table(meta.files_table)
        if files is not None:
            return files.count_rows()
        return len(await self.get_file_content_hashes(meta))

    async def get_stats(self, meta: IndexMetadata) -> Dict[str, int]:
        """Row counts for the index's vector tables."""
        return {
            "chunks": await self.count_chunks(meta),
            "files": await self._count_documents(meta),
        }
