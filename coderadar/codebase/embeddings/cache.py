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

"""Content-addressed embedding cache.

Maps (model, exact text) to a vector so identical chunks are embedded once
across runs. Keys are ``sha256("{model}:{text}")``: a content change is a new
key, so entries never need invalidation.
"""

import logging
import math
from typing import Dict, List, Optional, Sequence

import pyarrow as pa

from coderadar.codebase.embeddings.models import utc_now
from coderadar.codebase.hashing import hash_content
from coderadar.codebase.lance_tables import LanceTables, quote
from coderadar.errors import MalformedCacheEntryError

logger = logging.getLogger(__name__)

CACHE_TABLE = "embeddings"

# Vectors vary in length across models, so the column is a plain list
CACHE_SCHEMA = pa.schema(
    [
        pa.field("cache_key", pa.string()),
        pa.field("vector", pa.list_(pa.float32())),
        pa.field("created_at", pa.string()),
    ]
)


def make_cache_key(model: str, text: str) -> str:
    """Derive the cache key for a model and exact text."""
    return hash_content(f"{model}:{text}")


def decode_vector(cache_key: str, raw) -> List[float]:
    """Validate a stored vector.

    Raises:
        MalformedCacheEntryError: Vector missing, empty or non-finite
    """
    if raw is None:
        raise MalformedCacheEntryError(cache_key, "missing vector")
    try:
        vector = [float(v) for v in raw]
    except (TypeError, ValueError) as e:
        raise MalformedCacheEntryError(cache_key, str(e)) from e
    if not vector:
        raise MalformedCacheEntryError(cache_key, "empty vector")
    if not all(math.isfinite(v) for v in vector):
        raise MalformedCacheEntryError(cache_key, "non-finite component")
    return vector


class EmbeddingCache(LanceTables):
    """LanceDB-backed embedding cache.

    Usage:
        cache = EmbeddingCache(Path("~/.coderadar/cache"))
        vector = await cache.get("mxbai-embed-large", chunk_text)
        if vector is None:
            vector = (await provider.embed(chunk_text)).embeddings[0]
            await cache.set("mxbai-embed-large", chunk_text, vector)
    """

    def _table(self, create: bool = False):
        if create:
            return self.ensure_table(CACHE_TABLE, CACHE_SCHEMA)
        return self.open_table(CACHE_TABLE)

    async def get(self, model: str, text: str) -> Optional[List[float]]:
        """Look up a vector. Returns None on a miss or a malformed entry."""
        found = await self.get_many(model, [text])
        return found.get(text)

    async def get_many(self, model: str, texts: Sequence[str]) -> Dict[str, List[float]]:
        """Look up many texts at once.

        Returns:
            Mapping of text -> vector for hits only
        """
        table = self._table()
        if table is None or not texts:
            return {}

        keys = {make_cache_key(model, text): text for text in texts}
        predicate = "cache_key IN (" + ", ".join(quote(k) for k in keys) + ")"

        hits: Dict[str, List[float]] = {}
        for row in self.scan(table, predicate):
            key = row["cache_key"]
            try:
                hits[keys[key]] = decode_vector(key, row.get("vector"))
            except MalformedCacheEntryError as e:
                logger.warning(f"{e}; treating as a miss")
        return hits

    async def set(self, model: str, text: str, vector: Sequence[float]) -> None:
        """Store a vector, replacing any entry with the same key."""
        await self.set_many(model, [(text, vector)])

    async def set_many(self, model: str, entries: Sequence[tuple]) -> None:
        """Store ``(text, vector)`` pairs in one write."""
        if not entries:
            return
        table = self._table(create=True)
        now = utc_now()
        records = {}
        for text, vector in entries:
            key = make_cache_key(model, text)
            records[key] = {
                "cache_key": key,
                "vector": [float(v) for v in vector],
                "created_at": now,
            }

        # LanceDB has no upsert by key: delete then insert
        table.delete("cache_key IN (" + ", ".join(quote(k) for k in records) + ")")
        table.add(list(records.values()))

    async def count(self) -> int:
        table = self._table()
        return table.count_rows() if table is not None else 0

    async def clear(self) -> None:
        """Drop every cached vector."""
        self.drop_table(CACHE_TABLE)
