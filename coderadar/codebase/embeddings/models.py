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

"""Records persisted by the vector index store.

Row models (chunks, file metadata) use snake_case names that double as
LanceDB column names. IndexMetadata is written to ``meta.json`` with
camelCase keys.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

SCHEMA_VERSION = 1


def utc_now() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


class IndexStatus(str, Enum):
    """Lifecycle state of a named index."""

    BUILDING = "building"
    READY = "ready"
    FAILED = "failed"


class IndexMetadata(BaseModel):
    """Per-index metadata record, one ``meta.json`` per index."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    schema_version: int = Field(default=SCHEMA_VERSION, description="meta.json layout version")
    name: str = Field(description="Index name, also the table name prefix")
    root_path: str = Field(description="Absolute path of the indexed directory")
    status: IndexStatus = Field(default=IndexStatus.BUILDING)
    embedding_model: str = Field(description="Model that produced the stored vectors")
    dimensions: int = Field(gt=0, description="Vector dimensions")
    created_at: str = Field(default_factory=utc_now)
    updated_at: str = Field(default_factory=utc_now)
    document_count: int = Field(default=0, description="Indexed files")
    chunk_count: int = Field(default=0, description="Live rows in the chunk table")
    generation_id: int = Field(default=1, description="Incremented whenever a new pass starts")

    @property
    def chunks_table(self) -> str:
        return f"{self.name}_chunks"

    @property
    def files_table(self) -> str:
        return f"{self.name}_files"


class DocumentChunk(BaseModel):
    """One chunk row: a slice of a file plus its embedding."""

    id: str
    file_path: str
    relative_path: str
    content_hash: str = Field(description="Hash of the whole file the chunk came from")
    chunk_index: int
    content: str
    vector: List[float]
    line_start: int
    line_end: int
    file_type: str = Field(description="Lowercase extension without the dot")
    created_at: str = Field(default_factory=utc_now)

    @staticmethod
    def make_id(relative_path: str, content_hash: str, chunk_index: int) -> str:
        """Deterministic chunk id for a file version and position."""
        return f"{relative_path}:{content_hash[:12]}:{chunk_index}"


class FileMetadataRecord(BaseModel):
    """One row per indexed file, used for O(files) change detection."""

    file_path: str
    content_hash: str
    chunk_count: int
    updated_at: str = Field(default_factory=utc_now)


class SearchResult(BaseModel):
    """A ranked chunk hit.

    ``distance`` is the cosine distance reported by the store (lower is more
    relevant). ``score`` is ``1 - distance``.
    """

    file_path: str
    relative_path: str
    content: str
    score: float
    distance: float
    line_start: Optional[int] = None
    line_end: Optional[int] = None
    chunk_index: int = 0
    vector: Optional[List[float]] = Field(default=None, exclude=True)

    @classmethod
    def from_row(cls, row: dict) -> "SearchResult":
        distance = float(row.get("_distance", 0.0))
        line_start = row.get("line_start")
        line_end = row.get("line_end")
        vector = row.get("vector")
        return cls(
            file_path=row["file_path"],
            relative_path=row.get("relative_path", ""),
            content=row.get("content", ""),
            score=1.0 - distance,
            distance=distance,
            line_start=line_start if line_start is not None and line_start >= 0 else None,
            line_end=line_end if line_end is not None and line_end >= 0 else None,
            chunk_index=row.get("chunk_index", 0),
            vector=list(vector) if vector is not None else None,
        )
