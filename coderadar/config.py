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

"""Configuration models for indexing, context building and providers.

Configuration is built in code. Loading it from files is left to callers.
"""

from pathlib import Path
from typing import List

from pydantic import BaseModel, Field, model_validator

DEFAULT_DB_PATH = Path.home() / ".coderadar" / "db"

# Version control, dependencies, build outputs, lock and compiled files
DEFAULT_EXCLUDES: List[str] = [
    ".git",
    ".hg",
    ".svn",
    "node_modules",
    ".venv",
    "venv",
    "__pycache__",
    "vendor",
    "dist",
    "build",
    "target",
    "out",
    ".next",
    ".nuxt",
    ".DS_Store",
    "Thumbs.db",
    "*.min.js",
    "*.min.css",
    "*.lock",
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
    "Gemfile.lock",
    "poetry.lock",
    "Cargo.lock",
    "*.pyc",
    "*.pyo",
    "*.o",
    "*.obj",
    "*.class",
]

# Files that commonly carry credentials and must never be embedded
DEFAULT_SECRET_EXCLUDES: List[str] = [
    ".env*",
    "*.pem",
    "*.key",
    "*.p12",
    "*.pfx",
    "id_rsa*",
    "id_ed25519*",
    "id_ecdsa*",
    "id_dsa*",
    "credentials.json",
    "secrets.json",
    ".aws/*",
    ".npmrc",
    ".pypirc",
    ".netrc",
]


class IndexingConfig(BaseModel):
    """Configuration for building and updating an index."""

    db_path: Path = Field(
        default=DEFAULT_DB_PATH,
        description="Directory holding LanceDB tables and per-index meta.json files",
    )
    chunk_size: int = Field(default=500, gt=0, description="Max tokens per chunk")
    chunk_overlap: int = Field(default=50, ge=0, description="Overlap tokens between chunks")
    max_file_size: int = Field(
        default=5 * 1024 * 1024, gt=0, description="Files larger than this (bytes) are skipped"
    )
    embed_batch_size: int = Field(
        default=32, gt=0, description="Cache-miss chunks grouped per provider call"
    )
    write_batch_size: int = Field(
        default=500, gt=0, description="Embedded chunks buffered per vector store write"
    )
    excludes: List[str] = Field(
        default_factory=lambda: list(DEFAULT_EXCLUDES),
        description="Names or simple globs excluded while walking",
    )
    secret_excludes: List[str] = Field(
        default_factory=lambda: list(DEFAULT_SECRET_EXCLUDES),
        description="Sensitive file patterns, always excluded",
    )
    include_hidden: bool = Field(
        default=False, description="Walk dot-directories and dot-files"
    )
    extract_structure: bool = Field(
        default=True, description="Populate the code graph (symbols, dependencies, calls)"
    )
    summarize: bool = Field(
        default=True,
        description="Summarize functions, classes and methods when a text generator is set",
    )
    resummarize: bool = Field(
        default=False, description="Regenerate summaries that already exist"
    )

    @model_validator(mode="after")
    def _check_overlap(self) -> "IndexingConfig":
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError(
                f"chunk_overlap ({self.chunk_overlap}) must be smaller than "
                f"chunk_size ({self.chunk_size})"
            )
        return self


class ContextConfig(BaseModel):
    """Defaults and scoring weights for context packages."""

    limit: int = Field(default=15, gt=0, description="Max relevant files")
    max_tokens: int = Field(default=32000, ge=0, description="Token budget")
    depth: int = Field(default=2, ge=0, description="Call graph expansion depth")
    overfetch_multiplier: int = Field(
        default=3, gt=0, description="Chunks fetched per requested file"
    )
    relevance_weight: float = Field(
        default=0.7, description="Weight of 1/(1+distance) in symbol scores"
    )
    export_weight: float = Field(default=0.3, description="Weight of the exported bonus")
    exported_bonus: float = Field(
        default=0.2, description="Bonus applied to exported symbols"
    )


class OllamaConfig(BaseModel):
    """Connection settings for the Ollama reference providers."""

    host: str = Field(default="http://localhost:11434", description="Ollama base URL")
    embedding_model: str = Field(default="mxbai-embed-large", description="Embedding model")
    chat_model: str = Field(default="qwen2.5-coder:1.5b", description="Chat model for summaries")
    timeout: float = Field(default=120.0, gt=0, description="Request timeout in seconds")
    batch_size: int = Field(default=32, gt=0, description="Texts per /api/embed request")
