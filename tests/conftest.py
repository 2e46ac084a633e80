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

"""Shared fixtures: deterministic providers and temporary index locations."""

import hashlib
import math
import re
from pathlib import Path
from typing import List, Optional, Union

import pytest

from coderadar.codebase.embeddings.base import (
    EmbeddingProvider,
    EmbeddingResult,
    HealthStatus,
    TextGenerationProvider,
)
from coderadar.config import IndexingConfig

FAKE_DIMENSIONS = 16

_WORD = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


def bag_of_words_vector(text: str, dimensions: int = FAKE_DIMENSIONS) -> List[float]:
    """Hash each word into a bucket; texts sharing words get similar vectors."""
    vector = [0.0] * dimensions
    for word in _WORD.findall(text.lower()):
        bucket = int(hashlib.md5(word.encode("utf-8")).hexdigest(), 16) % dimensions
        vector[bucket] += 1.0
    vector[0] += 0.01  # never a zero vector
    norm = math.sqrt(sum(v * v for v in vector))
    return [v / norm for v in vector]


class FakeEmbeddingProvider(EmbeddingProvider):
    """Deterministic in-process embedder that records every call."""

    def __init__(self, model: str = "fake-embed", dimensions: int = FAKE_DIMENSIONS):
        self._model = model
        self._dimensions = dimensions
        self.calls: List[List[str]] = []
        self.fail_after: Optional[int] = None
        self.closed = False

    @property
    def model_id(self) -> str:
        return self._model

    async def embed(self, texts: Union[str, List[str]]) -> EmbeddingResult:
        batch = [texts] if isinstance(texts, str) else list(texts)
        if self.fail_after is not None and len(self.calls) >= self.fail_after:
            raise RuntimeError("embedding backend exploded")
        self.calls.append(batch)
        return EmbeddingResult(
            embeddings=[bag_of_words_vector(t, self._dimensions) for t in batch],
            model=self._model,
        )

    async def health_check(self) -> HealthStatus:
        return HealthStatus(healthy=True, model_available=True)

    def get_dimensions(self) -> int:
        return self._dimensions

    async def close(self) -> None:
        self.closed = True

    @property
    def embedded_texts(self) -> List[str]:
        return [t for batch in self.calls for t in batch]


class FakeTextGenerator(TextGenerationProvider):
    """Returns a scripted reply (or raises) for every prompt."""

    def __init__(self, reply: str = "", healthy: bool = True, error: Optional[Exception] = None):
        self.reply = reply
        self.healthy = healthy
        self.error = error
        self.prompts: List[str] = []

    async def generate_text(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply

    async def health_check(self) -> HealthStatus:
        return HealthStatus(healthy=self.healthy, model_available=self.healthy)


@pytest.fixture
def embedder() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "db"


@pytest.fixture
def indexing_config(db_path: Path) -> IndexingConfig:
    return IndexingConfig(
        db_path=db_path,
        chunk_size=64,
        chunk_overlap=8,
        embed_batch_size=4,
        write_batch_size=8,
    )


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Small TypeScript project: login.ts imports and calls auth.ts."""
    root = tmp_path / "project"
    (root / "src").mkdir(parents=True)
    (root / "src" / "auth.ts").write_text(
        "export function validateUser(name: string, password: string): boolean {\n"
        "  return checkPassword(password);\n"
        "}\n"
        "\n"
        "function checkPassword(password: string): boolean {\n"
        "  return password.length > 8;\n"
        "}\n",
        encoding="utf-8",
    )
    (root / "src" / "login.ts").write_text(
        "import { validateUser } from './auth';\n"
        "\n"
        "export function login(name: string, password: string) {\n"
        "  if (!validateUser(name, password)) {\n"
        "    throw new Error('invalid login');\n"
        "  }\n"
        "}\n",
        encoding="utf-8",
    )
    return root
