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

"""Provider contracts for embeddings and text generation.

This module separates concerns:
1. **Embedding Provider**: Generates vectors from text (Ollama, test fakes, ...)
2. **Text Generation Provider**: Produces free text for optional features
   such as approach suggestions

Stores never call providers directly. The indexing pipeline, search and the
context builder receive providers as constructor arguments.
"""

from abc import ABC, abstractmethod
from typing import List, Union

from pydantic import BaseModel, Field


class EmbeddingResult(BaseModel):
    """Vectors returned by an embedding provider, in input order."""

    embeddings: List[List[float]] = Field(description="One vector per input text")
    model: str = Field(description="Identifier of the model that produced them")


class HealthStatus(BaseModel):
    """Provider health as reported by ``health_check``."""

    healthy: bool = Field(description="Provider reachable")
    model_available: bool = Field(default=False, description="Configured model present")


class EmbeddingProvider(ABC):
    """Abstract base for embedding providers.

    Handles converting text -> vectors.
    Does NOT handle storage/search (that's the vector store's job).
    """

    @property
    @abstractmethod
    def model_id(self) -> str:
        """Model identifier, used as part of embedding cache keys."""

    @abstractmethod
    async def embed(self, texts: Union[str, List[str]]) -> EmbeddingResult:
        """Generate embeddings for one text or a batch.

        Args:
            texts: Text or list of texts to embed

        Returns:
            EmbeddingResult with one vector per text
        """

    async def embed_query(self, text: str) -> EmbeddingResult:
        """Embed a search query.

        Providers whose models expect a query instruction prefix override this.
        """
        return await self.embed(text)

    @abstractmethod
    async def health_check(self) -> HealthStatus:
        """Check provider reachability and model availability."""

    @abstractmethod
    def get_dimensions(self) -> int:
        """Get the dimension of vectors produced by this provider."""

    async def close(self) -> None:
        """Release client resources."""


class TextGenerationProvider(ABC):
    """Abstract base for text generation providers."""

    @abstractmethod
    async def generate_text(self, prompt: str) -> str:
        """Generate a completion for a single-turn prompt."""

    @abstractmethod
    async def health_check(self) -> HealthStatus:
        """Check provider reachability."""

    async def close(self) -> None:
        """Release client resources."""
