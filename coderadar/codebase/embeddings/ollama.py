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

"""Ollama providers (local, no API costs).

Reference implementations of the embedding and text-generation contracts:

    async with OllamaEmbeddingProvider(OllamaConfig()) as embedder:
        result = await embedder.embed(["def foo(): ...", "class Bar: ..."])

Requires Ollama to be running locally (``ollama serve``) with the model
pulled (``ollama pull mxbai-embed-large``).
"""

import logging
from typing import Dict, List, Optional, Union

import httpx

from coderadar.codebase.embeddings.base import (
    EmbeddingProvider,
    EmbeddingResult,
    HealthStatus,
    TextGenerationProvider,
)
from coderadar.config import OllamaConfig
from coderadar.errors import EmbeddingFailureError, ProviderUnavailableError

logger = logging.getLogger(__name__)

# mxbai-style retrieval models expect this instruction on queries only
QUERY_PREFIX = "Represent this sentence for searching relevant passages: "

KNOWN_DIMENSIONS: Dict[str, int] = {
    "mxbai-embed-large": 1024,
    "nomic-embed-text": 768,
    "all-minilm": 384,
    "bge-m3": 1024,
    "snowflake-arctic-embed2": 1024,
    "qwen3-embedding:8b": 4096,
    "qwen3-embedding:4b": 2560,
}


def _base_model_name(model: str) -> str:
    return model.split(":", 1)[0] if model not in KNOWN_DIMENSIONS else model


class OllamaEmbeddingProvider(EmbeddingProvider):
    """Embedding provider backed by Ollama's ``/api/embed`` endpoint."""

    def __init__(self, config: Optional[OllamaConfig] = None):
        self.config = config or OllamaConfig()
        self.client = httpx.AsyncClient(base_url=self.config.host, timeout=self.config.timeout)
        self._dimensions: Optional[int] = None

    @property
    def model_id(self) -> str:
        return self.config.embedding_model

    async def __aenter__(self) -> "OllamaEmbeddingProvider":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def embed(self, texts: Union[str, List[str]]) -> EmbeddingResult:
        """Generate embeddings, splitting large inputs into request batches.

        Raises:
            ProviderUnavailableError: Ollama is not reachable
            EmbeddingFailureError: Ollama answered with an error or bad payload
        """
        inputs = [texts] if isinstance(texts, str) else list(texts)
        vectors: List[List[float]] = []
        for start in range(0, len(inputs), self.config.batch_size):
            batch = inputs[start : start + self.config.batch_size]
            vectors.extend(await self._request(batch))
        return EmbeddingResult(embeddings=vectors, model=self.model_id)

    async def embed_query(self, text: str) -> EmbeddingResult:
        if _base_model_name(self.model_id).startswith("mxbai"):
            text = QUERY_PREFIX + text
        return await self.embed(text)

    async def _request(self, batch: List[str]) -> List[List[float]]:
        try:
            response = await self.client.post(
                "/api/embed", json={"model": self.model_id, "input": batch}
            )
            response.raise_for_status()
        except httpx.ConnectError as e:
            raise ProviderUnavailableError("ollama", f"cannot connect to {self.config.host}") from e
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise EmbeddingFailureError(
                    f"Ollama model '{self.model_id}' not found. "
                    f"Pull it with: ollama pull {self.model_id}"
                ) from e
            raise EmbeddingFailureError(f"Ollama API error: {e}") from e
        except httpx.HTTPError as e:
            raise EmbeddingFailureError(f"Ollama request failed: {e}") from e

        embeddings = response.json().get("embeddings")
        if not isinstance(embeddings, list) or len(embeddings) != len(batch):
            raise EmbeddingFailureError(
                f"Ollama returned {len(embeddings or [])} embeddings for {len(batch)} inputs"
            )
        if embeddings and self._dimensions is None:
            self._dimensions = len(embeddings[0])
        return embeddings

    async def health_check(self) -> HealthStatus:
        models = await _list_models(self.client)
        if models is None:
            return HealthStatus(healthy=False, model_available=False)
        return HealthStatus(healthy=True, model_available=_model_listed(self.model_id, models))

    def get_dimensions(self) -> int:
        """Get embedding dimension for the configured model.

        Uses the dimension observed on the first response when available,
        then the known-models table.

        Raises:
            ValueError: The model is unknown and nothing has been embedded yet
        """
        if self._dimensions is not None:
            return self._dimensions
        model = self.model_id
        if model in KNOWN_DIMENSIONS:
            return KNOWN_DIMENSIONS[model]
        base = _base_model_name(model)
        if base in KNOWN_DIMENSIONS:
            return KNOWN_DIMENSIONS[base]
        raise ValueError(
            f"Unknown dimensions for model '{model}'. Embed one text first to detect them."
        )

    async def close(self) -> None:
        await self.client.aclose()


class OllamaTextGenerator(TextGenerationProvider):
    """Text generation backed by Ollama's ``/api/chat`` endpoint."""

    def __init__(self, config: Optional[OllamaConfig] = None):
        self.config = config or OllamaConfig()
        self.client = httpx.AsyncClient(base_url=self.config.host, timeout=self.config.timeout)

    async def generate_text(self, prompt: str) -> str:
        try:
            response = await self.client.post(
                "/api/chat",
                json={
                    "model": self.config.chat_model,
                    "messages": [{"role": "user", "content": prompt}],
                    "stream": False,
                },
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ProviderUnavailableError("ollama", str(e)) from e

        message = response.json().get("message") or {}
        return message.get("content", "")

    async def health_check(self) -> HealthStatus:
        models = await _list_models(self.client)
        if models is None:
            return HealthStatus(healthy=False, model_available=False)
        return HealthStatus(
            healthy=True, model_available=_model_listed(self.config.chat_model, models)
        )

    async def close(self) -> None:
        await self.client.aclose()


async def _list_models(client: httpx.AsyncClient) -> Optional[List[str]]:
    """Return installed model names, or None when Ollama is unreachable."""
    try:
        response = await client.get("/api/tags")
        response.raise_for_status()
    except httpx.HTTPError as e:
        logger.debug(f"Ollama health check failed: {e}")
        return None
    return [m.get("name", "") for m in response.json().get("models", [])]


def _model_listed(model: str, installed: List[str]) -> bool:
    if model in installed:
        return True
    # "mxbai-embed-large" is listed as "mxbai-embed-large:latest"
    return ":" not in model and f"{model}:latest" in installed
