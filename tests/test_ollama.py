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

"""Tests for the Ollama providers against a mocked HTTP transport."""

import json

import httpx
import pytest

from coderadar.codebase.embeddings.ollama import (
    QUERY_PREFIX,
    OllamaEmbeddingProvider,
    OllamaTextGenerator,
)
from coderadar.config import OllamaConfig
from coderadar.errors import EmbeddingFailureError, ProviderUnavailableError


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url="http://ollama.test", transport=httpx.MockTransport(handler)
    )


class EmbedServer:
    """Answers /api/embed with 3-dim vectors and records request bodies."""

    def __init__(self, status: int = 200, models=("mxbai-embed-large:latest",)):
        self.status = status
        self.models = list(models)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/tags":
            return httpx.Response(200, json={"models": [{"name": m} for m in self.models]})
        body = json.loads(request.content)
        self.requests.append(body)
        if self.status != 200:
            return httpx.Response(self.status, json={"error": "nope"})
        return httpx.Response(
            200, json={"embeddings": [[float(len(t)), 0.0, 1.0] for t in body["input"]]}
        )


def make_embedder(server, **config) -> OllamaEmbeddingProvider:
    provider = OllamaEmbeddingProvider(OllamaConfig(**config))
    provider.client = mock_client(server)
    return provider


class TestOllamaEmbeddingProvider:
    """Tests for /api/embed handling."""

    @pytest.mark.asyncio
    async def test_embed_batches_requests(self):
        server = EmbedServer()
        provider = make_embedder(server, batch_size=2)

        result = await provider.embed(["a", "bb", "ccc"])

        assert [len(r["input"]) for r in server.requests] == [2, 1]
        assert [v[0] for v in result.embeddings] == [1.0, 2.0, 3.0]
        assert result.model == "mxbai-embed-large"
        assert provider.get_dimensions() == 3
        await provider.close()

    @pytest.mark.asyncio
    async def test_query_prefix_for_mxbai(self):
        server = EmbedServer()
        provider = make_embedder(server)

        await provider.embed_query("find auth")

        assert server.requests[0]["input"] == [QUERY_PREFIX + "find auth"]

    @pytest.mark.asyncio
    async def test_no_query_prefix_for_other_models(self):
        server = EmbedServer()
        provider = make_embedder(server, embedding_model="nomic-embed-text")

        await provider.embed_query("find auth")

        assert server.requests[0]["input"] == ["find auth"]

    @pytest.mark.asyncio
    async def test_missing_model_error(self):
        provider = make_embedder(EmbedServer(status=404))

        with pytest.raises(EmbeddingFailureError, match="ollama pull"):
            await provider.embed("x")

    @pytest.mark.asyncio
    async def test_unreachable_server(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        provider = OllamaEmbeddingProvider()
        provider.client = mock_client(refuse)

        with pytest.raises(ProviderUnavailableError):
            await provider.embed("x")
        health = await provider.health_check()
        assert not health.healthy

    @pytest.mark.asyncio
    async def test_health_check_matches_latest_tag(self):
        provider = make_embedder(EmbedServer())

        health = await provider.health_check()

        assert health.healthy
        assert health.model_available

    def test_known_dimensions(self):
        assert OllamaEmbeddingProvider().get_dimensions() == 1024
        tagged = OllamaEmbeddingProvider(OllamaConfig(embedding_model="nomic-embed-text:v1.5"))
        assert tagged.get_dimensions() == 768
        with pytest.raises(ValueError):
            OllamaEmbeddingProvider(OllamaConfig(embedding_model="mystery")).get_dimensions()


class TestOllamaTextGenerator:
    """Tests for /api/chat handling."""

    @pytest.mark.asyncio
    async def test_generate_text(self):
        seen = []

        def handler(request):
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"message": {"role": "assistant", "content": "ok"}})

        generator = OllamaTextGenerator()
        generator.client = mock_client(handler)

        assert await generator.generate_text("hello") == "ok"
        assert seen[0]["messages"] == [{"role": "user", "content": "hello"}]
        assert seen[0]["stream"] is False
        await generator.close()

    @pytest.mark.asyncio
    async def test_server_error(self):
        generator = OllamaTextGenerator()
        generator.client = mock_client(lambda request: httpx.Response(500))

        with pytest.raises(ProviderUnavailableError):
            await generator.generate_text("hello")
