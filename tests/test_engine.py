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

"""End-to-end tests through the CodeRadar facade."""

import pytest
import pytest_asyncio

from coderadar import CodeRadar, IndexNotFoundError
from coderadar.codebase.embeddings.models import IndexStatus
from conftest import FakeTextGenerator


@pytest_asyncio.fixture
async def radar(embedder, indexing_config, project):
    """Facade with the sample project indexed as 'proj'."""
    radar = CodeRadar(embedder, indexing_config)
    await radar.index("proj", project)
    yield radar
    await radar.close()


class TestIndexLifecycle:
    """Tests for creating, updating and deleting indexes."""

    @pytest.mark.asyncio
    async def test_index_then_update(self, radar, project):
        meta = await radar.get_index("proj")
        assert meta.status == IndexStatus.READY

        stats = await radar.index("proj", project)

        assert stats.unchanged == 2
        assert stats.added == 0

    @pytest.mark.asyncio
    async def test_stats_cover_vectors_and_graph(self, radar):
        stats = await radar.get_stats("proj")

        assert stats["files"] == 2
        assert stats["chunks"] >= 2
        assert stats["symbols"] == 3
        assert stats["dependencies"] == 1
        assert stats["calls"] == 3

    @pytest.mark.asyncio
    async def test_list_and_delete(self, radar):
        assert [m.name for m in await radar.list_indexes()] == ["proj"]

        assert await radar.delete_index("proj") is True
        assert await radar.get_index("proj") is None
        assert await radar.list_indexes() == []
        assert await radar.delete_index("proj") is False

    @pytest.mark.asyncio
    async def test_create_index_registers_empty_index(self, radar, tmp_path):
        meta = await radar.create_index("empty", tmp_path)

        assert meta.name == "empty"
        assert meta.embedding_model == "fake-embed"
        assert meta.dimensions == 16

    @pytest.mark.asyncio
    async def test_close_closes_providers(self, embedder, indexing_config):
        async with CodeRadar(embedder, indexing_config):
            pass

        assert embedder.closed


class TestSearch:
    """Tests for semantic search through the facade."""

    @pytest.mark.asyncio
    async def test_search_returns_ranked_chunks(self, radar):
        results = await radar.search("proj", "checkPassword password length", limit=5)

        assert results
        assert "src/auth.ts" in {r.relative_path for r in results}
        assert all(a.distance <= b.distance for a, b in zip(results, results[1:]))

    @pytest.mark.asyncio
    async def test_search_with_mmr_and_file_type(self, radar):
        diverse = await radar.search("proj", "login", limit=2, mmr=True, lambda_=0.3)
        typed = await radar.search("proj", "login", file_type="ts")
        none = await radar.search("proj", "login", file_type="py")

        assert 1 <= len(diverse) <= 2
        assert all(r.relative_path.endswith(".ts") for r in typed)
        assert none == []

    @pytest.mark.asyncio
    async def test_search_missing_index(self, radar):
        with pytest.raises(IndexNotFoundError):
            await radar.search("nope", "login")


class TestGraphQueries:
    """Tests for dependency and call graph navigation."""

    @pytest.mark.asyncio
    async def test_dependents_of_auth(self, radar, project):
        dependents = await radar.dependents("proj", "auth")

        assert len(dependents) == 1
        assert dependents[0].file == str(project.resolve() / "src" / "login.ts")
        assert dependents[0].imports == ["validateUser"]

    @pytest.mark.asyncio
    async def test_callers_of_validate_user(self, radar):
        callers = await radar.callers("proj", "validateUser")

        assert len(callers) == 1
        assert callers[0].caller_id == "src/login.ts:login:function"

    @pytest.mark.asyncio
    async def test_dead_code_and_cycles(self, radar):
        dead = await radar.dead_code("proj")

        assert [d.name for d in dead] == ["login"]
        assert await radar.cycles("proj") == []

    @pytest.mark.asyncio
    async def test_impact(self, radar):
        report = await radar.impact("proj", "validateUser")

        assert [c.caller_name for c in report.direct_callers] == ["login"]
        assert report.transitive_files == []
        assert report.total_files == 1

    @pytest.mark.asyncio
    async def test_symbol_and_dependency_listing(self, radar):
        functions = await radar.symbols("proj", kind="function")
        internal = await radar.dependencies("proj", is_external=False)
        resolved = await radar.calls("proj", callee_id="src/auth.ts:checkPassword:function")

        assert {s.name for s in functions} == {"validateUser", "checkPassword", "login"}
        assert [d.target_module for d in internal] == ["./auth"]
        assert [c.caller_id for c in resolved] == ["src/auth.ts:validateUser:function"]

    @pytest.mark.asyncio
    async def test_graph_queries_require_index(self, radar):
        with pytest.raises(IndexNotFoundError):
            await radar.callers("nope", "validateUser")


class TestBuildContext:
    """Tests for context packages through the facade."""

    @pytest.mark.asyncio
    async def test_build_context_with_approach(self, embedder, indexing_config, project):
        generator = FakeTextGenerator(
            reply='[{"step": 1, "description": "Limit attempts", "targetFiles": ["src/login.ts"]}]'
        )
        async with CodeRadar(embedder, indexing_config, generator=generator) as radar:
            await radar.index("proj", project)

            package = await radar.build_context(
                "proj", "add rate limiting to login", max_tokens=500
            )

        assert package.token_count <= 500
        assert package.relevant_files
        assert package.suggested_approach[0].description == "Limit attempts"
        assert "## Suggested Approach" in package.to_markdown()
