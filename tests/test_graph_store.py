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

"""Tests for the code graph store and the analyses built on it."""

import pytest
import pytest_asyncio

from coderadar.codebase.graph import analysis
from coderadar.codebase.graph.protocol import (
    CallEdge,
    CodeDependency,
    CodeSymbol,
    DependencyKind,
    ImportedName,
    Position,
    SourceRange,
    SymbolKind,
    make_edge_id,
    make_symbol_id,
)
from coderadar.codebase.graph.store import CodeGraphStore

ROOT = "/proj"


def make_symbol(rel: str, name: str, kind: str = SymbolKind.FUNCTION, line: int = 1, **kwargs):
    return CodeSymbol(
        id=make_symbol_id(rel, name, kind),
        name=name,
        kind=kind,
        file_path=f"{ROOT}/{rel}",
        relative_path=rel,
        range=SourceRange(Position(line, 0), Position(line + 2, 1)),
        **kwargs,
    )


def make_dep(source_rel: str, module: str, resolved_rel=None, names=(), line: int = 1):
    return CodeDependency(
        id=make_edge_id(source_rel, module, line),
        source_file=f"{ROOT}/{source_rel}",
        target_module=module,
        kind=DependencyKind.IMPORT,
        line=line,
        is_external=resolved_rel is None and not module.startswith("."),
        resolved_path=f"{ROOT}/{resolved_rel}" if resolved_rel else None,
        names=[ImportedName(name=n) for n in names],
    )


def make_call(caller_rel: str, callee_name: str, caller=None, callee=None, line: int = 2):
    return CallEdge(
        id=make_edge_id(caller_rel, callee_name, line),
        caller_file=f"{ROOT}/{caller_rel}",
        callee_name=callee_name,
        position=Position(line, 4),
        caller_id=caller.id if caller else None,
        callee_id=callee.id if callee else None,
        callee_file=callee.file_path if callee else None,
    )


@pytest.fixture
def graph(db_path):
    graph = CodeGraphStore(db_path, "proj")
    yield graph
    graph.close()


@pytest_asyncio.fixture
async def populated(graph):
    """auth.ts <- login.ts <- app.ts; login calls validateUser."""
    validate = make_symbol(
        "src/auth.ts", "validateUser", is_exported=True, signature="function validateUser()"
    )
    check = make_symbol("src/auth.ts", "checkPassword", line=5)
    login = make_symbol("src/login.ts", "login", is_exported=True, line=3)
    main = make_symbol("src/app.ts", "main")
    await graph.add_symbols([validate, check, login, main])
    await graph.add_dependencies(
        [
            make_dep("src/login.ts", "./auth", "src/auth.ts", names=["validateUser"]),
            make_dep("src/app.ts", "./login", "src/login.ts", names=["login"]),
            make_dep("src/app.ts", "react", names=["useState"], line=2),
        ]
    )
    await graph.add_calls(
        [
            make_call("src/auth.ts", "checkPassword", validate, check),
            make_call("src/login.ts", "validateUser", login, validate, line=4),
            make_call("src/app.ts", "login", main, login, line=6),
        ]
    )
    return {"validate": validate, "check": check, "login": login, "main": main}


class TestGraphStoreCrud:
    """Tests for writes, queries and per-file purging."""

    @pytest.mark.asyncio
    async def test_empty_store_queries(self, graph):
        assert await graph.get_symbols() == []
        assert await graph.get_dependencies() == []
        assert await graph.get_calls() == []
        assert await graph.get_symbol("nope") is None
        assert await graph.get_stats() == {"symbols": 0, "dependencies": 0, "calls": 0}

    @pytest.mark.asyncio
    async def test_symbol_round_trip(self, graph):
        symbol = make_symbol(
            "src/a.ts",
            "run",
            is_exported=True,
            signature="function run(): void",
            documentation="Runs.",
            modifiers=["async"],
        )
        await graph.add_symbols([symbol])

        assert await graph.get_symbol(symbol.id) == symbol

    @pytest.mark.asyncio
    async def test_set_summaries(self, graph, populated):
        validate, check = populated["validate"], populated["check"]

        updated = await graph.set_summaries(
            {validate.id: "Checks user credentials.", "src/gone.ts:x:function": "ignored"}
        )

        assert updated == 1
        stored = await graph.get_symbol(validate.id)
        assert stored.summary == "Checks user credentials."
        assert stored.describe() == "Checks user credentials."
        assert (await graph.get_symbol(check.id)).describe() == "function checkPassword"
        assert (await graph.get_stats())["symbols"] == 4
        assert await graph.set_summaries({}) == 0

    @pytest.mark.asyncio
    async def test_filters(self, graph, populated):
        auth = await graph.get_symbols(file_path=f"{ROOT}/src/auth.ts")
        assert {s.name for s in auth} == {"validateUser", "checkPassword"}

        external = await graph.get_dependencies(is_external=True)
        assert [d.target_module for d in external] == ["react"]

        calls = await graph.get_calls(caller_id=populated["login"].id)
        assert [c.callee_name for c in calls] == ["validateUser"]

    @pytest.mark.asyncio
    async def test_dependency_names_survive_storage(self, graph, populated):
        deps = await graph.get_dependencies(file_path=f"{ROOT}/src/login.ts")

        assert deps[0].imported_names() == ["validateUser"]
        assert deps[0].resolved_path == f"{ROOT}/src/auth.ts"

    @pytest.mark.asyncio
    async def test_delete_file_purges_rows_and_unlinks_callers(self, graph, populated):
        deleted = await graph.delete_file(f"{ROOT}/src/auth.ts")

        assert deleted == {"symbols": 2, "dependencies": 0, "calls": 1}
        assert await graph.get_symbols(file_path=f"{ROOT}/src/auth.ts") == []
        incoming = await graph.get_calls(caller_file=f"{ROOT}/src/login.ts")
        assert incoming[0].callee_id is None
        assert incoming[0].callee_file is None
        assert incoming[0].callee_name == "validateUser"

    @pytest.mark.asyncio
    async def test_clear_drops_everything(self, graph, populated):
        await graph.clear()

        assert await graph.get_stats() == {"symbols": 0, "dependencies": 0, "calls": 0}

    @pytest.mark.asyncio
    async def test_adjacency_maps(self, graph, populated):
        calls = await graph.get_call_graph()
        deps = await graph.get_dependency_graph()

        assert calls["calls"][populated["login"].id] == {populated["validate"].id}
        assert calls["called_by"][populated["validate"].id] == {populated["login"].id}
        assert deps["imported_by"][f"{ROOT}/src/auth.ts"] == {f"{ROOT}/src/login.ts"}
        assert "react" in deps["imports"][f"{ROOT}/src/app.ts"]


class TestGraphAnalysis:
    """Tests for dependents, callers, dead code, cycles and impact."""

    @pytest.mark.asyncio
    async def test_find_dependents_by_bare_name(self, graph, populated):
        dependents = await analysis.find_dependents(graph, "auth")

        assert len(dependents) == 1
        assert dependents[0].file == f"{ROOT}/src/login.ts"
        assert dependents[0].imports == ["validateUser"]

    @pytest.mark.asyncio
    async def test_find_dependents_by_path(self, graph, populated):
        assert len(await analysis.find_dependents(graph, "src/auth.ts")) == 1
        assert len(await analysis.find_dependents(graph, "./auth")) == 1
        assert await analysis.find_dependents(graph, "uth") == []

    @pytest.mark.asyncio
    async def test_find_callers_by_name_and_id(self, graph, populated):
        by_name = await analysis.find_callers(graph, "validateUser")
        by_id = await analysis.find_callers(graph, populated["validate"].id)

        assert [c.caller_file for c in by_name] == [f"{ROOT}/src/login.ts"]
        assert [c.id for c in by_id] == [c.id for c in by_name]

    @pytest.mark.asyncio
    async def test_unresolved_calls_match_by_name(self, graph, populated):
        await graph.add_calls([make_call("src/other.ts", "validateUser", line=9)])

        callers = await analysis.find_callers(graph, "validateUser")

        assert len(callers) == 2

    @pytest.mark.asyncio
    async def test_dead_symbols(self, graph, populated):
        dead = await analysis.find_dead_symbols(graph)

        assert [d.name for d in dead] == ["main"]

    @pytest.mark.asyncio
    async def test_detect_cycles(self, graph, populated):
        assert await analysis.detect_cycles(graph) == []

        await graph.add_dependencies([make_dep("src/auth.ts", "./app", "src/app.ts", line=3)])
        cycles = await analysis.detect_cycles(graph)

        assert len(cycles) == 1
        assert cycles[0][0] == cycles[0][-1]
        assert set(cycles[0]) == {f"{ROOT}/src/{n}.ts" for n in ("auth", "login", "app")}

    @pytest.mark.asyncio
    async def test_analyze_impact(self, graph, populated):
        report = await analysis.analyze_impact(graph, "validateUser")

        assert len(report.direct_callers) == 1
        assert report.direct_callers[0].caller_name == "login"
        assert report.direct_callers[0].caller_kind == SymbolKind.FUNCTION
        assert report.transitive_files == [f"{ROOT}/src/app.ts"]
        assert report.total_files == 2

    @pytest.mark.asyncio
    async def test_impact_of_uncalled_symbol(self, graph, populated):
        report = await analysis.analyze_impact(graph, "main")

        assert report.direct_callers == []
        assert report.total_files == 0
