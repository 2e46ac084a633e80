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

"""Dependency and call-graph analyses over a code graph store.

These back the navigation commands (dependents, callers, dead code, import
cycles, change impact). Each function reads the store and returns plain
dataclasses; formatting is left to callers.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Dict, List, Optional, Set

from coderadar.codebase.graph.protocol import CallEdge, CodeSymbol, SymbolKind
from coderadar.codebase.graph.store import CodeGraphStore

MAX_CYCLE_LENGTH = 16

CALLABLE_KINDS = {SymbolKind.FUNCTION, SymbolKind.METHOD}


@dataclass
class Dependent:
    file: str
    imports: List[str]
    line: int


@dataclass
class DeadSymbol:
    name: str
    kind: str
    file_path: str
    relative_path: str


@dataclass
class DirectCaller:
    file: str
    line: int
    caller_name: Optional[str] = None
    caller_kind: Optional[str] = None


@dataclass
class ImpactReport:
    symbol: str
    direct_callers: List[DirectCaller] = field(default_factory=list)
    transitive_files: List[str] = field(default_factory=list)

    @property
    def total_files(self) -> int:
        return len({c.file for c in self.direct_callers}) + len(self.transitive_files)


def _normalize(path: str) -> str:
    return path.replace("\\", "/")


def _matches_module(candidate: Optional[str], module: str) -> bool:
    if not candidate:
        return False
    candidate = _normalize(candidate)
    if candidate == module or candidate.endswith("/" + module):
        return True
    # Resolved paths carry an extension the caller usually omits
    stem = str(PurePosixPath(candidate).with_suffix(""))
    return stem == module or stem.endswith("/" + module)


async def find_dependents(graph: CodeGraphStore, module: str) -> List[Dependent]:
    """Files that import ``module`` (a specifier, path, or path suffix).

    Args:
        graph: Code graph store of the index
        module: e.g. ``auth``, ``src/auth``, ``./auth`` or ``src/auth.ts``

    Returns:
        One entry per matching internal dependency edge
    """
    module = _normalize(module)
    if module.startswith("./"):
        module = module[2:]

    dependents = []
    for dep in await graph.get_dependencies(is_external=False):
        if _matches_module(dep.target_module, module) or _matches_module(
            dep.resolved_path, module
        ):
            dependents.append(
                Dependent(file=dep.source_file, imports=dep.imported_names(), line=dep.line)
            )
    return sorted(dependents, key=lambda d: (d.file, d.line))


async def find_callers(graph: CodeGraphStore, symbol: str) -> List[CallEdge]:
    """Call sites of a symbol, given its id or its name.

    Calls resolved to a symbol id match by id; unresolved calls match by
    callee name.
    """
    target = await graph.get_symbol(symbol)
    if target is not None:
        names = {target.name}
        ids = {target.id}
    else:
        matches = await graph.get_symbols(name=symbol)
        names = {symbol}
        ids = {s.id for s in matches}

    return [
        call
        for call in await graph.get_calls()
        if (call.callee_id in ids) or (call.callee_id is None and call.callee_name in names)
    ]


async def find_dead_symbols(graph: CodeGraphStore) -> List[DeadSymbol]:
    """Functions and methods that no recorded call reaches.

    A resolved call counts only for its callee id; an unresolved call counts
    for every callable with the same name.
    """
    by_id: Dict[str, CodeSymbol] = {}
    by_name: Dict[str, List[CodeSymbol]] = {}
    for sym in await graph.get_symbols():
        if sym.kind not in CALLABLE_KINDS:
            continue
        by_id[sym.id] = sym
        by_name.setdefault(sym.name, []).append(sym)

    called: Set[str] = set()
    for call in await graph.get_calls():
        if call.callee_id and call.callee_id in by_id:
            called.add(call.callee_id)
        elif call.callee_name in by_name:
            called.update(s.id for s in by_name[call.callee_name])

    dead = [
        DeadSymbol(
            name=sym.name, kind=sym.kind, file_path=sym.file_path, relative_path=sym.relative_path
        )
        for sym_id, sym in by_id.items()
        if sym_id not in called
    ]
    return sorted(dead, key=lambda d: (d.relative_path, d.name))


async def detect_cycles(graph: CodeGraphStore) -> List[List[str]]:
    """Import cycles between indexed files.

    Only resolved (internal) edges participate. Each cycle is reported once
    as a path that starts and ends at the same file, up to
    MAX_CYCLE_LENGTH entries.
    """
    adjacency: Dict[str, Set[str]] = {}
    for dep in await graph.get_dependencies():
        if dep.resolved_path:
            adjacency.setdefault(dep.source_file, set()).add(dep.resolved_path)

    cycles: List[List[str]] = []
    seen: Set[str] = set()
    visited: Set[str] = set()
    stack: List[str] = []
    on_stack: Set[str] = set()

    def dfs(node: str) -> None:
        visited.add(node)
        stack.append(node)
        on_stack.add(node)
        for neighbor in sorted(adjacency.get(node, ())):
            if neighbor in on_stack:
                cycle = stack[stack.index(neighbor) :] + [neighbor]
                key = "->".join(cycle)
                if len(cycle) <= MAX_CYCLE_LENGTH and key not in seen:
                    seen.add(key)
                    cycles.append(cycle)
            elif neighbor not in visited:
                dfs(neighbor)
        stack.pop()
        on_stack.discard(node)

    for node in sorted(adjacency):
        if node not in visited:
            dfs(node)
    return cycles


async def analyze_impact(graph: CodeGraphStore, symbol: str) -> ImpactReport:
    """Direct callers of a symbol plus files that transitively import them."""
    report = ImpactReport(symbol=symbol)
    calls = await find_callers(graph, symbol)
    if not calls:
        return report

    direct_files: Set[str] = set()
    for call in calls:
        direct_files.add(call.caller_file)
        caller = await graph.get_symbol(call.caller_id) if call.caller_id else None
        report.direct_callers.append(
            DirectCaller(
                file=call.caller_file,
                line=call.position.line,
                caller_name=caller.name if caller else None,
                caller_kind=caller.kind if caller else None,
            )
        )

    imported_by = (await graph.get_dependency_graph())["imported_by"]
    visited = set(direct_files)
    queue = deque(sorted(direct_files))
    transitive: List[str] = []
    while queue:
        current = queue.popleft()
        for dependent in sorted(imported_by.get(current, ())):
            if dependent not in visited:
                visited.add(dependent)
                transitive.append(dependent)
                queue.append(dependent)

    report.transitive_files = transitive
    return report
