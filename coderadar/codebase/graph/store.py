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

"""LanceDB-backed code graph store.

Persists symbols, dependency edges and call edges per named index in three
tables (``<index>_symbols``, ``<index>_dependencies``, ``<index>_calls``) and
builds adjacency maps over them for analyses and context building.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Set, Union

import pyarrow as pa

from coderadar.codebase.graph.protocol import CallEdge, CodeDependency, CodeSymbol
from coderadar.codebase.lance_tables import LanceTables, quote

logger = logging.getLogger(__name__)

SYMBOLS_SCHEMA = pa.schema(
    [
        pa.field("id", pa.string()),
        pa.field("name", pa.string()),
        pa.field("kind", pa.string()),
        pa.field("file_path", pa.string()),
        pa.field("relative_path", pa.string()),
        pa.field("start_line", pa.int64()),
        pa.field("start_column", pa.int64()),
        pa.field("end_line", pa.int64()),
        pa.field("end_column", pa.int64()),
        pa.field("is_exported", pa.bool_()),
        pa.field("is_default_export", pa.bool_()),
        pa.field("signature", pa.string()),
        pa.field("documentation", pa.string()),
        pa.field("parent_id", pa.string()),
        pa.field("modifiers", pa.string()),
        pa.field("summary", pa.string()),
    ]
)

DEPENDENCIES_SCHEMA = pa.schema(
    [
        pa.field("id", pa.string()),
        pa.field("source_file", pa.string()),
        pa.field("target_module", pa.string()),
        pa.field("resolved_path", pa.string()),
        pa.field("kind", pa.string()),
        pa.field("names", pa.string()),
        pa.field("line", pa.int64()),
        pa.field("is_external", pa.bool_()),
    ]
)

CALLS_SCHEMA = pa.schema(
    [
        pa.field("id", pa.string()),
        pa.field("caller_id", pa.string()),
        pa.field("caller_file", pa.string()),
        pa.field("callee_name", pa.string()),
        pa.field("callee_id", pa.string()),
        pa.field("callee_file", pa.string()),
        pa.field("line", pa.int64()),
        pa.field("column", pa.int64()),
        pa.field("is_method_call", pa.bool_()),
        pa.field("receiver", pa.string()),
        pa.field("argument_count", pa.int64()),
    ]
)


def _and(*clauses: Optional[str]) -> Optional[str]:
    present = [c for c in clauses if c]
    return " AND ".join(present) if present else None


class CodeGraphStore(LanceTables):
    """Symbols, dependencies and calls of one named index.

    Usage:
        graph = CodeGraphStore(db_path, "myproj")
        await graph.add_symbols(result.symbols)
        graph_maps = await graph.get_call_graph()
    """

    def __init__(self, db_path: Union[str, Path], index_name: str):
        super().__init__(db_path)
        self.index_name = index_name
        self.symbols_table = f"{index_name}_symbols"
        self.dependencies_table = f"{index_name}_dependencies"
        self.calls_table = f"{index_name}_calls"

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def add_symbols(self, symbols: Sequence[CodeSymbol]) -> int:
        if not symbols:
            return 0
        table = self.ensure_table(self.symbols_table, SYMBOLS_SCHEMA)
        table.add([s.to_row() for s in symbols])
        return len(symbols)

    async def add_dependencies(self, dependencies: Sequence[CodeDependency]) -> int:
        if not dependencies:
            return 0
        table = self.ensure_table(self.dependencies_table, DEPENDENCIES_SCHEMA)
        table.add([d.to_row() for d in dependencies])
        return len(dependencies)

    async def add_calls(self, calls: Sequence[CallEdge]) -> int:
        if not calls:
            return 0
        table = self.ensure_table(self.calls_table, CALLS_SCHEMA)
        table.add([c.to_row() for c in calls])
        return len(calls)

    async def replace_calls(self, calls: Sequence[CallEdge]) -> int:
        """Rewrite the given call rows (matched by id), e.g. after linking."""
        if not calls:
            return 0
        table = self.ensure_table(self.calls_table, CALLS_SCHEMA)
        ids = ", ".join(quote(c.id) for c in calls)
        table.delete(f"id IN ({ids})")
        table.add([c.to_row() for c in calls])
        return len(calls)

    async def replace_dependencies(self, dependencies: Sequence[CodeDependency]) -> int:
        """Rewrite the given dependency rows (matched by id)."""
        if not dependencies:
            return 0
        table = self.ensure_table(self.dependencies_table, DEPENDENCIES_SCHEMA)
        ids = ", ".join(quote(d.id) for d in dependencies)
        table.delete(f"id IN ({ids})")
        table.add([d.to_row() for d in dependencies])
        return len(dependencies)

    async def set_summaries(self, summaries: Dict[str, str]) -> int:
        """Store summaries on existing symbol rows, keyed by symbol id.

        Returns:
            Number of symbols updated; unknown ids are ignored
        """
        table = self.open_table(self.symbols_table)
        if table is None or not summaries:
            return 0
        predicate = f"id IN ({', '.join(quote(i) for i in summaries)})"
        symbols = [CodeSymbol.from_row(r) for r in self.scan(table, predicate)]
        if not symbols:
            return 0
        for symbol in symbols:
            symbol.summary = summaries[symbol.id]
        table.delete(predicate)
        table.add([s.to_row() for s in symbols])
        return len(symbols)

    async def delete_file(self, file_path: str) -> Dict[str, int]:
        """Purge every row that originates from a file.

        Also unlinks calls elsewhere that resolved into this file so they fall
        back to name matching.

        Returns:
            Rows deleted per table
        """
        deleted = {"symbols": 0, "dependencies": 0, "calls": 0}
        quoted = quote(file_path)

        for key, name, column in (
            ("symbols", self.symbols_table, "file_path"),
            ("dependencies", self.dependencies_table, "source_file"),
            ("calls", self.calls_table, "caller_file"),
        ):
            table = self.open_table(name)
            if table is None:
                continue
            predicate = f"{column} = {quoted}"
            deleted[key] = table.count_rows(predicate)
            if deleted[key]:
                table.delete(predicate)

        calls = self.open_table(self.calls_table)
        if calls is not None:
            dangling = [CallEdge.from_row(r) for r in self.scan(calls, f"callee_file = {quoted}")]
            for call in dangling:
                call.callee_id = None
                call.callee_file = None
            await self.replace_calls(dangling)

        if any(deleted.values()):
            logger.debug(f"Purged graph rows for {file_path}: {deleted}")
        return deleted

    async def clear(self) -> None:
        """Drop all three graph tables of this index."""
        for name in (self.symbols_table, self.dependencies_table, self.calls_table):
            self.drop_table(name)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_symbols(
        self,
        kind: Optional[str] = None,
        file_path: Optional[str] = None,
        name: Optional[str] = None,
    ) -> List[CodeSymbol]:
        table = self.open_table(self.symbols_table)
        if table is None:
            return []
        where = _and(
            f"kind = {quote(kind)}" if kind else None,
            f"file_path = {quote(file_path)}" if file_path else None,
            f"name = {quote(name)}" if name else None,
        )
        return [CodeSymbol.from_row(r) for r in self.scan(table, where)]

    async def get_symbol(self, symbol_id: str) -> Optional[CodeSymbol]:
        table = self.open_table(self.symbols_table)
        if table is None:
            return None
        rows = self.scan(table, f"id = {quote(symbol_id)}")
        return CodeSymbol.from_row(rows[0]) if rows else None

    async def get_dependencies(
        self, file_path: Optional[str] = None, is_external: Optional[bool] = None
    ) -> List[CodeDependency]:
        table = self.open_table(self.dependencies_table)
        if table is None:
            return []
        where = _and(
            f"source_file = {quote(file_path)}" if file_path else None,
            None if is_external is None else f"is_external = {str(is_external).lower()}",
        )
        return [CodeDependency.from_row(r) for r in self.scan(table, where)]

    async def get_calls(
        self,
        caller_id: Optional[str] = None,
        callee_id: Optional[str] = None,
        caller_file: Optional[str] = None,
        callee_name: Optional[str] = None,
    ) -> List[CallEdge]:
        table = self.open_table(self.calls_table)
        if table is None:
            return []
        where = _and(
            f"caller_id = {quote(caller_id)}" if caller_id else None,
            f"callee_id = {quote(callee_id)}" if callee_id else None,
            f"caller_file = {quote(caller_file)}" if caller_file else None,
            f"callee_name = {quote(callee_name)}" if callee_name else None,
        )
        return [CallEdge.from_row(r) for r in self.scan(table, where)]

    # ------------------------------------------------------------------
    # Adjacency
    # ------------------------------------------------------------------

    async def get_dependency_graph(self) -> Dict[str, Dict[str, Set[str]]]:
        """File-level import adjacency.

        Returns:
            ``{"imports": {source_file: {target}}, "imported_by": {target: {source_file}}}``
            where target is the resolved path when known, else the module
            specifier.
        """
        imports: Dict[str, Set[str]] = {}
        imported_by: Dict[str, Set[str]] = {}
        for dep in await self.get_dependencies():
            target = dep.resolved_path or dep.target_module
            imports.setdefault(dep.source_file, set()).add(target)
            imported_by.setdefault(target, set()).add(dep.source_file)
        return {"imports": imports, "imported_by": imported_by}

    async def get_call_graph(self) -> Dict[str, Dict[str, Set[str]]]:
        """Symbol-level call adjacency over resolved calls only.

        Returns:
            ``{"calls": {caller_id: {callee_id}}, "called_by": {callee_id: {caller_id}}}``
        """
        calls: Dict[str, Set[str]] = {}
        called_by: Dict[str, Set[str]] = {}
        for call in await self.get_calls():
            if not call.caller_id or not call.callee_id:
                continue
            calls.setdefault(call.caller_id, set()).add(call.callee_id)
            called_by.setdefault(call.callee_id, set()).add(call.caller_id)
        return {"calls": calls, "called_by": called_by}

    async def get_stats(self) -> Dict[str, int]:
        stats = {}
        for key, name in (
            ("symbols", self.symbols_table),
            ("dependencies", self.dependencies_table),
            ("calls", self.calls_table),
        ):
            table = self.open_table(name)
            stats[key] = table.count_rows() if table is not None else 0
        return stats
