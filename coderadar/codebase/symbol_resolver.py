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

"""Cross-file resolution for the code graph.

Front ends see one file at a time, so two things are settled afterwards:
1. Module specifiers are resolved to indexed files (``resolved_path``)
2. Call sites are linked to the symbol they invoke (``callee_id``), using
   same-file declarations first and then the file's imports

Linking runs over the whole index at the end of every pass, so calls into a
file that was just re-extracted are re-linked to its new symbols.
"""

import logging
import os
from pathlib import Path
from typing import Collection, Dict, List, Optional, Tuple

from coderadar.codebase.graph.protocol import (
    CallEdge,
    CodeDependency,
    CodeSymbol,
    SymbolKind,
)
from coderadar.codebase.graph.store import CodeGraphStore
from coderadar.languages.registry import FrontEndRegistry

logger = logging.getLogger(__name__)

SELF_RECEIVERS = {"this", "self", "cls"}


class SymbolResolver:
    """Resolves imports and links calls for one index root."""

    def __init__(self, registry: FrontEndRegistry, root: Path):
        self.registry = registry
        self.root = root.resolve()

    def resolve_module(
        self, dependency: CodeDependency, known_files: Collection[str]
    ) -> Optional[str]:
        """Absolute path of the indexed file a dependency points at, if any."""
        source = Path(dependency.source_file)
        front_end = self.registry.get(source)
        if front_end is None:
            return None
        for candidate in front_end.module_candidates(dependency.target_module, source, self.root):
            normalized = os.path.normpath(str(candidate))
            if normalized in known_files:
                return normalized
        return None

    def resolve_dependencies(
        self, dependencies: List[CodeDependency], known_files: Collection[str]
    ) -> None:
        """Fill ``resolved_path`` in place; resolved modules are internal."""
        for dep in dependencies:
            dep.resolved_path = self.resolve_module(dep, known_files)
            if dep.resolved_path is not None:
                dep.is_external = False

    async def refresh(self, graph: CodeGraphStore, known_files: Collection[str]) -> Dict[str, int]:
        """Re-resolve stale dependencies and re-link calls across the index.

        Returns:
            Counts of rewritten dependency and call rows
        """
        known = set(known_files)
        changed_deps = []
        for dep in await graph.get_dependencies():
            resolved = self.resolve_module(dep, known)
            if resolved != dep.resolved_path:
                dep.resolved_path = resolved
                if resolved is not None:
                    dep.is_external = False
                changed_deps.append(dep)
        if changed_deps:
            await graph.replace_dependencies(changed_deps)

        linked = await self.link_calls(graph)
        return {"dependencies": len(changed_deps), "calls": linked}

    async def link_calls(self, graph: CodeGraphStore) -> int:
        """Set or clear ``callee_id``/``callee_file`` on every call row.

        Returns:
            Number of call rows rewritten
        """
        symbols = await graph.get_symbols()
        by_file_name: Dict[Tuple[str, str], List[CodeSymbol]] = {}
        for symbol in symbols:
            by_file_name.setdefault((symbol.file_path, symbol.name), []).append(symbol)
        symbol_ids = {s.id for s in symbols}

        deps_by_file: Dict[str, List[CodeDependency]] = {}
        for dep in await graph.get_dependencies():
            if dep.resolved_path:
                deps_by_file.setdefault(dep.source_file, []).append(dep)

        default_exports: Dict[str, CodeSymbol] = {
            s.file_path: s for s in symbols if s.is_default_export
        }

        changed: List[CallEdge] = []
        for call in await graph.get_calls():
            target = self._resolve_call(call, by_file_name, deps_by_file, default_exports)
            new_id = target.id if target is not None else None
            new_file = target.file_path if target is not None else None
            if call.callee_id in symbol_ids and new_id is None:
                # Keep an existing link that still points at a live symbol
                continue
            if (call.callee_id, call.callee_file) != (new_id, new_file):
                call.callee_id = new_id
                call.callee_file = new_file
                changed.append(call)

        if changed:
            await graph.replace_calls(changed)
            logger.debug(f"Re-linked {len(changed)} call sites")
        return len(changed)

    @staticmethod
    def _pick(candidates: List[CodeSymbol], prefer_methods: bool) -> Optional[CodeSymbol]:
        if not candidates:
            return None

        def rank(symbol: CodeSymbol):
            is_method = symbol.kind == SymbolKind.METHOD
            return (is_method != prefer_methods, not symbol.is_exported, symbol.line_start)

        return sorted(candidates, key=rank)[0]

    def _resolve_call(
        self,
        call: CallEdge,
        by_file_name: Dict[Tuple[str, str], List[CodeSymbol]],
        deps_by_file: Dict[str, List[CodeDependency]],
        default_exports: Dict[str, CodeSymbol],
    ) -> Optional[CodeSymbol]:
        name = call.callee_name
        on_self = call.is_method_call and call.receiver in SELF_RECEIVERS

        if not call.is_method_call or on_self:
            local = by_file_name.get((call.caller_file, name), [])
            if not on_self:
                local = [s for s in local if s.kind != SymbolKind.METHOD]
            target = self._pick(local, prefer_methods=on_self)
            if target is not None:
                return target

        for dep in deps_by_file.get(call.caller_file, []):
            for imported in dep.names:
                local_name = imported.alias or imported.name
                if imported.is_namespace:
                    if call.is_method_call and call.receiver == local_name:
                        found = by_file_name.get((dep.resolved_path, name), [])
                        target = self._pick([s for s in found if s.is_exported] or found, False)
                        if target is not None:
                            return target
                    continue
                if call.is_method_call or local_name != name:
                    continue
                if imported.is_default:
                    target = default_exports.get(dep.resolved_path)
                else:
                    found = by_file_name.get((dep.resolved_path, imported.name), [])
                    target = self._pick(
                        [s for s in found if s.kind != SymbolKind.METHOD], prefer_methods=False
                    )
                if target is not None:
                    return target
        return None
