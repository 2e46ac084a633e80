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

"""Base types for language front ends.

A front end turns one source file into the common graph schema
(``ExtractionResult``). Front ends are selected by file extension through
``FrontEndRegistry``; each one only has to implement ``extract``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from coderadar.codebase.graph.protocol import (
    CallEdge,
    CodeDependency,
    CodeSymbol,
    ExtractionResult,
    ImportedName,
    Position,
    SourceRange,
    make_edge_id,
    make_symbol_id,
)


class ExtractionContext:
    """Per-file builder for extraction records.

    Keeps symbol ids deterministic: the first declaration of a
    (relative path, name, kind) triple gets the plain id, later ones in the
    same file get ``@<start line>`` appended.
    """

    def __init__(self, file_path: str, relative_path: str):
        self.file_path = file_path
        self.relative_path = relative_path
        self.result = ExtractionResult()
        self._seen_ids: Dict[str, int] = {}

    def _allocate_id(self, name: str, kind: str, line: int) -> str:
        base = make_symbol_id(self.relative_path, name, kind)
        if base not in self._seen_ids:
            self._seen_ids[base] = line
            return base
        return f"{base}@{line}"

    def add_symbol(
        self,
        name: str,
        kind: str,
        start: Tuple[int, int],
        end: Tuple[int, int],
        is_exported: bool = False,
        is_default_export: bool = False,
        signature: Optional[str] = None,
        documentation: Optional[str] = None,
        parent_id: Optional[str] = None,
        modifiers: Optional[List[str]] = None,
    ) -> CodeSymbol:
        """Record a symbol. ``start``/``end`` are (1-based line, column)."""
        symbol = CodeSymbol(
            id=self._allocate_id(name, kind, start[0]),
            name=name,
            kind=kind,
            file_path=self.file_path,
            relative_path=self.relative_path,
            range=SourceRange(Position(*start), Position(*end)),
            is_exported=is_exported,
            is_default_export=is_default_export,
            signature=signature,
            documentation=documentation,
            parent_id=parent_id,
            modifiers=modifiers or [],
        )
        self.result.symbols.append(symbol)
        return symbol

    def add_dependency(
        self,
        target_module: str,
        kind: str,
        line: int,
        is_external: bool,
        names: Optional[List[ImportedName]] = None,
    ) -> CodeDependency:
        dependency = CodeDependency(
            id=make_edge_id(self.file_path, kind, target_module, line),
            source_file=self.file_path,
            target_module=target_module,
            kind=kind,
            line=line,
            is_external=is_external,
            names=names or [],
        )
        self.result.dependencies.append(dependency)
        return dependency

    def add_call(
        self,
        callee_name: str,
        line: int,
        column: int,
        caller_id: Optional[str] = None,
        is_method_call: bool = False,
        receiver: Optional[str] = None,
        argument_count: int = 0,
    ) -> CallEdge:
        call = CallEdge(
            id=make_edge_id(self.file_path, caller_id, callee_name, line, column),
            caller_id=caller_id,
            caller_file=self.file_path,
            callee_name=callee_name,
            position=Position(line, column),
            is_method_call=is_method_call,
            receiver=receiver,
            argument_count=argument_count,
        )
        self.result.calls.append(call)
        return call


class LanguageFrontEnd(ABC):
    """Structural extractor for one language family."""

    #: Language name used in logs
    name: str = ""
    #: Lowercase file extensions handled, with the leading dot
    extensions: Tuple[str, ...] = ()
    #: Extensions tried, in order, when resolving an extensionless import
    resolve_extensions: Tuple[str, ...] = ()

    @abstractmethod
    def extract(self, source: str, file_path: str, relative_path: str) -> ExtractionResult:
        """Extract symbols, dependencies and calls from one file.

        Args:
            source: File text
            file_path: Absolute path, stored on every record
            relative_path: Path relative to the index root, used in symbol ids

        Returns:
            Extraction result in the common schema
        """

    def module_candidates(self, specifier: str, source_file: Path, root: Path) -> List[Path]:
        """Paths a module specifier may refer to, most likely first.

        The default handles path-like specifiers (``./x``, ``../x``, ``/x``).
        """
        if specifier.startswith("/"):
            base = root / specifier.lstrip("/")
        elif specifier.startswith("."):
            base = source_file.parent / specifier
        else:
            return []
        candidates = [base]
        candidates.extend(base.with_name(base.name + ext) for ext in self.resolve_extensions)
        candidates.extend(base / f"index{ext}" for ext in self.resolve_extensions)
        return candidates
