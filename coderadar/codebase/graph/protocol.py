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

"""Common schema for structural extraction.

Every language front end returns an ``ExtractionResult`` made of these
records. The code graph store flattens them into LanceDB rows
(``to_row``/``from_row``); list-valued fields are stored as JSON strings.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List


class SymbolKind:
    FUNCTION = "function"
    CLASS = "class"
    METHOD = "method"
    INTERFACE = "interface"
    TYPE = "type"
    ENUM = "enum"
    VARIABLE = "variable"


class DependencyKind:
    IMPORT = "import"
    IMPORT_TYPE = "import_type"
    DYNAMIC_IMPORT = "dynamic_import"
    REQUIRE = "require"
    EXPORT = "export"
    EXPORT_FROM = "export_from"
    RE_EXPORT = "re_export"


def make_symbol_id(relative_path: str, name: str, kind: str) -> str:
    """Deterministic symbol id from (relative path, name, kind)."""
    return f"{relative_path}:{name}:{kind}"


def make_edge_id(*parts: Any) -> str:
    """Deterministic id for a dependency or call edge."""
    raw = "|".join("" if p is None else str(p) for p in parts)
    return hashlib.sha1(raw.encode("utf-8")).hexdigest()[:16]


def is_external_module(specifier: str) -> bool:
    """Bare specifiers (``react``, ``os.path``) are external to the tree."""
    return not specifier.startswith(("./", "../", "/")) and specifier not in (".", "..")


@dataclass
class Position:
    line: int  # 1-based
    column: int  # 0-based


@dataclass
class SourceRange:
    start: Position
    end: Position


@dataclass
class CodeSymbol:
    """A named declaration."""

    id: str
    name: str
    kind: str
    file_path: str
    relative_path: str
    range: SourceRange
    is_exported: bool = False
    is_default_export: bool = False
    signature: str | None = None
    documentation: str | None = None
    parent_id: str | None = None
    modifiers: List[str] = field(default_factory=list)
    summary: str | None = None

    @property
    def line_start(self) -> int:
        return self.range.start.line

    def describe(self) -> str:
        """Stored summary, else signature, else ``kind name``."""
        return self.summary or self.signature or f"{self.kind} {self.name}"

    def to_row(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind,
            "file_path": self.file_path,
            "relative_path": self.relative_path,
            "start_line": self.range.start.line,
            "start_column": self.range.start.column,
            "end_line": self.range.end.line,
            "end_column": self.range.end.column,
            "is_exported": self.is_exported,
            "is_default_export": self.is_default_export,
            "signature": self.signature,
            "documentation": self.documentation,
            "parent_id": self.parent_id,
            "modifiers": json.dumps(self.modifiers),
            "summary": self.summary,
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> CodeSymbol:
        return cls(
            id=row["id"],
            name=row["name"],
            kind=row["kind"],
            file_path=row["file_path"],
            relative_path=row["relative_path"],
            range=SourceRange(
                start=Position(row["start_line"], row["start_column"]),
                end=Position(row["end_line"], row["end_column"]),
            ),
            is_exported=bool(row["is_exported"]),
            is_default_export=bool(row["is_default_export"]),
            signature=row.get("signature"),
            documentation=row.get("documentation"),
            parent_id=row.get("parent_id"),
            modifiers=json.loads(row.get("modifiers") or "[]"),
            summary=row.get("summary"),
        )


@dataclass
class ImportedName:
    name: str
    alias: str | None = None
    is_type_only: bool = False
    is_default: bool = False
    is_namespace: bool = False


@dataclass
class CodeDependency:
    """An import/export/require edge from a file to a module."""

    id: str
    source_file: str
    target_module: str
    kind: str
    line: int
    is_external: bool
    resolved_path: str | None = None
    names: List[ImportedName] = field(default_factory=list)

    def imported_names(self) -> List[str]:
        """Local names brought in, or ``['*']`` for whole-module imports."""
        return [n.alias or n.name for n in self.names] or ["*"]

    def to_row(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "source_file": self.source_file,
            "target_module": self.target_module,
            "resolved_path": self.resolved_path,
            "kind": self.kind,
            "names": json.dumps([asdict(n) for n in self.names]),
            "line": self.line,
            "is_external": self.is_external,
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> CodeDependency:
        return cls(
            id=row["id"],
            source_file=row["source_file"],
            target_module=row["target_module"],
            resolved_path=row.get("resolved_path"),
            kind=row["kind"],
            names=[ImportedName(**n) for n in json.loads(row.get("names") or "[]")],
            line=row["line"],
            is_external=bool(row["is_external"]),
        )


@dataclass
class CallEdge:
    """A call site.

    ``callee_id``/``callee_file`` are set only once the callee resolves to a
    known symbol; unresolved calls are matched by ``callee_name``.
    """

    id: str
    caller_file: str
    callee_name: str
    position: Position
    caller_id: str | None = None
    callee_id: str | None = None
    callee_file: str | None = None
    is_method_call: bool = False
    receiver: str | None = None
    argument_count: int = 0

    def to_row(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "caller_id": self.caller_id,
            "caller_file": self.caller_file,
            "callee_name": self.callee_name,
            "callee_id": self.callee_id,
            "callee_file": self.callee_file,
            "line": self.position.line,
            "column": self.position.column,
            "is_method_call": self.is_method_call,
            "receiver": self.receiver,
            "argument_count": self.argument_count,
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> CallEdge:
        return cls(
            id=row["id"],
            caller_id=row.get("caller_id"),
            caller_file=row["caller_file"],
            callee_name=row["callee_name"],
            callee_id=row.get("callee_id"),
            callee_file=row.get("callee_file"),
            position=Position(row["line"], row["column"]),
            is_method_call=bool(row["is_method_call"]),
            receiver=row.get("receiver"),
            argument_count=row["argument_count"],
        )


@dataclass
class ExtractionResult:
    """Everything a front end extracted from one file."""

    symbols: List[CodeSymbol] = field(default_factory=list)
    dependencies: List[CodeDependency] = field(default_factory=list)
    calls: List[CallEdge] = field(default_factory=list)
