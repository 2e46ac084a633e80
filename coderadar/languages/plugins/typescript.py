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

"""TypeScript / JavaScript front end built on tree-sitter.

Walks the concrete syntax tree once per file and records:
- Symbols: functions, arrow functions bound to variables, classes, methods,
  interfaces, type aliases, enums and top-level variables
- Dependencies: ES imports, ``import type``, re-exports, ``export * from``,
  dynamic ``import()`` and CommonJS ``require()``
- Calls: plain, method (``obj.fn()``) and constructor (``new Foo()``) calls,
  attributed to the innermost enclosing function or method
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional, Set

from coderadar.codebase.graph.protocol import (
    DependencyKind,
    ExtractionResult,
    ImportedName,
    SymbolKind,
    is_external_module,
)
from coderadar.languages.base import ExtractionContext, LanguageFrontEnd
from coderadar.languages.tree_sitter_manager import create_parser

if TYPE_CHECKING:
    from tree_sitter import Node, Parser

GRAMMAR_BY_EXTENSION: Dict[str, str] = {
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
}

FUNCTION_DECLARATIONS = {"function_declaration", "generator_function_declaration"}
CLASS_DECLARATIONS = {"class_declaration", "abstract_class_declaration", "class"}
FUNCTION_VALUES = {"arrow_function", "function_expression", "function", "generator_function"}
TYPE_DECLARATIONS = {
    "interface_declaration": SymbolKind.INTERFACE,
    "type_alias_declaration": SymbolKind.TYPE,
    "enum_declaration": SymbolKind.ENUM,
}
MODIFIER_TOKENS = {"static", "async", "readonly", "abstract", "override", "get", "set"}


class _TreeWalker:
    """Single-pass walk of one file's syntax tree."""

    def __init__(self, ctx: ExtractionContext, source: bytes):
        self.ctx = ctx
        self.source = source
        self.scope: List[str] = []  # ids of enclosing functions/methods
        self.exported_names: Set[str] = set()
        self.default_names: Set[str] = set()

    # -- helpers -----------------------------------------------------------

    def text(self, node: Node) -> str:
        return self.source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")

    def string_value(self, node: Node) -> str:
        return self.text(node).strip()[1:-1]

    @staticmethod
    def start(node: Node):
        return (node.start_point[0] + 1, node.start_point[1])

    @staticmethod
    def end(node: Node):
        return (node.end_point[0] + 1, node.end_point[1])

    def signature(self, node: Node) -> str:
        body = node.child_by_field_name("body")
        stop = body.start_byte if body is not None else node.end_byte
        head = self.source[node.start_byte : stop].decode("utf-8", errors="replace")
        head = " ".join(head.split()).rstrip("{").rstrip()
        if head.endswith("=>"):
            head = head[:-2]
        return head.rstrip()

    def documentation(self, node: Node) -> Optional[str]:
        anchor = node
        if anchor.parent is not None and anchor.parent.type == "export_statement":
            anchor = anchor.parent
        previous = anchor.prev_named_sibling
        if previous is not None and previous.type == "comment":
            comment = self.text(previous)
            if comment.startswith("/**"):
                lines = [ln.strip().lstrip("*").strip() for ln in comment[3:-2].splitlines()]
                return "\n".join(ln for ln in lines if ln) or None
        return None

    def modifiers(self, node: Node) -> List[str]:
        found = []
        for child in node.children:
            if child.type == "accessibility_modifier" or child.type in MODIFIER_TOKENS:
                found.append(self.text(child))
        return found

    # -- traversal ---------------------------------------------------------

    def walk(self, node: Node, exported: bool = False, default: bool = False) -> None:
        kind = node.type
        if kind == "import_statement":
            self.handle_import(node)
        elif kind == "export_statement":
            self.handle_export(node)
        elif kind in FUNCTION_DECLARATIONS:
            self.handle_function(node, node.child_by_field_name("name"), exported, default)
        elif kind in CLASS_DECLARATIONS:
            self.handle_class(node, exported, default)
        elif kind in ("lexical_declaration", "variable_declaration"):
            self.handle_variables(node, exported)
        elif kind in TYPE_DECLARATIONS:
            self.handle_type(node, TYPE_DECLARATIONS[kind], exported, default)
        elif kind == "call_expression":
            self.handle_call(node)
        elif kind == "new_expression":
            self.handle_new(node)
        else:
            self.walk_children(node)

    def walk_children(self, node: Node) -> None:
        for child in node.named_children:
            self.walk(child)

    def walk_scoped(self, node: Optional[Node], symbol_id: str) -> None:
        if node is None:
            return
        self.scope.append(symbol_id)
        self.walk(node)
        self.scope.pop()

    # -- declarations ------------------------------------------------------

    def handle_function(
        self, node: Node, name_node: Optional[Node], exported: bool, default: bool
    ) -> None:
        name = self.text(name_node) if name_node is not None else "default"
        symbol = self.ctx.add_symbol(
            name=name,
            kind=SymbolKind.FUNCTION,
            start=self.start(node),
            end=self.end(node),
            is_exported=exported and not self.scope,
            is_default_export=default,
            signature=self.signature(node),
            documentation=self.documentation(node),
            modifiers=self.modifiers(node),
        )
        self.walk_scoped(node.child_by_field_name("parameters"), symbol.id)
        self.walk_scoped(node.child_by_field_name("body"), symbol.id)

    def handle_class(self, node: Node, exported: bool, default: bool) -> None:
        name_node = node.child_by_field_name("name")
        name = self.text(name_node) if name_node is not None else "default"
        class_symbol = self.ctx.add_symbol(
            name=name,
            kind=SymbolKind.CLASS,
            start=self.start(node),
            end=self.end(node),
            is_exported=exported and not self.scope,
            is_default_export=default,
            signature=self.signature(node),
            documentation=self.documentation(node),
            modifiers=[c.type for c in node.children if c.type == "abstract"],
        )
        body = node.child_by_field_name("body")
        if body is None:
            return
        for member in body.named_children:
            if member.type == "method_definition":
                self.handle_method(member, member, class_symbol.id)
            elif member.type == "public_field_definition":
                value = member.child_by_field_name("value")
                if value is not None and value.type in FUNCTION_VALUES:
                    self.handle_method(member, value, class_symbol.id)
                elif value is not None:
                    self.walk(value)
            else:
                self.walk(member)

    def handle_method(self, member: Node, function_node: Node, class_id: str) -> None:
        name_node = member.child_by_field_name("name")
        if name_node is None:
            return
        symbol = self.ctx.add_symbol(
            name=self.text(name_node),
            kind=SymbolKind.METHOD,
            start=self.start(member),
            end=self.end(member),
            signature=self.signature(function_node),
            documentation=self.documentation(member),
            parent_id=class_id,
            modifiers=self.modifiers(member),
        )
        self.walk_scoped(function_node.child_by_field_name("body"), symbol.id)

    def handle_variables(self, node: Node, exported: bool) -> None:
        for declarator in node.named_children:
            if declarator.type != "variable_declarator":
                continue
            name_node = declarator.child_by_field_name("name")
            value = declarator.child_by_field_name("value")
            if name_node is None or name_node.type != "identifier":
                if value is not None:
                    self.walk(value)
                continue

            if value is not None and value.type in FUNCTION_VALUES:
                symbol = self.ctx.add_symbol(
                    name=self.text(name_node),
                    kind=SymbolKind.FUNCTION,
                    start=self.start(declarator),
                    end=self.end(declarator),
                    is_exported=exported and not self.scope,
                    signature=f"{self.text(name_node)} = {self.signature(value)}",
                    documentation=self.documentation(node),
                    modifiers=self.modifiers(value),
                )
                self.walk_scoped(value.child_by_field_name("parameters"), symbol.id)
                self.walk_scoped(value.child_by_field_name("body"), symbol.id)
                continue

            if not self.scope:
                self.ctx.add_symbol(
                    name=self.text(name_node),
                    kind=SymbolKind.VARIABLE,
                    start=self.start(declarator),
                    end=self.end(declarator),
                    is_exported=exported,
                    documentation=self.documentation(node),
                )
            if value is not None:
                self.walk(value)

    def handle_type(self, node: Node, kind: str, exported: bool, default: bool) -> None:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return
        self.ctx.add_symbol(
            name=self.text(name_node),
            kind=kind,
            start=self.start(node),
            end=self.end(node),
            is_exported=exported and not self.scope,
            is_default_export=default,
            documentation=self.documentation(node),
        )

    # -- modules -----------------------------------------------------------

    def handle_import(self, node: Node) -> None:
        line = self.start(node)[0]
        source = node.child_by_field_name("source")
        type_only = any(child.type == "type" for child in node.children)
        names: List[ImportedName] = []

        for child in node.named_children:
            if child.type == "import_require_clause":
                require_source = child.child_by_field_name("source")
                local = next((c for c in child.named_children if c.type == "identifier"), None)
                if require_source is not None:
                    module = self.string_value(require_source)
                    self.ctx.add_dependency(
                        module,
                        DependencyKind.REQUIRE,
                        line,
                        is_external_module(module),
                        [ImportedName(name=self.text(local), is_namespace=True)] if local else [],
                    )
                return
            if child.type != "import_clause":
                continue
            for part in child.named_children:
                if part.type == "identifier":
                    names.append(
                        ImportedName(name=self.text(part), is_default=True, is_type_only=type_only)
                    )
                elif part.type == "namespace_import":
                    local = next((c for c in part.named_children if c.type == "identifier"), None)
                    if local is not None:
                        names.append(
                            ImportedName(
                                name=self.text(local), is_namespace=True, is_type_only=type_only
                            )
                        )
                elif part.type == "named_imports":
                    for spec in part.named_children:
                        if spec.type != "import_specifier":
                            continue
                        name_node = spec.child_by_field_name("name")
                        alias_node = spec.child_by_field_name("alias")
                        names.append(
                            ImportedName(
                                name=self.text(name_node),
                                alias=self.text(alias_node) if alias_node is not None else None,
                                is_type_only=type_only
                                or any(c.type == "type" for c in spec.children),
                            )
                        )

        if source is None:
            return
        module = self.string_value(source)
        kind = DependencyKind.IMPORT_TYPE if type_only else DependencyKind.IMPORT
        self.ctx.add_dependency(module, kind, line, is_external_module(module), names)

    def handle_export(self, node: Node) -> None:
        is_default = any(child.type == "default" for child in node.children)
        declaration = node.child_by_field_name("declaration")
        if declaration is not None:
            self.walk(declaration, exported=True, default=is_default)
            return

        source = node.child_by_field_name("source")
        clause = next((c for c in node.named_children if c.type == "export_clause"), None)
        line = self.start(node)[0]

        if source is not None:
            module = self.string_value(source)
            if clause is not None:
                names = [self._export_name(spec) for spec in clause.named_children]
                kind = DependencyKind.EXPORT_FROM
            else:
                namespace = next(
                    (c for c in node.named_children if c.type == "namespace_export"), None
                )
                alias = None
                if namespace is not None:
                    alias_node = next(
                        (c for c in namespace.named_children if c.type == "identifier"), None
                    )
                    alias = self.text(alias_node) if alias_node is not None else None
                names = [ImportedName(name="*", alias=alias, is_namespace=True)]
                kind = DependencyKind.RE_EXPORT
            self.ctx.add_dependency(
                module, kind, line, is_external_module(module), [n for n in names if n]
            )
            return

        if clause is not None:
            for spec in clause.named_children:
                name_node = spec.child_by_field_name("name")
                if name_node is not None:
                    self.exported_names.add(self.text(name_node))
            return

        value = node.child_by_field_name("value")
        if value is None:
            return
        if value.type == "identifier":
            self.default_names.add(self.text(value))
        elif value.type in FUNCTION_VALUES:
            self.handle_function(value, value.child_by_field_name("name"), True, True)
        elif value.type in CLASS_DECLARATIONS:
            self.handle_class(value, True, True)
        else:
            self.walk(value)

    def _export_name(self, spec: Node) -> Optional[ImportedName]:
        if spec.type != "export_specifier":
            return None
        name_node = spec.child_by_field_name("name")
        alias_node = spec.child_by_field_name("alias")
        if name_node is None:
            return None
        return ImportedName(
            name=self.text(name_node),
            alias=self.text(alias_node) if alias_node is not None else None,
        )

    # -- calls -------------------------------------------------------------

    def handle_call(self, node: Node) -> None:
        function = node.child_by_field_name("function")
        arguments = node.child_by_field_name("arguments")
        args = [a for a in arguments.named_children if a.type != "comment"] if arguments else []
        line, column = self.start(node)
        caller_id = self.scope[-1] if self.scope else None

        if function is not None and function.type == "import":
            if args and args[0].type == "string":
                module = self.string_value(args[0])
                self.ctx.add_dependency(
                    module, DependencyKind.DYNAMIC_IMPORT, line, is_external_module(module)
                )
        elif function is not None and function.type == "identifier":
            name = self.text(function)
            if name == "require" and args and args[0].type == "string":
                module = self.string_value(args[0])
                self.ctx.add_dependency(
                    module, DependencyKind.REQUIRE, line, is_external_module(module)
                )
            else:
                self.ctx.add_call(name, line, column, caller_id, argument_count=len(args))
        elif function is not None and function.type == "member_expression":
            prop = function.child_by_field_name("property")
            obj = function.child_by_field_name("object")
            if prop is not None:
                self.ctx.add_call(
                    self.text(prop),
                    line,
                    column,
                    caller_id,
                    is_method_call=True,
                    receiver=self.text(obj) if obj is not None else None,
                    argument_count=len(args),
                )

        if function is not None and function.type not in ("identifier", "import"):
            self.walk(function)
        if arguments is not None:
            self.walk_children(arguments)

    def handle_new(self, node: Node) -> None:
        constructor = node.child_by_field_name("constructor")
        arguments = node.child_by_field_name("arguments")
        if constructor is not None and constructor.type in ("identifier", "type_identifier"):
            line, column = self.start(node)
            self.ctx.add_call(
                self.text(constructor),
                line,
                column,
                self.scope[-1] if self.scope else None,
                argument_count=len(arguments.named_children) if arguments is not None else 0,
            )
        if arguments is not None:
            self.walk_children(arguments)

    def finish(self) -> ExtractionResult:
        """Apply ``export { a }`` and ``export default a`` to top-level symbols."""
        for symbol in self.ctx.result.symbols:
            if symbol.parent_id is not None:
                continue
            if symbol.name in self.exported_names:
                symbol.is_exported = True
            if symbol.name in self.default_names:
                symbol.is_exported = True
                symbol.is_default_export = True
        return self.ctx.result


class TypeScriptFrontEnd(LanguageFrontEnd):
    """Extracts structure from TypeScript, TSX and JavaScript sources."""

    name = "typescript"
    extensions = tuple(GRAMMAR_BY_EXTENSION)
    resolve_extensions = (".ts", ".tsx", ".d.ts", ".js", ".jsx", ".mjs", ".cjs")

    def __init__(self):
        self._parsers: Dict[str, Parser] = {}

    def _parser(self, grammar: str) -> Parser:
        if grammar not in self._parsers:
            self._parsers[grammar] = create_parser(grammar)
        return self._parsers[grammar]

    def extract(self, source: str, file_path: str, relative_path: str) -> ExtractionResult:
        grammar = GRAMMAR_BY_EXTENSION.get(Path(relative_path).suffix.lower(), "typescript")
        encoded = source.encode("utf-8")
        tree = self._parser(grammar).parse(encoded)
        walker = _TreeWalker(ExtractionContext(file_path, relative_path), encoded)
        walker.walk_children(tree.root_node)
        return walker.finish()

    def module_candidates(self, specifier: str, source_file: Path, root: Path) -> List[Path]:
        candidates = super().module_candidates(specifier, source_file, root)
        # ESM TypeScript imports name the emitted ".js" file
        if candidates and Path(specifier).suffix in (".js", ".jsx", ".mjs"):
            base = candidates[0]
            candidates.extend([base.with_suffix(".ts"), base.with_suffix(".tsx")])
        return candidates
