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

"""Python front end built on the standard library ``ast`` module."""

import ast
from pathlib import Path
from typing import List, Optional, Set

from coderadar.codebase.graph.protocol import (
    DependencyKind,
    ExtractionResult,
    ImportedName,
    SymbolKind,
)
from coderadar.languages.base import ExtractionContext, LanguageFrontEnd


def _signature(node: ast.AST) -> str:
    if isinstance(node, ast.ClassDef):
        bases = ", ".join(ast.unparse(b) for b in node.bases)
        return f"class {node.name}({bases})" if bases else f"class {node.name}"
    prefix = "async def" if isinstance(node, ast.AsyncFunctionDef) else "def"
    signature = f"{prefix} {node.name}({ast.unparse(node.args)})"
    if node.returns is not None:
        signature += f" -> {ast.unparse(node.returns)}"
    return signature


def _declared_all(tree: ast.Module) -> Optional[Set[str]]:
    """Names listed in a module-level ``__all__``, if one is declared."""
    for node in tree.body:
        if isinstance(node, ast.Assign) and any(
            isinstance(t, ast.Name) and t.id == "__all__" for t in node.targets
        ):
            if isinstance(node.value, (ast.List, ast.Tuple)):
                return {
                    e.value
                    for e in node.value.elts
                    if isinstance(e, ast.Constant) and isinstance(e.value, str)
                }
    return None


class SymbolVisitor(ast.NodeVisitor):
    """AST visitor feeding an ExtractionContext."""

    def __init__(self, ctx: ExtractionContext, public_names: Optional[Set[str]]):
        self.ctx = ctx
        self.public_names = public_names
        self.class_stack: List[str] = []  # symbol ids
        self.function_stack: List[str] = []  # symbol ids

    def _is_exported(self, name: str) -> bool:
        if self.class_stack or self.function_stack:
            return False
        if self.public_names is not None:
            return name in self.public_names
        return not name.startswith("_")

    def visit_ClassDef(self, node: ast.ClassDef) -> None:
        symbol = self.ctx.add_symbol(
            name=node.name,
            kind=SymbolKind.CLASS,
            start=(node.lineno, node.col_offset),
            end=(node.end_lineno or node.lineno, node.end_col_offset or 0),
            is_exported=self._is_exported(node.name),
            signature=_signature(node),
            documentation=ast.get_docstring(node),
            parent_id=self.class_stack[-1] if self.class_stack else None,
            modifiers=[ast.unparse(d) for d in node.decorator_list],
        )
        self.class_stack.append(symbol.id)
        # Methods belong to the class, not to an enclosing function
        saved_functions, self.function_stack = self.function_stack, []
        self.generic_visit(node)
        self.function_stack = saved_functions
        self.class_stack.pop()

    def _visit_function(self, node) -> None:
        in_class_body = bool(self.class_stack) and not self.function_stack
        modifiers = [ast.unparse(d) for d in node.decorator_list]
        if isinstance(node, ast.AsyncFunctionDef):
            modifiers.append("async")
        symbol = self.ctx.add_symbol(
            name=node.name,
            kind=SymbolKind.METHOD if in_class_body else SymbolKind.FUNCTION,
            start=(node.lineno, node.col_offset),
            end=(node.end_lineno or node.lineno, node.end_col_offset or 0),
            is_exported=self._is_exported(node.name),
            signature=_signature(node),
            documentation=ast.get_docstring(node),
            parent_id=self.class_stack[-1] if in_class_body else None,
            modifiers=modifiers,
        )
        self.function_stack.append(symbol.id)
        self.generic_visit(node)
        self.function_stack.pop()

    visit_FunctionDef = _visit_function
    visit_AsyncFunctionDef = _visit_function

    def visit_Import(self, node: ast.Import) -> None:
        for alias in node.names:
            self.ctx.add_dependency(
                target_module=alias.name,
                kind=DependencyKind.IMPORT,
                line=node.lineno,
                is_external=True,
                names=[ImportedName(name=alias.name, alias=alias.asname, is_namespace=True)],
            )

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:
        target = "." * node.level + (node.module or "")
        self.ctx.add_dependency(
            target_module=target,
            kind=DependencyKind.IMPORT,
            line=node.lineno,
            is_external=node.level == 0,
            names=[
                ImportedName(name=a.name, alias=a.asname, is_namespace=a.name == "*")
                for a in node.names
            ],
        )

    def visit_Call(self, node: ast.Call) -> None:
        func = node.func
        callee: Optional[str] = None
        receiver: Optional[str] = None
        if isinstance(func, ast.Name):
            callee = func.id
        elif isinstance(func, ast.Attribute):
            callee = func.attr
            receiver = ast.unparse(func.value)

        if callee:
            self.ctx.add_call(
                callee_name=callee,
                line=node.lineno,
                column=node.col_offset,
                caller_id=self.function_stack[-1] if self.function_stack else None,
                is_method_call=receiver is not None,
                receiver=receiver,
                argument_count=len(node.args) + len(node.keywords),
            )
        self.generic_visit(node)


class PythonFrontEnd(LanguageFrontEnd):
    """Extracts classes, functions, methods, imports and calls from Python."""

    name = "python"
    extensions = (".py", ".pyi")
    resolve_extensions = (".py", ".pyi")

    def extract(self, source: str, file_path: str, relative_path: str) -> ExtractionResult:
        tree = ast.parse(source, filename=relative_path)
        ctx = ExtractionContext(file_path, relative_path)
        SymbolVisitor(ctx, _declared_all(tree)).visit(tree)
        return ctx.result

    def module_candidates(self, specifier: str, source_file: Path, root: Path) -> List[Path]:
        """Resolve ``.pkg.mod`` relative to the file and ``pkg.mod`` relative to root."""
        level = len(specifier) - len(specifier.lstrip("."))
        dotted = specifier[level:]
        if level:
            base = source_file.parent
            for _ in range(level - 1):
                base = base.parent
        else:
            base = root
        parts = [p for p in dotted.split(".") if p]
        if not parts:
            return [base / "__init__.py"]
        target = base.joinpath(*parts)
        return [target.with_name(target.name + ".py"), target / "__init__.py"]
