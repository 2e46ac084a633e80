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

"""Tree-sitter grammar loading.

Uses pre-compiled language packages (tree-sitter 0.25+ API) instead of
runtime grammar compilation. Grammars are immutable, so loaded Language
objects are memoized per process; parsers are created per front end.
"""

import importlib
from typing import Dict, Tuple

from tree_sitter import Language, Parser

# Format: "language_name": ("module_name", "function_name")
LANGUAGE_MODULES: Dict[str, Tuple[str, str]] = {
    "javascript": ("tree_sitter_javascript", "language"),
    "typescript": ("tree_sitter_typescript", "language_typescript"),
    "tsx": ("tree_sitter_typescript", "language_tsx"),
}

_language_cache: Dict[str, Language] = {}


def get_language(language: str) -> Language:
    """Load a tree-sitter Language from its grammar package.

    Raises:
        ValueError: No grammar package is registered for ``language``
        ImportError: The grammar package is not installed
    """
    if language in _language_cache:
        return _language_cache[language]

    module_info = LANGUAGE_MODULES.get(language)
    if not module_info:
        raise ValueError(f"Unsupported language for tree-sitter: {language}")

    module_name, func_name = module_info
    try:
        language_module = importlib.import_module(module_name)
    except ImportError as e:
        raise ImportError(
            f"Language package '{module_name}' not installed. "
            f"Install it with: pip install {module_name.replace('_', '-')}"
        ) from e

    lang = Language(getattr(language_module, func_name)())
    _language_cache[language] = lang
    return lang


def create_parser(language: str) -> Parser:
    """Create a Parser for ``language`` (Parser takes the Language directly)."""
    return Parser(get_language(language))
