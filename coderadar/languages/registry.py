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

"""Front end registry.

Routes each file to the front end registered for its extension. Unknown
extensions produce an empty result, and a front end that fails on one file
is logged and skipped so chunk indexing is never interrupted.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from coderadar.codebase.graph.protocol import ExtractionResult
from coderadar.errors import ExtractionFailureError
from coderadar.languages.base import LanguageFrontEnd

logger = logging.getLogger(__name__)


class FrontEndRegistry:
    """Extension -> front end lookup.

    Provides:
    - Front end registration by extension
    - Failure-isolated extraction
    """

    def __init__(self, front_ends: Optional[Iterable[LanguageFrontEnd]] = None):
        self._extension_map: Dict[str, LanguageFrontEnd] = {}
        for front_end in front_ends or ():
            self.register(front_end)

    def register(self, front_end: LanguageFrontEnd) -> None:
        """Register a front end for all of its extensions (later wins)."""
        for ext in front_end.extensions:
            ext = ext.lower()
            if not ext.startswith("."):
                ext = "." + ext
            self._extension_map[ext] = front_end
        logger.debug(f"Registered front end: {front_end.name} {list(front_end.extensions)}")

    def get(self, path: Path) -> Optional[LanguageFrontEnd]:
        return self._extension_map.get(path.suffix.lower())

    @property
    def extensions(self) -> List[str]:
        return sorted(self._extension_map)

    def try_extract(self, source: str, file_path: str, relative_path: str) -> ExtractionResult:
        """Extract structure from one file.

        Raises:
            ExtractionFailureError: The front end failed on this file
        """
        front_end = self.get(Path(relative_path))
        if front_end is None:
            return ExtractionResult()
        try:
            return front_end.extract(source, file_path, relative_path)
        except Exception as e:  # any front-end bug is confined to this file
            raise ExtractionFailureError(relative_path, f"{type(e).__name__}: {e}") from e

    def extract(self, source: str, file_path: str, relative_path: str) -> ExtractionResult:
        """Extract structure, logging failures and returning an empty result."""
        try:
            return self.try_extract(source, file_path, relative_path)
        except ExtractionFailureError as e:
            logger.warning(f"{e}; skipping structure for this file")
            return ExtractionResult()


def create_default_registry() -> FrontEndRegistry:
    """Registry with the built-in Python and TypeScript/JavaScript front ends."""
    from coderadar.languages.plugins.python import PythonFrontEnd
    from coderadar.languages.plugins.typescript import TypeScriptFrontEnd

    return FrontEndRegistry([PythonFrontEnd(), TypeScriptFrontEnd()])
