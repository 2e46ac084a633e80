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

"""Source tree walker.

Discovers indexable files under a root directory, pruning excluded
directories before descending into them.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import List, Optional

from coderadar.codebase.ignore_patterns import is_binary_file, should_exclude
from coderadar.config import IndexingConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WalkedFile:
    """A file discovered by the walker."""

    absolute_path: Path
    relative_path: str  # POSIX separators, relative to the walk root
    size: int
    extension: str


def walk_files(root: Path, config: Optional[IndexingConfig] = None) -> List[WalkedFile]:
    """Walk a directory tree and return indexable files.

    Skips excluded and secret paths, hidden entries (unless
    ``config.include_hidden``), binary extensions, and files larger than
    ``config.max_file_size``.

    Args:
        root: Directory to walk
        config: Indexing configuration (defaults used when None)

    Returns:
        Files sorted by relative path
    """
    config = config or IndexingConfig()
    root = root.resolve()
    patterns = list(config.excludes) + list(config.secret_excludes)
    found: List[WalkedFile] = []

    for dirpath, dirnames, filenames in os.walk(root):
        current = Path(dirpath)
        rel_dir = PurePosixPath(current.relative_to(root).as_posix())

        kept = []
        for name in dirnames:
            rel = rel_dir / name if rel_dir.parts else PurePosixPath(name)
            if should_exclude(rel, patterns, config.include_hidden):
                continue
            kept.append(name)
        dirnames[:] = sorted(kept)

        for name in filenames:
            rel = rel_dir / name if rel_dir.parts else PurePosixPath(name)
            if should_exclude(rel, patterns, config.include_hidden):
                continue
            if is_binary_file(name):
                continue

            path = current / name
            if not path.is_file():
                continue
            size = path.stat().st_size
            if size > config.max_file_size:
                logger.debug(f"Skipping {rel} ({size} bytes exceeds max_file_size)")
                continue

            found.append(
                WalkedFile(
                    absolute_path=path,
                    relative_path=rel.as_posix(),
                    size=size,
                    extension=path.suffix.lower(),
                )
            )

    found.sort(key=lambda f: f.relative_path)
    return found
