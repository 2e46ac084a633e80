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

"""Path filtering rules shared by the walker and the indexing pipeline.

Design Principles:
- Hidden entries (starting with '.') are excluded unless explicitly included
- Exclude patterns match a single path component, exactly or as a simple glob
- Patterns containing '/' (e.g. ``.aws/*``) match against the relative path
- Secret patterns are always applied, even when hidden files are included
- Binary files are recognized by extension, never by sniffing content
"""

import fnmatch
from pathlib import PurePosixPath
from typing import Iterable

BINARY_EXTENSIONS = frozenset(
    {
        # Images
        ".png",
        ".jpg",
        ".jpeg",
        ".gif",
        ".bmp",
        ".ico",
        ".webp",
        ".svg",
        ".tiff",
        ".tif",
        # Fonts
        ".woff",
        ".woff2",
        ".ttf",
        ".otf",
        ".eot",
        # Archives
        ".zip",
        ".tar",
        ".gz",
        ".bz2",
        ".xz",
        ".rar",
        ".7z",
        # Documents
        ".pdf",
        ".doc",
        ".docx",
        ".xls",
        ".xlsx",
        ".ppt",
        ".pptx",
        # Media
        ".mp3",
        ".mp4",
        ".wav",
        ".ogg",
        ".webm",
        ".avi",
        ".mov",
        ".flac",
        # Executables and libraries
        ".exe",
        ".dll",
        ".so",
        ".dylib",
        ".bin",
        # Databases
        ".db",
        ".sqlite",
        ".sqlite3",
        # Other
        ".wasm",
        ".node",
    }
)


def is_hidden_path(path: PurePosixPath) -> bool:
    """Check if any component of the path is hidden.

    Hidden entries follow Unix convention: they start with '.'
    Excludes '.' and '..' which are special directory entries.

    Args:
        path: Relative path to check

    Returns:
        True if path contains any hidden component
    """
    for part in path.parts:
        if part.startswith(".") and part not in (".", ".."):
            return True
    return False


def is_binary_file(name: str) -> bool:
    """Check if a file is likely binary based on its extension."""
    return PurePosixPath(name).suffix.lower() in BINARY_EXTENSIONS


def matches_pattern(name: str, pattern: str) -> bool:
    """Match one name against an exact name or a simple glob."""
    if name == pattern:
        return True
    if "*" in pattern or "?" in pattern:
        return fnmatch.fnmatchcase(name, pattern)
    return False


def should_exclude(
    relative_path: PurePosixPath,
    excludes: Iterable[str],
    include_hidden: bool = False,
) -> bool:
    """Check if a relative path should be skipped while walking.

    Args:
        relative_path: Path relative to the walk root (POSIX separators)
        excludes: Exclude patterns (names, globs, or path globs with '/')
        include_hidden: Whether dot-entries may be walked

    Returns:
        True if the path should be ignored

    Example:
        >>> should_exclude(PurePosixPath("src/main.py"), ["node_modules"])
        False
        >>> should_exclude(PurePosixPath("node_modules/lodash/index.js"), ["node_modules"])
        True
        >>> should_exclude(PurePosixPath(".git/config"), [])
        True
    """
    if not include_hidden and is_hidden_path(relative_path):
        return True

    posix = relative_path.as_posix()
    for pattern in excludes:
        if "/" in pattern:
            if fnmatch.fnmatchcase(posix, pattern) or fnmatch.fnmatchcase(
                posix, f"*/{pattern}"
            ):
                return True
            continue
        if any(matches_pattern(part, pattern) for part in relative_path.parts):
            return True
    return False
