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

"""Exception hierarchy for coderadar.

Propagation policy:
- EmbeddingFailureError is fatal to the current index pass. The pipeline
  marks the index ``failed`` before re-raising it.
- ExtractionFailureError is per file. It is logged and the file's chunks are
  still indexed.
- ProviderUnavailableError degrades optional features (approach
  suggestions, summaries) to empty output.
- MalformedCacheEntryError is raised while decoding a cache row and is
  treated as a cache miss by the cache itself.
"""

from typing import Optional


class CodeRadarError(Exception):
    """Base class for all coderadar errors."""


class IndexNotFoundError(CodeRadarError):
    """Raised when a named index has no metadata record."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Index '{name}' not found")


class IndexAlreadyExistsError(CodeRadarError):
    """Raised when creating an index whose metadata record already exists."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Index '{name}' already exists")


class EmbeddingFailureError(CodeRadarError):
    """Embedding generation or vector store write failed during a pass."""

    def __init__(
        self,
        message: str,
        index_name: Optional[str] = None,
        file_path: Optional[str] = None,
    ):
        self.index_name = index_name
        self.file_path = file_path
        super().__init__(message)


class ExtractionFailureError(CodeRadarError):
    """A language front end could not extract structure from one file."""

    def __init__(self, file_path: str, reason: str):
        self.file_path = file_path
        self.reason = reason
        super().__init__(f"Structural extraction failed for {file_path}: {reason}")


class ProviderUnavailableError(CodeRadarError):
    """An external embedding or text-generation provider is unreachable."""

    def __init__(self, provider: str, reason: str = ""):
        self.provider = provider
        self.reason = reason
        message = f"Provider '{provider}' unavailable"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class MalformedCacheEntryError(CodeRadarError):
    """A cached vector could not be decoded."""

    def __init__(self, cache_key: str, reason: str):
        self.cache_key = cache_key
        super().__init__(f"Malformed cache entry {cache_key[:12]}: {reason}")
