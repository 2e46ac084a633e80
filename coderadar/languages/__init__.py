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

"""Per-language structural front ends.

Each front end turns one file's source text into symbols, dependency edges
and call edges in the common graph schema. The registry dispatches by file
extension; unknown extensions yield an empty result.
"""

from coderadar.languages.base import ExtractionContext, LanguageFrontEnd
from coderadar.languages.registry import FrontEndRegistry, create_default_registry

__all__ = [
    "ExtractionContext",
    "LanguageFrontEnd",
    "FrontEndRegistry",
    "create_default_registry",
]
