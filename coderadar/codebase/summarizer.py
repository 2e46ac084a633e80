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

"""LLM-backed symbol summaries and implementation-approach suggestions."""

import json
import logging
import re
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from coderadar.codebase.embeddings.base import TextGenerationProvider

logger = logging.getLogger(__name__)

_JSON_ARRAY = re.compile(r"\[[\s\S]*\]")

DEFAULT_SUMMARY_LENGTH = 100


class ApproachStep(BaseModel):
    """One suggested implementation step."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    step: int = Field(ge=1, description="1-based step number")
    description: str
    target_files: List[str] = Field(default_factory=list, description="Files to modify")


class SymbolBrief(BaseModel):
    name: str
    kind: str
    summary: str


class FileBrief(BaseModel):
    path: str
    symbols: List[str] = Field(default_factory=list)


def truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[: max(max_length - 3, 0)] + "..."


def parse_approach(response: str) -> List[ApproachStep]:
    """Parse the first JSON array in a model reply into steps.

    Raises:
        ValueError: No array, invalid JSON, or malformed steps
    """
    match = _JSON_ARRAY.search(response)
    payload = match.group(0) if match else response
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise ValueError(f"Approach reply is not valid JSON: {e}") from e
    if not isinstance(data, list):
        raise ValueError("Approach reply is not a JSON array")
    try:
        return [ApproachStep.model_validate(item) for item in data]
    except ValidationError as e:
        raise ValueError(f"Malformed approach step: {e}") from e


class ApproachSuggester:
    """Prompts a text generation provider for summaries and approach steps.

    Example:
        suggester = ApproachSuggester(OllamaTextGenerator())
        steps = await suggester.suggest_approach(task, symbols, files)
    """

    def __init__(self, generator: TextGenerationProvider, max_length: int = DEFAULT_SUMMARY_LENGTH):
        self.generator = generator
        self.max_length = max_length

    async def summarize_symbol(
        self,
        name: str,
        kind: str,
        code: str,
        signature: Optional[str] = None,
        documentation: Optional[str] = None,
    ) -> str:
        """One-sentence summary of a symbol, at most ``max_length`` characters."""
        prompt = (
            f"Summarize what this {kind} does in ONE concise sentence "
            f"(max {self.max_length} chars).\n"
            "Focus on PURPOSE, not implementation.\n\n"
            f"Name: {name}\n"
        )
        if signature:
            prompt += f"Signature: {signature}\n"
        prompt += f"Code:\n```\n{code}\n```\n"
        if documentation:
            prompt += f"\nDocumentation: {documentation}\n"
        prompt += "\nSummary:"

        summary = await self.generator.generate_text(prompt)
        return truncate(summary.strip(), self.max_length)

    def build_approach_prompt(
        self, task: str, symbols: List[SymbolBrief], files: List[FileBrief]
    ) -> str:
        symbol_lines = "\n".join(f"- {s.kind} {s.name}: {s.summary}" for s in symbols)
        file_lines = "\n".join(f"- {f.path}: [{', '.join(f.symbols)}]" for f in files)
        return (
            "Given this task and code context, suggest 3-5 implementation steps.\n\n"
            f"Task: {task}\n\n"
            f"Relevant code:\n{symbol_lines}\n\n"
            f"Relevant files:\n{file_lines}\n\n"
            "For each step provide:\n"
            "- step: number (1, 2, 3...)\n"
            "- description: string\n"
            "- targetFiles: string[] (files to modify)\n\n"
            "Return ONLY a JSON array of steps, no other text:"
        )

    async def suggest_approach(
        self, task: str, symbols: List[SymbolBrief], files: List[FileBrief]
    ) -> List[ApproachStep]:
        """Suggested steps for a task; any failure yields an empty list."""
        try:
            health = await self.generator.health_check()
            if not health.healthy:
                logger.warning("Text generation provider unavailable; skipping approach")
                return []
            reply = await self.generator.generate_text(
                self.build_approach_prompt(task, symbols, files)
            )
            return parse_approach(reply)
        except Exception as e:
            logger.warning(f"Approach suggestion failed: {e}")
            return []
