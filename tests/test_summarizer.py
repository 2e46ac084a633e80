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

"""Tests for symbol summaries and approach suggestions."""

import pytest

from coderadar.codebase.summarizer import (
    ApproachSuggester,
    FileBrief,
    SymbolBrief,
    parse_approach,
    truncate,
)
from conftest import FakeTextGenerator

VALID_REPLY = (
    "Sure! Here is the plan:\n"
    '[{"step": 1, "description": "Add a limiter", "targetFiles": ["src/login.ts"]},\n'
    ' {"step": 2, "description": "Wire it in"}]\n'
    "Good luck."
)


class TestParsing:
    """Tests for reply parsing and truncation."""

    def test_parse_embedded_array(self):
        steps = parse_approach(VALID_REPLY)

        assert [s.step for s in steps] == [1, 2]
        assert steps[0].target_files == ["src/login.ts"]
        assert steps[1].target_files == []

    def test_parse_rejects_non_json(self):
        with pytest.raises(ValueError):
            parse_approach("no plan today")

    def test_parse_rejects_malformed_steps(self):
        with pytest.raises(ValueError):
            parse_approach('[{"step": 0, "description": "zero"}]')
        with pytest.raises(ValueError):
            parse_approach('[{"description": "no number"}]')

    def test_truncate(self):
        assert truncate("short", 10) == "short"
        assert truncate("a" * 20, 10) == "a" * 7 + "..."
        assert len(truncate("x" * 500, 100)) == 100


class TestApproachSuggester:
    """Tests for the provider-backed suggester."""

    @pytest.mark.asyncio
    async def test_suggest_approach(self):
        generator = FakeTextGenerator(reply=VALID_REPLY)
        suggester = ApproachSuggester(generator)

        steps = await suggester.suggest_approach(
            "add rate limiting",
            [SymbolBrief(name="login", kind="function", summary="function login()")],
            [FileBrief(path="src/login.ts", symbols=["login"])],
        )

        assert len(steps) == 2
        prompt = generator.prompts[0]
        assert "Task: add rate limiting" in prompt
        assert "- function login: function login()" in prompt
        assert "- src/login.ts: [login]" in prompt

    @pytest.mark.asyncio
    async def test_malformed_reply_yields_no_steps(self):
        suggester = ApproachSuggester(FakeTextGenerator(reply="[not json"))

        assert await suggester.suggest_approach("task", [], []) == []

    @pytest.mark.asyncio
    async def test_unhealthy_provider_is_not_prompted(self):
        generator = FakeTextGenerator(reply=VALID_REPLY, healthy=False)

        assert await ApproachSuggester(generator).suggest_approach("task", [], []) == []
        assert generator.prompts == []

    @pytest.mark.asyncio
    async def test_provider_error_yields_no_steps(self):
        generator = FakeTextGenerator(error=RuntimeError("model crashed"))

        assert await ApproachSuggester(generator).suggest_approach("task", [], []) == []

    @pytest.mark.asyncio
    async def test_summarize_symbol(self):
        generator = FakeTextGenerator(reply="  Validates a user's credentials against the store.  ")
        suggester = ApproachSuggester(generator, max_length=20)

        summary = await suggester.summarize_symbol(
            "validateUser",
            "function",
            "return check(password);",
            signature="function validateUser()",
            documentation="Validates credentials.",
        )

        assert summary == "Validates a user'..."
        assert "Signature: function validateUser()" in generator.prompts[0]
        assert "Documentation: Validates credentials." in generator.prompts[0]
