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

"""Tests for the source tree walker, path filters and hashing."""

from pathlib import Path, PurePosixPath

import pytest

from coderadar.codebase.hashing import hash_content, hash_file
from coderadar.codebase.ignore_patterns import (
    is_binary_file,
    is_hidden_path,
    matches_pattern,
    should_exclude,
)
from coderadar.codebase.walker import walk_files
from coderadar.config import IndexingConfig


def _write(root: Path, relative: str, content: str = "x = 1\n") -> None:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


@pytest.fixture
def tree(tmp_path: Path) -> Path:
    root = tmp_path / "repo"
    _write(root, "main.py")
    _write(root, "src/app.ts", "export const a = 1;\n")
    _write(root, "src/util/helpers.js", "module.exports = {};\n")
    _write(root, "README.md", "# Repo\n")
    _write(root, "node_modules/lodash/index.js")
    _write(root, "__pycache__/main.cpython-312.pyc")
    _write(root, ".git/config")
    _write(root, ".github/workflows/ci.yml", "on: push\n")
    _write(root, ".env", "SECRET=1\n")
    _write(root, "config/.env.local", "SECRET=2\n")
    _write(root, "certs/server.pem", "-----BEGIN-----\n")
    _write(root, "assets/logo.png", "not really a png")
    _write(root, "dist/bundle.min.js")
    return root


class TestPathFilters:
    """Tests for the exclusion helpers."""

    def test_hidden_components(self):
        assert is_hidden_path(PurePosixPath(".git/config"))
        assert is_hidden_path(PurePosixPath("src/.cache/x"))
        assert not is_hidden_path(PurePosixPath("src/main.py"))

    def test_binary_by_extension(self):
        assert is_binary_file("logo.PNG")
        assert is_binary_file("lib.so")
        assert not is_binary_file("main.py")

    def test_pattern_matching(self):
        assert matches_pattern("node_modules", "node_modules")
        assert matches_pattern("app.min.js", "*.min.js")
        assert not matches_pattern("app.js", "*.min.js")
        assert not matches_pattern("node_modules_extra", "node_modules")

    def test_should_exclude_by_component(self):
        assert should_exclude(PurePosixPath("a/node_modules/b.js"), ["node_modules"])
        assert not should_exclude(PurePosixPath("src/main.py"), ["node_modules"])

    def test_path_patterns_match_whole_path(self):
        assert should_exclude(PurePosixPath(".aws/credentials"), [".aws/*"], include_hidden=True)
        assert should_exclude(
            PurePosixPath("home/.aws/credentials"), [".aws/*"], include_hidden=True
        )


class TestWalkFiles:
    """Tests for walk_files."""

    def test_default_walk(self, tree):
        found = [f.relative_path for f in walk_files(tree)]
        assert found == ["README.md", "main.py", "src/app.ts", "src/util/helpers.js"]

    def test_records_size_and_extension(self, tree):
        by_path = {f.relative_path: f for f in walk_files(tree)}
        app = by_path["src/app.ts"]

        assert app.extension == ".ts"
        assert app.size == len("export const a = 1;\n")
        assert app.absolute_path == (tree / "src" / "app.ts").resolve()

    def test_include_hidden_still_skips_secrets(self, tree):
        config = IndexingConfig(include_hidden=True)
        found = {f.relative_path for f in walk_files(tree, config)}

        assert ".github/workflows/ci.yml" in found
        assert ".git/config" not in found
        assert ".env" not in found
        assert "config/.env.local" not in found
        assert "certs/server.pem" not in found

    def test_max_file_size(self, tree):
        _write(tree, "big.py", "x" * 2048)
        config = IndexingConfig(max_file_size=1024)
        found = {f.relative_path for f in walk_files(tree, config)}

        assert "big.py" not in found
        assert "main.py" in found

    def test_custom_excludes(self, tree):
        config = IndexingConfig(excludes=IndexingConfig().excludes + ["src"])
        found = {f.relative_path for f in walk_files(tree, config)}

        assert found == {"README.md", "main.py"}


class TestHashing:
    """Tests for content hashing."""

    def test_hash_is_sha256_hex(self):
        digest = hash_content("hello")
        assert digest == "2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824"

    def test_file_hash_matches_content_hash(self, tmp_path):
        path = tmp_path / "a.py"
        path.write_text("print('hi')\n", encoding="utf-8")
        assert hash_file(path) == hash_content("print('hi')\n")
