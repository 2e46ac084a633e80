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

"""Shared LanceDB table access.

LanceDB is an embedded vector database: tables live as Lance files under one
directory and are opened without a server. Every store in coderadar (vector
index, embedding cache, code graph) derives from ``LanceTables`` so table
lifecycle is handled in one place:

- ``ensure_table`` checks existence first and creates on absence
- ``open_table`` returns None for missing tables instead of raising
- ``scan`` reads rows with an optional SQL-like predicate
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import lancedb
import pyarrow as pa

logger = logging.getLogger(__name__)


def quote(value: str) -> str:
    """Quote a string literal for a LanceDB predicate."""
    return "'" + value.replace("'", "''") + "'"


class LanceTables:
    """Base for stores backed by one LanceDB directory."""

    def __init__(self, db_path: Union[str, Path]):
        """Connect to (and create if needed) a LanceDB directory.

        Args:
            db_path: Directory holding the Lance tables
        """
        self.db_path = Path(db_path).expanduser()
        self.db_path.mkdir(parents=True, exist_ok=True)
        self.db = lancedb.connect(str(self.db_path))

    def table_names(self) -> List[str]:
        """List all tables, following pagination."""
        names: List[str] = []
        page_token: Optional[str] = None
        while True:
            response = self.db.list_tables(page_token=page_token)
            names.extend(response.tables)
            page_token = response.page_token
            if not page_token:
                return names

    def table_exists(self, name: str) -> bool:
        return name in self.table_names()

    def ensure_table(self, name: str, schema: pa.Schema):
        """Open a table, creating it empty with ``schema`` when absent."""
        if self.table_exists(name):
            return self.db.open_table(name)
        logger.debug(f"Creating LanceDB table: {name}")
        return self.db.create_table(name, schema=schema)

    def open_table(self, name: str):
        """Open a table, or return None when it does not exist."""
        if not self.table_exists(name):
            return None
        return self.db.open_table(name)

    def drop_table(self, name: str) -> bool:
        """Drop a table if present. Returns whether it existed."""
        if not self.table_exists(name):
            return False
        self.db.drop_table(name)
        return True

    @staticmethod
    def scan(table, where: Optional[str] = None) -> List[Dict[str, Any]]:
        """Read every row of a table, optionally filtered by a predicate."""
        total = table.count_rows(where) if where else table.count_rows()
        if total == 0:
            return []
        query = table.search()
        if where:
            query = query.where(where)
        return query.limit(total).to_list()

    def close(self) -> None:
        """Release the connection.

        Embedded LanceDB holds no server connection, so this only drops the
        reference. Stores must not be used after closing.
        """
        self.db = None
