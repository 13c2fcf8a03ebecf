"""
Table name aliasing.

Stores always address the logical default table name. The registry redirects
that name to the physical table chosen in the options. The registry is
created together with an OptionsMonitor and is only written by it, when the
options are first loaded and whenever they change; everything else reads.
"""

import threading
from typing import Dict


class TableAliasRegistry:
    """
    Thread-safe mapping of logical table names to physical table names.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._aliases: Dict[str, str] = {}

    def add_alias(self, table_name: str, alias: str) -> None:
        with self._lock:
            self._aliases[table_name] = alias

    def remove_alias(self, table_name: str) -> None:
        with self._lock:
            self._aliases.pop(table_name, None)

    def resolve(self, table_name: str) -> str:
        """Return the physical name for table_name (itself when unaliased)."""
        with self._lock:
            return self._aliases.get(table_name, table_name)

    @property
    def aliases(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._aliases)

    def __contains__(self, table_name: str) -> bool:
        with self._lock:
            return table_name in self._aliases
