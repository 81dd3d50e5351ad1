import re
from typing import Any, Dict, List, Optional, Sequence

from nodeflow.core.enums import SourceKind
from nodeflow.core.errors import DataSourceError
from nodeflow.ports.analytical_store_port import AnalyticalStorePort
from nodeflow.ports.document_store_port import DocumentStorePort

_FROM_RE = re.compile(r"\bFROM\s+([A-Za-z_][A-Za-z0-9_]*)", re.IGNORECASE)


class StaticDocumentStore(DocumentStorePort):
    def __init__(self,
                 rows: Optional[Dict[SourceKind, List[Dict[str, Any]]]] = None,
                 error: Optional[Exception] = None,
                 ):
        self._rows = rows or {}
        self._error = error
        self.calls: List[SourceKind] = []

    async def fetch_raw(self, source_kind):
        self.calls.append(source_kind)
        if self._error is not None:
            raise self._error
        return [dict(r) for r in self._rows.get(source_kind, [])]


class StaticAnalyticalStore(AnalyticalStorePort):
    """
    Answers queries by the first table/view named after FROM. WHERE clauses are ignored.
    """

    def __init__(self,
                 tables: Optional[Dict[str, List[Dict[str, Any]]]] = None,
                 failing: Sequence[str] = (),
                 ):
        self._tables = {k.lower(): v for k, v in (tables or {}).items()}
        self._failing = {t.lower() for t in failing}
        self.queries: List[str] = []

    async def query(self, sql, params=None):
        self.queries.append(sql)
        m = _FROM_RE.search(sql)
        name = m.group(1).lower() if m else ""
        if name in self._failing:
            raise DataSourceError(f"static table {name} unavailable")
        return [dict(r) for r in self._tables.get(name, [])]

    async def execute(self, sql):
        self.queries.append(sql)
