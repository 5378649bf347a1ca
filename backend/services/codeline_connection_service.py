"""
Codeline Connection Service

Builds the line dependency graph: two master codelines that mention the same
variable are connected in both directions, one edge per shared variable.
All edges live in the ``codeline_codeline`` table.
"""

import logging
import threading
from collections import defaultdict
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from sqlalchemy import func, select, text

from analysis_config import GRAPH_REBUILD_SCOPE, GRAPH_REBUILD_SCOPES
from database.models import CodelineConnection, MasterCodeline, Variable, variable_codeline

logger = logging.getLogger(__name__)

# Serializes rebuilds inside this process; PostgreSQL also gets an advisory lock
_GRAPH_REBUILD_LOCK = threading.Lock()
GRAPH_ADVISORY_LOCK_KEY = 724_311_905

Edge = Tuple[str, str, str]  # (requires_codeline_id, provides_codeline_id, variable_name)


def compute_connections(memberships: Iterable[Tuple[str, str]]) -> Iterator[Edge]:
    """
    Yield both directed edges for every pair of lines sharing a variable.

    Args:
        memberships: (variable_name, codeline_id) pairs

    Variables mentioned by fewer than two distinct lines produce nothing.
    """
    lines_by_variable: Dict[str, List[str]] = defaultdict(list)
    for variable_name, codeline_id in memberships:
        members = lines_by_variable[variable_name]
        if codeline_id not in members:
            members.append(codeline_id)

    for variable_name, codeline_ids in lines_by_variable.items():
        if len(codeline_ids) < 2:
            continue
        for i, line_a in enumerate(codeline_ids):
            for line_b in codeline_ids[i + 1:]:
                yield line_a, line_b, variable_name
                yield line_b, line_a, variable_name


class CodelineConnectionService:
    """Rebuild and inspect the codeline dependency graph."""

    def rebuild_graph(
        self,
        db,
        variable_names: Optional[Sequence[str]] = None,
        scope: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Recompute dependency edges from the variable memberships.

        In ``global`` scope the edge table is truncated and rebuilt from every
        membership. In ``scoped`` scope only the edges of ``variable_names``
        are replaced.

        Returns: {"connections_created", "variables_processed",
                  "codelines_analyzed", "shared_variables", "errors"}
        """
        scope = (scope or GRAPH_REBUILD_SCOPE).lower()
        stats = {
            "scope": scope,
            "connections_created": 0,
            "variables_processed": 0,
            "codelines_analyzed": 0,
            "shared_variables": 0,
            "errors": [],
        }

        if scope not in GRAPH_REBUILD_SCOPES:
            stats["errors"].append(f"Unknown graph rebuild scope '{scope}'")
            return stats

        if scope == "scoped" and not variable_names:
            logger.info("[CodelineConnection] scoped rebuild with no variables, nothing to do")
            return stats

        with _GRAPH_REBUILD_LOCK:
            try:
                self._acquire_advisory_lock(db)
                self._rebuild(db, stats, scope, variable_names)
                db.commit()
            except Exception as e:
                db.rollback()
                logger.error(f"[CodelineConnection] graph rebuild failed: {e}", exc_info=True)
                stats["errors"].append(str(e))
                stats["connections_created"] = 0

        logger.info(
            f"[CodelineConnection] {scope} rebuild: {stats['connections_created']} connections, "
            f"{stats['shared_variables']}/{stats['variables_processed']} shared variables"
        )
        return stats

    def _rebuild(self, db, stats: Dict[str, Any], scope: str, variable_names: Optional[Sequence[str]]):
        query = (
            select(Variable.name, variable_codeline.c.codeline_id)
            .join(variable_codeline, variable_codeline.c.variable_id == Variable.id)
            .order_by(Variable.name, variable_codeline.c.id)
        )

        if scope == "scoped":
            names = sorted(set(variable_names))
            query = query.where(Variable.name.in_(names))
            db.query(CodelineConnection).filter(
                CodelineConnection.variable_name.in_(names)
            ).delete(synchronize_session=False)
        else:
            db.query(CodelineConnection).delete(synchronize_session=False)

        memberships = db.execute(query).all()

        lines_by_variable = defaultdict(set)
        for variable_name, codeline_id in memberships:
            lines_by_variable[variable_name].add(codeline_id)

        stats["variables_processed"] = len(lines_by_variable)
        stats["codelines_analyzed"] = len({codeline_id for _, codeline_id in memberships})
        stats["shared_variables"] = sum(1 for ids in lines_by_variable.values() if len(ids) >= 2)

        existing_edges = set()
        if scope == "scoped":
            existing_edges = {
                tuple(row) for row in db.query(
                    CodelineConnection.requires_codeline_id,
                    CodelineConnection.provides_codeline_id,
                    CodelineConnection.variable_name,
                ).all()
            }

        for edge in compute_connections(memberships):
            if edge in existing_edges:
                continue
            requires_id, provides_id, variable_name = edge
            db.add(CodelineConnection(
                requires_codeline_id=requires_id,
                provides_codeline_id=provides_id,
                variable_name=variable_name,
            ))
            existing_edges.add(edge)
            stats["connections_created"] += 1

        db.flush()

    def _acquire_advisory_lock(self, db):
        if db.get_bind().dialect.name == "postgresql":
            db.execute(text("SELECT pg_advisory_xact_lock(:key)"), {"key": GRAPH_ADVISORY_LOCK_KEY})

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def get_connection_stats(self, db) -> Dict[str, Any]:
        """Edge totals and the ten most connected codelines"""
        total = db.query(func.count(CodelineConnection.id)).scalar() or 0
        connected = (
            db.query(func.count(func.distinct(CodelineConnection.requires_codeline_id))).scalar() or 0
        )

        top_rows = (
            db.query(
                CodelineConnection.requires_codeline_id,
                func.count(CodelineConnection.id).label("connection_count"),
            )
            .group_by(CodelineConnection.requires_codeline_id)
            .order_by(func.count(CodelineConnection.id).desc())
            .limit(10)
            .all()
        )

        texts = {}
        if top_rows:
            ids = [row[0] for row in top_rows]
            texts = dict(
                db.query(MasterCodeline.id, MasterCodeline.codeline)
                .filter(MasterCodeline.id.in_(ids))
                .all()
            )

        return {
            "total_connections": total,
            "codelines_with_connections": connected,
            "most_connected": [
                {
                    "codeline_id": codeline_id,
                    "codeline": texts.get(codeline_id),
                    "connection_count": count,
                }
                for codeline_id, count in top_rows
            ],
        }

    def clear_all_connections(self, db) -> int:
        """Delete every edge. Returns the number of rows removed."""
        with _GRAPH_REBUILD_LOCK:
            deleted = db.query(CodelineConnection).delete(synchronize_session=False)
            db.commit()
        logger.info(f"[CodelineConnection] cleared {deleted} connections")
        return deleted
