"""
Tests for the codeline dependency graph
=======================================
"""

import os
import sys

# Ensure backend is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from database.models import CodelineConnection, MasterCodeline
from services.codeline_analysis_service import CodelineAnalysisService
from services.codeline_connection_service import CodelineConnectionService, compute_connections


def _analyze(db, lines, file_path="calc.js", scope="global"):
    service = CodelineAnalysisService(graph_scope=scope, build_codeblocks=False)
    return service.analyze_lines(lines, file_path, db)


def _master_id(db, text):
    return db.query(MasterCodeline).filter(MasterCodeline.codeline == text).one().id


class TestComputeConnections:

    def test_pair_gives_both_directions(self):
        edges = list(compute_connections([("a", "L1"), ("a", "L2"), ("b", "L2")]))
        assert edges == [("L1", "L2", "a"), ("L2", "L1", "a")]

    def test_every_unordered_pair(self):
        edges = list(compute_connections([("x", "L1"), ("x", "L2"), ("x", "L3"), ("x", "L1")]))
        assert len(edges) == 6
        assert len(set(edges)) == 6

    def test_single_line_variables_ignored(self):
        assert list(compute_connections([("a", "L1"), ("b", "L2")])) == []


class TestRebuildGraph:

    def test_shared_variable_creates_two_edges(self, db):
        result = _analyze(db, ["const a = 1;", "const b = a + 1;"])

        assert result.codeline_connections["connections_created"] == 2
        assert result.codeline_connections["errors"] == []

        a_line = _master_id(db, "const a = 1;")
        b_line = _master_id(db, "const b = a + 1;")
        edges = {
            (e.requires_codeline_id, e.provides_codeline_id, e.variable_name)
            for e in db.query(CodelineConnection).all()
        }
        assert edges == {(a_line, b_line, "a"), (b_line, a_line, "a")}

    def test_global_rebuild_truncates_existing_edges(self, db):
        db.add(CodelineConnection(requires_codeline_id="x" * 36, provides_codeline_id="y" * 36,
                                  variable_name="stale"))
        db.commit()

        _analyze(db, ["const a = 1;", "const b = a + 1;"])

        assert db.query(CodelineConnection).filter(CodelineConnection.variable_name == "stale").count() == 0
        assert db.query(CodelineConnection).count() == 2

    def test_rebuild_is_repeatable(self, db):
        _analyze(db, ["const a = 1;", "const b = a + 1;"])
        stats = CodelineConnectionService().rebuild_graph(db, scope="global")

        assert stats["connections_created"] == 2
        assert db.query(CodelineConnection).count() == 2

    def test_scoped_rebuild_keeps_untouched_variables(self, db):
        db.add(CodelineConnection(requires_codeline_id="x" * 36, provides_codeline_id="y" * 36,
                                  variable_name="stale"))
        db.commit()

        _analyze(db, ["const a = 1;", "const b = a + 1;"], scope="scoped")
        _analyze(db, ["let x = 1;", "let y = x;"], file_path="other.js", scope="scoped")

        names = sorted(e.variable_name for e in db.query(CodelineConnection).all())
        assert names == ["a", "a", "stale", "x", "x"]

    def test_scoped_rebuild_without_variables_is_noop(self, db):
        stats = CodelineConnectionService().rebuild_graph(db, variable_names=[], scope="scoped")
        assert stats["connections_created"] == 0
        assert stats["errors"] == []

    def test_unknown_scope_reported(self, db):
        stats = CodelineConnectionService().rebuild_graph(db, scope="partial")
        assert stats["errors"]

    def test_failure_is_reported_not_raised(self, db, monkeypatch):
        def _boom(*args, **kwargs):
            raise RuntimeError("graph store unavailable")

        monkeypatch.setattr(CodelineConnectionService, "_rebuild", _boom)

        result = _analyze(db, ["const a = 1;", "const b = a + 1;"])

        assert result.codeline_connections["connections_created"] == 0
        assert "graph store unavailable" in result.codeline_connections["errors"][0]
        # Canonicalization before the graph step is kept
        assert db.query(MasterCodeline).count() == 2


class TestConnectionStats:

    def test_stats_and_clear(self, db):
        _analyze(db, ["const a = 1;", "const b = a + 1;"])
        service = CodelineConnectionService()

        stats = service.get_connection_stats(db)
        assert stats["total_connections"] == 2
        assert stats["codelines_with_connections"] == 2
        assert {entry["connection_count"] for entry in stats["most_connected"]} == {1}
        assert {entry["codeline"] for entry in stats["most_connected"]} == {"const a = 1;", "const b = a + 1;"}

        assert service.clear_all_connections(db) == 2
        assert service.get_connection_stats(db)["total_connections"] == 0
