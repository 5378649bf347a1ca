"""
Tests for MasterCodelineService
===============================
Canonical codelines, variables and memberships.
"""

import os
import sys
import pytest

# Ensure backend is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from sqlalchemy import select

from database.models import MasterCodeline, TempCodeline, Variable, variable_codeline
from services.codeline_types import ProcessedLine, PurposeKey, VariableRef
from services.master_codeline_service import DuplicateVariableError, MasterCodelineService


def _declaration(text="const a = 1;", number=1):
    return ProcessedLine(
        text=text,
        line_number=number,
        language_tag="javascript",
        purpose=PurposeKey.VARIABLE_DECLARATION,
        variables=[VariableRef("a", "variable_declaration")],
    )


class TestCanonicalize:

    def test_same_text_twice_gives_one_master(self, db):
        service = MasterCodelineService()

        first = service.canonicalize_lines(db, [_declaration()], "src/a.js")
        second = service.canonicalize_lines(db, [_declaration()], "src/b.js")

        assert first["new_master_codelines"] == 1
        assert first["variable_links_created"] == 1
        assert second["new_master_codelines"] == 0
        assert second["linked_to_existing"] == 1
        assert second["variable_links_created"] == 0

        assert db.query(MasterCodeline).count() == 1
        temps = db.query(TempCodeline).all()
        assert len(temps) == 2
        assert temps[0].master_codeline_id == temps[1].master_codeline_id

    def test_master_copies_classification(self, db):
        MasterCodelineService().canonicalize_lines(db, [_declaration()], "src/a.js")

        master = db.query(MasterCodeline).one()
        assert master.codeline == "const a = 1;"
        assert master.purpose_key == "variable_declaration"
        assert master.language == "javascript"
        assert master.variables == ["a"]
        assert len(master.codeline_hash) == 64

    def test_whitespace_is_significant(self, db):
        service = MasterCodelineService()
        service.canonicalize_lines(db, [_declaration("x();", 1), _declaration("  x();", 2)], "src/a.js")
        assert db.query(MasterCodeline).count() == 2

    def test_reanalysis_replaces_temp_rows(self, db):
        service = MasterCodelineService()
        service.canonicalize_lines(db, [_declaration(), _declaration("let b = 2;", 2)], "src/a.js")
        service.canonicalize_lines(db, [_declaration()], "src/a.js")

        assert db.query(TempCodeline).filter(TempCodeline.file_path == "src/a.js").count() == 1
        assert db.query(MasterCodeline).count() == 2

    def test_blank_lines_skipped(self, db):
        service = MasterCodelineService()
        stats = service.canonicalize_lines(db, [ProcessedLine("   ", 1), ProcessedLine("", 2)], "src/a.js")

        assert stats["total_processed"] == 0
        assert db.query(TempCodeline).count() == 0
        assert service.canonicalize(db, ProcessedLine("  ", 3)) == (None, False)

    def test_canonicalize_single_line(self, db):
        service = MasterCodelineService()

        master, created = service.canonicalize(db, _declaration())
        again, created_again = service.canonicalize(db, _declaration())
        db.commit()

        assert created is True
        assert created_again is False
        assert again.id == master.id

    def test_memberships_are_unique(self, db):
        service = MasterCodelineService()
        line = _declaration()
        line.add_variable(VariableRef("a", "variable_usage"))

        service.canonicalize_lines(db, [line], "src/a.js")
        service.canonicalize_lines(db, [line], "src/b.js")

        rows = db.execute(select(variable_codeline)).all()
        assert len(rows) == 1
        variable = db.query(Variable).one()
        assert variable.name == "a"
        assert variable.type == "variable_declaration"


class TestConcurrentInsert:

    def test_master_inserted_by_another_writer(self, db, monkeypatch):
        service = MasterCodelineService()
        service.canonicalize_lines(db, [_declaration()], "src/a.js")

        real_find = service._find_master
        calls = []

        def miss_once(session, digest, text):
            calls.append(digest)
            if len(calls) == 1:
                return None
            return real_find(session, digest, text)

        monkeypatch.setattr(service, "_find_master", miss_once)
        stats = service.canonicalize_lines(db, [_declaration()], "src/b.js")

        assert len(calls) == 2
        assert stats["new_master_codelines"] == 0
        assert stats["linked_to_existing"] == 1
        assert db.query(MasterCodeline).count() == 1
        assert db.query(TempCodeline).count() == 2

    def test_variable_inserted_by_another_writer(self, db, monkeypatch):
        service = MasterCodelineService()
        service.canonicalize_lines(db, [_declaration()], "src/a.js")
        existing = db.query(Variable).one()

        # First lookup misses, so the insert collides with the unique name
        lookups = []
        original_query = db.query

        def query(*entities):
            if entities == (Variable,) and not lookups:
                lookups.append(entities)
                return original_query(Variable).filter(Variable.id.is_(None))
            return original_query(*entities)

        monkeypatch.setattr(db, "query", query)
        variable = service._get_or_create_variable(db, "a", "variable_declaration")

        assert variable.id == existing.id
        assert original_query(Variable).count() == 1


class TestVariables:

    def test_add_and_list(self, db):
        service = MasterCodelineService()
        service.add_variable(db, "userId")
        service.add_variable(db, "total", kind="expression_variable")

        assert service.list_variables(db) == {"total": "expression_variable", "userId": "user_added"}

    def test_duplicate_variable_rejected(self, db):
        service = MasterCodelineService()
        service.add_variable(db, "userId")

        with pytest.raises(DuplicateVariableError):
            service.add_variable(db, "userId")

    def test_empty_name_rejected(self, db):
        with pytest.raises(ValueError):
            MasterCodelineService().add_variable(db, "   ")
