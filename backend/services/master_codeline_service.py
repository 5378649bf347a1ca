"""
Master Codeline Service

Canonicalizes processed codelines: every distinct line text is stored once in
``master_codelines`` and every variable name once in ``variables``. Lines of
the analyzed file are kept as ``temp_codelines`` rows pointing at their master.
"""

import logging
from typing import Dict, Iterable, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from database.models import (
    MasterCodeline, TempCodeline, Variable, variable_codeline, codeline_hash,
)
from services.codeline_types import ProcessedLine

logger = logging.getLogger(__name__)

DEFAULT_VARIABLE_KIND = "user_added"


class DuplicateVariableError(ValueError):
    """Raised when a user-added variable name already exists."""


class MasterCodelineService:
    """Content-addressed storage for codelines and variables."""

    def canonicalize(self, db, line: ProcessedLine) -> Tuple[Optional[MasterCodeline], bool]:
        """
        Find or create the master record for ``line`` and link its variables.

        Returns:
            (master, created). Blank lines are skipped and give (None, False).
        """
        if not line.text.strip():
            return None, False

        master, created = self._get_or_create_master(db, line)
        self._link_variables(db, master, line)
        return master, created

    def canonicalize_lines(self, db, lines: Iterable[ProcessedLine], file_path: str) -> Dict[str, int]:
        """
        Canonicalize every line of one file and replace that file's temp rows.

        Returns: {"new_master_codelines", "linked_to_existing",
                  "total_processed", "variable_links_created"}
        """
        stats = {
            "new_master_codelines": 0,
            "linked_to_existing": 0,
            "total_processed": 0,
            "variable_links_created": 0,
        }

        db.query(TempCodeline).filter(TempCodeline.file_path == file_path).delete(
            synchronize_session=False
        )

        for line in lines:
            if not line.text.strip():
                continue

            master, created = self._get_or_create_master(db, line)
            stats["variable_links_created"] += self._link_variables(db, master, line)

            if created:
                stats["new_master_codelines"] += 1
            else:
                stats["linked_to_existing"] += 1
            stats["total_processed"] += 1

            record = line.to_dict()
            db.add(TempCodeline(
                file_path=file_path,
                line_number=line.line_number,
                level=line.level,
                codeline=record["codeline"],
                comment=record["comment"],
                variables=record["variables"],
                purpose_key=record["purpose_key"],
                file_location=record["file_location"],
                is_opener=line.is_opener,
                is_closer=line.is_closer,
                language=record["language"],
                master_codeline_id=master.id,
            ))

        db.commit()

        logger.info(
            f"[MasterCodeline] {file_path}: {stats['new_master_codelines']} new, "
            f"{stats['linked_to_existing']} linked, "
            f"{stats['variable_links_created']} variable links"
        )
        return stats

    # ------------------------------------------------------------------
    # Variables
    # ------------------------------------------------------------------

    def add_variable(self, db, name: str, kind: str = DEFAULT_VARIABLE_KIND) -> Variable:
        """Register a variable by hand. Raises DuplicateVariableError if the name exists."""
        name = name.strip()
        if not name:
            raise ValueError("Variable name must not be empty")

        if db.query(Variable).filter(Variable.name == name).first() is not None:
            raise DuplicateVariableError(f"Variable '{name}' already exists")

        variable = Variable(name=name, type=kind, transformations=[])
        db.add(variable)
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            raise DuplicateVariableError(f"Variable '{name}' already exists") from e
        return variable

    def list_variables(self, db) -> Dict[str, str]:
        """All known variables as {name: kind}"""
        return {v.name: v.type for v in db.query(Variable).order_by(Variable.name).all()}

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _get_or_create_master(self, db, line: ProcessedLine) -> Tuple[MasterCodeline, bool]:
        digest = codeline_hash(line.text)

        existing = self._find_master(db, digest, line.text)
        if existing is not None:
            return existing, False

        record = line.to_dict()
        master = MasterCodeline(
            codeline=line.text,
            codeline_hash=digest,
            comment=record["comment"],
            variables=line.variable_names,
            purpose_key=record["purpose_key"],
            file_location=record["file_location"],
            is_opener=line.is_opener,
            is_closer=line.is_closer,
            language=record["language"],
        )
        # Keep pending temp rows out of the savepoint
        db.flush()
        try:
            with db.begin_nested():
                db.add(master)
        except IntegrityError:
            # Another writer inserted the same text first
            logger.debug(f"[MasterCodeline] concurrent insert for {line.text[:40]!r}, re-reading")
            existing = self._find_master(db, digest, line.text)
            if existing is None:
                raise
            return existing, False

        return master, True

    def _find_master(self, db, digest: str, text: str) -> Optional[MasterCodeline]:
        master = db.query(MasterCodeline).filter(MasterCodeline.codeline_hash == digest).first()
        if master is not None and master.codeline != text:
            raise RuntimeError(f"codeline hash collision for {text[:40]!r}")
        return master

    def _get_or_create_variable(self, db, name: str, kind: str) -> Variable:
        variable = db.query(Variable).filter(Variable.name == name).first()
        if variable is not None:
            return variable

        variable = Variable(name=name, type=kind or DEFAULT_VARIABLE_KIND, transformations=[])
        try:
            with db.begin_nested():
                db.add(variable)
        except IntegrityError:
            variable = db.query(Variable).filter(Variable.name == name).first()
            if variable is None:
                raise
        return variable

    def _link_variables(self, db, master: MasterCodeline, line: ProcessedLine) -> int:
        """Ensure one membership row per (variable, master). Returns rows created."""
        created = 0
        seen = set()

        for ref in line.variables:
            if ref.name in seen:
                continue
            seen.add(ref.name)

            variable = self._get_or_create_variable(db, ref.name, ref.kind)

            linked = db.execute(
                select(variable_codeline.c.id).where(
                    variable_codeline.c.variable_id == variable.id,
                    variable_codeline.c.codeline_id == master.id,
                )
            ).first()
            if linked is not None:
                continue

            try:
                with db.begin_nested():
                    db.execute(variable_codeline.insert().values(
                        variable_id=variable.id,
                        codeline_id=master.id,
                    ))
                created += 1
            except IntegrityError:
                logger.debug(f"[MasterCodeline] membership {ref.name} already linked")

        return created
