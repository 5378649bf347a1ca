"""
SQLAlchemy ORM Models for the codeline analyzer
Canonical codelines, variables, code blocks and line dependency edges
"""

import hashlib
import uuid
from datetime import datetime, timezone
from typing import Dict, Any

from sqlalchemy import (
    create_engine, Column, String, Text, DateTime, Boolean, Integer,
    ForeignKey, JSON, Index, UniqueConstraint, Table
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

from .config import get_database_url, SQL_ECHO


# Create base class
Base = declarative_base()


# ============================================================================
# UTILITY FUNCTIONS
# ============================================================================

def generate_uuid() -> str:
    """Generate a new UUID string"""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """Get current UTC timestamp"""
    return datetime.now(timezone.utc)


def codeline_hash(codeline: str) -> str:
    """Content address of a codeline (SHA-256 of its exact text)"""
    return hashlib.sha256(codeline.encode("utf-8")).hexdigest()


# ============================================================================
# VARIABLE <-> CODELINE MEMBERSHIP
# ============================================================================

variable_codeline = Table(
    "variable_codeline",
    Base.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("variable_id", String(36), ForeignKey("variables.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("codeline_id", String(36), ForeignKey("master_codelines.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("created_at", DateTime(timezone=True), default=utc_now, nullable=False),
    UniqueConstraint("variable_id", "codeline_id", name="uq_variable_codeline"),
)


# ============================================================================
# MASTER CODELINE MODEL
# ============================================================================

class MasterCodeline(Base):
    """
    Canonical record for one distinct line of text across every analyzed file.
    Immutable once created; identical lines only add new links.
    """
    __tablename__ = "master_codelines"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    codeline = Column(Text, nullable=False)
    codeline_hash = Column(String(64), nullable=False, unique=True, index=True)

    # Classification (copied from the first line that created it)
    comment = Column(Text)
    variables = Column(JSON, default=list)  # variable names
    purpose_key = Column(String(50), index=True)
    file_location = Column(String(100))  # region marker, e.g. <script setup>
    is_opener = Column(Boolean, default=False, nullable=False)
    is_closer = Column(Boolean, default=False, nullable=False)
    language = Column(String(30))

    # Audit
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    # Relationships
    variable_entities = relationship("Variable", secondary=variable_codeline, back_populates="codelines")
    temp_codelines = relationship("TempCodeline", back_populates="master_codeline")

    def __repr__(self):
        return f"<MasterCodeline {self.codeline[:40]!r}>"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "codeline": self.codeline,
            "comment": self.comment,
            "variables": self.variables or [],
            "purpose_key": self.purpose_key,
            "file_location": self.file_location,
            "is_opener": self.is_opener,
            "is_closer": self.is_closer,
            "language": self.language,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


# ============================================================================
# VARIABLE MODEL
# ============================================================================

class Variable(Base):
    """A variable name seen anywhere in the analyzed corpus"""
    __tablename__ = "variables"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False, unique=True, index=True)
    type = Column(String(100), default="user_added")
    transformations = Column(JSON, default=list)

    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    codelines = relationship("MasterCodeline", secondary=variable_codeline, back_populates="variable_entities")

    def __repr__(self):
        return f"<Variable {self.name}>"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "variable": self.name,
            "type": self.type,
            "transformations": self.transformations or [],
        }


# ============================================================================
# TEMP CODELINE MODEL (per-file working rows)
# ============================================================================

class TempCodeline(Base):
    """
    Processed codeline of one analyzed file, in file order.
    Rows of a file are replaced every time that file is analyzed again.
    """
    __tablename__ = "temp_codelines"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    file_path = Column(String(1000), nullable=False, index=True)
    line_number = Column(Integer, nullable=False)
    level = Column(Integer, default=0, nullable=False)

    codeline = Column(Text, nullable=False)
    comment = Column(Text)
    variables = Column(JSON, default=list)  # [{"name": ..., "type": ...}]
    purpose_key = Column(String(50))
    file_location = Column(String(100))
    is_opener = Column(Boolean, default=False, nullable=False)
    is_closer = Column(Boolean, default=False, nullable=False)
    language = Column(String(30))

    master_codeline_id = Column(String(36), ForeignKey("master_codelines.id", ondelete="SET NULL"), index=True)

    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    master_codeline = relationship("MasterCodeline", back_populates="temp_codelines")

    __table_args__ = (
        Index("ix_temp_codeline_file_line", "file_path", "line_number"),
    )

    def __repr__(self):
        return f"<TempCodeline {self.file_path}:{self.line_number}>"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "file_path": self.file_path,
            "line_number": self.line_number,
            "level": self.level,
            "codeline": self.codeline,
            "comment": self.comment,
            "variables": self.variables or [],
            "purpose_key": self.purpose_key,
            "file_location": self.file_location,
            "is_opener": self.is_opener,
            "is_closer": self.is_closer,
            "language": self.language,
            "master_codeline_id": self.master_codeline_id,
        }


# ============================================================================
# CODEBLOCK MODELS
# ============================================================================

class Codeblock(Base):
    """One nested structural unit (function body, tag body, ...)"""
    __tablename__ = "codeblocks"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    codeblock = Column(Text, nullable=False)  # constituent lines, space-joined
    opener_level = Column(Integer, default=0, nullable=False)
    file_path = Column(String(1000), index=True)

    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    lines = relationship(
        "CodelineCodeblock",
        back_populates="codeblock",
        cascade="all, delete-orphan",
        order_by="CodelineCodeblock.position",
    )

    def __repr__(self):
        return f"<Codeblock {self.codeblock[:40]!r}>"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "codeblock": self.codeblock,
            "opener_level": self.opener_level,
            "file_path": self.file_path,
            "codeline_ids": [link.codeline_id for link in self.lines],
            "parent_codeline_id": self.lines[0].parent_codeline_id if self.lines else None,
        }


class CodelineCodeblock(Base):
    """Pivot: a master codeline belongs to a codeblock, under its opener line"""
    __tablename__ = "codeline_codeblock"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    codeline_id = Column(String(36), ForeignKey("master_codelines.id", ondelete="CASCADE"), nullable=False, index=True)
    codeblock_id = Column(String(36), ForeignKey("codeblocks.id", ondelete="CASCADE"), nullable=False, index=True)
    parent_codeline_id = Column(String(36), ForeignKey("master_codelines.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    codeblock = relationship("Codeblock", back_populates="lines")

    def __repr__(self):
        return f"<CodelineCodeblock {self.codeline_id[:8]} in {self.codeblock_id[:8]}>"


# ============================================================================
# CODELINE DEPENDENCY EDGES
# ============================================================================

class CodelineConnection(Base):
    """
    Directed edge: the requires line shares ``variable_name`` with the
    provides line.
    """
    __tablename__ = "codeline_codeline"

    id = Column(Integer, primary_key=True, autoincrement=True)
    requires_codeline_id = Column(String(36), ForeignKey("master_codelines.id", ondelete="CASCADE"), nullable=False)
    provides_codeline_id = Column(String(36), ForeignKey("master_codelines.id", ondelete="CASCADE"), nullable=False)
    variable_name = Column(String(255), nullable=False)

    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    __table_args__ = (
        Index('ix_codeline_requires_variable', 'requires_codeline_id', 'variable_name'),
        Index('ix_codeline_provides_variable', 'provides_codeline_id', 'variable_name'),
        Index('ix_codeline_variable', 'variable_name'),
        UniqueConstraint('requires_codeline_id', 'provides_codeline_id', 'variable_name', name='uq_codeline_connection'),
    )

    def __repr__(self):
        return f"<CodelineConnection {self.requires_codeline_id[:8]} -> {self.provides_codeline_id[:8]} ({self.variable_name})>"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "requires_codeline_id": self.requires_codeline_id,
            "provides_codeline_id": self.provides_codeline_id,
            "variable_name": self.variable_name,
        }


# ============================================================================
# DATABASE INITIALIZATION
# ============================================================================

_db_url = get_database_url()
_is_postgres = _db_url.startswith('postgresql')

engine = create_engine(
    _db_url,
    echo=SQL_ECHO,
    pool_pre_ping=True,  # Verify connections before use
    **({
        'pool_size': 5,
        'max_overflow': 10,
        'pool_timeout': 30,
    } if _is_postgres else {})
)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Session:
    """Get database session (for dependency injection)"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_database(bind=None):
    """Initialize database (create tables)"""
    Base.metadata.create_all(bind=bind or engine)


def drop_database(bind=None):
    """Drop all tables (use with caution!)"""
    Base.metadata.drop_all(bind=bind or engine)
