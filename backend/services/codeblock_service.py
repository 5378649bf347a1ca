"""
Codeblock Service

Groups the codelines of one file into nested structural blocks: a block starts
on an opener line and ends on the first later line whose level drops back to
the opener's level.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from database.models import Codeblock, CodelineCodeblock, TempCodeline
from services.codeline_types import ProcessedLine, PurposeKey

logger = logging.getLogger(__name__)


@dataclass
class BlockLine:
    """The fields of a codeline the assembler looks at"""
    text: str
    level: int = 0
    is_opener: bool = False
    purpose_key: Optional[str] = None
    codeline_id: Optional[str] = None

    @classmethod
    def from_processed(cls, line: ProcessedLine, codeline_id: Optional[str] = None) -> "BlockLine":
        return cls(
            text=line.text,
            level=line.level,
            is_opener=line.is_opener,
            purpose_key=line.purpose.value if line.purpose else None,
            codeline_id=codeline_id,
        )

    @classmethod
    def from_temp(cls, row: TempCodeline) -> "BlockLine":
        return cls(
            text=row.codeline,
            level=row.level or 0,
            is_opener=bool(row.is_opener),
            purpose_key=row.purpose_key,
            codeline_id=row.master_codeline_id,
        )


@dataclass
class BlockDraft:
    opener_level: int
    lines: List[BlockLine] = field(default_factory=list)

    @property
    def summary(self) -> str:
        return " ".join(line.text for line in self.lines).strip()

    @property
    def parent(self) -> BlockLine:
        return self.lines[0]


def assemble_blocks(lines: Sequence[BlockLine]) -> List[BlockDraft]:
    """
    Split ordered codelines into blocks.

    ``page_setup`` lines are skipped. A closing line that is itself an opener
    immediately starts the next block.
    """
    blocks: List[BlockDraft] = []
    current: Optional[BlockDraft] = None

    for line in lines:
        if line.purpose_key == PurposeKey.PAGE_SETUP.value:
            continue

        if current is None:
            if line.is_opener:
                current = BlockDraft(opener_level=line.level, lines=[line])
            continue

        current.lines.append(line)

        if line.level <= current.opener_level and line is not current.lines[0]:
            blocks.append(current)
            current = None

            if line.is_opener:
                current = BlockDraft(opener_level=line.level, lines=[line])

    if current is not None:
        blocks.append(current)

    return blocks


class CodeblockService:
    """Persist the blocks of an analyzed file."""

    def create_codeblocks(self, db, file_path: str) -> Dict[str, Any]:
        """
        Rebuild the codeblocks of ``file_path`` from its temp codelines.

        Returns: {"codeblocks_created": int, "total_lines_processed": int}
        """
        rows = (
            db.query(TempCodeline)
            .filter(TempCodeline.file_path == file_path)
            .order_by(TempCodeline.line_number)
            .all()
        )

        for old in db.query(Codeblock).filter(Codeblock.file_path == file_path).all():
            db.delete(old)
        db.flush()

        drafts = assemble_blocks([BlockLine.from_temp(row) for row in rows])

        for draft in drafts:
            block = Codeblock(
                codeblock=draft.summary,
                opener_level=draft.opener_level,
                file_path=file_path,
            )
            for position, line in enumerate(draft.lines):
                block.lines.append(CodelineCodeblock(
                    codeline_id=line.codeline_id,
                    parent_codeline_id=draft.parent.codeline_id,
                    position=position,
                ))
            db.add(block)

        db.commit()

        logger.info(f"[Codeblock] {file_path}: {len(drafts)} blocks from {len(rows)} lines")
        return {
            "codeblocks_created": len(drafts),
            "total_lines_processed": len(rows),
        }
