"""
Codeline Analysis Service

End-to-end analysis of one source file:
read -> classify -> usage scan -> canonicalize -> dependency graph -> blocks -> import report
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from analysis_config import BUILD_CODEBLOCKS, SOURCE_ENCODING, language_for_extension
from services.codeblock_service import CodeblockService
from services.codeline_connection_service import CodelineConnectionService
from services.codeline_processing_service import CodelineProcessingService
from services.codeline_types import AnalysisContext, ProcessedLine
from services.master_codeline_service import MasterCodelineService
from services.module_import_service import ModuleImportService, collect_module_imports

logger = logging.getLogger(__name__)


class SourceFileError(Exception):
    """Raised when a source file is missing or cannot be read."""


def split_source_lines(content: str) -> List[str]:
    """Split on newlines only; other Unicode line breaks stay inside the line."""
    lines = [line.rstrip("\r") for line in content.split("\n")]
    if lines and lines[-1] == "":
        lines.pop()
    return lines


@dataclass
class AnalysisResult:
    file_path: str
    lines_processed: int = 0
    master_codelines: Dict[str, int] = field(
        default_factory=lambda: {"new": 0, "linked": 0, "total": 0}
    )
    variable_links_created: int = 0
    codeline_connections: Dict[str, Any] = field(default_factory=dict)
    codeblocks_created: int = 0
    module_imports: Dict[str, Any] = field(default_factory=dict)
    codelines: List[ProcessedLine] = field(default_factory=list, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "file_path": self.file_path,
            "lines_processed": self.lines_processed,
            "master_codelines": dict(self.master_codelines),
            "variable_links_created": self.variable_links_created,
            "codeline_connections": self.codeline_connections,
            "codeblocks_created": self.codeblocks_created,
            "module_imports": self.module_imports,
        }


class CodelineAnalysisService:

    def __init__(
        self,
        processor: Optional[CodelineProcessingService] = None,
        graph_scope: Optional[str] = None,
        build_codeblocks: bool = BUILD_CODEBLOCKS,
    ):
        self.processor = processor or CodelineProcessingService()
        self.graph_scope = graph_scope
        self.build_codeblocks = build_codeblocks
        self.master_service = MasterCodelineService()
        self.connection_service = CodelineConnectionService()
        self.codeblock_service = CodeblockService()
        self.module_import_service = ModuleImportService()

    def analyze_file(self, file_path: str, db) -> AnalysisResult:
        """Read ``file_path`` and analyze it. Raises SourceFileError before any work if unreadable."""
        path = Path(file_path)
        if not path.is_file():
            raise SourceFileError(f"Source file not found: {file_path}")

        try:
            content = path.read_text(encoding=SOURCE_ENCODING)
        except (OSError, UnicodeDecodeError) as e:
            raise SourceFileError(f"Cannot read source file {file_path}: {e}") from e

        return self.analyze_lines(split_source_lines(content), str(path), db)

    def analyze_lines(self, lines: Sequence[str], file_path: str, db) -> AnalysisResult:
        """Analyze in-memory lines as if they were the content of ``file_path``."""
        result = AnalysisResult(file_path=file_path)

        if not any(line.strip() for line in lines):
            logger.info(f"[CodelineAnalysis] {file_path}: empty input, clearing previous rows")
            self.master_service.canonicalize_lines(db, [], file_path)
            if self.build_codeblocks:
                self.codeblock_service.create_codeblocks(db, file_path)
            return result

        extension = Path(file_path).suffix.lstrip(".")
        context = AnalysisContext(
            file_path=file_path,
            file_extension=extension,
            language_id=language_for_extension(extension),
        )

        codelines = self.processor.process(lines, context=context)
        codelines = self.processor.scan_variable_usage(codelines, context)
        result.codelines = codelines
        result.lines_processed = len(codelines)

        master_stats = self.master_service.canonicalize_lines(db, codelines, file_path)
        result.master_codelines = {
            "new": master_stats["new_master_codelines"],
            "linked": master_stats["linked_to_existing"],
            "total": master_stats["total_processed"],
        }
        result.variable_links_created = master_stats["variable_links_created"]

        variable_names = sorted({name for line in codelines for name in line.variable_names})
        result.codeline_connections = self.connection_service.rebuild_graph(
            db, variable_names=variable_names, scope=self.graph_scope
        )

        if self.build_codeblocks:
            blocks = self.codeblock_service.create_codeblocks(db, file_path)
            result.codeblocks_created = blocks["codeblocks_created"]

        result.module_imports = self.module_import_service.alert_module_imports(
            file_path, collect_module_imports(codelines)
        )

        logger.info(
            f"[CodelineAnalysis] {file_path}: {result.lines_processed} lines, "
            f"{result.master_codelines['new']} new masters, "
            f"{result.codeline_connections.get('connections_created', 0)} connections"
        )
        return result
