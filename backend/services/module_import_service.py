"""
Module Import Service
Reports the external modules a file imports.
"""

import logging
import os
from typing import Any, Dict, List

from services.codeline_types import ProcessedLine, PurposeKey
from services.rules import import_source

logger = logging.getLogger(__name__)


def collect_module_imports(lines: List[ProcessedLine]) -> List[Dict[str, Any]]:
    """External (non-local, non-Vue) imports as {module, line_number, codeline}"""
    imports = []
    for line in lines:
        if line.purpose != PurposeKey.IMPORT_EXTERNAL:
            continue
        module = import_source(line.text)
        if module:
            imports.append({
                "module": module,
                "line_number": line.line_number,
                "codeline": line.text,
            })
    return imports


class ModuleImportService:

    def alert_module_imports(self, file_path: str, module_imports: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Log a summary of the unique modules imported by ``file_path``.

        Returns: {"alert": bool, "total": int, "modules": [names], "details": [...]}
        """
        if not module_imports:
            return {"alert": False, "total": 0, "modules": [], "details": []}

        unique: Dict[str, Dict[str, Any]] = {}
        for entry in sorted(module_imports, key=lambda e: e.get("line_number") or 0):
            unique.setdefault(entry["module"], entry)

        details = [
            {
                "module": entry["module"],
                "line": entry.get("line_number"),
                "context": (entry.get("codeline") or "")[:100],
            }
            for entry in unique.values()
        ]
        modules = sorted(unique)

        logger.warning(
            f"[ModuleImport] {len(modules)} module imports in {os.path.basename(file_path)}: "
            f"{', '.join(modules)}"
        )
        for detail in details:
            logger.info(f"[ModuleImport]   line {str(detail['line']):>4}: {detail['module']}")

        return {
            "alert": True,
            "total": len(modules),
            "modules": modules,
            "details": details,
        }
