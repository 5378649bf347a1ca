"""
Analysis Configuration
Settings for the codeline pipeline, block assembly and graph rebuilds
"""

import os
from dotenv import load_dotenv

load_dotenv()

# 'global' rebuilds every edge on each run, 'scoped' only the variables touched by the run
GRAPH_REBUILD_SCOPE = os.getenv("GRAPH_REBUILD_SCOPE", "global").lower()
GRAPH_REBUILD_SCOPES = ("global", "scoped")

BUILD_CODEBLOCKS = os.getenv("BUILD_CODEBLOCKS", "true").lower() in ("1", "true", "yes", "on")

SOURCE_ENCODING = os.getenv("SOURCE_ENCODING", "utf-8")

# File extension (no dot) -> base language tag
EXTENSION_TO_LANGUAGE = {
    "js": "javascript",
    "ts": "typescript",
    "php": "php",
    "css": "css",
    "md": "markdown",
    "json": "json",
    "py": "python",
    "ps1": "powershell",
    "html": "html",
    "vue": "vue",
}


def language_for_extension(extension: str):
    """Map a file extension to its language tag (None when unknown)"""
    if not extension:
        return None
    return EXTENSION_TO_LANGUAGE.get(extension.lower().lstrip("."))
