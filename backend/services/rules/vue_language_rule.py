"""
Language context tracker for Vue single-file components.

Follows which region of the file (template / script setup) the current line
belongs to and tags the line with the matching language variant.
"""

import re
from typing import Optional

from services.codeline_types import (
    AnalysisContext, Keep, LanguageTag, ProcessedLine, RegionMarker, RuleResult,
)
from services.rules.base import CodelineRule

SCRIPT_OPEN = re.compile(r'<script\s+setup(?:\s+lang="(\w+)")?\s*>', re.IGNORECASE)
TEMPLATE_OPEN = re.compile(r'<template\s*>', re.IGNORECASE)
DIV_OPEN = re.compile(r'<div(?:\s+[^>]*)?\s*>', re.IGNORECASE)
STYLE_OPEN = re.compile(r'<style(?:\s+[^>]*)?\s*>', re.IGNORECASE)
ANY_TAG = re.compile(r'<[^>]+>')

TYPESCRIPT_LANGS = ("ts", "typescript")

# Files that are one script region from top to bottom
WHOLE_FILE_SCRIPTS = {LanguageTag.JAVASCRIPT.value, LanguageTag.TYPESCRIPT.value}


class VueLanguageRule(CodelineRule):
    """Tags lines with vue / vue-js / vue-ts / tailwind and their region marker."""

    def __init__(self):
        self.current_file: Optional[str] = None
        self.in_script = False
        self.script_lang: Optional[str] = None
        self.in_template = False

    def _reset(self, file_path: Optional[str]) -> None:
        self.current_file = file_path
        self.in_script = False
        self.script_lang = None
        self.in_template = False

    def _tag_script(self, line: ProcessedLine) -> None:
        if self.script_lang in TYPESCRIPT_LANGS:
            line.language_tag = LanguageTag.VUE_TS.value
            line.region_marker = RegionMarker.SCRIPT_SETUP_TS
        else:
            line.language_tag = LanguageTag.VUE_JS.value
            line.region_marker = RegionMarker.SCRIPT_SETUP

    def apply(self, line: ProcessedLine, context: AnalysisContext) -> RuleResult:
        if self.current_file != context.file_path:
            self._reset(context.file_path)

        if context.language_id in WHOLE_FILE_SCRIPTS:
            line.region_marker = RegionMarker.SCRIPT
            return Keep(line)

        text = line.text
        trimmed = text.strip()

        match = SCRIPT_OPEN.search(trimmed)
        if match:
            self.in_script = True
            self.script_lang = match.group(1).lower() if match.group(1) else "js"
            self._tag_script(line)
            return Keep(line)

        if "</script>" in trimmed:
            # The closing tag still belongs to the script region
            if self.in_script:
                self._tag_script(line)
            self.in_script = False
            self.script_lang = None
            return Keep(line)

        if self.in_script:
            self._tag_script(line)
            return Keep(line)

        if TEMPLATE_OPEN.search(trimmed):
            self.in_template = True
            line.language_tag = LanguageTag.VUE.value
            line.region_marker = RegionMarker.TEMPLATE
            return Keep(line)

        if "</template>" in trimmed:
            self.in_template = False
            line.language_tag = LanguageTag.VUE.value
            line.region_marker = RegionMarker.TEMPLATE
            return Keep(line)

        if self.in_template:
            if DIV_OPEN.search(text) or "</div>" in text:
                line.language_tag = LanguageTag.TAILWIND.value
            else:
                line.language_tag = LanguageTag.VUE.value
            line.region_marker = RegionMarker.TEMPLATE
            return Keep(line)

        if STYLE_OPEN.search(trimmed):
            return Keep(line)

        if ANY_TAG.search(trimmed):
            line.language_tag = LanguageTag.TAILWIND.value

        return Keep(line)
