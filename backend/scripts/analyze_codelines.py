#!/usr/bin/env python3
"""
Analyze source files into master codelines, code blocks and dependency edges.

Usage:
    python scripts/analyze_codelines.py FILE [FILE ...] [--init-db] [--no-codeblocks]
                                        [--scope global|scoped] [--stats] [--clear-connections]

Options:
    --init-db            Create the database tables first
    --no-codeblocks      Skip code block assembly
    --scope              Graph rebuild scope (default: GRAPH_REBUILD_SCOPE or 'global')
    --stats              Print dependency graph statistics at the end
    --clear-connections  Delete every dependency edge before analyzing
"""

import os
import sys
import argparse

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from analysis_config import BUILD_CODEBLOCKS, GRAPH_REBUILD_SCOPES
from database.models import SessionLocal, init_database
from services.codeline_analysis_service import CodelineAnalysisService, SourceFileError
from services.codeline_connection_service import CodelineConnectionService
from utils.logger import setup_logger, log_error


def print_result(result):
    print(f"\n📄 {result.file_path}")
    print(f"  Lines processed:      {result.lines_processed}")
    masters = result.master_codelines
    print(f"  Master codelines:     {masters['new']} new, {masters['linked']} linked, {masters['total']} total")
    print(f"  Variable links:       {result.variable_links_created}")

    connections = result.codeline_connections
    if connections:
        print(f"  Connections created:  {connections.get('connections_created', 0)} ({connections.get('scope')})")
        for error in connections.get("errors") or []:
            print(f"  ✗ Graph error: {error}")

    print(f"  Code blocks:          {result.codeblocks_created}")

    imports = result.module_imports
    if imports.get("alert"):
        print(f"  📦 Module imports:    {', '.join(imports['modules'])}")


def print_stats(stats):
    print("\n📊 Dependency graph")
    print(f"  Total connections:          {stats['total_connections']}")
    print(f"  Codelines with connections: {stats['codelines_with_connections']}")
    for entry in stats["most_connected"]:
        print(f"  {entry['connection_count']:>5}  {(entry['codeline'] or '')[:70]}")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Analyze source files into codelines")
    parser.add_argument("files", nargs="+", metavar="FILE", help="Source files to analyze")
    parser.add_argument("--init-db", action="store_true", help="Create database tables first")
    parser.add_argument("--no-codeblocks", action="store_true", help="Skip code block assembly")
    parser.add_argument("--scope", choices=GRAPH_REBUILD_SCOPES, default=None, help="Graph rebuild scope")
    parser.add_argument("--stats", action="store_true", help="Print graph statistics")
    parser.add_argument("--clear-connections", action="store_true", help="Delete all edges before analyzing")
    args = parser.parse_args(argv)

    setup_logger("services")

    if args.init_db:
        init_database()
        print("✓ Database tables created")

    service = CodelineAnalysisService(
        graph_scope=args.scope,
        build_codeblocks=BUILD_CODEBLOCKS and not args.no_codeblocks,
    )
    connection_service = CodelineConnectionService()

    exit_code = 0
    db = SessionLocal()
    try:
        if args.clear_connections:
            deleted = connection_service.clear_all_connections(db)
            print(f"✓ Cleared {deleted} connections")

        for file_path in args.files:
            try:
                result = service.analyze_file(file_path, db)
            except SourceFileError as e:
                print(f"✗ {e}", file=sys.stderr)
                exit_code = 1
                continue
            except Exception as e:
                db.rollback()
                log_error("AnalyzeCodelines", "Analysis failed", error=e, file=file_path)
                exit_code = 1
                continue
            print_result(result)

        if args.stats:
            print_stats(connection_service.get_connection_stats(db))
    finally:
        db.close()

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
