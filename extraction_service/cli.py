"""
Command line entry point for the Extraction Service.

Usage:
    extraction-service init-db
    extraction-service list-subtasks
    extraction-service stage-raw --table _raw_jira_api_issues --params '{"ConnectionId": 1, "BoardId": 8}' issues.jsonl
    extraction-service extract jira --connection-id 1 --board-id 8 [--scope-config scope.json] [--subtasks extractIssues]
    extraction-service extract zentao --connection-id 1 --execution-id 3 [--project-id 2] [--base-url URL]
"""

import argparse
import json
import signal
import sys
import threading
from typing import List, Optional

from pydantic import ValidationError

from extraction_service.core.database import Database
from extraction_service.core.exceptions import ExtractionAlreadyRunningError, ExtractionError
from extraction_service.core.logging_config import get_logger, setup_logging
from extraction_service.etl.raw_data import RawStore, scope_fingerprint
from extraction_service.etl.subtasks import get_subtask_registry, run_subtasks
from extraction_service.schemas.scope_config import JiraOptions, ScopeConfig, ZentaoOptions

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_ALREADY_RUNNING = 2
EXIT_CANCELLED = 130


def _load_scope_config(path: Optional[str]) -> Optional[ScopeConfig]:
    if not path:
        return None
    with open(path, encoding="utf-8") as f:
        return ScopeConfig.model_validate(json.load(f))


def _install_abort_handlers(abort_event: threading.Event):
    """SIGINT/SIGTERM request a stop between raw rows instead of killing the run."""
    def handle(signum, frame):
        logger.warning(f"Received signal {signum}, stopping after the current raw row")
        abort_event.set()

    signal.signal(signal.SIGINT, handle)
    signal.signal(signal.SIGTERM, handle)


def cmd_init_db(args) -> int:
    database = Database(args.database_url)
    database.create_tables()
    database.dispose()
    print("✅ Tables created")
    return EXIT_OK


def cmd_list_subtasks(args) -> int:
    for name, info in get_subtask_registry().list_subtasks().items():
        default = "default" if info["enabled_by_default"] else "optional"
        print(f"{info['tool']:<8} {name:<22} {default:<9} {info['description']}")
    return EXIT_OK


def cmd_stage_raw(args) -> int:
    params = scope_fingerprint(json.loads(args.params))
    database = Database(args.database_url)
    store = RawStore(database)

    staged = 0
    try:
        with open(args.file, "rb") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                store.store(args.table, params, line, url=args.url)
                staged += 1
    finally:
        database.dispose()

    print(f"✅ Staged {staged} raw row(s) into {args.table} for {params}")
    return EXIT_OK


def cmd_extract(args) -> int:
    scope_config = _load_scope_config(args.scope_config)
    if args.tool == "jira":
        options = JiraOptions(connection_id=args.connection_id, board_id=args.board_id,
                              scope_config=scope_config)
    else:
        options = ZentaoOptions(connection_id=args.connection_id, project_id=args.project_id,
                                execution_id=args.execution_id, base_url=args.base_url,
                                scope_config=scope_config)

    registry = get_subtask_registry()
    subtasks = registry.for_tool(args.tool, args.subtasks)
    database = Database(args.database_url)
    abort_event = threading.Event()
    _install_abort_handlers(abort_event)

    try:
        results = run_subtasks(subtasks, database, options, abort_event=abort_event)
    except ExtractionAlreadyRunningError as e:
        logger.error(str(e))
        return EXIT_ALREADY_RUNNING
    except ExtractionError as e:
        logger.error(f"Extraction failed: {e}")
        return EXIT_FAILED
    finally:
        database.dispose()

    for meta, result in zip(subtasks, results):
        print(f"📊 {meta.name}: {result.rows_processed} row(s), {result.rows_skipped} skipped, "
              f"{result.total_records} record(s) written")
    if any(result.cancelled for result in results):
        return EXIT_CANCELLED
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="extraction-service",
                                     description="Extract staged raw API data into tool tables")
    parser.add_argument("--database-url", help="SQLAlchemy URL (defaults to DATABASE_URL / POSTGRES_* settings)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_db = subparsers.add_parser("init-db", help="Create all tables")
    init_db.set_defaults(func=cmd_init_db)

    list_subtasks = subparsers.add_parser("list-subtasks", help="List registered sub-tasks")
    list_subtasks.set_defaults(func=cmd_list_subtasks)

    stage_raw = subparsers.add_parser("stage-raw", help="Store one raw row per JSON line of a file")
    stage_raw.add_argument("file", help="JSON-lines file, one API item per line")
    stage_raw.add_argument("--table", required=True, help="Raw table name (e.g. _raw_jira_api_issues)")
    stage_raw.add_argument("--params", required=True, help="Scope parameters as a JSON object")
    stage_raw.add_argument("--url", help="Source URL recorded on every row")
    stage_raw.set_defaults(func=cmd_stage_raw)

    extract = subparsers.add_parser("extract", help="Run extraction sub-tasks for one scope")
    tools = extract.add_subparsers(dest="tool", required=True)

    jira = tools.add_parser("jira", help="Extract a Jira board")
    jira.add_argument("--connection-id", type=int, required=True)
    jira.add_argument("--board-id", type=int, required=True)

    zentao = tools.add_parser("zentao", help="Extract a Zentao execution")
    zentao.add_argument("--connection-id", type=int, required=True)
    zentao.add_argument("--execution-id", type=int, required=True)
    zentao.add_argument("--project-id", type=int, default=0)
    zentao.add_argument("--base-url", help="Zentao base URL used for task links")

    for tool_parser in (jira, zentao):
        tool_parser.add_argument("--scope-config", help="Path to a scope config JSON file")
        tool_parser.add_argument("--subtasks", nargs="+", help="Sub-task names (default: all enabled by default)")
        tool_parser.set_defaults(func=cmd_extract)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()

    try:
        return args.func(args)
    except (ValueError, ValidationError, OSError) as e:
        # Invalid input: unknown sub-task, bad scope config or params, unreadable file
        logger.error(f"❌ {e}")
        return EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
