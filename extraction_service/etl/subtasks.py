"""
Extraction sub-tasks.

Each sub-task binds one raw table to its extract function and runs it through
ApiExtractor for a single scope. Sub-tasks are looked up by name from the
global registry, in registration order (issue types before issues, so issue
extraction sees the freshest type catalog).
"""

import threading
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Tuple

from extraction_service.core.config import get_settings
from extraction_service.core.database import Database
from extraction_service.core.logging_config import get_logger
from extraction_service.etl.jira.jira_issue_extractor import extract_issues, load_jira_type_mappings
from extraction_service.etl.jira.jira_issue_type_extractor import extract_issue_types
from extraction_service.etl.raw_data import (
    RAW_JIRA_ISSUE_TABLE,
    RAW_JIRA_ISSUE_TYPE_TABLE,
    RAW_ZENTAO_TASK_TABLE,
)
from extraction_service.etl.workers.api_extractor import ApiExtractor, ExtractionResult
from extraction_service.etl.zentao.zentao_task_extractor import (
    build_zentao_type_mappings,
    extract_zentao_tasks,
)
from extraction_service.schemas.scope_config import JiraOptions, ZentaoOptions

logger = get_logger(__name__)

EntryPoint = Callable[..., ExtractionResult]


@dataclass(frozen=True)
class SubTaskMeta:
    """Metadata describing one extraction sub-task."""
    name: str
    tool: str
    entry_point: EntryPoint
    enabled_by_default: bool = True
    description: str = ""
    domain_types: Tuple[str, ...] = field(default_factory=tuple)


class SubTaskRegistry:
    """Registry of extraction sub-tasks"""

    def __init__(self):
        self._subtasks: Dict[str, SubTaskMeta] = {}

    def register(self, meta: SubTaskMeta):
        """Register a sub-task"""
        if meta.name in self._subtasks:
            raise ValueError(f"Sub-task '{meta.name}' is already registered")
        self._subtasks[meta.name] = meta

    def get(self, name: str) -> Optional[SubTaskMeta]:
        """Get sub-task by name"""
        return self._subtasks.get(name)

    def for_tool(self, tool: str, names: Optional[List[str]] = None) -> List[SubTaskMeta]:
        """
        Sub-tasks of a tool in registration order.

        Args:
            tool: Tool name ('jira', 'zentao')
            names: Explicit selection; None selects the ones enabled by default

        Raises:
            ValueError: a selected name is unknown or belongs to another tool
        """
        if names is None:
            return [meta for meta in self._subtasks.values()
                    if meta.tool == tool and meta.enabled_by_default]

        unknown = [name for name in names
                   if name not in self._subtasks or self._subtasks[name].tool != tool]
        if unknown:
            raise ValueError(f"Unknown {tool} sub-task(s): {', '.join(unknown)}")
        return [meta for meta in self._subtasks.values() if meta.name in names]

    def list_subtasks(self) -> Dict[str, Dict[str, Any]]:
        """List all sub-tasks with their info"""
        return {
            name: {
                "tool": meta.tool,
                "enabled_by_default": meta.enabled_by_default,
                "description": meta.description,
                "domain_types": list(meta.domain_types),
            }
            for name, meta in self._subtasks.items()
        }


def run_extract_issue_types(database: Database, options: JiraOptions,
                            abort_event: Optional[threading.Event] = None,
                            locks_dir: Optional[str] = None) -> ExtractionResult:
    """Extract the Jira issue type catalog of one scope."""
    extractor = ApiExtractor(
        database,
        params=options.api_params(),
        table=RAW_JIRA_ISSUE_TYPE_TABLE,
        extract=partial(extract_issue_types, options=options),
        locks_dir=locks_dir,
    )
    return extractor.execute(abort_event)


def run_extract_issues(database: Database, options: JiraOptions,
                       abort_event: Optional[threading.Event] = None,
                       locks_dir: Optional[str] = None) -> ExtractionResult:
    """Extract Jira issues and everything derived from them for one scope."""
    scope_config = options.scope_config
    page_size = get_settings().CHANGELOG_PAGE_SIZE
    if scope_config is not None and scope_config.changelog_page_size:
        page_size = scope_config.changelog_page_size

    mappings = load_jira_type_mappings(database, options.connection_id, scope_config)
    logger.info(f"Issue extraction using changelog page size {page_size}, "
                f"{len(mappings.type_id_mappings)} known issue types")

    extractor = ApiExtractor(
        database,
        params=options.api_params(),
        table=RAW_JIRA_ISSUE_TABLE,
        extract=partial(extract_issues, options=options, mappings=mappings, page_size=page_size),
        locks_dir=locks_dir,
    )
    return extractor.execute(abort_event)


def run_extract_zentao_tasks(database: Database, options: ZentaoOptions,
                             abort_event: Optional[threading.Event] = None,
                             locks_dir: Optional[str] = None) -> ExtractionResult:
    """Extract Zentao tasks of one execution."""
    mappings = build_zentao_type_mappings(options.scope_config)
    extractor = ApiExtractor(
        database,
        params=options.api_params(),
        table=RAW_ZENTAO_TASK_TABLE,
        extract=partial(extract_zentao_tasks, options=options, mappings=mappings),
        locks_dir=locks_dir,
    )
    return extractor.execute(abort_event)


def run_subtasks(subtasks: List[SubTaskMeta], database: Database, options,
                 abort_event: Optional[threading.Event] = None,
                 locks_dir: Optional[str] = None) -> List[ExtractionResult]:
    """Run sub-tasks in order, stopping after the first cancelled one."""
    results = []
    for meta in subtasks:
        logger.info(f"Running sub-task {meta.name}")
        result = meta.entry_point(database, options, abort_event=abort_event, locks_dir=locks_dir)
        results.append(result)
        if result.cancelled:
            logger.warning(f"Sub-task {meta.name} cancelled; remaining sub-tasks skipped")
            break
    return results


# Global sub-task registry
subtask_registry = SubTaskRegistry()
subtask_registry.register(SubTaskMeta(
    name="extractIssueTypes",
    tool="jira",
    entry_point=run_extract_issue_types,
    description="Extract raw issue type data into the tool layer table",
    domain_types=("TICKET",),
))
subtask_registry.register(SubTaskMeta(
    name="extractIssues",
    tool="jira",
    entry_point=run_extract_issues,
    description="Extract raw issues data into the tool layer tables",
    domain_types=("TICKET", "CROSS"),
))
subtask_registry.register(SubTaskMeta(
    name="extractZentaoTasks",
    tool="zentao",
    entry_point=run_extract_zentao_tasks,
    description="Extract raw execution tasks into the tool layer tables",
    domain_types=("TICKET",),
))


def get_subtask_registry() -> SubTaskRegistry:
    """Get the global sub-task registry"""
    return subtask_registry
