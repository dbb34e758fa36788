"""
Result reporting for Service Changes.

Results leave the process three ways: as GitHub Actions step outputs, as a
JSON change record on disk for downstream steps, and as console output.
"""

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from rich.console import Console
from rich.table import Table

from ..core.models import ClassificationResult, ServiceStatus

logger = logging.getLogger(__name__)

OUTPUT_NAMES = {
    ServiceStatus.ADDED: "services_added",
    ServiceStatus.MODIFIED: "services_modified",
    ServiceStatus.REMOVED: "services_removed",
}


class OutputFormat(str, Enum):
    """Console output formats."""
    TEXT = "text"
    LINES = "lines"
    JSON = "json"


def action_outputs(result: ClassificationResult) -> Dict[str, str]:
    """Step outputs: each bucket space-joined."""
    return {name: result.joined(status) for status, name in OUTPUT_NAMES.items()}


def write_action_outputs(result: ClassificationResult, output_path: Optional[Path]) -> Dict[str, str]:
    """Append the step outputs to the GitHub Actions output file.

    Args:
        result: Classification result
        output_path: Path from GITHUB_OUTPUT; nothing is written when None

    Returns:
        The outputs that were (or would have been) written
    """
    outputs = action_outputs(result)
    if output_path is None:
        logger.debug("No GitHub output file configured, skipping step outputs")
        return outputs

    with open(output_path, "a", encoding="utf-8") as f:
        for name, value in outputs.items():
            f.write(f"{name}={value}\n")

    logger.info(f"Wrote step outputs to {output_path}")
    return outputs


def build_changes_record(
    result: ClassificationResult,
    commit_ids: Sequence[str],
    payload: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Build the JSON change record read by downstream steps."""
    record: Dict[str, Any] = {
        "services": result.to_dict(),
        "commit_ids": list(commit_ids),
    }
    if payload is not None:
        record["payload"] = payload
    return record


def write_changes_record(
    result: ClassificationResult,
    commit_ids: Sequence[str],
    output_file: Path,
    payload: Optional[Dict[str, Any]] = None
) -> Path:
    """Write the JSON change record to ``output_file``."""
    record = build_changes_record(result, commit_ids, payload)
    output_file = Path(output_file).expanduser()
    output_file.parent.mkdir(parents=True, exist_ok=True)
    output_file.write_text(json.dumps(record), encoding="utf-8")
    logger.info(f"Wrote change record to {output_file}")
    return output_file


def format_result(result: ClassificationResult, output_format: OutputFormat = OutputFormat.TEXT) -> str:
    """Render a result as plain text for stdout."""
    if output_format == OutputFormat.JSON:
        return json.dumps(result.to_dict(), indent=2)

    if output_format == OutputFormat.LINES:
        sections: List[str] = []
        for status in ServiceStatus:
            sections.append(f"{status.value}:")
            sections.extend(result.services[status])
        return "\n".join(sections)

    return "\n".join(f"{status.value}: {result.joined(status)}".rstrip() for status in ServiceStatus)


def render_result(console: Console, result: ClassificationResult) -> None:
    """Show a result as a rich table."""
    if result.is_empty:
        console.print("[dim]No services affected[/dim]")
        return

    styles = {
        ServiceStatus.ADDED: "green",
        ServiceStatus.MODIFIED: "yellow",
        ServiceStatus.REMOVED: "red",
    }

    table = Table(title="Affected Services", show_header=True, header_style="bold magenta")
    table.add_column("Service", style="cyan", no_wrap=True)
    table.add_column("Status")
    table.add_column("Changed Files", justify="right", style="dim")

    for status in ServiceStatus:
        for directory in result.services[status]:
            file_count = len(result.files_by_service.get(directory, []))
            table.add_row(directory or ".", f"[{styles[status]}]{status.value}[/{styles[status]}]", str(file_count))

    console.print(table)
