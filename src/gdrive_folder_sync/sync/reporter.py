"""Sync report formatting functions.

Provides human-readable and machine-readable output for sync passes:

- ``summary_line`` -- one-line count summary for the log.
- ``format_sync_report`` -- full post-pass summary (used by ``--once``).
- ``report_to_json`` -- structured dict for JSON output.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import SyncReport


def _counts(report: SyncReport) -> dict[str, int]:
    return {
        "total": len(report.results),
        "created_remote": len(report.created_remote),
        "updated_remote": len(report.updated_remote),
        "deleted_remote": len(report.deleted_remote),
        "downloaded": len(report.downloaded),
        "conflicts": len(report.conflicts),
        "untracked": len(report.untracked),
        "forgotten": len(report.forgotten),
        "errors": len(report.errors),
        "skipped": len(report.skipped),
    }


def summary_line(report: SyncReport) -> str:
    """One-line summary such as ``[push] 3 files: 2 created, 1 updated``.

    Zero counts are left out.
    """
    counts = _counts(report)
    labels = [
        ("created_remote", "created"),
        ("updated_remote", "updated"),
        ("deleted_remote", "deleted"),
        ("downloaded", "downloaded"),
        ("conflicts", "local wins"),
        ("untracked", "re-upload"),
        ("forgotten", "forgotten"),
        ("skipped", "unchanged"),
        ("errors", "errors"),
    ]
    parts = [f"{counts[key]} {label}" for key, label in labels if counts[key]]
    detail = ", ".join(parts) if parts else "nothing to do"
    return f"[{report.pass_name}] {counts['total']} files: {detail}"


# ------------------------------------------------------------------
# Human-readable report
# ------------------------------------------------------------------


def format_sync_report(report: SyncReport) -> str:
    """Format a complete pass report as human-readable text.

    Sections are only included when they contain at least one result.
    Skipped paths are summarised by count only to avoid excessive output.

    Args:
        report: The completed report.

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []

    lines.append(f"Sync report ({report.pass_name})")
    lines.append(f"Started: {report.started_at}")
    if report.completed_at:
        lines.append(f"Completed: {report.completed_at}")
    lines.append("")

    lines.append(summary_line(report))
    lines.append("")

    sections = [
        ("Created on Drive:", report.created_remote),
        ("Updated on Drive:", report.updated_remote),
        ("Deleted from Drive:", report.deleted_remote),
        ("Downloaded:", report.downloaded),
        ("Conflicts (local wins):", report.conflicts),
        ("Missing remotely (re-upload):", report.untracked),
        ("Forgotten:", report.forgotten),
    ]
    for title, results in sections:
        if not results:
            continue
        lines.append(title)
        for r in results:
            lines.append(f"  {r.relative_path}")
        lines.append("")

    if report.errors:
        lines.append("Errors:")
        for r in report.errors:
            lines.append(f"  {r.relative_path}: {r.error}")
        lines.append("")

    if report.skipped:
        lines.append(f"Skipped: {len(report.skipped)} files")
        lines.append("")

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# JSON output
# ------------------------------------------------------------------


def report_to_json(report: SyncReport) -> dict:
    """Convert a report to a structured dict for JSON serialisation.

    Args:
        report: The sync report.

    Returns:
        Dict with pass info, counts, and per-result details.
    """
    results_list = []
    for r in report.results:
        entry: dict = {
            "relative_path": r.relative_path,
            "action": r.action.value,
            "success": r.success,
        }
        if r.error:
            entry["error"] = r.error
        results_list.append(entry)

    return {
        "pass": report.pass_name,
        "started_at": report.started_at,
        "completed_at": report.completed_at,
        "counts": _counts(report),
        "needs_push": list(report.needs_push),
        "results": results_list,
    }
