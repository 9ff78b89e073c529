"""Trace writer for archival runs."""

import json
from datetime import datetime
from pathlib import Path

from .lifecycle import SnapshotReport
from .paths import DataPaths


def write_archival_trace(
    report: SnapshotReport,
    run_id: str,
    data_paths: DataPaths,
    start_time: datetime,
    end_time: datetime,
) -> Path:
    """Write trace JSON for one archival pass.

    Follows naming convention: archival_<run_id>.json
    Written to: traces/archival/YYYY-MM-DD/

    Args:
        report: Report returned by the lifecycle manager
        run_id: Run identifier
        data_paths: DataPaths instance
        start_time: Pass start timestamp
        end_time: Pass end timestamp

    Returns:
        Path to written trace file
    """
    date_str = report.now.strftime("%Y-%m-%d")
    trace_dir = data_paths.traces_archival_date_folder(date_str)
    trace_dir.mkdir(parents=True, exist_ok=True)

    duration_ms = int((end_time - start_time).total_seconds() * 1000)

    trace_data = {
        "run_id": run_id,
        "date": date_str,
        "evaluated_at": report.now.isoformat(),
        "counts": {
            "visible": len(report.visible),
            "archived": report.count("archived"),
            "failed": report.count("failed"),
            "skipped": report.count("skipped"),
            "in_flight": report.count("in_flight"),
            "gone": report.count("gone"),
            "malformed_documents": len(report.skipped_documents),
        },
        "outcomes": [
            {
                "event_id": o.event_id,
                "event_title": o.event_title,
                "status": o.status,
                "entry_id": o.entry_id,
                "error": o.error,
            }
            for o in report.outcomes
        ],
        "skipped_documents": list(report.skipped_documents),
        "duration_ms": duration_ms,
    }

    trace_path = trace_dir / f"archival_{run_id}.json"
    trace_path.write_text(json.dumps(trace_data, indent=2), encoding="utf-8")

    return trace_path
