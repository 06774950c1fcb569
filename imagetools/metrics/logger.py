"""
Metrics Logger for image-tools.

Stores one structured record per submission for later analysis.
"""

import json
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


@dataclass
class SubmissionMetrics:
    """Metrics for a single PR submission."""

    timestamp: str
    repository: str
    target: str
    file_count: int

    # Outcome
    success: bool
    path: Optional[str]
    pr_url: Optional[str]

    # Failure
    error: Optional[str] = None
    error_status: Optional[int] = None

    duration_seconds: Optional[float] = None


class MetricsLogger:
    """
    Persistent metrics logger.

    Writes JSON lines to a file for later analysis.
    """

    def __init__(self, path: str = "imagetools_metrics.jsonl"):
        self.path = Path(path)

    def log(self, metrics: SubmissionMetrics) -> None:
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(json.dumps(asdict(metrics)) + "\n")

    def read_all(self) -> list[SubmissionMetrics]:
        if not self.path.exists():
            return []

        metrics = []
        with open(self.path, "r", encoding="utf-8") as f:
            for line in f:
                if line.strip():
                    metrics.append(SubmissionMetrics(**json.loads(line)))

        return metrics

    def summary(self) -> dict:
        """
        Generate summary statistics.

        Returns:
            Dictionary of summary stats
        """
        all_metrics = self.read_all()

        if not all_metrics:
            return {"total_submissions": 0}

        total = len(all_metrics)
        successful = sum(1 for m in all_metrics if m.success)
        via_fork = sum(1 for m in all_metrics if m.success and m.path == "fork")

        return {
            "total_submissions": total,
            "successful": successful,
            "success_rate": successful / total,
            "via_fork": via_fork,
            "fork_share": via_fork / successful if successful else 0,
            "files_committed": sum(m.file_count for m in all_metrics if m.success),
        }


def log_submission(
    logger: Optional[MetricsLogger],
    repository: str,
    target: str,
    file_count: int,
    path: Optional[str] = None,
    pr_url: Optional[str] = None,
    error: Optional[BaseException] = None,
    duration_seconds: Optional[float] = None,
) -> Optional[SubmissionMetrics]:
    """
    Record the outcome of one submission.

    Does nothing when no logger is configured.
    """
    if logger is None:
        return None

    metrics = SubmissionMetrics(
        timestamp=datetime.now(timezone.utc).isoformat(),
        repository=repository,
        target=target,
        file_count=file_count,
        success=error is None,
        path=path,
        pr_url=pr_url,
        error=str(error) if error is not None else None,
        error_status=getattr(error, "http_status_hint", None) if error is not None else None,
        duration_seconds=duration_seconds,
    )
    logger.log(metrics)
    return metrics
