"""
Submission metrics for image-tools.

Tracks outcomes per submission:
- Success rate
- Direct vs fork path
- Failure statuses
"""

from imagetools.metrics.logger import MetricsLogger, SubmissionMetrics, log_submission

__all__ = ["MetricsLogger", "SubmissionMetrics", "log_submission"]
