"""
Workflow state for the PR orchestration graph.
"""

from dataclasses import dataclass
from typing import Optional

from imagetools.models import PrJob


@dataclass
class PrState:
    """State carried between orchestration nodes for one submission."""

    job: PrJob

    # "direct" until a permission failure moves the run to the fork path
    path: str = "direct"
    denied_step: Optional[str] = None

    # Upstream base, resolved once and reused by the fork path
    base_branch: Optional[str] = None
    base_commit_sha: Optional[str] = None
    base_tree_sha: Optional[str] = None

    login: Optional[str] = None
    fork_owner: Optional[str] = None
    fork_repo: Optional[str] = None
    fork_branch: Optional[str] = None

    commit_sha: Optional[str] = None
    pr_url: Optional[str] = None
