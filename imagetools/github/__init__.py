"""
GitHub Integration for image-tools.

Handles:
- Git Data API transport
- Blob, tree, commit and branch creation
- Fork provisioning and upstream sync
- Pull request text
"""

from imagetools.github.client import GitHubClient, RepoInfo
from imagetools.github.commit import BaseCommit, CommitBuilder, CommitResult, make_branch_name
from imagetools.github.fork import ForkCoordinator
from imagetools.github.pr_body import PrMetadata, build_default_pr_metadata

__all__ = [
    "GitHubClient",
    "RepoInfo",
    "BaseCommit",
    "CommitBuilder",
    "CommitResult",
    "make_branch_name",
    "ForkCoordinator",
    "PrMetadata",
    "build_default_pr_metadata",
]
