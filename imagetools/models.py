"""
Data model for the commit/PR workflow.

Every object here lives for a single PR-creation request; the only state
that outlives a request is what GitHub stores.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class RepoRef:
    """A GitHub repository."""

    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    def __str__(self) -> str:
        return self.full_name


@dataclass(frozen=True)
class FileEntry:
    """One file to commit: repo-relative POSIX path plus base64 content."""

    path: str
    content_base64: str


@dataclass(frozen=True)
class TreeEntry:
    """A tree element pointing at a blob created in the same repository."""

    path: str
    sha: str
    mode: str = "100644"
    type: str = "blob"

    def to_payload(self) -> dict:
        return {"path": self.path, "mode": self.mode, "type": self.type, "sha": self.sha}


@dataclass(frozen=True)
class CommitRef:
    sha: str
    tree_sha: str


@dataclass(frozen=True)
class BranchTarget:
    """Where a new ref is created and which branch it starts from."""

    owner: str
    repo: str
    branch_name: str
    base_branch: Optional[str] = None

    @property
    def repo_ref(self) -> RepoRef:
        return RepoRef(self.owner, self.repo)


@dataclass(frozen=True)
class PrRequest:
    """Pull request payload. ``head`` is ``branch`` or ``owner:branch``."""

    title: str
    body: str
    head: str
    base_owner: str
    base_repo: str
    base_branch: str


@dataclass(frozen=True)
class PrJob:
    """Input for one run of the orchestrator."""

    base_owner: str
    base_repo: str
    branch_name: str
    files: tuple[FileEntry, ...]
    title: str
    body: str
    commit_message: Optional[str] = None
    base_branch: Optional[str] = None

    @property
    def message(self) -> str:
        return self.commit_message or self.title


@dataclass(frozen=True)
class PrResult:
    """Outcome of a successful run."""

    pr_url: str
    head_owner: str
    head_repo: str
    branch_name: str
    path: str = "direct"

    def to_dict(self) -> dict:
        return {"prUrl": self.pr_url}
