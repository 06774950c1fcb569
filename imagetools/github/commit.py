"""
Branch and Commit Creation for image-tools.

Turns in-memory files into a new branch through the Git Data API:
blobs, then a tree layered on the base commit's tree, then a commit,
then the ref. Objects are created leaves-first; the ref is always last.
"""

import itertools
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional, Sequence

from rich.console import Console

from imagetools.errors import BranchConflictError, GitHubApiError
from imagetools.github.client import GitHubClient
from imagetools.models import BranchTarget, CommitRef, FileEntry, RepoRef, TreeEntry

console = Console()

MAX_BLOB_WORKERS = 8

_branch_sequence = itertools.count(1)


def make_branch_name(login: str, target: str, now: Optional[float] = None) -> str:
    """
    Build a branch name unique per submission.

    Format: ``{login}-image-tools-{target}-{epoch_ms}-{seq}``. The sequence
    number keeps two calls inside the same millisecond apart.
    """
    stamp = int((time.time() if now is None else now) * 1000)
    return f"{login}-image-tools-{target}-{stamp}-{next(_branch_sequence)}"


@dataclass(frozen=True)
class BaseCommit:
    """The branch a new commit starts from and that branch's head commit."""

    branch: str
    commit: CommitRef


@dataclass(frozen=True)
class CommitResult:
    repo: RepoRef
    branch_name: str
    base_branch: str
    base_commit_sha: str
    tree_sha: str
    commit_sha: str


class CommitBuilder:
    """
    Create one commit on a new branch in one repository.

    Any failing step aborts the build. Nothing is rolled back: blobs, trees
    and commits that no ref points at are unreferenced Git objects.
    """

    def __init__(self, client: GitHubClient, max_workers: int = 1, verbose: bool = False):
        self.client = client
        self.max_workers = max(1, min(max_workers, MAX_BLOB_WORKERS))
        self.verbose = verbose

    def resolve_base(self, owner: str, repo: str, base_branch: Optional[str] = None) -> BaseCommit:
        """
        Resolve the base branch (explicit or default) and its head commit.

        Returns:
            BaseCommit with the head commit's sha and tree sha
        """
        branch = base_branch or self.client.get_repo_info(owner, repo).default_branch
        head_sha = self.client.get_head_ref(owner, repo, branch)
        commit = self.client.get_commit(owner, repo, head_sha)
        return BaseCommit(branch=branch, commit=commit)

    def create_blobs(self, owner: str, repo: str, files: Sequence[FileEntry]) -> list[TreeEntry]:
        """
        Create one blob per file in ``owner/repo``.

        Sequential by default. With ``max_workers > 1`` a bounded pool is
        used; the returned entries keep the order of ``files`` either way.
        """
        def create(entry: FileEntry) -> TreeEntry:
            sha = self.client.create_blob(owner, repo, entry.content_base64)
            return TreeEntry(path=entry.path, sha=sha)

        if self.max_workers == 1 or len(files) < 2:
            return [create(entry) for entry in files]

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(files))) as pool:
            return list(pool.map(create, files))

    def build(
        self,
        target: BranchTarget,
        files: Sequence[FileEntry],
        message: str,
        base: Optional[BaseCommit] = None,
    ) -> CommitResult:
        """
        Commit ``files`` onto a new branch.

        Args:
            target: Repository, new branch name and optional base branch
            files: Files to add or replace; other paths are inherited
            message: Commit message
            base: Precomputed base (fork path: the upstream base commit,
                already verified to exist in the target repository)

        Returns:
            CommitResult describing the created objects

        Raises:
            BranchConflictError: The branch name already exists (409/422)
            GitHubApiError: From whichever call failed first
        """
        if not files:
            raise ValueError("No files to commit")

        owner, repo = target.owner, target.repo

        if base is None:
            base = self.resolve_base(owner, repo, target.base_branch)

        entries = self.create_blobs(owner, repo, files)
        if self.verbose:
            console.print(f"[dim]Created {len(entries)} blobs in {owner}/{repo}[/dim]")

        tree_sha = self.client.create_tree(owner, repo, base.commit.tree_sha, entries)
        commit_sha = self.client.create_commit(owner, repo, message, tree_sha, base.commit.sha)

        # Publishes the branch; must come after the commit exists
        try:
            self.client.create_ref(owner, repo, target.branch_name, commit_sha)
        except GitHubApiError as e:
            if e.is_conflict:
                raise BranchConflictError(owner, repo, target.branch_name, cause=e) from e
            raise

        if self.verbose:
            console.print(f"[blue]Created branch {target.branch_name} in {owner}/{repo}[/blue]")

        return CommitResult(
            repo=RepoRef(owner, repo),
            branch_name=target.branch_name,
            base_branch=base.branch,
            base_commit_sha=base.commit.sha,
            tree_sha=tree_sha,
            commit_sha=commit_sha,
        )
