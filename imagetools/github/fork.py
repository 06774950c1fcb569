"""
Fork Management for image-tools.

Fork creation and upstream sync both complete asynchronously on GitHub's
side, so a fork is only used after it is visible and contains the upstream
base commit.
"""

import time
from typing import Callable

from rich.console import Console

from imagetools.errors import ForkOutOfDateError, ForkSyncConflictError, GitHubApiError
from imagetools.github.client import GitHubClient
from imagetools.models import RepoRef

console = Console()

DEFAULT_POLL_ATTEMPTS = 10
DEFAULT_POLL_DELAY = 0.8


class ForkCoordinator:
    """Provision a user's fork and keep it in step with upstream."""

    def __init__(
        self,
        client: GitHubClient,
        attempts: int = DEFAULT_POLL_ATTEMPTS,
        delay: float = DEFAULT_POLL_DELAY,
        sleep: Callable[[float], None] = time.sleep,
        verbose: bool = False,
    ):
        self.client = client
        self.attempts = max(1, attempts)
        self.delay = delay
        self.sleep = sleep
        self.verbose = verbose

    def ensure_fork(self, base_owner: str, base_repo: str, login: str) -> RepoRef:
        """
        Make sure ``login`` has a fork of ``base_owner/base_repo``.

        Triggers the (idempotent) fork, then polls until the fork answers.
        A 404 means "not provisioned yet"; the last poll's error is raised
        once attempts run out. Any other error is raised immediately.

        Returns:
            The fork's RepoRef
        """
        full_name = self.client.fork_repository(base_owner, base_repo)
        fork = _fork_ref(full_name, login, base_repo)

        for attempt in range(1, self.attempts):
            try:
                self.client.get_repo_info(fork.owner, fork.name)
                return fork
            except GitHubApiError as e:
                if not e.is_not_found:
                    raise
                if self.verbose:
                    console.print(
                        f"[yellow]Fork {fork} not ready "
                        f"(attempt {attempt}/{self.attempts})[/yellow]"
                    )
                self.sleep(self.delay)

        # Last try; a fork still missing now fails the request
        self.client.get_repo_info(fork.owner, fork.name)
        return fork

    def commit_exists(self, owner: str, repo: str, commit_sha: str) -> bool:
        try:
            self.client.get_commit(owner, repo, commit_sha)
            return True
        except GitHubApiError as e:
            if e.is_not_found or e.is_conflict:
                return False
            raise

    def sync_fork_with_upstream(self, owner: str, repo: str, branch: str) -> None:
        """
        Fast-forward ``branch`` of the fork to upstream.

        Raises:
            ForkSyncConflictError: GitHub answered 409/422 (fork diverged)
        """
        if self.verbose:
            console.print(f"[yellow]Syncing {owner}/{repo}:{branch} with upstream[/yellow]")
        try:
            self.client.merge_upstream(owner, repo, branch)
        except GitHubApiError as e:
            if e.is_conflict:
                raise ForkSyncConflictError(owner, repo, branch, cause=e) from e
            raise

    def ensure_fork_has_commit(self, owner: str, repo: str, branch: str, commit_sha: str) -> None:
        """
        Make sure ``commit_sha`` is resolvable in the fork.

        Syncs with upstream once if it is missing. A commit that is already
        present costs a single read and never triggers a sync.

        Raises:
            ForkSyncConflictError: The sync was refused
            ForkOutOfDateError: The commit is still missing after the sync
        """
        if self.commit_exists(owner, repo, commit_sha):
            return

        self.sync_fork_with_upstream(owner, repo, branch)

        if not self.commit_exists(owner, repo, commit_sha):
            raise ForkOutOfDateError(owner, repo, commit_sha)


def _fork_ref(full_name: str, login: str, base_repo: str) -> RepoRef:
    owner, _, name = (full_name or "").partition("/")
    if owner and name:
        return RepoRef(owner, name)
    return RepoRef(login, base_repo)
