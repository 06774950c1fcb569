"""
Submission Service for image-tools.

The seam between an HTTP handler (or the CLI) and the PR workflow:
builds files and PR text from an asset submission, picks the target
repository, runs the orchestrator and records the outcome.
"""

import time
from typing import Callable, Optional

from rich.console import Console

from imagetools.assets import AssetSubmission, build_pr_files
from imagetools.config import Settings, TargetRepo, resolve_target_repo
from imagetools.errors import GitHubApiError, ImageToolsError, MissingTokenError
from imagetools.github.client import GitHubClient
from imagetools.github.commit import CommitBuilder, make_branch_name
from imagetools.github.fork import ForkCoordinator
from imagetools.github.pr_body import build_default_pr_metadata
from imagetools.graph import PrOrchestrator
from imagetools.metrics import MetricsLogger, log_submission
from imagetools.models import PrJob, PrResult

console = Console()

FALLBACK_LOGIN = "user"

ClientFactory = Callable[[str], GitHubClient]


class SubmissionService:
    """Run asset submissions through the PR workflow."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client_factory: Optional[ClientFactory] = None,
        metrics: Optional[MetricsLogger] = None,
        sleep: Callable[[float], None] = time.sleep,
        verbose: bool = False,
    ):
        self.settings = settings or Settings.from_env()
        self.client_factory = client_factory or self._default_client
        if metrics is None and self.settings.metrics_path:
            metrics = MetricsLogger(self.settings.metrics_path)
        self.metrics = metrics
        self.sleep = sleep
        self.verbose = verbose

    def _default_client(self, token: str) -> GitHubClient:
        return GitHubClient(token, timeout=self.settings.github_timeout)

    def resolve_target(self) -> TargetRepo:
        return resolve_target_repo(self.settings, verbose=self.verbose)

    def orchestrator_for(self, client: GitHubClient) -> PrOrchestrator:
        builder = CommitBuilder(client, max_workers=self.settings.blob_workers, verbose=self.verbose)
        forks = ForkCoordinator(
            client,
            attempts=self.settings.fork_poll_attempts,
            delay=self.settings.fork_poll_delay,
            sleep=self.sleep,
            verbose=self.verbose,
        )
        return PrOrchestrator(client, builder=builder, forks=forks, verbose=self.verbose)

    def lookup_login(self, client: GitHubClient) -> str:
        """Login used in branch names; a failed lookup falls back to ``user``."""
        try:
            return client.get_user_login()
        except GitHubApiError as e:
            console.print(f"[yellow]⚠ Could not look up GitHub login ({e.status}); using '{FALLBACK_LOGIN}'[/yellow]")
            return FALLBACK_LOGIN

    def submit(
        self,
        token: str,
        submission: AssetSubmission,
        target: Optional[TargetRepo] = None,
        base_branch: Optional[str] = None,
    ) -> PrResult:
        """
        Commit a submission's files and open a pull request.

        Args:
            token: Contributor's GitHub token
            submission: Validated token or chain assets
            target: Repository to open the PR against (resolved if omitted)
            base_branch: Branch to merge into (repository default if omitted)

        Returns:
            PrResult for the opened pull request

        Raises:
            MissingTokenError: If no token was given
            ImageToolsError: If any workflow step failed
        """
        if not token:
            raise MissingTokenError()

        target = target or self.resolve_target()
        repository = f"{target.owner}/{target.repo}"
        files: list = []

        started = time.time()
        try:
            files = build_pr_files(submission)
            metadata = build_default_pr_metadata(submission)

            client = self.client_factory(token)
            login = self.lookup_login(client)

            job = PrJob(
                base_owner=target.owner,
                base_repo=target.repo,
                branch_name=make_branch_name(login, submission.target),
                files=tuple(files),
                title=metadata.title,
                body=metadata.body,
                base_branch=base_branch,
            )
            result = self.orchestrator_for(client).run(job)

        except Exception as e:
            log_submission(
                self.metrics,
                repository,
                submission.target,
                len(files),
                error=e,
                duration_seconds=time.time() - started,
            )
            raise

        log_submission(
            self.metrics,
            repository,
            submission.target,
            len(files),
            path=result.path,
            pr_url=result.pr_url,
            duration_seconds=time.time() - started,
        )
        return result


def handle_submission(
    service: SubmissionService,
    token: str,
    submission: AssetSubmission,
) -> tuple[int, dict]:
    """
    Run a submission and shape the outcome for an HTTP response.

    Returns:
        (status, JSON-serializable payload)
    """
    try:
        target = service.resolve_target()
        result = service.submit(token, submission, target=target)
    except ImageToolsError as e:
        return e.http_status_hint, e.to_dict()

    return 200, {
        "ok": True,
        **result.to_dict(),
        "repository": {"owner": target.owner, "repo": target.repo},
    }
