"""
Error types for image-tools.

GitHub failures carry the numeric HTTP status so callers can switch on it
instead of parsing messages.
"""

from typing import Optional


class ImageToolsError(Exception):
    """Base error. ``http_status_hint`` is what an HTTP handler should answer."""

    http_status_hint: int = 500

    def __init__(self, message: str, http_status_hint: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if http_status_hint is not None:
            self.http_status_hint = http_status_hint

    def to_dict(self) -> dict:
        return {"message": self.message, "httpStatusHint": self.http_status_hint}


class GitHubApiError(ImageToolsError):
    """A GitHub call returned a non-2xx status (or never returned one)."""

    retryable = False

    def __init__(
        self,
        status: Optional[int],
        body: str = "",
        step: str = "",
        repo: str = "",
    ):
        self.status = status
        self.body = body
        self.step = step
        self.repo = repo

        where = f" on {repo}" if repo else ""
        status_text = status if status is not None else "no response"
        message = f"GitHub {step or 'request'}{where} failed ({status_text})"
        if body:
            message = f"{message}: {body}"

        hint = status if status is not None and status >= 400 else 502
        super().__init__(message, hint)

    @property
    def is_permission_denied(self) -> bool:
        return self.status == 403

    @property
    def is_not_found(self) -> bool:
        return self.status == 404

    @property
    def is_conflict(self) -> bool:
        return self.status in (409, 422)


class GitHubTimeoutError(GitHubApiError):
    """A GitHub call exceeded its per-call timeout."""

    retryable = True

    def __init__(self, step: str = "", repo: str = "", timeout: Optional[float] = None):
        detail = f"timed out after {timeout:g}s" if timeout else "timed out"
        super().__init__(None, detail, step, repo)
        self.http_status_hint = 504


class GitHubNetworkError(GitHubApiError):
    """Connection-level failure talking to GitHub."""


class ForkSyncConflictError(ImageToolsError):
    """merge-upstream refused to fast-forward the fork."""

    http_status_hint = 409

    def __init__(self, owner: str, repo: str, branch: str, cause: Optional[GitHubApiError] = None):
        self.owner = owner
        self.repo = repo
        self.branch = branch
        self.cause = cause
        super().__init__(
            f"Unable to sync your fork {owner}/{repo} ({branch}) with the upstream "
            "repository. Please update your fork to match upstream and retry."
        )


class BranchConflictError(ImageToolsError):
    """Creating the branch ref was refused because the name is taken."""

    http_status_hint = 409

    def __init__(self, owner: str, repo: str, branch: str, cause: Optional[GitHubApiError] = None):
        self.owner = owner
        self.repo = repo
        self.branch = branch
        self.cause = cause
        super().__init__(
            f"Branch {branch} already exists in {owner}/{repo}. "
            "Please retry the submission to use a new branch name."
        )


class ForkOutOfDateError(ImageToolsError):
    """The fork still lacks the upstream base commit after a sync."""

    http_status_hint = 409

    def __init__(self, owner: str, repo: str, commit_sha: str):
        self.owner = owner
        self.repo = repo
        self.commit_sha = commit_sha
        super().__init__(
            f"Unable to prepare fork {owner}/{repo} for PR creation: commit "
            f"{commit_sha[:12]} is missing. Please sync your fork with upstream and try again."
        )


class MissingTokenError(ImageToolsError):
    http_status_hint = 401

    def __init__(self):
        super().__init__("Missing GitHub token")


class AssetError(ImageToolsError):
    """Asset description cannot be turned into repository files."""

    http_status_hint = 400

    def __init__(self, message: str, details: Optional[list[dict]] = None):
        super().__init__(message)
        self.details = details or []

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.details:
            data["details"] = self.details
        return data
