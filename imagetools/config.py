"""
Runtime configuration for image-tools.

Settings come from the environment (a ``.env`` file is loaded first).
"""

import os
from dataclasses import dataclass
from typing import Literal, Mapping, Optional

from dotenv import load_dotenv
from rich.console import Console

# Load environment variables
load_dotenv()

console = Console()

CANONICAL_OWNER = "yearn"
CANONICAL_REPO = "tokenAssets"


def _read(env: Mapping[str, str], key: str) -> Optional[str]:
    raw = env.get(key)
    if raw is None:
        return None
    return raw.strip() or None


def _read_bool(env: Mapping[str, str], key: str) -> bool:
    return (_read(env, key) or "").lower() == "true"


def _read_number(env: Mapping[str, str], key: str, default, cast):
    raw = _read(env, key)
    if raw is None:
        return default
    try:
        return cast(raw)
    except ValueError as e:
        raise ValueError(f"{key} must be a number (got {raw!r})") from e


@dataclass
class Settings:
    """
    Service settings.

    The GitHub timeout applies to every API call individually.
    """

    repo_owner: Optional[str] = None
    repo_name: Optional[str] = None
    allow_repo_override: bool = False
    deploy_owner: Optional[str] = None
    deploy_repo: Optional[str] = None

    github_timeout: float = 15.0
    fork_poll_attempts: int = 10
    fork_poll_delay: float = 0.8
    blob_workers: int = 1

    metrics_path: Optional[str] = "imagetools_metrics.jsonl"
    github_token: Optional[str] = None

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Read settings from ``env`` (defaults to ``os.environ``).

        Raises:
            ValueError: If a numeric variable cannot be parsed
        """
        env = os.environ if env is None else env
        metrics_path = env.get("IMAGETOOLS_METRICS_PATH", cls.metrics_path)

        return cls(
            repo_owner=_read(env, "REPO_OWNER"),
            repo_name=_read(env, "REPO_NAME"),
            allow_repo_override=_read_bool(env, "ALLOW_REPO_OVERRIDE"),
            deploy_owner=_read(env, "VERCEL_GIT_REPO_OWNER"),
            deploy_repo=_read(env, "VERCEL_GIT_REPO_SLUG"),
            github_timeout=_read_number(env, "GITHUB_TIMEOUT", cls.github_timeout, float),
            fork_poll_attempts=_read_number(env, "FORK_POLL_ATTEMPTS", cls.fork_poll_attempts, int),
            fork_poll_delay=_read_number(env, "FORK_POLL_DELAY", cls.fork_poll_delay, float),
            blob_workers=_read_number(env, "BLOB_WORKERS", cls.blob_workers, int),
            metrics_path=metrics_path.strip() or None,
            github_token=_read(env, "GITHUB_TOKEN"),
        )


@dataclass(frozen=True)
class TargetRepo:
    owner: str
    repo: str
    reason: Literal["canonical", "override"]
    allow_override: bool


def resolve_target_repo(settings: Settings, verbose: bool = False) -> TargetRepo:
    """
    Decide which repository receives the pull request.

    The canonical repository is used unless both REPO_OWNER and REPO_NAME
    are set. Such an override is honoured when ALLOW_REPO_OVERRIDE is true,
    or when it does not name the repository this service is deployed from.
    """
    owner, repo = CANONICAL_OWNER, CANONICAL_REPO
    reason: Literal["canonical", "override"] = "canonical"

    if settings.repo_owner and settings.repo_name:
        is_self_deploy = (
            bool(settings.deploy_owner and settings.deploy_repo)
            and settings.repo_owner.lower() == settings.deploy_owner.lower()
            and settings.repo_name.lower() == settings.deploy_repo.lower()
        )
        if settings.allow_repo_override or not is_self_deploy:
            owner, repo = settings.repo_owner, settings.repo_name
            reason = "override"

    if verbose:
        console.print(f"[dim]Target repository: {owner}/{repo} ({reason})[/dim]")

    return TargetRepo(owner=owner, repo=repo, reason=reason, allow_override=settings.allow_repo_override)
