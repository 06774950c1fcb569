"""
GitHub API Client for image-tools.

A thin, authenticated transport over the GitHub REST and Git Data APIs.
One client is bound to one bearer token. Every call is a single request
with a per-call timeout: no retries and no caching, so callers decide how
to react to each status.
"""

import json
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional

import requests
from github import Auth, Github, GithubException

from imagetools.errors import GitHubApiError, GitHubNetworkError, GitHubTimeoutError, MissingTokenError
from imagetools.models import CommitRef, TreeEntry

DEFAULT_BASE_URL = "https://api.github.com"
DEFAULT_TIMEOUT = 15


@dataclass(frozen=True)
class RepoInfo:
    full_name: str
    default_branch: str
    fork: bool = False


class _MalformedResponse(Exception):
    """A 2xx answer without the fields the call needs."""


def _body_text(data) -> str:
    if data is None:
        return ""
    if isinstance(data, (dict, list)):
        return json.dumps(data)
    return str(data)


class GitHubClient:
    """
    Authenticated GitHub client.

    Any non-2xx answer raises ``GitHubApiError`` with the HTTP status, the
    response body, the operation name and the repository it targeted.
    """

    def __init__(
        self,
        token: str,
        timeout: float = DEFAULT_TIMEOUT,
        base_url: str = DEFAULT_BASE_URL,
        github: Optional[Github] = None,
    ):
        """
        Args:
            token: GitHub access token (OAuth or PAT)
            timeout: Per-call timeout in seconds
            base_url: API root, for GitHub Enterprise
            github: Preconfigured PyGithub instance (tests)

        Raises:
            MissingTokenError: If the token is empty
        """
        if not token:
            raise MissingTokenError()

        self.timeout = timeout
        self._gh = github or Github(
            auth=Auth.Token(token),
            base_url=base_url,
            timeout=timeout,
            retry=None,
        )

    @contextmanager
    def _call(self, step: str, owner: str = "", repo: str = "") -> Iterator[None]:
        """Translate PyGithub and requests failures into typed errors."""
        where = f"{owner}/{repo}" if owner else ""
        try:
            yield
        except GithubException as e:
            raise GitHubApiError(e.status, _body_text(e.data), step, where) from e
        except requests.exceptions.Timeout as e:
            raise GitHubTimeoutError(step, where, self.timeout) from e
        except requests.exceptions.RequestException as e:
            raise GitHubNetworkError(None, str(e), step, where) from e
        except (json.JSONDecodeError, _MalformedResponse) as e:
            raise GitHubApiError(None, f"malformed response: {e}", step, where) from e

    def _repo(self, owner: str, repo: str):
        return self._gh.get_repo(f"{owner}/{repo}", lazy=True)

    def _post(self, path: str, payload: Optional[dict] = None) -> dict:
        _, data = self._gh.requester.requestJsonAndCheck("POST", path, input=payload)
        return data

    def _post_sha(self, path: str, payload: dict) -> str:
        data = self._post(path, payload)
        if not isinstance(data, dict) or "sha" not in data:
            raise _MalformedResponse(f"missing sha in {_body_text(data)}")
        return data["sha"]

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_user_login(self) -> str:
        """Return the login of the token's owner."""
        with self._call("get_user_login"):
            return self._gh.get_user().login

    def get_repo_info(self, owner: str, repo: str) -> RepoInfo:
        """
        Fetch repository metadata.

        Raises:
            GitHubApiError: 404 while a fresh fork is still being provisioned
        """
        with self._call("get_repo_info", owner, repo):
            info = self._gh.get_repo(f"{owner}/{repo}")
            return RepoInfo(
                full_name=info.full_name,
                default_branch=info.default_branch,
                fork=bool(info.fork),
            )

    def get_head_ref(self, owner: str, repo: str, branch: str) -> str:
        """Return the commit sha ``refs/heads/<branch>`` points at."""
        with self._call("get_head_ref", owner, repo):
            return self._repo(owner, repo).get_git_ref(f"heads/{branch}").object.sha

    def get_commit(self, owner: str, repo: str, sha: str) -> CommitRef:
        with self._call("get_commit", owner, repo):
            commit = self._repo(owner, repo).get_git_commit(sha)
            return CommitRef(sha=commit.sha, tree_sha=commit.tree.sha)

    # ------------------------------------------------------------------
    # Git Data writes
    # ------------------------------------------------------------------

    def create_blob(self, owner: str, repo: str, content_base64: str) -> str:
        """Create a blob from base64 content and return its sha."""
        with self._call("create_blob", owner, repo):
            return self._repo(owner, repo).create_git_blob(content_base64, "base64").sha

    def create_tree(
        self,
        owner: str,
        repo: str,
        base_tree_sha: str,
        entries: Iterable[TreeEntry],
    ) -> str:
        """
        Create a tree layered on ``base_tree_sha``.

        Only changed or added paths are sent; GitHub merges them with the
        base tree server-side.
        """
        payload = {
            "base_tree": base_tree_sha,
            "tree": [entry.to_payload() for entry in entries],
        }
        with self._call("create_tree", owner, repo):
            return self._post_sha(f"/repos/{owner}/{repo}/git/trees", payload)

    def create_commit(
        self,
        owner: str,
        repo: str,
        message: str,
        tree_sha: str,
        parent_sha: str,
    ) -> str:
        payload = {"message": message, "tree": tree_sha, "parents": [parent_sha]}
        with self._call("create_commit", owner, repo):
            return self._post_sha(f"/repos/{owner}/{repo}/git/commits", payload)

    def create_ref(self, owner: str, repo: str, branch: str, sha: str) -> str:
        """Create ``refs/heads/<branch>`` at ``sha`` and return the full ref name."""
        with self._call("create_ref", owner, repo):
            return self._repo(owner, repo).create_git_ref(ref=f"refs/heads/{branch}", sha=sha).ref

    # ------------------------------------------------------------------
    # Pull requests and forks
    # ------------------------------------------------------------------

    def create_pull_request(
        self,
        owner: str,
        repo: str,
        title: str,
        head: str,
        base: str,
        body: str,
    ) -> str:
        """
        Open a pull request.

        Args:
            owner: Owner of the repository receiving the PR
            repo: Repository receiving the PR
            title: PR title
            head: ``branch`` for same-repo PRs, ``owner:branch`` across forks
            base: Branch the PR merges into
            body: PR description

        Returns:
            The PR's html URL
        """
        with self._call("create_pull_request", owner, repo):
            pr = self._repo(owner, repo).create_pull(base=base, head=head, title=title, body=body)
            return pr.html_url

    def fork_repository(self, owner: str, repo: str) -> str:
        """
        Ask GitHub to fork a repository into the token owner's account.

        Idempotent on GitHub's side. The fork is created asynchronously and
        may not be queryable when this returns. Only the default branch is
        copied into a new fork.
        """
        with self._call("fork_repository", owner, repo):
            return self._repo(owner, repo).create_fork(default_branch_only=True).full_name

    def merge_upstream(self, owner: str, repo: str, branch: str) -> dict:
        """Fast-forward a fork's branch to its upstream."""
        with self._call("merge_upstream", owner, repo):
            return self._post(f"/repos/{owner}/{repo}/merge-upstream", {"branch": branch})
