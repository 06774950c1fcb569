"""
Shared fixtures for image-tools tests.

``FakeGitHub`` stands in for ``GitHubClient``: an in-memory,
content-addressed store of blobs, trees, commits and refs per repository,
with write permissions, asynchronous fork provisioning and failure
injection.
"""

import hashlib
import json
from dataclasses import dataclass, field
from typing import Optional

import pytest

from imagetools.errors import GitHubApiError
from imagetools.github.client import RepoInfo
from imagetools.models import CommitRef, FileEntry


def _sha(kind: str, payload) -> str:
    raw = json.dumps([kind, payload], sort_keys=True).encode()
    return hashlib.sha1(raw).hexdigest()


@dataclass
class FakeRepo:
    owner: str
    name: str
    default_branch: str = "main"
    upstream: Optional[str] = None
    refs: dict = field(default_factory=dict)
    commits: dict = field(default_factory=dict)  # sha -> (tree_sha, parents, message)
    trees: dict = field(default_factory=dict)  # sha -> {path: blob_sha}
    blobs: dict = field(default_factory=dict)  # sha -> base64 content
    pending_polls: int = 0

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    def copy_objects_from(self, other: "FakeRepo") -> None:
        self.commits.update(other.commits)
        self.trees.update(other.trees)
        self.blobs.update(other.blobs)


class FakeGitHub:
    """In-memory replacement for ``GitHubClient``."""

    def __init__(self, login: str = "alice"):
        self.login = login
        self.repos: dict[str, FakeRepo] = {}
        self.writable: set[str] = set()
        self.calls: list[tuple[str, str]] = []
        self.pulls: list[dict] = []
        self.fork_ready_after = 0
        self._failures: list[dict] = []
        self._next_pr = 123

    # ------------------------------------------------------------------
    # Test helpers
    # ------------------------------------------------------------------

    def add_repo(self, owner: str, name: str, files: Optional[dict] = None, writable: bool = True) -> FakeRepo:
        repo = FakeRepo(owner, name)
        tree = {}
        for path, content in (files or {"README.md": "cmVhZG1l"}).items():
            blob_sha = _sha("blob", content)
            repo.blobs[blob_sha] = content
            tree[path] = blob_sha
        tree_sha = _sha("tree", tree)
        repo.trees[tree_sha] = tree
        commit_sha = _sha("commit", [tree_sha, [], "initial"])
        repo.commits[commit_sha] = (tree_sha, [], "initial")
        repo.refs[repo.default_branch] = commit_sha
        self.repos[repo.full_name] = repo
        if writable:
            self.writable.add(repo.full_name)
        return repo

    def add_upstream_commit(self, owner: str, name: str, files: dict) -> str:
        """Advance the default branch of ``owner/name`` with new files."""
        repo = self.repos[f"{owner}/{name}"]
        head = repo.refs[repo.default_branch]
        tree = dict(repo.trees[repo.commits[head][0]])
        for path, content in files.items():
            blob_sha = _sha("blob", content)
            repo.blobs[blob_sha] = content
            tree[path] = blob_sha
        tree_sha = _sha("tree", tree)
        repo.trees[tree_sha] = tree
        commit_sha = _sha("commit", [tree_sha, [head], "upstream"])
        repo.commits[commit_sha] = (tree_sha, [head], "upstream")
        repo.refs[repo.default_branch] = commit_sha
        return commit_sha

    def files_at(self, owner: str, name: str, branch: str) -> dict:
        repo = self.repos[f"{owner}/{name}"]
        tree_sha = repo.commits[repo.refs[branch]][0]
        return {path: repo.blobs[sha] for path, sha in repo.trees[tree_sha].items()}

    def fail(self, step: str, status: int, repo: Optional[str] = None, times: int = 1, body: str = "") -> None:
        """Make the next ``times`` calls of ``step`` (optionally on ``repo``) fail."""
        self._failures.append({"step": step, "status": status, "repo": repo, "times": times, "body": body})

    def steps(self, repo: Optional[str] = None) -> list[str]:
        return [step for step, where in self.calls if repo is None or where == repo]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _enter(self, step: str, owner: str = "", name: str = "") -> Optional[FakeRepo]:
        where = f"{owner}/{name}" if owner else ""
        self.calls.append((step, where))

        for failure in self._failures:
            if failure["step"] == step and failure["times"] > 0 and failure["repo"] in (None, where):
                failure["times"] -= 1
                raise GitHubApiError(failure["status"], failure["body"], step, where)

        if not owner:
            return None
        repo = self.repos.get(where)
        if repo is None:
            raise GitHubApiError(404, '{"message": "Not Found"}', step, where)
        return repo

    def _write(self, step: str, owner: str, name: str) -> FakeRepo:
        repo = self._enter(step, owner, name)
        if repo.full_name not in self.writable:
            raise GitHubApiError(403, '{"message": "Resource not accessible by integration"}', step, repo.full_name)
        return repo

    # ------------------------------------------------------------------
    # GitHubClient surface
    # ------------------------------------------------------------------

    def get_user_login(self) -> str:
        self._enter("get_user_login")
        return self.login

    def get_repo_info(self, owner: str, repo: str) -> RepoInfo:
        found = self._enter("get_repo_info", owner, repo)
        if found.pending_polls > 0:
            found.pending_polls -= 1
            raise GitHubApiError(404, '{"message": "Not Found"}', "get_repo_info", found.full_name)
        return RepoInfo(found.full_name, found.default_branch, fork=found.upstream is not None)

    def get_head_ref(self, owner: str, repo: str, branch: str) -> str:
        found = self._enter("get_head_ref", owner, repo)
        if branch not in found.refs:
            raise GitHubApiError(404, '{"message": "Not Found"}', "get_head_ref", found.full_name)
        return found.refs[branch]

    def get_commit(self, owner: str, repo: str, sha: str) -> CommitRef:
        found = self._enter("get_commit", owner, repo)
        if sha not in found.commits:
            raise GitHubApiError(404, '{"message": "Not Found"}', "get_commit", found.full_name)
        return CommitRef(sha=sha, tree_sha=found.commits[sha][0])

    def create_blob(self, owner: str, repo: str, content_base64: str) -> str:
        found = self._write("create_blob", owner, repo)
        sha = _sha("blob", content_base64)
        found.blobs[sha] = content_base64
        return sha

    def create_tree(self, owner: str, repo: str, base_tree_sha: str, entries) -> str:
        found = self._write("create_tree", owner, repo)
        if base_tree_sha not in found.trees:
            raise GitHubApiError(422, '{"message": "Invalid tree info"}', "create_tree", found.full_name)
        tree = dict(found.trees[base_tree_sha])
        for entry in entries:
            if entry.sha not in found.blobs:
                raise GitHubApiError(422, '{"message": "Invalid tree info"}', "create_tree", found.full_name)
            tree[entry.path] = entry.sha
        sha = _sha("tree", tree)
        found.trees[sha] = tree
        return sha

    def create_commit(self, owner: str, repo: str, message: str, tree_sha: str, parent_sha: str) -> str:
        found = self._write("create_commit", owner, repo)
        if tree_sha not in found.trees or parent_sha not in found.commits:
            raise GitHubApiError(422, '{"message": "Invalid object"}', "create_commit", found.full_name)
        sha = _sha("commit", [tree_sha, [parent_sha], message])
        found.commits[sha] = (tree_sha, [parent_sha], message)
        return sha

    def create_ref(self, owner: str, repo: str, branch: str, sha: str) -> str:
        found = self._write("create_ref", owner, repo)
        if sha not in found.commits:
            raise GitHubApiError(422, '{"message": "Object does not exist"}', "create_ref", found.full_name)
        if branch in found.refs:
            raise GitHubApiError(422, '{"message": "Reference already exists"}', "create_ref", found.full_name)
        found.refs[branch] = sha
        return f"refs/heads/{branch}"

    def create_pull_request(self, owner: str, repo: str, title: str, head: str, base: str, body: str) -> str:
        found = self._write("create_pull_request", owner, repo) if f"{owner}/{repo}" in self.writable else None
        if found is None:
            # Opening a PR only needs read access to the base repository
            found = self._enter("create_pull_request", owner, repo)

        head_owner, _, head_branch = head.rpartition(":")
        head_repo = found
        if head_owner and head_owner != owner:
            head_repo = next(
                (r for r in self.repos.values() if r.owner == head_owner and r.upstream == found.full_name),
                None,
            )
        if head_repo is None or head_branch not in head_repo.refs:
            raise GitHubApiError(422, '{"message": "Validation Failed"}', "create_pull_request", found.full_name)

        url = f"https://github.com/{owner}/{repo}/pull/{self._next_pr}"
        self._next_pr += 1
        self.pulls.append({"repo": found.full_name, "title": title, "head": head, "base": base, "body": body, "url": url})
        return url

    def fork_repository(self, owner: str, repo: str) -> str:
        upstream = self._enter("fork_repository", owner, repo)
        full_name = f"{self.login}/{repo}"
        if full_name not in self.repos:
            fork = FakeRepo(self.login, repo, upstream.default_branch, upstream=upstream.full_name)
            fork.copy_objects_from(upstream)
            fork.refs = dict(upstream.refs)
            fork.pending_polls = self.fork_ready_after
            self.repos[full_name] = fork
            self.writable.add(full_name)
        return full_name

    def merge_upstream(self, owner: str, repo: str, branch: str) -> dict:
        fork = self._write("merge_upstream", owner, repo)
        upstream = self.repos[fork.upstream]
        fork.copy_objects_from(upstream)
        fork.refs[branch] = upstream.refs[branch]
        return {"merge_type": "fast-forward", "base_branch": f"{upstream.owner}:{branch}"}


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def fake_github():
    """Fake GitHub with a writable canonical repository."""
    fake = FakeGitHub(login="alice")
    fake.add_repo(
        "yearn",
        "tokenAssets",
        files={
            "README.md": "cmVhZG1l",
            "tokens/1/0x0000000000000000000000000000000000000001/logo.svg": "b2xk",
        },
    )
    return fake


@pytest.fixture
def org_github(fake_github):
    """Same repository, but the token cannot write to it."""
    fake_github.writable.discard("yearn/tokenAssets")
    return fake_github


@pytest.fixture
def logo_files():
    prefix = "tokens/1/0xabc0000000000000000000000000000000000abc"
    return [
        FileEntry(f"{prefix}/logo.svg", "c3Zn"),
        FileEntry(f"{prefix}/logo-32.png", "cG5nMzI="),
        FileEntry(f"{prefix}/logo-128.png", "cG5nMTI4"),
    ]


@pytest.fixture
def no_sleep():
    """Sleep replacement that records requested delays."""
    delays = []

    def sleep(seconds):
        delays.append(seconds)

    sleep.delays = delays
    return sleep
