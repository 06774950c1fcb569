"""
Tests for fork provisioning and upstream sync.
"""

import pytest

from imagetools.errors import ForkOutOfDateError, ForkSyncConflictError, GitHubApiError
from imagetools.github.fork import ForkCoordinator
from imagetools.models import RepoRef


class TestEnsureFork:
    """Fork creation and availability polling."""

    def test_existing_fork_returned_immediately(self, org_github, no_sleep):
        forks = ForkCoordinator(org_github, sleep=no_sleep)

        fork = forks.ensure_fork("yearn", "tokenAssets", "alice")

        assert fork == RepoRef("alice", "tokenAssets")
        assert org_github.steps() == ["fork_repository", "get_repo_info"]
        assert no_sleep.delays == []

    def test_polls_until_fork_visible(self, org_github, no_sleep):
        org_github.fork_ready_after = 3
        forks = ForkCoordinator(org_github, sleep=no_sleep)

        fork = forks.ensure_fork("yearn", "tokenAssets", "alice")

        assert fork == RepoRef("alice", "tokenAssets")
        assert org_github.steps().count("get_repo_info") == 4
        assert no_sleep.delays == [0.8, 0.8, 0.8]

    def test_gives_up_after_ten_attempts(self, org_github, no_sleep):
        org_github.fork_ready_after = 50
        forks = ForkCoordinator(org_github, sleep=no_sleep)

        with pytest.raises(GitHubApiError) as exc_info:
            forks.ensure_fork("yearn", "tokenAssets", "alice")

        assert exc_info.value.is_not_found
        assert org_github.steps().count("get_repo_info") == 10
        assert len(no_sleep.delays) == 9

    def test_non_404_during_polling_is_fatal(self, org_github, no_sleep):
        org_github.fail("get_repo_info", 500, repo="alice/tokenAssets")
        forks = ForkCoordinator(org_github, sleep=no_sleep)

        with pytest.raises(GitHubApiError) as exc_info:
            forks.ensure_fork("yearn", "tokenAssets", "alice")

        assert exc_info.value.status == 500
        assert no_sleep.delays == []

    def test_fork_request_failure_propagates(self, org_github, no_sleep):
        org_github.fail("fork_repository", 403)

        with pytest.raises(GitHubApiError) as exc_info:
            ForkCoordinator(org_github, sleep=no_sleep).ensure_fork("yearn", "tokenAssets", "alice")

        assert exc_info.value.is_permission_denied
        assert "get_repo_info" not in org_github.steps()


class TestEnsureForkHasCommit:
    """Keeping a stale fork in step with upstream."""

    def _stale_fork(self, fake):
        fake.fork_repository("yearn", "tokenAssets")
        head = fake.add_upstream_commit("yearn", "tokenAssets", {"tokens/10/0xnew/logo.svg": "bmV3"})
        fake.calls.clear()
        return head

    def test_present_commit_needs_no_sync(self, org_github):
        org_github.fork_repository("yearn", "tokenAssets")
        head = org_github.repos["yearn/tokenAssets"].refs["main"]
        org_github.calls.clear()

        ForkCoordinator(org_github).ensure_fork_has_commit("alice", "tokenAssets", "main", head)

        assert org_github.steps() == ["get_commit"]

    def test_missing_commit_triggers_sync(self, org_github):
        head = self._stale_fork(org_github)

        ForkCoordinator(org_github).ensure_fork_has_commit("alice", "tokenAssets", "main", head)

        assert org_github.steps() == ["get_commit", "merge_upstream", "get_commit"]
        assert org_github.repos["alice/tokenAssets"].refs["main"] == head

    def test_idempotent_once_synced(self, org_github):
        head = self._stale_fork(org_github)
        forks = ForkCoordinator(org_github)

        forks.ensure_fork_has_commit("alice", "tokenAssets", "main", head)
        org_github.calls.clear()
        forks.ensure_fork_has_commit("alice", "tokenAssets", "main", head)

        assert "merge_upstream" not in org_github.steps()

    @pytest.mark.parametrize("status", [409, 422])
    def test_diverged_fork_raises_actionable_error(self, org_github, status):
        head = self._stale_fork(org_github)
        org_github.fail("merge_upstream", status)

        with pytest.raises(ForkSyncConflictError) as exc_info:
            ForkCoordinator(org_github).ensure_fork_has_commit("alice", "tokenAssets", "main", head)

        assert "sync your fork" in exc_info.value.message
        assert exc_info.value.cause.status == status
        assert exc_info.value.http_status_hint == 409

    def test_other_sync_errors_propagate_unchanged(self, org_github):
        head = self._stale_fork(org_github)
        org_github.fail("merge_upstream", 500)

        with pytest.raises(GitHubApiError) as exc_info:
            ForkCoordinator(org_github).ensure_fork_has_commit("alice", "tokenAssets", "main", head)

        assert exc_info.value.status == 500

    def test_still_missing_after_sync(self, org_github):
        self._stale_fork(org_github)

        with pytest.raises(ForkOutOfDateError):
            ForkCoordinator(org_github).ensure_fork_has_commit("alice", "tokenAssets", "main", "f" * 40)

        assert org_github.steps() == ["get_commit", "merge_upstream", "get_commit"]
