"""
LangGraph Orchestration for image-tools.

Implements PR creation as a finite state machine:

    attempt_direct --(PR opened)--> END
    attempt_direct --(403)--> resolve_fork -> commit_on_fork -> open_cross_repo_pr -> END

The path is chosen by outcome, not configuration. Only a 403 from the
direct attempt switches paths; every other failure, and any failure on the
fork path, propagates out of ``run``.
"""

from typing import Literal, Optional

from langgraph.graph import END, StateGraph
from rich.console import Console

from imagetools.errors import GitHubApiError
from imagetools.github.client import GitHubClient
from imagetools.github.commit import BaseCommit, CommitBuilder
from imagetools.github.fork import ForkCoordinator
from imagetools.models import BranchTarget, CommitRef, PrJob, PrRequest, PrResult
from imagetools.state import PrState

console = Console()


def _base_from_state(state: PrState) -> Optional[BaseCommit]:
    if not (state.base_branch and state.base_commit_sha and state.base_tree_sha):
        return None
    return BaseCommit(
        branch=state.base_branch,
        commit=CommitRef(sha=state.base_commit_sha, tree_sha=state.base_tree_sha),
    )


def _base_fields(base: BaseCommit) -> dict:
    return {
        "base_branch": base.branch,
        "base_commit_sha": base.commit.sha,
        "base_tree_sha": base.commit.tree_sha,
    }


def _fork_branch_name(job: PrJob, published: bool) -> str:
    """Branch for the fork path; renamed when the direct attempt already created the ref."""
    if published:
        return f"{job.branch_name}-fork"
    return job.branch_name


class PrOrchestrator:
    """
    Commit files and open a pull request, falling back to a fork.

    Side effects land in exactly one repository per run that succeeds:
    the canonical one, or the caller's fork.
    """

    def __init__(
        self,
        client: GitHubClient,
        builder: Optional[CommitBuilder] = None,
        forks: Optional[ForkCoordinator] = None,
        verbose: bool = False,
    ):
        self.client = client
        self.builder = builder or CommitBuilder(client, verbose=verbose)
        self.forks = forks or ForkCoordinator(client, verbose=verbose)
        self.verbose = verbose
        self.graph = self.build_graph()

    # ========================================================================
    # Nodes
    # ========================================================================

    def attempt_direct(self, state: PrState) -> dict:
        """
        Commit and open a same-repo PR in the canonical repository.

        A 403 from any call here (including PR creation) hands over to the
        fork path.
        """
        job = state.job
        console.print(f"[bold blue]🚀 Committing to {job.base_owner}/{job.base_repo}...[/bold blue]")

        update: dict = {}
        try:
            base = self.builder.resolve_base(job.base_owner, job.base_repo, job.base_branch)
            update.update(_base_fields(base))

            result = self.builder.build(
                BranchTarget(job.base_owner, job.base_repo, job.branch_name, base.branch),
                job.files,
                job.message,
                base=base,
            )
            update["commit_sha"] = result.commit_sha

            request = PrRequest(
                title=job.title,
                body=job.body,
                head=job.branch_name,
                base_owner=job.base_owner,
                base_repo=job.base_repo,
                base_branch=base.branch,
            )
            update["pr_url"] = self._open(request)

        except GitHubApiError as e:
            if not e.is_permission_denied:
                raise
            console.print(
                f"[yellow]⚠ No write access to {job.base_owner}/{job.base_repo} "
                f"({e.step}); falling back to a fork[/yellow]"
            )
            update["path"] = "fork"
            update["denied_step"] = e.step
            update["fork_branch"] = _fork_branch_name(job, published="commit_sha" in update)
            update["commit_sha"] = None

        return update

    def resolve_fork(self, state: PrState) -> dict:
        """Find the caller's login and make sure their fork exists."""
        job = state.job
        console.print("[bold blue]🍴 Preparing fork...[/bold blue]")

        login = self.client.get_user_login()
        fork = self.forks.ensure_fork(job.base_owner, job.base_repo, login)

        return {"login": login, "fork_owner": fork.owner, "fork_repo": fork.name}

    def commit_on_fork(self, state: PrState) -> dict:
        """
        Commit onto a new branch in the fork.

        The base is the canonical repository's branch head, and the fork
        must contain that commit before any object is created there.
        """
        job = state.job
        console.print(f"[bold blue]📦 Committing to fork {state.fork_owner}/{state.fork_repo}...[/bold blue]")

        branch = state.fork_branch or job.branch_name
        base = _base_from_state(state)
        if base is None:
            base = self.builder.resolve_base(job.base_owner, job.base_repo, job.base_branch)

        self.forks.ensure_fork_has_commit(
            state.fork_owner,
            state.fork_repo,
            base.branch,
            base.commit.sha,
        )

        result = self.builder.build(
            BranchTarget(state.fork_owner, state.fork_repo, branch, base.branch),
            job.files,
            job.message,
            base=base,
        )

        return {**_base_fields(base), "commit_sha": result.commit_sha}

    def open_cross_repo_pr(self, state: PrState) -> dict:
        job = state.job
        console.print("[bold blue]🔀 Opening cross-repository pull request...[/bold blue]")

        request = PrRequest(
            title=job.title,
            body=job.body,
            head=f"{state.fork_owner}:{state.fork_branch or job.branch_name}",
            base_owner=job.base_owner,
            base_repo=job.base_repo,
            base_branch=state.base_branch,
        )
        return {"pr_url": self._open(request)}

    def _open(self, request: PrRequest) -> str:
        pr_url = self.client.create_pull_request(
            request.base_owner,
            request.base_repo,
            request.title,
            request.head,
            request.base_branch,
            request.body,
        )
        console.print(f"[green]✅ PR created: {pr_url}[/green]")
        return pr_url

    # ========================================================================
    # Conditional Edges
    # ========================================================================

    @staticmethod
    def route_after_direct(state: PrState) -> Literal["done", "fork"]:
        """Leave the graph once a PR exists; otherwise take the fork path."""
        if state.pr_url:
            return "done"
        return "fork"

    # ========================================================================
    # Graph Builder
    # ========================================================================

    def build_graph(self):
        """
        Build the PR creation graph.

        Returns:
            Compiled LangGraph state machine
        """
        graph = StateGraph(PrState)

        graph.add_node("attempt_direct", self.attempt_direct)
        graph.add_node("resolve_fork", self.resolve_fork)
        graph.add_node("commit_on_fork", self.commit_on_fork)
        graph.add_node("open_cross_repo_pr", self.open_cross_repo_pr)

        graph.set_entry_point("attempt_direct")

        graph.add_conditional_edges(
            "attempt_direct",
            self.route_after_direct,
            {
                "done": END,
                "fork": "resolve_fork",
            },
        )

        graph.add_edge("resolve_fork", "commit_on_fork")
        graph.add_edge("commit_on_fork", "open_cross_repo_pr")
        graph.add_edge("open_cross_repo_pr", END)

        return graph.compile()

    def run(self, job: PrJob) -> PrResult:
        """
        Run one submission through the graph.

        Returns:
            PrResult with the PR URL and where the branch was created

        Raises:
            ImageToolsError: From the step that failed
        """
        output = self.graph.invoke(PrState(job=job))
        state = output if isinstance(output, PrState) else PrState(**output)

        if state.path == "fork":
            head_owner, head_repo = state.fork_owner, state.fork_repo
            branch_name = state.fork_branch or job.branch_name
        else:
            head_owner, head_repo = job.base_owner, job.base_repo
            branch_name = job.branch_name

        return PrResult(
            pr_url=state.pr_url,
            head_owner=head_owner,
            head_repo=head_repo,
            branch_name=branch_name,
            path=state.path,
        )
