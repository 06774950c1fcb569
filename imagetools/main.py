"""
image-tools CLI Entry Point.

Usage:
    image-tools-pr --chain-id 1 --address 0xabc... --svg logo.svg --png32 logo-32.png --png128 logo-128.png
    image-tools-pr --chain-id 10 --svg logo.svg --png32 logo-32.png --png128 logo-128.png
    image-tools-pr --help
"""

import argparse
import base64
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.panel import Panel

from imagetools import __version__
from imagetools.assets import AssetSubmission, ChainAsset, PrOverrides, TokenAsset
from imagetools.config import Settings, TargetRepo, resolve_target_repo
from imagetools.errors import ImageToolsError
from imagetools.service import SubmissionService

console = Console()


def read_base64(path: str) -> str:
    """Read a file and return its base64 encoding."""
    return base64.b64encode(Path(path).read_bytes()).decode("ascii")


def build_submission(args: argparse.Namespace) -> AssetSubmission:
    """Turn CLI arguments into an asset submission."""
    overrides = PrOverrides(title=args.title, body=args.body)
    svg, png32, png128 = read_base64(args.svg), read_base64(args.png32), read_base64(args.png128)

    if args.address:
        token = TokenAsset(
            index=0,
            chain_id=args.chain_id,
            address=args.address,
            svg_base64=svg,
            png32_base64=png32,
            png128_base64=png128,
        )
        return AssetSubmission(target="token", tokens=(token,), overrides=overrides)

    chain = ChainAsset(chain_id=args.chain_id, svg_base64=svg, png32_base64=png32, png128_base64=png128)
    return AssetSubmission(target="chain", chain=chain, overrides=overrides)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="image-tools - submit token/chain logos as a pull request",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  image-tools-pr --chain-id 1 --address 0x... --svg logo.svg --png32 logo-32.png --png128 logo-128.png
  image-tools-pr --chain-id 10 --svg logo.svg --png32 logo-32.png --png128 logo-128.png

The GitHub token is read from GITHUB_TOKEN (a .env file is honoured).
        """,
    )

    parser.add_argument("--chain-id", required=True, help="Chain id the assets belong to")
    parser.add_argument(
        "--address",
        help="Token contract address (omit to upload chain assets)",
    )
    parser.add_argument("--svg", required=True, help="Path to logo.svg")
    parser.add_argument("--png32", required=True, help="Path to the 32x32 PNG")
    parser.add_argument("--png128", required=True, help="Path to the 128x128 PNG")
    parser.add_argument("--title", help="Pull request title override")
    parser.add_argument("--body", help="Pull request body override")
    parser.add_argument("--owner", help="Target repository owner (overrides configuration)")
    parser.add_argument("--repo", help="Target repository name (overrides configuration)")
    parser.add_argument("--base-branch", help="Branch to open the PR against (default: repo default)")
    parser.add_argument(
        "--version",
        action="version",
        version=f"image-tools {__version__}",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Reduce output verbosity",
    )

    return parser


def resolve_cli_target(args: argparse.Namespace, settings: Settings) -> TargetRepo:
    if args.owner and args.repo:
        return TargetRepo(owner=args.owner, repo=args.repo, reason="override", allow_override=True)
    return resolve_target_repo(settings, verbose=not args.quiet)


def main(argv: Optional[list[str]] = None):
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    settings = Settings.from_env()
    if not settings.github_token:
        console.print("[red]Error: GITHUB_TOKEN environment variable is not set[/red]")
        sys.exit(2)

    try:
        submission = build_submission(args)
    except OSError as e:
        console.print(f"[red]Error reading asset files: {e}[/red]")
        sys.exit(1)

    service = SubmissionService(settings, verbose=not args.quiet)
    target = resolve_cli_target(args, settings)

    if not args.quiet:
        console.print(Panel.fit(
            f"[bold]Repository:[/bold] {target.owner}/{target.repo}\n"
            f"[bold]Target:[/bold] {submission.target}\n"
            f"[bold]Chain:[/bold] {args.chain_id}",
            title="Submission",
        ))

    try:
        result = service.submit(settings.github_token, submission, target=target, base_branch=args.base_branch)

    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)

    except ImageToolsError as e:
        console.print(Panel.fit(
            f"[bold red]❌ Submission failed[/bold red]\n\n"
            f"[bold]Reason:[/bold] {e.message}\n"
            f"[bold]Status:[/bold] {e.http_status_hint}",
            title="Failed",
            border_style="red",
        ))
        sys.exit(1)

    console.print(Panel.fit(
        f"[bold green]✅ Pull request opened![/bold green]\n\n"
        f"[bold]PR URL:[/bold] {result.pr_url}\n"
        f"[bold]Branch:[/bold] {result.head_owner}/{result.head_repo}:{result.branch_name}\n"
        f"[bold]Path:[/bold] {result.path}",
        title="Success",
        border_style="green",
    ))
    sys.exit(0)


if __name__ == "__main__":
    main()
