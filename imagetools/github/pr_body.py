"""
PR Title and Body Generation for image-tools.

Default titles and descriptions for asset submissions. Non-empty
overrides supplied by the contributor win.
"""

from dataclasses import dataclass
from typing import Optional

from imagetools.assets import LOGO_FILES, AssetSubmission


@dataclass(frozen=True)
class PrMetadata:
    title: str
    body: str


def _override(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


def _locations(*prefix: str) -> list[str]:
    base = "/" + "/".join(prefix)
    return [f"{base}/{name}" for name in LOGO_FILES]


def build_default_pr_metadata(submission: AssetSubmission) -> PrMetadata:
    """
    Build the PR title and body for a submission.

    Args:
        submission: Token or chain upload

    Returns:
        PrMetadata with overrides applied
    """
    if submission.target == "token":
        tokens = sorted(submission.tokens, key=lambda t: t.index)
        addresses = [t.address.strip().lower() for t in tokens]

        # Unique chain ids, first-seen order
        chains = list(dict.fromkeys(t.chain_id.strip() for t in tokens))

        title = f"feat: add token assets ({len(tokens)})"
        locations = [
            loc
            for t, address in zip(tokens, addresses)
            for loc in _locations("tokens", t.chain_id.strip(), address)
        ]
        lines = [
            f"Chains: {', '.join(chains) or 'n/a'}",
            f"Addresses: {', '.join(addresses) or 'n/a'}",
            "",
            "Uploaded locations:",
        ]
    else:
        chain_id = submission.chain.chain_id.strip()
        title = f"feat: add chain assets on {chain_id}"
        locations = _locations("chains", chain_id)
        lines = [f"Chain: {chain_id}", "", "Uploaded locations:"]

    lines.extend(f"- {loc}" for loc in locations)
    body = "\n".join(lines)

    overrides = submission.overrides
    return PrMetadata(
        title=_override(overrides.title) or title,
        body=_override(overrides.body) or body,
    )
