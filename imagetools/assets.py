"""
Asset layout for the token/chain logo repository.

Maps already-validated uploads to repository files:

    tokens/<chainId>/<address>/logo.svg, logo-32.png, logo-128.png
    chains/<chainId>/logo.svg, logo-32.png, logo-128.png
"""

import re
from dataclasses import dataclass, field
from typing import Literal, Optional

from imagetools.errors import AssetError
from imagetools.models import FileEntry

UploadTarget = Literal["token", "chain"]

ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")

LOGO_FILES = ("logo.svg", "logo-32.png", "logo-128.png")


@dataclass(frozen=True)
class TokenAsset:
    index: int
    chain_id: str
    address: str
    svg_base64: str
    png32_base64: str
    png128_base64: str


@dataclass(frozen=True)
class ChainAsset:
    chain_id: str
    svg_base64: str
    png32_base64: str
    png128_base64: str


@dataclass(frozen=True)
class PrOverrides:
    title: Optional[str] = None
    body: Optional[str] = None


@dataclass(frozen=True)
class AssetSubmission:
    """One upload: several tokens or a single chain, plus PR text overrides."""

    target: UploadTarget
    tokens: tuple[TokenAsset, ...] = ()
    chain: Optional[ChainAsset] = None
    overrides: PrOverrides = field(default_factory=PrOverrides)


def is_evm_address(value: str) -> bool:
    return isinstance(value, str) and bool(ADDRESS_RE.match(value.strip()))


def to_repo_path(*segments: str) -> str:
    """Join path segments with ``/`` after stripping their outer slashes."""
    return "/".join(segment.strip("/") for segment in segments)


def _logo_entries(prefix: tuple[str, ...], svg: str, png32: str, png128: str) -> list[FileEntry]:
    contents = (svg, png32, png128)
    return [
        FileEntry(path=to_repo_path(*prefix, name), content_base64=content)
        for name, content in zip(LOGO_FILES, contents)
    ]


def validate_submission(submission: AssetSubmission) -> None:
    """
    Check the fields the repository layout depends on.

    Image content is validated upstream and is not inspected here.

    Raises:
        AssetError: With one detail per problem
    """
    details: list[dict] = []

    if submission.target == "token":
        if not submission.tokens:
            raise AssetError("At least one token submission required")
        for token in submission.tokens:
            if not token.chain_id.strip():
                details.append({"index": token.index, "field": "chainId", "message": "chainId is required"})
            if not is_evm_address(token.address):
                details.append({"index": token.index, "field": "address", "message": "address must be a valid EVM address"})
    elif submission.target == "chain":
        if submission.chain is None:
            raise AssetError("Chain submission requires chain assets")
        if not submission.chain.chain_id.strip():
            details.append({"field": "chainId", "message": "chainId is required"})
    else:
        raise AssetError(f"Unknown upload target: {submission.target!r}")

    if details:
        raise AssetError(f"Invalid {submission.target} submission", details)


def build_pr_files(submission: AssetSubmission) -> list[FileEntry]:
    """
    Build the files to commit for a submission.

    Token addresses are lowercased in paths.
    """
    validate_submission(submission)

    if submission.target == "token":
        files: list[FileEntry] = []
        for token in submission.tokens:
            prefix = ("tokens", token.chain_id.strip(), token.address.strip().lower())
            files.extend(_logo_entries(prefix, token.svg_base64, token.png32_base64, token.png128_base64))
        return files

    chain = submission.chain
    return _logo_entries(
        ("chains", chain.chain_id.strip()),
        chain.svg_base64,
        chain.png32_base64,
        chain.png128_base64,
    )
