"""
image-tools

Commits token and chain logo assets to a GitHub repository and opens a
pull request, forking the repository when direct access is denied.
"""

__version__ = "0.1.0"

from imagetools.graph import PrOrchestrator
from imagetools.models import FileEntry, PrJob, PrResult, RepoRef

__all__ = ["PrOrchestrator", "FileEntry", "PrJob", "PrResult", "RepoRef", "__version__"]
