# SPDX-License-Identifier: MIT
"""PredCheck - Retraction and predatory-journal screening of a paper's references."""

from importlib.metadata import PackageNotFoundError, version

from .orchestrator import BatchOrchestrator
from .retraction_resolver import RetractionResolver
from .scorer import PredatoryScorer


__all__: list[str] = [
    "BatchOrchestrator",
    "PredatoryScorer",
    "RetractionResolver",
    "__version__",
]

# Get version from installed package metadata
__version__: str
try:
    __version__ = version("predcheck")
except PackageNotFoundError:
    # Package is not installed, use development fallback
    __version__ = "development"
