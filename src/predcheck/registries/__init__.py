# SPDX-License-Identifier: MIT
"""Retraction registry clients."""

from .base import RegistryClient
from .crossref import CrossrefRegistry
from .pubmed import PubMedRegistry


__all__ = ["RegistryClient", "CrossrefRegistry", "PubMedRegistry"]
