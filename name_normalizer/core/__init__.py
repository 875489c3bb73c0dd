"""
Core domain layer for name-normalizer.

This package contains the parsing, similarity and variant-detection logic.
Nothing here touches files or databases; collaborators come in through
protocols.
"""

from __future__ import annotations

__all__ = []
