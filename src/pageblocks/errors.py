# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Page Blocks exception hierarchy.

All Page Blocks errors inherit from PageBlocksError. The extraction engine
itself never raises for page content (selector and style failures are soft);
only the input loaders raise.
"""

from __future__ import annotations


class PageBlocksError(Exception):
    """Base exception for all Page Blocks errors."""


class DocumentParseError(PageBlocksError):
    """HTML input is empty or could not be parsed into a DOM."""


class SelectorConfigError(PageBlocksError):
    """Selector configuration payload is malformed (wrong shape or types)."""
