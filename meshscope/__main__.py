"""Entry point for `python -m meshscope`.

Usage:
    python -m meshscope analyze snapshot.json
    python -m meshscope serve
"""

from __future__ import annotations

from meshscope.cli import cli

cli()
