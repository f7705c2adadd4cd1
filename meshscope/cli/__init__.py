"""meshscope command-line interface.

Exposes:
    cli -- Click group entry point (registered as ``meshscope`` script).
"""

from meshscope.cli.main import cli

__all__ = ["cli"]
