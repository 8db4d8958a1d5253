"""latticegw command-line interface.

Exposes:
    cli -- Click group entry point (registered as ``latticegw`` script).
"""

from latticegw.cli.main import cli

__all__ = ["cli"]
