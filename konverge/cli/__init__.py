"""Konverge command-line interface.

Exposes:
    cli -- Click group entry point (registered as ``konverge`` script).
"""

from konverge.cli.main import cli

__all__ = ["cli"]
