"""
CLI layer for retryspine.

Provides a Typer application that drives ``RetryExecutor`` against the
simulated endpoint.  All resilience logic lives in ``retryspine.execution``;
this package handles only terminal transport: argument parsing, coloured
output and table formatting.

Entry point::

    retryspine --help
"""

from retryspine.cli.app import app

__all__ = ["app"]
