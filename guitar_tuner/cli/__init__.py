"""Command-line interface for the guitar tuner."""

from .main import main

__all__ = ["main"]
