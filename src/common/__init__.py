"""
Shared helpers for the command line runners.
"""

from .logger import setup_logger

__all__ = ["setup_logger"]
