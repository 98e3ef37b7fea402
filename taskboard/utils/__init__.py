"""
Common utilities package for the Taskboard API.
"""

from taskboard.utils.logger import setup_logger

__all__ = ["setup_logger"]
