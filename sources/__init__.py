"""Data source implementations for the kiosk.

Importing this package registers all built-in source types.
"""

from sources.openf1_source import OpenF1Source

__all__ = ["OpenF1Source"]
