"""
Provides txs3 version information.
"""

from incremental import Version

__version__ = Version("txs3", 0, 1, 0)
__all__ = ["__version__"]
