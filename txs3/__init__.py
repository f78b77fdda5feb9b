# Licenced under the txs3 licence available at /LICENSE in the txs3 source.

from txs3._version import __version__

__all__ = ["__version__"]
