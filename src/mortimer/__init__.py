"""Mortimer - log bundle field extraction and statistics"""

from mortimer.__version__ import __version__


__all__ = ['__version__']
