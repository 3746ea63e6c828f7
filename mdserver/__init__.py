"""
mdserver - browse, render and search a directory tree of markdown files.
"""

__version__ = "0.1.0"
