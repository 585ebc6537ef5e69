"""
ereader - browse, search and read a personal Calibre e-book library.
"""

__version__ = "1.0.0"
