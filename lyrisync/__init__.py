"""
lyrisync - synchronized lyrics for MPD and desktop media-session players
"""

__version__ = "1.0.0"
