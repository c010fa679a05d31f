"""
Error taxonomy shared by the player sources, lyric providers and the engine.

A source that simply has nothing to report is not an error: its ``poll()``
returns ``None``. Everything below is raised at a seam and caught by the
engine, except ConfigError which aborts startup.
"""


class LyrisyncError(Exception):
	"""Base class for every error raised by lyrisync"""


class ConfigError(LyrisyncError):
	"""Configuration could not be read or is invalid (fatal at startup)"""


class SourceError(LyrisyncError):
	"""A player source failed to produce a snapshot this tick"""

	def __init__(self, source, message):
		super().__init__(f"{source}: {message}")
		self.source = source


class ConnectionLost(SourceError):
	"""The local daemon connection dropped; the caller schedules a reconnect"""


class FetchMiss(LyrisyncError):
	"""No provider returned lyrics for the query"""


class FetchTransportError(FetchMiss):
	"""Network or protocol failure while fetching lyrics"""
