"""
Track sessions: everything tied to one (source, artist, title).

A new session starts whenever the arbitrated track changes identity. It
reads the user's offset, looks in the cache, then walks an ordered list of
lyric queries against the providers until one answers.
"""
from dataclasses import dataclass
from typing import Optional

from .errors import FetchMiss, FetchTransportError
from .log import LOGGER
from .lyrics import EMPTY_DOCUMENT, LyricDocument, parse_lyrics
from .models import PlayerSource
from .normalize import normalize_artist, normalize_title

LOADING = "Loading lyrics..."
LOADED_SYNCED = "Loaded synced lyrics"
LOADED_PLAIN = "Loaded lyrics"
LOADED_CACHE = "Loaded from cache"
NO_LYRICS = "No lyrics found"
NO_SYNCED = "No synced lyrics"
PAUSED = "Paused"
PAUSED_LAST_ACTIVE = "Paused (last active)"


@dataclass(frozen=True)
class QueryContext:
	artist: str
	title: str
	source: PlayerSource
	norm_artist: Optional[str] = None
	norm_title: Optional[str] = None

	@classmethod
	def for_track(cls, track):
		# MPD tags are trusted as they are
		if track.source is PlayerSource.MPD:
			return cls(track.artist, track.title, track.source)
		return cls(
			track.artist, track.title, track.source,
			normalize_artist(track.artist), normalize_title(track.title),
		)


def original_query(ctx):
	return ctx.artist, ctx.title


def normalized_query(ctx):
	if not ctx.norm_title:
		return None
	artist = ctx.norm_artist or ctx.artist
	if artist != ctx.artist or ctx.norm_title != ctx.title:
		return artist, ctx.norm_title
	return None


def normalized_artist_query(ctx):
	if ctx.norm_artist and ctx.norm_artist != ctx.artist:
		return ctx.norm_artist, ctx.title
	return None


def normalized_title_query(ctx):
	if ctx.norm_title and ctx.norm_title != ctx.title:
		return ctx.artist, ctx.norm_title
	return None


def title_only_query(ctx):
	if ctx.source is not PlayerSource.YOUTUBE and ctx.artist:
		return None
	title = ctx.norm_title or ctx.title
	return ("", title) if title else None


QUERY_BUILDERS = (
	original_query,
	normalized_query,
	normalized_artist_query,
	normalized_title_query,
	title_only_query,
)


def build_queries(track, builders=QUERY_BUILDERS):
	"""Ordered, de-duplicated (artist, title) queries for track"""
	ctx = QueryContext.for_track(track)
	queries = []
	for builder in builders:
		query = builder(ctx)
		if query and query not in queries:
			queries.append(query)
	return queries


@dataclass
class TrackSession:
	source: PlayerSource
	artist: str
	title: str
	doc: LyricDocument = EMPTY_DOCUMENT
	text: Optional[str] = None
	label: str = ""
	offset: float = 0.0
	error: Optional[str] = None
	announced: bool = False

	@property
	def key(self):
		return (self.source, self.artist, self.title)

	@property
	def has_lyrics(self):
		return not self.doc.is_empty


class LyricSession:
	"""Owns the current TrackSession and the lookups that fill it"""

	def __init__(self, cache, fetcher, offsets, show_plain=False):
		self.cache = cache
		self.fetcher = fetcher
		self.offsets = offsets
		self.show_plain = show_plain
		self.current: Optional[TrackSession] = None
		self.last_error = None

	def is_new_track(self, track):
		return self.current is None or self.current.key != track.key

	def clear(self):
		self.current = None

	async def fetch(self, track):
		"""
		Walk the query list, returning (text, timed) or (None, False). The
		first provider error seen on any query is kept in last_error.
		"""
		self.last_error = None
		for artist, title in build_queries(track):
			LOGGER.log_debug(f"Lyrics query: {artist or '<no artist>'} - {title}")
			try:
				return await self.fetcher.fetch(artist, title, track.duration)
			except FetchTransportError as e:
				LOGGER.log_warn(f"Lyrics fetch failed: {e}")
			except FetchMiss as e:
				LOGGER.log_debug(f"Lyrics miss: {e}")
			finally:
				if self.last_error is None:
					self.last_error = getattr(self.fetcher, "last_error", None)
		return None, False

	async def load(self, track):
		"""Start a session for track and fill in its lyrics"""
		session = TrackSession(source=track.source, artist=track.artist, title=track.title)
		self.current = session
		session.offset = self.offsets.offset_for(track.artist, track.title) if self.offsets else 0.0

		cached = self.cache.load(track.artist, track.title) if self.cache else None
		if cached is not None:
			session.text = cached
			session.doc = parse_lyrics(cached)
			session.label = LOADED_CACHE
			return session

		text, _timed = await self.fetch(track)
		if text:
			session.text = text
			session.doc = parse_lyrics(text)
			# The parsed document decides the extension
			timed = session.doc.has_timestamps
			if self.cache:
				self.cache.store(track.artist, track.title, text, timed)
			session.label = LOADED_SYNCED if timed else LOADED_PLAIN
		else:
			if self.last_error is not None:
				session.error = f"Lyrics error: {self.last_error}"
			LOGGER.log_info(f"No lyrics for {track.artist} - {track.title}")
		return session

	def status_text(self, paused, showing_last_active=False):
		"""Status line for this tick. The load label is shown once."""
		session = self.current
		status = ""
		if session is not None:
			if not session.has_lyrics:
				status = session.error or NO_LYRICS
			elif not session.doc.has_timestamps and not self.show_plain:
				status = NO_SYNCED
			elif not session.announced:
				status = session.label
			session.announced = True

		if paused:
			label = PAUSED_LAST_ACTIVE if showing_last_active else PAUSED
			status = f"{label} - {status}" if status else label
		return status
