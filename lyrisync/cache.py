import os

from .log import LOGGER
from .normalize import (
	UNKNOWN_ARTIST,
	UNKNOWN_TITLE,
	is_unknown_artist,
	sanitize_filename,
	track_label,
)

SYNCED_EXT = ".lrc"
PLAIN_EXT = ".txt"


class LyricCache:
	"""
	On-disk lyric store.

	Files are named "<Artist> - <Title>.lrc" for synced lyrics and ".txt"
	for plain ones, or just "<Title>" when the artist is unknown. Loads
	prefer the synced file and fall back to the title-only name.
	"""

	def __init__(self, cache_dir):
		self.cache_dir = cache_dir

	def artist_title_path(self, artist, title, ext):
		safe_artist = sanitize_filename(artist) or UNKNOWN_ARTIST
		safe_title = sanitize_filename(title) or UNKNOWN_TITLE
		return os.path.join(self.cache_dir, f"{safe_artist} - {safe_title}{ext}")

	def title_only_path(self, title, ext):
		safe_title = sanitize_filename(title) or UNKNOWN_TITLE
		return os.path.join(self.cache_dir, f"{safe_title}{ext}")

	def candidate_paths(self, artist, title):
		paths = []
		if not is_unknown_artist(artist):
			paths.append(self.artist_title_path(artist, title, SYNCED_EXT))
			paths.append(self.artist_title_path(artist, title, PLAIN_EXT))
		paths.append(self.title_only_path(title, SYNCED_EXT))
		paths.append(self.title_only_path(title, PLAIN_EXT))
		return paths

	def load(self, artist, title):
		"""Return cached lyric text, or None"""
		for path in self.candidate_paths(artist, title):
			if not os.path.exists(path):
				continue
			try:
				with open(path, "r", encoding="utf-8", newline="") as f:
					content = f.read()
			except (OSError, UnicodeDecodeError) as e:
				LOGGER.log_warn(f"Failed to read cached lyrics {path}: {e}")
				continue
			LOGGER.log_debug(f"Loaded cached lyrics: {path}")
			return content
		return None

	def store(self, artist, title, text, timed):
		"""Write lyrics to the cache. Failures are logged and ignored."""
		if not text:
			return None
		ext = SYNCED_EXT if timed else PLAIN_EXT
		if is_unknown_artist(artist):
			path = self.title_only_path(title, ext)
		else:
			path = self.artist_title_path(artist, title, ext)

		try:
			os.makedirs(self.cache_dir, exist_ok=True)
			with open(path, "w", encoding="utf-8", newline="") as f:
				f.write(text)
		except OSError as e:
			LOGGER.log_error(f"Failed to save lyrics: {str(e)}")
			return None

		LOGGER.log_info(f"Saved lyrics to: {path}")
		LOGGER.log_trace(f"Lyrics content sample: {text[:200]}...")
		return path


class OffsetStore:
	"""
	Per-track timing corrections, one "Artist - Title = seconds" per line.

	Lines starting with '#' are comments. A leading byte order mark is
	ignored.
	"""

	def __init__(self, path):
		self.path = path

	def offset_for(self, artist, title):
		if not title or not self.path or not os.path.exists(self.path):
			return 0.0

		wanted = track_label(artist, title)
		try:
			with open(self.path, "r", encoding="utf-8", errors="replace") as f:
				lines = f.readlines()
		except OSError as e:
			LOGGER.log_warn(f"Failed to read offsets file {self.path}: {e}")
			return 0.0

		for line in lines:
			line = line.lstrip("\ufeff").strip()
			if not line or line.startswith("#"):
				continue
			key, sep, value = line.partition("=")
			if not sep or key.strip() != wanted:
				continue
			try:
				seconds = float(value.strip())
			except ValueError:
				LOGGER.log_debug(f"Ignoring invalid offset for {wanted}: {value.strip()}")
				continue
			LOGGER.log_debug(f"Offset for {wanted}: {seconds:+.2f}s")
			return seconds

		return 0.0
