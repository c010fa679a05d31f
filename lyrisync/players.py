import asyncio
import os
import subprocess

from mpd import MPDError
from mpd.asyncio import MPDClient

from .errors import ConnectionLost, SourceError
from .log import LOGGER
from .models import PlayerSnapshot, PlayerSource
from .normalize import UNKNOWN_ARTIST, UNKNOWN_TITLE

IDLE_SUBSYSTEMS = ("player", "playlist")
PLAYERCTL_FORMAT = '"{{playerName}}","{{artist}}","{{title}}","{{position}}","{{status}}","{{mpris:length}}"'


class SnapshotSource:
	"""One player backend. poll() returns a PlayerSnapshot or None when idle."""
	source = None

	def poll(self):
		raise NotImplementedError

	def close(self):
		pass


def tag_value(song, *names):
	"""First non-empty tag among names, joining multi-value tags"""
	for name in names:
		value = song.get(name)
		if isinstance(value, list):
			value = ", ".join(v for v in value if v)
		if value and str(value).strip():
			return str(value).strip()
	return ""


def guess_from_filename(uri):
	"""Return (artist, title, basename) guessed from a file name like 'Artist - Title.flac'"""
	base = os.path.basename(uri or "")
	stem, ext = os.path.splitext(base)
	base = (stem if stem else base).strip()
	artist, sep, title = base.partition(" - ")
	if sep and artist.strip() and title.strip():
		return artist.strip(), title.strip(), base
	return "", "", base


def to_float(value, default=0.0):
	try:
		return float(value)
	except (TypeError, ValueError):
		return default


def snapshot_from_mpd(status, song):
	"""Map MPD status/currentsong replies onto a PlayerSnapshot"""
	state = status.get("state", "stop")
	is_playing = state == "play"
	is_paused = state == "pause"
	is_stopped = state == "stop"
	elapsed = to_float(status.get("elapsed"))

	if not song:
		return PlayerSnapshot(
			source=PlayerSource.MPD, elapsed=elapsed,
			is_playing=is_playing, is_paused=is_paused, is_stopped=is_stopped,
			has_song=False,
		)

	artist = tag_value(song, "artist", "albumartist")
	title = tag_value(song, "title", "name")
	guessed_artist, guessed_title, base = guess_from_filename(song.get("file"))
	if guessed_title:
		artist = artist or guessed_artist
		title = title or guessed_title
	elif not title:
		title = base

	duration = to_float(song.get("duration") or status.get("duration") or song.get("time"))

	return PlayerSnapshot(
		source=PlayerSource.MPD,
		artist=artist or UNKNOWN_ARTIST,
		title=title or UNKNOWN_TITLE,
		elapsed=elapsed,
		duration=duration if duration > 0 else 0.0,
		is_playing=is_playing,
		is_paused=is_paused,
		is_stopped=is_stopped,
		has_song=True,
	)


class MPDSource(SnapshotSource):
	"""
	Persistent python-mpd2 asyncio connection to the local daemon.

	The connection doubles as the change-notification channel: a watcher
	task follows the daemon's "idle" reports and raises a flag the engine
	waits on between ticks.
	"""
	source = PlayerSource.MPD

	def __init__(self, host, port, password=None, timeout=10, client_factory=MPDClient):
		self.host = host
		self.port = port
		self.password = password
		self.timeout = timeout
		self.client_factory = client_factory
		self.client = None
		self.watcher = None
		self.changed = None

	@property
	def connected(self):
		return self.client is not None and self.client.connected

	async def connect(self):
		if self.connected:
			return
		client = self.client_factory()
		try:
			await asyncio.wait_for(client.connect(self.host, self.port), self.timeout)
			if self.password:
				await asyncio.wait_for(client.password(self.password), self.timeout)
		except (MPDError, OSError, asyncio.TimeoutError) as e:
			client.disconnect()
			reason = str(e) or type(e).__name__
			raise ConnectionLost("mpd", f"connection to {self.host}:{self.port} failed: {reason}") from e
		self.client = client
		self.changed = asyncio.Event()
		self.watcher = asyncio.ensure_future(self.watch(client, self.changed))
		LOGGER.log_info(f"Connected to MPD at {self.host}:{self.port}")

	async def watch(self, client, changed):
		"""Raise the change flag on every player or queue change"""
		try:
			async for subsystems in client.idle(IDLE_SUBSYSTEMS):
				LOGGER.log_trace(f"MPD idle wake: {subsystems}")
				changed.set()
		except (MPDError, OSError) as e:
			# Wake the engine so its next poll notices the loss
			LOGGER.log_debug(f"MPD idle watcher stopped: {e}")
			changed.set()

	def disconnect(self):
		client, self.client = self.client, None
		watcher, self.watcher = self.watcher, None
		if watcher is not None:
			watcher.cancel()
		if client is None:
			return
		try:
			client.disconnect()
		except (MPDError, OSError) as e:
			LOGGER.log_debug(f"MPD disconnect error: {e}")

	close = disconnect

	def lost(self, e):
		self.disconnect()
		return ConnectionLost("mpd", str(e) or type(e).__name__)

	async def poll(self):
		if not self.connected:
			self.disconnect()
			raise ConnectionLost("mpd", "not connected")
		LOGGER.log_trace("mpd polling...")
		try:
			status = await asyncio.wait_for(self.client.status(), self.timeout)
			song = await asyncio.wait_for(self.client.currentsong(), self.timeout)
		except (MPDError, OSError, asyncio.TimeoutError) as e:
			raise self.lost(e) from e
		return snapshot_from_mpd(status, song)

	async def wait_for_change(self, timeout):
		"""True when the daemon reported a change within timeout"""
		changed = self.changed
		if changed is None or not self.connected:
			await asyncio.sleep(timeout)
			return False
		try:
			await asyncio.wait_for(changed.wait(), timeout)
		except asyncio.TimeoutError:
			return False
		changed.clear()
		return True


def parse_playerctl_output(output, source):
	"""Turn one line of PLAYERCTL_FORMAT output into a PlayerSnapshot"""
	output = output.strip()
	if not output or "No players found" in output:
		return None

	if output.startswith('"') and output.endswith('"'):
		output = output[1:-1]
	fields = output.split('","')
	if len(fields) != 6:
		LOGGER.log_debug(f"Unexpected playerctl output: {output[:200]}")
		return None

	_player_name, artist, title, position, status, length = fields
	artist = artist.strip()
	title = title.strip()
	status = status.strip().lower()

	if status not in ("playing", "paused"):
		return None

	# MPRIS reports microseconds
	elapsed = to_float(position) / 1_000_000
	duration = to_float(length) / 1_000_000

	return PlayerSnapshot(
		source=source,
		artist=artist,
		title=title,
		elapsed=max(0.0, elapsed),
		duration=max(0.0, duration),
		is_playing=status == "playing",
		is_paused=status == "paused",
		is_stopped=False,
		has_song=bool(artist and title),
	)


class PlayerctlSource(SnapshotSource):
	"""Desktop player on the session bus, read through playerctl"""

	def __init__(self, source, players, timeout=1.0, runner=subprocess.run):
		self.source = source
		self.players = list(players)
		self.timeout = timeout
		self.runner = runner

	def command(self):
		return ["playerctl", "-p", ",".join(self.players), "metadata", "--format", PLAYERCTL_FORMAT]

	def poll(self):
		try:
			result = self.runner(
				self.command(), capture_output=True, text=True, errors="replace",
				timeout=self.timeout,
			)
		except subprocess.TimeoutExpired as e:
			raise SourceError(self.source.label, f"playerctl timed out after {self.timeout}s") from e
		except OSError as e:
			raise SourceError(self.source.label, f"playerctl unavailable: {e}") from e

		LOGGER.log_trace(f"playerctl polling {self.source.label}...")
		if result.returncode != 0:
			return None
		return parse_playerctl_output(result.stdout, self.source)


def build_sources(options):
	"""Snapshot sources in arbitration priority order"""
	sources = []
	if options.enable_mpd:
		sources.append(MPDSource(options.mpd_host, options.mpd_port, options.mpd_password, options.mpd_timeout))
	if options.enable_spotify:
		sources.append(PlayerctlSource(PlayerSource.SPOTIFY, options.spotify_players, options.playerctl_timeout))
	if options.enable_youtube:
		sources.append(PlayerctlSource(PlayerSource.YOUTUBE, options.youtube_players, options.playerctl_timeout))
	return sources
