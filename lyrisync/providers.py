import json
import asyncio
from urllib.parse import quote

import aiohttp

from .errors import FetchMiss, FetchTransportError
from .log import LOGGER
from .lyrics import TIMED_MARKER
from .normalize import is_unknown_artist

LRCLIB_URL = "https://lrclib.net/api"
OVH_URL = "https://api.lyrics.ovh/v1"
DURATION_TOLERANCE = 3.0


def duration_close(target, actual):
	"""Durations match when either is unknown or they differ by 3s at most"""
	if not target or not actual or target <= 0 or actual <= 0:
		return True
	return abs(target - actual) <= DURATION_TOLERANCE


def is_timed_text(text):
	return bool(text) and TIMED_MARKER.search(text) is not None


class LyricProvider:
	"""A remote lyric source. fetch() returns (text, is_timed)."""
	name = "provider"

	async def fetch(self, artist, title, duration=0.0):
		raise NotImplementedError

	async def close(self):
		pass


class HttpProvider(LyricProvider):
	"""Provider speaking JSON over HTTP through a shared aiohttp session"""

	def __init__(self, session=None, timeout=20.0, user_agent=None):
		self.session = session
		self.timeout = timeout
		self.user_agent = user_agent
		self.own_session = session is None

	def get_session(self):
		if self.session is None:
			headers = {"User-Agent": self.user_agent} if self.user_agent else None
			self.session = aiohttp.ClientSession(headers=headers)
		return self.session

	async def close(self):
		if self.own_session and self.session is not None:
			await self.session.close()
			self.session = None

	async def get_json(self, url, params=None):
		"""GET url and decode JSON. None on any non-200 answer or bad body."""
		session = self.get_session()
		try:
			async with session.get(url, params=params, timeout=aiohttp.ClientTimeout(total=self.timeout)) as response:
				if response.status != 200:
					LOGGER.log_debug(f"{self.name} error: HTTP {response.status}")
					return None
				try:
					return await response.json(content_type=None)
				except (aiohttp.ContentTypeError, json.JSONDecodeError):
					content = await response.text()
					LOGGER.log_debug(f"{self.name} error: Invalid JSON. Raw response: {content[:200]}")
					return None
		except (aiohttp.ClientError, asyncio.TimeoutError) as e:
			raise FetchTransportError(f"{self.name}: {str(e) or type(e).__name__}") from e


class LrclibProvider(HttpProvider):
	name = "lrclib"

	def pick_get(self, data, duration):
		if not isinstance(data, dict):
			return None
		if not duration_close(duration, data.get("duration")):
			LOGGER.log_debug(f"LRCLIB get rejected: duration {data.get('duration')} vs {duration}")
			return None
		if data.get("syncedLyrics"):
			return data["syncedLyrics"], True
		if data.get("plainLyrics"):
			return data["plainLyrics"], False
		return None

	def pick_search(self, items, duration):
		"""Closest synced result by duration, else the closest plain one"""
		if not isinstance(items, list):
			return None
		best_synced = best_plain = None
		best_synced_diff = best_plain_diff = float("inf")

		for item in items:
			if not isinstance(item, dict):
				continue
			diff = 1e6
			item_duration = item.get("duration")
			if duration and duration > 0 and isinstance(item_duration, (int, float)) and item_duration > 0:
				diff = abs(duration - item_duration)
			if item.get("syncedLyrics") and diff < best_synced_diff:
				best_synced, best_synced_diff = item["syncedLyrics"], diff
			if item.get("plainLyrics") and diff < best_plain_diff:
				best_plain, best_plain_diff = item["plainLyrics"], diff

		if best_synced:
			return best_synced, True
		if best_plain:
			return best_plain, False
		return None

	async def fetch(self, artist, title, duration=0.0):
		get_error = None
		if not is_unknown_artist(artist):
			try:
				data = await self.get_json(f"{LRCLIB_URL}/get", {"track_name": title, "artist_name": artist})
				result = self.pick_get(data, duration)
				if result:
					return result
			except FetchTransportError as e:
				# /search may still answer
				LOGGER.log_debug(f"LRCLIB get failed: {e}")
				get_error = e

		params = {"track_name": title}
		if not is_unknown_artist(artist):
			params["artist_name"] = artist
		items = await self.get_json(f"{LRCLIB_URL}/search", params)
		result = self.pick_search(items, duration)
		if result:
			return result
		if get_error is not None and items is None:
			raise get_error
		raise FetchMiss(f"lrclib: nothing for {artist} - {title}")


class OvhProvider(HttpProvider):
	name = "lyrics.ovh"

	async def fetch(self, artist, title, duration=0.0):
		if not artist or not title:
			raise FetchMiss("lyrics.ovh: needs artist and title")
		url = f"{OVH_URL}/{quote(artist, safe='')}/{quote(title, safe='')}"
		data = await self.get_json(url)
		lyrics = data.get("lyrics") if isinstance(data, dict) else None
		if not lyrics:
			raise FetchMiss(f"lyrics.ovh: nothing for {artist} - {title}")
		return lyrics, False


class SyncedLyricsProvider(LyricProvider):
	"""syncedlyrics search, run on the loop's default executor"""
	name = "syncedlyrics"

	def __init__(self, timeout=20.0):
		self.timeout = timeout

	def worker(self, search_term, synced=True):
		import syncedlyrics
		if synced:
			return syncedlyrics.search(search_term)
		return syncedlyrics.search(search_term, plain_only=True)

	async def fetch(self, artist, title, duration=0.0):
		search_term = f"{title} {artist}".strip()
		if not search_term:
			raise FetchMiss("syncedlyrics: empty search term")

		LOGGER.log_debug(f"Starting syncedlyrics search: {search_term} ({duration}s)")
		loop = asyncio.get_running_loop()
		for synced in (True, False):
			try:
				lyrics = await asyncio.wait_for(
					loop.run_in_executor(None, self.worker, search_term, synced),
					timeout=self.timeout,
				)
			except asyncio.TimeoutError as e:
				raise FetchTransportError(f"syncedlyrics: timed out after {self.timeout}s") from e
			if lyrics:
				timed = synced and is_timed_text(lyrics)
				LOGGER.log_debug(f"Found {'synced' if timed else 'plain'} lyrics via syncedlyrics")
				return lyrics, timed
			LOGGER.log_trace("Initiating plain lyrics fallback search")

		raise FetchMiss(f"syncedlyrics: nothing for {search_term}")


class ProviderChain:
	"""
	Ask each provider in order until one returns lyrics.

	Raises FetchMiss when every provider came back empty, and
	FetchTransportError when every provider failed on the network.
	Anything else a provider raises is recorded in last_error and counted
	as a miss.
	"""

	def __init__(self, providers):
		self.providers = list(providers)
		self.last_error = None

	async def fetch(self, artist, title, duration=0.0):
		self.last_error = None
		transport_errors = 0

		for provider in self.providers:
			try:
				text, timed = await provider.fetch(artist, title, duration)
			except FetchTransportError as e:
				transport_errors += 1
				LOGGER.log_warn(f"Lyrics transport error from {provider.name}: {e}")
				continue
			except FetchMiss as e:
				LOGGER.log_debug(f"Lyrics miss: {e}")
				continue
			except Exception as e:
				self.last_error = e
				LOGGER.log_error(f"Lyrics error: {provider.name}: {e}")
				continue

			if text:
				LOGGER.log_info(f"Lyrics from {provider.name} for {artist or '?'} - {title} ({'synced' if timed else 'plain'})")
				return text, timed

		if self.providers and transport_errors == len(self.providers):
			raise FetchTransportError(f"all providers unreachable for {artist} - {title}")
		raise FetchMiss(f"no lyrics for {artist} - {title}")

	async def close(self):
		for provider in self.providers:
			await provider.close()


def build_providers(options, session=None):
	"""Provider chain from the configured source names"""
	providers = []
	for name in options.providers:
		if name == "lrclib":
			providers.append(LrclibProvider(session, options.fetch_timeout, options.user_agent))
		elif name in ("ovh", "lyrics.ovh"):
			providers.append(OvhProvider(session, options.fetch_timeout, options.user_agent))
		elif name == "syncedlyrics":
			providers.append(SyncedLyricsProvider(options.fetch_timeout))
		else:
			LOGGER.log_warn(f"Unknown lyrics source in config: {name}")
	if options.use_syncedlyrics and not any(isinstance(p, SyncedLyricsProvider) for p in providers):
		providers.append(SyncedLyricsProvider(options.fetch_timeout))
	return ProviderChain(providers)
