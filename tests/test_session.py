import asyncio
import unittest

from lyrisync.errors import FetchMiss, FetchTransportError
from lyrisync.models import ActiveTrack, PlayerSource
from lyrisync.providers import ProviderChain
from lyrisync.session import (
	LOADED_CACHE,
	LOADED_PLAIN,
	LOADED_SYNCED,
	NO_LYRICS,
	NO_SYNCED,
	LyricSession,
	build_queries,
)

from fakes import FakeFetcher, MemoryCache, NoOffsets, snapshot

LRC = "[00:00.00]Hello\n[00:05.00]World"


class FlakyProvider:
	"""Fails hard on the first lookup and misses on every later one"""
	name = "flaky"

	def __init__(self):
		self.calls = []

	async def fetch(self, artist, title, duration=0.0):
		self.calls.append(title)
		if len(self.calls) == 1:
			raise RuntimeError("boom")
		raise FetchMiss(f"nothing for {title}")

	async def close(self):
		pass


def track(source=PlayerSource.SPOTIFY, artist="A", title="B", state="play"):
	return ActiveTrack.from_snapshot(snapshot(source, artist, title, 0.0, 180.0, state))


class BuildQueriesTest(unittest.TestCase):

	def test_mpd_only_original(self):
		queries = build_queries(track(PlayerSource.MPD, "Artist feat. X", "Song (Live)"))
		self.assertEqual(queries, [("Artist feat. X", "Song (Live)")])

	def test_external_fallback_order(self):
		queries = build_queries(track(PlayerSource.SPOTIFY, "Artist & Other", "Song - Remastered"))
		self.assertEqual(queries, [
			("Artist & Other", "Song - Remastered"),
			("Artist", "Song"),
			("Artist", "Song - Remastered"),
			("Artist & Other", "Song"),
		])

	def test_youtube_adds_title_only(self):
		queries = build_queries(track(PlayerSource.YOUTUBE, "Channel", "Song (Official Video)"))
		self.assertEqual(queries, [
			("Channel", "Song (Official Video)"),
			("Channel", "Song"),
			("", "Song"),
		])

	def test_artistless_track(self):
		queries = build_queries(track(PlayerSource.MPD, "", "Song"))
		self.assertEqual(queries, [("", "Song")])

	def test_clean_metadata_single_query(self):
		self.assertEqual(build_queries(track(PlayerSource.SPOTIFY, "Radiohead", "Creep")), [("Radiohead", "Creep")])


class LyricSessionTest(unittest.TestCase):

	def make(self, answers=None, cache=None, show_plain=False):
		self.fetcher = FakeFetcher(answers)
		self.cache = cache if cache is not None else MemoryCache()
		return LyricSession(self.cache, self.fetcher, NoOffsets(), show_plain)

	def test_fetch_and_store_synced(self):
		session = self.make({("A", "B"): (LRC, True)})
		current = asyncio.run(session.load(track()))
		self.assertTrue(current.doc.has_timestamps)
		self.assertEqual(current.label, LOADED_SYNCED)
		self.assertEqual(self.cache.stored, [("A", "B", LRC, True)])
		self.assertEqual(session.status_text(False), LOADED_SYNCED)
		self.assertEqual(session.status_text(False), "")

	def test_timed_flag_comes_from_parsed_document(self):
		session = self.make({("A", "B"): ("just words", True)})
		current = asyncio.run(session.load(track()))
		self.assertEqual(current.label, LOADED_PLAIN)
		self.assertEqual(self.cache.stored[0][3], False)

	def test_fallback_query_wins(self):
		session = self.make({("A", "Song"): (LRC, True)})
		asyncio.run(session.load(track(artist="A", title="Song (Official Audio)")))
		self.assertEqual(self.fetcher.calls, [("A", "Song (Official Audio)"), ("A", "Song")])
		self.assertEqual(self.cache.stored[0][:2], ("A", "Song (Official Audio)"))

	def test_cache_hit_skips_fetch(self):
		session = self.make(cache=MemoryCache({("A", "B"): LRC}))
		current = asyncio.run(session.load(track()))
		self.assertEqual(self.fetcher.calls, [])
		self.assertEqual(current.label, LOADED_CACHE)

	def test_nothing_found(self):
		session = self.make()
		current = asyncio.run(session.load(track()))
		self.assertTrue(current.doc.is_empty)
		self.assertEqual(session.status_text(False), NO_LYRICS)
		self.assertEqual(session.status_text(True), f"Paused - {NO_LYRICS}")
		self.assertEqual(session.status_text(True, True), f"Paused (last active) - {NO_LYRICS}")

	def test_transport_errors_are_misses(self):
		session = self.make()

		async def broken(artist, title, duration=0.0):
			raise FetchTransportError("offline")

		self.fetcher.fetch = broken
		current = asyncio.run(session.load(track()))
		self.assertTrue(current.doc.is_empty)
		self.assertEqual(session.status_text(False), NO_LYRICS)

	def test_unexpected_provider_error_status(self):
		session = self.make()
		self.fetcher.last_error = ValueError("bad payload")
		asyncio.run(session.load(track()))
		self.assertEqual(session.status_text(False), "Lyrics error: bad payload")

	def test_provider_error_survives_later_misses(self):
		provider = FlakyProvider()
		session = LyricSession(MemoryCache(), ProviderChain([provider]), NoOffsets())
		asyncio.run(session.load(track(title="Song (Official Video)")))
		self.assertEqual(provider.calls[:2], ["Song (Official Video)", "Song"])
		self.assertEqual(session.status_text(False), "Lyrics error: boom")

	def test_plain_lyrics_status(self):
		session = self.make({("A", "B"): ("words", False)})
		asyncio.run(session.load(track()))
		self.assertEqual(session.status_text(False), NO_SYNCED)
		session.show_plain = True
		self.assertEqual(session.status_text(True), "Paused")

	def test_new_track_detection(self):
		session = self.make()
		self.assertTrue(session.is_new_track(track()))
		asyncio.run(session.load(track()))
		self.assertFalse(session.is_new_track(track(state="pause")))
		self.assertTrue(session.is_new_track(track(PlayerSource.YOUTUBE)))


if __name__ == "__main__":
	unittest.main()
