import os
import shutil
import tempfile
import unittest

from lyrisync.cache import LyricCache, OffsetStore

LRC = "[00:01.00]Karma police\r\n[00:05.00]Arrest this man\n"


class LyricCacheTest(unittest.TestCase):

	def setUp(self):
		self.dir = tempfile.mkdtemp()
		self.cache = LyricCache(os.path.join(self.dir, "lyrics"))

	def tearDown(self):
		shutil.rmtree(self.dir, ignore_errors=True)

	def test_round_trip_timed(self):
		path = self.cache.store("Radiohead", "Karma Police", LRC, True)
		self.assertTrue(path.endswith("Radiohead - Karma Police.lrc"))
		self.assertEqual(self.cache.load("Radiohead", "Karma Police"), LRC)

	def test_prefers_synced_file(self):
		self.cache.store("Radiohead", "Karma Police", "plain words", False)
		self.cache.store("Radiohead", "Karma Police", LRC, True)
		self.assertEqual(self.cache.load("Radiohead", "Karma Police"), LRC)

	def test_plain_file(self):
		path = self.cache.store("Radiohead", "Karma Police", "plain words", False)
		self.assertTrue(path.endswith(".txt"))
		self.assertEqual(self.cache.load("Radiohead", "Karma Police"), "plain words")

	def test_unknown_artist_uses_title_only(self):
		path = self.cache.store("Unknown Artist", "Karma Police", LRC, True)
		self.assertEqual(os.path.basename(path), "Karma Police.lrc")
		self.assertEqual(self.cache.load("", "Karma Police"), LRC)

	def test_falls_back_to_title_only_file(self):
		self.cache.store("", "Karma Police", "plain words", False)
		self.assertEqual(self.cache.load("Radiohead", "Karma Police"), "plain words")

	def test_sanitized_names(self):
		path = self.cache.store("AC/DC", "What?", "text", False)
		self.assertEqual(os.path.basename(path), "AC_DC - What_.txt")

	def test_miss(self):
		self.assertIsNone(self.cache.load("Nobody", "Nothing"))

	def test_store_failure_is_ignored(self):
		blocker = os.path.join(self.dir, "file")
		with open(blocker, "w") as f:
			f.write("x")
		cache = LyricCache(os.path.join(blocker, "sub"))
		self.assertIsNone(cache.store("A", "B", "text", False))

	def test_empty_text_not_stored(self):
		self.assertIsNone(self.cache.store("A", "B", "", False))


class OffsetStoreTest(unittest.TestCase):

	def setUp(self):
		self.dir = tempfile.mkdtemp()
		self.path = os.path.join(self.dir, ".offsets")

	def tearDown(self):
		shutil.rmtree(self.dir, ignore_errors=True)

	def write(self, text):
		with open(self.path, "w", encoding="utf-8") as f:
			f.write(text)

	def test_lookup(self):
		self.write(
			"\ufeff# offsets in seconds\n"
			"\n"
			"Radiohead - Karma Police = -0.75\n"
			"Untitled = 1.5\n"
		)
		store = OffsetStore(self.path)
		self.assertAlmostEqual(store.offset_for("Radiohead", "Karma Police"), -0.75)
		self.assertAlmostEqual(store.offset_for("Unknown Artist", "Untitled"), 1.5)
		self.assertEqual(store.offset_for("Radiohead", "Creep"), 0.0)

	def test_bom_on_first_entry(self):
		self.write("\ufeffA - B = 2\n")
		self.assertAlmostEqual(OffsetStore(self.path).offset_for("A", "B"), 2.0)

	def test_invalid_value_skipped(self):
		self.write("A - B = soon\nA - B = 0.5\n")
		self.assertAlmostEqual(OffsetStore(self.path).offset_for("A", "B"), 0.5)

	def test_missing_file(self):
		self.assertEqual(OffsetStore(self.path).offset_for("A", "B"), 0.0)


if __name__ == "__main__":
	unittest.main()
