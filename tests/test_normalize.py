import unittest

from lyrisync.normalize import (
	is_unknown_artist,
	normalize_artist,
	normalize_title,
	sanitize_filename,
	track_label,
)


class NormalizeTitleTest(unittest.TestCase):

	def test_bracketed_descriptors(self):
		self.assertEqual(normalize_title("Song (Official Video)"), "Song")
		self.assertEqual(normalize_title("Song [Remastered 2011]"), "Song")
		self.assertEqual(normalize_title("Song {Live}"), "Song")

	def test_plain_brackets_kept(self):
		self.assertEqual(normalize_title("Song (Part 2)"), "Song (Part 2)")

	def test_dash_descriptor(self):
		self.assertEqual(normalize_title("Song - Remastered 2009"), "Song")
		self.assertEqual(normalize_title("Love - Hate"), "Love - Hate")

	def test_featuring_credit(self):
		self.assertEqual(normalize_title("Song feat. Someone"), "Song")
		self.assertEqual(normalize_title("Song FT. Someone"), "Song")
		self.assertEqual(normalize_title("Defeated"), "Defeated")

	def test_combined(self):
		self.assertEqual(
			normalize_title("Song (feat. Other)  [Official Audio] - Radio Edit"),
			"Song",
		)

	def test_empty(self):
		self.assertEqual(normalize_title(""), "")
		self.assertEqual(normalize_title(None), "")


class NormalizeArtistTest(unittest.TestCase):

	def test_multi_artist(self):
		self.assertEqual(normalize_artist("Artist & Other"), "Artist")
		self.assertEqual(normalize_artist("Artist, Other"), "Artist")
		self.assertEqual(normalize_artist("Artist and Other"), "Artist")

	def test_featuring(self):
		self.assertEqual(normalize_artist("Artist feat. Guest"), "Artist")

	def test_topic_channel(self):
		self.assertEqual(normalize_artist("Artist - Topic"), "Artist")

	def test_untouched(self):
		self.assertEqual(normalize_artist("  Radiohead  "), "Radiohead")


class HelpersTest(unittest.TestCase):

	def test_unknown_artist(self):
		self.assertTrue(is_unknown_artist(""))
		self.assertTrue(is_unknown_artist(None))
		self.assertTrue(is_unknown_artist("unknown artist"))
		self.assertFalse(is_unknown_artist("Radiohead"))

	def test_sanitize_filename(self):
		self.assertEqual(sanitize_filename(' AC/DC: "Live"? '), 'AC_DC_ _Live__')

	def test_track_label(self):
		self.assertEqual(track_label("Radiohead", "Karma Police"), "Radiohead - Karma Police")
		self.assertEqual(track_label("Unknown Artist", "Karma Police"), "Karma Police")


if __name__ == "__main__":
	unittest.main()
