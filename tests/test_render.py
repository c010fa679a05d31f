import io
import unittest
from unittest.mock import MagicMock, patch

from lyrisync.lyrics import parse_lyrics
from lyrisync.models import RenderFrame
from lyrisync.render import CursesRenderer, PlainRenderer, aligned_x, get_color_value, header_text, text_width


class HelpersTest(unittest.TestCase):

	def test_color_values(self):
		self.assertEqual(get_color_value("046", 256), 46)
		self.assertEqual(get_color_value("300", 256), 255)
		self.assertEqual(get_color_value("Cyan"), 6)
		self.assertEqual(get_color_value("nope"), 7)
		self.assertEqual(get_color_value(None), 7)

	def test_wide_characters(self):
		self.assertEqual(text_width("歌詞"), 4)
		self.assertEqual(aligned_x("歌詞", 10, "center"), 3)
		self.assertEqual(aligned_x("abc", 10, "right"), 6)
		self.assertEqual(aligned_x("abc", 10, "left"), 1)

	def test_header(self):
		self.assertEqual(header_text(RenderFrame(artist="A", title="B", icon="♪")), " ♪ A - B")
		self.assertEqual(header_text(RenderFrame(artist="Unknown Artist", title="B", icon="♪")), " ♪ B")


class PlainRendererTest(unittest.TestCase):

	def setUp(self):
		self.stream = io.StringIO()
		self.renderer = PlainRenderer(self.stream)

	def test_current_timed_line(self):
		doc = parse_lyrics("[00:00.00]Hello\n[00:05.00]World")
		self.renderer.draw_frame(RenderFrame(artist="A", title="B", icon="♪", doc=doc, current_index=1))
		self.assertEqual(self.stream.getvalue(), "♪ A - B\n> World\n")

	def test_plain_document_and_status(self):
		doc = parse_lyrics("one\ntwo")
		self.renderer.draw_frame(RenderFrame(artist="A", title="B", icon="⏸", doc=doc, status="Paused"))
		self.assertEqual(self.stream.getvalue(), "⏸ A - B\n[Paused]\none\ntwo\n")

	def test_repeated_output_suppressed(self):
		self.renderer.draw_status("No active player", "■")
		self.renderer.draw_status("No active player", "■")
		self.assertEqual(self.stream.getvalue(), "■ No active player\n")

	def test_without_name(self):
		renderer = PlainRenderer(self.stream, show_name=False)
		renderer.draw_frame(RenderFrame(artist="A", title="B", icon="♪", status="Loading lyrics..."))
		self.assertEqual(self.stream.getvalue(), "[Loading lyrics...]\n")


class WrapCacheTest(unittest.TestCase):

	def setUp(self):
		with patch.object(CursesRenderer, "setup"):
			self.renderer = CursesRenderer(MagicMock())

	def test_same_document_reuses_wrap(self):
		doc = parse_lyrics("[00:00.00]a fairly long line that wraps")
		first = self.renderer.wrapped_lines(doc, 10)
		self.assertIs(self.renderer.wrapped_lines(doc, 10), first)
		self.assertIsNot(self.renderer.wrapped_lines(doc, 40), first)

	def test_new_document_rewrapped(self):
		for word in ("old", "new", "next"):
			lines = self.renderer.wrapped_lines(parse_lyrics(f"[00:00.00]{word} words"), 40)
			self.assertEqual(lines, [(0, f"{word} words")])


if __name__ == "__main__":
	unittest.main()
