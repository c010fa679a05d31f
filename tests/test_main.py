import io
import os
import tempfile
import unittest
from unittest.mock import patch

from lyrisync import __main__ as entry


class MainTest(unittest.TestCase):

	def test_bad_config_exits_with_status_1(self):
		missing = os.path.join(tempfile.gettempdir(), "lyrisync-no-such-config.json")
		with patch("sys.stderr", new_callable=io.StringIO) as stderr:
			self.assertEqual(entry.main(["--config", missing]), 1)
		self.assertIn("file not found", stderr.getvalue())

	def test_once_uses_plain_renderer(self):
		seen = []

		async def fake_main_async(options, stdscr=None):
			seen.append(options)

		with patch.object(entry, "main_async", fake_main_async), \
				patch.object(entry.LOGGER, "configure"), \
				patch.object(entry, "run_curses") as run_curses:
			self.assertEqual(entry.main(["--default", "--once"]), 0)
		run_curses.assert_not_called()
		self.assertEqual(seen[0].renderer, "plain")
		self.assertTrue(seen[0].once)

	def test_interrupt(self):
		async def interrupted(options, stdscr=None):
			raise KeyboardInterrupt

		with patch.object(entry, "main_async", interrupted), \
				patch.object(entry.LOGGER, "configure"), \
				patch("sys.stdout", new_callable=io.StringIO) as stdout:
			self.assertEqual(entry.main(["--default", "--once"]), 0)
		self.assertIn("Exited by user (Ctrl+C).", stdout.getvalue())


if __name__ == "__main__":
	unittest.main()
