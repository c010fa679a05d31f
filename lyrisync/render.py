import sys
import curses
import textwrap

from wcwidth import wcswidth

from .normalize import track_label

COLOR_NAMES = {
	"black": 0, "red": 1, "green": 2, "yellow": 3,
	"blue": 4, "magenta": 5, "cyan": 6, "white": 7
}

PAIR_ACTIVE = 1
PAIR_INACTIVE = 2
PAIR_PREVIOUS = 3
PAIR_STATUS = 4


def text_width(text):
	width = wcswidth(text)
	return width if width >= 0 else len(text)


def aligned_x(text, width, alignment):
	if alignment == "right":
		return max(0, width - text_width(text) - 1)
	if alignment == "center":
		return max(0, (width - text_width(text)) // 2)
	return 1


def get_color_value(color_input, max_colors=8):
	"""Convert color input to valid terminal color number (0-255)"""
	if isinstance(color_input, (int, str)) and str(color_input).isdigit():
		return max(0, min(int(color_input), max_colors - 1))
	if isinstance(color_input, str):
		return COLOR_NAMES.get(color_input.lower(), 7)
	return 7


def header_text(frame):
	label = track_label(frame.artist, frame.title) if frame.title else ""
	return f" {frame.icon} {label}".rstrip()


class Renderer:
	"""Render sink. The engine never reads anything back from it."""

	def draw_status(self, text, icon):
		raise NotImplementedError

	def draw_frame(self, frame):
		raise NotImplementedError

	def close(self):
		pass


class PlainRenderer(Renderer):
	"""Line-oriented output for pipes, logs and --once"""

	def __init__(self, stream=None, show_name=True):
		self.stream = stream or sys.stdout
		self.show_name = show_name
		self.last_output = None

	def emit(self, lines):
		output = "\n".join(lines)
		if output == self.last_output:
			return
		self.last_output = output
		self.stream.write(output + "\n")
		self.stream.flush()

	def draw_status(self, text, icon):
		self.emit([f"{icon} {text}"])

	def draw_frame(self, frame):
		lines = []
		if self.show_name:
			lines.append(header_text(frame).strip())
		if frame.status:
			lines.append(f"[{frame.status}]")
		doc = frame.doc
		if doc is not None and not doc.is_empty:
			if doc.has_timestamps:
				if 0 <= frame.current_index < len(doc):
					lines.append(f"> {doc.lines[frame.current_index].text}")
			else:
				lines.extend(line.text for line in doc.lines)
		self.emit(lines)


class CursesRenderer(Renderer):
	"""Full-screen lyric view: header, lyric area, status line"""

	def __init__(self, stdscr, alignment="center", show_name=True, colors=None):
		self.stdscr = stdscr
		self.alignment = alignment
		self.show_name = show_name
		self.colors = colors or {}
		self._wrapped_cache = None
		self._wrap_doc = None
		self._wrap_width = None
		self.setup()

	def setup(self):
		curses.start_color()
		try:
			curses.use_default_colors()
			background = -1
		except curses.error:
			background = curses.COLOR_BLACK
		max_colors = curses.COLORS if curses.COLORS > 8 else 8
		pairs = (
			(PAIR_ACTIVE, "active", 2),
			(PAIR_INACTIVE, "inactive", 7),
			(PAIR_PREVIOUS, "previous", 8),
			(PAIR_STATUS, "status", 7),
		)
		for pair, name, default in pairs:
			color = get_color_value(self.colors.get(name, default), max_colors)
			curses.init_pair(pair, color, background)
		try:
			curses.curs_set(0)
		except curses.error:
			pass
		self.stdscr.nodelay(True)

	def put(self, win, y, x, text, attr=0):
		height, width = win.getmaxyx()
		if y < 0 or y >= height or x >= width - 1:
			return
		try:
			win.addstr(y, max(0, x), text[:max(0, width - 1 - x)], attr)
		except curses.error:
			pass

	def draw_status(self, text, icon):
		self.stdscr.erase()
		height, width = self.stdscr.getmaxyx()
		msg = f"{icon} {text}"
		self.put(self.stdscr, height // 2, aligned_x(msg, width, "center"), msg,
				 curses.color_pair(PAIR_STATUS) | curses.A_BOLD)
		self.stdscr.refresh()

	def wrapped_lines(self, doc, wrap_w):
		"""(line index, display text) pairs, cached per document and width"""
		if self._wrap_doc is not doc or self._wrap_width != wrap_w:
			wrapped = []
			for index, line in enumerate(doc.lines):
				if line.text.strip():
					parts = textwrap.wrap(line.text, wrap_w, drop_whitespace=False) or [line.text]
					wrapped.append((index, parts[0]))
					for cont in parts[1:]:
						wrapped.append((index, ' ' + cont))
				else:
					wrapped.append((index, ''))
			self._wrapped_cache = wrapped
			self._wrap_doc = doc
			self._wrap_width = wrap_w
		return self._wrapped_cache

	def line_attr(self, frame, index):
		if index == frame.current_index:
			attr = curses.color_pair(PAIR_ACTIVE)
			if frame.pulse:
				attr |= curses.A_BOLD
			return attr
		if frame.transition_total and index == frame.prev_index:
			# Previous line fades out over the first half of the burst
			if frame.transition_step < frame.transition_total // 2:
				return curses.color_pair(PAIR_ACTIVE)
			return curses.color_pair(PAIR_PREVIOUS)
		return curses.color_pair(PAIR_INACTIVE)

	def draw_lyrics(self, frame, top, area_height, width):
		doc = frame.doc
		wrapped = self.wrapped_lines(doc, max(10, width - 2))
		total = len(wrapped)
		max_start = max(0, total - area_height)

		if doc.has_timestamps:
			rows = [i for i, (o, _) in enumerate(wrapped) if o == frame.current_index]
			if rows:
				center = (rows[0] + rows[-1]) // 2
				start = min(max(center - area_height // 2, 0), max_start)
			else:
				start = 0
		else:
			start = 0

		for y, (index, text) in enumerate(wrapped[start:start + area_height]):
			txt = text.strip()
			attr = self.line_attr(frame, index) if doc.has_timestamps else curses.color_pair(PAIR_INACTIVE)
			self.put(self.stdscr, top + y, aligned_x(txt, width, self.alignment), txt, attr)

	def draw_frame(self, frame):
		self.stdscr.erase()
		height, width = self.stdscr.getmaxyx()
		top = 1 if self.show_name else 0
		area_height = height - top - 1

		if self.show_name:
			self.put(self.stdscr, 0, 0, header_text(frame), curses.color_pair(PAIR_STATUS) | curses.A_BOLD)

		if area_height > 0 and frame.doc is not None and not frame.doc.is_empty:
			self.draw_lyrics(frame, top, area_height, width)
		elif area_height > 0 and frame.status and not frame.doc:
			self.put(self.stdscr, top + area_height // 2, aligned_x(frame.status, width, "center"),
					 frame.status, curses.color_pair(PAIR_ACTIVE) | curses.A_BOLD)

		if frame.status:
			msg = f"  [{frame.status}]  "
			self.put(self.stdscr, height - 1, aligned_x(msg, width, "center"), msg,
					 curses.color_pair(PAIR_STATUS) | curses.A_BOLD)

		self.stdscr.refresh()


def build_renderer(options, stdscr=None, stream=None):
	if options.renderer == "curses" and stdscr is not None:
		return CursesRenderer(stdscr, options.alignment, options.display_name, options.colors)
	return PlainRenderer(stream, options.display_name)
