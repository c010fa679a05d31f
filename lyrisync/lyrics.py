import re
import bisect
from dataclasses import dataclass
from typing import Tuple

# Any "[MM:" anywhere in the text marks the document as timed
TIMED_MARKER = re.compile(r'\[\d\d:')
TIME_TAG = re.compile(r'\[(\d+):(\d+)(?:\.(\d{1,3}))?\]')

# Music-only window tuning (seconds)
LEAD_IN = 2.0
GAP_THRESHOLD = 10.0
GAP_START_BUFFER = 1.0
GAP_END_BUFFER = 1.0
OUTRO_TAIL = 3.0


@dataclass(frozen=True)
class LyricLine:
	time: float
	text: str
	has_time: bool


@dataclass(frozen=True)
class LyricDocument:
	lines: Tuple[LyricLine, ...] = ()
	has_timestamps: bool = False

	def __len__(self):
		return len(self.lines)

	@property
	def is_empty(self):
		return not self.lines

	@property
	def times(self):
		return [line.time for line in self.lines if line.has_time]


EMPTY_DOCUMENT = LyricDocument()


def parse_time_tag(match):
	"""Convert a TIME_TAG match to seconds"""
	minutes = int(match.group(1))
	seconds = int(match.group(2))
	fraction = match.group(3)
	if not fraction:
		return float(minutes * 60 + seconds)
	if len(fraction) == 3:
		sub = int(fraction) / 1000
	else:
		sub = int(fraction) / 100
	return round(minutes * 60 + seconds + sub, 3)


def split_time_tags(raw_line):
	"""Strip leading time tags, returning (times, remaining text)"""
	times = []
	pos = 0
	while raw_line.startswith("[", pos):
		match = TIME_TAG.match(raw_line, pos)
		if not match:
			break
		times.append(parse_time_tag(match))
		pos = match.end()
	return times, raw_line[pos:]


def parse_lyrics(text):
	"""Parse plain or LRC lyric text into a LyricDocument"""
	if not text:
		return EMPTY_DOCUMENT

	timed = TIMED_MARKER.search(text) is not None
	lines = []

	for raw_line in text.split("\n"):
		raw_line = raw_line.rstrip("\r")
		times, content = split_time_tags(raw_line)
		if timed:
			# Repeated chorus lines carry several tags
			for t in times:
				lines.append(LyricLine(time=t, text=content, has_time=True))
		else:
			lines.append(LyricLine(time=0.0, text=content, has_time=False))

	if timed:
		# sorted() is stable, equal timestamps keep file order
		lines = sorted(lines, key=lambda line: line.time)

	return LyricDocument(lines=tuple(lines), has_timestamps=timed)


def find_current_line(doc, elapsed):
	"""Index of the last timed line at or before elapsed, -1 if none"""
	if doc is None or not doc.has_timestamps or not doc.lines:
		return -1
	return bisect.bisect_right([line.time for line in doc.lines], elapsed) - 1


def is_music_only(doc, position):
	"""True while position sits in an intro, a long instrumental gap or the outro"""
	if doc is None or not doc.has_timestamps or not doc.lines:
		return False

	times = [line.time for line in doc.lines if line.has_time and line.text.strip()]
	if not times:
		return False

	if position < times[0] - LEAD_IN:
		return True

	for prev_time, next_time in zip(times, times[1:]):
		if next_time - prev_time < GAP_THRESHOLD:
			continue
		gap_start = prev_time + GAP_START_BUFFER
		gap_end = max(gap_start, next_time - LEAD_IN - GAP_END_BUFFER)
		if gap_start <= position < gap_end:
			return True

	return position > times[-1] + OUTRO_TAIL
