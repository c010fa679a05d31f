"""
Metadata cleanup for lyric queries.

Desktop players (YouTube Music in particular) report titles like
"Song (Official Video) - Remastered 2011" or artists like
"Artist feat. Someone & Other". Providers match far better on the bare
"Artist" / "Song", so the session retries with these normalized forms.
"""
import re

DESCRIPTOR_KEYWORDS = (
	"feat", "ft.", "featuring", "with",
	"remaster", "remastered", "live", "mix",
	"version", "edit", "demo", "acoustic",
	"instrumental", "mono", "stereo", "bonus",
	"explicit", "from", "soundtrack", "motion picture",
	"official", "official video", "official audio", "music video",
	"video", "lyric", "lyrics", "lyric video",
	"audio", "visualizer", "visualiser", "topic",
	"provided to youtube", "youtube", "mv", "performance",
	"full album", "cover", "prod.", "ost",
)

BRACKETS = {"(": ")", "[": "]", "{": "}"}
FEATURING = re.compile(r'\b(?:featuring|feat|ft\.)', re.IGNORECASE)
ARTIST_DELIMITERS = (" & ", ",", " and ")
UNSAFE_FILENAME_CHARS = re.compile(r'[/\\:*?"<>|]')
UNKNOWN_ARTIST = "Unknown Artist"
UNKNOWN_TITLE = "Unknown Title"


def collapse(s):
	"""Combine runs of whitespace into one space and trim"""
	return re.sub(r'\s+', ' ', s).strip()


def contains_keyword(text):
	lowered = text.lower()
	return any(keyword in lowered for keyword in DESCRIPTOR_KEYWORDS)


def strip_descriptor_brackets(text):
	"""Drop bracketed segments that only describe the release"""
	out = []
	i = 0
	while i < len(text):
		char = text[i]
		close = BRACKETS.get(char)
		if close:
			end = text.find(close, i + 1)
			if end != -1 and contains_keyword(text[i + 1:end]):
				i = end + 1
				continue
		out.append(char)
		i += 1
	return "".join(out)


def truncate_dash_descriptor(text):
	head, sep, tail = text.rpartition(" - ")
	if sep and contains_keyword(tail):
		return head
	return text


def truncate_featuring(text):
	match = FEATURING.search(text)
	return text[:match.start()] if match else text


def truncate_artist_delimiters(text):
	cuts = [pos for pos in (text.find(d) for d in ARTIST_DELIMITERS) if pos != -1]
	return text[:min(cuts)] if cuts else text


def normalize_title(title):
	if not title:
		return ""
	out = strip_descriptor_brackets(title)
	out = truncate_dash_descriptor(out)
	out = truncate_featuring(out)
	return collapse(out)


def normalize_artist(artist):
	if not artist:
		return ""
	out = truncate_featuring(artist)
	out = truncate_artist_delimiters(out)
	out = truncate_dash_descriptor(out)
	return collapse(out)


def is_unknown_artist(artist):
	return not artist or artist.strip().lower() == UNKNOWN_ARTIST.lower()


def sanitize_filename(name):
	"""Make strings safe for filenames"""
	return UNSAFE_FILENAME_CHARS.sub("_", name or "").strip()


def track_label(artist, title):
	"""'Artist - Title', or just the title when the artist is unknown"""
	if is_unknown_artist(artist):
		return title
	return f"{artist} - {title}"
