from dataclasses import dataclass
from typing import Optional

from .log import LOGGER
from .models import ActiveTrack, PlayerSource
from .probe import SourceProbe

NO_ACTIVE_PLAYER = "No active player"


@dataclass
class ArbitrationResult:
	active: Optional[ActiveTrack] = None
	showing_last_active: bool = False
	status: str = ""


def tracks_match(a, b):
	return a is not None and b is not None and a.key == b.key


def merge_into_last(last, track):
	"""Refresh the remembered track from a newer read of the same track"""
	if track.elapsed > 0 or last.elapsed <= 0:
		return track.copy()
	# Keep the last good elapsed, take the transport flags
	return last.copy(
		is_playing=track.is_playing,
		is_paused=track.is_paused,
		is_stopped=track.is_stopped,
		has_song=track.has_song,
		duration=track.duration or last.duration,
	)


class PlayerArbiter:
	"""
	Pick one authoritative track out of every source's snapshot.

	Sources are evaluated in priority order and the first one playing wins.
	When nothing plays, the last track that was seen playing is kept on
	screen as paused for as long as it stays valid, ahead of any other
	paused source.
	"""

	def __init__(self, sources=None):
		self.probes = {source: SourceProbe(source) for source in (sources or list(PlayerSource))}
		self.last_active: Optional[ActiveTrack] = None
		self.last_active_valid = False

	def probe_for(self, source):
		if source not in self.probes:
			self.probes[source] = SourceProbe(source)
		return self.probes[source]

	def classify(self, snapshot, now_ms):
		"""Run the probe and return the snapshot as an ActiveTrack"""
		track = ActiveTrack.from_snapshot(snapshot)
		if self.probe_for(snapshot.source).effective(snapshot, now_ms):
			track.is_playing = True
			track.is_paused = False
			track.is_stopped = False
		return track

	def arbitrate(self, pollers, now_ms) -> ArbitrationResult:
		"""
		pollers is a sequence of zero-argument callables in priority order,
		each returning a PlayerSnapshot or None. Sources after the first
		playing one are never polled.
		"""
		playing = None
		paused = None

		for poll in pollers:
			if playing is not None:
				break
			snapshot = poll()
			if snapshot is None:
				continue

			track = self.classify(snapshot, now_ms)
			if track.is_effectively_playing():
				playing = track
			elif track.is_effectively_paused():
				if paused is None:
					paused = track
				if self.last_active_valid and tracks_match(self.last_active, track):
					self.last_active = merge_into_last(self.last_active, track)

		if playing is not None:
			self.last_active = playing.copy()
			self.last_active_valid = True
			return ArbitrationResult(active=playing)

		if self.last_active_valid:
			active = self.last_active.copy(is_playing=False, is_paused=True, is_stopped=False, has_song=True)
			return ArbitrationResult(active=active, showing_last_active=True)

		if paused is not None:
			active = paused.copy(is_playing=False, is_paused=True, is_stopped=False, has_song=True)
			self.last_active = active.copy()
			self.last_active_valid = True
			return ArbitrationResult(active=active)

		LOGGER.log_trace("No player reports a track")
		self.last_active_valid = False
		return ArbitrationResult(status=NO_ACTIVE_PLAYER)

	def remember_playing(self, track):
		"""Record the position-estimated elapsed of a playing track"""
		if track is None or not (track.is_playing and track.has_song):
			return
		if self.last_active_valid and tracks_match(self.last_active, track):
			self.last_active = merge_into_last(self.last_active, track)
		else:
			self.last_active = track.copy()
			self.last_active_valid = True
