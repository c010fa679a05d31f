from .models import PlayerSource, ProbeState

MOVEMENT_THRESHOLD = 0.25
GRACE_MS = 1500


class SourceProbe:
	"""
	Decide whether a source should count as playing this tick.

	Players polled over the session bus sometimes report a stale "Paused"
	for one poll while elapsed keeps moving. Any sign of playback opens a
	grace window, and a "paused" read inside that window is ignored.
	"""

	def __init__(self, source: PlayerSource):
		self.source = source
		self.state = ProbeState()

	def reset(self, snapshot=None):
		self.state = ProbeState()
		if snapshot is not None:
			self.state.track_key = (snapshot.artist, snapshot.title)
			self.state.last_elapsed = snapshot.elapsed
			self.state.has_elapsed = snapshot.elapsed > 0

	def effective(self, snapshot, now_ms: int) -> bool:
		if snapshot is None or not snapshot.has_song or snapshot.is_stopped:
			return False

		state = self.state
		if state.track_key != (snapshot.artist, snapshot.title):
			# New track: grace starts expired so a paused track stays paused
			self.reset(snapshot)
			state = self.state

		moved = False
		if snapshot.elapsed > 0:
			if state.has_elapsed and snapshot.elapsed > state.last_elapsed + MOVEMENT_THRESHOLD:
				moved = True
			state.last_elapsed = snapshot.elapsed
			state.has_elapsed = True
			state.last_observed_ms = now_ms

		if snapshot.is_playing or moved:
			state.grace_until_ms = now_ms + GRACE_MS
			return True

		return now_ms < state.grace_until_ms
