from dataclasses import replace

from .models import ExternalPositionState

REGRESSION_THRESHOLD = 0.25


def clamp_to_duration(elapsed, duration):
	if elapsed < 0:
		return 0.0
	if duration > 0 and elapsed > duration:
		return duration
	return elapsed


class ExternalPositionEstimator:
	"""
	Continuous elapsed estimate for session-bus players.

	MPRIS players often answer with a stale or zero position between
	their own updates. While playing, the estimate runs on the wall clock
	and only accepts a reported position that does not fall behind it.
	"""

	def __init__(self):
		self.state = ExternalPositionState()

	def reset(self):
		self.state = ExternalPositionState()

	def estimate(self, track, now_ms: int) -> float:
		"""Return the elapsed to display for track and update the stored estimate"""
		state = self.state
		raw = track.elapsed

		if not state.valid or state.identity != track.key:
			state = self.state = ExternalPositionState(
				elapsed_at_last_update=max(0.0, raw),
				updated_at_ms=now_ms,
				valid=True,
				identity=track.key,
			)

		elapsed = state.elapsed_at_last_update
		if track.is_playing and not track.is_paused:
			delta = max(0, now_ms - state.updated_at_ms) / 1000
			predicted = state.elapsed_at_last_update + delta
			if raw <= 0 or raw < predicted - REGRESSION_THRESHOLD:
				elapsed = predicted
			else:
				elapsed = raw
			state.elapsed_at_last_update = elapsed
			state.updated_at_ms = now_ms
		elif track.is_paused:
			if raw > 0:
				state.elapsed_at_last_update = raw
				state.updated_at_ms = now_ms
			elapsed = state.elapsed_at_last_update

		if track.duration > 0 and elapsed > track.duration:
			elapsed = track.duration
			state.elapsed_at_last_update = track.duration
		return max(0.0, elapsed)


class LocalPositionClock:
	"""
	Elapsed for the local MPD daemon.

	MPD's own position is ground truth, so a fresh status read replaces the
	clock outright. Between reads the clock runs on wall time while playing.
	"""

	def __init__(self):
		self.elapsed = 0.0
		self.synced_at_ms = 0
		self.key = None

	def resync(self, snapshot, now_ms: int):
		self.elapsed = snapshot.elapsed
		self.synced_at_ms = now_ms
		self.key = snapshot.key

	def advance(self, snapshot, now_ms: int):
		"""Return snapshot with elapsed moved forward since the last resync"""
		if snapshot is None:
			return None
		if self.key != snapshot.key:
			self.resync(snapshot, now_ms)
			return snapshot
		if snapshot.is_playing and not snapshot.is_paused and not snapshot.is_stopped:
			delta_ms = max(0, now_ms - self.synced_at_ms)
			self.elapsed = clamp_to_duration(self.elapsed + delta_ms / 1000, snapshot.duration)
		self.synced_at_ms = now_ms
		return replace(snapshot, elapsed=self.elapsed)
