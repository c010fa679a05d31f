"""
The tick loop.

Every tick runs, in order: MPD reconnect, MPD poll (once a second or right
after an idle wake), snapshot gathering in priority order, arbitration,
position estimate, track session update and the render decision. Between
ticks the loop parks the MPD connection in "idle" and wakes early when the
daemon reports a change.
"""
import time
import asyncio

from .arbitration import PlayerArbiter
from .errors import ConnectionLost, SourceError
from .log import LOGGER
from .lyrics import find_current_line, is_music_only
from .models import EngineState, PlayerSource, RenderFrame
from .position import ExternalPositionEstimator, LocalPositionClock
from .session import LOADING, LyricSession

PLAY_ICON = "♪"
PAUSE_ICON = "⏸"
NO_PLAYER_ICON = "■"
MUSIC_FRAMES = ["♪    ", " ♪   ", "  ♪  ", "   ♪ ", "    ♪"]

MPD_POLL_MS = 1000
MPD_RETRY_MS = 5000
MPD_UNAVAILABLE = "MPD unavailable"

TRANSITION_STEPS = 7
TRANSITION_DELAY = 0.1
PULSE_FRAMES = 2
MAX_LEAD_SECONDS = 5.0


def monotonic_ms():
	return int(time.monotonic() * 1000)


class Engine:
	def __init__(self, options, sources, fetcher, renderer, cache=None, offsets=None, clock=None, sleep=None):
		self.options = options
		self.renderer = renderer
		self.clock = clock or monotonic_ms
		self.sleep = sleep or asyncio.sleep

		self.local = next((s for s in sources if s.source is PlayerSource.MPD), None)
		self.external = [s for s in sources if s is not self.local]
		self.arbiter = PlayerArbiter([s.source for s in sources])
		self.estimator = ExternalPositionEstimator()
		self.local_clock = LocalPositionClock()
		self.session = LyricSession(cache, fetcher, offsets, options.show_plain)
		self.state = EngineState()

		self.mpd_ready = False
		self.mpd_retry_at = 0
		self.mpd_poll_ms = None
		self.refresh_mpd = False
		self.mpd_snapshot = None

	@property
	def retry_ms(self):
		return int(self.options.reconnect_delay * 1000) if self.options.reconnect_delay > 0 else MPD_RETRY_MS

	@property
	def lead_seconds(self):
		return min(max(self.options.lead_seconds, 0.0), MAX_LEAD_SECONDS)

	# ---------------
	#  RENDER OUTPUT
	# ---------------
	def draw_status(self, text, icon):
		self.state.frames_emitted += 1
		self.renderer.draw_status(text, icon)

	def draw(self, frame):
		self.state.frames_emitted += 1
		self.renderer.draw_frame(frame)

	# -------------
	#  LOCAL DAEMON
	# -------------
	def mark_mpd_lost(self, error, now):
		LOGGER.log_warn(f"MPD connection lost: {error}")
		self.mpd_ready = False
		self.mpd_retry_at = now + self.retry_ms
		self.mpd_snapshot = None
		self.refresh_mpd = False

	async def reconnect_mpd(self, now):
		if self.local is None or self.mpd_ready or now < self.mpd_retry_at:
			return
		try:
			await self.local.connect()
		except ConnectionLost as e:
			LOGGER.log_debug(f"MPD reconnect failed: {e}")
			self.mpd_retry_at = now + self.retry_ms
			return
		self.mpd_ready = True
		self.refresh_mpd = True

	async def poll_mpd(self, now):
		"""Read MPD when due, otherwise run the local clock forward"""
		if self.local is None or not self.mpd_ready:
			return
		due = self.mpd_poll_ms is None or now - self.mpd_poll_ms >= MPD_POLL_MS
		if self.refresh_mpd or due:
			self.refresh_mpd = False
			try:
				snapshot = await self.local.poll()
			except ConnectionLost as e:
				self.mark_mpd_lost(e, now)
				return
			self.mpd_poll_ms = now
			self.mpd_snapshot = snapshot
			if snapshot is not None:
				self.local_clock.resync(snapshot, now)
		else:
			self.mpd_snapshot = self.local_clock.advance(self.mpd_snapshot, now)

	def local_snapshot(self):
		if not self.mpd_ready or self.mpd_snapshot is None:
			return None
		snapshot = self.mpd_snapshot
		if not snapshot.has_song or snapshot.is_stopped:
			return None
		return snapshot

	def external_poller(self, source):
		def poll():
			try:
				return source.poll()
			except SourceError as e:
				LOGGER.log_debug(f"{source.source.label} skipped this tick: {e}")
				return None
			except Exception as e:
				LOGGER.log_error(f"{source.source.label} poll failed: {type(e).__name__}: {e}")
				return None
		return poll

	def pollers(self):
		"""Snapshot readers in priority order, polled lazily by the arbiter"""
		readers = []
		if self.local is not None:
			readers.append(self.local_snapshot)
		readers.extend(self.external_poller(source) for source in self.external)
		return readers

	# ------
	#  TICK
	# ------
	async def tick(self):
		now = self.clock()
		self.state.last_tick_ms = now

		await self.reconnect_mpd(now)
		await self.poll_mpd(now)

		result = self.arbiter.arbitrate(self.pollers(), now)
		if result.active is None:
			status = result.status
			if self.local is not None and not self.external and not self.mpd_ready:
				status = MPD_UNAVAILABLE
			self.draw_status(status, NO_PLAYER_ICON)
			self.session.clear()
			self.state.active = None
			return

		track = result.active
		if track.source is not PlayerSource.MPD and track.has_song:
			track.elapsed = self.estimator.estimate(track, now)
		self.arbiter.remember_playing(track)
		self.state.active = track

		if self.session.is_new_track(track):
			await self.enter_track(track)

		await self.render(track, result.showing_last_active)

	async def enter_track(self, track):
		LOGGER.log_info(f"Track changed: [{track.source.label}] {track.artist} - {track.title}")
		self.state.animation.reset()
		self.state.rendered_for_track = False
		self.draw(RenderFrame(
			artist=track.artist, title=track.title, elapsed=track.elapsed,
			status=LOADING, icon=PAUSE_ICON if track.is_paused else PLAY_ICON,
		))
		await self.session.load(track)

	async def render(self, track, showing_last_active=False):
		"""Decide what this tick draws"""
		anim = self.state.animation
		current = self.session.current
		doc = current.doc
		paused = track.is_paused
		icon = PAUSE_ICON if paused else PLAY_ICON
		status = self.session.status_text(paused, showing_last_active)

		position = max(0.0, track.elapsed + current.offset)
		lyric_position = max(0.0, position + self.lead_seconds)
		music_only = track.is_playing and not paused and is_music_only(doc, lyric_position)

		base = dict(artist=track.artist, title=track.title, elapsed=track.elapsed, icon=icon)

		if self.options.once:
			self.render_once(doc, lyric_position, music_only, status, base)
			return

		if music_only:
			base["icon"] = PLAY_ICON
			self.draw(RenderFrame(status=MUSIC_FRAMES[anim.frame_counter % len(MUSIC_FRAMES)], **base))
		elif doc.has_timestamps:
			current_index = find_current_line(doc, lyric_position)
			prev_index = anim.last_current_index
			transition = False
			if current_index >= 0 and current_index != anim.last_current_index:
				anim.pulse_frames_remaining = PULSE_FRAMES
				transition = not paused and prev_index >= 0
				anim.last_current_index = current_index
			if transition:
				await self.transition_burst(doc, current_index, prev_index, status, base)
			else:
				self.draw(RenderFrame(
					doc=doc, current_index=current_index, status=status,
					pulse=anim.pulse_frames_remaining > 0, **base
				))
		elif not self.state.rendered_for_track or self.state.last_paused != paused:
			shown = doc if (not doc.is_empty and self.options.show_plain) else None
			self.draw(RenderFrame(doc=shown, status=status, **base))
			self.state.rendered_for_track = True

		if not paused:
			anim.frame_counter += 1
			if anim.pulse_frames_remaining > 0:
				anim.pulse_frames_remaining -= 1
		self.state.last_paused = paused

	def render_once(self, doc, lyric_position, music_only, status, base):
		anim = self.state.animation
		current_index = -1
		if doc.has_timestamps:
			current_index = find_current_line(doc, lyric_position)
			if current_index >= 0 and current_index != anim.last_current_index:
				anim.pulse_frames_remaining = PULSE_FRAMES
				anim.last_current_index = current_index
		pulse = anim.pulse_frames_remaining > 0

		if music_only:
			self.draw(RenderFrame(status=MUSIC_FRAMES[anim.frame_counter % len(MUSIC_FRAMES)], **base))
		elif doc.has_timestamps:
			self.draw(RenderFrame(doc=doc, current_index=current_index, status=status, pulse=pulse, **base))
		elif not doc.is_empty and self.options.show_plain:
			self.draw(RenderFrame(doc=doc, status=status, **base))
		else:
			self.draw(RenderFrame(status=status, **base))

	async def transition_burst(self, doc, current_index, prev_index, status, base):
		"""
		Animate the switch from prev_index to current_index.

		A player change reported by MPD while the burst runs ends it early;
		the next tick re-polls and starts over from the new state.
		"""
		anim = self.state.animation
		anim.transition_in_progress = True
		try:
			for step in range(TRANSITION_STEPS):
				self.draw(RenderFrame(
					doc=doc, current_index=current_index, status=status, pulse=True,
					prev_index=prev_index, transition_step=step, transition_total=TRANSITION_STEPS,
					**base
				))
				if await self.wait_for_change(TRANSITION_DELAY):
					LOGGER.log_debug(f"Transition aborted at step {step + 1}/{TRANSITION_STEPS}")
					break
		finally:
			anim.transition_in_progress = False

	# ------
	#  WAIT
	# ------
	async def wait_for_change(self, timeout):
		"""
		Block until timeout or until MPD reports a change. Returns True on an
		early wake, which also schedules a fresh MPD poll.
		"""
		local = self.local
		if local is None or not self.mpd_ready or not hasattr(local, "wait_for_change"):
			await self.sleep(timeout)
			return False
		changed = await local.wait_for_change(timeout)
		if changed:
			self.refresh_mpd = True
		return changed

	# -----
	#  RUN
	# -----
	async def run(self):
		"""Tick until cancelled, or exactly once with --once"""
		try:
			while True:
				await self.tick()
				if self.options.once:
					break
				await self.wait_for_change(self.options.interval)
		finally:
			await self.shutdown()

	async def shutdown(self):
		if self.local is not None:
			self.local.close()
		for source in self.external:
			source.close()
		fetcher = self.session.fetcher
		if fetcher is not None and hasattr(fetcher, "close"):
			await fetcher.close()
