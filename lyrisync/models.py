from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Tuple


class PlayerSource(Enum):
	"""Player backends in arbitration priority order"""
	MPD = 1
	SPOTIFY = 2
	YOUTUBE = 3

	@property
	def label(self):
		return {
			PlayerSource.MPD: "MPD",
			PlayerSource.SPOTIFY: "Spotify",
			PlayerSource.YOUTUBE: "YouTube Music",
		}[self]


@dataclass(frozen=True)
class PlayerSnapshot:
	"""One source's self-reported playback state for the current tick"""
	source: PlayerSource
	artist: str = ""
	title: str = ""
	elapsed: float = 0.0
	duration: float = 0.0
	is_playing: bool = False
	is_paused: bool = False
	is_stopped: bool = True
	has_song: bool = False

	@property
	def key(self):
		return (self.source, self.artist, self.title)


@dataclass
class ActiveTrack:
	source: PlayerSource
	artist: str = ""
	title: str = ""
	elapsed: float = 0.0
	duration: float = 0.0
	is_playing: bool = False
	is_paused: bool = False
	is_stopped: bool = False
	has_song: bool = False

	@classmethod
	def from_snapshot(cls, snapshot, **overrides):
		track = cls(
			source=snapshot.source,
			artist=snapshot.artist,
			title=snapshot.title,
			elapsed=snapshot.elapsed,
			duration=snapshot.duration,
			is_playing=snapshot.is_playing,
			is_paused=snapshot.is_paused,
			is_stopped=snapshot.is_stopped,
			has_song=snapshot.has_song,
		)
		return replace(track, **overrides) if overrides else track

	@property
	def key(self):
		return (self.source, self.artist, self.title)

	def copy(self, **overrides):
		return replace(self, **overrides)

	def is_effectively_playing(self):
		return self.has_song and self.is_playing and not self.is_paused and not self.is_stopped

	def is_effectively_paused(self):
		return self.has_song and self.is_paused and not self.is_stopped


@dataclass
class ProbeState:
	last_elapsed: float = 0.0
	last_observed_ms: int = 0
	grace_until_ms: int = 0
	has_elapsed: bool = False
	track_key: Optional[Tuple[str, str]] = None


@dataclass
class ExternalPositionState:
	elapsed_at_last_update: float = 0.0
	updated_at_ms: int = 0
	valid: bool = False
	identity: Optional[Tuple[PlayerSource, str, str]] = None


@dataclass
class AnimationState:
	last_current_index: int = -1
	pulse_frames_remaining: int = 0
	transition_in_progress: bool = False
	frame_counter: int = 0

	def reset(self):
		self.last_current_index = -1
		self.pulse_frames_remaining = 0
		self.transition_in_progress = False
		self.frame_counter = 0


@dataclass(frozen=True)
class RenderFrame:
	"""A single draw instruction handed to the renderer"""
	artist: str = ""
	title: str = ""
	doc: object = None
	current_index: int = -1
	elapsed: float = 0.0
	status: str = ""
	icon: str = ""
	pulse: bool = False
	prev_index: int = -1
	transition_step: int = 0
	transition_total: int = 0
	status_only: bool = False

	@classmethod
	def status_frame(cls, text, icon):
		return cls(status=text, icon=icon, status_only=True)


@dataclass
class EngineState:
	"""All state the tick loop carries from one tick to the next"""
	active: Optional[ActiveTrack] = None
	animation: AnimationState = field(default_factory=AnimationState)
	last_tick_ms: int = 0
	last_paused: Optional[bool] = None
	rendered_for_track: bool = False
	frames_emitted: int = 0
