import os
import json
import argparse
from dataclasses import dataclass, field
from typing import List, Optional

import appdirs

from . import __version__
from .errors import ConfigError

APP_NAME = "lyrisync"

config_files = ["config.json", "config1.json", "config2.json"]

SPOTIFY_PLAYERS = ["spotify"]
YOUTUBE_PLAYERS = ["youtube-music", "youtube_music", "YoutubeMusic", "ytmdesktop", "ytmdesktopapp"]


def parse_args(argv=None):
	parser = argparse.ArgumentParser(prog=APP_NAME, description="Synchronized lyrics for MPD, Spotify and YouTube Music")
	parser.add_argument("-c", "--config", help="Path to configuration file")
	parser.add_argument("-d", "--default", action="store_true", help="Use default settings without loading a config file")
	parser.add_argument("--mpd-host", help="MPD host (overrides config)")
	parser.add_argument("--mpd-port", type=int, help="MPD port (overrides config)")
	parser.add_argument("--once", action="store_true", help="Render a single frame and exit")
	parser.add_argument("--interval", type=int, help="Poll interval in seconds")
	parser.add_argument("--show-plain", action="store_true", default=None, help="Display lyrics without timestamps")
	parser.add_argument("--renderer", choices=["curses", "plain"], help="Output renderer")
	parser.add_argument("--version", action="version", version=__version__)
	return parser.parse_args(argv)


def deep_merge_dicts(base, updates):
	for key, value in updates.items():
		if key in base and isinstance(base[key], dict) and isinstance(value, dict):
			deep_merge_dicts(base[key], value)
		else:
			base[key] = value


def resolve_value(item):
	"""Resolve {"env": ..., "default": ...} into actual value"""
	if isinstance(item, dict) and "env" in item and "default" in item:
		return os.environ.get(item["env"], item["default"])
	return item


def default_config():
	return {
		"global": {
			"logs_dir": appdirs.user_cache_dir(APP_NAME),
			"log_file": "application.log",
			"log_level": "WARN",
			"debug_log": "debug.log",
			"max_debug_count": 100,
			"max_log_count": 100,
			"enable_debug": {"env": "DEBUG", "default": "0"}
		},
		"player": {
			"enable_mpd": True,
			"enable_spotify": True,
			"enable_youtube": True,
			"poll_interval": 1,
			"mpd": {
				"host": {"env": "MPD_HOST", "default": "127.0.0.1"},
				"port": {"env": "MPD_PORT", "default": 6600},
				"password": {"env": "MPD_PASSWORD", "default": None},
				"timeout": 10,
				"reconnect_delay_sec": 5
			},
			"playerctl": {
				"timeout": 1,
				"spotify": SPOTIFY_PLAYERS,
				"youtube": YOUTUBE_PLAYERS
			}
		},
		"lyrics": {
			"cache_dir": "~/lyrics",
			"offsets_file": ".offsets",
			"search_timeout": 20,
			"lead_seconds": 1.0,
			"show_plain": False,
			"Sources": ["lrclib", "ovh"],
			"Syncedlyrics": False,
			"user_agent": f"{APP_NAME}/{__version__}"
		},
		"ui": {
			"renderer": "curses",
			"alignment": "center",
			"name": True,
			"colors": {
				"active": {"env": "LRC_ACTIVE", "default": "046"},
				"inactive": {"env": "LRC_INACTIVE", "default": "250"},
				"previous": {"env": "LRC_PREVIOUS", "default": "244"},
				"status": {"env": "STATUS_COLOR", "default": "white"}
			}
		}
	}


@dataclass
class Options:
	"""Resolved options consumed by the engine"""
	mpd_host: str = "127.0.0.1"
	mpd_port: int = 6600
	mpd_password: Optional[str] = None
	mpd_timeout: int = 10
	reconnect_delay: float = 5.0
	enable_mpd: bool = True
	enable_spotify: bool = True
	enable_youtube: bool = True
	playerctl_timeout: float = 1.0
	spotify_players: List[str] = field(default_factory=lambda: list(SPOTIFY_PLAYERS))
	youtube_players: List[str] = field(default_factory=lambda: list(YOUTUBE_PLAYERS))
	once: bool = False
	interval: int = 1
	show_plain: bool = False
	lead_seconds: float = 1.0
	cache_dir: str = os.path.expanduser("~/lyrics")
	offsets_path: str = os.path.expanduser("~/lyrics/.offsets")
	providers: List[str] = field(default_factory=lambda: ["lrclib", "ovh"])
	use_syncedlyrics: bool = False
	fetch_timeout: float = 20.0
	user_agent: str = f"{APP_NAME}/{__version__}"
	renderer: str = "curses"
	alignment: str = "center"
	display_name: bool = True
	colors: dict = field(default_factory=dict)


class ConfigManager:
	def __init__(self, config_path=None, use_default=False):
		self.user_config_dir = appdirs.user_config_dir(APP_NAME)
		self.use_default = use_default
		self.config_path = config_path

		self.config = self.load_config()
		self.setup_logging()
		self.setup_player()
		self.setup_lyrics()
		self.setup_ui()

	@staticmethod
	def normalize_path(path: str) -> str:
		path = os.path.expanduser(path)
		if os.path.isabs(path):
			return os.path.normpath(path)
		return os.path.normpath(os.path.abspath(path))

	def _read_file(self, path):
		try:
			with open(path, "r", encoding="utf-8-sig") as f:
				file_config = json.load(f)
		except (OSError, ValueError) as e:
			raise ConfigError(f"Error loading config from {path}: {e}") from e
		if not isinstance(file_config, dict):
			raise ConfigError(f"Error loading config from {path}: top level must be an object")
		return file_config

	def load_config(self):
		merged_config = default_config()

		if self.use_default:
			pass
		elif self.config_path:
			path = self.normalize_path(self.config_path)
			if not os.path.exists(path):
				raise ConfigError(f"config: file not found: {path}")
			deep_merge_dicts(merged_config, self._read_file(path))
		else:
			for name in config_files:
				path = os.path.join(self.user_config_dir, name)
				if os.path.exists(path):
					deep_merge_dicts(merged_config, self._read_file(path))
					self.config_path = path
					break

		merged_config["global"]["enable_debug"] = str(resolve_value(merged_config["global"]["enable_debug"])) == "1"
		return merged_config

	def setup_logging(self):
		cfg = self.config["global"]
		self.LOG_DIR = self.normalize_path(cfg["logs_dir"])
		self.LOG_FILE = cfg["log_file"]
		self.DEBUG_LOG = cfg["debug_log"]
		self.LOG_LEVEL = str(cfg["log_level"])
		self.MAX_LOG_COUNT = cfg["max_log_count"]
		self.MAX_DEBUG_COUNT = cfg["max_debug_count"]
		self.ENABLE_DEBUG_LOGGING = cfg["enable_debug"]

	def setup_player(self):
		player = self.config["player"]
		mpd = player["mpd"]
		self.MPD_HOST = resolve_value(mpd["host"]) or ""
		self.MPD_PASSWORD = resolve_value(mpd["password"])
		try:
			self.MPD_PORT = int(resolve_value(mpd["port"]))
			self.MPD_TIMEOUT = int(mpd["timeout"])
			self.RECONNECT_DELAY = float(mpd["reconnect_delay_sec"])
			self.POLL_INTERVAL = int(player["poll_interval"])
			self.PLAYERCTL_TIMEOUT = float(player["playerctl"]["timeout"])
		except (TypeError, ValueError) as e:
			raise ConfigError(f"Invalid player configuration: {e}") from e

		self.ENABLE_MPD = bool(player["enable_mpd"])
		self.ENABLE_SPOTIFY = bool(player["enable_spotify"])
		self.ENABLE_YOUTUBE = bool(player["enable_youtube"])
		self.SPOTIFY_PLAYERS = list(player["playerctl"]["spotify"])
		self.YOUTUBE_PLAYERS = list(player["playerctl"]["youtube"])

	def setup_lyrics(self):
		lyrics = self.config["lyrics"]
		self.LYRIC_CACHE_DIR = self.normalize_path(lyrics["cache_dir"])
		self.OFFSETS_PATH = os.path.join(self.LYRIC_CACHE_DIR, lyrics["offsets_file"])
		try:
			self.SEARCH_TIMEOUT = float(lyrics["search_timeout"])
			self.LEAD_SECONDS = float(lyrics["lead_seconds"])
		except (TypeError, ValueError) as e:
			raise ConfigError(f"Invalid lyrics configuration: {e}") from e
		self.SHOW_PLAIN = bool(lyrics["show_plain"])
		self.PROVIDERS = [str(p).lower() for p in lyrics["Sources"]]
		self.ALLOW_SYNCEDLYRIC = bool(lyrics["Syncedlyrics"])
		self.USER_AGENT = lyrics["user_agent"]

	def setup_ui(self):
		ui = self.config["ui"]
		self.RENDERER = ui["renderer"]
		self.ALIGNMENT = str(ui["alignment"]).lower()
		self.DISPLAY_NAME = bool(ui["name"])
		self.COLORS = {name: resolve_value(value) for name, value in ui["colors"].items()}

	def build_options(self, args=None):
		"""Merge CLI flags over the loaded configuration"""
		options = Options(
			mpd_host=self.MPD_HOST,
			mpd_port=self.MPD_PORT,
			mpd_password=self.MPD_PASSWORD,
			mpd_timeout=self.MPD_TIMEOUT,
			reconnect_delay=self.RECONNECT_DELAY,
			enable_mpd=self.ENABLE_MPD,
			enable_spotify=self.ENABLE_SPOTIFY,
			enable_youtube=self.ENABLE_YOUTUBE,
			playerctl_timeout=self.PLAYERCTL_TIMEOUT,
			spotify_players=self.SPOTIFY_PLAYERS,
			youtube_players=self.YOUTUBE_PLAYERS,
			interval=max(1, self.POLL_INTERVAL),
			show_plain=self.SHOW_PLAIN,
			lead_seconds=self.LEAD_SECONDS,
			cache_dir=self.LYRIC_CACHE_DIR,
			offsets_path=self.OFFSETS_PATH,
			providers=self.PROVIDERS,
			use_syncedlyrics=self.ALLOW_SYNCEDLYRIC,
			fetch_timeout=self.SEARCH_TIMEOUT,
			user_agent=self.USER_AGENT,
			renderer=self.RENDERER,
			alignment=self.ALIGNMENT,
			display_name=self.DISPLAY_NAME,
			colors=self.COLORS,
		)
		if args is None:
			return options

		if args.mpd_host:
			options.mpd_host = args.mpd_host
		if args.mpd_port and args.mpd_port > 0:
			options.mpd_port = args.mpd_port
		if args.interval is not None:
			options.interval = args.interval if args.interval > 0 else 1
		if args.show_plain:
			options.show_plain = True
		if args.renderer:
			options.renderer = args.renderer
		options.once = bool(args.once)
		return options
