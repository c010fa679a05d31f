import sys
import curses
import asyncio

from .cache import LyricCache, OffsetStore
from .config import ConfigManager, parse_args
from .engine import Engine
from .errors import ConfigError
from .log import LOGGER
from .players import build_sources
from .providers import build_providers
from .render import build_renderer


def build_engine(options, stdscr=None):
	"""Wire sources, providers, cache and renderer into an Engine"""
	return Engine(
		options,
		build_sources(options),
		build_providers(options),
		build_renderer(options, stdscr),
		cache=LyricCache(options.cache_dir),
		offsets=OffsetStore(options.offsets_path),
	)


async def main_async(options, stdscr=None):
	engine = build_engine(options, stdscr)
	LOGGER.log_info(f"Starting: sources={[source.label for source in engine.arbiter.probes]} renderer={type(engine.renderer).__name__}")
	await engine.run()


def run_curses(options):
	def run_main(stdscr):
		asyncio.run(main_async(options, stdscr))
	curses.wrapper(run_main)


def main(argv=None):
	args = parse_args(argv)
	try:
		config_manager = ConfigManager(config_path=args.config, use_default=args.default)
	except ConfigError as e:
		print(f"lyrisync: {e}", file=sys.stderr)
		return 1

	LOGGER.configure(config_manager)
	options = config_manager.build_options(args)

	# A single frame reads better as plain text
	if options.once or not sys.stdout.isatty():
		options.renderer = "plain"

	try:
		if options.renderer == "curses":
			run_curses(options)
		else:
			asyncio.run(main_async(options))
	except KeyboardInterrupt:
		print("Exited by user (Ctrl+C).")
	except Exception as e:
		LOGGER.log_fatal(f"Fatal error: {str(e)}")
		raise
	return 0


if __name__ == "__main__":
	sys.exit(main())
