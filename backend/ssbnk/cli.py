"""
ssbnk CLI — process entrypoint.

Commands:
- run: watch capture directories and serve the /latest API
- latest: print the URL of the N-th most recent artifact

Exit Codes:
===========
- 0: Success
- 1: Not found
- 4: System error (directories, watch registration, unreadable metadata)
"""

import argparse
import logging
import sys
from typing import NoReturn, Optional

from pydantic import ValidationError

from .config import StartupError, WatcherConfig
from .execution.ffmpeg import FFmpegGifTranscoder
from .metadata.errors import MetadataRepositoryError, RecordNotFoundError
from .metadata.repository import MetadataRepository
from .notifiers import Notifiers
from .notifiers.display import describe_display
from .publishing.publisher import Publisher
from .services.ingestion import CaptureIngestionService
from .watchfolders.errors import WatchRegistrationError
from .watchfolders.monitor import DirectoryMonitor

logger = logging.getLogger("ssbnk")

EXIT_OK = 0
EXIT_NOT_FOUND = 1
EXIT_SYSTEM_ERROR = 4


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
    )


def build_monitor(config: WatcherConfig, notifiers: Optional[Notifiers] = None) -> DirectoryMonitor:
    """Wire repository → publisher → transcoder → ingestion → monitor."""
    notifiers = notifiers or Notifiers.default()
    repository = MetadataRepository(config.metadata_dir)
    publisher = Publisher(
        store_dir=config.hosted_dir,
        repository=repository,
        base_url=config.base_url,
        clipboard=notifiers.clipboard,
    )
    transcoder = FFmpegGifTranscoder(output_dir=config.temp_dir)
    ingestion = CaptureIngestionService(
        publisher=publisher,
        transcoder=transcoder,
        notifiers=notifiers,
    )
    return DirectoryMonitor(config.watch_dirs, ingestion)


def _load_config(args: argparse.Namespace) -> WatcherConfig:
    try:
        return WatcherConfig.from_env(
            screenshot_dir=getattr(args, "screenshot_dir", None),
            screencast_dir=getattr(args, "screencast_dir", None),
            data_dir=getattr(args, "data_dir", None),
            base_url=getattr(args, "base_url", None),
            api_host=getattr(args, "host", None),
            api_port=getattr(args, "port", None),
            log_level=getattr(args, "log_level", None),
        )
    except ValidationError as e:
        print(f"ERROR: Invalid configuration: {e}", file=sys.stderr)
        sys.exit(EXIT_SYSTEM_ERROR)


def cmd_run(args: argparse.Namespace) -> NoReturn:
    """
    Start the watcher.

    Exit codes:
        0: Stopped by user
        4: Directories could not be created or watched
    """
    config = _load_config(args)
    configure_logging(config.log_level)

    logger.info("Starting ssbnk watcher...")
    config.log_summary()
    logger.info(f"Display server: {describe_display()}")

    try:
        config.ensure_directories()
    except StartupError as e:
        logger.critical(str(e))
        sys.exit(EXIT_SYSTEM_ERROR)

    monitor = build_monitor(config)
    try:
        monitor.start()
    except WatchRegistrationError as e:
        logger.critical(str(e))
        sys.exit(EXIT_SYSTEM_ERROR)

    try:
        if args.no_api:
            while monitor.is_running:
                monitor.join(1.0)
        else:
            import uvicorn

            from .main import create_app

            logger.info(f"Starting API server on {config.api_host}:{config.api_port}")
            uvicorn.run(
                create_app(config),
                host=config.api_host,
                port=config.api_port,
                log_level=config.log_level.lower(),
            )
    except KeyboardInterrupt:
        logger.info("Watcher stopped by user.")
    finally:
        monitor.stop()

    sys.exit(EXIT_OK)


def cmd_latest(args: argparse.Namespace) -> NoReturn:
    """
    Print the URL of the N-th most recent artifact.

    Exit codes:
        0: URL printed
        1: Offset out of range
        4: Metadata directory unreadable
    """
    config = _load_config(args)
    repository = MetadataRepository(config.metadata_dir)

    try:
        record = repository.recent(args.offset)
    except RecordNotFoundError:
        print(f"Not found: offset {args.offset} is out of range", file=sys.stderr)
        sys.exit(EXIT_NOT_FOUND)
    except MetadataRepositoryError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(EXIT_SYSTEM_ERROR)

    print(record.url)
    sys.exit(EXIT_OK)


def _add_directory_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--data-dir', default=None, help='Data root holding hosted/ and metadata/')
    parser.add_argument('--base-url', default=None, help='Public base URL for hosted files')


def main(argv: Optional[list] = None) -> NoReturn:
    """
    Main CLI entrypoint.

    Parses arguments and dispatches to subcommands.
    """
    parser = argparse.ArgumentParser(
        prog='ssbnk',
        description='ssbnk - screen capture hosting watcher',
    )

    subparsers = parser.add_subparsers(dest='command', required=True, help='Command to execute')

    # Run command
    parser_run = subparsers.add_parser(
        'run',
        help='Watch capture directories and serve the latest-artifact API'
    )
    parser_run.add_argument('--screenshot-dir', default=None, help='Directory receiving screenshots')
    parser_run.add_argument('--screencast-dir', default=None, help='Directory receiving screen recordings')
    _add_directory_options(parser_run)
    parser_run.add_argument('--host', default=None, help='API bind host (default: 0.0.0.0)')
    parser_run.add_argument('--port', type=int, default=None, help='API port (default: 8081)')
    parser_run.add_argument('--no-api', action='store_true', help='Watch only, do not serve HTTP')
    parser_run.add_argument('--log-level', default=None, help='Logging level (default: INFO)')
    parser_run.set_defaults(func=cmd_run)

    # Latest command
    parser_latest = subparsers.add_parser(
        'latest',
        help='Print the URL of the N-th most recent artifact'
    )
    parser_latest.add_argument('offset', nargs='?', type=int, default=0, help='0 is the newest')
    _add_directory_options(parser_latest)
    parser_latest.set_defaults(func=cmd_latest)

    # Parse and dispatch
    args = parser.parse_args(argv)
    args.func(args)


if __name__ == '__main__':
    main()
