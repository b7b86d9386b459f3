#!/usr/bin/env python3
"""
Command-line interface for the webtoon reader backend.

Each subcommand maps to one backend command and prints its result as JSON
on stdout. Progress goes to stderr so the output stays machine readable.
"""

import argparse
import json
import logging
import sys
from typing import Any, List, Optional

from controllers.library_controller import LibraryController
from controllers.webtoon_controller import WebtoonController
from models.meta import Language
from models.progress import DownloadingInfo, Stage
from models.webtoon import WebtoonId, WtType
from scraper.progress import ProgressSink
from utils.config import Config
from utils.db_manager import DatabaseManager
from utils.logger import get_logger, ScrapingError

logger = get_logger(__name__)


def print_progress(info: DownloadingInfo) -> None:
    """Render a progress update on a single stderr line."""
    sys.stderr.write(f"\r{info.message:<40} {info.percent:>3}%")
    if info.percent >= 100 or info.stage in (Stage.COMPLETED, Stage.IDLE):
        sys.stderr.write("\n")
    sys.stderr.flush()


def print_json(value: Any) -> None:
    print(json.dumps(value, indent=2, ensure_ascii=False))


def webtoon_id_from_args(args: argparse.Namespace) -> WebtoonId:
    return WebtoonId(args.id, WtType.CANVAS if args.canvas else WtType.ORIGINAL)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Browse and cache webtoons from the command line')
    parser.add_argument('--db', help=f'Database file (default: {Config.DB_PATH})')
    parser.add_argument('--quiet', '-q', action='store_true', help='Do not print progress')
    parser.add_argument('--verbose', '-v', action='store_true', help='Log debug messages')

    subparsers = parser.add_subparsers(dest='command', required=True)

    def add_id_command(name: str, help_text: str) -> argparse.ArgumentParser:
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument('id', type=int, help='Numeric title_no of the webtoon')
        sub.add_argument('--canvas', action='store_true', help='The id belongs to the Canvas catalog')
        return sub

    add_id_command('info', 'Show webtoon metadata and episodes, refreshing stale cache entries')
    add_id_command('refresh', 'Synchronize the episode list now')

    episode = add_id_command('episode', 'Cache the panels of an episode')
    episode.add_argument('number', type=int, help='Episode number, starting at 1')

    comments = add_id_command('comments', 'Show the top-level comments of an episode')
    comments.add_argument('number', type=int, help='Episode number, starting at 1')

    search = subparsers.add_parser('search', help='Search webtoons')
    search.add_argument('query', nargs='+', help='Search text')

    subparsers.add_parser('home', help='Show homepage recommendations')

    creator = subparsers.add_parser('creator', help='Show a creator profile and their webtoons')
    creator.add_argument('profile_id', help='Profile id from the creator page URL')

    images = subparsers.add_parser('images', help='Cache images')
    images.add_argument('urls', nargs='+', help='Image URLs')
    images.add_argument('--keep', action='store_true', help='Store in the persistent data folder instead of the cache')

    add_id_command('subscribe', 'Add a webtoon to the library')
    add_id_command('unsubscribe', 'Remove a webtoon from the library')

    read = add_id_command('read', 'Mark an episode as read')
    read.add_argument('number', type=int, help='Episode number, starting at 1')

    subparsers.add_parser('library', help='Show the library')

    language = subparsers.add_parser('language', help='Show or change the platform language')
    language.add_argument('code', nargs='?', choices=[lang.value for lang in Language],
                          help='Language to switch to')

    forget = add_id_command('forget', 'Remove cached data of a webtoon')
    forget.add_argument('--episodes-only', action='store_true', help='Only drop the cached episode list')

    return parser


def run_command(args: argparse.Namespace, webtoons: WebtoonController,
                library: LibraryController, progress: ProgressSink) -> Any:
    """Execute the parsed command and return a JSON-serializable result."""
    command = args.command

    if command == 'info':
        return webtoons.get_webtoon_info(webtoon_id_from_args(args), progress).to_dict()
    if command == 'refresh':
        return webtoons.force_refresh_episodes(webtoon_id_from_args(args), progress).to_dict()
    if command == 'episode':
        detail, has_next = webtoons.get_episode_detail(webtoon_id_from_args(args), args.number, progress)
        return {'episode': detail.to_dict(), 'has_next': has_next}
    if command == 'comments':
        posts = webtoons.get_episode_posts(webtoon_id_from_args(args), args.number, progress)
        return [post.to_dict() for post in posts]
    if command == 'search':
        return [result.to_dict() for result in webtoons.search_webtoon(' '.join(args.query))]
    if command == 'home':
        return [result.to_dict() for result in webtoons.get_homepage_recommendations()]
    if command == 'creator':
        return webtoons.get_author_info(args.profile_id).to_dict()
    if command == 'images':
        return webtoons.fetch_images(args.urls, not args.keep, progress)
    if command == 'subscribe':
        return library.subscribe(webtoon_id_from_args(args), progress).to_dict()
    if command == 'unsubscribe':
        return {'removed': library.unsubscribe(webtoon_id_from_args(args))}
    if command == 'read':
        return library.mark_as_read(webtoon_id_from_args(args), args.number).to_dict()
    if command == 'library':
        return library.get_user_data().to_dict()
    if command == 'language':
        if args.code is None:
            return {'language': library.get_user_data().language.value}
        return {'language': library.change_language(Language.parse(args.code)).language.value}
    if command == 'forget':
        webtoon_id = webtoon_id_from_args(args)
        if args.episodes_only:
            return webtoons.delete_episodes(webtoon_id).to_dict()
        return {'removed': webtoons.delete_webtoon(webtoon_id)}

    raise ValueError(f"Unknown command '{command}'")


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    Config.LOGGING_CONFIG["level"] = logging.DEBUG if args.verbose else logging.WARNING
    Config.setup_logging()

    progress = ProgressSink(None if args.quiet else print_progress)
    webtoons = None
    try:
        db_manager = DatabaseManager(args.db)
        webtoons = WebtoonController(db_manager)
        library = LibraryController(db_manager, webtoons)
        print_json(run_command(args, webtoons, library, progress))
    except ScrapingError as e:
        logger.debug(f"{args.command} failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        if webtoons is not None:
            webtoons.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
