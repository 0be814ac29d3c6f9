#!/usr/bin/env python3
"""
Command-line interface for wpmirror.
"""

import sys
import argparse
from typing import List, Optional

from . import __version__
from .core import Mirror, setup_logging
from .errors import SourceUnavailable
from .settings import MirrorSettings
from .store import StaticPosts


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='wpmirror - sync WordPress posts and images to static files')
    parser.add_argument('--wordpress-url', dest='wordpress_url', type=str,
                        help='Base URL of the WordPress site (overrides WORDPRESS_URL)')
    parser.add_argument('--first', type=int,
                        help='Maximum number of posts to fetch')
    parser.add_argument('--public-dir', dest='public_dir', type=str,
                        help='Dev-facing output root')
    parser.add_argument('--dist-dir', dest='dist_dir', type=str,
                        help='Production-facing output root')
    parser.add_argument('--data-file', dest='data_file', type=str,
                        help='Path of the aggregate posts JSON document')
    parser.add_argument('--quality', type=int,
                        help='WebP quality (0-100)')
    parser.add_argument('--timeout', type=int,
                        help='Timeout in seconds for each network call')
    parser.add_argument('--transcoder', type=str, choices=MirrorSettings.TRANSCODERS,
                        help='WebP encoder to use')
    parser.add_argument('--private-hosts', dest='private_hosts', type=str,
                        help='Comma-separated host fragments whose assets are mirrored')
    parser.add_argument('--images-only', dest='images_only', action='store_true',
                        help='Sync images without writing the data file')
    parser.add_argument('--list', dest='list_posts', action='store_true',
                        help='List posts in the existing data file and exit')
    parser.add_argument('--no-progress', dest='no_progress', action='store_true',
                        help='Disable the progress bar')
    parser.add_argument('--verbose', action='store_true',
                        help='Show debug output on the console')
    parser.add_argument('--init', type=str, choices=['yml', 'yaml', 'json'],
                        help='Create a sample configuration file')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


SETTING_KEYS = ('wordpress_url', 'first', 'public_dir', 'dist_dir', 'data_file',
                'quality', 'timeout', 'transcoder', 'private_hosts')


def list_posts(data_file: str) -> None:
    posts = StaticPosts(data_file).all()
    for post in posts:
        hero = post.hero_image or '-'
        print(f"{post.pub_date:%Y-%m-%d}  {post.slug}  {hero}")
    print(f"{len(posts)} posts in {data_file}")


def main(argv: Optional[List[str]] = None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    # Handle init command
    if args.init:
        settings_loader = MirrorSettings()
        config_path = settings_loader.create_sample_config(args.init)
        print(f"Created sample configuration file: {config_path}")
        return

    mirror = None
    try:
        # Load settings from the environment and configuration file
        settings_loader = MirrorSettings()
        settings_loader.load_settings()

        # Command line arguments take precedence
        args_dict = {k: v for k, v in vars(args).items() if k in SETTING_KEYS and v is not None}
        settings_loader.settings = settings_loader.merge_with_args(args_dict)
        settings_loader.validate()
        settings = settings_loader.settings

        if args.list_posts:
            list_posts(settings['data_file'])
            return

        setup_logging(settings['logs_dir'], verbose=args.verbose)
        mirror = Mirror.from_settings(settings, show_progress=not args.no_progress)
        mirror.run(images_only=args.images_only)

    except SourceUnavailable as e:
        print(f"❌ Sync failed: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        if mirror is not None:
            mirror.close()


if __name__ == '__main__':
    main()
