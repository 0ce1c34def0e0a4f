"""
Command line interface for If File Exists.

Prints the rendered snippet for a file and reports existence through the exit
status: 0 when the file exists, 1 when it does not, 2 on configuration errors.
"""

import argparse
import logging
import sys
from typing import List, Optional

from .config.parser import ConfigurationError, load_config
from .tools.resolver import FileExistenceResolver


logger = logging.getLogger(__name__)

EXIT_FOUND = 0
EXIT_NOT_FOUND = 1
EXIT_CONFIG_ERROR = 2


def create_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="if-file-exists",
        description="Render a snippet describing a file if that file exists."
    )
    parser.add_argument("filename", help="File name, or full path with --full-path")
    parser.add_argument("-f", "--format", default="",
                        help="Text rendered when the file exists, e.g. '%%file_name%% (%%file_size%%)'")
    parser.add_argument("--fallback", default="", help="Text rendered when the file does not exist")

    location = parser.add_mutually_exclusive_group()
    location.add_argument("-d", "--dir", dest="directory", default="",
                          help="Directory relative to the site root (default: uploads directory)")
    location.add_argument("--full-path", action="store_true", help="FILENAME is a full path")

    scope = parser.add_mutually_exclusive_group()
    scope.add_argument("--plugin", action="store_true", help="Look in the plugins directory")
    scope.add_argument("--theme", action="store_true", help="Look in the active theme, then its parent")

    parser.add_argument("-c", "--config", default=None, help="Path to a YAML configuration file")
    parser.add_argument("--strict", action="store_true", help="Treat configuration warnings as errors")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = create_arg_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        result = load_config(args.config, strict_mode=args.strict)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    for warning in result.warnings:
        logger.info(f"Configuration warning: {warning}")

    resolver = FileExistenceResolver(result.config, output=sys.stdout)
    directory = True if args.full_path else args.directory

    if args.plugin:
        build_query = resolver.plugin_file_query
    elif args.theme:
        build_query = resolver.theme_file_query
    else:
        build_query = resolver.file_query

    query = build_query(args.filename, args.format, True, directory, args.fallback)
    exists, text = resolver.evaluate(query)

    # Only rendered text is echoed; a bare existence check prints nothing
    if query.has_format() and text:
        sys.stdout.write("\n")
    return EXIT_FOUND if exists else EXIT_NOT_FOUND


if __name__ == "__main__":
    sys.exit(main())
