"""modlist - List the modules required by a go.mod file hosted on GitHub."""

import argparse
import sys
from pathlib import Path

import modfile
from config import Config
from logging_setup import get_logger, setup_logging
from report import print_report
from retrieve import github_json_parser, read_all, retrieve_mod_file


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Print the Go version and required modules of a remote go.mod file",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to config file (default: modlist.toml)",
    )
    parser.add_argument(
        "-u", "--url",
        type=str,
        default=None,
        help="Override the go.mod page URL from config",
    )
    parser.add_argument(
        "-t", "--timeout",
        type=float,
        default=None,
        help="Request timeout in seconds, 0 to wait forever (default: 30)",
    )
    parser.add_argument(
        "-r", "--raw",
        action="store_true",
        default=None,
        help="Treat the response body as the go.mod file itself instead of GitHub page data",
    )

    # Logging verbosity (mutually exclusive)
    verbosity_group = parser.add_mutually_exclusive_group()
    verbosity_group.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output (DEBUG level)",
    )
    verbosity_group.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Quiet mode (only warnings and errors)",
    )

    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Write logs to file (always DEBUG level)",
    )

    return parser.parse_args()


def main() -> int:
    args = parse_args()

    verbosity = 1 if args.verbose else (-1 if args.quiet else 0)
    setup_logging(verbosity=verbosity, log_file=args.log_file)
    logger = get_logger()

    logger.debug("Loading configuration...")
    config = Config.load(
        config_path=args.config,
        mod_url_override=args.url,
        timeout_override=args.timeout,
        raw_override=args.raw,
    )
    logger.debug("Mod file URL: %s", config.mod_url)
    logger.debug("Content parser: %s", "raw" if config.raw else "github json")

    parser = read_all if config.raw else github_json_parser
    try:
        content = retrieve_mod_file(config.mod_url, parser, timeout=config.timeout)
    except Exception as e:
        logger.error("retrieve mod file: %s", e)
        return 1

    try:
        manifest = modfile.parse(config.filename, content)
    except modfile.ParseError as e:
        logger.error("parse mod file: %s", e)
        return 1

    print_report(manifest)
    return 0


if __name__ == "__main__":
    sys.exit(main())
