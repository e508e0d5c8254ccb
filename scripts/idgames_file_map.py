#!/usr/bin/env python3
"""
Build a map of idGames Archive file IDs to their paths in the archive.

Usage:
  scripts/idgames_file_map.py [--json|--xml] [--output FILE [--overwrite]]
                              [--start-at ID] [--database FILE] [--debug|--verbose]

Every file ID from --start-at upwards is requested from the idGames API, one
request at a time with a random delay in between.  The crawl stops when the
API stops answering, or after too many error responses (unless
--no-die-on-error is used).  The map is written as one '<id>:<dir><filename>'
line per file, sorted by ID.  With --database, every file is also cataloged.
"""

import argparse
import logging
import os
import sys

# Ensure app/ is importable when the script is run from a checkout
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
APP_DIR = os.path.join(ROOT, "app")
if APP_DIR not in sys.path:
    sys.path.insert(0, APP_DIR)

from catalog import CatalogStore
from constants import BUILD_VERSION, CONFIG_FILE, DEBUG_REQUESTS
from crawler import CrawlState, IDSpaceCrawler, write_file_map
from exceptions import CatalogError, ErrorKind
from metrics import get_metrics_export
from parsers import get_parser
from schema_loader import SchemaDefinitionLoader
from settings import crawler_options_from_settings, load_settings, verify_settings
from utils import configure_logging


def build_parser():
    parser = argparse.ArgumentParser(description="Map idGames Archive file IDs to archive paths")
    fmt = parser.add_mutually_exclusive_group()
    fmt.add_argument("--json", dest="output_format", action="store_const", const="json",
                     help="Request and parse JSON API responses")
    fmt.add_argument("--xml", dest="output_format", action="store_const", const="xml",
                     help="Request and parse XML API responses (default)")
    parser.add_argument("-o", "--output", help="Write the file map here instead of stdout")
    parser.add_argument("--overwrite", action="store_true", help="Overwrite an existing --output file")
    parser.add_argument("--no-random-wait", dest="random_wait", action="store_false", default=None,
                        help="Don't wait between API requests")
    parser.add_argument("--random-wait-time", type=float, help="Upper bound of the random delay, in seconds")
    parser.add_argument("--debug-requests", type=int,
                        help=f"Stop after this many requests in --debug mode (default {DEBUG_REQUESTS})")
    parser.add_argument("--debug-noexit", action="store_true", help="Don't cap requests in --debug mode")
    parser.add_argument("--no-die-on-error", dest="die_on_error", action="store_false", default=None,
                        help="Keep going no matter how many API errors are returned")
    parser.add_argument("--start-at", type=int, help="File ID to start at (default 1)")
    parser.add_argument("--database", help="Catalog every mapped file into this SQLite database")
    parser.add_argument("--metrics", help="Write Prometheus metrics here when the crawl ends")
    parser.add_argument("--config", default=CONFIG_FILE, help="Settings file")
    parser.add_argument("--colorize", action="store_true", default=None, help="Always colorize log output")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("--debug", action="store_true", help="Debug logging; caps the number of requests")
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Informational logging")
    return parser


def crawler_options(args, settings):
    options = crawler_options_from_settings(settings)
    for name in ("start_at", "random_wait", "random_wait_time", "die_on_error"):
        value = getattr(args, name)
        if value is not None:
            options[name] = value

    if args.debug and not args.debug_noexit:
        options["debug_requests"] = args.debug_requests or options["debug_requests"] or DEBUG_REQUESTS
    elif args.debug_requests:
        options["debug_requests"] = args.debug_requests
    else:
        options["debug_requests"] = None
    return options


def open_store(database, schema_file, logger):
    """Connect to the catalog, bootstrapping it when it has no schema yet"""
    definition, error = SchemaDefinitionLoader(schema_file, logger=logger).load()
    if error:
        return None, error

    store = CatalogStore(database, logger=logger)
    error = store.connect()
    if error:
        return None, error

    drifted, error = store.check_schema(definition)
    if not error and drifted == definition.names():
        logger.info(f"Bootstrapping new catalog {database}")
        error = store.bootstrap(definition)
    elif not error and drifted:
        error = CatalogError(
            kind=ErrorKind.DATABASE_PREPARE,
            message=f"Catalog {database} does not match the schema definition",
            raw=", ".join(drifted),
            context="database.check_schema",
        )
    if error:
        store.close()
        return None, error
    return store, None


def main(argv=None):
    args = build_parser().parse_args(argv)

    level = logging.WARNING
    if args.debug:
        level = logging.DEBUG
    elif args.verbose:
        level = logging.INFO
    configure_logging(level=level, colorize=args.colorize)
    logger = logging.getLogger("main")

    if args.output and os.path.exists(args.output) and not args.overwrite:
        logger.error(f"Won't overwrite file {args.output} without '--overwrite' option")
        return 1

    settings = load_settings(force=True, config_file=args.config)
    success, errors = verify_settings("crawler", settings["crawler"])
    if not success:
        for error in errors:
            logger.error(f"Invalid setting {error['path']}: {error['error']}")
        return 1
    output_format = args.output_format or settings["crawler"].get("output_format", "xml")
    options = crawler_options(args, settings)

    logger.info(f"Starting {os.path.basename(sys.argv[0])}, version {BUILD_VERSION}")
    logger.info(f"My PID is {os.getpid()}")
    logger.debug(f"Using {output_format.upper()} API calls to idGames Archive API")

    store = None
    if args.database:
        store, error = open_store(args.database, settings["catalog"]["schema_file"], logger)
        if error:
            logger.error(str(error))
            return 1

    crawler = IDSpaceCrawler(get_parser(output_format), store=store, logger=logger, **options)
    try:
        result = crawler.run()
    except KeyboardInterrupt:
        crawler.interrupt()
        result = crawler.result()
    finally:
        crawler.close()
        if store is not None:
            store.close()

    if args.output:
        with open(args.output, "w", encoding="utf-8") as output:
            write_file_map(result.file_map, output)
    else:
        write_file_map(result.file_map, sys.stdout)

    if args.metrics:
        body, _ = get_metrics_export()
        with open(args.metrics, "wb") as metrics_file:
            metrics_file.write(body)

    if result.is_fatal:
        logger.error(f"Crawl stopped: {result.state}; last error: {result.last_error}")
        return 1
    if result.state == CrawlState.STOPPED_CANCELLED:
        logger.warning(f"Crawl cancelled; {len(result.file_map)} file(s) mapped")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
