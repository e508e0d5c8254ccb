#!/usr/bin/env python3
"""
Maintain the catalog schema definition file.

Usage:
  scripts/catalog_schema.py [--input FILE] [--output FILE] [--dump]
                            [--database FILE (--bootstrap | --check)]

Reads the schema INI file, computes a checksum for every block and writes
the file back (to --output, or in place).  With --database, either apply the
schema to a new catalog (--bootstrap) or compare the checksums recorded in
an existing catalog against the file (--check; exits 1 on drift).
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
from constants import SCHEMA_FILE
from schema_loader import SchemaDefinitionLoader
from utils import configure_logging


def build_parser():
    parser = argparse.ArgumentParser(description="Checksum, apply or verify the catalog schema")
    parser.add_argument("-i", "--input", default=SCHEMA_FILE, help="Schema INI file to read")
    parser.add_argument("-o", "--output", help="Write the checksummed schema here (default: --input)")
    parser.add_argument("--no-write", action="store_true", help="Don't write the schema file back")
    parser.add_argument("--dump", action="store_true", help="Print the parsed schema blocks")
    parser.add_argument("--database", help="Catalog database to bootstrap or check")
    action = parser.add_mutually_exclusive_group()
    action.add_argument("--bootstrap", action="store_true", help="Apply the schema to --database")
    action.add_argument("--check", action="store_true", help="Check --database for schema drift")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("--debug", action="store_true")
    verbosity.add_argument("-v", "--verbose", action="store_true")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    if (args.bootstrap or args.check) and not args.database:
        parser.error("--bootstrap and --check need --database")

    level = logging.WARNING
    if args.debug:
        level = logging.DEBUG
    elif args.verbose:
        level = logging.INFO
    configure_logging(level=level)
    logger = logging.getLogger("main")

    loader = SchemaDefinitionLoader(args.input, logger=logger)
    definition, error = loader.load()
    if error:
        logger.error(str(error))
        return 1
    logger.info(f"Read {len(definition)} schema block(s) from {args.input}")

    if args.dump:
        print(definition.dump())

    if not args.no_write:
        error = loader.write(definition, filename=args.output)
        if error:
            logger.error(str(error))
            return 1

    if not args.database:
        return 0

    with CatalogStore(args.database, logger=logger) as store:
        error = store.connect()
        if error:
            logger.error(str(error))
            return 1

        if args.bootstrap:
            error = store.bootstrap(definition)
            if error:
                logger.error(str(error))
                return 1
            return 0

        if args.check:
            drifted, error = store.check_schema(definition)
            if error:
                logger.error(str(error))
                return 1
            if drifted:
                for name in drifted:
                    print(f"drift: {name}")
                return 1
            logger.info(f"Catalog {args.database} matches {args.input}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
