"""
compendium/cli.py -- Command-line driver.

Reads data files and directories in the order given, prepares the index,
optionally writes the key indexes used to author exclusion lists, and
converts the included records to Markdown.

Usage:
    compendium-index -s PHB,DMG --index -o out data/ my-filters.json

If no sources are given only reference-document (SRD) records are
emitted.  ``-s ALL`` emits every source.  A JSON file with ``from``,
``exclude`` and ``excludePattern`` lists may be passed as another input::

    {
      "from": ["PHB", "DMG"],
      "exclude": ["background|sage|phb"],
      "excludePattern": ["race|.*|dmg"]
    }
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

from compendium.converter import DEFAULT_BUILDERS, Converter, write_notes
from compendium.corpus_index import CorpusIndex
from compendium.errors import IndexStateError, UnsupportedTypeError
from compendium.models.config import FilterConfig

logger = logging.getLogger("compendium")

ALL_INDEX_FILE = "all-index.json"
SOURCE_INDEX_FILE = "src-index.json"

EXIT_OK = 0
EXIT_FAILURE = 1


def _setup_logging(verbose: bool, debug: bool) -> None:
    level = logging.DEBUG if debug else logging.INFO if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="compendium-index",
        description="Index game reference JSON data and convert it to Markdown",
    )
    parser.add_argument("inputs", nargs="+", help="Data files, data directories or filter files")
    parser.add_argument("-o", "--output", required=True, help="Output directory")
    parser.add_argument(
        "-s", "--source", action="append", default=[],
        help="Source books, comma-separated or repeated (PHB,DMG,...); ALL for every source",
    )
    parser.add_argument("--index", action="store_true",
                        help="Write the key indexes used to author exclusion lists")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("-d", "--debug", action="store_true", help="Debug output")
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.verbose, args.debug)

    output = os.path.abspath(args.output)
    if os.path.isfile(output):
        parser.error(f"Specified output path exists and is a file: {output}")
    os.makedirs(output, exist_ok=True)

    index = CorpusIndex(config=FilterConfig(sources=args.source))
    for input_path in args.inputs:
        logger.info("Reading %s", input_path)
        index.import_tree(input_path)
    logger.info("Finished reading data (%d records)", len(index))

    exports_ok = True
    try:
        index.prepare()
        if args.index:
            exports_ok = _write_indexes(index, output)
        notes = Converter(index, DEFAULT_BUILDERS).build(DEFAULT_BUILDERS)
        write_notes(output, notes)
    except (IndexStateError, UnsupportedTypeError, OSError) as exc:
        logger.error("%s", exc)
        return EXIT_FAILURE

    unresolved = index.resolver.unresolved_keys
    if unresolved:
        logger.info("%d references could not be resolved", len(unresolved))
    # files that failed to import are reported but do not fail the run
    for failure in index.import_failures:
        logger.error("Failed to import %s: %s", failure.path, failure.reason)
    return EXIT_OK if exports_ok else EXIT_FAILURE


def _write_indexes(index: CorpusIndex, output: str) -> bool:
    """Write both key indexes; a write error is logged and conversion goes on."""
    try:
        index.write_index(os.path.join(output, ALL_INDEX_FILE))
        index.write_source_index(os.path.join(output, SOURCE_INDEX_FILE))
    except OSError as exc:
        logger.error("Unable to write key indexes: %s", exc)
        return False
    return True


if __name__ == "__main__":
    sys.exit(main())
