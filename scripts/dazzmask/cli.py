#!/usr/bin/env python3
"""
bed2mask - Convert a BED file to a Dazzler mask.

Maps BED intervals onto the contigs of a Dazzler database and writes the
mask track `.<db>.<mask>.anno` / `.<db>.<mask>.data` next to the database.

Usage:
    # scaffold coordinates from standard input
    bed2mask assembly.dam repeats < repeats.bed

    # contig coordinates as used in the DB files, drop intervals < 100 bp
    bed2mask -C -x 100 -i contig_repeats.bed assembly.dam repeats

    # defaults from a YAML config (command line wins)
    bed2mask --config config.yaml assembly.dam repeats

Diagnostics are written to standard error as one JSON record per line.
Exit status is 0 on success and 1 on any fatal error.
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

import yaml

from utils.config_parser import bed2mask_settings, load_config, validate_config

from . import __version__
from .converter import STDIN_PATH, Bed2MaskConverter, ConverterOptions
from .diagnostics import RunContext
from .dump_source import default_dbdump
from .errors import Bed2MaskError, ConfigurationError

DESCRIPTION = "Convert a BED file to a Dazzler mask."
VERSION_TEXT = f"%(prog)s v{__version__}\n\nSubject to the terms of the MIT license."


def build_parser(prog: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=prog,
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument("dam", help="Input database (.dam or .db)")
    parser.add_argument("mask", help="Output mask name (must not contain dots)")

    # defaults stay None so config values can fill the gaps
    parser.add_argument(
        "-i", "--input",
        metavar="BED",
        help="Specify a BED file instead of standard input",
    )
    parser.add_argument(
        "-C", "--contig-coords",
        action="store_true",
        default=None,
        help="BED entries relate to contig coordinates as used in the Dazzler DB files",
    )
    parser.add_argument(
        "-x", "--cutoff",
        type=int,
        help="Ignore mask intervals smaller than the cutoff (default: 0)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        default=None,
        help="Get more output",
    )
    parser.add_argument(
        "--config",
        metavar="YAML",
        help="YAML file with a `bed2mask:` section of default options",
    )
    parser.add_argument(
        "--dbdump",
        metavar="EXE",
        help="DBdump executable (default: $DAZZMASK_DBDUMP or DBdump)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=VERSION_TEXT,
        help="Print version and license of this program",
    )

    return parser


def _first(*values):
    for value in values:
        if value is not None:
            return value
    return None


def resolve_options(args: argparse.Namespace) -> ConverterOptions:
    """
    Merge command line and config file into ConverterOptions.

    Raises:
        ConfigurationError: Invalid config file or option values
    """
    settings = {}
    if args.config:
        try:
            config = load_config(args.config)
        except (FileNotFoundError, yaml.YAMLError) as e:
            raise ConfigurationError(f"could not load config `{args.config}`: {e}") from e
        is_valid, errors = validate_config(config)
        if not is_valid:
            raise ConfigurationError("invalid config: " + "; ".join(errors))
        settings = bed2mask_settings(config)

    options = ConverterOptions(
        db_file=args.dam,
        mask_name=args.mask,
        bed_file=_first(args.input, settings.get("input"), STDIN_PATH),
        contig_coords=bool(_first(args.contig_coords, settings.get("contig_coords"), False)),
        cutoff=_first(args.cutoff, settings.get("cutoff"), 0),
        verbose=bool(_first(args.verbose, settings.get("verbose"), False)),
        dbdump=_first(args.dbdump, settings.get("dbdump"), default_dbdump()),
    )
    options.validate()

    return options


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        stream=sys.stderr,
        force=True,
    )


def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv if argv is None else argv
    prog = os.path.basename(argv[0]) if argv else "bed2mask"
    context = RunContext(program=prog)

    args = build_parser(prog).parse_args(argv[1:])

    try:
        options = resolve_options(args)
        setup_logging(options.verbose)
        Bed2MaskConverter(options, context=context).run()
    except (Bed2MaskError, OSError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
