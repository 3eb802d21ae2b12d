"""
BED to Mask Conversion Run

Ties the pieces together for one run:

    ContigTableSource --build_contig_table--> ContigTable
    BED lines --IntervalMapper--> [MaskInterval]
    [MaskInterval] --write_mask--> .anno / .data
"""

import sys
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, TextIO, Tuple

from .contigs import ContigTable, build_contig_table
from .diagnostics import (
    ContigTableBuilt,
    DiagnosticSink,
    LoggingSink,
    MaskIntervalsCollected,
    RunContext,
    RunOptions,
)
from .dump_source import ContigTableSource, DBdumpSource, default_dbdump
from .errors import ConfigurationError
from .mapper import IntervalMapper, MaskInterval
from .serializer import validate_mask_name, write_mask

STDIN_PATH = "-"
MAX_CUTOFF: int = 2 ** 30
BED_DECODE_ERRORS = "surrogateescape"


@dataclass
class ConverterOptions:
    """Options of one conversion run."""
    db_file: str
    mask_name: str
    bed_file: str = STDIN_PATH
    contig_coords: bool = False
    cutoff: int = 0
    verbose: bool = False
    dbdump: str = field(default_factory=default_dbdump)

    def validate(self) -> None:
        """
        Check everything that can be checked before reading any input.

        Raises:
            ConfigurationError: On the first invalid option
        """
        if not 0 <= self.cutoff < MAX_CUTOFF:
            raise ConfigurationError("--cutoff must be non-negative and less than 1 Gbp")
        validate_mask_name(self.mask_name)
        _check_readable(self.db_file)
        if self.bed_file != STDIN_PATH:
            _check_readable(self.bed_file)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bedFile": self.bed_file,
            "damFile": self.db_file,
            "maskName": self.mask_name,
            "contigCoords": self.contig_coords,
            "cutoff": self.cutoff,
        }


def _check_readable(path: str) -> None:
    try:
        with open(path, "rb"):
            pass
    except OSError as e:
        raise ConfigurationError(f"could not read `{path}`: {e.strerror or e}") from e


@contextmanager
def open_bed(path: str, stdin: Optional[TextIO] = None) -> Iterator[TextIO]:
    """
    Open a BED file, or standard input for '-'.

    Undecodable bytes are kept as surrogate escapes instead of aborting
    the read; a record fails only where such bytes land in a parsed field.
    """
    if path == STDIN_PATH:
        fh = stdin if stdin is not None else sys.stdin
        if hasattr(fh, "reconfigure"):
            fh.reconfigure(errors=BED_DECODE_ERRORS)
        yield fh
        return
    try:
        fh = open(path, "r", encoding="utf-8", errors=BED_DECODE_ERRORS)
    except OSError as e:
        raise ConfigurationError(f"could not read `{path}`: {e.strerror or e}") from e
    with fh:
        yield fh


class Bed2MaskConverter:
    """
    One conversion run.

    Args:
        options: Run options
        context: Run context (program name for diagnostics)
        source: Database structure source; defaults to running DBdump
        sink: Diagnostic sink; defaults to a LoggingSink
    """

    def __init__(
        self,
        options: ConverterOptions,
        context: Optional[RunContext] = None,
        source: Optional[ContigTableSource] = None,
        sink: Optional[DiagnosticSink] = None,
    ):
        self.options = options
        self.context = context or RunContext()
        self.source = source or DBdumpSource(options.db_file, exe=options.dbdump)
        self.sink = sink or LoggingSink(self.context)
        self.table: Optional[ContigTable] = None
        self.mask_intervals: List[MaskInterval] = []

    def run(self, stdin: Optional[TextIO] = None) -> Tuple[Path, Path]:
        """
        Build the contig table, map the BED file and write the mask.

        Returns:
            (anno_path, data_path)
        """
        self.sink.emit(RunOptions(options=self.options.to_dict()))

        self.table = self.read_db_structure()
        self.sink.emit(ContigTableBuilt(num_contigs=len(self.table)))

        self.mask_intervals = self.convert_bed_file(stdin)
        self.sink.emit(MaskIntervalsCollected(num_mask_intervals=len(self.mask_intervals)))

        return write_mask(
            self.options.db_file,
            len(self.table),
            self.options.mask_name,
            self.mask_intervals,
        )

    def read_db_structure(self) -> ContigTable:
        return build_contig_table(self.source.lines())

    def convert_bed_file(self, stdin: Optional[TextIO] = None) -> List[MaskInterval]:
        mapper = IntervalMapper(
            self.table,
            self.sink,
            cutoff=self.options.cutoff,
            contig_coords=self.options.contig_coords,
            bed_file=self.options.bed_file,
        )
        with open_bed(self.options.bed_file, stdin) as fh:
            return mapper.map_lines(fh)
