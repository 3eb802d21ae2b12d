"""
BED Interval Mapping

Translates BED records into contig-relative mask intervals.

Scaffold coordinates (default):
    The record names a scaffold. Starting at the scaffold's first contig the
    contigs are scanned in order; every overlapping contig receives the
    clipped part of the interval, shifted to contig coordinates. A record
    overlapping several contigs is split into several mask intervals.

        scaffold_1:  [0 ---- c1 ---- 100)   gap   [150 ------ c2 ------ 400)
        BED:                 [50 ------------------------ 200)
        mask:        (1, 50, 100)                 (2, 0, 50)

Contig coordinates (--contig-coords):
    The record names a 1-based contig ID and already uses contig-relative
    coordinates; it is validated and passed through.

Record-level problems never raise: every record yields a RecordResult and the
driving loop reports failures and moves on to the next line.
"""

from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, NamedTuple, Optional, Sequence, Tuple

from .contigs import INT32_MAX, INT32_MIN, ContigTable
from .diagnostics import (
    BeginSearch,
    CutoffRejected,
    DiagnosticSink,
    EndOfIntervalSearch,
    EndOfScaffoldSearch,
    MappingFailed,
    SplitRecord,
    UnknownScaffold,
    UnmappedRecord,
)

MIN_BED_FIELDS: int = 3


class MaskInterval(NamedTuple):
    """Contig-relative [begin, end); tuple order is the mask sort order."""
    contig_id: int
    begin: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.begin


@dataclass
class RecordResult:
    """
    Outcome of mapping one BED record.

    `error` is set when the record could not be interpreted at all
    (reported as mappingFailed). A record without error may still have no
    intervals, e.g. unknown scaffold or everything below the cutoff; those
    cases are reported while mapping.
    """
    intervals: List[MaskInterval] = field(default_factory=list)
    error: Optional[str] = None
    num_parts: int = 0

    @property
    def failed(self) -> bool:
        return self.error is not None

    @classmethod
    def failure(cls, error: str) -> "RecordResult":
        return cls(error=error)


def parse_int32(text: str) -> Optional[int]:
    """
    Parse a signed 32-bit integer field.

    Returns:
        The value, or None if the text is not an integer or out of range

    Examples:
        >>> parse_int32("42")
        42
        >>> parse_int32("4.2") is None
        True
        >>> parse_int32("2147483648") is None
        True
    """
    try:
        value = int(text)
    except ValueError:
        return None
    if not INT32_MIN <= value <= INT32_MAX:
        return None
    return value


def _parse_coordinates(fields: Sequence[str]) -> Tuple[Optional[int], Optional[int], Optional[str]]:
    begin = parse_int32(fields[1])
    if begin is None:
        return None, None, f"invalid begin coordinate {fields[1]!r}"
    end = parse_int32(fields[2])
    if end is None:
        return None, None, f"invalid end coordinate {fields[2]!r}"
    return begin, end, None


class IntervalMapper:
    """
    Map BED records onto the contigs of one database.

    Args:
        table: Contig table of the target database
        sink: Receives diagnostic events
        cutoff: Minimum length of an accepted (clipped) interval
        contig_coords: Records use contig IDs and contig coordinates
        bed_file: Name used for the `file` field of diagnostics
    """

    def __init__(
        self,
        table: ContigTable,
        sink: DiagnosticSink,
        cutoff: int = 0,
        contig_coords: bool = False,
        bed_file: str = "-",
    ):
        self.table = table
        self.sink = sink
        self.cutoff = cutoff
        self.contig_coords = contig_coords
        self.bed_file = bed_file

    def map_lines(self, lines: Iterable[str]) -> List[MaskInterval]:
        """
        Map every record of a BED stream, in file order.

        Blank lines are skipped but still counted for line numbers.
        Failed records are reported as mappingFailed and skipped.

        Returns:
            Accepted mask intervals in input order (unsorted)
        """
        intervals: List[MaskInterval] = []

        for line_number, fields in self._records(lines):
            result = self.map_fields(fields, line_number)
            if result.failed:
                self.sink.emit(MappingFailed(
                    file=self.bed_file,
                    line=line_number,
                    bed_entry=tuple(fields),
                    error=result.error,
                ))
                continue
            intervals.extend(result.intervals)

        return intervals

    @staticmethod
    def _records(lines: Iterable[str]) -> Iterator[Tuple[int, List[str]]]:
        for line_number, line in enumerate(lines, start=1):
            fields = line.split()
            if fields:
                yield line_number, fields

    def map_fields(self, fields: Sequence[str], line: int) -> RecordResult:
        """Map one whitespace-split BED record."""
        if len(fields) < MIN_BED_FIELDS:
            return RecordResult.failure(
                f"missing fields: expected at least {MIN_BED_FIELDS} fields, got {len(fields)}"
            )

        if self.contig_coords:
            return self.map_contig_record(fields)
        return self.map_scaffold_record(fields, line)

    def map_contig_record(self, fields: Sequence[str]) -> RecordResult:
        """
        Validate a record given in contig coordinates.

        Examples:
            contig 1 has length 100:
            ("1", "10", "20")  -> (1, 10, 20)
            ("0", "10", "20")  -> failure, contig IDs are 1-based
            ("1", "10", "101") -> failure, out of bounds
        """
        contig_id = parse_int32(fields[0])
        if contig_id is None:
            return RecordResult.failure(f"invalid contig ID {fields[0]!r}")
        begin, end, error = _parse_coordinates(fields)
        if error:
            return RecordResult.failure(error)

        if contig_id < 1:
            return RecordResult.failure(f"invalid contig ID {contig_id}: contig IDs are 1-based")
        if contig_id > len(self.table):
            return RecordResult.failure(f"invalid contig ID {contig_id}: too large")

        contig = self.table.contig(contig_id)
        if not 0 <= begin <= end <= contig.length:
            return RecordResult.failure(
                f"contig coordinates [{begin}, {end}) out of bounds: [0, {contig.length}]"
            )

        return RecordResult(intervals=[MaskInterval(contig_id, begin, end)], num_parts=1)

    def map_scaffold_record(self, fields: Sequence[str], line: int) -> RecordResult:
        """
        Locate a scaffold-coordinate record on the scaffold's contigs.

        The scan starts at the scaffold's first contig and stops at the first
        contig of another scaffold or the first contig starting after the
        interval, so the cost is bounded by the scaffold's contig run.
        """
        scaffold = fields[0]
        bed_begin, bed_end, error = _parse_coordinates(fields)
        if error:
            return RecordResult.failure(error)

        start_idx = self.table.first_contig_index(scaffold)
        if start_idx is None:
            self.sink.emit(UnknownScaffold(file=self.bed_file, line=line, scaffold=scaffold))
            return RecordResult()

        contigs = self.table.contigs
        bed_entry = tuple(fields)

        self.sink.emit(BeginSearch(
            file=self.bed_file,
            line=line,
            scaffold=scaffold,
            scaffold_index=start_idx,
            indexed_scaffold=contigs[start_idx].scaffold,
        ))

        result = RecordResult()
        for idx in range(start_idx, len(contigs)):
            contig = contigs[idx]

            if contig.scaffold != scaffold:
                self.sink.emit(EndOfScaffoldSearch(
                    file=self.bed_file,
                    line=line,
                    scaffold=scaffold,
                    current_scaffold=contig.scaffold,
                ))
                break
            if bed_end < contig.begin:
                self.sink.emit(EndOfIntervalSearch(
                    file=self.bed_file,
                    line=line,
                    mask_interval=(bed_begin, bed_end),
                    contig_interval=(contig.begin, contig.end),
                ))
                break
            if contig.end < bed_begin:
                continue

            interval = MaskInterval(
                idx + 1,
                max(bed_begin, contig.begin) - contig.begin,
                min(bed_end, contig.end) - contig.begin,
            )
            result.num_parts += 1

            if self.cutoff <= interval.length:
                result.intervals.append(interval)
            else:
                self.sink.emit(CutoffRejected(
                    file=self.bed_file,
                    line=line,
                    bed_entry=bed_entry,
                    contig_id=interval.contig_id,
                    length=interval.length,
                    cutoff=self.cutoff,
                ))

        num_mapped = len(result.intervals)
        if num_mapped == 0:
            self.sink.emit(UnmappedRecord(
                file=self.bed_file,
                line=line,
                bed_entry=bed_entry,
                num_total_parts=result.num_parts,
                num_mapped_parts=0,
            ))
        elif num_mapped > 1:
            self.sink.emit(SplitRecord(
                file=self.bed_file,
                line=line,
                bed_entry=bed_entry,
                num_total_parts=result.num_parts,
                num_mapped_parts=num_mapped,
            ))

        return result
