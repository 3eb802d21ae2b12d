"""
Contig Table Construction

A Dazzler database stores every scaffold as one or more contigs (the pieces
between runs of N). Mask coordinates address contigs, BED files usually
address scaffolds, so the converter needs the scaffold -> contig layout.

The layout is recovered from `DBdump -rh` output:

    + R 3
    R 1
    H 11 >scaffold_1
    L 0 0 100
    R 2
    H 11 >scaffold_1
    L 0 150 400
    R 3
    H 11 >scaffold_2
    L 1 0 80

gives three contigs, scaffold_1 = [0, 100) + [150, 400), scaffold_2 = [0, 80).

Contig IDs are 1-based and follow dump order. Contigs of one scaffold are
consecutive and sorted by position, which the interval search relies on.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from .errors import ContigIndexError, DumpParseError

INT32_MIN: int = -(2 ** 31)
INT32_MAX: int = 2 ** 31 - 1


@dataclass
class Contig:
    """One contig; [begin, end) in scaffold coordinates."""
    scaffold: str = ""
    begin: int = 0
    end: int = 0

    @property
    def length(self) -> int:
        return self.end - self.begin


@dataclass
class ContigTable:
    """
    Dense contig list plus the first contig index of every scaffold.

    `scaffold_index` values are 0-based list indices; contig IDs handed to
    mask consumers are `index + 1`.
    """
    contigs: List[Contig] = field(default_factory=list)
    scaffold_index: Dict[str, int] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.contigs)

    def contig(self, contig_id: int) -> Contig:
        """Look up a contig by its 1-based ID."""
        if not 1 <= contig_id <= len(self.contigs):
            raise IndexError(f"contig ID {contig_id} out of range [1, {len(self.contigs)}]")
        return self.contigs[contig_id - 1]

    def first_contig_index(self, scaffold: str) -> Optional[int]:
        return self.scaffold_index.get(scaffold)


def _field(fields: List[str], idx: int, line_number: int) -> str:
    if idx >= len(fields):
        raise DumpParseError(f"missing field {idx + 1} in {' '.join(fields)!r}", line_number)
    return fields[idx]


def _int_field(fields: List[str], idx: int, line_number: int) -> int:
    text = _field(fields, idx, line_number)
    try:
        value = int(text)
    except ValueError:
        raise DumpParseError(f"expected an integer, got {text!r}", line_number) from None
    if not INT32_MIN <= value <= INT32_MAX:
        raise DumpParseError(f"integer {value} does not fit 32 bits", line_number)
    return value


def build_contig_table(lines: Iterable[str]) -> ContigTable:
    """
    Parse DBdump -rh lines into a ContigTable.

    Args:
        lines: Dump lines, with or without trailing newlines

    Returns:
        ContigTable with one Contig per declared record

    Raises:
        DumpParseError: Missing `+ R` declaration, missing/non-integer field
            or a contig with begin > end
        ContigIndexError: Record line before the `+ R` declaration or with
            an index outside [1, declared count]

    Examples:
        >>> table = build_contig_table(["+ R 1", "R 1", "H 3 >s1", "L 0 0 50"])
        >>> table.contigs[0]
        Contig(scaffold='s1', begin=0, end=50)
    """
    contigs: Optional[List[Contig]] = None
    scaffold_index: Dict[str, int] = {}
    current_idx: Optional[int] = None
    last_scaffold: Optional[str] = None

    for line_number, line in enumerate(lines, start=1):
        if not line.strip():
            continue

        tag = line[0]
        if tag not in "+RHL":
            continue
        fields = line.split()

        if tag == "+":
            if len(fields) > 1 and fields[1] == "R":
                num_records = _int_field(fields, 2, line_number)
                if num_records < 0:
                    raise DumpParseError(f"negative record count {num_records}", line_number)
                contigs = [Contig() for _ in range(num_records)]
            continue

        if tag == "R":
            index = _int_field(fields, 1, line_number)
            num_contigs = 0 if contigs is None else len(contigs)
            if not 1 <= index <= num_contigs:
                raise ContigIndexError(index, num_contigs, line_number)
            current_idx = index - 1
            continue

        if current_idx is None:
            raise DumpParseError(f"{tag!r} line before any record line", line_number)

        if tag == "H":
            header = _field(fields, 2, line_number)
            scaffold = header[1:]
            if scaffold != last_scaffold:
                scaffold_index[scaffold] = current_idx
            contigs[current_idx].scaffold = scaffold
            last_scaffold = scaffold
        else:
            contigs[current_idx].begin = _int_field(fields, 2, line_number)
            contigs[current_idx].end = _int_field(fields, 3, line_number)

    if contigs is None:
        raise DumpParseError("missing `+ R` record count declaration")

    for idx, contig in enumerate(contigs):
        if contig.begin > contig.end:
            raise DumpParseError(
                f"contig {idx + 1} of {contig.scaffold!r} has begin {contig.begin} > end {contig.end}"
            )

    return ContigTable(contigs=contigs, scaffold_index=scaffold_index)
