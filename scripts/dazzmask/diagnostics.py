"""
Diagnostic Events

Silent data loss is not acceptable for a mask converter: every BED record that
does not end up in the mask is reported. Reports are typed events; a sink
decides how to render them.

Event kinds (the `message` field of the rendered record):
    unmappedInterval  warning  unknown scaffold, cutoff, or nothing mapped
    mappingFailed     warning  malformed record or contig-mode violation
    splitInterval     debug    one record became several mask intervals
    beginSearch       debug    contig search starts for a record
    breakSearch       debug    contig search stops (endOfScaffold/endOfInterval)
    options           debug    effective run options
    numContigs        debug    size of the contig table
    numMaskIntervals  debug    number of collected mask intervals

LoggingSink renders each event as one JSON line through `logging`, so the
usual handler/level configuration applies.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunContext:
    """Per-run values shared by all components (replaces a global program name)."""
    program: str = "bed2mask"


# ============================================================================
# Events
# ============================================================================

@dataclass(frozen=True)
class DiagnosticEvent:
    """Base class; subclasses set `message`, `level` and fill `fields()`."""
    message: ClassVar[str] = ""
    level: ClassVar[int] = logging.DEBUG

    def fields(self) -> Dict[str, Any]:
        return {}

    def to_record(self) -> Dict[str, Any]:
        record: Dict[str, Any] = {"message": self.message}
        record.update(self.fields())
        return record


@dataclass(frozen=True)
class UnknownScaffold(DiagnosticEvent):
    message: ClassVar[str] = "unmappedInterval"
    level: ClassVar[int] = logging.WARNING

    file: str
    line: int
    scaffold: str

    def fields(self):
        return {
            "reason": "unknownScaffold",
            "file": self.file,
            "line": self.line,
            "targetScaffold": self.scaffold,
        }


@dataclass(frozen=True)
class BeginSearch(DiagnosticEvent):
    message: ClassVar[str] = "beginSearch"

    file: str
    line: int
    scaffold: str
    scaffold_index: int
    indexed_scaffold: str

    def fields(self):
        return {
            "file": self.file,
            "line": self.line,
            "scaffold": self.scaffold,
            "scaffoldIndex": self.scaffold_index,
            "indexedScaffold": self.indexed_scaffold,
        }


@dataclass(frozen=True)
class EndOfScaffoldSearch(DiagnosticEvent):
    message: ClassVar[str] = "breakSearch"

    file: str
    line: int
    scaffold: str
    current_scaffold: str

    def fields(self):
        return {
            "file": self.file,
            "line": self.line,
            "reason": "endOfScaffold",
            "targetScaffold": self.scaffold,
            "currentScaffold": self.current_scaffold,
        }


@dataclass(frozen=True)
class EndOfIntervalSearch(DiagnosticEvent):
    message: ClassVar[str] = "breakSearch"

    file: str
    line: int
    mask_interval: Tuple[int, int]
    contig_interval: Tuple[int, int]

    def fields(self):
        return {
            "file": self.file,
            "line": self.line,
            "reason": "endOfInterval",
            "maskInterval": list(self.mask_interval),
            "contigInterval": list(self.contig_interval),
        }


@dataclass(frozen=True)
class CutoffRejected(DiagnosticEvent):
    message: ClassVar[str] = "unmappedInterval"
    level: ClassVar[int] = logging.WARNING

    file: str
    line: int
    bed_entry: Tuple[str, ...]
    contig_id: int
    length: int
    cutoff: int

    def fields(self):
        return {
            "reason": "cutoff",
            "file": self.file,
            "line": self.line,
            "contigId": self.contig_id,
            "length": self.length,
            "cutoff": self.cutoff,
            "bedEntry": list(self.bed_entry),
        }


@dataclass(frozen=True)
class UnmappedRecord(DiagnosticEvent):
    message: ClassVar[str] = "unmappedInterval"
    level: ClassVar[int] = logging.WARNING

    file: str
    line: int
    bed_entry: Tuple[str, ...]
    num_total_parts: int
    num_mapped_parts: int = 0

    def fields(self):
        return {
            "reason": "seeAbove",
            "file": self.file,
            "line": self.line,
            "numTotalParts": self.num_total_parts,
            "numMappedParts": self.num_mapped_parts,
            "bedEntry": list(self.bed_entry),
        }


@dataclass(frozen=True)
class SplitRecord(DiagnosticEvent):
    message: ClassVar[str] = "splitInterval"

    file: str
    line: int
    bed_entry: Tuple[str, ...]
    num_total_parts: int
    num_mapped_parts: int

    def fields(self):
        return {
            "file": self.file,
            "line": self.line,
            "numTotalParts": self.num_total_parts,
            "numMappedParts": self.num_mapped_parts,
            "bedEntry": list(self.bed_entry),
        }


@dataclass(frozen=True)
class MappingFailed(DiagnosticEvent):
    message: ClassVar[str] = "mappingFailed"
    level: ClassVar[int] = logging.WARNING

    file: str
    line: int
    bed_entry: Tuple[str, ...]
    error: str

    def fields(self):
        return {
            "file": self.file,
            "line": self.line,
            "bedEntry": list(self.bed_entry),
            "error": self.error,
        }


@dataclass(frozen=True)
class RunOptions(DiagnosticEvent):
    message: ClassVar[str] = "options"

    options: Dict[str, Any] = field(default_factory=dict)

    def fields(self):
        return dict(self.options)


@dataclass(frozen=True)
class ContigTableBuilt(DiagnosticEvent):
    message: ClassVar[str] = "numContigs"

    num_contigs: int = 0

    def fields(self):
        return {"numContigs": self.num_contigs}


@dataclass(frozen=True)
class MaskIntervalsCollected(DiagnosticEvent):
    message: ClassVar[str] = "numMaskIntervals"

    num_mask_intervals: int = 0

    def fields(self):
        return {"numMaskIntervals": self.num_mask_intervals}


# ============================================================================
# Sinks
# ============================================================================

class DiagnosticSink(Protocol):
    def emit(self, event: DiagnosticEvent) -> None: ...


def render_event(event: DiagnosticEvent, context: Optional[RunContext] = None) -> str:
    """
    Render an event as a single-line JSON record.

    Examples:
        >>> render_event(ContigTableBuilt(num_contigs=3))
        '{"message": "numContigs", "numContigs": 3}'
    """
    record = event.to_record()
    if context is not None:
        record = {"program": context.program, **record}
    return json.dumps(record)


class LoggingSink:
    """Send rendered events to a logger at the event's level."""

    def __init__(self, context: RunContext, log: Optional[logging.Logger] = None):
        self.context = context
        self.log = log or logger

    def emit(self, event: DiagnosticEvent) -> None:
        if self.log.isEnabledFor(event.level):
            self.log.log(event.level, render_event(event, self.context))


class ListSink:
    """Keep events in memory, e.g. for summaries or tests."""

    def __init__(self):
        self.events: List[DiagnosticEvent] = []

    def emit(self, event: DiagnosticEvent) -> None:
        self.events.append(event)

    def warnings(self) -> List[DiagnosticEvent]:
        return [e for e in self.events if e.level >= logging.WARNING]

    def of_kind(self, message: str) -> List[DiagnosticEvent]:
        return [e for e in self.events if e.message == message]
