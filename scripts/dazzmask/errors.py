"""
Error Types for the BED-to-Mask Converter

Only fatal conditions are exceptions. Problems with a single BED record are
returned as values (see mapper.RecordResult) and never raised.

Taxonomy:
    Bed2MaskError
    ├── ConfigurationError      bad arguments, unreadable inputs, mask name
    ├── StructuralParseError    the DBdump output cannot be trusted
    │   ├── DumpParseError      unparsable or inconsistent field
    │   └── ContigIndexError    record index outside the declared count
    ├── DumpToolError           DBdump exited non-zero
    └── MaskOrderError          serializer walked intervals out of order
"""

from typing import Optional


class Bed2MaskError(Exception):
    """Base class for all fatal converter errors."""


class ConfigurationError(Bed2MaskError):
    """Invalid command line, configuration value or input path."""


class StructuralParseError(Bed2MaskError):
    """The database structure dump is malformed."""


class DumpParseError(StructuralParseError):
    """A dump line carries a missing or non-integer field."""

    def __init__(self, message: str, line_number: Optional[int] = None):
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)
        self.line_number = line_number


class ContigIndexError(StructuralParseError):
    """A record index lies outside the declared number of contigs."""

    def __init__(self, index: int, num_contigs: int, line_number: Optional[int] = None):
        message = f"contig index {index} out of bounds [1, {num_contigs}]"
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)
        self.index = index
        self.num_contigs = num_contigs
        self.line_number = line_number


class DumpToolError(Bed2MaskError):
    """The external dump tool failed; carries its stderr verbatim."""

    def __init__(self, command, returncode: int, stderr_text: str):
        super().__init__(stderr_text.strip() or f"{command[0]} exited with code {returncode}")
        self.command = command
        self.returncode = returncode
        self.stderr_text = stderr_text


class MaskOrderError(Bed2MaskError, AssertionError):
    """Intervals reached the serializer walk out of contig order."""
