"""
Pytest configuration and fixtures for bed2mask tests.
"""

import logging
import stat
import sys
import tempfile
from pathlib import Path

import pytest

# Add scripts directory to path for imports
scripts_dir = Path(__file__).parent.parent / "scripts"
sys.path.insert(0, str(scripts_dir))

from dazzmask.contigs import build_contig_table
from dazzmask.diagnostics import ListSink
from dazzmask.dump_source import StaticDumpSource


# ============================================================================
# Path Fixtures
# ============================================================================

@pytest.fixture
def project_root():
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def temp_dir():
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def db_file(temp_dir):
    """An (empty) database stub; only its path matters to the converter."""
    path = temp_dir / "assembly.dam"
    path.write_bytes(b"")
    return path


# ============================================================================
# DBdump Fixtures
# ============================================================================

@pytest.fixture
def sample_dump_text():
    """
    DBdump -rh output for three scaffolds:

        scaffold_1: contig 1 [0, 100), contig 2 [100, 250)
        scaffold_2: contig 3 [0, 80)
        scaffold_3: contig 4 [10, 60), contig 5 [200, 300), contig 6 [400, 500)
    """
    return """\
+ R 6
+ M 0
+ H 66
@ H 10
R 1
H 10 >scaffold_1
L 0 0 100
R 2
H 10 >scaffold_1
L 0 100 250
R 3
H 10 >scaffold_2
L 1 0 80
R 4
H 10 >scaffold_3
L 2 10 60

R 5
H 10 >scaffold_3
L 2 200 300
R 6
H 10 >scaffold_3
L 2 400 500
"""


@pytest.fixture
def dump_source(sample_dump_text):
    return StaticDumpSource.from_text(sample_dump_text)


@pytest.fixture
def contig_table(dump_source):
    return build_contig_table(dump_source.lines())


@pytest.fixture
def sink():
    return ListSink()


# ============================================================================
# BED Fixtures
# ============================================================================

@pytest.fixture
def sample_bed_content():
    """Ten well-formed scaffold records and one malformed record."""
    return """\
scaffold_1\t10\t20\trep1
scaffold_1\t50\t150\trep2
scaffold_1\t120\t130
scaffold_2\t0\t80
scaffold_2\t5\t6

scaffold_3\t20\t30
scaffold_3\t210\t220
scaffold_3\t410\t420
scaffold_1\t200\t240
scaffold_2\t1\t
scaffold_2\t60\t70
"""


@pytest.fixture
def sample_bed_file(temp_dir, sample_bed_content):
    bed_path = temp_dir / "annotations.bed"
    bed_path.write_text(sample_bed_content)
    return bed_path


# ============================================================================
# Fake DBdump executable
# ============================================================================

@pytest.fixture
def fake_dbdump(temp_dir, sample_dump_text):
    """
    Factory for a shell script standing in for DBdump.

    The script prints `stdout` (str or bytes) and `stderr` and exits with
    `exit_code`.
    """
    def _create(stdout=None, stderr="", exit_code=0, name="DBdump"):
        stdout = sample_dump_text if stdout is None else stdout
        out_file = temp_dir / f"{name}.out"
        err_file = temp_dir / f"{name}.err"
        if isinstance(stdout, bytes):
            out_file.write_bytes(stdout)
        else:
            out_file.write_text(stdout)
        err_file.write_text(stderr)

        script = temp_dir / name
        script.write_text(
            "#!/bin/sh\n"
            f"cat '{out_file}'\n"
            f"cat '{err_file}' >&2\n"
            f"exit {exit_code}\n"
        )
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return str(script)

    return _create


# ============================================================================
# Logging
# ============================================================================

@pytest.fixture
def reset_logging():
    """Undo the root logger configuration done by the command line entry point."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(root.handlers):
        if type(handler) is logging.StreamHandler:
            root.removeHandler(handler)
    root.setLevel(level)
