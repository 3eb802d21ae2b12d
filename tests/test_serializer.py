"""
Tests for Dazzler mask serialization.
"""

import os
import random
import struct
import sys
from pathlib import Path

import numpy as np
import pytest

# Add scripts directory to path for imports
scripts_dir = Path(__file__).parent.parent / "scripts"
sys.path.insert(0, str(scripts_dir))

from dazzmask.errors import ConfigurationError, MaskOrderError
from dazzmask.mapper import MaskInterval
from dazzmask.serializer import (
    BYTES_PER_INTERVAL,
    build_offsets,
    encode_mask,
    mask_paths,
    read_mask,
    validate_mask_name,
    write_mask,
)


def decode_header(header: bytes):
    """Decode a header with struct, independent of the numpy encoder."""
    num_contigs, size = struct.unpack_from("=ii", header, 0)
    offsets = struct.unpack_from(f"={num_contigs + 1}q", header, 8)
    return num_contigs, size, list(offsets)


@pytest.fixture
def sample_intervals():
    return [
        MaskInterval(1, 10, 20),
        MaskInterval(1, 50, 100),
        MaskInterval(2, 0, 50),
        MaskInterval(4, 5, 6),
        MaskInterval(4, 7, 9),
        MaskInterval(4, 7, 8),
    ]


# ============================================================================
# Tests: Naming
# ============================================================================

class TestMaskPaths:
    """Tests for mask file naming."""

    def test_hidden_siblings(self, temp_dir):
        anno, data = mask_paths(str(temp_dir / "assembly.dam"), "repeats")
        assert anno == temp_dir / ".assembly.repeats.anno"
        assert data == temp_dir / ".assembly.repeats.data"

    def test_db_extension(self, temp_dir):
        anno, _ = mask_paths(str(temp_dir / "reads.db"), "dust")
        assert anno.name == ".reads.dust.anno"

    def test_relative_path(self):
        anno, data = mask_paths("assembly.dam", "rep")
        assert str(anno) == ".assembly.rep.anno"
        assert str(data) == ".assembly.rep.data"

    @pytest.mark.parametrize("name", ["", "rep.1", "a/b", ".hidden"])
    def test_invalid_names(self, name):
        with pytest.raises(ConfigurationError):
            validate_mask_name(name)

    @pytest.mark.parametrize("name", ["repeats", "tan_dust", "mask-2"])
    def test_valid_names(self, name):
        validate_mask_name(name)


# ============================================================================
# Tests: Offset Table
# ============================================================================

class TestBuildOffsets:
    """Tests for the header offset table."""

    def test_offsets(self, sample_intervals):
        offsets = build_offsets(5, sorted(sample_intervals))
        assert offsets.tolist() == [0, 16, 24, 24, 48, 48]

    def test_no_intervals(self):
        assert build_offsets(3, []).tolist() == [0, 0, 0, 0]

    def test_no_contigs(self):
        assert build_offsets(0, []).tolist() == [0]

    def test_only_last_contig(self):
        offsets = build_offsets(3, [MaskInterval(3, 0, 1)])
        assert offsets.tolist() == [0, 0, 0, BYTES_PER_INTERVAL]

    def test_unsorted_input_aborts(self):
        with pytest.raises(MaskOrderError):
            build_offsets(3, [MaskInterval(2, 0, 1), MaskInterval(1, 0, 1)])

    def test_contig_beyond_table_aborts(self):
        with pytest.raises(MaskOrderError):
            build_offsets(2, [MaskInterval(3, 0, 1)])

    def test_contig_zero_aborts(self):
        with pytest.raises(MaskOrderError):
            build_offsets(2, [MaskInterval(0, 0, 1)])

    def test_order_error_is_assertion(self):
        assert issubclass(MaskOrderError, AssertionError)


# ============================================================================
# Tests: Encoding
# ============================================================================

class TestEncodeMask:
    """Tests for encode_mask."""

    def test_header_layout(self, sample_intervals):
        header, data = encode_mask(5, sample_intervals)
        num_contigs, size, offsets = decode_header(header)

        assert num_contigs == 5
        assert size == 0
        assert len(offsets) == 6
        assert len(header) == 8 + 6 * 8
        assert offsets[-1] == len(data)

    def test_data_sorted(self, sample_intervals):
        _, data = encode_mask(5, sample_intervals)
        pairs = list(struct.iter_unpack("=ii", data))
        assert pairs == [(10, 20), (50, 100), (0, 50), (5, 6), (7, 8), (7, 9)]

    def test_offsets_match_interval_counts(self, sample_intervals):
        """Successor offset = offset + 8 bytes per interval of the contig."""
        header, _ = encode_mask(5, sample_intervals)
        _, _, offsets = decode_header(header)
        for contig_id in range(1, 6):
            count = sum(1 for iv in sample_intervals if iv.contig_id == contig_id)
            assert offsets[contig_id] - offsets[contig_id - 1] == BYTES_PER_INTERVAL * count

    def test_offsets_monotonic(self, sample_intervals):
        header, _ = encode_mask(5, sample_intervals)
        _, _, offsets = decode_header(header)
        assert all(a <= b for a, b in zip(offsets, offsets[1:]))

    def test_empty_mask(self):
        header, data = encode_mask(4, [])
        assert data == b""
        assert decode_header(header) == (4, 0, [0, 0, 0, 0, 0])

    def test_shuffled_input_same_bytes(self, sample_intervals):
        expected = encode_mask(5, sample_intervals)
        shuffled = list(sample_intervals)
        random.Random(42).shuffle(shuffled)
        assert encode_mask(5, shuffled) == expected

    def test_input_not_modified(self, sample_intervals):
        reversed_intervals = list(reversed(sample_intervals))
        snapshot = list(reversed_intervals)
        encode_mask(5, reversed_intervals)
        assert reversed_intervals == snapshot

    def test_accepts_generator(self, sample_intervals):
        assert encode_mask(5, iter(sample_intervals)) == encode_mask(5, sample_intervals)


# ============================================================================
# Tests: Files
# ============================================================================

class TestWriteMask:
    """Tests for write_mask / read_mask."""

    def test_files_written(self, db_file, sample_intervals):
        anno, data = write_mask(str(db_file), 5, "repeats", sample_intervals)
        assert anno == db_file.parent / ".assembly.repeats.anno"
        assert data == db_file.parent / ".assembly.repeats.data"

        header_bytes, data_bytes = encode_mask(5, sample_intervals)
        assert anno.read_bytes() == header_bytes
        assert data.read_bytes() == data_bytes

    def test_no_temporary_files_left(self, db_file, sample_intervals):
        write_mask(str(db_file), 5, "repeats", sample_intervals)
        names = sorted(p.name for p in db_file.parent.iterdir())
        assert names == [".assembly.repeats.anno", ".assembly.repeats.data", "assembly.dam"]

    def test_overwrites_previous_mask(self, db_file, sample_intervals):
        write_mask(str(db_file), 5, "repeats", sample_intervals)
        _, data = write_mask(str(db_file), 5, "repeats", [])
        assert data.read_bytes() == b""

    def test_failed_encoding_keeps_previous_mask(self, db_file, sample_intervals):
        anno, data = write_mask(str(db_file), 5, "repeats", sample_intervals)
        before = (anno.read_bytes(), data.read_bytes())

        with pytest.raises(MaskOrderError):
            write_mask(str(db_file), 2, "repeats", sample_intervals)

        assert (anno.read_bytes(), data.read_bytes()) == before

    def test_read_back(self, db_file, sample_intervals):
        write_mask(str(db_file), 5, "repeats", sample_intervals)
        num_contigs, offsets, data = read_mask(str(db_file), "repeats")

        assert num_contigs == 5
        assert offsets.tolist() == [0, 16, 24, 24, 48, 48]
        assert data.shape == (6, 2)
        assert np.array_equal(data[2], [0, 50])

    def test_invalid_mask_name_writes_nothing(self, db_file):
        with pytest.raises(ConfigurationError):
            write_mask(str(db_file), 1, "bad.name", [])
        assert [p.name for p in db_file.parent.iterdir()] == ["assembly.dam"]

    @pytest.mark.parametrize("umask, expected", [(0o022, 0o644), (0o077, 0o600), (0o002, 0o664)])
    def test_mode_follows_umask(self, db_file, sample_intervals, umask, expected):
        previous = os.umask(umask)
        try:
            anno, data = write_mask(str(db_file), 5, "repeats", sample_intervals)
        finally:
            os.umask(previous)
        assert anno.stat().st_mode & 0o777 == expected
        assert data.stat().st_mode & 0o777 == expected

    def test_failed_header_move_removes_temporary(self, db_file, sample_intervals, monkeypatch):
        real_replace = os.replace

        def replace(src, dst):
            if str(dst).endswith(".anno"):
                raise OSError("disk full")
            real_replace(src, dst)

        monkeypatch.setattr(os, "replace", replace)
        with pytest.raises(OSError, match="disk full"):
            write_mask(str(db_file), 5, "repeats", sample_intervals)

        names = sorted(p.name for p in db_file.parent.iterdir())
        assert names == [".assembly.repeats.data", "assembly.dam"]

    def test_failed_data_move_removes_temporaries(self, db_file, sample_intervals, monkeypatch):
        def replace(src, dst):
            raise OSError("read-only file system")

        monkeypatch.setattr(os, "replace", replace)
        with pytest.raises(OSError):
            write_mask(str(db_file), 5, "repeats", sample_intervals)
        assert [p.name for p in db_file.parent.iterdir()] == ["assembly.dam"]
