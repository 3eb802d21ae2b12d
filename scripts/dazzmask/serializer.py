"""
Dazzler Mask Serialization

A mask track is stored next to its database as two hidden files:

    <dbDir>/.<db>.<mask>.anno   header
    <dbDir>/.<db>.<mask>.data   interval data

Header (.anno):
    int32   number of contigs (N)
    int32   track size, 0 marks a mask track (no per-interval payload)
    int64   N + 1 byte offsets into .data; entry i is the first record of
            contig i + 1, the last entry is the length of .data

Data (.data):
    int32 begin, int32 end per interval, grouped by contig in ID order

All values are written in host byte order, as the DAZZ_DB tools read them.
"""

import os
import tempfile
from pathlib import Path
from typing import Iterable, List, Sequence, Tuple

import numpy as np

from .errors import ConfigurationError, MaskOrderError
from .mapper import MaskInterval

HEADER_DTYPE = np.dtype("=i4")
POINTER_DTYPE = np.dtype("=i8")
DATA_DTYPE = np.dtype("=i4")

MASK_TRACK_SIZE: int = 0
BYTES_PER_INTERVAL: int = 2 * DATA_DTYPE.itemsize
FILE_MODE = 0o666

ANNO_SUFFIX = ".anno"
DATA_SUFFIX = ".data"


def validate_mask_name(mask_name: str) -> None:
    """
    Reject mask names that would not form a single track name.

    Raises:
        ConfigurationError: Empty name, or name containing '.' or a path separator
    """
    if not mask_name:
        raise ConfigurationError("<mask> must not be empty")
    if "." in mask_name:
        raise ConfigurationError("<mask> must not contain dots (`.`)")
    separators = {"/", os.sep} | ({os.altsep} if os.altsep else set())
    if any(sep in mask_name for sep in separators):
        raise ConfigurationError("<mask> must not contain path separators")


def mask_paths(db_path: str, mask_name: str) -> Tuple[Path, Path]:
    """
    Paths of the header and data file of a mask.

    Examples:
        >>> mask_paths("/data/asm.dam", "repeats")
        (PosixPath('/data/.asm.repeats.anno'), PosixPath('/data/.asm.repeats.data'))
    """
    validate_mask_name(mask_name)
    db = Path(db_path)
    base = db.parent / f".{db.stem}.{mask_name}"
    return base.with_name(base.name + ANNO_SUFFIX), base.with_name(base.name + DATA_SUFFIX)


def build_offsets(num_contigs: int, sorted_intervals: Sequence[MaskInterval]) -> np.ndarray:
    """
    Compute the N + 1 data offsets for intervals sorted by contig.

    Walks the contigs in ID order alongside the intervals. An interval for a
    contig the walk has already passed, or beyond the last contig, means the
    input was not sorted or not validated upstream.

    Raises:
        MaskOrderError: Interval order violates the walk
    """
    offsets = np.empty(num_contigs + 1, dtype=POINTER_DTYPE)
    offsets[0] = 0
    current_contig = 1
    data_pointer = 0

    for interval in sorted_intervals:
        if interval.contig_id < current_contig:
            raise MaskOrderError(
                f"interval {tuple(interval)} follows contig {current_contig}: intervals not sorted"
            )
        if interval.contig_id > num_contigs:
            raise MaskOrderError(
                f"interval {tuple(interval)} beyond last contig {num_contigs}"
            )

        while interval.contig_id > current_contig:
            offsets[current_contig] = data_pointer
            current_contig += 1

        data_pointer += BYTES_PER_INTERVAL

    # remaining entries, including the final total
    offsets[current_contig:] = data_pointer

    return offsets


def encode_mask(num_contigs: int, intervals: Iterable[MaskInterval]) -> Tuple[bytes, bytes]:
    """
    Encode a mask as (header bytes, data bytes).

    Intervals may come in any order; they are sorted by (contig, begin, end).
    """
    sorted_intervals: List[MaskInterval] = sorted(intervals)

    offsets = build_offsets(num_contigs, sorted_intervals)

    header = np.array([num_contigs, MASK_TRACK_SIZE], dtype=HEADER_DTYPE)

    data = np.array(
        [(iv.begin, iv.end) for iv in sorted_intervals],
        dtype=DATA_DTYPE,
    ).reshape(-1, 2)

    return header.tobytes() + offsets.tobytes(), data.tobytes()


def _current_umask() -> int:
    umask = os.umask(0)
    os.umask(umask)
    return umask


def _write_atomic(path: Path, payload: bytes, mode: int) -> Path:
    fd, tmp = tempfile.mkstemp(prefix=path.name + ".", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(payload)
        # mkstemp creates 0600
        os.chmod(tmp, mode)
    except BaseException:
        os.unlink(tmp)
        raise
    return Path(tmp)


def write_mask(
    db_path: str,
    num_contigs: int,
    mask_name: str,
    intervals: Iterable[MaskInterval],
) -> Tuple[Path, Path]:
    """
    Write the .anno/.data pair of a mask next to the database.

    Both files are encoded in memory, written to temporary files in the
    target directory and only then moved into place with os.replace, .data
    first. Encoding or write failures leave any previous mask untouched.
    If moving .anno fails after .data was replaced, the temporary header
    is removed and the new .data sits next to the old .anno until the next
    successful write. Files get mode 0666 minus the umask.

    Args:
        db_path: Path of the .dam/.db file
        num_contigs: Number of contigs in the database
        mask_name: Track name (no dots, no path separators)
        intervals: Mask intervals in any order

    Returns:
        (anno_path, data_path)
    """
    anno_path, data_path = mask_paths(db_path, mask_name)
    header_bytes, data_bytes = encode_mask(num_contigs, intervals)
    mode = FILE_MODE & ~_current_umask()

    tmp_anno = _write_atomic(anno_path, header_bytes, mode)
    try:
        tmp_data = _write_atomic(data_path, data_bytes, mode)
    except BaseException:
        os.unlink(tmp_anno)
        raise

    try:
        os.replace(tmp_data, data_path)
    except BaseException:
        os.unlink(tmp_data)
        os.unlink(tmp_anno)
        raise
    try:
        os.replace(tmp_anno, anno_path)
    except BaseException:
        os.unlink(tmp_anno)
        raise

    return anno_path, data_path


def read_mask(db_path: str, mask_name: str) -> Tuple[int, np.ndarray, np.ndarray]:
    """
    Read a mask written by write_mask.

    Returns:
        (num_contigs, offsets, intervals) where intervals has shape (n, 2)
    """
    anno_path, data_path = mask_paths(db_path, mask_name)
    raw = anno_path.read_bytes()
    num_contigs, _size = np.frombuffer(raw[:2 * HEADER_DTYPE.itemsize], dtype=HEADER_DTYPE)
    offsets = np.frombuffer(raw[2 * HEADER_DTYPE.itemsize:], dtype=POINTER_DTYPE)
    data = np.frombuffer(data_path.read_bytes(), dtype=DATA_DTYPE).reshape(-1, 2)
    return int(num_contigs), offsets, data
