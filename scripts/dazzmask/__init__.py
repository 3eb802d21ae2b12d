"""
dazzmask - BED to Dazzler mask conversion

Turns BED annotations into mask tracks of a Dazzler database:
- Contig table reconstruction from `DBdump -rh` output
- Mapping of scaffold or contig coordinates onto contigs, with splitting
- Binary .anno/.data mask serialization
"""

__version__ = "0.2.0"

from .contigs import (
    Contig,
    ContigTable,
    build_contig_table,
)

from .mapper import (
    MaskInterval,
    RecordResult,
    IntervalMapper,
)

from .serializer import (
    encode_mask,
    mask_paths,
    write_mask,
)

from .converter import (
    Bed2MaskConverter,
    ConverterOptions,
)

__all__ = [
    # Contigs
    "Contig",
    "ContigTable",
    "build_contig_table",
    # Mapping
    "MaskInterval",
    "RecordResult",
    "IntervalMapper",
    # Serialization
    "encode_mask",
    "mask_paths",
    "write_mask",
    # Run
    "Bed2MaskConverter",
    "ConverterOptions",
]
