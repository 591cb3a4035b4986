"""Reading BAM alignments and collecting the reads that span a repeat."""

from __future__ import annotations

import gzip
import random
import struct
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Any

from .repeats import RepeatInterval

_MAGIC = b"BAM\x01"
_INT32 = struct.Struct("<i")
_CORE = struct.Struct("<iiBBHHHiiii")
_SEQ_CODES = "=ACMGRSVTWYHKDBN"
_BYTE_TO_BASES = [_SEQ_CODES[b >> 4] + _SEQ_CODES[b & 0x0F] for b in range(256)]
_CIGAR_OPS = "MIDNSHP=X"
_REF_CONSUMING = frozenset("MDN=X")
_AUX_FORMATS = {"c": "b", "C": "B", "s": "h", "S": "H", "i": "i", "I": "I", "f": "f"}


@dataclass
class BamRecord:
    """One alignment. Auxiliary tags map to ``(type code, value)``."""

    name: str
    tid: int
    pos: int
    mapq: int
    flag: int = 0
    cigar: tuple[tuple[str, int], ...] = ()
    seq: str = ""
    tags: dict[str, tuple[str, Any]] = field(default_factory=dict)

    def reference_end(self) -> int:
        """Position one past the last reference base covered by the alignment."""
        return self.pos + sum(length for op, length in self.cigar if op in _REF_CONSUMING)


def _read_exact(stream: IO[bytes], size: int) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise ValueError("Truncated BAM file")
    return data


def _read_header(stream: IO[bytes]) -> tuple[str, dict[str, int]]:
    if _read_exact(stream, 4) != _MAGIC:
        raise ValueError("Not a BAM file")
    (l_text,) = _INT32.unpack(_read_exact(stream, 4))
    text = _read_exact(stream, l_text).decode("utf-8", errors="replace").rstrip("\0")
    (n_ref,) = _INT32.unpack(_read_exact(stream, 4))
    references: dict[str, int] = {}
    for _ in range(n_ref):
        (l_name,) = _INT32.unpack(_read_exact(stream, 4))
        name = _read_exact(stream, l_name).rstrip(b"\0").decode("ascii")
        (length,) = _INT32.unpack(_read_exact(stream, 4))
        references[name] = length
    return text, references


def _parse_aux(data: bytes) -> dict[str, tuple[str, Any]]:
    tags: dict[str, tuple[str, Any]] = {}
    offset = 0
    while offset < len(data):
        tag = data[offset : offset + 2].decode("ascii")
        kind = chr(data[offset + 2])
        offset += 3
        if kind == "A":
            value: Any = chr(data[offset])
            offset += 1
        elif kind in _AUX_FORMATS:
            fmt = "<" + _AUX_FORMATS[kind]
            (value,) = struct.unpack_from(fmt, data, offset)
            offset += struct.calcsize(fmt)
        elif kind in ("Z", "H"):
            stop = data.index(0, offset)
            value = data[offset:stop].decode("ascii")
            offset = stop + 1
        elif kind == "B":
            subtype = chr(data[offset])
            (count,) = _INT32.unpack_from(data, offset + 1)
            fmt = f"<{count}{_AUX_FORMATS[subtype]}"
            value = struct.unpack_from(fmt, data, offset + 5)
            offset += 5 + struct.calcsize(fmt)
        else:
            raise ValueError(f"Unknown auxiliary type {kind!r} for tag {tag}")
        tags[tag] = (kind, value)
    return tags


def _parse_record(data: bytes) -> BamRecord:
    try:
        (tid, pos, l_read_name, mapq, _bin, n_cigar, flag, l_seq, _next_tid, _next_pos, _tlen) = (
            _CORE.unpack_from(data)
        )
        offset = _CORE.size
        name = data[offset : offset + l_read_name].rstrip(b"\0").decode("ascii")
        offset += l_read_name
        cigar = tuple(
            (_CIGAR_OPS[value & 0x0F], value >> 4)
            for value in struct.unpack_from(f"<{n_cigar}I", data, offset)
        )
        offset += 4 * n_cigar
        packed_len = (l_seq + 1) // 2
        seq = "".join(_BYTE_TO_BASES[b] for b in data[offset : offset + packed_len])[:l_seq]
        offset += packed_len + l_seq
        tags = _parse_aux(data[offset:])
    except (struct.error, IndexError, KeyError) as err:
        raise ValueError(f"Malformed BAM record: {err}") from None
    return BamRecord(name, tid, pos, mapq, flag, cigar, seq, tags)


class BamReader:
    """Sequential reader of an uncompressed-index-free BAM file."""

    def __init__(self, path: str | Path) -> None:
        text = str(path)
        if text.startswith(("http", "s3")):
            raise ValueError(f"Remote alignment files are not supported: {text}")
        if text.endswith(".cram"):
            raise ValueError(f"CRAM files are not supported: {text}")
        self.path = Path(path)
        with gzip.open(self.path, "rb") as stream:
            self.header_text, self.references = _read_header(stream)

    def __iter__(self) -> Iterator[BamRecord]:
        return self._records()

    def _records(self) -> Iterator[BamRecord]:
        with gzip.open(self.path, "rb") as stream:
            _read_header(stream)
            while True:
                prefix = stream.read(4)
                if not prefix:
                    return
                if len(prefix) < 4:
                    raise ValueError("Truncated BAM file")
                (size,) = _INT32.unpack(prefix)
                yield _parse_record(_read_exact(stream, size))

    def fetch(self, chrom: str, start: int, end: int) -> Iterator[BamRecord]:
        """Alignments on ``chrom`` overlapping the half-open range ``[start, end)``."""
        names = list(self.references)
        if chrom not in names:
            raise ValueError(f"Invalid chromosome {chrom}")
        tid = names.index(chrom)
        return (
            record
            for record in self
            if record.tid == tid
            and record.pos < end
            and max(record.reference_end(), record.pos + 1) > start
        )


@dataclass
class Reads:
    """Read sequences per haplotype (0 for unphased) and the phase set seen."""

    seqs: dict[int, list[str]] = field(default_factory=lambda: {0: [], 1: [], 2: []})
    ps: int | None = None


def get_phase(record: BamRecord) -> int:
    """Haplotype from the HP tag, or 0 when the read is not phased."""
    if "HP" not in record.tags:
        return 0
    kind, value = record.tags["HP"]
    if kind == "C":
        return value
    if kind in ("S", "i"):
        if not 0 <= value <= 255:
            raise ValueError(f"Unexpected phase identifier for HP: {value}")
        return value
    raise ValueError(f"Unexpected type of Aux {kind}:{value!r} for HP")


def get_phase_set(record: BamRecord) -> int | None:
    """Phase set identifier from the PS tag, or None when absent."""
    if "PS" not in record.tags:
        return None
    kind, value = record.tags["PS"]
    if kind in ("I", "C", "S"):
        return value
    if kind in ("c", "s", "i"):
        if value < 0:
            raise ValueError(f"Unexpected phase set identifier for PS: {value}")
        return value
    raise ValueError(f"Unexpected type of Aux {kind}:{value!r} for PS")


def get_overlapping_reads(
    reader: BamReader, repeat: RepeatInterval, unphased: bool, max_number_reads: int
) -> Reads:
    """Collect the sequences of reads spanning ``repeat``, grouped by haplotype.

    Reads with mapping quality 0 are ignored. Unphased reads all go to
    haplotype 0; otherwise only reads with an HP tag are kept. Each haplotype
    is randomly downsampled: to ``max_number_reads`` for haplotype 0 and to
    half of it for haplotypes 1 and 2.
    """
    seqs: dict[int, list[str]] = {0: [], 1: [], 2: []}
    ps = None
    for record in reader.fetch(repeat.chrom, repeat.start, repeat.end):
        if (
            record.mapq == 0
            or record.pos > repeat.start
            or record.reference_end() < repeat.end
        ):
            continue
        if unphased:
            seqs[0].append(record.seq)
            continue
        phase = get_phase(record)
        if phase > 0:
            if phase not in seqs:
                raise ValueError(f"Unexpected haplotype {phase} for read {record.name}")
            seqs[phase].append(record.seq)
            ps = get_phase_set(record)

    limits = {0: max_number_reads, 1: max_number_reads // 2, 2: max_number_reads // 2}
    selected = {
        phase: random.sample(reads, min(len(reads), limits[phase]))
        for phase, reads in seqs.items()
    }
    return Reads(seqs=selected, ps=ps)