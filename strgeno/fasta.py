"""Access to plain or gzip-compressed FASTA files through their .fai index."""

from __future__ import annotations

import gzip
from dataclasses import dataclass
from pathlib import Path
from typing import IO

_GZIP_MAGIC = b"\x1f\x8b"


@dataclass(frozen=True)
class FaiEntry:
    """One line of a FASTA index: where a sequence lives in the file."""

    name: str
    length: int
    offset: int
    line_bases: int
    line_width: int

    def byte_offset(self, position: int) -> int:
        """Byte offset in the (uncompressed) file of a 0-based sequence position."""
        lines, column = divmod(position, self.line_bases)
        return self.offset + lines * self.line_width + column


def open_text(filename: str | Path) -> IO[str]:
    """Open a text file for reading, decompressing it when it ends in .gz."""
    path = Path(filename)
    if path.suffix == ".gz":
        return gzip.open(path, "rt")
    return open(path, encoding="utf-8")


def read_fai(fasta: str | Path) -> dict[str, FaiEntry]:
    """Read the ``<fasta>.fai`` index, keyed by sequence name in file order."""
    entries: dict[str, FaiEntry] = {}
    with open(f"{fasta}.fai", encoding="utf-8") as handle:
        for line in handle:
            line = line.rstrip("\r\n")
            if not line:
                continue
            fields = line.split("\t")
            if len(fields) < 5:
                raise ValueError(f"Malformed line in {fasta}.fai: {line!r}")
            try:
                length, offset, line_bases, line_width = (int(value) for value in fields[1:5])
            except ValueError:
                raise ValueError(
                    f"Failed parsing chromosome length from fai file: {line!r}"
                ) from None
            entries[fields[0]] = FaiEntry(fields[0], length, offset, line_bases, line_width)
    return entries


def _is_gzipped(path: str | Path) -> bool:
    with open(path, "rb") as handle:
        return handle.read(2) == _GZIP_MAGIC


def fetch_sequence(fasta: str | Path, chrom: str, start: int, end: int) -> str:
    """Return the bases of ``chrom`` from 0-based ``start`` to ``end`` inclusive.

    Coordinates outside the sequence are clipped to it; an empty string is
    returned when nothing of the range lies on the sequence.
    """
    index = read_fai(fasta)
    try:
        entry = index[chrom]
    except KeyError:
        raise KeyError(f"Sequence {chrom} is not in {fasta}") from None
    first = max(start, 0)
    last = min(end, entry.length - 1)
    if last < first:
        return ""
    begin = entry.byte_offset(first)
    stop = entry.byte_offset(last) + 1
    opener = gzip.open if _is_gzipped(fasta) else open
    with opener(fasta, "rb") as handle:
        handle.seek(begin)
        raw = handle.read(stop - begin)
    return raw.replace(b"\n", b"").replace(b"\r", b"").decode("ascii")