"""Repeat loci: parsing regions and BED files, and extracting reference sequence."""

from __future__ import annotations

import logging
import os
import re
import urllib.request
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from .fasta import fetch_sequence, read_fai

log = logging.getLogger(__name__)

PATHOGENIC_CATALOG_ENV = "STRGENO_PATHOGENIC_BED"
"""Environment variable naming the URL or path of the pathogenic loci BED file."""

_UINT32_MAX = 2**32 - 1
_COORDINATE = re.compile(r"\+?\d+")


class RegionError(ValueError):
    """A region string, BED record or locus could not be used."""


@dataclass
class RepeatInterval:
    """A repeat locus on a chromosome, with an optional start time stamp."""

    chrom: str
    start: int
    end: int
    created: datetime | None = None

    def __str__(self) -> str:
        return f"{self.chrom}:{self.start}-{self.end}"

    @classmethod
    def validated(cls, chrom: str, start: int, end: int, fasta: str | Path) -> RepeatInterval:
        """Create an interval, checking it against the FASTA index."""
        if end < start:
            raise RegionError(
                f"End coordinate is smaller than start coordinate for {chrom}:{start}-{end}"
            )
        entry = read_fai(fasta).get(chrom)
        if entry is None or entry.length <= end:
            raise RegionError(
                f"Chromosome {chrom} is not in the fasta file or the end coordinate is out of bounds"
            )
        return cls(chrom, start, end)

    def make_repeat_compressed_sequence(self, fasta: str | Path, flanking: int) -> str:
        """Reference with the repeat cut out and ``flanking`` bases kept on either side.

        Near the ends of the chromosome the flanks are shortened.
        """
        left = fetch_sequence(fasta, self.chrom, max(self.start - (flanking + 2), 0), self.start - 2)
        right = fetch_sequence(fasta, self.chrom, self.end, self.end + flanking - 2)
        return left + right

    def reference_repeat_sequence(self, fasta: str | Path) -> str | None:
        """The reference sequence of the repeat, or None when it is out of bounds."""
        sequence = fetch_sequence(fasta, self.chrom, self.start - 1, self.end)
        if sequence in ("", "N"):
            log.warning(
                "Cannot genotype repeat at %s because it is out of bounds for the fasta file", self
            )
            return None
        return sequence

    def set_time_stamp(self) -> None:
        """Record the current UTC time as the moment work on this locus began."""
        self.created = datetime.now(timezone.utc)


def _parse_coordinate(text: str, what: str) -> int:
    if not _COORDINATE.fullmatch(text) or int(text) > _UINT32_MAX:
        raise RegionError(f"Could not parse {what} coordinate '{text}' as a number")
    return int(text)


def intervals_from_string(region: str, fasta: str | Path) -> list[RepeatInterval]:
    """Parse a ``chr:start-end`` region string into a one-element list."""
    parts = region.split(":")
    if len(parts) != 2:
        raise RegionError(f"Invalid region format: '{region}'. Expected format is 'chr:start-end'")
    chrom, interval = parts
    coords = interval.split("-")
    if len(coords) != 2:
        raise RegionError(
            f"Invalid interval format: '{interval}'. Expected format is 'chr:start-end', "
            "for example 'chr15:34419425-34419450'"
        )
    start = _parse_coordinate(coords[0], "start")
    end = _parse_coordinate(coords[1], "end")
    return [RepeatInterval.validated(chrom, start, end, fasta)]


def parse_bed(lines: Iterable[str], fasta: str | Path) -> list[RepeatInterval]:
    """Read repeat intervals from the lines of a BED file."""
    intervals = []
    for number, line in enumerate(lines, start=1):
        line = line.rstrip("\r\n")
        if not line or line.startswith("#"):
            continue
        fields = line.split("\t")
        if len(fields) < 3:
            raise RegionError(
                f"Error reading bed record on line {number}. Please verify the bed file "
                "is in the correct format and without header."
            )
        chrom, start_text, end_text = fields[:3]
        try:
            start = _parse_coordinate(start_text, "start")
            end = _parse_coordinate(end_text, "end")
        except RegionError as err:
            raise RegionError(f"Error reading bed record on line {number}: {err}") from None
        intervals.append(RepeatInterval.validated(chrom, start, end, fasta))
    return intervals


def intervals_from_bed(region_file: str | Path, fasta: str | Path) -> list[RepeatInterval]:
    """Read repeat intervals from a BED file."""
    path = Path(region_file)
    if not path.exists():
        raise RegionError("Bed file does not exist")
    with open(path, encoding="utf-8") as handle:
        return parse_bed(handle, fasta)


def pathogenic_intervals(fasta: str | Path) -> list[RepeatInterval]:
    """Read the catalogue of pathogenic repeat loci.

    The catalogue is a BED file whose URL or local path is taken from the
    environment variable named by ``PATHOGENIC_CATALOG_ENV``.
    """
    source = os.environ.get(PATHOGENIC_CATALOG_ENV)
    if not source:
        raise RegionError(
            f"Set {PATHOGENIC_CATALOG_ENV} to the URL or path of the pathogenic loci BED file"
        )
    if source.startswith(("http://", "https://")):
        with urllib.request.urlopen(source) as response:
            body = response.read().decode("utf-8")
        return parse_bed(body.splitlines(), fasta)
    return intervals_from_bed(source, fasta)