"""Building blocks for genotyping short tandem repeats from long-read alignments."""

__version__ = "0.11.4"