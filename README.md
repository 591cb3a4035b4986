# strgeno

`strgeno` provides the building blocks for genotyping short tandem repeats
(STRs) from long-read alignments. It can:

- read repeat loci and check them against a FASTA index;
- pull reference sequence out of plain or gzip-compressed FASTA files;
- collect the reads from a BAM file that span a locus, grouped by haplotype;
- read inserted sequences out of minimap2-style `cs` difference strings;
- split unphased insertions into haplotypes by hierarchical clustering;
- build a consensus of insertions with partial-order alignment.

The package is pure Python and has no runtime dependencies.

## Reference sequence (`strgeno.fasta`)

`read_fai(fasta)` reads `<fasta>.fai` and returns its entries keyed by
sequence name. `fetch_sequence(fasta, chrom, start, end)` returns the bases
from 0-based `start` to `end` inclusive. Coordinates are clipped to the
sequence, and an empty string comes back when nothing of the range lies on
it. Plain and gzip-compressed FASTA files are both read. `open_text(filename)`
opens a text file and decompresses it when the name ends in `.gz`.

## Repeat loci (`strgeno.repeats`)

A `RepeatInterval` has a chromosome, a start, an end and an optional time
stamp. It prints as `chrom:start-end`. Loci come from:

- `intervals_from_string(region, fasta)`, which parses a `chr:start-end`
  string;
- `intervals_from_bed(region_file, fasta)` or `parse_bed(lines, fasta)`,
  which read the first three columns of a BED file and skip blank lines and
  `#` lines;
- `pathogenic_intervals(fasta)`, which reads a BED file of pathogenic loci
  from the URL or path in the `STRGENO_PATHOGENIC_BED` environment variable.

Each of these returns a list, and every interval is checked with
`RepeatInterval.validated`. A malformed region, an end before the start, an
unknown chromosome or an end beyond the chromosome raises `RegionError`.

```python
from strgeno.repeats import intervals_from_string

[repeat] = intervals_from_string("chr7:154654404-154654432", "ref.fa")
ref_seq = repeat.reference_repeat_sequence("ref.fa")          # None if out of bounds
target = repeat.make_repeat_compressed_sequence("ref.fa", 5000)
```

`make_repeat_compressed_sequence` cuts the repeat out of the reference and
keeps `flanking` bases on either side. Near the ends of the chromosome the
flanks are shorter.

## Reads (`strgeno.bam`)

`BamReader(path)` reads a local BAM file record by record. It does not use an
index: `fetch(chrom, start, end)` scans the file for alignments that overlap
the range. Each `BamRecord` has a name, position, mapping quality, CIGAR,
sequence and auxiliary tags. CRAM files and remote URLs are refused with
`ValueError`.

`get_overlapping_reads(reader, repeat, unphased, max_number_reads)` keeps
reads with a non-zero mapping quality that span the whole repeat. It returns
a `Reads` object with the sequences per haplotype and the phase set seen last.
Unphased reads go to haplotype 0. Otherwise a read is kept only if its `HP`
tag is set, as read by `get_phase`, and the phase set comes from the `PS` tag
through `get_phase_set`. Each haplotype is randomly downsampled: haplotype 0
to `max_number_reads`, and haplotypes 1 and 2 to half of that.

## Insertions from `cs` strings (`strgeno.cstag`)

```python
from strgeno.cstag import split_cs, parse_cs

split_cs(":32*nt*na:10-gga:5+aaa:10")
# [':32', '*nt', '*na', ':10', '-gga', ':5', '+aaa', ':10']

parse_cs(4990, ":10+cagcagcag:5", minlen=5, flanking=5000, repeat=repeat)
# 'cagcagcag'
```

`parse_cs` follows the reference position from the alignment's target start.
It joins the insertions that are longer than `minlen` and lie within
`JUNCTION_WINDOW` (15) bases of the junction at position `flanking`. It
returns `None` when there are none.

## Phasing unphased insertions (`strgeno.phasing`)

`split(insertions, repeat, check_outliers)` builds the pairwise Levenshtein
distances (`strgeno.distance.levenshtein`) and clusters them with Ward
linkage (`strgeno.clustering.ward_linkage`). It then picks one or two
haplotype clusters. Clusters smaller than a tenth of the reads, and never
smaller than 1, are treated as noise. The result is a `SplitSequences` with
`hap1`, `hap2` (which is `None` for a homozygous locus) and `flag`. The flag is
`"CLUSTERFAILURE"` when no cluster qualified. With `check_outliers` the result
also holds the insertions that are more than twice as long as the median of
the longer allele. At least two insertions are needed.

`ward_linkage(condensed, n)` takes the upper triangle of a distance matrix
and returns the merges as `Step` objects, in order of increasing
dissimilarity:

```python
from strgeno.clustering import ward_linkage

ward_linkage([1.0], 2)
# [Step(cluster1=0, cluster2=1, dissimilarity=1.0, size=2)]
```

## Consensus (`strgeno.consensus`, `strgeno.poa`, `strgeno.alignment`)

`consensus(seqs, support, consensus_reads, repeat)` first calls
`remove_outliers`. That drops sequences more than two standard deviations
from the mean length, unless the floored deviation is below 5. If fewer than
`support` reads remain, the result has no sequence. With
`consensus_reads == 1` a random read stands in for the consensus. Otherwise
at most `consensus_reads` random reads are merged into a `PoaGraph`, and its
heaviest path is the consensus. The result is a `Consensus` with `seq`,
`support`, `std_dev` and `score`. The score is the alignment score of the
consensus back to the graph.

```python
from strgeno.poa import PoaGraph

graph = PoaGraph("CAGCAGCAG")
graph.add_sequence("CAGCAGCAG")
graph.consensus()        # 'CAGCAGCAG'
```

`align_to_graph` in `strgeno.alignment` does the underlying global
alignment with affine gaps. `Scoring` holds the scores: gap open -12, gap
extend -6, match 3 and mismatch -4 by default.

## What the package does not do

There is no command-line program and no end-to-end genotyping run. The
package does not align reads to the repeat-compressed reference itself,
because it has no read aligner. It does not assign genotypes to the
consensus alleles and does not write VCF output. Those steps have to be put
together by the caller from the pieces above.

## Tests

The test suite uses pytest. Install the `test` extra to get it:

```
pip install -e .[test]
pytest
```