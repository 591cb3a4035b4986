import gzip
import textwrap

import pytest

from strgeno.fasta import fetch_sequence, open_text, read_fai

SEQS = {
    "chrA": "ACGTACGTACGGTTAACCGGTTTTA",
    "chrB": "cagcagcagcagcag",
}


def _write_fasta(directory, records, width=10, compress=False):
    parts = []
    fai = []
    offset = 0
    for name, seq in records.items():
        header = f">{name}\n"
        offset += len(header)
        body = "".join(chunk + "\n" for chunk in textwrap.wrap(seq, width))
        fai.append(f"{name}\t{len(seq)}\t{offset}\t{width}\t{width + 1}\n")
        parts.append(header + body)
        offset += len(body)
    text = "".join(parts).encode()
    path = directory / ("ref.fa.gz" if compress else "ref.fa")
    path.write_bytes(gzip.compress(text) if compress else text)
    (directory / (path.name + ".fai")).write_text("".join(fai))
    return str(path)


def test_read_fai_names_and_lengths(tmp_path):
    fasta = _write_fasta(tmp_path, SEQS)
    index = read_fai(fasta)
    assert list(index) == ["chrA", "chrB"]
    assert {name: entry.length for name, entry in index.items()} == {
        name: len(seq) for name, seq in SEQS.items()
    }


@pytest.mark.parametrize("compress", [False, True])
def test_fetch_whole_sequence(tmp_path, compress):
    fasta = _write_fasta(tmp_path, SEQS, compress=compress)
    for name, seq in SEQS.items():
        assert fetch_sequence(fasta, name, 0, len(seq) - 1) == seq


@pytest.mark.parametrize("compress", [False, True])
def test_fetch_across_line_boundary(tmp_path, compress):
    fasta = _write_fasta(tmp_path, SEQS, compress=compress)
    assert fetch_sequence(fasta, "chrA", 8, 12) == SEQS["chrA"][8:13]
    assert fetch_sequence(fasta, "chrB", 9, 11) == SEQS["chrB"][9:12]


def test_fetch_clips_to_sequence(tmp_path):
    fasta = _write_fasta(tmp_path, SEQS)
    assert fetch_sequence(fasta, "chrA", -5, 3) == SEQS["chrA"][:4]
    assert fetch_sequence(fasta, "chrA", 20, 1000) == SEQS["chrA"][20:]


def test_fetch_outside_sequence_is_empty(tmp_path):
    fasta = _write_fasta(tmp_path, SEQS)
    assert fetch_sequence(fasta, "chrA", 100, 200) == ""
    assert fetch_sequence(fasta, "chrA", 5, 2) == ""


def test_fetch_unknown_chromosome(tmp_path):
    fasta = _write_fasta(tmp_path, SEQS)
    with pytest.raises(KeyError):
        fetch_sequence(fasta, "chrZ", 0, 5)


def test_missing_index(tmp_path):
    path = tmp_path / "noindex.fa"
    path.write_text(">x\nACGT\n")
    with pytest.raises(FileNotFoundError):
        read_fai(path)


def test_open_text_plain_and_gzip(tmp_path):
    text = "line one\nline two\n"
    plain = tmp_path / "data.txt"
    plain.write_text(text)
    packed = tmp_path / "data.txt.gz"
    packed.write_bytes(gzip.compress(text.encode()))
    with open_text(plain) as handle:
        plain_text = handle.read()
    with open_text(packed) as handle:
        packed_text = handle.read()
    assert plain_text == text
    assert packed_text == text