import pytest

from strgeno.alignment import Operation, Scoring, align_to_graph


def chain(seq):
    return list(seq), [[] if k == 0 else [k - 1] for k in range(len(seq))]


def test_default_scoring_values():
    scoring = Scoring()
    assert scoring.match_score("A", "A") == 3
    assert scoring.match_score("A", "C") == -4
    assert (scoring.gap_open, scoring.gap_extend) == (-12, -6)


def test_custom_scoring():
    scoring = Scoring(match_bonus=1, mismatch_penalty=-1)
    assert scoring.match_score("G", "G") == 1
    assert scoring.match_score("G", "T") == -1


def test_identical_sequence_all_matches():
    bases, preds = chain("ACGT")
    aln = align_to_graph(bases, preds, "ACGT", Scoring())
    assert aln.score == 12
    assert [s.operation for s in aln.steps] == [Operation.MATCH] * 4
    assert [(s.node, s.query) for s in aln.steps] == [(0, 0), (1, 1), (2, 2), (3, 3)]


def test_single_deletion():
    bases, preds = chain("ACGTACGT")
    aln = align_to_graph(bases, preds, "ACGACGT", Scoring())
    deletions = [s for s in aln.steps if s.operation is Operation.DELETION]
    assert len(deletions) == 1
    assert deletions[0].node == 3
    assert aln.score == 3


def test_single_insertion():
    bases, preds = chain("ACGT")
    aln = align_to_graph(bases, preds, "ACCGT", Scoring())
    ops = [s.operation for s in aln.steps]
    assert ops.count(Operation.INSERTION) == 1
    assert ops.count(Operation.MATCH) == 4


def test_empty_query_is_all_deletions():
    bases, preds = chain("ACG")
    aln = align_to_graph(bases, preds, "", Scoring())
    assert [s.operation for s in aln.steps] == [Operation.DELETION] * 3
    assert aln.score == -30


def test_branching_graph_picks_matching_path():
    bases = ["A", "C", "G", "T"]
    preds = [[], [0], [0], [1, 2]]
    aln = align_to_graph(bases, preds, "AGT", Scoring())
    assert [s.operation for s in aln.steps] == [Operation.MATCH] * 3
    assert [s.node for s in aln.steps] == [0, 2, 3]


@pytest.mark.parametrize(
    "ref,query",
    [
        ("ACGTACGT", "ACGTTACGT"),
        ("CAGCAGCAG", "CAGCAG"),
        ("TTTT", "GGGGGG"),
        ("A", "ACGTAC"),
        ("CAGCAGCAGCAG", "CTGCAGCAACAG"),
    ],
)
def test_chain_alignment_consumes_everything_in_order(ref, query):
    bases, preds = chain(ref)
    aln = align_to_graph(bases, preds, query, Scoring())
    queries = [s.query for s in aln.steps if s.query is not None]
    nodes = [s.node for s in aln.steps if s.node is not None]
    assert queries == list(range(len(query)))
    assert nodes == list(range(len(ref)))


def test_exact_match_scores_higher_than_mutant():
    bases, preds = chain("CAGCAGCAG")
    exact = align_to_graph(bases, preds, "CAGCAGCAG", Scoring())
    mutant = align_to_graph(bases, preds, "CAGCTGCAG", Scoring())
    assert exact.score > mutant.score


def test_predecessor_after_node_is_rejected():
    with pytest.raises(ValueError):
        align_to_graph(["A", "C"], [[1], []], "AC", Scoring())


def test_length_mismatch_is_rejected():
    with pytest.raises(ValueError):
        align_to_graph(["A", "C"], [[]], "AC", Scoring())