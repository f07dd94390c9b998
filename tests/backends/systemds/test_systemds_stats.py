from backends.systemds.stats import parse_heavy_hitters

_STATS = """
SystemDS Statistics:
Total elapsed time:		1.234 sec.
Total compilation time:		0.456 sec.
Heavy hitter instructions:
 #  Instruction  Time(s)  Count
 1  spoofRA        0.512     10
 2  ba+*           0.101     10
 3  rmvar          0.000     42
 4  createvar      1.2e-3     8

Codegen compile (DAG, CP):	1/1.
"""


def test_parse_heavy_hitter_table():
    stats = parse_heavy_hitters(_STATS)
    assert stats == {"spoofRA": 10, "ba+*": 10, "rmvar": 42, "createvar": 8}
    assert list(stats)[0] == "spoofRA"


def test_parse_without_table_is_empty():
    assert parse_heavy_hitters("Total elapsed time: 1 sec.\n") == {}


def test_counts_across_multiple_tables_are_summed():
    text = "Heavy hitter instructions:\n 1  sp_spoofRA  0.1  3\n\nother\nHeavy hitter instructions:\n 1  sp_spoofRA  0.2  4\n"
    assert parse_heavy_hitters(text) == {"sp_spoofRA": 7}
