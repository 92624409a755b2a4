import csv

import pytest

import experiments
from experiments import (
    assign_truncated_binary_codes,
    gen_english_like,
    generate_dataset,
    insertion_order,
    run_one,
)


def test_truncated_binary_codes():
    assert assign_truncated_binary_codes(["a", "b", "c"]) == {"a": "0", "b": "10", "c": "11"}
    assert assign_truncated_binary_codes(list("abcd")) == {"a": "00", "b": "01", "c": "10", "d": "11"}
    assert assign_truncated_binary_codes(list("abcde")) == {
        "a": "00", "b": "01", "c": "10", "d": "110", "e": "111",
    }
    assert assign_truncated_binary_codes(["x"]) == {"x": "0"}
    assert assign_truncated_binary_codes([]) == {}


def test_insertion_order():
    symbols = ["b", "a", "c"]
    assert insertion_order(symbols, "sorted", 0) == ["a", "b", "c"]
    assert insertion_order(symbols, "reversed", 0) == ["c", "b", "a"]
    assert sorted(insertion_order(symbols, "shuffled", 7)) == ["a", "b", "c"]
    with pytest.raises(ValueError):
        insertion_order(symbols, "random", 0)


def test_unknown_generator_falls_back():
    name, text = generate_dataset("nope", 32, 1)
    assert name == "nope_fallback_uniform256"
    assert len(text) == 32


@pytest.mark.parametrize("pipeline", experiments.PIPELINES)
def test_run_one_round_trips(pipeline):
    text = gen_english_like(2000, seed=3)
    row = run_one(text, pipeline, seed=3)
    assert row.correctness_ok == 1
    assert row.tree_valid == 1
    assert row.text_length == 2000
    assert row.lookup_comparisons_per_symbol >= 1.0
    assert row.compressed_bytes * 8 == row.encoded_bits + row.pad_bits


def test_sorted_insertion_is_deepest():
    text = gen_english_like(500, seed=1)
    sorted_row = run_one(text, "sorted")
    shuffled_row = run_one(text, "shuffled", seed=1)
    assert sorted_row.codebook_depth == sorted_row.unique_symbols
    assert shuffled_row.codebook_depth <= sorted_row.codebook_depth


def test_main_writes_outputs(tmp_path):
    rc = experiments.main([
        "--outdir", str(tmp_path),
        "--runs", "1",
        "--exp1_size_kb", "1",
        "--exp1_generators", "english_like",
        "--exp2_min_kb", "1",
        "--exp2_max_kb", "2",
        "--exp2_generators", "zipf64",
        "--exp3_size_kb", "1",
        "--exp3_max_alphabet", "8",
    ])
    assert rc == 0

    with (tmp_path / "metrics.csv").open(newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    # exp1: 1 dataset, exp2: 2 sizes, exp3: alphabets 2, 4, 8; three pipelines each
    assert len(rows) == (1 + 2 + 3) * len(experiments.PIPELINES)
    assert all(r["correctness_ok"] == "1" for r in rows)

    assert (tmp_path / "summary.csv").exists()
    assert (tmp_path / "exp1_lookup_cost.png").exists()
    assert (tmp_path / "exp2_decode_time_zipf64.png").exists()
    assert (tmp_path / "exp3_codebook_depth.png").exists()


def test_run_one_empty_text():
    row = run_one("", "sorted")
    assert row.correctness_ok == 1
    assert row.tree_valid == 0
    assert row.encoded_bits == 0
    assert row.unique_symbols == 0
