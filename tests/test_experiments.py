import csv

import pytest

import experiments as exp


@pytest.mark.parametrize("name", sorted(exp.GENERATOR_REGISTRY))
def test_generators_are_seeded(name):
    dataset_name, first = exp.generate_dataset(name, 512, seed=5)
    _, second = exp.generate_dataset(name, 512, seed=5)
    assert dataset_name == name
    assert len(first) == 512
    assert first == second


def test_generate_dataset_fallback():
    dataset_name, data = exp.generate_dataset("nope", 64, seed=1)
    assert dataset_name == "nope_fallback_uniform256"
    assert len(data) == 64


def test_zipf_alphabet_bound():
    assert max(exp.gen_zipf_like(2000, alphabet=16, seed=3)) < 16


@pytest.mark.parametrize("matcher", exp.MATCHERS)
def test_run_one(matcher):
    data = exp.gen_english_like(4000, seed=1)
    row = exp.run_one(data, matcher)
    assert row.correctness_ok == 1
    assert row.matcher == matcher
    assert row.file_size_bytes == 4000
    assert row.container_bytes == row.header_bytes + row.payload_bytes
    assert row.compression_ratio < 1.0
    assert 0 <= row.leftover_bits <= 7
    assert row.bits_per_symbol < 8


def test_run_one_empty_and_single_symbol():
    assert exp.run_one(b"", "trie").correctness_ok == 1
    row = exp.run_one(exp.gen_single_symbol(100), "dict")
    assert row.correctness_ok == 1
    assert row.unique_symbols == 1
    assert row.bits_per_symbol == 1.0


def test_run_one_rejects_unknown_matcher():
    with pytest.raises(ValueError):
        exp.run_one(b"abc", "obst")


def test_main_writes_csv(tmp_path):
    code = exp.main([
        "--outdir", str(tmp_path), "--runs", "2", "--no_plots", "--no_exp2",
        "--exp1_size_kb", "1", "--exp1_generators", "zipf64,single_symbol",
        "--exp3_size_kb", "1",
    ])
    assert code == 0

    with (tmp_path / "metrics.csv").open(encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    exp1 = [r for r in rows if r["exp_name"] == "exp1_distribution"]
    exp3 = [r for r in rows if r["exp_name"] == "exp3_matcher_compare"]
    assert len(exp1) == 2 * 2 * len(exp.MATCHERS)
    assert len(exp3) == len(exp.GENERATOR_REGISTRY) * 2 * len(exp.MATCHERS)
    assert all(r["correctness_ok"] == "1" for r in rows)

    with (tmp_path / "summary.csv").open(encoding="utf-8") as f:
        summary = list(csv.DictReader(f))
    assert summary
    assert all(r["n_runs"] == "2" for r in summary)
    assert all(float(r["correctness_ok_rate"]) == 1.0 for r in summary)


def test_main_writes_charts(tmp_path):
    code = exp.main([
        "--outdir", str(tmp_path), "--runs", "1", "--no_exp2", "--no_exp3",
        "--exp1_size_kb", "1", "--exp1_generators", "uniform128,english_like",
    ])
    assert code == 0
    assert (tmp_path / "exp1_compression_ratio.png").exists()
    assert (tmp_path / "exp1_decode_time.png").exists()
