"""
Benchmark harness for the Huffman container format

Runs repeated compress/decompress experiments over synthetic datasets
and reports container overhead, compression ratio and timings for both
decode matchers (trie walk vs. prefix-string dictionary).

Outputs (in --outdir):
  - metrics.csv     (raw row per run per matcher)
  - summary.csv     (grouped mean/stdev)
  - *.png           (charts)

How to run:
  python experiments.py --outdir results --runs 5
  python experiments.py --outdir results --runs 3 --exp1_size_kb 256 --exp2_max_mb 2
  python experiments.py --outdir results --exp1_generators uniform256,zipf128,single_symbol
"""

from __future__ import annotations

import argparse
import csv
import random
import statistics
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Sequence, Tuple

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from bitpack import pack_bits, unpack_bits
from compressor import compression_ratio
from container import CompressedContainer
from huffman import CodeTable, freq_table

MATCHERS = ("trie", "dict")


# Utilities

def now_ns() -> int:
    return time.perf_counter_ns()

def ns_to_ms(ns: int) -> float:
    return ns / 1_000_000.0

def safe_mkdir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)


# Synthetic dataset generators

def _cdf(weights: Sequence[float]) -> List[float]:
    total = sum(weights)
    cdf = []
    acc = 0.0
    for w in weights:
        acc += w / total
        cdf.append(acc)
    return cdf

def _sample_indices(rng: random.Random, cdf: List[float], size: int) -> List[int]:
    out = []
    for _ in range(size):
        r = rng.random()
        lo, hi = 0, len(cdf) - 1
        while lo < hi: # first bucket whose cumulative weight covers r
            mid = (lo + hi) // 2
            if r <= cdf[mid]:
                hi = mid
            else:
                lo = mid + 1
        out.append(lo)
    return out

def gen_uniform(size: int, alphabet: int = 256, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    return bytes(rng.randrange(0, alphabet) for _ in range(size))

def gen_repetitive(size: int, dominant: int = ord('A'), dom_frac: float = 0.90, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    other_symbols = [i for i in range(256) if i != dominant]
    return bytes(dominant if rng.random() < dom_frac else rng.choice(other_symbols) for _ in range(size))

def gen_zipf_like(size: int, alphabet: int = 128, s: float = 1.2, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    cdf = _cdf([1.0 / ((i + 1) ** s) for i in range(alphabet)])
    return bytes(_sample_indices(rng, cdf, size))

def gen_english_like(size: int, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    chars = " etaoinshrdlcumwfgypbvkjxqETAOINSHRDLCUMWFGYPBVKJXQ\n"

    def weight(ch: str) -> float:
        if ch == ' ':
            return 13.0
        if ch == '\n':
            return 1.5
        if ch.lower() in "etaoinshrdlu":
            return 6.0
        if ch.lower() in "cmfwgypbvk":
            return 2.5
        return 1.2

    cdf = _cdf([weight(ch) for ch in chars])
    return bytes(ord(chars[i]) for i in _sample_indices(rng, cdf, size))

def gen_single_symbol(size: int, symbol: int = ord('A')) -> bytes:
    return bytes([symbol]) * size

GENERATOR_REGISTRY: Dict[str, Callable[[int, int], bytes]] = {
    "uniform256": lambda size, seed: gen_uniform(size, alphabet=256, seed=seed),
    "uniform128": lambda size, seed: gen_uniform(size, alphabet=128, seed=seed),
    "zipf128": lambda size, seed: gen_zipf_like(size, alphabet=128, s=1.2, seed=seed),
    "zipf64": lambda size, seed: gen_zipf_like(size, alphabet=64, s=1.2, seed=seed),
    "repetitive90": lambda size, seed: gen_repetitive(size, dominant=ord('A'), dom_frac=0.90, seed=seed),
    "repetitive99": lambda size, seed: gen_repetitive(size, dominant=ord('A'), dom_frac=0.99, seed=seed),
    "english_like": lambda size, seed: gen_english_like(size, seed=seed),
    "single_symbol": lambda size, seed: gen_single_symbol(size),
}

def generate_dataset(name: str, size_bytes: int, seed: int) -> Tuple[str, bytes]:
    """
    Unknown dataset names fall back to uniform256 so one typo does not
    abort a long run; the fallback is visible in the dataset name
    """
    fn = GENERATOR_REGISTRY.get(name)
    if fn is None:
        return f"{name}_fallback_uniform256", gen_uniform(size_bytes, alphabet=256, seed=seed)
    return name, fn(size_bytes, seed)


# Experiment runner

@dataclass
class MetricRow:
    exp_name: str
    dataset_name: str
    file_size_bytes: int
    run_id: int
    matcher: str  # "trie" or "dict"
    unique_symbols: int
    max_code_length: int

    build_codes_ms: float
    encode_ms: float
    serialize_ms: float
    decode_ms: float
    total_ms: float

    container_bytes: int
    header_bytes: int
    payload_bytes: int
    leftover_bits: int
    compression_ratio: float
    bits_per_symbol: float
    correctness_ok: int  # 1 or 0


def run_one(data: bytes, matcher: str) -> MetricRow:
    if matcher not in MATCHERS:
        raise ValueError("matcher must be 'trie' or 'dict'")

    ft = freq_table(data)

    # Tree + code table
    t0 = now_ns()
    code_table = CodeTable.from_frequencies(ft) if ft else CodeTable({})
    t1 = now_ns()
    build_codes_ms = ns_to_ms(t1 - t0)

    # encode
    t2 = now_ns()
    packed, leftover_bits = pack_bits(data, code_table)
    t3 = now_ns()
    encode_ms = ns_to_ms(t3 - t2)

    # serialize + parse the container
    t4 = now_ns()
    blob = CompressedContainer(code_table, len(data), leftover_bits, packed).to_bytes()
    container = CompressedContainer.from_bytes(blob)
    t5 = now_ns()
    serialize_ms = ns_to_ms(t5 - t4)

    # decode
    t6 = now_ns()
    decoded = unpack_bits(container.payload, container.leftover_bits, container.code_table,
                          expected_count=container.original_length, matcher=matcher)
    t7 = now_ns()
    decode_ms = ns_to_ms(t7 - t6)

    payload_bits = code_table.encoded_bit_length(ft)

    return MetricRow(
        exp_name="",
        dataset_name="",
        file_size_bytes=len(data),
        run_id=0,
        matcher=matcher,
        unique_symbols=len(ft),
        max_code_length=code_table.max_code_length,
        build_codes_ms=build_codes_ms,
        encode_ms=encode_ms,
        serialize_ms=serialize_ms,
        decode_ms=decode_ms,
        total_ms=build_codes_ms + encode_ms + serialize_ms + decode_ms,
        container_bytes=len(blob),
        header_bytes=len(blob) - len(packed),
        payload_bytes=len(packed),
        leftover_bits=leftover_bits,
        compression_ratio=compression_ratio(len(data), len(blob)),
        bits_per_symbol=payload_bits / max(1, len(data)),
        correctness_ok=1 if decoded == data else 0,
    )


def write_csv(path: Path, rows: List[MetricRow]) -> None:
    fields = list(MetricRow.__dataclass_fields__.keys())
    with path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=fields)
        w.writeheader()
        for r in rows:
            w.writerow({k: getattr(r, k) for k in fields})


SUMMARY_METRICS = (
    "compression_ratio",
    "header_bytes",
    "bits_per_symbol",
    "build_codes_ms",
    "encode_ms",
    "serialize_ms",
    "decode_ms",
    "total_ms",
)

def mean_stdev(vals: List[float]) -> Tuple[float, float]:
    if len(vals) == 1:
        return vals[0], 0.0
    return statistics.mean(vals), statistics.stdev(vals)


def group_summary(rows: List[MetricRow], out_path: Path) -> None:
    """
    Group by exp_name, dataset_name, file_size_bytes, matcher and compute mean/stdev
    """
    key_to: Dict[Tuple[str, str, int, str], List[MetricRow]] = {}
    for r in rows:
        key = (r.exp_name, r.dataset_name, r.file_size_bytes, r.matcher)
        key_to.setdefault(key, []).append(r)

    summary_fields = ["exp_name", "dataset_name", "file_size_bytes", "matcher", "n_runs"]
    for metric in SUMMARY_METRICS:
        summary_fields += [f"{metric}_mean", f"{metric}_stdev"]
    summary_fields.append("correctness_ok_rate")

    with out_path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=summary_fields)
        w.writeheader()
        for key, items in sorted(key_to.items()):
            exp_name, dataset_name, size_b, matcher = key
            row = {
                "exp_name": exp_name,
                "dataset_name": dataset_name,
                "file_size_bytes": size_b,
                "matcher": matcher,
                "n_runs": len(items),
            }
            for metric in SUMMARY_METRICS:
                m, s = mean_stdev([getattr(x, metric) for x in items])
                row[f"{metric}_mean"] = m
                row[f"{metric}_stdev"] = s
            row["correctness_ok_rate"] = sum(x.correctness_ok for x in items) / len(items)
            w.writerow(row)



# Plotting

def _line_chart(x, series: Dict[str, List[float]], xlabel: str, ylabel: str, title: str,
                out_path: Path, xticks: List[str] = None) -> None:
    plt.figure()
    for label, y in series.items():
        plt.plot(x, y, marker="o", label=label)
    if xticks is not None:
        plt.xticks(x, xticks, rotation=20, ha="right")
    if xlabel:
        plt.xlabel(xlabel)
    plt.ylabel(ylabel)
    plt.title(title)
    if len(series) > 1:
        plt.legend()
    plt.tight_layout()
    plt.savefig(out_path, dpi=200)
    plt.close()


def plot_experiment_1(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "exp1_distribution"]
    if not exp_rows:
        return

    datasets = sorted(set(r.dataset_name for r in exp_rows))
    x = list(range(len(datasets)))

    def mean_for(dataset: str, field: str, matcher: str = "trie") -> float:
        vals = [getattr(r, field) for r in exp_rows if r.dataset_name == dataset and r.matcher == matcher]
        return statistics.mean(vals) if vals else float("nan")

    _line_chart(x, {"container": [mean_for(d, "compression_ratio") for d in datasets]},
                "", "Container Bytes / Original Bytes",
                "Experiment 1: Compression Ratio by Distribution",
                outdir / "exp1_compression_ratio.png", xticks=datasets)

    _line_chart(x, {"payload": [mean_for(d, "bits_per_symbol") for d in datasets]},
                "", "Payload Bits per Symbol",
                "Experiment 1: Average Code Length by Distribution",
                outdir / "exp1_bits_per_symbol.png", xticks=datasets)

    _line_chart(x, {m: [mean_for(d, "decode_ms", m) for d in datasets] for m in MATCHERS},
                "", "Decode Time (ms)",
                "Experiment 1: Decode Time by Distribution",
                outdir / "exp1_decode_time.png", xticks=datasets)


def plot_experiment_2(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "exp2_size_scaling"]
    if not exp_rows:
        return

    for dist in sorted(set(r.dataset_name for r in exp_rows)):
        dist_rows = [r for r in exp_rows if r.dataset_name == dist]
        sizes = sorted(set(r.file_size_bytes for r in dist_rows))

        def mean_size(size: int, field: str, matcher: str = "trie") -> float:
            vals = [getattr(r, field) for r in dist_rows if r.file_size_bytes == size and r.matcher == matcher]
            return statistics.mean(vals) if vals else float("nan")

        _line_chart(sizes, {"encode": [mean_size(s, "encode_ms") for s in sizes]},
                    "File Size (bytes)", "Encode Time (ms)",
                    f"Experiment 2: Encode Time vs Size ({dist})",
                    outdir / f"exp2_encode_time_{dist}.png")

        _line_chart(sizes, {m: [mean_size(s, "decode_ms", m) for s in sizes] for m in MATCHERS},
                    "File Size (bytes)", "Decode Time (ms)",
                    f"Experiment 2: Decode Time vs Size ({dist})",
                    outdir / f"exp2_decode_time_{dist}.png")

        _line_chart(sizes, {"container": [mean_size(s, "compression_ratio") for s in sizes]},
                    "File Size (bytes)", "Container Bytes / Original Bytes",
                    f"Experiment 2: Compression Ratio vs Size ({dist})",
                    outdir / f"exp2_compression_ratio_{dist}.png")

        _line_chart(sizes, {"header": [mean_size(s, "header_bytes") for s in sizes]},
                    "File Size (bytes)", "Header Bytes",
                    f"Experiment 2: Header Overhead vs Size ({dist})",
                    outdir / f"exp2_header_bytes_{dist}.png")


def plot_experiment_3(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "exp3_matcher_compare"]
    if not exp_rows:
        return

    datasets = sorted(set(r.dataset_name for r in exp_rows))
    x = list(range(len(datasets)))

    def mean_total(dataset: str, matcher: str) -> float:
        vals = [r.total_ms for r in exp_rows if r.dataset_name == dataset and r.matcher == matcher]
        return statistics.mean(vals) if vals else float("nan")

    _line_chart(x, {m: [mean_total(d, m) for d in datasets] for m in MATCHERS},
                "", "Total Time (ms) (build + encode + serialize + decode)",
                "Experiment 3: End-to-End Time by Dataset",
                outdir / "exp3_total_time.png", xticks=datasets)





# Main

def parse_csv_list(s: str) -> List[str]:
    return [x.strip() for x in s.split(",") if x.strip()]

def run_matchers(data: bytes, exp_name: str, dataset_name: str, run_id: int) -> List[MetricRow]:
    rows = []
    for matcher in MATCHERS:
        row = run_one(data, matcher)
        row.exp_name = exp_name
        row.dataset_name = dataset_name
        row.run_id = run_id
        rows.append(row)
    return rows

def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Huffman container benchmarks")
    ap.add_argument("--outdir", type=str, default="results", help="Output directory for CSV and plots")
    ap.add_argument("--runs", type=int, default=5, help="Repetitions per configuration (>=3 recommended for timing)")
    ap.add_argument("--seed", type=int, default=123, help="Base random seed")
    ap.add_argument("--no_plots", action="store_true", help="Write CSV files only")

    # Experiment toggles
    ap.add_argument("--no_exp1", action="store_true", help="Disable experiment 1 (distribution)")
    ap.add_argument("--no_exp2", action="store_true", help="Disable experiment 2 (size scaling)")
    ap.add_argument("--no_exp3", action="store_true", help="Disable experiment 3 (matcher compare)")

    # Experiment 1 controls
    ap.add_argument("--exp1_size_kb", type=int, default=512, help="Experiment 1 fixed file size in KB")
    ap.add_argument("--exp1_generators", type=str, default="uniform256,zipf128,repetitive90,english_like,single_symbol",
                    help="Comma-separated dataset generator names for experiment 1")

    # Experiment 2 controls
    ap.add_argument("--exp2_min_kb", type=int, default=4, help="Experiment 2 min size in KB (power-of-two growth)")
    ap.add_argument("--exp2_max_mb", type=int, default=8, help="Experiment 2 max size in MB (power-of-two growth)")
    ap.add_argument("--exp2_generators", type=str, default="uniform256,zipf128,repetitive90",
                    help="Comma-separated dataset generator names for experiment 2")

    # Experiment 3 controls
    ap.add_argument("--exp3_size_kb", type=int, default=1024, help="Experiment 3 file size in KB")
    return ap

def main(argv: List[str] = None) -> int:
    args = build_parser().parse_args(argv)

    outdir = Path(args.outdir)
    safe_mkdir(outdir)

    rows: List[MetricRow] = []

    # Experiment 1: distributions (fixed size)
    if not args.no_exp1:
        fixed_size = max(1, args.exp1_size_kb) * 1024
        for gen_name in parse_csv_list(args.exp1_generators):
            for run_id in range(1, args.runs + 1):
                dataset_name, data = generate_dataset(gen_name, fixed_size, args.seed + run_id)
                rows += run_matchers(data, "exp1_distribution", dataset_name, run_id)

    # Experiment 2: size scaling (multiple sizes, powers of 2)
    if not args.no_exp2:
        min_bytes = max(1, args.exp2_min_kb) * 1024
        max_bytes = max(1, args.exp2_max_mb) * 1024 * 1024

        sizes: List[int] = []
        s = min_bytes
        while s <= max_bytes:
            sizes.append(s)
            s *= 2

        for gen_name in parse_csv_list(args.exp2_generators):
            for size_b in sizes:
                for run_id in range(1, args.runs + 1):
                    dataset_name, data = generate_dataset(gen_name, size_b, args.seed + 10_000 + size_b + run_id)
                    rows += run_matchers(data, "exp2_size_scaling", dataset_name, run_id)

    # Experiment 3: matcher compare on every registered generator
    if not args.no_exp3:
        size_b = max(1, args.exp3_size_kb) * 1024
        for gen_name in GENERATOR_REGISTRY:
            for run_id in range(1, args.runs + 1):
                dataset_name, data = generate_dataset(gen_name, size_b, args.seed + 200_000 + run_id + size_b)
                rows += run_matchers(data, "exp3_matcher_compare", f"{dataset_name}_{size_b // 1024}kb", run_id)

    # Write raw and summary
    metrics_csv = outdir / "metrics.csv"
    summary_csv = outdir / "summary.csv"
    write_csv(metrics_csv, rows)
    group_summary(rows, summary_csv)

    if not args.no_plots:
        plot_experiment_1(rows, outdir)
        plot_experiment_2(rows, outdir)
        plot_experiment_3(rows, outdir)

    ok_rate = sum(r.correctness_ok for r in rows) / max(1, len(rows))
    print(f"Wrote {len(rows)} rows to {metrics_csv}")
    print(f"Wrote grouped summary to {summary_csv}")
    print(f"Correctness rate across all runs: {ok_rate:.3f}")
    if not args.no_plots:
        print("Charts saved in:", outdir.resolve())
    return 0 if ok_rate == 1.0 or not rows else 1


if __name__ == "__main__":
    raise SystemExit(main())
