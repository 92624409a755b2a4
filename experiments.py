"""
Benchmark: CodeBook lookup and DecodeTree decoding

Runs repeated experiments over synthetic text and writes data for the report

Outputs (in --outdir):
  - metrics.csv     (raw row per run per configuration)
  - summary.csv     (grouped mean/stdev)
  - *.png           (charts)

How to run:
  python experiments.py --outdir results --runs 5
  python experiments.py --outdir results --runs 3 --exp1_size_kb 16 --exp2_max_kb 256
  python experiments.py --outdir results --runs 5 --exp1_generators uniform256,zipf128,english_like

Notes:
  Codes are assigned as a truncated binary code over the distinct characters,
  no frequency analysis. The pipelines only differ in the order entries are
  inserted into the CodeBook, which decides the depth of its search tree.
"""

from __future__ import annotations

import argparse
import csv
import logging
import random
import statistics
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Tuple

import matplotlib.pyplot as plt

from codebook import CodeBook
from errors import UnmappedCharacterError
from huffman import DecodeTree

logger = logging.getLogger(__name__)

PIPELINES = ("sorted", "reversed", "shuffled") # CodeBook insertion orders


# Utilities

def now_ns() -> int:
    return time.perf_counter_ns()

def ns_to_ms(ns: int) -> float:
    return ns / 1_000_000.0

def safe_mkdir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)


def assign_truncated_binary_codes(symbols: List[str]) -> Dict[str, str]:
    """
    Complete prefix-free code over the given symbols, in the given order
    The first u symbols get k bits and the rest k+1 bits, where k = floor(log2 n)
    """
    n = len(symbols)
    if n == 0:
        return {}
    if n == 1:
        # A single symbol would get an empty code; force it to 0 so decoding works
        return {symbols[0]: "0"}
    k = n.bit_length() - 1
    u = (1 << (k + 1)) - n
    codes = {}
    for i, sym in enumerate(symbols):
        if i < u:
            codes[sym] = format(i, f"0{k}b")
        else:
            codes[sym] = format(i + u, f"0{k + 1}b")
    return codes


def insertion_order(symbols: List[str], pipeline: str, seed: int) -> List[str]:
    if pipeline == "sorted":
        return sorted(symbols)
    if pipeline == "reversed":
        return sorted(symbols, reverse=True)
    if pipeline == "shuffled":
        order = sorted(symbols)
        random.Random(seed).shuffle(order)
        return order
    raise ValueError(f"pipeline must be one of {', '.join(PIPELINES)}")


def count_lookup_comparisons(book: CodeBook, text: str) -> int:
    total = 0
    for ch in text:
        bits, comps = book.lookup(ch)
        if bits is None:
            raise UnmappedCharacterError(ch)
        total += comps
    return total


# Synthetic dataset generators

def gen_uniform(size: int, alphabet: int = 256, seed: int = 0) -> str:
    rng = random.Random(seed)
    return "".join(chr(rng.randrange(0, alphabet)) for _ in range(size))

def gen_repetitive(size: int, dominant: str = "A", dom_frac: float = 0.90, seed: int = 0) -> str:
    rng = random.Random(seed)
    other_symbols = [chr(i) for i in range(256) if chr(i) != dominant]
    out = []
    for _ in range(size):
        if rng.random() < dom_frac:
            out.append(dominant)
        else:
            out.append(rng.choice(other_symbols))
    return "".join(out)

def _sample_cdf(rng: random.Random, cdf: List[float]) -> int:
    r = rng.random()
    lo, hi = 0, len(cdf) - 1
    while lo < hi:
        mid = (lo + hi) // 2
        if r <= cdf[mid]:
            hi = mid
        else:
            lo = mid + 1
    return lo

def _cdf(weights: List[float]) -> List[float]:
    total = sum(weights)
    cdf = []
    acc = 0.0
    for w in weights:
        acc += w / total
        cdf.append(acc)
    return cdf

def gen_zipf_like(size: int, alphabet: int = 128, s: float = 1.2, seed: int = 0) -> str:
    rng = random.Random(seed)
    cdf = _cdf([1.0 / ((i + 1) ** s) for i in range(alphabet)])
    return "".join(chr(_sample_cdf(rng, cdf)) for _ in range(size))

def gen_english_like(size: int, seed: int = 0) -> str:
    rng = random.Random(seed)
    chars = (
        " etaoinshrdlcumwfgypbvkjxq"
        "ETAOINSHRDLCUMWFGYPBVKJXQ"
        "\n"
    )
    weights = []
    for ch in chars:
        if ch == ' ':
            weights.append(13.0)
        elif ch == '\n':
            weights.append(1.5)
        elif ch.lower() in "etaoinshrdlu":
            weights.append(6.0)
        elif ch.lower() in "cmfwgypbvk":
            weights.append(2.5)
        else:
            weights.append(1.2)

    cdf = _cdf(weights)
    return "".join(chars[_sample_cdf(rng, cdf)] for _ in range(size))

GENERATOR_REGISTRY: Dict[str, Callable[[int, int], str]] = {
    "uniform256": lambda size, seed: gen_uniform(size, alphabet=256, seed=seed),
    "uniform128": lambda size, seed: gen_uniform(size, alphabet=128, seed=seed),
    "zipf128": lambda size, seed: gen_zipf_like(size, alphabet=128, s=1.2, seed=seed),
    "zipf64": lambda size, seed: gen_zipf_like(size, alphabet=64, s=1.2, seed=seed),
    "repetitive90": lambda size, seed: gen_repetitive(size, dominant="A", dom_frac=0.90, seed=seed),
    "repetitive99": lambda size, seed: gen_repetitive(size, dominant="A", dom_frac=0.99, seed=seed),
    "english_like": lambda size, seed: gen_english_like(size, seed=seed),
}

def generate_dataset(name: str, size: int, seed: int) -> Tuple[str, str]:
    """
    Unknown dataset names fall back to uniform256 so a long run does not stop
    The fallback is visible in the dataset name
    """
    fn = GENERATOR_REGISTRY.get(name)
    if fn is None:
        logger.warning("unknown generator %r, using uniform256", name)
        return f"{name}_fallback_uniform256", gen_uniform(size, alphabet=256, seed=seed)
    return name, fn(size, seed)


# Experiment runner

@dataclass
class MetricRow:
    exp_name: str
    dataset_name: str
    text_length: int
    run_id: int
    pipeline: str  # CodeBook insertion order
    unique_symbols: int

    build_codebook_ms: float
    build_tree_ms: float
    encode_ms: float
    decode_ms: float
    total_ms: float

    encoded_bits: int
    compressed_bytes: int
    pad_bits: int
    compression_ratio: float

    codebook_depth: int
    lookup_comparisons_total: int
    lookup_comparisons_per_symbol: float
    tree_valid: int  # 1 or 0
    correctness_ok: int  # 1 or 0


def run_one(text: str, pipeline: str, seed: int = 0) -> MetricRow:
    symbols = sorted(set(text))
    code_map = assign_truncated_binary_codes(symbols)
    order = insertion_order(symbols, pipeline, seed)

    # CodeBook build
    t0 = now_ns()
    book = CodeBook.from_mapping((sym, code_map[sym]) for sym in order)
    t1 = now_ns()
    build_codebook_ms = ns_to_ms(t1 - t0)

    # DecodeTree build from the CodeBook traversal
    t2 = now_ns()
    tree = DecodeTree.from_codebook(book)
    t3 = now_ns()
    build_tree_ms = ns_to_ms(t3 - t2)

    # encode
    t4 = now_ns()
    bits = book.encode(text)
    t5 = now_ns()
    encode_ms = ns_to_ms(t5 - t4)

    # decode
    t6 = now_ns()
    decoded = tree.decode(bits) if tree.root is not None else "" # empty text builds an empty tree
    t7 = now_ns()
    decode_ms = ns_to_ms(t7 - t6)

    comparisons_total = count_lookup_comparisons(book, text)
    original_bytes = len(text.encode("utf-8"))
    comp_bytes = len(bits.tobytes())
    tree_valid = 1 if tree.root is not None and tree.is_valid() else 0

    return MetricRow(
        exp_name="",
        dataset_name="",
        text_length=len(text),
        run_id=0,
        pipeline=pipeline,
        unique_symbols=len(symbols),
        build_codebook_ms=build_codebook_ms,
        build_tree_ms=build_tree_ms,
        encode_ms=encode_ms,
        decode_ms=decode_ms,
        total_ms=build_codebook_ms + build_tree_ms + encode_ms + decode_ms,
        encoded_bits=len(bits),
        compressed_bytes=comp_bytes,
        pad_bits=(8 - len(bits) % 8) % 8,
        compression_ratio=comp_bytes / max(1, original_bytes),
        codebook_depth=book.depth(),
        lookup_comparisons_total=comparisons_total,
        lookup_comparisons_per_symbol=comparisons_total / max(1, len(text)),
        tree_valid=tree_valid,
        correctness_ok=1 if decoded == text else 0,
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
    "build_codebook_ms",
    "build_tree_ms",
    "encode_ms",
    "decode_ms",
    "total_ms",
    "codebook_depth",
    "lookup_comparisons_per_symbol",
)


def mean_stdev(vals: List[float]) -> Tuple[float, float]:
    if len(vals) == 1:
        return vals[0], 0.0
    return statistics.mean(vals), statistics.stdev(vals)


def group_summary(rows: List[MetricRow], out_path: Path) -> None:
    """
    Group by exp_name, dataset_name, text_length, pipeline and compute mean/stdev
    """
    key_to: Dict[Tuple[str, str, int, str], List[MetricRow]] = {}
    for r in rows:
        key = (r.exp_name, r.dataset_name, r.text_length, r.pipeline)
        key_to.setdefault(key, []).append(r)

    summary_fields = ["exp_name", "dataset_name", "text_length", "pipeline", "n_runs"]
    for metric in SUMMARY_METRICS:
        summary_fields += [f"{metric}_mean", f"{metric}_stdev"]
    summary_fields += ["tree_valid_rate", "correctness_ok_rate"]

    with out_path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=summary_fields)
        w.writeheader()
        for key, items in sorted(key_to.items()):
            exp_name, dataset_name, length, pipeline = key
            out = {
                "exp_name": exp_name,
                "dataset_name": dataset_name,
                "text_length": length,
                "pipeline": pipeline,
                "n_runs": len(items),
            }
            for metric in SUMMARY_METRICS:
                m, s = mean_stdev([getattr(x, metric) for x in items])
                out[f"{metric}_mean"] = m
                out[f"{metric}_stdev"] = s
            out["tree_valid_rate"] = sum(x.tree_valid for x in items) / len(items)
            out["correctness_ok_rate"] = sum(x.correctness_ok for x in items) / len(items)
            w.writerow(out)



# Plotting

def _line_chart(x, series: Dict[str, List[float]], outfile: Path, title: str, ylabel: str,
                xlabel: str = None, xticks: List[str] = None) -> None:
    plt.figure()
    for label, y in series.items():
        plt.plot(x, y, marker="o", label=label)
    if xticks is not None:
        plt.xticks(x, xticks, rotation=20, ha="right")
    if xlabel:
        plt.xlabel(xlabel)
    plt.ylabel(ylabel)
    plt.title(title)
    plt.legend()
    plt.tight_layout()
    plt.savefig(outfile, dpi=200)
    plt.close()


def plot_experiment_1(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "exp1_distribution"]
    if not exp_rows:
        return

    datasets = sorted(set(r.dataset_name for r in exp_rows))

    def mean_for(dataset: str, pipeline: str, field: str) -> float:
        vals = [getattr(r, field) for r in exp_rows if r.dataset_name == dataset and r.pipeline == pipeline]
        return statistics.mean(vals) if vals else float("nan")

    x = list(range(len(datasets)))
    charts = (
        ("lookup_comparisons_per_symbol", "Comparisons per Symbol (avg)",
         "Experiment 1: CodeBook Lookup Cost by Distribution", "exp1_lookup_cost.png"),
        ("encode_ms", "Encode Time (ms)",
         "Experiment 1: Encode Time by Distribution", "exp1_encode_time.png"),
        ("total_ms", "Total Time (ms) (build + encode + decode)",
         "Experiment 1: Total Runtime by Distribution", "exp1_total_time.png"),
    )
    for field, ylabel, title, filename in charts:
        series = {p: [mean_for(d, p, field) for d in datasets] for p in PIPELINES}
        _line_chart(x, series, outdir / filename, title, ylabel, xticks=datasets)


def plot_experiment_2(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "exp2_size_scaling"]
    if not exp_rows:
        return

    for dist in sorted(set(r.dataset_name for r in exp_rows)):
        dist_rows = [r for r in exp_rows if r.dataset_name == dist]
        sizes = sorted(set(r.text_length for r in dist_rows))

        def mean_size(size: int, pipeline: str, field: str) -> float:
            vals = [getattr(r, field) for r in dist_rows if r.text_length == size and r.pipeline == pipeline]
            return statistics.mean(vals) if vals else float("nan")

        for field, ylabel, title in (
            ("encode_ms", "Encode Time (ms)", f"Experiment 2: Encode Time vs Size ({dist})"),
            ("decode_ms", "Decode Time (ms)", f"Experiment 2: Decode Time vs Size ({dist})"),
        ):
            series = {p: [mean_size(s, p, field) for s in sizes] for p in PIPELINES}
            stem = field.replace("_ms", "_time")
            _line_chart(sizes, series, outdir / f"exp2_{stem}_{dist}.png", title, ylabel,
                        xlabel="Text Length (characters)")


def plot_experiment_3(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "exp3_alphabet_scaling"]
    if not exp_rows:
        return

    alphabets = sorted(set(r.unique_symbols for r in exp_rows))

    def mean_alpha(n: int, pipeline: str, field: str) -> float:
        vals = [getattr(r, field) for r in exp_rows if r.unique_symbols == n and r.pipeline == pipeline]
        return statistics.mean(vals) if vals else float("nan")

    for field, ylabel, title, filename in (
        ("codebook_depth", "Search Tree Depth",
         "Experiment 3: CodeBook Depth vs Alphabet Size", "exp3_codebook_depth.png"),
        ("lookup_comparisons_per_symbol", "Comparisons per Symbol (avg)",
         "Experiment 3: Lookup Cost vs Alphabet Size", "exp3_lookup_cost.png"),
    ):
        series = {p: [mean_alpha(n, p, field) for n in alphabets] for p in PIPELINES}
        _line_chart(alphabets, series, outdir / filename, title, ylabel, xlabel="Distinct Characters")



# Main

def parse_csv_list(s: str) -> List[str]:
    return [x.strip() for x in s.split(",") if x.strip()]

def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser()
    ap.add_argument("--outdir", type=str, default="results", help="Output directory for CSV and plots")
    ap.add_argument("--runs", type=int, default=5, help="Repetitions per configuration (>=3 recommended for timing)")
    ap.add_argument("--seed", type=int, default=123, help="Base random seed")
    ap.add_argument("--log_level", type=str, default="WARNING", help="Logging level (DEBUG, INFO, WARNING, ...)")
    ap.add_argument("--no_plots", action="store_true", help="Write CSV files only")

    # Experiment toggles
    ap.add_argument("--no_exp1", action="store_true", help="Disable experiment 1 (distribution)")
    ap.add_argument("--no_exp2", action="store_true", help="Disable experiment 2 (size scaling)")
    ap.add_argument("--no_exp3", action="store_true", help="Disable experiment 3 (alphabet scaling)")

    # Experiment 1 controls
    ap.add_argument("--exp1_size_kb", type=int, default=64, help="Experiment 1 fixed text length in K characters")
    ap.add_argument("--exp1_generators", type=str, default="uniform256,zipf128,repetitive90,english_like",
                    help="Comma-separated dataset generator names for experiment 1")

    # Experiment 2 controls
    ap.add_argument("--exp2_min_kb", type=int, default=4, help="Experiment 2 min length in K characters (power-of-two growth)")
    ap.add_argument("--exp2_max_kb", type=int, default=512, help="Experiment 2 max length in K characters (power-of-two growth)")
    ap.add_argument("--exp2_generators", type=str, default="uniform256,english_like",
                    help="Comma-separated dataset generator names for experiment 2")

    # Experiment 3 controls
    ap.add_argument("--exp3_size_kb", type=int, default=16, help="Experiment 3 fixed text length in K characters")
    ap.add_argument("--exp3_max_alphabet", type=int, default=256, help="Experiment 3 largest alphabet (power-of-two growth from 2)")
    return ap


def run_experiments(args: argparse.Namespace) -> List[MetricRow]:
    rows: List[MetricRow] = []

    def record(exp_name: str, dataset_name: str, text: str, run_id: int, seed: int) -> None:
        for pipeline in PIPELINES:
            row = run_one(text, pipeline, seed)
            row.exp_name = exp_name
            row.dataset_name = dataset_name
            row.run_id = run_id
            if not row.correctness_ok:
                logger.error("round trip mismatch: %s %s run %d %s", exp_name, dataset_name, run_id, pipeline)
            rows.append(row)

    # Experiment 1: distributions (fixed size)
    if not args.no_exp1:
        fixed_size = max(1, args.exp1_size_kb) * 1024
        for gen_name in parse_csv_list(args.exp1_generators):
            for run_id in range(1, args.runs + 1):
                seed = args.seed + run_id
                dataset_name, text = generate_dataset(gen_name, fixed_size, seed)
                record("exp1_distribution", dataset_name, text, run_id, seed)

    # Experiment 2: size scaling (powers of 2)
    if not args.no_exp2:
        sizes: List[int] = []
        s = max(1, args.exp2_min_kb) * 1024
        while s <= max(1, args.exp2_max_kb) * 1024:
            sizes.append(s)
            s *= 2

        for gen_name in parse_csv_list(args.exp2_generators):
            for size in sizes:
                for run_id in range(1, args.runs + 1):
                    seed = args.seed + 10_000 + size + run_id
                    dataset_name, text = generate_dataset(gen_name, size, seed)
                    record("exp2_size_scaling", dataset_name, text, run_id, seed)

    # Experiment 3: alphabet scaling (uniform text, powers of 2)
    if not args.no_exp3:
        size = max(1, args.exp3_size_kb) * 1024
        alphabet = 2
        while alphabet <= args.exp3_max_alphabet:
            for run_id in range(1, args.runs + 1):
                seed = args.seed + 200_000 + alphabet + run_id
                text = gen_uniform(size, alphabet=alphabet, seed=seed)
                record("exp3_alphabet_scaling", f"uniform{alphabet}", text, run_id, seed)
            alphabet *= 2

    return rows


def main(argv: List[str] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(name)s %(levelname)s %(message)s")

    outdir = Path(args.outdir)
    safe_mkdir(outdir)

    rows = run_experiments(args)

    # Write raw and summary
    metrics_csv = outdir / "metrics.csv"
    summary_csv = outdir / "summary.csv"
    write_csv(metrics_csv, rows)
    group_summary(rows, summary_csv)

    # Plots
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
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
