# qstate/plot_results.py
import csv, os
from collections import defaultdict
from statistics import median

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from .log import get_logger, setup_logging

DATA_DIR = os.path.join(os.path.dirname(__file__), "..", "data")

log = get_logger("plot_results")


def load_rows(path):
    rows = []
    with open(path, "r") as f:
        r = csv.DictReader(f)
        for row in r:
            row["qubits"]  = int(row["qubits"])
            row["threads"] = int(row["threads"])
            row["wall_ms"] = float(row["wall_ms"])
            rows.append(row)
    return rows

def median_by_key(rows, key_fields):
    buckets = defaultdict(list)
    for r in rows:
        key = tuple(r[k] for k in key_fields)
        buckets[key].append(r["wall_ms"])
    agg = []
    for key, vals in buckets.items():
        out = dict(zip(key_fields, key))
        out["wall_ms"] = float(median(vals))
        agg.append(out)
    return agg

def plot_runtime_vs_qubits(rows, out_dir, tag):
    by_series = defaultdict(list)
    for r in median_by_key(rows, ["op", "path", "qubits"]):
        by_series[f'{r["op"]}/{r["path"]}'].append((r["qubits"], r["wall_ms"]))
    if not by_series:
        return None
    plt.figure()
    for name, p in sorted(by_series.items()):
        xs, ys = zip(*sorted(p))
        plt.plot(xs, ys, marker="o", label=name)
    plt.xlabel("Qubits (n)")
    plt.ylabel("Runtime per call (ms, log scale)")
    plt.title(f"Runtime vs Qubits [{tag}]")
    plt.yscale("log")
    plt.grid(True, which="both", ls="--", lw=0.5)
    plt.legend()
    plt.tight_layout()
    out = os.path.join(out_dir, f"runtime_vs_qubits_{tag}.png")
    plt.savefig(out, dpi=200)
    plt.close()
    return out

def plot_speedup_vs_threads(rows, out_dir, tag):
    pts = sorted(median_by_key(rows, ["threads"]), key=lambda r: r["threads"])
    t1 = next((r["wall_ms"] for r in pts if r["threads"] == 1), None)
    if not t1:
        return None
    xs = [r["threads"] for r in pts]
    ys = [t1 / r["wall_ms"] for r in pts]
    plt.figure()
    plt.plot(xs, ys, marker="o", label="measured")
    plt.plot(xs, xs, ls="--", label="ideal")
    plt.xlabel("Threads")
    plt.ylabel("Speedup (T1/Tt)")
    plt.title(f"Speedup vs Threads [{tag}]")
    plt.grid(True)
    plt.legend()
    out = os.path.join(out_dir, f"speedup_vs_threads_{tag}.png")
    plt.savefig(out, dpi=200)
    plt.close()
    return out

def main():
    setup_logging("INFO")
    csvs = []
    for root, _, files in os.walk(DATA_DIR):
        for f in files:
            if f.endswith(".csv"):
                csvs.append(os.path.join(root, f))

    if not csvs:
        log.warning("No CSV files found under %s", DATA_DIR)
        return

    for path in csvs:
        tag = os.path.splitext(os.path.basename(path))[0]
        try:
            rows = load_rows(path)
        except (OSError, KeyError, ValueError) as e:
            log.warning("Skipping %s: %s", path, e)
            continue

        log.info("Plotting %s (%d rows)", path, len(rows))
        out_dir = os.path.dirname(path)
        if tag == "threads":
            plot_speedup_vs_threads(rows, out_dir, tag)
        else:
            plot_runtime_vs_qubits(rows, out_dir, tag)


if __name__ == "__main__":
    main()
