# qstate/bench.py
import argparse, csv, os, socket, subprocess, time, platform
from datetime import datetime

from .composition import inner_product, tensor_product
from .config import get_settings
from .log import get_logger, setup_logging
from .ops_numba import get_threads, set_threads
from .state_cpu import QuantumStateCpu

DATA_DIR = os.path.join(os.path.dirname(__file__), "..", "data")

log = get_logger("bench")


def kind_dir(kind):
    path = os.path.join(DATA_DIR, kind)
    os.makedirs(path, exist_ok=True)
    return path

# ---------------------------------------------------------------------

def meta_row():
    commit = ""
    try:
        commit = subprocess.check_output(["git", "rev-parse", "--short", "HEAD"],
                                         stderr=subprocess.DEVNULL).decode().strip()
    except (OSError, subprocess.CalledProcessError):
        pass
    return {
        "hostname": socket.gethostname(),
        "commit": commit,
        "timestamp": datetime.now().isoformat(timespec="seconds"),
        "python": platform.python_version(),
        "machine": platform.machine(),
    }

HEADER = ["qubits","op","path","threads","repeats","wall_ms","hostname","commit","timestamp"]

def new_csv(path):
    """Create/overwrite CSV with header."""
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", newline="") as f:
        csv.DictWriter(f, fieldnames=HEADER).writeheader()

def write_row(path, row):
    m = meta_row()
    row = dict(row, hostname=m["hostname"], commit=m["commit"], timestamp=m["timestamp"])
    with open(path, "a", newline="") as f:
        csv.DictWriter(f, fieldnames=HEADER).writerow(row)

# ---------------------------------------------------------------------

def random_state(n, seed=0):
    st = QuantumStateCpu(n)
    st.set_Haar_random_state(seed)
    return st

def operations(st, other):
    """op name -> {path: zero-arg callable} for every timed operation."""
    return {
        "squared_norm": {
            "parallel": st.get_squared_norm,
            "single": st.get_squared_norm_single_thread,
        },
        "add_with_coef": {
            "parallel": lambda: st.add_state_with_coef(0.5, other),
            "single": lambda: st.add_state_with_coef_single_thread(0.5, other),
        },
        "inner_product": {
            "parallel": lambda: inner_product(st, other),
        },
    }

def time_op(fn, repeats):
    fn()  # warmup: JIT-compile & warm caches
    t0 = time.perf_counter()
    for _ in range(repeats):
        fn()
    return (time.perf_counter() - t0) * 1e3 / repeats  # ms per call

# ---------------------------------------------------------------------
# individual experiments

def bench_qubits(ns, repeats, out_path):
    log.info("Qubits scaling -> %s", out_path)
    new_csv(out_path)
    threads = get_threads()
    for n in ns:
        st, other = random_state(n, seed=42), random_state(n, seed=43)
        for op, paths in operations(st, other).items():
            for path, fn in paths.items():
                wall = time_op(fn, repeats)
                write_row(out_path, {
                    "qubits": n, "op": op, "path": path,
                    "threads": 1 if path == "single" else threads,
                    "repeats": repeats, "wall_ms": f"{wall:.3f}",
                })
                log.info("  n=%d  %s/%s  wall=%.3f ms", n, op, path, wall)

def bench_threads(n, threads_list, repeats, out_path):
    log.info("Thread scaling -> %s", out_path)
    new_csv(out_path)
    st = random_state(n, seed=123)
    t1 = time_op(st.get_squared_norm_single_thread, repeats)
    log.info("  single-thread baseline=%.3f ms", t1)
    for t in threads_list:
        set_threads(t)
        wall = time_op(st.get_squared_norm, repeats)
        write_row(out_path, {
            "qubits": n, "op": "squared_norm", "path": "parallel", "threads": t,
            "repeats": repeats, "wall_ms": f"{wall:.3f}",
        })
        log.info("  t=%d  wall=%.3f ms  speedup=%.2fx", t, wall, t1 / wall if wall > 0 else float("nan"))

def bench_tensor(ns, repeats, out_path):
    log.info("Tensor product scaling -> %s", out_path)
    new_csv(out_path)
    for n in ns:
        left, right = random_state(n // 2, seed=1), random_state(n - n // 2, seed=2)
        wall = time_op(lambda: tensor_product(left, right), repeats)
        write_row(out_path, {
            "qubits": n, "op": "tensor_product", "path": "parallel", "threads": get_threads(),
            "repeats": repeats, "wall_ms": f"{wall:.3f}",
        })
        log.info("  n=%d  wall=%.3f ms", n, wall)

# ---------------------------------------------------------------------
def main(argv=None):
    p = argparse.ArgumentParser(description="qstate benchmarks -> data/<kind>/*.csv")
    p.add_argument("--repeats", type=int, default=5)
    p.add_argument("--log-level", type=str, default=get_settings().LOG_LEVEL)
    sub = p.add_subparsers(dest="cmd", required=True)

    p_qubits = sub.add_parser("qubits")
    p_qubits.add_argument("--ns", type=str, default="10,14,18,20")

    p_threads = sub.add_parser("threads")
    p_threads.add_argument("--n", type=int, default=22)
    p_threads.add_argument("--threads", type=str, default="1,2,4,8")

    p_tensor = sub.add_parser("tensor")
    p_tensor.add_argument("--ns", type=str, default="10,14,18,20")

    args = p.parse_args(argv)
    setup_logging(args.log_level)

    base = kind_dir(args.cmd)
    out_path = os.path.join(base, f"{args.cmd}.csv")

    if args.cmd == "qubits":
        bench_qubits([int(x) for x in args.ns.split(",")], args.repeats, out_path)
    elif args.cmd == "threads":
        bench_threads(args.n, [int(x) for x in args.threads.split(",")], args.repeats, out_path)
    elif args.cmd == "tensor":
        bench_tensor([int(x) for x in args.ns.split(",")], args.repeats, out_path)

if __name__ == "__main__":
    main()
