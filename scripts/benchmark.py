"""
Pulsescope frame pipeline benchmark + FFT parity validation.

Usage:
    python scripts/benchmark.py [--quick]

Modes:
    default  — frame sizes 256..8192, 20 warm-up + 200 timed frames each
    --quick  — frame sizes 512 and 2048, 5 warm-up + 50 timed frames

Output: timing table + parity report printed to stdout.

Parity check: compares the pipeline's real/imaginary spectra against
``numpy.fft.fft`` on the same windowed frame.  They must agree to 1e-9.
"""

import argparse
import os
import sys
import time
from typing import List

import numpy as np

# Make sure the installed package is on the path when run from repo root
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from pulsescope.core.pipeline import AnalysisPipeline
from pulsescope.core.window import WindowKind

_SEP = "─" * 72
PARITY_MAX = 1e-9


def _hdr(title: str) -> None:
    print(f"\n{_SEP}")
    print(f"  {title}")
    print(_SEP)


def _timeit(fn, *args, warmup: int = 2, runs: int = 5, **kwargs) -> List[float]:
    """Run fn(*args, **kwargs), discard warmup iterations, return timed samples."""
    for _ in range(warmup):
        fn(*args, **kwargs)
    times = []
    for _ in range(runs):
        t0 = time.perf_counter()
        fn(*args, **kwargs)
        times.append(time.perf_counter() - t0)
    return times


def _stats(times: List[float]) -> str:
    arr = np.array(times)
    return f"mean={arr.mean()*1e6:.1f} µs  min={arr.min()*1e6:.1f} µs  max={arr.max()*1e6:.1f} µs"


def _parity(pipeline: AnalysisPipeline, frame: np.ndarray) -> float:
    pipeline.process_frame(frame)
    expected = np.fft.fft(frame * pipeline.window)
    return float(
        max(
            np.abs(pipeline.fft_real - expected.real).max(),
            np.abs(pipeline.fft_imaginary - expected.imag).max(),
        )
    )


def main() -> None:
    parser = argparse.ArgumentParser(description="Benchmark the frame analysis pipeline")
    parser.add_argument("--quick", action="store_true", help="small CI-friendly run")
    args = parser.parse_args()

    sizes = [512, 2048] if args.quick else [256, 512, 1024, 2048, 4096, 8192]
    warmup, runs = (5, 50) if args.quick else (20, 200)
    rng = np.random.default_rng(0)

    results = {}
    parity = {}

    _hdr("Frame processing (Hann window, beat detection on)")
    for size in sizes:
        frame = rng.uniform(-1.0, 1.0, size)
        with AnalysisPipeline(frame_size=size, window_kind=WindowKind.HANN) as pipeline:
            times = _timeit(pipeline.process_frame, frame, True, warmup=warmup, runs=runs)
            parity[size] = _parity(pipeline, frame)
        results[f"process_frame[{size}]"] = times
        print(f"  N={size:<6} {_stats(times)}")

    _hdr("FFT parity vs numpy.fft")
    all_ok = True
    for size, diff in parity.items():
        ok = diff <= PARITY_MAX
        all_ok &= ok
        print(f"  N={size:<6} max_diff={diff:.2e}  [{'PASS' if ok else 'FAIL'}]")
    if not all_ok:
        print("\n  !! PARITY FAILURES DETECTED !!")
        sys.exit(1)

    _hdr("Summary")
    name_w = max(len(name) for name in results) + 2
    print(f"  {'Function':<{name_w}} Time (µs, mean)")
    print(f"  {'-'*name_w} ---------------")
    for name, times in results.items():
        print(f"  {name:<{name_w}} {np.mean(times)*1e6:.1f}")

    print(f"\n{_SEP}\n")


if __name__ == "__main__":
    main()
