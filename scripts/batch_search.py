#!/usr/bin/env python3
"""
Spectrum Search - Batch Peak Search (CLI)

Runs the high-resolution peak search over every spectrum of a CSV file.

Input CSV format
----------------
One column per spectrum, one row per channel. An optional "Channel" column is
ignored.

Output
------
One CSV with columns:
  Spectrum,Position,Height

How to run
------
python scripts/batch_search.py --input spectra.csv --out peaks.csv --sigma 3 --verbose
python scripts/batch_search.py --demo --out peaks.csv

Notes
-----
- Spectra that cannot be searched (non-numeric, invalid parameters) are skipped
  and reported with --verbose.
- --demo searches a reproducible synthetic spectrum instead of reading a file.

License: MIT
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import pandas as pd

# -------------------------------------------------------------------------
# Add the repository root to sys.path so `import spectrum_search` works
# without installing the package.
# -------------------------------------------------------------------------
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from spectrum_search import ConfigurationError, PeakSearcher, SearchConfig  # noqa: E402
from spectrum_search.synthetic import gaussian_spectrum, poisson_sample  # noqa: E402

log = logging.getLogger("batch_search")


def _err(msg: str, code: int = 1) -> None:
    """Print an error message to stderr and exit with a non-zero code."""
    print(f"ERROR: {msg}", file=sys.stderr)
    raise SystemExit(code)


def load_spectra_csv(path: Path) -> pd.DataFrame:
    """Load the spectra CSV with friendly errors."""
    if not path.exists():
        _err(f"Input file not found: {path}")

    try:
        df = pd.read_csv(path)
    except Exception as e:
        _err(f"Failed to read input file '{path}': {e}")

    df = df.drop(columns=["Channel"], errors="ignore")
    if df.empty or df.shape[1] == 0:
        _err(f"Input file '{path}' contains no spectra.")
    return df


def demo_spectra(seed: int) -> pd.DataFrame:
    """Two noisy synthetic spectra with known peaks."""
    clean = gaussian_spectrum(
        512,
        [(100, 400.0), (180, 150.0), (190, 120.0), (350, 60.0)],
        sigma=3.0,
        background=20.0,
    )
    return pd.DataFrame({
        "demo_a": poisson_sample(clean, seed=seed),
        "demo_b": poisson_sample(clean, seed=seed + 1),
    })


def main() -> None:
    ap = argparse.ArgumentParser(description="Batch peak search over spectra in a CSV file.")
    src = ap.add_mutually_exclusive_group(required=True)
    src.add_argument("--input", type=Path, help="CSV file, one column per spectrum.")
    src.add_argument("--demo", action="store_true", help="Search synthetic demo spectra.")
    ap.add_argument("--out", required=True, type=Path, help="Output peaks CSV.")
    ap.add_argument("--sigma", type=float, default=2.0, help="Expected peak sigma (channels).")
    ap.add_argument("--threshold", type=float, default=5.0, help="Threshold in percent of the highest peak.")
    ap.add_argument("--max-peaks", type=int, default=100, help="Maximum number of peaks per spectrum.")
    ap.add_argument("--decon-iterations", type=int, default=3, help="Gold deconvolution iterations.")
    ap.add_argument("--average-window", type=int, default=3, help="Markov smoothing window.")
    ap.add_argument("--no-background", action="store_true", help="Skip background removal.")
    ap.add_argument("--no-markov", action="store_true", help="Skip Markov smoothing.")
    ap.add_argument("--seed", type=int, default=42, help="Seed for --demo noise.")
    ap.add_argument("--verbose", action="store_true", help="Log skip reasons and progress.")
    args = ap.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    spectra = demo_spectra(args.seed) if args.demo else load_spectra_csv(args.input)

    try:
        searcher = PeakSearcher(SearchConfig(
            max_peaks=args.max_peaks,
            average_window=args.average_window,
            decon_iterations=args.decon_iterations,
        ))
    except ConfigurationError as e:
        _err(str(e))

    rows = []
    skipped = 0

    for name in spectra.columns:
        try:
            values = pd.to_numeric(spectra[name], errors="raise").to_numpy(dtype=float)
            result = searcher.search(
                values,
                sigma=args.sigma,
                threshold=args.threshold,
                remove_background=not args.no_background,
                markov=not args.no_markov,
            )
        except (ConfigurationError, ValueError) as e:
            skipped += 1
            log.info("[SKIP %s] %s", name, e)
            continue

        peaks = result.to_dataframe()
        peaks.insert(0, "Spectrum", name)
        rows.append(peaks)
        log.info("[OK %s] %d peaks", name, result.n_peaks)

    out = pd.concat(rows, ignore_index=True) if rows else pd.DataFrame(columns=["Spectrum", "Position", "Height"])
    try:
        args.out.parent.mkdir(parents=True, exist_ok=True)
        out.to_csv(args.out, index=False)
    except OSError as e:
        _err(f"Cannot write output file '{args.out}': {e}")

    print(f"Batch search completed. Spectra: {len(rows)}, Skipped: {skipped}. Peaks: {len(out)} -> {args.out}")


if __name__ == "__main__":
    main()
