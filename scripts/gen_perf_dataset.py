#!/usr/bin/env python3
"""Synthetic CSV generator for aggregation and filter benchmarks.

Writes a CSV file with a header row and a mix of column shapes the analytics
core has to classify:
- numeric columns (ids, amounts, quantities), some with missing cells
- categorical columns (names, categories)
- mixed columns where only part of the cells are numbers

Typical use:
  python scripts/gen_perf_dataset.py data/perf.csv --rows 200000 --cols 12
  csv-insight data/perf.csv --filter "books 12" --sort amount_1 --desc
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

CATEGORIES = ["Electronics", "Clothing", "Books", "Food", "Sports", "Home"]


def generate_synthetic_data(
    rows: int, cols: int, seed: int = 42, missing_ratio: float = 0.05
) -> pd.DataFrame:
    """Generate a DataFrame with numeric, categorical and mixed columns.

    Args:
        rows: Number of data rows
        cols: Number of columns (at least 3)
        seed: Random seed for reproducible data
        missing_ratio: Share of numeric cells left empty

    Returns:
        DataFrame ready to be written with ``to_csv``
    """
    rng = np.random.default_rng(seed)
    data: dict[str, Any] = {}

    data["id"] = np.arange(1, rows + 1)
    data["name"] = [f"Item_{n}_{chr(65 + (j % 26))}" for j, n in enumerate(rng.integers(1000, 9999, rows))]
    data["category"] = rng.choice(CATEGORIES, rows)

    for i in range(1, cols - 2):
        if i % 3 == 1:
            values = np.round(rng.uniform(0.01, 9999.99, rows), 2)
            column = pd.Series(values, name=f"amount_{i}")
        elif i % 3 == 2:
            column = pd.Series(rng.integers(1, 1000, rows), name=f"quantity_{i}").astype("Int64")
        else:
            # roughly half numbers, half labels: classified as categorical
            numbers = rng.integers(0, 100, rows).astype(str)
            labels = rng.choice(["low", "mid", "high"], rows)
            column = pd.Series(np.where(rng.random(rows) < 0.5, numbers, labels), name=f"mixed_{i}")
            data[column.name] = column
            continue
        mask = rng.random(rows) < missing_ratio
        data[column.name] = column.mask(mask)

    return pd.DataFrame(data)


def create_csv_file(
    output_path: Path, rows: int, cols: int, seed: int = 42, missing_ratio: float = 0.05
) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    df = generate_synthetic_data(rows, cols, seed, missing_ratio)
    df.to_csv(output_path, index=False)

    print(f"Created CSV file: {output_path}")
    print(f"  Rows: {rows:,}")
    print(f"  Columns: {len(df.columns)} ({', '.join(df.columns)})")


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Generate synthetic CSV datasets for performance testing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Default 50k rows, 12 columns
  %(prog)s data/perf.csv

  # Larger dataset with more missing cells
  %(prog)s data/large.csv --rows 500000 --cols 20 --missing 0.2
        """,
    )
    parser.add_argument("output", type=Path, help="Output CSV file path")
    parser.add_argument("--rows", type=int, default=50_000, help="Number of data rows (default: 50,000)")
    parser.add_argument("--cols", type=int, default=12, help="Number of columns, at least 3 (default: 12)")
    parser.add_argument("--missing", type=float, default=0.05, help="Share of empty numeric cells (default: 0.05)")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    parser.add_argument("--dry-run", action="store_true", help="Show what would be generated without writing")
    args = parser.parse_args()

    if args.rows <= 0:
        print("Error: --rows must be positive", file=sys.stderr)
        return 1
    if args.cols < 3:
        print("Error: --cols must be at least 3", file=sys.stderr)
        return 1
    if not 0 <= args.missing < 1:
        print("Error: --missing must be within [0, 1)", file=sys.stderr)
        return 1

    print("Dataset generation plan:")
    print(f"  Output file: {args.output}")
    print(f"  Rows: {args.rows:,}")
    print(f"  Columns: {args.cols}")
    print(f"  Missing ratio: {args.missing}")
    print(f"  Random seed: {args.seed}")

    if args.dry_run:
        print("\n[DRY RUN] Would generate the file but not creating it.")
        return 0

    try:
        create_csv_file(args.output, args.rows, args.cols, args.seed, args.missing)
    except OSError as e:
        print(f"\nError generating dataset: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
