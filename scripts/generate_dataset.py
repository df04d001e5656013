"""
Synthetic Store Dataset Generator
Writes one organization's catalog, stock levels, cost overrides and order
history as Parquet files for offline inspection.

Usage:
    python scripts/generate_dataset.py --organization demo-org --products 500 --orders 20000
"""

import argparse
from pathlib import Path

from inventory_analytics.data.generators import StoreGenerator, save_store

OUTPUT_DIR = Path(__file__).parent.parent / "data" / "generated"


def main():
    parser = argparse.ArgumentParser(description="Generate a synthetic store")
    parser.add_argument("--organization", default="demo-org")
    parser.add_argument("--products", type=int, default=500)
    parser.add_argument("--orders", type=int, default=20000)
    parser.add_argument("--days", type=int, default=180)
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--output", type=Path, default=OUTPUT_DIR)
    args = parser.parse_args()

    print("=" * 60)
    print("Synthetic Store Generator")
    print("=" * 60 + "\n")

    data = StoreGenerator(seed=args.seed).generate(
        args.organization,
        n_products=args.products,
        n_orders=args.orders,
        days=args.days,
    )
    paths = save_store(data, args.output)

    total = 0
    for path in paths:
        rows = data[path.stem].height
        size = path.stat().st_size / 1024 / 1024
        total += rows
        print(f"   {path.name}: {rows:,} rows ({size:.2f} MB)")

    print(f"\nOutput: {args.output}")
    print(f"Total: {total:,} rows")


if __name__ == "__main__":
    main()
