"""
Synthetic Store Generator

Generates a realistic store for development and demos:
- Products across categories and vendors
- Variants with prices, compare-at prices and fallback stock counts
- Inventory levels (with gaps, duplicates and negative counts to exercise
  the fallback rules)
- Cost overrides for a share of variants
- Orders and line items with a demand skew so ABC tiers are meaningful
"""

import random
import uuid
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np
import polars as pl
from faker import Faker

from inventory_analytics.analytics.windows import utcnow


# =============================================================================
# CONFIGURATION
# =============================================================================

CATEGORIES = {
    "Apparel": (15, 120),
    "Footwear": (40, 220),
    "Home": (10, 300),
    "Beauty": (8, 90),
    "Outdoor": (25, 600),
    "Accessories": (5, 150),
}

VARIANT_OPTIONS = {
    "Apparel": ["XS", "S", "M", "L", "XL"],
    "Footwear": ["38", "39", "40", "41", "42", "43"],
    "Home": ["Default"],
    "Beauty": ["30ml", "50ml", "100ml"],
    "Outdoor": ["Small", "Large"],
    "Accessories": ["Black", "Brown", "Navy"],
}

VENDORS = [
    "Northwind Supply", "Harbor & Co", "Blue Fern", "Atlas Goods",
    "Copperline", "Meadow Works", None,
]

DISCOUNT_CHOICES = [0, 0, 0, 0, 5, 10, 15]


# =============================================================================
# GENERATOR
# =============================================================================

class StoreGenerator:
    """
    Generate one organization's catalog, stock and sales history.

    Example:
        data = StoreGenerator(seed=7).generate("demo-org", n_products=50)
        data["orders"].head()
    """

    def __init__(self, seed: int = 42):
        self.random = random.Random(seed)
        self.np_random = np.random.default_rng(seed)
        self.fake = Faker()
        self.fake.seed_instance(seed)

    def _id(self, prefix: str) -> str:
        return f"{prefix}_{uuid.UUID(int=self.random.getrandbits(128)).hex[:16]}"

    def generate_catalog(self, organization_id: str, n_products: int) -> Dict[str, pl.DataFrame]:
        products = []
        variants = []

        for _ in range(n_products):
            category = self.random.choice(list(CATEGORIES))
            low, high = CATEGORIES[category]
            product_id = self._id("prod")
            title = f"{self.fake.word().title()} {self.fake.word().title()}"
            base_price = round(self.random.uniform(low, high), 2)

            products.append({
                "id": product_id,
                "organization_id": organization_id,
                "title": title,
                "handle": title.lower().replace(" ", "-") if self.random.random() > 0.1 else None,
                "product_type": category if self.random.random() > 0.05 else None,
                "vendor": self.random.choice(VENDORS),
                "featured_image": f"https://cdn.example.com/{product_id}.jpg",
            })

            options = VARIANT_OPTIONS[category]
            n_variants = self.random.randint(1, len(options))
            for option in options[:n_variants]:
                price = round(base_price * self.random.uniform(0.9, 1.1), 2)
                has_compare_at = self.random.random() < 0.3
                variants.append({
                    "id": self._id("var"),
                    "organization_id": organization_id,
                    "product_id": product_id,
                    "sku": f"{category[:3].upper()}-{self.fake.unique.random_number(digits=6)}",
                    "title": option,
                    "price": price,
                    # compare-at is usually a higher list price, sometimes a cost hint below price
                    "compare_at_price": (
                        round(price * self.random.choice([0.55, 1.2, 1.4]), 2) if has_compare_at else None
                    ),
                    "inventory_quantity": int(self.np_random.integers(-3, 250)),
                })

        return {
            "products": pl.DataFrame(products),
            "variants": pl.DataFrame(variants),
        }

    def generate_levels(self, organization_id: str, variants_df: pl.DataFrame) -> pl.DataFrame:
        now = utcnow()
        levels = []
        for variant in variants_df.iter_rows(named=True):
            roll = self.random.random()
            if roll < 0.1:
                # No level row, the variant's own count applies
                continue
            copies = 2 if roll > 0.95 else 1
            for copy in range(copies):
                updated_at = now - timedelta(hours=self.random.randint(1, 240) + copy * 24)
                levels.append({
                    "id": self._id("lvl"),
                    "organization_id": organization_id,
                    "variant_id": variant["id"],
                    "available": int(self.np_random.integers(-5, 300)),
                    "incoming": int(self.np_random.integers(0, 50)),
                    "committed": int(self.np_random.integers(0, 10)),
                    "updated_at": updated_at if self.random.random() > 0.2 else None,
                    "synced_at": updated_at,
                })
        return pl.DataFrame(levels)

    def generate_costs(self, organization_id: str, variants_df: pl.DataFrame) -> pl.DataFrame:
        costs = []
        for variant in variants_df.iter_rows(named=True):
            if self.random.random() > 0.4:
                continue
            costs.append({
                "id": self._id("cost"),
                "organization_id": organization_id,
                "variant_id": variant["id"],
                "cogs_per_unit": round(variant["price"] * self.random.uniform(0.25, 0.65), 2),
                "handling_per_unit": round(self.random.uniform(0, 3), 2),
                "tax_percent": self.random.choice([0.0, 5.0, 8.25, 20.0]),
            })
        return pl.DataFrame(costs)

    def generate_orders(
        self,
        organization_id: str,
        variants_df: pl.DataFrame,
        n_orders: int,
        days: int = 120,
        end: Optional[datetime] = None,
    ) -> Dict[str, pl.DataFrame]:
        end = end or utcnow()
        start = end - timedelta(days=days)
        variant_rows = variants_df.select(["id", "product_id", "price"]).to_dicts()
        if not variant_rows:
            return {"orders": pl.DataFrame(), "order_line_items": pl.DataFrame()}

        # Zipf-like popularity so a few variants carry most revenue
        weights = 1.0 / np.arange(1, len(variant_rows) + 1) ** 1.1
        weights = weights / weights.sum()
        shuffled = list(variant_rows)
        self.random.shuffle(shuffled)

        orders = []
        items = []
        for _ in range(n_orders):
            order_id = self._id("ord")
            created_at = self.fake.date_time_between(start_date=start, end_date=end)
            orders.append({
                "id": order_id,
                "organization_id": organization_id,
                "order_number": f"#{self.fake.unique.random_number(digits=7)}",
                "created_at": created_at,
            })

            n_items = int(self.np_random.choice([1, 2, 3, 4], p=[0.55, 0.25, 0.15, 0.05]))
            picks = self.np_random.choice(len(shuffled), size=n_items, p=weights)
            for pick in picks:
                variant = shuffled[int(pick)]
                quantity = int(self.np_random.choice([0, 1, 2, 3, 5], p=[0.02, 0.6, 0.22, 0.12, 0.04]))
                discount_percent = self.random.choice(DISCOUNT_CHOICES)
                price = variant["price"] if self.random.random() > 0.05 else None
                line_price = price if price is not None else variant["price"]
                # Some channels only report the product
                product_only = self.random.random() < 0.03
                items.append({
                    "id": self._id("li"),
                    "organization_id": organization_id,
                    "order_id": order_id,
                    "variant_id": None if product_only else variant["id"],
                    "product_id": variant["product_id"] if product_only or self.random.random() > 0.5 else None,
                    "quantity": quantity,
                    "price": price,
                    "total_discount": round(line_price * quantity * discount_percent / 100, 2),
                })

        return {
            "orders": pl.DataFrame(orders),
            "order_line_items": pl.DataFrame(items),
        }

    def generate(
        self,
        organization_id: str,
        n_products: int = 100,
        n_orders: int = 2000,
        days: int = 120,
        end: Optional[datetime] = None,
    ) -> Dict[str, pl.DataFrame]:
        """Generate a complete store"""
        catalog = self.generate_catalog(organization_id, n_products)
        variants_df = catalog["variants"]
        data = {
            **catalog,
            "inventory_levels": self.generate_levels(organization_id, variants_df),
            "variant_costs": self.generate_costs(organization_id, variants_df),
            **self.generate_orders(organization_id, variants_df, n_orders, days=days, end=end),
        }
        return data


def save_store(data: Dict[str, pl.DataFrame], output_dir: Path) -> List[Path]:
    """Write each frame as Parquet"""
    output_dir.mkdir(parents=True, exist_ok=True)
    paths = []
    for name, df in data.items():
        path = output_dir / f"{name}.parquet"
        df.write_parquet(path)
        paths.append(path)
    return paths
