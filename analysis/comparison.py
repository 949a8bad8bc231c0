"""
Cross-supplier offer comparison.

Offers are only comparable when they share a product, a normalized unit and
a normalized currency (a missing exchange rate leaves an offer in its raw
currency), so every grouping below uses all three.

No side effects, no file I/O.  Empty input returns an empty DataFrame with
the expected columns.
"""

import logging
from dataclasses import asdict, fields

import pandas as pd

from processing.offer_builder import Offer

logger = logging.getLogger(__name__)

OFFER_COLUMNS: list[str] = [f.name for f in fields(Offer)]
_COMPARABLE_KEYS: list[str] = ["product_id", "normalized_unit", "normalized_currency"]
BEST_OFFER_COLUMNS: list[str] = OFFER_COLUMNS + ["total_offers", "latest_update"]


def offers_to_dataframe(offers: list[Offer]) -> pd.DataFrame:
    """One row per offer, columns in Offer field order."""
    return pd.DataFrame([asdict(offer) for offer in offers], columns=OFFER_COLUMNS)


def best_offers(offers: list[Offer] | pd.DataFrame) -> pd.DataFrame:
    """
    Cheapest offer per comparable product group.

    Returns:
        DataFrame with every Offer column of the winning offer plus
        total_offers (offers in the group) and latest_update (newest
        updated_at in the group), sorted by product name.  Equal prices
        keep the offer that came first.
    """
    df = offers if isinstance(offers, pd.DataFrame) else offers_to_dataframe(offers)
    if df.empty:
        return pd.DataFrame(columns=BEST_OFFER_COLUMNS)

    grouped = df.groupby(_COMPARABLE_KEYS, sort=False, dropna=False)
    summary = grouped.agg(
        total_offers=("id", "count"),
        latest_update=("updated_at", "max"),
    ).reset_index()

    cheapest = (
        df.sort_values("normalized_price_per_unit", kind="stable")
        .drop_duplicates(subset=_COMPARABLE_KEYS, keep="first")
    )

    result = cheapest.merge(summary, on=_COMPARABLE_KEYS, how="left")
    result = result.sort_values(["product_name", "normalized_unit"], kind="stable")
    logger.info(f"Best offers: {len(result)} product group(s) from {len(df)} offer(s)")
    return result[BEST_OFFER_COLUMNS].reset_index(drop=True)


def compare_product(offers: list[Offer] | pd.DataFrame, product_id: str) -> pd.DataFrame:
    """
    Every offer for one product, cheapest first.

    Adds price_vs_best: percentage above the cheapest offer with the same
    normalized unit and currency (0.0 for the cheapest).
    """
    df = offers if isinstance(offers, pd.DataFrame) else offers_to_dataframe(offers)
    product_df = df[df["product_id"] == product_id].copy()
    if product_df.empty:
        return pd.DataFrame(columns=OFFER_COLUMNS + ["price_vs_best"])

    product_df = product_df.sort_values("normalized_price_per_unit", kind="stable")
    best_price = product_df.groupby(
        ["normalized_unit", "normalized_currency"], dropna=False
    )["normalized_price_per_unit"].transform("min")

    product_df["price_vs_best"] = [
        _percentage_above(price, best)
        for price, best in zip(product_df["normalized_price_per_unit"], best_price)
    ]
    return product_df.reset_index(drop=True)


def _percentage_above(price: float, best: float) -> float:
    if best == 0 or pd.isna(best):
        return 0.0
    return round((price - best) / best * 100, 2)
