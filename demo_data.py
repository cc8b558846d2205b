"""
Demo planning template: one DFU ("Product A") over 24 monthly buckets.

Contains the basic features of a planning table:
- a DFU: an item, or an item at a location
- a Period: monthly buckets
- a Demand: sales forecasts, in units
- an Opening Inventory: what we hold at the beginning of the horizon
- a Supply Plan: the supplies we plan to receive
"""

import pandas as pd

DEMO_DFU = "Product A"

DEMO_PERIODS = pd.date_range("2020-01-01", periods=24, freq="MS")

DEMO_DEMAND = [360, 458, 300, 264, 140, 233, 229, 208, 260, 336, 295, 226,
               336, 434, 276, 240, 116, 209, 205, 183, 235, 312, 270, 201]

DEMO_OPENING = 1310

# Supplies received in June 2020 and April 2021
DEMO_SUPPLY = {5: 2500, 15: 2000}

DEMO_POLICY = {"min_coverage_periods": 2, "max_coverage_periods": 4}

DEMO_DRP = {
    "safety_stock_coverage": 2,
    "replenishment_coverage_duration": 3,
    "moq": 1,
    "frozen_periods": 6,
}


def make_demo_table(mode="projection") -> pd.DataFrame:
    """
    Build the demo planning table.

    Args:
        mode: 'projection' for demand and supply only, 'policy' to add the
              min/max coverage targets, 'drp' to add the DRP parameters and
              horizon grid (6 Frozen periods then Free)

    Returns:
        Planning table with canonical column names
    """
    n = len(DEMO_PERIODS)
    df = pd.DataFrame({
        "entity_id": DEMO_DFU,
        "period": DEMO_PERIODS,
        "demand": DEMO_DEMAND,
        "opening_inventory": [DEMO_OPENING] + [0] * (n - 1),
        "scheduled_supply": [DEMO_SUPPLY.get(i, 0) for i in range(n)],
    })

    if mode == "policy":
        for col, value in DEMO_POLICY.items():
            df[col] = value
    elif mode == "drp":
        df["safety_stock_coverage"] = DEMO_DRP["safety_stock_coverage"]
        df["replenishment_coverage_duration"] = DEMO_DRP["replenishment_coverage_duration"]
        df["moq"] = DEMO_DRP["moq"]
        frozen = DEMO_DRP["frozen_periods"]
        df["horizon_status"] = ["Frozen"] * frozen + ["Free"] * (n - frozen)
    elif mode != "projection":
        raise ValueError(f"Unknown demo mode '{mode}'")

    return df
