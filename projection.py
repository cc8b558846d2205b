"""
Projection Engine

Calculates, period by period for one DFU:
- Projected inventories (running balance of opening stock, supply and demand)
- Projected coverages, in periods of forward demand

Key Features:
- Single forward pass for the balance, forward lookahead for the coverage
- Fractional coverage when a period is only partly covered
- "Beyond horizon" sentinel when inventory is never exhausted
- Pure functions: inputs are never modified
"""

import numpy as np
import pandas as pd

from planning_errors import InvalidSeriesError
from planning_rules import COVERAGE_BEYOND_HORIZON, PLANNING_RULES, get_output_columns
from time_series import normalize_series

TOLERANCE = PLANNING_RULES["quantity_tolerance"]


def _as_quantities(values) -> np.ndarray:
    """Float array with undefined quantities counted as zero."""
    return np.nan_to_num(np.asarray(values, dtype=float), nan=0.0)


def project_balances(opening, demand, supply) -> np.ndarray:
    """
    Calculate the projected inventory of each period.

    Formula: PI[t] = PI[t-1] + supply[t] - demand[t], with PI[-1] = opening

    Args:
        opening: Opening inventory at the start of the first period
        demand: Demand per period
        supply: Supply received per period

    Returns:
        Array of projected inventories (negative = shortage)
    """
    demand = _as_quantities(demand)
    supply = _as_quantities(supply)
    return float(opening) + np.cumsum(supply - demand)


def forward_demand(demand, t, periods) -> float:
    """
    Total demand of the `periods` periods following period t.

    A fractional number of periods takes the matching share of the last
    period. Periods past the end of the horizon count as no demand.
    """
    demand = _as_quantities(demand)
    total = 0.0
    remaining = float(periods)
    j = t + 1
    while remaining > 0 and j < len(demand):
        share = min(1.0, remaining)
        total += share * demand[j]
        remaining -= share
        j += 1
    return total


def compute_coverage(projected, demand) -> np.ndarray:
    """
    Calculate the coverage, in periods, of each projected inventory.

    The stock left at the end of period t is consumed by the demand of t+1,
    t+2, ... Each fully covered period counts 1; the first period that can
    only be partly covered adds the covered fraction and stops the lookahead.

    Args:
        projected: Projected inventory per period
        demand: Demand per period

    Returns:
        Array of coverages: 0 when the projected inventory is <= 0,
        COVERAGE_BEYOND_HORIZON when stock remains after the last period
    """
    projected = np.asarray(projected, dtype=float)
    demand = _as_quantities(demand)
    n = len(projected)
    coverage = np.zeros(n)

    for t in range(n):
        stock = projected[t]
        if stock <= TOLERANCE:
            continue

        covered = 0.0
        exhausted = False
        for j in range(t + 1, n):
            if stock + TOLERANCE >= demand[j]:
                stock -= demand[j]
                covered += 1
            else:
                covered += stock / demand[j]
                exhausted = True
                break

        if exhausted or stock <= TOLERANCE:
            coverage[t] = covered
        else:
            coverage[t] = COVERAGE_BEYOND_HORIZON

    return coverage


def project_series(series: pd.DataFrame, logs=None) -> pd.DataFrame:
    """
    Project an already normalized series.

    Args:
        series: Output of normalize_series()
        logs: Optional list to append log messages

    Returns:
        Copy of the series with 'projected_inventory' and 'coverage_periods'
    """
    if logs is None:
        logs = []

    if series.empty:
        raise InvalidSeriesError("Cannot project an empty period series")

    entity_id = series['entity_id'].iloc[0]

    missing_demand = int(series['demand'].isna().sum())
    if missing_demand:
        logs.append(f"WARNING: [{entity_id}] {missing_demand} periods without demand are counted as zero demand in the projection.")

    projected = project_balances(
        series['opening_inventory'].iloc[0],
        series['demand'],
        series['scheduled_supply']
    )
    coverage = compute_coverage(projected, series['demand'])

    result = series.copy()
    result['projected_inventory'] = projected
    result['coverage_periods'] = np.round(coverage, PLANNING_RULES["rounding"]["coverage_decimals"])

    shortage_periods = int((projected < -TOLERANCE).sum())
    logs.append(f"INFO: [{entity_id}] Projected {len(result)} periods, {shortage_periods} in shortage.")
    return result


def project(rows, freq=None, sort=False, period_format=None, logs=None) -> pd.DataFrame:
    """
    Calculate projected inventories and coverages for one DFU.

    This is the main entry point of the light projection.

    Args:
        rows: Period rows of one DFU (period, demand, opening_inventory, scheduled_supply)
        freq: Optional period frequency used to fill implicit gaps
        sort: Sort rows by period before validating
        period_format: Optional strptime format for string periods
        logs: Optional list to append log messages

    Returns:
        DataFrame with the projection output columns
    """
    if logs is None:
        logs = []

    series = normalize_series(rows, freq=freq, sort=sort, period_format=period_format, logs=logs)
    result = project_series(series, logs)
    return result[get_output_columns("projection")]
