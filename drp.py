"""
Replenishment Planning Module (DRP)
===================================
Distribution Requirements Planning: calculates, period by period, the
replenishments needed to keep the projected inventory of a DFU above its
safety stock.

Key Features:
- Frozen / Free horizon grid: orders are only suggested in Free periods
- Safety stock expressed in periods of coverage (SSCov)
- Order-up-to level = safety stock + demand over the coverage duration (DRPCovDur)
- Lot sizing: every replenishment is a multiple of the minimum order quantity
- Each order is injected as supply and the whole projection is re-derived
"""

import numpy as np
import pandas as pd

from planning_errors import ConfigurationError, InvalidHorizonError
from planning_rules import PLANNING_RULES, get_output_columns, normalize_horizon_status
from projection import compute_coverage, forward_demand, project_balances, project_series
from time_series import normalize_series, resolve_parameter

TOLERANCE = PLANNING_RULES["quantity_tolerance"]
FROZEN = PLANNING_RULES["horizon"]["frozen"]
FREE = PLANNING_RULES["horizon"]["free"]


def round_up_to_moq(quantity: float, moq: float, entity_id=None) -> float:
    """
    Round a replenishment need up to a multiple of the minimum order quantity.

    Any positive need, however small, orders at least one MOQ.

    Args:
        quantity: Net requirement in units
        moq: Minimum order quantity (lot size)
        entity_id: DFU the quantity is planned for, reported in errors

    Returns:
        Suggested quantity in units (0 if there is no need)
    """
    if moq is None or pd.isna(moq) or moq <= 0:
        raise ConfigurationError(f"MOQ must be strictly positive, got {moq}", entity_id)

    if quantity <= TOLERANCE:
        return 0.0

    lots = max(1.0, np.ceil(quantity / moq - TOLERANCE))
    return float(lots * moq)


def resolve_horizon(series: pd.DataFrame, horizon_grid=None, entity_id=None) -> list:
    """
    Resolve the Frozen/Free status of every period.

    Args:
        series: Normalized series
        horizon_grid: One status per period, or a single status for all
                      periods; defaults to the 'horizon_status' column
        entity_id: DFU being planned

    Returns:
        List of canonical statuses ('Frozen' / 'Free')
    """
    n = len(series)

    if horizon_grid is None:
        if 'horizon_status' not in series.columns or series['horizon_status'].isna().all():
            raise ConfigurationError("Missing required parameter 'horizon_status'", entity_id)
        raw = series['horizon_status'].tolist()
    elif isinstance(horizon_grid, str):
        raw = [horizon_grid] * n
    else:
        raw = list(horizon_grid)
        if len(raw) != n:
            raise InvalidHorizonError(
                f"Horizon grid has {len(raw)} entries for {n} periods",
                entity_id
            )

    statuses = [normalize_horizon_status(value) for value in raw]
    invalid = [value for value, status in zip(raw, statuses) if status is None]
    if invalid:
        raise InvalidHorizonError(
            f"Horizon grid has values outside {{{FROZEN}, {FREE}}}: {invalid[:5]}",
            entity_id
        )
    return statuses


def _check_drp_parameters(safety_cov, replen_duration, moq, entity_id):
    if safety_cov is not None and pd.api.types.is_number(safety_cov) and safety_cov < 0:
        raise ConfigurationError(f"safety_cov must be >= 0, got {safety_cov}", entity_id)
    if replen_duration is not None and pd.api.types.is_number(replen_duration) and replen_duration < 0:
        raise ConfigurationError(f"replen_duration must be >= 0, got {replen_duration}", entity_id)
    if moq is not None and pd.api.types.is_number(moq) and moq <= 0:
        raise ConfigurationError(f"moq must be strictly positive, got {moq}", entity_id)


def plan(rows, safety_cov=None, replen_duration=None, moq=None, horizon_grid=None,
         freq=None, sort=False, period_format=None, logs=None) -> pd.DataFrame:
    """
    Calculate a replenishment plan (DRP) for one DFU.

    This is the main entry point for replenishment planning. Periods are
    walked forward; in each Free period whose projected inventory (after its
    demand and all supply known so far) falls below the safety stock, a
    replenishment brings it back up to the maximum stock level.

    Args:
        rows: Period rows of one DFU
        safety_cov: Safety stock coverage in periods (SSCov); defaults to the
                    'safety_stock_coverage' column
        replen_duration: Periods of forward demand each replenishment covers
                         (DRPCovDur); defaults to the
                         'replenishment_coverage_duration' column
        moq: Minimum order quantity; defaults to the 'moq' column
        horizon_grid: Frozen/Free status per period; defaults to the
                      'horizon_status' column
        freq: Optional period frequency used to fill implicit gaps
        sort: Sort rows by period before validating
        period_format: Optional strptime format for string periods
        logs: Optional list to append log messages

    Returns:
        DataFrame with the DRP output columns
    """
    if logs is None:
        logs = []

    series = normalize_series(rows, freq=freq, sort=sort, period_format=period_format, logs=logs)
    entity_id = series['entity_id'].iloc[0]
    n = len(series)

    # ===== STEP 1: Resolve parameters =====
    horizon = resolve_horizon(series, horizon_grid, entity_id)
    _check_drp_parameters(safety_cov, replen_duration, moq, entity_id)
    ss_coverage = resolve_parameter(series, 'safety_stock_coverage', safety_cov, entity_id).astype(float)
    duration = resolve_parameter(series, 'replenishment_coverage_duration', replen_duration, entity_id).astype(float)
    lot_size = resolve_parameter(series, 'moq', moq, entity_id).astype(float)

    # ===== STEP 2: Projection before replenishment =====
    result = project_series(series, logs)

    demand = series['demand'].to_numpy(dtype=float)
    supply = series['scheduled_supply'].to_numpy(dtype=float)
    opening = series['opening_inventory'].iloc[0]

    safety_stock = ss_coverage.to_numpy() * demand
    maximum_stock = np.full(n, np.nan)
    orders = np.zeros(n)
    undefined_periods = 0

    # ===== STEP 3: Walk the horizon =====
    for t in range(n):
        if not np.isnan(safety_stock[t]) and not np.isnan(duration.iloc[t]):
            maximum_stock[t] = safety_stock[t] + forward_demand(demand, t, duration.iloc[t])

        if horizon[t] == FROZEN:
            continue

        if np.isnan(maximum_stock[t]) or np.isnan(lot_size.iloc[t]):
            undefined_periods += 1
            continue

        # Full re-pass so orders placed in earlier periods are reflected
        balances = project_balances(opening, demand, supply + orders)
        net_inventory = balances[t]

        if net_inventory < safety_stock[t] - TOLERANCE:
            orders[t] = round_up_to_moq(maximum_stock[t] - net_inventory, lot_size.iloc[t], entity_id)

    if undefined_periods:
        logs.append(f"WARNING: [{entity_id}] {undefined_periods} Free periods skipped: demand or DRP parameters undefined.")

    # ===== STEP 4: Projection after replenishment =====
    drp_balances = project_balances(opening, demand, supply + orders)

    result['horizon_status'] = horizon
    result['safety_stock_coverage'] = ss_coverage
    result['replenishment_coverage_duration'] = duration
    result['moq'] = lot_size
    result['safety_stock_qty'] = safety_stock
    result['maximum_stock_qty'] = maximum_stock
    result['suggested_replenishment_qty'] = orders
    result['drp_projected_inventory'] = drp_balances
    result['drp_coverage_periods'] = np.round(
        compute_coverage(drp_balances, demand),
        PLANNING_RULES["rounding"]["coverage_decimals"]
    )

    order_count = int((orders > 0).sum())
    logs.append(f"INFO: [{entity_id}] Suggested {order_count} replenishments, {orders.sum():,.0f} units in total.")

    return result[get_output_columns("drp")]


def get_replenishment_summary(plan_df: pd.DataFrame) -> pd.DataFrame:
    """
    Summarize a replenishment plan by DFU.

    Args:
        plan_df: Output of plan() for one or more DFUs

    Returns:
        DataFrame with DFU-level summary
    """
    if plan_df.empty:
        return pd.DataFrame()

    df = plan_df.copy()
    df['_has_order'] = df['suggested_replenishment_qty'] > 0
    df['_shortage_before'] = df['projected_inventory'] < -TOLERANCE
    df['_shortage_after'] = df['drp_projected_inventory'] < -TOLERANCE

    summary = df.groupby('entity_id').agg({
        'period': 'count',
        '_has_order': 'sum',
        'suggested_replenishment_qty': 'sum',
        '_shortage_before': 'sum',
        '_shortage_after': 'sum'
    })
    summary.columns = [
        'periods',
        'replenishment_count',
        'total_replenishment_qty',
        'shortage_periods_before',
        'shortage_periods_after'
    ]

    ordered = df[df['_has_order']]
    summary['first_replenishment_period'] = ordered.groupby('entity_id')['period'].min()

    return summary.reset_index()
