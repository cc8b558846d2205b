"""
Stock Policy Analyzer
=====================
Analyzes projected inventories against minimum and maximum stock targets.

The targets are expressed in periods of coverage and converted into units
using each period's own demand:

- Safety Stocks  = min_coverage_periods * demand
- Maximum Stocks = max_coverage_periods * demand

Each period then gets a PI.Index classification (TBC, Shortage, OverStock,
Alert, OK) and two ratios of the projected inventory vs those thresholds,
useful for a mass analysis (supply risks cockpit) across many DFUs.
"""

from enum import Enum

import numpy as np
import pandas as pd

from planning_errors import ConfigurationError
from planning_rules import PLANNING_RULES, get_output_columns, get_urgency_rank
from projection import project_series
from time_series import normalize_series, resolve_parameter

TOLERANCE = PLANNING_RULES["quantity_tolerance"]


class PIIndex(str, Enum):
    """Stock position of a period, in evaluation precedence."""
    TBC = "TBC"
    SHORTAGE = "Shortage"
    OVERSTOCK = "OverStock"
    ALERT = "Alert"
    OK = "OK"


def classify_position(projected_inventory, safety_stock_qty, maximum_stock_qty, demand=0.0) -> PIIndex:
    """
    Classify one period's projected inventory against its stock thresholds.

    The first matching rule wins:
    1. TBC       - demand or a threshold is undefined
    2. Shortage  - projected inventory < 0
    3. OverStock - projected inventory > maximum stocks
    4. Alert     - projected inventory < safety stocks
    5. OK        - otherwise

    Args:
        projected_inventory: Projected inventory of the period
        safety_stock_qty: Safety stock in units
        maximum_stock_qty: Maximum stock in units
        demand: Demand of the period

    Returns:
        PIIndex member
    """
    if pd.isna(demand) or pd.isna(safety_stock_qty) or pd.isna(maximum_stock_qty) or pd.isna(projected_inventory):
        return PIIndex.TBC
    if projected_inventory < -TOLERANCE:
        return PIIndex.SHORTAGE
    if projected_inventory > maximum_stock_qty + TOLERANCE:
        return PIIndex.OVERSTOCK
    if projected_inventory < safety_stock_qty - TOLERANCE:
        return PIIndex.ALERT
    return PIIndex.OK


def _ratio(numerator: pd.Series, denominator: pd.Series) -> pd.Series:
    """Element-wise ratio, NaN where the denominator is zero or undefined."""
    safe_denominator = denominator.where(denominator != 0)
    return (numerator / safe_denominator).round(PLANNING_RULES["rounding"]["ratio_decimals"])


def _check_coverage_targets(min_coverage: pd.Series, max_coverage: pd.Series, entity_id):
    crossed = min_coverage > max_coverage
    if crossed.any():
        position = int(np.argmax(crossed.to_numpy()))
        raise ConfigurationError(
            f"min_cov ({min_coverage.iloc[position]:g}) is greater than max_cov ({max_coverage.iloc[position]:g})",
            entity_id
        )


def analyze(rows, min_cov=None, max_cov=None, freq=None, sort=False, period_format=None, logs=None) -> pd.DataFrame:
    """
    Calculate projected inventories and analyze them vs min/max stock targets.

    Args:
        rows: Period rows of one DFU
        min_cov: Minimum stock coverage in periods (scalar or one per period);
                 defaults to the 'min_coverage_periods' column
        max_cov: Maximum stock coverage in periods (scalar or one per period);
                 defaults to the 'max_coverage_periods' column
        freq: Optional period frequency used to fill implicit gaps
        sort: Sort rows by period before validating
        period_format: Optional strptime format for string periods
        logs: Optional list to append log messages

    Returns:
        DataFrame with the policy output columns
    """
    if logs is None:
        logs = []

    series = normalize_series(rows, freq=freq, sort=sort, period_format=period_format, logs=logs)
    entity_id = series['entity_id'].iloc[0]

    min_coverage = resolve_parameter(series, 'min_coverage_periods', min_cov, entity_id).astype(float)
    max_coverage = resolve_parameter(series, 'max_coverage_periods', max_cov, entity_id).astype(float)
    _check_coverage_targets(min_coverage, max_coverage, entity_id)

    result = project_series(series, logs)
    result['min_coverage_periods'] = min_coverage
    result['max_coverage_periods'] = max_coverage
    result['safety_stock_qty'] = min_coverage * result['demand']
    result['maximum_stock_qty'] = max_coverage * result['demand']

    result['pi_index'] = [
        classify_position(pi, ss, mx, d).value
        for pi, ss, mx, d in zip(
            result['projected_inventory'],
            result['safety_stock_qty'],
            result['maximum_stock_qty'],
            result['demand']
        )
    ]

    result['ratio_pi_vs_min'] = _ratio(result['projected_inventory'], result['safety_stock_qty'])
    result['ratio_pi_vs_max'] = _ratio(result['projected_inventory'], result['maximum_stock_qty'])

    counts = result['pi_index'].value_counts()
    logs.append(
        f"INFO: [{entity_id}] Stock analysis: "
        + ", ".join(f"{label}={int(counts.get(label, 0))}" for label in PLANNING_RULES["pi_index"]["precedence"])
    )

    return result[get_output_columns("policy")]


def get_policy_summary(analysis_df: pd.DataFrame) -> pd.DataFrame:
    """
    Summarize a stock analysis by DFU.

    Args:
        analysis_df: Output of analyze() for one or more DFUs

    Returns:
        DataFrame with one row per DFU: period count, count per PI.Index
        value and the first period in shortage
    """
    if analysis_df.empty:
        return pd.DataFrame()

    labels = PLANNING_RULES["pi_index"]["precedence"]

    summary = pd.crosstab(analysis_df['entity_id'], analysis_df['pi_index'])
    summary = summary.reindex(columns=labels, fill_value=0)
    summary.columns.name = None
    summary.insert(0, 'periods', analysis_df.groupby('entity_id').size())

    shortages = analysis_df[analysis_df['pi_index'] == PIIndex.SHORTAGE.value]
    summary['first_shortage_period'] = shortages.groupby('entity_id')['period'].min()

    return summary.reset_index()


def get_alert_periods(analysis_df: pd.DataFrame, top_n=None) -> pd.DataFrame:
    """
    Get the periods that need attention (Shortage, then Alert).

    Args:
        analysis_df: Output of analyze() for one or more DFUs
        top_n: Optional number of rows to return

    Returns:
        DataFrame sorted by urgency, then period, then DFU
    """
    if analysis_df.empty:
        return pd.DataFrame()

    flagged = analysis_df[analysis_df['pi_index'].isin([PIIndex.SHORTAGE.value, PIIndex.ALERT.value])].copy()
    flagged['_urgency'] = flagged['pi_index'].map(get_urgency_rank)
    flagged = flagged.sort_values(by=['_urgency', 'period', 'entity_id']).drop(columns='_urgency')

    if top_n is not None:
        flagged = flagged.head(top_n)
    return flagged.reset_index(drop=True)
