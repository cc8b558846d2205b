"""
Time Series Normalizer
======================
Validates and canonicalizes the period rows of each DFU before any
projection runs.

Key Features:
- Splits a multi-DFU planning table into one period series per DFU
- Parses periods (dates or integer buckets) and enforces strict ordering
- Rejects negative quantities, duplicate periods and misplaced opening inventories
- Fills implicit gaps in the period grid (zero demand, zero supply), on a
  given frequency or on one inferred from the periods
- Resolves planning parameters from explicit arguments or per-period columns
"""

import re
import numpy as np
import pandas as pd

from planning_errors import ConfigurationError, InvalidSeriesError, ValidationError
from planning_rules import (
    DRP_PARAMETER_COLUMNS,
    PLANNING_RULES,
    POLICY_PARAMETER_COLUMNS,
    QUANTITY_COLUMNS,
    REQUIRED_COLUMNS,
)

# Numeric parameter columns and the smallest value each accepts
PARAMETER_LOWER_BOUNDS = {
    "min_coverage_periods": 0,
    "max_coverage_periods": 0,
    "safety_stock_coverage": 0,
    "replenishment_coverage_duration": 0,
}

CANONICAL_COLUMNS = (
    ["entity_id", "period", "demand", "opening_inventory", "scheduled_supply"]
    + POLICY_PARAMETER_COLUMNS
    + DRP_PARAMETER_COLUMNS
)


def normalize_entity_id(value) -> str:
    """
    Normalize a DFU identifier: strip and collapse internal whitespace.

    Args:
        value: Raw identifier

    Returns:
        Normalized identifier, '' for missing values
    """
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ''
    return re.sub(r'\s+', ' ', str(value).strip())


def split_entities(table: pd.DataFrame, logs=None) -> dict:
    """
    Group a planning table into one period series per DFU.

    Row order inside each DFU is preserved; DFUs are returned in sorted order.
    Rows without an entity_id cannot be attributed to any DFU and are dropped.

    Args:
        table: Planning table with an 'entity_id' column
        logs: Optional list to append log messages

    Returns:
        Dict {entity_id: DataFrame of that DFU's rows}
    """
    if logs is None:
        logs = []

    if 'entity_id' not in table.columns:
        raise ValidationError("Planning table is missing required column: entity_id")

    df = table.copy()
    df['entity_id'] = df['entity_id'].map(normalize_entity_id)

    blank = df['entity_id'] == ''
    if blank.any():
        logs.append(f"WARNING: Found {int(blank.sum())} rows without an entity_id. These rows will be dropped.")
        df = df[~blank]

    entities = {}
    for entity_id, rows in df.groupby('entity_id', sort=True):
        entities[entity_id] = rows.reset_index(drop=True)

    logs.append(f"INFO: Found {len(entities)} DFUs in {len(df)} planning rows.")
    return entities


def parse_periods(series: pd.Series, period_format=None, entity_id=None) -> pd.Series:
    """
    Parse a period column into datetimes, keeping integer buckets as-is.

    Args:
        series: Raw period values
        period_format: Optional strptime format, e.g. '%m/%d/%Y'
        entity_id: DFU the periods belong to (for error messages)

    Returns:
        Parsed period Series
    """
    if series.isna().any():
        raise ValidationError(f"{int(series.isna().sum())} periods are missing", entity_id)

    if pd.api.types.is_datetime64_any_dtype(series) or pd.api.types.is_numeric_dtype(series):
        return series

    parsed = pd.to_datetime(series, format=period_format, errors='coerce')
    bad = series[parsed.isna()]
    if not bad.empty:
        raise ValidationError(
            f"{len(bad)} period values could not be parsed as dates: {bad.head(5).tolist()}",
            entity_id
        )
    return parsed


def coerce_quantity(series: pd.Series, column: str, entity_id=None) -> pd.Series:
    """
    Convert a quantity column to float, removing thousands separators.

    Missing values stay NaN; values that are present but not numeric are rejected.
    """
    raw = series
    if not pd.api.types.is_numeric_dtype(raw):
        cleaned = raw.where(raw.isna(), raw.astype(str).str.replace(',', '', regex=False).str.strip())
        cleaned = cleaned.replace('', np.nan)
    else:
        cleaned = raw

    values = pd.to_numeric(cleaned, errors='coerce')
    invalid = values.isna() & cleaned.notna()
    if invalid.any():
        raise ValidationError(
            f"Column '{column}' has non-numeric values: {raw[invalid].head(5).tolist()}",
            entity_id
        )
    return values.astype(float)


def check_period_order(periods: pd.Series, entity_id=None):
    """Raise ValidationError unless periods are unique and strictly increasing."""
    duplicated = periods[periods.duplicated(keep=False)]
    if not duplicated.empty:
        raise ValidationError(
            f"Duplicate periods found: {sorted(set(duplicated.tolist()))[:5]}",
            entity_id
        )

    steps = periods.diff().iloc[1:]
    if pd.api.types.is_datetime64_any_dtype(periods):
        backwards = steps <= pd.Timedelta(0)
    else:
        backwards = steps <= 0
    if backwards.any():
        position = int(np.argmax(backwards.to_numpy())) + 1
        raise ValidationError(
            f"Periods are not strictly increasing: {periods.iloc[position - 1]} is followed by {periods.iloc[position]}",
            entity_id
        )


def fill_period_gaps(df: pd.DataFrame, freq, logs=None, entity_id=None) -> pd.DataFrame:
    """
    Insert the periods missing from a regular grid.

    Inserted periods carry zero demand and zero supply; planning parameters are
    carried forward from the previous period.

    Args:
        df: Ordered, validated series
        freq: Pandas offset alias (e.g. 'MS', 'W-MON') for date periods,
              integer step for integer periods
        logs: Optional list to append log messages
        entity_id: DFU being normalized

    Returns:
        Series with a complete period grid
    """
    if logs is None:
        logs = []

    periods = df['period']
    first, last = periods.iloc[0], periods.iloc[-1]

    if pd.api.types.is_datetime64_any_dtype(periods):
        full = pd.date_range(first, last, freq=freq)
    elif isinstance(freq, (int, np.integer)) and freq > 0:
        full = pd.Index(np.arange(first, last + freq, freq), name='period')
    else:
        raise ValidationError(f"Frequency '{freq}' does not apply to periods of type {periods.dtype}", entity_id)

    misaligned = ~periods.isin(full)
    if misaligned.any():
        raise ValidationError(
            f"Periods not aligned to frequency '{freq}': {periods[misaligned].head(5).tolist()}",
            entity_id
        )

    inserted = ~full.isin(periods)
    if not inserted.any():
        return df

    filled = df.set_index('period').reindex(full)
    filled.index.name = 'period'

    for col in QUANTITY_COLUMNS:
        filled.loc[inserted, col] = 0.0

    carried = [col for col in filled.columns if col not in QUANTITY_COLUMNS]
    for col in carried:
        filled[col] = filled[col].where(~inserted, filled[col].ffill())

    logs.append(f"INFO: [{entity_id}] Filled {int(inserted.sum())} missing periods with zero demand and supply.")
    return filled.reset_index()


def infer_period_frequency(periods: pd.Series, entity_id=None):
    """
    Infer the period grid of a series when no frequency is given.

    Integer buckets use the greatest common step between periods. Dates that
    are already evenly spaced need no grid; otherwise the coarsest
    start-of-period grid (year, quarter, month, week of the first period)
    holding every period is used, then daily buckets.

    Args:
        periods: Ordered, validated periods
        entity_id: DFU being normalized

    Returns:
        Frequency for fill_period_gaps(), None when there is nothing to fill
    """
    if len(periods) < 2:
        return None

    if not pd.api.types.is_datetime64_any_dtype(periods):
        steps = periods.diff().iloc[1:].to_numpy(dtype=float)
        if (np.mod(steps, 1) != 0).any():
            raise ValidationError("Numeric periods must be integer buckets", entity_id)
        return int(np.gcd.reduce(steps.astype(np.int64)))

    if len(periods) >= 3 and pd.infer_freq(pd.DatetimeIndex(periods)) is not None:
        return None

    first, last = periods.iloc[0], periods.iloc[-1]
    weekly = f"W-{first.day_name()[:3].upper()}"
    for freq in PLANNING_RULES["periods"]["candidate_frequencies"] + [weekly]:
        if periods.isin(pd.date_range(first, last, freq=freq)).all():
            return freq

    if periods.diff().min() == pd.Timedelta(days=1):
        return 'D'

    raise ValidationError(
        "Periods are not evenly spaced and no period grid could be inferred; pass freq explicitly",
        entity_id
    )


def check_parameter_values(values: pd.Series, column: str, entity_id=None, error=ValidationError) -> pd.Series:
    """
    Convert a planning parameter to float and check its bounds.

    Args:
        values: Parameter values, one per period
        column: Parameter column name
        entity_id: DFU being planned
        error: Exception type raised for out-of-bounds values

    Returns:
        Float Series (NaN for undefined values)
    """
    values = coerce_quantity(values, column, entity_id)

    if column in PARAMETER_LOWER_BOUNDS and (values < PARAMETER_LOWER_BOUNDS[column]).any():
        raise error(f"Parameter '{column}' has negative values: {values[values < 0].head(5).tolist()}", entity_id)
    if column == 'moq' and (values <= 0).any():
        raise error(f"Parameter 'moq' must be strictly positive, got {values[values <= 0].head(5).tolist()}", entity_id)

    return values


def normalize_series(rows, entity_id=None, freq=None, sort=False, period_format=None, logs=None) -> pd.DataFrame:
    """
    Validate and canonicalize the period rows of one DFU.

    Args:
        rows: DataFrame (or records) with at least 'period' and 'demand'
        entity_id: DFU identifier; defaults to the rows' 'entity_id' column
        freq: Period frequency used to fill implicit gaps; inferred from the
              periods when omitted
        sort: Sort rows by period before checking order
        period_format: Optional strptime format for string periods
        logs: Optional list to append log messages

    Returns:
        New DataFrame with canonical columns, one row per period in order
    """
    if logs is None:
        logs = []

    if rows is None or len(rows) == 0:
        raise InvalidSeriesError("Period series is empty", entity_id)

    df = pd.DataFrame(rows).copy()
    if df.empty:
        raise InvalidSeriesError("Period series is empty", entity_id)

    # --- Identify the DFU ---
    if entity_id is None and 'entity_id' in df.columns:
        ids = set(df['entity_id'].map(normalize_entity_id))
        if len(ids) > 1:
            raise ValidationError(f"Rows belong to more than one DFU: {sorted(ids)[:5]}")
        entity_id = ids.pop() or None
    df['entity_id'] = entity_id

    missing_cols = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing_cols:
        raise ValidationError(f"Missing required columns: {', '.join(missing_cols)}", entity_id)

    # --- Periods ---
    df['period'] = parse_periods(df['period'], period_format, entity_id)
    if sort:
        df = df.sort_values('period', kind='stable').reset_index(drop=True)
    else:
        df = df.reset_index(drop=True)
    check_period_order(df['period'], entity_id)

    # --- Quantities ---
    df['demand'] = coerce_quantity(df['demand'], 'demand', entity_id)
    for col in ['opening_inventory', 'scheduled_supply']:
        if col in df.columns:
            df[col] = coerce_quantity(df[col], col, entity_id).fillna(0.0)
        else:
            df[col] = 0.0

    if (df['demand'] < 0).any():
        raise ValidationError(f"Negative demand in {int((df['demand'] < 0).sum())} periods", entity_id)
    if (df['scheduled_supply'] < 0).any():
        raise ValidationError(
            f"Negative scheduled supply in {int((df['scheduled_supply'] < 0).sum())} periods",
            entity_id
        )

    later_openings = df['opening_inventory'].iloc[1:] != 0
    if later_openings.any():
        raise ValidationError(
            f"Opening inventory is only allowed on the first period; found on {int(later_openings.sum())} later periods",
            entity_id
        )

    # --- Planning parameters ---
    for col in list(PARAMETER_LOWER_BOUNDS) + ['moq']:
        if col in df.columns:
            df[col] = check_parameter_values(df[col], col, entity_id)

    if 'horizon_status' in df.columns:
        df['horizon_status'] = df['horizon_status'].where(
            df['horizon_status'].isna(), df['horizon_status'].astype(str).str.strip()
        )

    df = df[[col for col in CANONICAL_COLUMNS if col in df.columns]]

    if freq is None:
        freq = infer_period_frequency(df['period'], entity_id)
    if freq is not None:
        df = fill_period_gaps(df, freq, logs, entity_id)

    missing_demand = int(df['demand'].isna().sum())
    if missing_demand:
        logs.append(f"WARNING: [{entity_id}] {missing_demand} periods have no demand value.")

    logs.append(f"INFO: [{entity_id}] Normalized {len(df)} periods.")
    return df.reset_index(drop=True)


def resolve_parameter(series: pd.DataFrame, column: str, value=None, entity_id=None) -> pd.Series:
    """
    Resolve a planning parameter to one value per period.

    An explicit value (scalar or one value per period) overrides the column of
    the same name in the series and is checked like that column would be.

    Args:
        series: Normalized series
        column: Parameter column name
        value: Optional explicit value(s)
        entity_id: DFU being planned

    Returns:
        Series aligned with the series index
    """
    if value is not None:
        if np.isscalar(value):
            values = [value] * len(series)
        else:
            values = list(value)
            if len(values) != len(series):
                raise ConfigurationError(
                    f"Parameter '{column}' has {len(values)} values for {len(series)} periods",
                    entity_id
                )
        explicit = pd.Series(values, index=series.index, name=column)
        try:
            return check_parameter_values(explicit, column, entity_id, error=ConfigurationError)
        except ValidationError as e:
            raise ConfigurationError(e.message, entity_id) from e

    if column in series.columns and series[column].notna().any():
        return series[column].rename(column)

    raise ConfigurationError(f"Missing required parameter '{column}'", entity_id)
