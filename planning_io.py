"""
Helper module to load planning tables from CSV and export planning results to Excel.
"""
import io
import os
import pandas as pd

from planning_rules import COLUMN_ALIASES, format_coverage

COVERAGE_COLUMNS = ['coverage_periods', 'drp_coverage_periods']


def load_planning_table(source, period_format=None, column_aliases=None, **kwargs):
    """
    Load a planning table (one row per DFU x period) from a CSV file or buffer.

    Column names of the original planning template (DFU, Period, Demand,
    Opening_Inventories, Supply_Plan, SSCov, DRPCovDur, Reorder.Qty, DRP.Grid...)
    are renamed to their canonical names.

    Args:
        source: File path or file-like object
        period_format: Optional strptime format for the Period column, e.g. '%m/%d/%Y'
        column_aliases: Optional extra {source column: canonical column} mapping
        **kwargs: passed to pd.read_csv()

    Returns:
        tuple: (logs, planning_df)
    """
    logs = []
    logs.append("--- Planning Table Loader ---")

    if isinstance(source, str) and not os.path.isfile(os.path.abspath(source)):
        logs.append(f"ERROR: File not found: {source}")
        return logs, pd.DataFrame()

    try:
        df = pd.read_csv(source, low_memory=False, **kwargs)
        logs.append(f"INFO: Loaded {len(df)} rows from planning table.")
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        logs.append(f"ERROR: Failed to read planning table: {e}")
        return logs, pd.DataFrame()

    aliases = dict(COLUMN_ALIASES)
    if column_aliases:
        aliases.update(column_aliases)

    df.columns = [str(col).strip() for col in df.columns]
    renames = {col: aliases[col] for col in df.columns if col in aliases}
    if renames:
        df = df.rename(columns=renames)
        logs.append(f"INFO: Renamed template columns: {', '.join(f'{k} -> {v}' for k, v in renames.items())}")

    duplicated = df.columns[df.columns.duplicated()].tolist()
    if duplicated:
        logs.append(f"ERROR: Several source columns map to the same field: {', '.join(duplicated)}")
        return logs, pd.DataFrame()

    if period_format and 'period' in df.columns:
        logs.append(f"INFO: Parsing periods with explicit format '{period_format}'...")
        parsed = pd.to_datetime(df['period'], format=period_format, errors='coerce')
        period_nulls = int(parsed.isna().sum() - df['period'].isna().sum())
        if period_nulls > 0:
            # Leave the raw values in place so the normalizer reports them per DFU
            logs.append(f"WARNING: {period_nulls} periods failed to parse with format '{period_format}'.")
        else:
            df['period'] = parsed

    return logs, df


def _prepare_for_export(df: pd.DataFrame) -> pd.DataFrame:
    """Copy of a result table with datetimes as dates and infinite coverages as a label."""
    needs_copy = any(
        pd.api.types.is_datetime64_any_dtype(df[col]) or col in COVERAGE_COLUMNS
        for col in df.columns
    )
    if not needs_copy:
        return df

    df_to_export = df.copy()
    for col in df_to_export.columns:
        if pd.api.types.is_datetime64_any_dtype(df_to_export[col]):
            if df_to_export[col].dt.tz is not None:
                df_to_export[col] = df_to_export[col].dt.tz_localize(None)
            df_to_export[col] = df_to_export[col].dt.strftime('%Y-%m-%d')
        elif col in COVERAGE_COLUMNS:
            df_to_export[col] = df_to_export[col].astype(object).map(format_coverage)

    return df_to_export


def export_results_to_excel(dfs_to_export_dict):
    """
    Processes a dictionary of result dataframes
    and returns an Excel file as a bytes object.
    The dictionary format is { "sheet_name": (dataframe, include_index_bool) }
    """
    output = io.BytesIO()

    with pd.ExcelWriter(output, engine='xlsxwriter') as writer:
        for sheet_name, (df, include_index) in dfs_to_export_dict.items():

            if not isinstance(df, pd.DataFrame):
                print(f"Skipping {sheet_name}: Not a DataFrame.")
                continue
            if df.empty:
                print(f"Skipping {sheet_name}: DataFrame is empty.")
                continue

            df_to_export = _prepare_for_export(df)
            df_to_export.to_excel(writer, sheet_name=sheet_name, index=include_index)

            # Auto-adjust column widths
            worksheet = writer.sheets[sheet_name]
            offset = 1 if include_index else 0
            for idx, col in enumerate(df_to_export.columns):
                series = df_to_export[col]
                max_len = max(
                    series.astype(str).map(len).max(),
                    len(str(series.name))
                ) + 2
                worksheet.set_column(idx + offset, idx + offset, max_len)

    return output.getvalue()
