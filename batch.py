"""
Batch Planning Runner
=====================
Runs one planning mode over every DFU of a planning table.

DFUs are independent: each one is normalized and planned on its own, so a
DFU with bad inputs is reported in the error table without stopping the
others. With max_workers > 1 the DFUs are fanned out to a process pool;
results land in one slot per DFU and are concatenated in DFU order, so the
output does not depend on completion order.

The worker is a module-level function so it can be pickled by the pool.
"""

import time
from concurrent.futures import ProcessPoolExecutor, as_completed

import pandas as pd

from drp import plan
from planning_errors import ConfigurationError, PlanningError
from planning_rules import ERROR_COLUMNS, get_output_columns
from projection import project
from stock_policy import analyze
from time_series import split_entities

PLANNING_FUNCTIONS = {
    "projection": project,
    "policy": analyze,
    "drp": plan,
}


def _plan_entity(task: tuple) -> tuple:
    """
    Plan a single DFU.

    Args:
        task: (mode, entity_id, rows, params)

    Returns:
        (entity_id, logs, result_df or None, (error_type, message) or None)
    """
    mode, entity_id, rows, params = task
    logs = []
    try:
        result = PLANNING_FUNCTIONS[mode](rows, logs=logs, **params)
    except PlanningError as e:
        logs.append(f"ERROR: [{entity_id}] {type(e).__name__}: {e.message}")
        return entity_id, logs, None, (type(e).__name__, e.message)
    return entity_id, logs, result, None


def run_planning(table: pd.DataFrame, mode: str = "projection", max_workers=None,
                 entity_params=None, **params):
    """
    Run a planning mode for all DFUs of a planning table.

    Args:
        table: Planning table (one row per DFU x period)
        mode: 'projection', 'policy' or 'drp'
        max_workers: Number of worker processes; None or 1 runs in-process
        entity_params: Optional {entity_id: {param: value}} overrides
        **params: Parameters passed to every DFU (e.g. min_cov, moq,
                  horizon_grid, freq, period_format)

    Returns:
        tuple: (logs, results_df, errors_df)
        - logs: List of processing messages
        - results_df: Output rows of every successfully planned DFU
        - errors_df: One row per failed DFU (entity_id, error_type, message)
    """
    logs = []
    start_time = time.time()
    logs.append(f"--- Planning Run ({mode}) ---")

    if mode not in PLANNING_FUNCTIONS:
        raise ConfigurationError(
            f"Unknown planning mode '{mode}'. Expected one of: {', '.join(PLANNING_FUNCTIONS)}"
        )

    output_columns = get_output_columns(mode)
    empty_errors = pd.DataFrame(columns=ERROR_COLUMNS)

    if table is None or table.empty:
        logs.append("WARNING: No planning data provided")
        return logs, pd.DataFrame(columns=output_columns), empty_errors

    entities = split_entities(table, logs)
    entity_params = entity_params or {}

    tasks = [
        (mode, entity_id, rows, {**params, **entity_params.get(entity_id, {})})
        for entity_id, rows in entities.items()
    ]

    # One result slot per DFU
    slots = {}
    if max_workers is not None and max_workers > 1 and len(tasks) > 1:
        logs.append(f"INFO: Planning {len(tasks)} DFUs with {max_workers} worker processes...")
        with ProcessPoolExecutor(max_workers=max_workers) as executor:
            futures = [executor.submit(_plan_entity, task) for task in tasks]
            for future in as_completed(futures):
                outcome = future.result()
                slots[outcome[0]] = outcome
    else:
        logs.append(f"INFO: Planning {len(tasks)} DFUs...")
        for task in tasks:
            outcome = _plan_entity(task)
            slots[outcome[0]] = outcome

    results = []
    errors = []
    for entity_id in entities:
        _, entity_logs, result, error = slots[entity_id]
        logs.extend(entity_logs)
        if error is None:
            results.append(result)
        else:
            errors.append({'entity_id': entity_id, 'error_type': error[0], 'message': error[1]})

    results_df = pd.concat(results, ignore_index=True) if results else pd.DataFrame(columns=output_columns)
    errors_df = pd.DataFrame(errors, columns=ERROR_COLUMNS) if errors else empty_errors

    logs.append(f"INFO: Planned {len(results)} DFUs successfully, {len(errors)} failed.")
    end_time = time.time()
    logs.append(f"INFO: Planning run finished in {end_time - start_time:.2f} seconds.")

    return logs, results_df, errors_df
