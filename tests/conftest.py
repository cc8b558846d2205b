"""
Pytest configuration and shared fixtures for all tests
Centralized planning tables and assertion helpers
"""

import pytest
import pandas as pd
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

# ===== SHARED PLANNING TABLE FIXTURES =====

@pytest.fixture
def three_period_rows():
    """
    DFU "A" over 3 monthly periods:
    - demand 100 per period
    - opening inventory 300 on the first period
    - no scheduled supply
    """
    return pd.DataFrame({
        'entity_id': ['A', 'A', 'A'],
        'period': pd.to_datetime(['2024-01-01', '2024-02-01', '2024-03-01']),
        'demand': [100, 100, 100],
        'opening_inventory': [300, 0, 0],
        'scheduled_supply': [0, 0, 0]
    })


@pytest.fixture
def declining_rows():
    """
    DFU with strictly positive, uneven demand and no supply after the first period,
    used for coverage monotonicity checks.
    """
    return pd.DataFrame({
        'entity_id': ['B'] * 8,
        'period': list(range(1, 9)),
        'demand': [50, 120, 80, 30, 200, 90, 60, 110],
        'opening_inventory': [500, 0, 0, 0, 0, 0, 0, 0],
        'scheduled_supply': [0] * 8
    })


@pytest.fixture
def multi_dfu_table():
    """
    Planning table with three DFUs:
    - 'A' valid
    - 'B' valid, with a supply receipt
    - 'BAD' with a negative demand (fails validation)
    """
    return pd.DataFrame({
        'entity_id': ['A', 'A', 'A', 'B', 'B', 'B', 'BAD', 'BAD'],
        'period': [1, 2, 3, 1, 2, 3, 1, 2],
        'demand': [100, 100, 100, 50, 50, 50, 10, -5],
        'opening_inventory': [300, 0, 0, 60, 0, 0, 0, 0],
        'scheduled_supply': [0, 0, 0, 0, 100, 0, 0, 0]
    })


@pytest.fixture
def empty_dataframe():
    """Returns an empty DataFrame"""
    return pd.DataFrame()

# ===== UTILITY FUNCTIONS FOR TESTS =====

def assert_log_contains(logs, expected_message):
    """
    Helper to assert that a log message contains expected text

    Args:
        logs: List of log messages
        expected_message: Text expected to be in one of the logs
    """
    log_text = " ".join(logs)
    assert expected_message in log_text, f"Expected '{expected_message}' not found in logs: {log_text}"

def assert_columns_exist(df, columns):
    """
    Helper to assert that DataFrame contains required columns

    Args:
        df: Pandas DataFrame
        columns: List of column names that should exist
    """
    missing = set(columns) - set(df.columns)
    assert not missing, f"Missing required columns: {missing}"
