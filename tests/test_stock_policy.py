"""
Tests for the Stock Policy Analyzer
Covers PI.Index classification, stock thresholds, ratios and summaries
"""

import numpy as np
import pandas as pd
import pytest

from conftest import assert_log_contains
from demo_data import make_demo_table
from planning_errors import ConfigurationError
from planning_rules import get_output_columns
from stock_policy import (
    PIIndex,
    analyze,
    classify_position,
    get_alert_periods,
    get_policy_summary,
)


class TestClassifyPosition:
    """Tests for classify_position function"""

    def test_shortage(self):
        assert classify_position(-1, 100, 300, 100) == PIIndex.SHORTAGE

    def test_overstock(self):
        assert classify_position(301, 100, 300, 100) == PIIndex.OVERSTOCK

    def test_alert(self):
        assert classify_position(50, 100, 300, 100) == PIIndex.ALERT

    def test_ok_between_thresholds(self):
        assert classify_position(200, 100, 300, 100) == PIIndex.OK

    def test_thresholds_are_inclusive(self):
        assert classify_position(100, 100, 300, 100) == PIIndex.OK
        assert classify_position(300, 100, 300, 100) == PIIndex.OK

    def test_zero_inventory_is_not_a_shortage(self):
        assert classify_position(0, 100, 300, 100) == PIIndex.ALERT

    def test_undefined_demand_is_tbc(self):
        assert classify_position(-50, 100, 300, np.nan) == PIIndex.TBC

    def test_undefined_threshold_is_tbc(self):
        assert classify_position(50, np.nan, 300, 100) == PIIndex.TBC

    def test_shortage_wins_over_alert(self):
        # Negative inventory is also below the safety stock
        assert classify_position(-10, 100, 300, 100) == PIIndex.SHORTAGE

    def test_overstock_wins_over_alert_when_thresholds_cross(self):
        assert classify_position(150, 200, 100, 100) == PIIndex.OVERSTOCK

    def test_values_are_plain_strings(self):
        assert PIIndex.OVERSTOCK == "OverStock"
        assert PIIndex.SHORTAGE.value == "Shortage"


class TestAnalyze:
    """Tests for the analyze() entry point"""

    def test_last_period_in_alert(self, three_period_rows):
        result = analyze(three_period_rows, min_cov=1, max_cov=3)

        assert result['safety_stock_qty'].tolist() == [100.0, 100.0, 100.0]
        assert result['maximum_stock_qty'].tolist() == [300.0, 300.0, 300.0]
        assert result['pi_index'].tolist() == ["OK", "OK", "Alert"]

    def test_ratios(self, three_period_rows):
        result = analyze(three_period_rows, min_cov=1, max_cov=3)

        assert result['ratio_pi_vs_min'].tolist() == [2.0, 1.0, 0.0]
        assert result['ratio_pi_vs_max'].tolist() == [0.67, 0.33, 0.0]

    def test_output_columns(self, three_period_rows):
        result = analyze(three_period_rows, min_cov=1, max_cov=3)
        assert result.columns.tolist() == get_output_columns("policy")

    def test_every_period_gets_one_known_label(self, declining_rows):
        result = analyze(declining_rows, min_cov=1, max_cov=2)
        labels = {member.value for member in PIIndex}

        assert result['pi_index'].notna().all()
        assert set(result['pi_index']).issubset(labels)

    def test_zero_demand_gives_undefined_ratios(self):
        rows = pd.DataFrame({'entity_id': ['Z'] * 2, 'period': [1, 2], 'demand': [0, 10],
                             'opening_inventory': [50, 0]})
        result = analyze(rows, min_cov=1, max_cov=2)

        assert np.isnan(result['ratio_pi_vs_min'].iloc[0])
        assert np.isnan(result['ratio_pi_vs_max'].iloc[0])
        assert result['pi_index'].iloc[0] == "OverStock"

    def test_missing_demand_is_tbc(self):
        rows = pd.DataFrame({'entity_id': ['Z'] * 2, 'period': [1, 2], 'demand': [10, np.nan],
                             'opening_inventory': [50, 0]})
        result = analyze(rows, min_cov=1, max_cov=2)
        assert result['pi_index'].tolist() == ["OverStock", "TBC"]

    def test_targets_from_columns(self):
        result = analyze(make_demo_table("policy"))

        assert result['min_coverage_periods'].unique().tolist() == [2.0]
        assert result['safety_stock_qty'].iloc[0] == 720.0
        assert result['pi_index'].iloc[3] == "Shortage"

    def test_per_period_targets(self, three_period_rows):
        result = analyze(three_period_rows, min_cov=[1, 1, 0], max_cov=[3, 3, 3])
        assert result['pi_index'].tolist() == ["OK", "OK", "OK"]

    def test_missing_targets_raise(self, three_period_rows):
        with pytest.raises(ConfigurationError):
            analyze(three_period_rows)

    def test_negative_target_raises(self, three_period_rows):
        with pytest.raises(ConfigurationError):
            analyze(three_period_rows, min_cov=-1, max_cov=3)

    def test_min_above_max_raises(self, three_period_rows):
        with pytest.raises(ConfigurationError, match="greater than"):
            analyze(three_period_rows, min_cov=4, max_cov=3)

    def test_negative_per_period_targets_raise(self, three_period_rows):
        with pytest.raises(ConfigurationError, match="negative") as excinfo:
            analyze(three_period_rows, min_cov=[-5, -5, -5], max_cov=4)
        assert excinfo.value.entity_id == 'A'

    def test_non_numeric_target_raises(self, three_period_rows):
        with pytest.raises(ConfigurationError, match="non-numeric"):
            analyze(three_period_rows, min_cov="x", max_cov=4)

    def test_per_period_min_above_max_raises(self, three_period_rows):
        with pytest.raises(ConfigurationError, match="greater than"):
            analyze(three_period_rows, min_cov=[1, 5, 1], max_cov=[3, 3, 3])

    def test_counts_are_logged(self, three_period_rows):
        logs = []
        analyze(three_period_rows, min_cov=1, max_cov=3, logs=logs)
        assert_log_contains(logs, "TBC=0, Shortage=0, OverStock=0, Alert=1, OK=2")


class TestPolicySummary:
    """Tests for get_policy_summary and get_alert_periods"""

    @pytest.fixture
    def two_dfu_analysis(self, three_period_rows, declining_rows):
        return pd.concat([
            analyze(three_period_rows.assign(period=[1, 2, 3]), min_cov=1, max_cov=3),
            analyze(declining_rows, min_cov=1, max_cov=3)
        ], ignore_index=True)

    def test_summary_counts(self, two_dfu_analysis):
        summary = get_policy_summary(two_dfu_analysis).set_index('entity_id')

        assert summary.loc['A', 'periods'] == 3
        assert summary.loc['A', 'Alert'] == 1
        assert summary.loc['A', 'OK'] == 2
        assert summary.loc['A', 'Shortage'] == 0
        assert pd.isna(summary.loc['A', 'first_shortage_period'])
        assert summary.loc['B', 'Shortage'] == 3
        assert summary.loc['B', 'first_shortage_period'] == 6

    def test_summary_has_all_labels(self, two_dfu_analysis):
        summary = get_policy_summary(two_dfu_analysis)
        for label in ["TBC", "Shortage", "OverStock", "Alert", "OK"]:
            assert label in summary.columns

    def test_empty_summary(self):
        assert get_policy_summary(pd.DataFrame()).empty

    def test_alerts_sorted_by_urgency(self, two_dfu_analysis):
        alerts = get_alert_periods(two_dfu_analysis)

        assert set(alerts['pi_index']) == {"Shortage", "Alert"}
        assert alerts['pi_index'].iloc[0] == "Shortage"
        assert alerts['pi_index'].iloc[-1] == "Alert"

    def test_alerts_top_n(self, two_dfu_analysis):
        alerts = get_alert_periods(two_dfu_analysis, top_n=2)
        assert len(alerts) == 2
        assert alerts['period'].tolist() == [6, 7]
