"""
Tests for planning_io.py
Covers loading planning templates and exporting results to Excel
"""

import io

import numpy as np
import pandas as pd

from conftest import assert_log_contains
from planning_io import export_results_to_excel, load_planning_table
from projection import project


TEMPLATE_CSV = """DFU,Period,Demand,Opening_Inventories,Supply_Plan,Min_Stocks_Coverage,Max_Stocks_Coverage
Item 0001,1/1/2020,360,1310,0,2,4
Item 0001,2/1/2020,458,0,0,2,4
Item 0002,1/1/2020,100,50,100,1,3
Item 0002,2/1/2020,100,0,0,1,3
"""


class TestLoadPlanningTable:
    """Tests for load_planning_table function"""

    def test_template_columns_are_renamed(self):
        logs, df = load_planning_table(io.StringIO(TEMPLATE_CSV))

        assert df.columns.tolist() == [
            'entity_id', 'period', 'demand', 'opening_inventory', 'scheduled_supply',
            'min_coverage_periods', 'max_coverage_periods'
        ]
        assert len(df) == 4
        assert_log_contains(logs, "INFO: Loaded 4 rows from planning table.")
        assert_log_contains(logs, "DFU -> entity_id")

    def test_periods_parsed_with_format(self):
        logs, df = load_planning_table(io.StringIO(TEMPLATE_CSV), period_format='%m/%d/%Y')

        assert pd.api.types.is_datetime64_any_dtype(df['period'])
        assert df['period'].iloc[1] == pd.Timestamp('2020-02-01')

    def test_bad_periods_are_left_for_the_normalizer(self):
        csv = "DFU,Period,Demand\nA,1/1/2020,1\nA,someday,1\n"
        logs, df = load_planning_table(io.StringIO(csv), period_format='%m/%d/%Y')

        assert df['period'].tolist() == ['1/1/2020', 'someday']
        assert_log_contains(logs, "WARNING: 1 periods failed to parse")

    def test_extra_aliases(self):
        csv = "SKU,Week,Forecast\nA,1,10\nA,2,12\n"
        logs, df = load_planning_table(
            io.StringIO(csv),
            column_aliases={'SKU': 'entity_id', 'Week': 'period', 'Forecast': 'demand'}
        )
        assert df.columns.tolist() == ['entity_id', 'period', 'demand']

    def test_conflicting_aliases(self):
        csv = "DFU,Period,Demand,Opening,Opening_Inventories\nA,1,10,5,5\n"
        logs, df = load_planning_table(io.StringIO(csv))

        assert df.empty
        assert_log_contains(logs, "ERROR: Several source columns map to the same field: opening_inventory")

    def test_missing_file(self):
        logs, df = load_planning_table("does_not_exist.csv")

        assert df.empty
        assert_log_contains(logs, "ERROR: File not found")

    def test_empty_file(self):
        logs, df = load_planning_table(io.StringIO(""))

        assert df.empty
        assert_log_contains(logs, "ERROR: Failed to read planning table")

    def test_loads_from_path(self, tmp_path):
        path = tmp_path / "template.csv"
        path.write_text(TEMPLATE_CSV)

        logs, df = load_planning_table(str(path))
        assert df['entity_id'].unique().tolist() == ['Item 0001', 'Item 0002']


class TestExportResultsToExcel:
    """Tests for export_results_to_excel function"""

    def test_export_creates_sheets(self, three_period_rows):
        projection = project(three_period_rows)
        errors = pd.DataFrame({'entity_id': ['X'], 'error_type': ['ValidationError'], 'message': ['bad']})

        excel_bytes = export_results_to_excel({
            "Projection": (projection, False),
            "Errors": (errors, False)
        })

        sheets = pd.read_excel(io.BytesIO(excel_bytes), sheet_name=None)
        assert list(sheets.keys()) == ["Projection", "Errors"]
        assert len(sheets["Projection"]) == 3

    def test_dates_and_infinite_coverage_are_rendered(self):
        projection = project(pd.DataFrame({
            'entity_id': ['A', 'A'],
            'period': pd.to_datetime(['2024-01-01', '2024-02-01']),
            'demand': [10, 10],
            'opening_inventory': [100, 0]
        }))
        assert np.isinf(projection['coverage_periods']).all()

        excel_bytes = export_results_to_excel({"Projection": (projection, False)})
        sheet = pd.read_excel(io.BytesIO(excel_bytes), sheet_name="Projection")

        assert sheet['period'].tolist() == ['2024-01-01', '2024-02-01']
        assert sheet['coverage_periods'].tolist() == ['beyond horizon', 'beyond horizon']

    def test_export_does_not_modify_results(self, three_period_rows):
        projection = project(three_period_rows)
        before = projection.copy()
        export_results_to_excel({"Projection": (projection, False)})
        pd.testing.assert_frame_equal(projection, before)

    def test_skips_empty_and_invalid_sheets(self, three_period_rows, capsys):
        excel_bytes = export_results_to_excel({
            "Projection": (project(three_period_rows), True),
            "Empty": (pd.DataFrame(), False),
            "NotAFrame": ([1, 2, 3], False)
        })

        captured = capsys.readouterr()
        assert "Skipping Empty: DataFrame is empty." in captured.out
        assert "Skipping NotAFrame: Not a DataFrame." in captured.out
        assert list(pd.read_excel(io.BytesIO(excel_bytes), sheet_name=None).keys()) == ["Projection"]
