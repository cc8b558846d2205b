"""
Planning Rules Configuration
Centralized definitions for fields, calculations, and planning conventions.
This file allows rules to be changed in one place without modifying engine code.
"""

from datetime import datetime
import numpy as np

# ===== PLANNING CONVENTIONS =====

# Coverage reported when inventory is never exhausted within the horizon
COVERAGE_BEYOND_HORIZON = np.inf

PLANNING_RULES = {
    "horizon": {
        # Allowed values of the DRP grid, in canonical spelling
        "statuses": ["Frozen", "Free"],
        "frozen": "Frozen",
        "free": "Free",
    },

    "pi_index": {
        # Stock position classification, listed in evaluation precedence
        "precedence": ["TBC", "Shortage", "OverStock", "Alert", "OK"],
        "descriptions": {
            "TBC": "To be confirmed - demand or coverage targets undefined for the period",
            "Shortage": "Projected inventory is negative",
            "OverStock": "Projected inventory above the maximum stock level",
            "Alert": "Projected inventory below the safety stock level",
            "OK": "Projected inventory between safety and maximum stock levels"
        },
        # Lower rank = more urgent, used when sorting alert lists
        "urgency_rank": {"Shortage": 0, "Alert": 1, "TBC": 2, "OverStock": 3, "OK": 4},
    },

    "periods": {
        # Start-of-period grids tried, coarsest first, when a date series has
        # gaps and no frequency is given (weekly and daily grids are derived)
        "candidate_frequencies": ["YS", "QS", "MS"],
    },

    "rounding": {
        "coverage_decimals": 2,
        "ratio_decimals": 2,
    },

    # Absolute tolerance when comparing quantities against thresholds
    "quantity_tolerance": 1e-9,

    "export": {
        "beyond_horizon_label": "beyond horizon",
    },
}


# ===== INPUT TABLE SCHEMA =====

DATA_FIELD_DEFINITIONS = {
    "planning_table": {
        "file_description": "One row per DFU x period with demand, supply and planning parameters",
        "fields": {
            "entity_id": {
                "description": "DFU identifier (item, or item x location)",
                "data_type": "string",
                "required": True,
                "modes": ["projection", "policy", "drp"]
            },
            "period": {
                "description": "Time bucket (monthly, weekly...), strictly increasing per DFU",
                "data_type": "date",
                "required": True,
                "modes": ["projection", "policy", "drp"]
            },
            "demand": {
                "description": "Demand in units (sales forecasts), >= 0",
                "data_type": "numeric",
                "required": True,
                "modes": ["projection", "policy", "drp"]
            },
            "opening_inventory": {
                "description": "Available inventory at the beginning of the horizon, first period only",
                "data_type": "numeric",
                "required": False,
                "modes": ["projection", "policy", "drp"]
            },
            "scheduled_supply": {
                "description": "Supplies planned to be received during the period, >= 0",
                "data_type": "numeric",
                "required": False,
                "modes": ["projection", "policy", "drp"]
            },
            "min_coverage_periods": {
                "description": "Minimum stock target, in periods of coverage",
                "data_type": "numeric",
                "required": False,
                "modes": ["policy"]
            },
            "max_coverage_periods": {
                "description": "Maximum stock target, in periods of coverage",
                "data_type": "numeric",
                "required": False,
                "modes": ["policy"]
            },
            "safety_stock_coverage": {
                "description": "Safety stock target (SSCov), in periods of coverage",
                "data_type": "numeric",
                "required": False,
                "modes": ["drp"]
            },
            "replenishment_coverage_duration": {
                "description": "Periods of demand covered by each replenishment (DRPCovDur)",
                "data_type": "numeric",
                "required": False,
                "modes": ["drp"]
            },
            "moq": {
                "description": "Minimum order quantity, replenishments are multiples of it",
                "data_type": "numeric",
                "required": False,
                "modes": ["drp"]
            },
            "horizon_status": {
                "description": "Frozen (committed plan) or Free (open to planning)",
                "data_type": "string",
                "required": False,
                "modes": ["drp"]
            }
        }
    }
}

REQUIRED_COLUMNS = ["period", "demand"]

QUANTITY_COLUMNS = ["demand", "opening_inventory", "scheduled_supply"]

POLICY_PARAMETER_COLUMNS = ["min_coverage_periods", "max_coverage_periods"]

DRP_PARAMETER_COLUMNS = [
    "safety_stock_coverage",
    "replenishment_coverage_duration",
    "moq",
    "horizon_status"
]

# Column names of the original planning template -> canonical names
COLUMN_ALIASES = {
    "DFU": "entity_id",
    "Period": "period",
    "Demand": "demand",
    "Opening": "opening_inventory",
    "Opening_Inventories": "opening_inventory",
    "Opening.Inventories": "opening_inventory",
    "Supply": "scheduled_supply",
    "Supply_Plan": "scheduled_supply",
    "Supply.Plan": "scheduled_supply",
    "Min_Stocks_Coverage": "min_coverage_periods",
    "Min.Stocks.Coverage": "min_coverage_periods",
    "Max_Stocks_Coverage": "max_coverage_periods",
    "Max.Stocks.Coverage": "max_coverage_periods",
    "SSCov": "safety_stock_coverage",
    "DRPCovDur": "replenishment_coverage_duration",
    "Reorder.Qty": "moq",
    "MOQ": "moq",
    "DRP.Grid": "horizon_status",
    "FH": "horizon_status",
}


# ===== OUTPUT SCHEMAS =====

PROJECTION_COLUMNS = [
    "entity_id",
    "period",
    "demand",
    "opening_inventory",
    "scheduled_supply",
    "projected_inventory",
    "coverage_periods"
]

OUTPUT_COLUMNS = {
    "projection": PROJECTION_COLUMNS,
    "policy": PROJECTION_COLUMNS + [
        "min_coverage_periods",
        "max_coverage_periods",
        "safety_stock_qty",
        "maximum_stock_qty",
        "pi_index",
        "ratio_pi_vs_min",
        "ratio_pi_vs_max"
    ],
    "drp": PROJECTION_COLUMNS + [
        "horizon_status",
        "safety_stock_coverage",
        "replenishment_coverage_duration",
        "moq",
        "safety_stock_qty",
        "maximum_stock_qty",
        "suggested_replenishment_qty",
        "drp_projected_inventory",
        "drp_coverage_periods"
    ],
}

ERROR_COLUMNS = ["entity_id", "error_type", "message"]


# ===== CALCULATED FIELDS =====

CALCULATED_FIELDS = {
    "projected_inventory": {
        "name": "Projected Inventories",
        "formula": "projected_inventory[t-1] + scheduled_supply[t] - demand[t]",
        "description": "Running inventory balance, starting from the opening inventory of the first period",
        "notes": "May go negative to signal a shortage"
    },

    "coverage_periods": {
        "name": "Coverage (Periods)",
        "formula": "periods t+1, t+2, ... whose demand projected_inventory[t] can satisfy",
        "description": "Forward-looking coverage of the projected inventory, fractional for a partly covered period",
        "interpretation": {
            "0": "Projected inventory is zero or negative",
            "inf": "Inventory never exhausted within the horizon"
        }
    },

    "safety_stock_qty": {
        "name": "Safety Stocks",
        "formula": "coverage target (periods) * demand[t]",
        "description": "Minimum stock level in units for the period",
        "notes": "Uses min_coverage_periods in policy mode, safety_stock_coverage in DRP mode"
    },

    "maximum_stock_qty": {
        "name": "Maximum Stocks",
        "formula": "max_coverage_periods * demand[t] (policy), safety_stock_qty + forward demand over DRPCovDur (DRP)",
        "description": "Upper stock level in units; the order-up-to level of the DRP"
    },

    "pi_index": {
        "name": "PI.Index",
        "formula": "TBC > Shortage > OverStock > Alert > OK (first match wins)",
        "description": "Classification of the projected inventory against the stock targets",
        "interpretation": PLANNING_RULES["pi_index"]["descriptions"]
    },

    "suggested_replenishment_qty": {
        "name": "DRP.plan",
        "formula": "ceil((maximum_stock_qty - projected_inventory) / moq) * moq",
        "description": "Replenishment suggested in a Free period whose projected inventory falls below the safety stock",
        "notes": "Never suggested in Frozen periods; always a multiple of the MOQ"
    }
}


# ===== HELPER FUNCTIONS =====

def get_output_columns(mode):
    """
    Get the output schema for a planning mode.

    Args:
        mode: 'projection', 'policy' or 'drp'

    Returns:
        List of column names, in output order
    """
    if mode not in OUTPUT_COLUMNS:
        raise KeyError(f"Unknown planning mode '{mode}'. Expected one of: {', '.join(OUTPUT_COLUMNS)}")
    return list(OUTPUT_COLUMNS[mode])


def normalize_horizon_status(value):
    """
    Map a horizon grid value onto its canonical spelling.

    Args:
        value: Raw grid value, e.g. 'frozen', ' Free '

    Returns:
        'Frozen' or 'Free', or None if the value is not a known status
    """
    if value is None:
        return None
    text = str(value).strip().lower()
    for status in PLANNING_RULES["horizon"]["statuses"]:
        if text == status.lower():
            return status
    return None


def get_urgency_rank(pi_index):
    """Sort key for PI.Index values, most urgent first."""
    return PLANNING_RULES["pi_index"]["urgency_rank"].get(pi_index, len(PLANNING_RULES["pi_index"]["urgency_rank"]))


def format_coverage(value):
    """
    Render a coverage value for export.

    Returns the beyond-horizon label for the infinite sentinel, the value otherwise.
    """
    if value is not None and np.isinf(value):
        return PLANNING_RULES["export"]["beyond_horizon_label"]
    return value


# ===== DOCUMENTATION EXPORT =====

def export_planning_rules_documentation(output_path="PLANNING_RULES_DOCUMENTATION.md"):
    """
    Export all planning rules to a markdown documentation file.

    Args:
        output_path: Path for the output markdown file
    """
    with open(output_path, 'w') as f:
        f.write("# Planning Rules Documentation\n\n")
        f.write("Auto-generated documentation of the planning table schema and calculated fields.\n\n")
        f.write(f"**Generated:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n\n")

        f.write("---\n\n")
        f.write("## Data Field Definitions\n\n")

        for table_name, table_info in DATA_FIELD_DEFINITIONS.items():
            f.write(f"### {table_name}\n\n")
            f.write(f"**Description:** {table_info['file_description']}\n\n")
            f.write("| Field Name | Data Type | Required | Description | Modes |\n")
            f.write("|------------|-----------|----------|-------------|-------|\n")

            for field_name, field_def in table_info['fields'].items():
                modes = ", ".join(field_def.get('modes', []))
                f.write(f"| {field_name} | {field_def['data_type']} | "
                        f"{field_def['required']} | {field_def['description']} | {modes} |\n")
            f.write("\n")

        f.write("**Template Column Aliases:**\n\n")
        for alias, canonical in COLUMN_ALIASES.items():
            f.write(f"- `{alias}` -> `{canonical}`\n")
        f.write("\n")

        f.write("---\n\n")
        f.write("## Calculated Fields\n\n")

        for field_name, field_info in CALCULATED_FIELDS.items():
            f.write(f"### {field_info['name']}\n\n")
            f.write(f"**Formula:** `{field_info['formula']}`\n\n")
            f.write(f"**Description:** {field_info['description']}\n\n")

            if 'interpretation' in field_info:
                f.write("**Interpretation:**\n\n")
                for key, meaning in field_info['interpretation'].items():
                    f.write(f"- {key}: {meaning}\n")
                f.write("\n")

            if 'notes' in field_info:
                f.write(f"**Notes:** {field_info['notes']}\n\n")

        f.write("---\n\n")
        f.write("## Output Schemas\n\n")
        for mode, columns in OUTPUT_COLUMNS.items():
            f.write(f"- **{mode}**: {', '.join(columns)}\n")
        f.write("\n")

        f.write("## Planning Rule Configurations\n\n")
        f.write(f"```python\n{PLANNING_RULES}\n```\n\n")


if __name__ == "__main__":
    # Export documentation when run directly
    export_planning_rules_documentation()
    print("Planning rules documentation exported to PLANNING_RULES_DOCUMENTATION.md")
