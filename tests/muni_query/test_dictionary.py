from __future__ import annotations

import pytest

from muni_cli.muni_query import dictionary
from muni_cli.shared.database import LogicalDatabase
from muni_cli.shared.exceptions import DictionaryError


def test_bundled_dictionary_covers_every_database() -> None:
    loaded = dictionary.load_dictionary()

    assert set(loaded.databases) == {member.value for member in LogicalDatabase}
    assert dictionary.load_dictionary() is loaded


def test_database_metadata() -> None:
    holly = dictionary.database_metadata(LogicalDatabase.HOLLY)

    assert holly is not None
    assert holly.municipality == "Village of Holly"
    assert holly.customer_class_codes["RE"] == "Residential"
    assert "history_register_data" in holly.table_groups["Revenue & Billing"].tables


def test_table_and_column_lookups() -> None:
    table = dictionary.table_metadata(LogicalDatabase.HOLLY, "history_register_data")
    assert table is not None
    assert table.category == "Billing & Accounts"

    column = dictionary.column_metadata(LogicalDatabase.HOLLY, "history_register_data", "class")
    assert column is not None
    assert column.known_values == {
        "RE": "Residential",
        "CO": "Commercial",
        "SC": "Special Contract",
        "IN": "Industrial",
    }

    amount = dictionary.column_metadata(LogicalDatabase.HOLLY, "history_register_data", "amount")
    assert amount is not None and amount.unit == "USD"


def test_missing_entries_return_none() -> None:
    assert dictionary.table_metadata(LogicalDatabase.HOLLY, "orders") is None
    assert dictionary.column_metadata(LogicalDatabase.HOLLY, "orders", "region") is None
    assert dictionary.column_metadata(LogicalDatabase.HOLLY, "history_register_data", "missing") is None


def test_instructions_include_workflow() -> None:
    instructions = dictionary.instructions()

    assert instructions["overview"]
    assert instructions["workflow"][0].startswith("1.")


def test_parse_dictionary_rejects_unknown_version() -> None:
    with pytest.raises(DictionaryError, match="version"):
        dictionary.parse_dictionary({"version": 2, "databases": {}})


def test_parse_dictionary_rejects_incomplete_entries() -> None:
    with pytest.raises(DictionaryError, match="holly"):
        dictionary.parse_dictionary({"version": 1, "databases": {"holly": {"state": "Michigan"}}})


def test_parse_dictionary_minimal_payload() -> None:
    parsed = dictionary.parse_dictionary(
        {
            "version": 1,
            "databases": {
                "holly": {
                    "municipality": "Holly",
                    "state": "MI",
                    "description": "desc",
                    "fiscalYearConvention": "July-June",
                    "tables": {"t": {"description": "a table", "columns": {"c": {"description": "col"}}}},
                }
            },
        }
    )

    holly = parsed.databases["holly"]
    assert holly.currency == "USD"
    assert holly.customer_class_codes == {}
    assert holly.tables["t"].columns["c"].description == "col"
    assert parsed.instructions == {}


HOLLY_TABLES = (
    "history_register_data", "meter_sizes",
    "water_class_summary", "sewer_class_summary",
    "water_government_type_summary", "sewer_government_type_summary",
    "water_item_summary", "sewer_item_summary", "water_status_summary", "sewer_status_summary",
    "water_users", "sewer_users", "other_users",
    "water_only_users", "sewer_only_users", "other_only_users",
    "service_exclusive_users_summary", "locationid_classifications", "locationid_government_types",
    "abbr_locationid_government_types", "missing_government_type_locations",
    "budget_data", "budget_final", "general_25_26", "water_25_26", "sewer_25_26", "refuse_25_26",
    "lake_improvement_25_26", "local_street_25_26", "major_street_25_26", "six_budget",
    "as_of_6_30_21", "as_of_6_30_22", "as_of_6_30_23", "as_of_6_30_24", "as_of_6_30_25",
    "capital_assets", "critical_road_improvements_1", "critical_road_improvements_2",
    "rowe_cip_summary_of_projects", "rowe_cip_projects_status", "rowe_cip_funding_expenditures",
    "debt_schedule_2015_go_bond", "debt_schedule_wtr_rev_2014", "debt_schedule_wtr_ref_2014",
    "debt_schedule_cap_imp_2021", "rate_schedule",
    "water_pumped_2020_2021", "water_pumped_2021_2022", "water_pumped_2022_2023",
    "water_pumped_2023_2024", "water_pumped_2024_2025",
    "four", "five", "water_production", "budget_ytd_2024", "budget_ytd_2025", "budget_all_funds_2026",
    "current_rates", "rate_history", "water_revenue_summary", "sewer_revenue_summary",
    "revenue_by_class", "revenue_by_jurisdiction", "current_budget", "budget_by_fund",
    "customer_counts", "water_production_summary", "all_debt_schedules", "assets_summary",
    "capital_projects", "data_quality_summary", "table_inventory",
)

ROCKFORD_TABLES = (
    "history_register_data_2024", "history_register_data_2025", "rockford_hrd", "rate_schedule_history",
    "fye_2024_water_class_summary", "fye_2025_water_class_summary",
    "fye_2024_sewer_class_summary", "fye_2025_sewer_class_summary",
    "fye_2024_water_meter_summary", "fye_2025_water_meter_summary",
    "fye_2024_sewer_meter_summary", "fye_2025_sewer_meter_summary",
    "fye_2024_water_expanded_meter_summary", "fye_2025_water_expanded_meter_summary",
    "fye_2024_sewer_expanded_meter_summary", "fye_2025_sewer_expanded_meter_summary",
    "water_users", "sewer_users", "other_users",
    "water_only_users", "sewer_only_users", "other_only_users", "service_exclusive_users_summary",
)


@pytest.mark.parametrize(
    "database, expected",
    [
        (LogicalDatabase.HOLLY, HOLLY_TABLES),
        (LogicalDatabase.ROCKFORD, ROCKFORD_TABLES),
        (LogicalDatabase.HISTORICAL, ("historical_budget_data",)),
    ],
)
def test_every_known_table_is_described(database: LogicalDatabase, expected: tuple[str, ...]) -> None:
    meta = dictionary.database_metadata(database)

    assert meta is not None
    assert set(meta.tables) == set(expected)
    assert all(meta.tables[name].description for name in expected)


def test_table_groups_reference_described_tables() -> None:
    holly = dictionary.database_metadata(LogicalDatabase.HOLLY)
    assert holly is not None

    grouped = {name for group in holly.table_groups.values() for name in group.tables}
    assert grouped <= set(holly.tables)
    assert "Customer Analysis" in holly.table_groups


def test_view_columns_are_described() -> None:
    column = dictionary.column_metadata(LogicalDatabase.HOLLY, "revenue_by_jurisdiction", "jurisdiction")
    assert column is not None
    assert column.description == "'Village' or 'Township'"

    code = dictionary.column_metadata(LogicalDatabase.ROCKFORD, "rate_schedule_history", "rate_code")
    assert code is not None
    assert '5/8-3/4"' in code.description
