import pytest

from warehouse_planner.data_tables import DB_PATH_ENV, TABLES, DataTables


def test_schema_tables_are_fetchable():
    store = DataTables()
    for table in TABLES:
        assert store.fetch_dataframe(table).empty
    store.close()


def test_unknown_table_rejected():
    with pytest.raises(KeyError):
        DataTables().fetch_dataframe("cost_items")


def test_elements_and_quantities_roundtrip():
    store = DataTables()
    project = store.create_project({"project_id": "p-1", "length_m": 50})
    assert project.project_id == "p-1"

    floor_id = store.add_element("p-1", "floor", name="Floor 1", floor_level=1, metadata={"height_m": 10})
    store.add_quantity("p-1", floor_id, "usable_area", 1421.0, "M2", source_pass="geometry")

    elements = store.fetch_dataframe("elements")
    assert elements.loc[0, "floor_level"] == 1
    assert elements.loc[0, "metadata_json"] == '{"height_m":10}'
    quantities = store.fetch_dataframe("quantities")
    assert quantities.loc[0, "value"] == 1421.0


def test_reset_project_cascades():
    store = DataTables()
    store.create_project({"project_id": "p-2"})
    element_id = store.add_element("p-2", "floor")
    store.add_quantity("p-2", element_id, "gross_area", 1500.0, "M2", source_pass="geometry")
    store.reset_project("p-2")
    assert store.fetch_dataframe("elements").empty
    assert store.fetch_dataframe("quantities").empty


def test_unit_rates_flattened(rate_tables):
    store = DataTables()
    store.ensure_unit_rates(rate_tables)
    rates = store.fetch_dataframe("unit_rates").set_index("rate_key")
    assert rates.loc["pallet_services.storage_per_pallet_per_month", "value"] == 17.5
    assert rates.loc["pallet_services.storage_per_pallet_per_month", "unit"] == "PER_PALLET_MONTH"
    assert rates.loc["volume_discounts.100", "value"] == 15
    assert rates.loc["membership_discounts.gold", "value"] == 10


def test_db_path_from_environment(tmp_path, monkeypatch):
    path = tmp_path / "ledger.sqlite"
    monkeypatch.setenv(DB_PATH_ENV, str(path))
    store = DataTables()
    store.create_project({"project_id": "persisted"})
    store.close()

    reopened = DataTables(str(path))
    assert list(reopened.fetch_dataframe("projects")["project_id"]) == ["persisted"]
