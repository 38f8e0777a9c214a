"""
Scenario ledger for the warehouse planner.

Each floor scenario, pricing run and invoice batch is written to SQLite in the
following tables:
    - projects
    - elements
    - quantities
    - unit_rates
    - price_items
    - invoices
    - diagnostics

Rows are append-only within a project; `fetch_dataframe` hands any table to
pandas for reporting.
"""

from __future__ import annotations

import enum
import json
import os
import sqlite3
import uuid
from dataclasses import asdict, dataclass, is_dataclass
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional

import pandas as pd


DB_PATH_ENV = "WAREHOUSE_PLANNER_DB_PATH"

TABLES = (
    "projects",
    "elements",
    "quantities",
    "unit_rates",
    "price_items",
    "invoices",
    "diagnostics",
)


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0, tzinfo=None).isoformat() + "Z"


def _to_json(value: Any) -> str:
    if value is None:
        return "{}"
    if isinstance(value, str):
        return value
    def _default(o: Any):
        if isinstance(o, enum.Enum):
            return o.value
        if isinstance(o, (date, datetime)):
            return o.isoformat()
        if is_dataclass(o):
            return asdict(o)
        if hasattr(o, "to_dict") and callable(getattr(o, "to_dict")):
            return o.to_dict()
        if hasattr(o, "__dict__"):
            return {k: v for k, v in o.__dict__.items() if not k.startswith("_")}
        return str(o)
    return json.dumps(value, default=_default, separators=(",", ":"), sort_keys=True)


@dataclass
class ProjectRecord:
    project_id: str
    created_at: str
    inputs: Dict[str, Any]


class DataTables:
    """
    SQLite connection holding the planner tables for one or more projects.

    Uses an in-memory database by default. Set `db_path` (or the
    WAREHOUSE_PLANNER_DB_PATH environment variable) to persist tables locally.
    """

    def __init__(self, db_path: Optional[str] = None):
        db_path = db_path or os.environ.get(DB_PATH_ENV)
        self.conn = sqlite3.connect(db_path or ":memory:")
        self.conn.row_factory = sqlite3.Row
        self._initialize_schema()

    # --------------------------------------------------------------------- schema
    def _initialize_schema(self) -> None:
        cur = self.conn.cursor()
        cur.executescript(
            """
            PRAGMA foreign_keys = ON;

            CREATE TABLE IF NOT EXISTS projects (
                project_id TEXT PRIMARY KEY,
                created_at TEXT NOT NULL,
                inputs_json TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS elements (
                element_id TEXT PRIMARY KEY,
                project_id TEXT NOT NULL REFERENCES projects(project_id) ON DELETE CASCADE,
                element_type TEXT NOT NULL,
                name TEXT,
                floor_level INTEGER,
                parent_element_id TEXT REFERENCES elements(element_id),
                metadata_json TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS quantities (
                quantity_id TEXT PRIMARY KEY,
                project_id TEXT NOT NULL REFERENCES projects(project_id) ON DELETE CASCADE,
                element_id TEXT NOT NULL REFERENCES elements(element_id) ON DELETE CASCADE,
                measure TEXT NOT NULL,
                value REAL NOT NULL,
                unit TEXT NOT NULL,
                source_pass TEXT NOT NULL,
                notes TEXT
            );

            CREATE TABLE IF NOT EXISTS unit_rates (
                rate_key TEXT PRIMARY KEY,
                description TEXT NOT NULL,
                unit TEXT NOT NULL,
                category TEXT NOT NULL,
                value REAL NOT NULL,
                source TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS price_items (
                price_item_id TEXT PRIMARY KEY,
                project_id TEXT NOT NULL REFERENCES projects(project_id) ON DELETE CASCADE,
                element_id TEXT REFERENCES elements(element_id),
                rate_key TEXT,
                category TEXT NOT NULL,
                description TEXT NOT NULL,
                unit TEXT NOT NULL,
                quantity REAL NOT NULL,
                unit_price REAL NOT NULL,
                total REAL NOT NULL,
                source_pass TEXT NOT NULL,
                notes TEXT
            );

            CREATE TABLE IF NOT EXISTS invoices (
                invoice_id TEXT PRIMARY KEY,
                project_id TEXT REFERENCES projects(project_id) ON DELETE CASCADE,
                booking_id TEXT,
                customer_id TEXT NOT NULL,
                customer_name TEXT NOT NULL,
                invoice_type TEXT NOT NULL,
                status TEXT NOT NULL,
                subtotal REAL NOT NULL,
                tax REAL NOT NULL,
                total REAL NOT NULL,
                due_date TEXT NOT NULL,
                created_at TEXT NOT NULL,
                items_json TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS diagnostics (
                diagnostic_id TEXT PRIMARY KEY,
                project_id TEXT NOT NULL REFERENCES projects(project_id) ON DELETE CASCADE,
                scope TEXT NOT NULL,
                level TEXT NOT NULL,
                message TEXT NOT NULL,
                detail_json TEXT NOT NULL
            );
            """
        )
        self.conn.commit()

    # --------------------------------------------------------------------- helpers
    def reset_project(self, project_id: str) -> None:
        cur = self.conn.cursor()
        cur.execute("DELETE FROM projects WHERE project_id = ?", (project_id,))
        self.conn.commit()

    def create_project(self, inputs: Dict[str, Any]) -> ProjectRecord:
        project_id = inputs.get("project_id") or str(uuid.uuid4())
        created_at = _utcnow_iso()
        payload = _to_json(inputs)
        cur = self.conn.cursor()
        cur.execute(
            "INSERT INTO projects (project_id, created_at, inputs_json) VALUES (?, ?, ?)",
            (project_id, created_at, payload),
        )
        self.conn.commit()
        return ProjectRecord(project_id=project_id, created_at=created_at, inputs=inputs)

    def add_element(
        self,
        project_id: str,
        element_type: str,
        name: Optional[str] = None,
        *,
        floor_level: Optional[int] = None,
        parent_element_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> str:
        element_id = str(uuid.uuid4())
        cur = self.conn.cursor()
        cur.execute(
            """
            INSERT INTO elements (
                element_id, project_id, element_type, name,
                floor_level, parent_element_id, metadata_json
            )
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                element_id,
                project_id,
                element_type,
                name,
                floor_level,
                parent_element_id,
                _to_json(metadata),
            ),
        )
        self.conn.commit()
        return element_id

    def add_quantity(
        self,
        project_id: str,
        element_id: str,
        measure: str,
        value: float,
        unit: str,
        *,
        source_pass: str,
        notes: Optional[str] = None,
    ) -> str:
        quantity_id = str(uuid.uuid4())
        cur = self.conn.cursor()
        cur.execute(
            """
            INSERT INTO quantities (
                quantity_id, project_id, element_id,
                measure, value, unit, source_pass, notes
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                quantity_id,
                project_id,
                element_id,
                measure,
                value,
                unit,
                source_pass,
                notes,
            ),
        )
        self.conn.commit()
        return quantity_id

    def ensure_unit_rates(self, rate_tables: Dict[str, Any]) -> None:
        """
        Populate unit_rates table from the JSON rate tables.

        Flattens the nested structure into dotted keys; list sections such as
        volume_discounts are keyed by their threshold.
        """
        cur = self.conn.cursor()
        cur.execute("DELETE FROM unit_rates")

        def infer_unit(key: str) -> str:
            if key.endswith("_per_month"):
                return "PER_PALLET_MONTH"
            if key.endswith("_per_year"):
                return "PER_SQ_FT_YEAR"
            if key.endswith("_sq_ft"):
                return "SQ_FT"
            if key.endswith("_percent") or key.endswith("_rate"):
                return "FACTOR"
            if key.endswith("_days"):
                return "DAYS"
            if key.startswith("pallet_"):
                return "PER_PALLET"
            return "USD"

        def add_rate(rate_key: str, category: str, key: str, value: Any, source: str) -> None:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                return
            cur.execute(
                """
                INSERT OR REPLACE INTO unit_rates (
                    rate_key, description, unit, category, value, source
                )
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    rate_key,
                    key.replace("_", " ").title(),
                    infer_unit(key),
                    category,
                    float(value),
                    source,
                ),
            )

        for category, section in rate_tables.items():
            if isinstance(section, dict):
                for key, value in section.items():
                    add_rate(f"{category}.{key}", category, key, value, category)
            elif isinstance(section, list):
                for entry in section:
                    if not isinstance(entry, dict) or "pallet_threshold" not in entry:
                        continue
                    threshold = int(entry["pallet_threshold"])
                    add_rate(
                        f"{category}.{threshold}",
                        category,
                        "discount_percent",
                        entry.get("discount_percent", 0),
                        f"{category}[pallet_threshold={threshold}]",
                    )

        self.conn.commit()

    def add_price_item(
        self,
        project_id: str,
        *,
        element_id: Optional[str],
        rate_key: Optional[str],
        category: str,
        description: str,
        unit: str,
        quantity: float,
        unit_price: float,
        total: float,
        source_pass: str,
        notes: Optional[str] = None,
    ) -> str:
        price_item_id = str(uuid.uuid4())
        cur = self.conn.cursor()
        cur.execute(
            """
            INSERT INTO price_items (
                price_item_id, project_id, element_id, rate_key,
                category, description, unit, quantity, unit_price, total,
                source_pass, notes
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                price_item_id,
                project_id,
                element_id,
                rate_key,
                category,
                description,
                unit,
                quantity,
                unit_price,
                total,
                source_pass,
                notes,
            ),
        )
        self.conn.commit()
        return price_item_id

    def add_invoice(self, invoice: Any, *, project_id: Optional[str] = None) -> str:
        cur = self.conn.cursor()
        cur.execute(
            """
            INSERT INTO invoices (
                invoice_id, project_id, booking_id, customer_id, customer_name,
                invoice_type, status, subtotal, tax, total, due_date,
                created_at, items_json
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                invoice.invoice_id,
                project_id,
                invoice.booking_id,
                invoice.customer_id,
                invoice.customer_name,
                invoice.invoice_type.value,
                invoice.status.value,
                invoice.subtotal,
                invoice.tax,
                invoice.total,
                invoice.due_date.isoformat(),
                invoice.created_at.isoformat(),
                json.dumps([asdict(item) for item in invoice.items], separators=(",", ":")),
            ),
        )
        self.conn.commit()
        return invoice.invoice_id

    def add_diagnostic(
        self,
        project_id: str,
        *,
        scope: str,
        level: str,
        message: str,
        detail: Optional[Dict[str, Any]] = None,
    ) -> str:
        diagnostic_id = str(uuid.uuid4())
        cur = self.conn.cursor()
        cur.execute(
            """
            INSERT INTO diagnostics (
                diagnostic_id, project_id, scope, level, message, detail_json
            )
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                diagnostic_id,
                project_id,
                scope,
                level,
                message,
                _to_json(detail or {}),
            ),
        )
        self.conn.commit()
        return diagnostic_id

    # --------------------------------------------------------------------- fetch
    def fetch_dataframe(self, table: str) -> pd.DataFrame:
        if table not in TABLES:
            raise KeyError(f"Unknown table '{table}'")
        return pd.read_sql_query(f"SELECT * FROM {table}", self.conn)

    def close(self) -> None:
        self.conn.close()
