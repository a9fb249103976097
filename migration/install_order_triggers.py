"""
Install order totals triggers (SQLite)
- order_details.line_total = ROUND(quantity * unit_price, 2) on insert and on
  quantity/unit_price updates
- orders.total_amount = sum of the order's line totals after any detail
  insert, update or delete

The application maintains both values itself; the triggers keep them correct
for rows written outside the application.

Usage:
  python -m migration.install_order_triggers --db path/to/storefront.db
"""
import argparse
import os
import sqlite3
from contextlib import closing

_ORDER_TOTAL = (
    "UPDATE orders SET total_amount = "
    "(SELECT COALESCE(SUM(line_total), 0) FROM order_details WHERE order_id = {ref}.order_id) "
    "WHERE id = {ref}.order_id;"
)

TRIGGERS = {
    "calculate_line_total_on_insert": (
        "CREATE TRIGGER IF NOT EXISTS calculate_line_total_on_insert "
        "AFTER INSERT ON order_details FOR EACH ROW BEGIN "
        "UPDATE order_details SET line_total = ROUND(NEW.quantity * NEW.unit_price, 2) WHERE id = NEW.id; "
        "END"
    ),
    "calculate_line_total_on_update": (
        "CREATE TRIGGER IF NOT EXISTS calculate_line_total_on_update "
        "AFTER UPDATE OF quantity, unit_price ON order_details FOR EACH ROW BEGIN "
        "UPDATE order_details SET line_total = ROUND(NEW.quantity * NEW.unit_price, 2) WHERE id = NEW.id; "
        "END"
    ),
    "update_order_total_on_insert": (
        "CREATE TRIGGER IF NOT EXISTS update_order_total_on_insert "
        "AFTER INSERT ON order_details FOR EACH ROW BEGIN " + _ORDER_TOTAL.format(ref="NEW") + " END"
    ),
    "update_order_total_on_update": (
        "CREATE TRIGGER IF NOT EXISTS update_order_total_on_update "
        "AFTER UPDATE OF line_total, order_id ON order_details FOR EACH ROW BEGIN "
        + _ORDER_TOTAL.format(ref="OLD")
        + " "
        + _ORDER_TOTAL.format(ref="NEW")
        + " END"
    ),
    "update_order_total_on_delete": (
        "CREATE TRIGGER IF NOT EXISTS update_order_total_on_delete "
        "AFTER DELETE ON order_details FOR EACH ROW BEGIN " + _ORDER_TOTAL.format(ref="OLD") + " END"
    ),
}


def triggers_installed(conn: sqlite3.Connection) -> bool:
    cur = conn.execute("SELECT name FROM sqlite_master WHERE type='trigger'")
    names = {row[0] for row in cur.fetchall()}
    return set(TRIGGERS) <= names


def install_triggers(db_path: str):
    if db_path == ":memory:":
        raise ValueError("Use a file-backed DB for migration script")

    if not os.path.exists(db_path):
        raise FileNotFoundError(db_path)

    with closing(sqlite3.connect(db_path)) as conn:
        conn.execute("PRAGMA foreign_keys=ON")

        tables = {r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
        missing = {"orders", "order_details"} - tables
        if missing:
            raise RuntimeError(f"tables missing; cannot migrate: {sorted(missing)}")

        for ddl in TRIGGERS.values():
            conn.execute(ddl)
        conn.commit()


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--db", required=True, help="Path to SQLite database file")
    args = parser.parse_args()
    install_triggers(args.db)

if __name__ == "__main__":
    main()
