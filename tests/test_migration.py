import sqlite3
from contextlib import closing

import pytest
from sqlalchemy import create_engine

from migration.install_order_triggers import install_triggers, triggers_installed
from storefront.db import Base

NOW = "2024-01-01 00:00:00"


def create_db(path: str):
    engine = create_engine(f"sqlite:///{path}", future=True)
    Base.metadata.create_all(bind=engine)
    engine.dispose()
    with closing(sqlite3.connect(path)) as conn:
        conn.execute(
            "INSERT INTO users (first_name, last_name, created_at, updated_at) VALUES ('Alice', 'Smith', ?, ?)",
            (NOW, NOW),
        )
        conn.execute(
            "INSERT INTO products (name, price, quantity, created_at, updated_at) VALUES ('Pen', 10.5, 50, ?, ?), ('Pad', 1.25, 50, ?, ?)",
            (NOW, NOW, NOW, NOW),
        )
        conn.execute(
            "INSERT INTO orders (user_id, status, total_amount, created_at, updated_at) VALUES (1, 'pending', 0, ?, ?)",
            (NOW, NOW),
        )
        conn.commit()


def _order_total(conn):
    return conn.execute("SELECT total_amount FROM orders WHERE id = 1").fetchone()[0]


def test_triggers_maintain_totals(tmp_path):
    db_path = str(tmp_path / "storefront.db")
    create_db(db_path)

    install_triggers(db_path)
    # running it again is harmless
    install_triggers(db_path)

    with closing(sqlite3.connect(db_path)) as conn:
        assert triggers_installed(conn)

        conn.execute(
            "INSERT INTO order_details (order_id, product_id, quantity, unit_price, created_at, updated_at) VALUES (1, 1, 2, 10.5, ?, ?)",
            (NOW, NOW),
        )
        conn.execute(
            "INSERT INTO order_details (order_id, product_id, quantity, unit_price, created_at, updated_at) VALUES (1, 2, 3, 1.25, ?, ?)",
            (NOW, NOW),
        )
        rows = conn.execute("SELECT line_total FROM order_details ORDER BY id").fetchall()
        assert [r[0] for r in rows] == pytest.approx([21.0, 3.75])
        assert _order_total(conn) == pytest.approx(24.75)

        conn.execute("UPDATE order_details SET quantity = 1 WHERE id = 1")
        assert _order_total(conn) == pytest.approx(14.25)

        conn.execute("DELETE FROM order_details WHERE id = 2")
        assert _order_total(conn) == pytest.approx(10.5)

        conn.execute("DELETE FROM order_details WHERE id = 1")
        assert _order_total(conn) == 0


def test_fresh_db_has_no_triggers(tmp_path):
    db_path = str(tmp_path / "storefront.db")
    create_db(db_path)
    with closing(sqlite3.connect(db_path)) as conn:
        assert not triggers_installed(conn)


def test_install_rejects_bad_targets(tmp_path):
    with pytest.raises(ValueError):
        install_triggers(":memory:")
    with pytest.raises(FileNotFoundError):
        install_triggers(str(tmp_path / "missing.db"))

    empty = str(tmp_path / "empty.db")
    with closing(sqlite3.connect(empty)) as conn:
        conn.execute("CREATE TABLE notes (id INTEGER PRIMARY KEY)")
        conn.commit()
    with pytest.raises(RuntimeError):
        install_triggers(empty)
