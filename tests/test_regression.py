from decimal import Decimal

from storefront import orders, schemas, totals


def test_line_total_rounding_regression():
    # Guard against regressions: 2-decimal rounding half up
    assert totals.line_total(1, Decimal("2.675")) == Decimal("2.68")
    assert totals.line_total(3, Decimal("0.335")) == Decimal("1.01")
    assert str(totals.line_total(2, Decimal("0.125"))) == "0.25"


def test_order_total_is_sum_of_line_totals(db_session, make_user, make_product):
    user = make_user()
    pen = make_product(name="Pen", price="19.99", quantity=10)
    pad = make_product(name="Pad", price="0.10", quantity=10)
    created = orders.create_order(
        db_session,
        schemas.OrderCreate(
            user_id=user.id,
            items=[{"product_id": pen.id, "quantity": 3}, {"product_id": pad.id, "quantity": 7}],
        ),
    )
    assert [i.line_total for i in created.items] == [Decimal("59.97"), Decimal("0.70")]
    assert created.total_amount == Decimal("60.67")
