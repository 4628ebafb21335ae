import random

import pytest

from src.domain.models import Order
from src.investor.core import InvestorView
from src.investor.policy import CANCEL, PLACE, REPRICE, RandomPolicy


def _view(orders=(), credit=0, inventory=0, lowest=0, highest=0, latest=0):
    return InvestorView(
        open_orders=tuple(orders),
        available_credit=credit,
        available_inventory=inventory,
        lowest_sell_price=lowest,
        highest_buy_price=highest,
        latest_trade_price=latest,
    )


def _order(order_id, order_type, price, amount=1):
    return Order(id=order_id, type=order_type, amount=amount, price=price)


@pytest.fixture
def policy():
    return RandomPolicy(unit_amount=5, unit_price=100, order_cap=3)


@pytest.fixture
def rng():
    return random.Random(42)


def test_initial_order_is_sell_when_holding_more_than_a_unit(policy, rng):
    for credit in (0, 10_000):
        d = policy.decide(_view(credit=credit, inventory=6), rng)
        assert d.kind == PLACE
        assert (d.order_type, d.amount, d.price) == ("sell", 5, 100)


def test_initial_order_is_buy_otherwise(policy, rng):
    d = policy.decide(_view(credit=10_000, inventory=5), rng)
    assert (d.kind, d.order_type, d.amount, d.price) == (PLACE, "buy", 5, 100)


def test_cancels_least_competitive_order_at_cap(policy, rng):
    orders = [
        _order(1, "sell", 120),  # 120 - 100 = 20
        _order(2, "buy", 80),  # 110 - 80 = 30
        _order(3, "sell", 105),  # 5
    ]
    d = policy.decide(_view(orders, credit=10_000, inventory=50, lowest=110, highest=100), rng)
    assert d.kind == CANCEL
    assert d.order.id == 2


def test_cancel_tie_breaks_on_first_order(policy, rng):
    orders = [_order(1, "sell", 120), _order(2, "sell", 120), _order(3, "sell", 101)]
    d = policy.decide(_view(orders, highest=100), rng)
    assert d.kind == CANCEL
    assert d.order.id == 1


def test_buys_at_best_ask_below_reference(policy, rng):
    orders = [_order(1, "sell", 130)]
    for _ in range(20):
        d = policy.decide(_view(orders, credit=1000, lowest=90), rng)
        assert (d.kind, d.order_type, d.price) == (PLACE, "buy", 90)
        assert 1 <= d.amount <= 5


def test_buy_amount_is_bounded_by_affordable_quantity(policy, rng):
    orders = [_order(1, "sell", 130)]
    for _ in range(20):
        d = policy.decide(_view(orders, credit=180, lowest=90), rng)
        assert d.order_type == "buy"
        assert 1 <= d.amount <= 2


def test_unaffordable_ask_is_skipped(policy, rng):
    orders = [_order(1, "sell", 130)]
    d = policy.decide(_view(orders, credit=50, lowest=90, latest=0), rng)
    assert d is None


def test_sells_at_best_bid_above_reference(policy, rng):
    orders = [_order(1, "buy", 70)]
    for _ in range(20):
        d = policy.decide(_view(orders, inventory=3, highest=120), rng)
        assert (d.kind, d.order_type, d.price) == (PLACE, "sell", 120)
        assert 1 <= d.amount <= 3


def test_concedes_sell_price_when_holding_inventory(policy, rng):
    orders = [_order(1, "sell", 130)]
    d = policy.decide(_view(orders, inventory=10, lowest=120), rng)
    assert (d.order_type, d.price) == ("sell", 110)
    assert 1 <= d.amount <= 5

    d = policy.decide(_view(orders, inventory=10, lowest=0), rng)
    assert (d.order_type, d.price) == ("sell", 100)


def test_concedes_buy_price_when_holding_credit(policy, rng):
    orders = [_order(1, "buy", 60)]
    d = policy.decide(_view(orders, credit=1000, highest=80), rng)
    assert (d.order_type, d.price) == ("buy", 90)
    assert 1 <= d.amount <= 5

    d = policy.decide(_view(orders, credit=1000, highest=0), rng)
    assert (d.order_type, d.price) == ("buy", 100)


def test_reprices_towards_latest_trade_when_nothing_to_do(policy, rng):
    orders = [_order(1, "buy", 60)]
    d = policy.decide(_view(orders, latest=80), rng)
    assert d.kind == REPRICE
    assert d.price == 90


def test_no_decision_without_trade_history(policy, rng):
    orders = [_order(1, "buy", 60)]
    assert policy.decide(_view(orders), rng) is None


def test_decision_kinds_carry_their_payload(policy):
    gen = random.Random(3)
    seen = set()
    for _ in range(300):
        orders = [
            _order(i, gen.choice(["buy", "sell"]), gen.randint(50, 150)) for i in range(gen.randint(0, 4))
        ]
        view = _view(
            orders,
            credit=gen.choice([0, 100, 10_000]),
            inventory=gen.choice([0, 3, 10]),
            lowest=gen.choice([0, 90, 120]),
            highest=gen.choice([0, 80, 110]),
            latest=gen.choice([0, 95]),
        )
        d = policy.decide(view, gen)
        if d is None:
            seen.add(None)
            continue
        seen.add(d.kind)
        assert d.kind in (CANCEL, PLACE, REPRICE)
        if d.kind == PLACE:
            assert d.order_type in ("buy", "sell")
            assert d.amount >= 1 and d.price > 0
        elif d.kind == CANCEL:
            assert d.order in orders
        else:
            assert d.order_type is None and d.price > 0
    assert {CANCEL, PLACE, REPRICE} <= seen


def test_policy_rejects_invalid_parameters():
    with pytest.raises(ValueError, match=r"unit_amount"):
        RandomPolicy(unit_amount=0, unit_price=100)
    with pytest.raises(ValueError, match=r"order_cap"):
        RandomPolicy(unit_amount=1, unit_price=100, order_cap=0)
