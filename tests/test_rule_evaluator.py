from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import pytest

from vendor_crm.models.auto_approval_rule import AutoApprovalRule
from vendor_crm.services.rule_evaluator import (
    REASON_NO_ACTIVE_RULES,
    REASON_NO_MATCH,
    DeliveryRequest,
    evaluate,
    local_clock,
    rule_matches,
)
from vendor_crm.services.rule_variants import (
    AmountRange,
    AmountRule,
    CombinedRule,
    CustomerRule,
    ProductRule,
    TimeRule,
    TimeWindow,
    to_typed_rule,
)

# 2026-10-19 is a Monday.
MONDAY = datetime(2026, 10, 19, 10, 0)
TUESDAY = datetime(2026, 10, 20, 10, 0)

OFFICE_HOURS = TimeWindow(allowed_days=frozenset({"MON"}), start_time="09:00", end_time="17:00")


def _zone_available(name: str) -> bool:
    try:
        ZoneInfo(name)
    except ZoneInfoNotFoundError:
        return False
    return True


def _request(phone="+15550001", products=(), amount=50.0, when=MONDAY) -> DeliveryRequest:
    return DeliveryRequest(customer_phone=phone, product_ids=tuple(products), total_amount=amount, request_time=when)


def _customer(phones=("+15550001",), priority=1, name="VIP") -> CustomerRule:
    return CustomerRule(id=f"c-{name}", name=name, priority=priority, customer_phones=frozenset(phones))


def _amount(lo=None, hi=None, priority=1, name="Range") -> AmountRule:
    return AmountRule(id=f"a-{name}", name=name, priority=priority, amount=AmountRange(lo, hi))


def test_no_rules_reports_no_active_rules():
    result = evaluate([], _request())
    assert result.should_auto_approve is False
    assert result.matched_rule is None
    assert result.reason == REASON_NO_ACTIVE_RULES


def test_first_rule_in_priority_order_wins():
    vip = _customer(priority=1, name="VIP")
    anything = _amount(priority=2, name="Any amount")
    result = evaluate([vip, anything], _request(amount=10))
    assert result.should_auto_approve is True
    assert result.matched_rule is vip
    assert result.reason == "Matched rule: VIP"


def test_falls_through_to_later_rule():
    vip = _customer(priority=1, name="VIP")
    anything = _amount(priority=2, name="Any amount")
    result = evaluate([vip, anything], _request(phone="+15559999"))
    assert result.matched_rule is anything


def test_no_match_reason():
    result = evaluate([_customer()], _request(phone="+15559999"))
    assert result.should_auto_approve is False
    assert result.matched_rule is None
    assert result.reason == REASON_NO_MATCH


def test_product_rule_matches_any_requested_product():
    rule = ProductRule(id="p", name="Staples", priority=1, product_ids=frozenset({"rice", "oil"}))
    assert evaluate([rule], _request(products=["sugar", "oil"])).should_auto_approve
    assert not evaluate([rule], _request(products=["sugar"])).should_auto_approve
    assert not evaluate([rule], _request(products=[])).should_auto_approve


@pytest.mark.parametrize(
    "amount,expected",
    [(100, True), (150, True), (200, True), (99.99, False), (200.01, False)],
)
def test_amount_bounds_are_inclusive(amount, expected):
    rule = _amount(100, 200)
    assert evaluate([rule], _request(amount=amount)).should_auto_approve is expected


def test_amount_open_bounds():
    assert evaluate([_amount(lo=100)], _request(amount=10_000)).should_auto_approve
    assert not evaluate([_amount(lo=100)], _request(amount=99)).should_auto_approve
    assert evaluate([_amount(hi=50)], _request(amount=0)).should_auto_approve
    # Neither bound set accepts any amount.
    assert evaluate([_amount()], _request(amount=123456)).should_auto_approve


def test_zero_is_a_real_bound():
    assert not evaluate([_amount(hi=0)], _request(amount=0.01)).should_auto_approve
    assert evaluate([_amount(lo=0, hi=0)], _request(amount=0)).should_auto_approve


@pytest.mark.parametrize(
    "when,expected",
    [
        (MONDAY.replace(hour=9, minute=0), True),
        (MONDAY.replace(hour=17, minute=0), True),
        (MONDAY.replace(hour=8, minute=59), False),
        (MONDAY.replace(hour=17, minute=1), False),
        (TUESDAY, False),
    ],
)
def test_time_window(when, expected):
    rule = TimeRule(id="t", name="Office hours", priority=1, window=OFFICE_HOURS)
    assert evaluate([rule], _request(when=when)).should_auto_approve is expected


def test_time_rule_without_window_never_matches():
    rule = TimeRule(id="t", name="Broken", priority=1, window=None)
    assert not evaluate([rule], _request()).should_auto_approve


def test_overnight_window_does_not_match():
    overnight = TimeWindow(allowed_days=frozenset({"MON"}), start_time="22:00", end_time="06:00")
    rule = TimeRule(id="t", name="Night", priority=1, window=overnight)
    assert not evaluate([rule], _request(when=MONDAY.replace(hour=23))).should_auto_approve
    assert not evaluate([rule], _request(when=MONDAY.replace(hour=2))).should_auto_approve


def test_combined_with_only_phones_behaves_like_customer():
    combined = CombinedRule(id="x", name="Combo", priority=1, customer_phones=frozenset({"+15550001"}))
    customer = _customer()
    for phone in ("+15550001", "+15559999"):
        req = _request(phone=phone)
        assert (
            evaluate([combined], req).should_auto_approve
            == evaluate([customer], req).should_auto_approve
        )


def test_combined_requires_every_present_group():
    combined = CombinedRule(
        id="x",
        name="VIP big orders",
        priority=1,
        customer_phones=frozenset({"+15550001"}),
        amount=AmountRange(min_amount=500),
    )
    assert evaluate([combined], _request(amount=600)).should_auto_approve
    assert not evaluate([combined], _request(amount=100)).should_auto_approve
    assert not evaluate([combined], _request(phone="+15559999", amount=600)).should_auto_approve


def test_combined_with_window_and_products():
    combined = CombinedRule(
        id="x",
        name="Office staples",
        priority=1,
        product_ids=frozenset({"rice"}),
        window=OFFICE_HOURS,
    )
    assert evaluate([combined], _request(products=["rice"])).should_auto_approve
    assert not evaluate([combined], _request(products=["rice"], when=TUESDAY)).should_auto_approve


def test_combined_without_conditions_never_matches():
    empty = CombinedRule(id="x", name="Empty", priority=1)
    assert not evaluate([empty], _request()).should_auto_approve


def test_evaluate_is_idempotent():
    rules = [_customer(priority=1), _amount(100, 200, priority=2)]
    req = _request(phone="+15559999", amount=150)
    first = evaluate(rules, req)
    second = evaluate(rules, req)
    assert first == second


def test_unknown_variant_raises():
    with pytest.raises(TypeError):
        rule_matches(object(), _request(), "MON", "10:00")


def test_local_clock_naive_is_taken_as_local():
    assert local_clock(datetime(2026, 10, 19, 8, 5), "UTC") == ("MON", "08:05")
    assert local_clock(datetime(2026, 10, 25, 23, 59)) == ("SUN", "23:59")


def test_local_clock_converts_aware_times():
    aware = datetime(2026, 10, 19, 23, 30, tzinfo=timezone(timedelta(hours=-2)))
    # 23:30 at UTC-2 is 01:30 Tuesday in UTC.
    assert local_clock(aware, "UTC") == ("TUE", "01:30")


@pytest.mark.skipif(not _zone_available("Asia/Kolkata"), reason="tz database not installed")
def test_local_clock_uses_tenant_zone():
    aware = datetime(2026, 10, 19, 3, 30, tzinfo=timezone.utc)
    assert local_clock(aware, "Asia/Kolkata") == ("MON", "09:00")


def test_local_clock_unknown_zone_falls_back_to_utc(caplog):
    aware = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
    assert local_clock(aware, "Not/AZone") == ("MON", "12:00")
    assert any("Unknown timezone" in rec.message for rec in caplog.records)


@pytest.mark.parametrize("name", ["America", "Europe/", "../etc"])
def test_local_clock_zone_directory_falls_back_to_utc(name):
    aware = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
    assert local_clock(aware, name) == ("MON", "12:00")


def test_to_typed_rule_keeps_only_variant_fields():
    row = AutoApprovalRule(
        id="r1",
        client_profile_id="t1",
        name="Combo",
        rule_type="COMBINED",
        customer_phones=["+15550001"],
        product_ids=[],
        min_amount=0.0,
        allowed_days=["MON"],
        start_time="09:00",
    )
    typed = to_typed_rule(row)
    assert isinstance(typed, CombinedRule)
    assert typed.customer_phones == frozenset({"+15550001"})
    assert typed.product_ids is None
    assert typed.amount == AmountRange(min_amount=0.0, max_amount=None)
    # No end time: the window group is absent.
    assert typed.window is None


def test_to_typed_rule_time_and_unknown():
    row = AutoApprovalRule(
        id="r2",
        client_profile_id="t1",
        name="Office",
        rule_type="TIME",
        allowed_days=["MON", "TUE"],
        start_time="09:00",
        end_time="17:00",
    )
    typed = to_typed_rule(row)
    assert isinstance(typed, TimeRule)
    assert typed.window == TimeWindow(frozenset({"MON", "TUE"}), "09:00", "17:00")

    bogus = AutoApprovalRule(id="r3", client_profile_id="t1", name="?", rule_type="WEATHER")
    with pytest.raises(ValueError):
        to_typed_rule(bogus)
