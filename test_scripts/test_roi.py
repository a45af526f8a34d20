# test_scripts/test_roi.py

from __future__ import annotations

import pytest

from pmdash.errors import RoiInputError
from pmdash.schemas.roi import LineItem, RiskFactor, RiskMitigation, RoiCalculation
from pmdash.services.roi import (
    annualize_monthly_rate,
    apply_risk_factors,
    calculate_irr,
    calculate_mirr,
    calculate_monthly_projections,
    calculate_roi,
    calculate_total_benefits,
    calculate_total_costs,
    get_roi_category,
    line_item_month_amount,
    line_item_total,
    monthly_discount_rate,
    npv_at,
    run_monte_carlo_simulation,
)


def _calculation(**overrides) -> RoiCalculation:
    base = dict(
        name="Self-serve onboarding",
        initial_cost=10_000,
        recurring_costs=[LineItem(id="c1", description="Hosting", amount=500, months=12, is_recurring=True)],
        benefits=[LineItem(id="b1", description="Support savings", amount=2_000, months=12, is_recurring=True)],
        time_horizon=12,
        discount_rate=10,
    )
    base.update(overrides)
    return RoiCalculation(**base)


def test_totals_include_initial_cost_and_probability():
    calc = _calculation()
    assert calculate_total_costs(calc) == 16_000
    assert calculate_total_benefits(calc) == 24_000

    risky = LineItem(amount=100, months=12, is_recurring=True, probability=50)
    assert line_item_total(risky, is_benefit=True) == 600
    assert line_item_total(risky) == 1_200


def test_one_off_items_spread_over_window():
    item = LineItem(amount=1_200, start_month=2, months=3)
    amounts = [line_item_month_amount(item, m) for m in range(1, 6)]
    assert amounts == [0.0, 400.0, 400.0, 400.0, 0.0]


def test_projection_cumulative_equals_sum_of_net_flows():
    projections = calculate_monthly_projections(_calculation())
    assert len(projections) == 12
    assert projections[0].costs == 10_500
    assert projections[0].net_cash_flow == -8_500
    assert projections[-1].cumulative_cash_flow == sum(p.net_cash_flow for p in projections)
    assert projections[-1].cumulative_cash_flow == 8_000


def test_calculate_roi_metrics():
    result = calculate_roi(_calculation())
    metrics = result.metrics

    assert metrics.simple_roi == pytest.approx(50.0)
    assert 0 < metrics.npv < 8_000
    assert metrics.npv == pytest.approx(result.projections[-1].discounted_cumulative)
    assert metrics.payback_period == pytest.approx(6 + 1_000 / 1_500)
    assert metrics.paid_back is True
    assert metrics.discounted_payback_period > metrics.payback_period
    assert metrics.break_even_month == 7
    assert metrics.irr_status == "converged"
    assert metrics.irr is not None and metrics.irr > 0
    assert metrics.mirr is not None and 0 < metrics.mirr < metrics.irr
    assert metrics.pi == pytest.approx((metrics.npv + 10_000) / 10_000)
    assert metrics.eva == pytest.approx(metrics.npv - 1_000)


def test_npv_falls_as_discount_rate_rises():
    low = calculate_roi(_calculation(discount_rate=5)).metrics.npv
    high = calculate_roi(_calculation(discount_rate=25)).metrics.npv
    assert high < low


def test_never_paid_back_uses_sentinel_and_undefined_irr():
    calc = _calculation(benefits=[])
    metrics = calculate_roi(calc).metrics
    assert metrics.paid_back is False
    assert metrics.payback_period == 13
    assert metrics.break_even_month is None
    assert metrics.irr is None
    assert metrics.irr_status == "undefined"
    assert any("IRR is undefined" in w for w in metrics.warnings)
    assert any("not paid back within 12 months" in w for w in metrics.warnings)


def test_no_costs_reports_zero_roi_with_warning():
    calc = _calculation(initial_cost=0, recurring_costs=[])
    metrics = calculate_roi(calc).metrics
    assert metrics.simple_roi == 0.0
    assert metrics.pi is None
    assert any("No costs defined" in w for w in metrics.warnings)


def test_item_beyond_horizon_is_a_warning():
    calc = _calculation(
        recurring_costs=[LineItem(description="Late", amount=100, start_month=10, months=6, is_recurring=True)]
    )
    metrics = calculate_roi(calc).metrics
    assert any("extends beyond the time horizon" in w for w in metrics.warnings)


@pytest.mark.parametrize(
    "overrides",
    [
        {"initial_cost": -1},
        {"time_horizon": 0},
        {"benefits": [LineItem(description="Bad", amount=-5)]},
        {"benefits": [LineItem(description="Bad", amount=5, months=0)]},
        {"benefits": [LineItem(description="Bad", amount=5, probability=150)]},
    ],
)
def test_invalid_calculations_raise(overrides):
    with pytest.raises(RoiInputError):
        calculate_roi(_calculation(**overrides))


def test_rate_conversions_round_trip():
    assert annualize_monthly_rate(monthly_discount_rate(10)) == pytest.approx(0.10)
    assert monthly_discount_rate(0) == 0


def test_irr_simple_series():
    solution = calculate_irr([-1_000, 1_100])
    assert solution.status == "converged"
    assert solution.monthly_rate == pytest.approx(0.1, abs=1e-6)
    assert npv_at([-1_000, 1_100], solution.monthly_rate) == pytest.approx(0, abs=1e-3)


def test_irr_falls_back_when_newton_leaves_bracket():
    solution = calculate_irr([-1_000, 1_100], guess=9.9)
    assert solution.status == "converged"
    assert solution.monthly_rate == pytest.approx(0.1, abs=1e-6)


@pytest.mark.parametrize("flows", [[-100, -50], [100, 50], [0, 0]])
def test_irr_undefined_without_sign_change(flows):
    solution = calculate_irr(flows)
    assert solution.status == "undefined"
    assert solution.annual_pct is None


def test_mirr():
    assert calculate_mirr([-1_000, 1_100], 0.05) == pytest.approx(0.1)
    assert calculate_mirr([100, 100], 0.05) is None


def test_apply_risk_factors():
    calc = _calculation(
        recurring_costs=[LineItem(id="c1", amount=1_000, months=12, is_recurring=True)],
        benefits=[LineItem(id="b1", amount=1_000, months=12, is_recurring=True)],
    )
    risks = [
        RiskFactor(probability=0.5, impact=1.5, affected_items=["c1"]),
        RiskFactor(probability=0.5, impact=0.5, affected_items=["b1"]),
    ]
    adjusted = apply_risk_factors(calc, risks)
    assert adjusted.recurring_costs[0].amount == pytest.approx(1_250)
    assert adjusted.benefits[0].amount == pytest.approx(750)
    assert adjusted.risk_factors == []
    assert calc.recurring_costs[0].amount == 1_000


def test_mitigation_softens_risk():
    calc = _calculation(benefits=[LineItem(id="b1", amount=1_000, months=12, is_recurring=True)])
    risk = RiskFactor(
        probability=1.0, impact=0.5, affected_items=["b1"], mitigation=RiskMitigation(effectiveness=0.5)
    )
    adjusted = apply_risk_factors(calc, [risk])
    assert adjusted.benefits[0].amount == pytest.approx(750)


def test_calculate_roi_applies_attached_risks():
    plain = calculate_roi(_calculation()).metrics.npv
    risky = calculate_roi(
        _calculation(risk_factors=[RiskFactor(probability=1.0, impact=0.5, affected_items=["b1"])])
    ).metrics.npv
    assert risky < plain


@pytest.mark.parametrize(
    "roi,label",
    [(250, "Excellent"), (100, "Good"), (50, "Moderate"), (0, "Low"), (-5, "Negative")],
)
def test_roi_category(roi, label):
    assert get_roi_category(roi).label == label


def test_monte_carlo_is_seeded():
    calc = _calculation()
    first = run_monte_carlo_simulation(calc, iterations=50, seed=7)
    second = run_monte_carlo_simulation(calc, iterations=50, seed=7)
    assert first == second
    assert first.iterations == 50
    assert set(first.metrics) == {"roi", "npv", "payback"}
    npv = first.metrics["npv"]
    assert npv.p10 <= npv.p50 <= npv.p90
    assert 0.0 <= first.success_probability <= 1.0


def test_monte_carlo_without_spread_matches_deterministic_result():
    calc = _calculation()
    results = run_monte_carlo_simulation(calc, iterations=5, uncertainty_range=0.0, seed=1)
    expected = calculate_roi(calc).metrics.npv
    assert results.metrics["npv"].mean == pytest.approx(expected)
    assert results.metrics["npv"].std_dev == pytest.approx(0, abs=1e-6)
    assert results.success_probability == 1.0


def test_monte_carlo_rejects_bad_arguments():
    with pytest.raises(RoiInputError):
        run_monte_carlo_simulation(_calculation(), iterations=0)
    with pytest.raises(RoiInputError):
        run_monte_carlo_simulation(_calculation(), iterations=5, uncertainty_range=1.5)
