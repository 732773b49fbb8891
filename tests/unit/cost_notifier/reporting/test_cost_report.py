from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from cost_notifier.modules.notifications.domain import NullNotifier
from cost_notifier.modules.reporting.domain.cost_report import (
    CostReportService,
    ReportOutcome,
    build_cost_message,
    color_for_amount,
)
from cost_notifier.schemas.costs import DailyCostSummary, MonthlyCostSummary, ServiceCost
from cost_notifier.shared.core.exceptions import BillingApiError, WebhookDeliveryError


def _daily(total: str, services=()) -> DailyCostSummary:
    return DailyCostSummary(
        date=date(2026, 10, 17),
        total_cost=Decimal(total),
        currency="USD",
        services=tuple(ServiceCost(service=name, cost=Decimal(cost)) for name, cost in services),
    )


def _monthly(mtd: str = "120.00", remainder: str = "60.00") -> MonthlyCostSummary:
    return MonthlyCostSummary(
        month_to_date=Decimal(mtd), forecast_remainder=Decimal(remainder), currency="USD"
    )


def _billing(daily: DailyCostSummary, monthly: MonthlyCostSummary | None = None) -> MagicMock:
    billing = MagicMock()
    billing.get_yesterday_cost = AsyncMock(return_value=daily)
    billing.get_monthly_forecast = AsyncMock(return_value=monthly or _monthly())
    return billing


def _notifier() -> MagicMock:
    notifier = MagicMock()
    notifier.send = AsyncMock()
    notifier.is_enabled.return_value = True
    return notifier


@pytest.mark.parametrize(
    "amount,expected",
    [
        ("0", "good"),
        ("49.99", "good"),
        ("50", "warning"),
        ("99.99", "warning"),
        ("100.00", "danger"),
        ("2500", "danger"),
    ],
)
def test_color_for_amount_boundaries(amount, expected):
    assert color_for_amount(Decimal(amount)) == expected


def test_build_cost_message_layout():
    daily = _daily("12.34", [("Amazon EC2", "7.34"), ("Amazon S3", "5.00")])
    monthly = _monthly("75.50", "24.50")

    message = build_cost_message(daily, monthly, timestamp=1700000000)

    assert message.text == "AWS Cost Report"
    assert len(message.attachments) == 2

    first, second = message.attachments
    assert first.title == "Yesterday's cost (2026-10-17)"
    assert first.text == "*$12.34* USD"
    assert first.color == "good"
    assert [(f.title, f.value, f.short) for f in first.fields] == [
        ("Amazon EC2", "$7.34", True),
        ("Amazon S3", "$5.00", True),
    ]

    assert second.title == "Month to date"
    assert second.color == "warning"
    assert len(second.fields) == 1
    assert second.fields[0].value == "$75.50"
    assert second.fields[0].short is False
    assert second.footer == "Forecast for the full month: $100.00 USD"
    assert second.timestamp == 1700000000


def test_build_cost_message_truncates_to_top_ten_in_order():
    services = [(f"svc-{i:02d}", str(100 - i)) for i in range(15)]
    daily = _daily("2000", services)

    message = build_cost_message(daily, _monthly())

    titles = [f.title for f in message.attachments[0].fields]
    assert titles == [name for name, _ in services[:10]]
    assert message.attachments[0].color == "danger"


def test_build_cost_message_with_fewer_services_than_limit():
    message = build_cost_message(_daily("1.00", [("Lambda", "1.00")]), _monthly("0.50", "0"))

    assert [f.title for f in message.attachments[0].fields] == ["Lambda"]
    assert message.attachments[1].color == "good"


@pytest.mark.asyncio
async def test_run_skips_when_cost_below_threshold():
    billing = _billing(_daily("0.0099"))
    notifier = _notifier()

    result = await CostReportService(billing, notifier).run()

    assert result.outcome is ReportOutcome.SKIPPED
    assert result.monthly is None
    billing.get_monthly_forecast.assert_not_awaited()
    notifier.send.assert_not_awaited()


@pytest.mark.asyncio
async def test_run_sends_at_threshold():
    billing = _billing(_daily("0.01", [("S3", "0.01")]))
    notifier = _notifier()

    result = await CostReportService(billing, notifier).run()

    assert result.outcome is ReportOutcome.SENT
    billing.get_monthly_forecast.assert_awaited_once()
    notifier.send.assert_awaited_once()


@pytest.mark.asyncio
async def test_run_sends_built_message():
    daily = _daily("150.00", [("EC2", "150.00")])
    monthly = _monthly("40.00", "10.00")
    notifier = _notifier()

    result = await CostReportService(_billing(daily, monthly), notifier).run()

    assert result.outcome is ReportOutcome.SENT
    assert result.monthly == monthly
    message = notifier.send.await_args.args[0]
    assert [a.color for a in message.attachments] == ["danger", "good"]


@pytest.mark.asyncio
async def test_run_respects_custom_limits():
    services = [(f"s{i}", str(10 - i)) for i in range(5)]
    notifier = _notifier()
    service = CostReportService(
        _billing(_daily("40", services)), notifier, skip_threshold=Decimal("50"), max_services=2
    )

    result = await service.run()
    assert result.outcome is ReportOutcome.SKIPPED

    service.skip_threshold = Decimal("1")
    await service.run()
    message = notifier.send.await_args.args[0]
    assert [f.title for f in message.attachments[0].fields] == ["s0", "s1"]


@pytest.mark.asyncio
async def test_run_with_null_notifier_succeeds():
    result = await CostReportService(_billing(_daily("5.00")), NullNotifier()).run()

    assert result.outcome is ReportOutcome.SENT


@pytest.mark.asyncio
async def test_delivery_failure_propagates():
    notifier = _notifier()
    notifier.send.side_effect = WebhookDeliveryError("HTTP 500", status_code=500)

    with pytest.raises(WebhookDeliveryError):
        await CostReportService(_billing(_daily("5.00")), notifier).run()


@pytest.mark.asyncio
async def test_billing_failure_propagates_before_sending():
    billing = _billing(_daily("5.00"))
    billing.get_monthly_forecast.side_effect = BillingApiError("boom")
    notifier = _notifier()

    with pytest.raises(BillingApiError):
        await CostReportService(billing, notifier).run()

    notifier.send.assert_not_awaited()
