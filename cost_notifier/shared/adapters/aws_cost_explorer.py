"""
AWS Cost Explorer client (Native Async)

Fetches yesterday's spend with a per-service breakdown and the month-to-date
spend with a forecast for the rest of the month. Calls are issued one after
another; nothing here runs concurrently.
"""

from contextlib import contextmanager
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

import aioboto3
import structlog
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionError as BotoConnectionError,
    CredentialRetrievalError,
    HTTPClientError,
    NoCredentialsError,
    NoRegionError,
    PartialCredentialsError,
    ProfileNotFound,
    SSOTokenLoadError,
    TokenRetrievalError,
    UnauthorizedSSOTokenError,
)

from cost_notifier.schemas.costs import (
    DEFAULT_CURRENCY,
    DailyCostSummary,
    MonthlyCostSummary,
    ServiceCost,
)
from cost_notifier.shared.adapters.aws_utils import build_boto_config, get_boto_session
from cost_notifier.shared.core.config import Settings
from cost_notifier.shared.core.exceptions import (
    BillingApiError,
    ConfigurationError,
    NetworkError,
    ParseError,
)

logger = structlog.get_logger()

COST_METRIC = "UnblendedCost"
FORECAST_METRIC = "UNBLENDED_COST"
DATE_FORMAT = "%Y-%m-%d"

# Safety limit for NextPageToken loops on the grouped query
MAX_COST_EXPLORER_PAGES = 20


def parse_amount(raw: Any, *, strict: bool = False, field: str = "amount") -> Decimal:
    """
    Parse a Cost Explorer amount string.

    A missing amount is zero. A malformed amount is zero when lenient and a
    ParseError when strict.
    """
    if raw is None or raw == "":
        return Decimal("0")
    try:
        value = Decimal(str(raw).strip())
    except InvalidOperation:
        value = None
    if value is None or not value.is_finite():
        if strict:
            raise ParseError(
                f"Cannot parse {field} from billing response: {raw!r}",
                details={"field": field, "raw": str(raw)},
            )
        logger.debug("billing_amount_unparsable", field=field, raw=str(raw))
        return Decimal("0")
    return value


def first_of_next_month(day: date) -> date:
    return (day.replace(day=1) + timedelta(days=32)).replace(day=1)


def _period(start: date, end: date) -> Dict[str, str]:
    return {"Start": start.strftime(DATE_FORMAT), "End": end.strftime(DATE_FORMAT)}


@contextmanager
def _aws_errors(operation: str) -> Iterator[None]:
    """Translate botocore failures into the notifier's error taxonomy."""
    try:
        yield
    except ClientError as e:
        error_code = e.response.get("Error", {}).get("Code", "Unknown")
        logger.error("cost_explorer_request_failed", operation=operation, code=error_code)
        raise BillingApiError(
            message=f"Failed to {operation}: {e}",
            code=error_code,
            details={"operation": operation},
        ) from e
    except (
        NoCredentialsError,
        PartialCredentialsError,
        CredentialRetrievalError,
        TokenRetrievalError,
        SSOTokenLoadError,
        UnauthorizedSSOTokenError,
        ProfileNotFound,
        NoRegionError,
    ) as e:
        logger.error("cost_explorer_credentials_invalid", operation=operation, error=str(e))
        raise ConfigurationError(
            f"AWS client configuration is invalid: {e}",
            code="aws_config_error",
            details={"operation": operation},
        ) from e
    except (BotoConnectionError, HTTPClientError, TimeoutError) as e:
        logger.error("cost_explorer_unreachable", operation=operation, error=str(e))
        raise NetworkError(
            f"Failed to {operation}: {e}",
            details={"operation": operation},
        ) from e
    except BotoCoreError as e:
        logger.error("cost_explorer_client_failed", operation=operation, error=str(e))
        raise BillingApiError(
            message=f"Failed to {operation}: {e}",
            code=type(e).__name__,
            details={"operation": operation},
        ) from e


class CostExplorerClient:
    """
    Thin wrapper over the Cost Explorer API returning immutable summaries.
    """

    def __init__(
        self,
        settings: Settings,
        session: Optional[aioboto3.Session] = None,
        clock: Callable[[], date] = date.today,
    ):
        self.settings = settings
        if session is None:
            with _aws_errors("create AWS session"):
                session = get_boto_session(settings)
        self.session = session
        self._today = clock

    def _client(self) -> Any:
        return self.session.client(
            "ce",
            region_name=self.settings.AWS_REGION,
            config=build_boto_config(self.settings),
        )

    async def get_yesterday_cost(self) -> DailyCostSummary:
        """Fetch the total and per-service cost of the day before today (local time)."""
        return await self.get_daily_cost(self._today() - timedelta(days=1))

    async def get_daily_cost(self, day: date) -> DailyCostSummary:
        period = _period(day, day + timedelta(days=1))

        # Session and credential resolution happen when the client is entered
        with _aws_errors("open Cost Explorer client"):
            async with self._client() as client:
                with _aws_errors("get total cost"):
                    total_response = await client.get_cost_and_usage(
                        TimePeriod=period,
                        Granularity="DAILY",
                        Metrics=[COST_METRIC],
                    )
                total_cost, currency = self._extract_total(
                    total_response, field="daily total"
                )

                services: List[ServiceCost] = []
                request_params: Dict[str, Any] = {
                    "TimePeriod": period,
                    "Granularity": "DAILY",
                    "Metrics": [COST_METRIC],
                    "GroupBy": [{"Type": "DIMENSION", "Key": "SERVICE"}],
                }
                pages_fetched = 0
                while pages_fetched < MAX_COST_EXPLORER_PAGES:
                    with _aws_errors("get service costs"):
                        response = await client.get_cost_and_usage(**request_params)
                    services.extend(self._extract_services(response))
                    pages_fetched += 1

                    next_token = response.get("NextPageToken")
                    if not next_token:
                        break
                    request_params["NextPageToken"] = next_token

        # sorted() is stable, so equal costs keep the API order
        services.sort(key=lambda s: s.cost, reverse=True)

        logger.info(
            "daily_cost_fetched",
            date=period["Start"],
            total_cost=str(total_cost),
            currency=currency,
            service_count=len(services),
        )
        return DailyCostSummary(
            date=day,
            total_cost=total_cost,
            currency=currency,
            services=tuple(services),
        )

    async def get_monthly_forecast(self) -> MonthlyCostSummary:
        """
        Fetch month-to-date cost and forecast the remainder of the month.

        Month-to-date covers [first of month, today); the forecast covers
        [today, first of next month). Both end dates are exclusive.
        """
        today = self._today()
        month_start = today.replace(day=1)
        month_end = first_of_next_month(today)

        month_to_date = Decimal("0")
        currency: Optional[str] = None

        with _aws_errors("open Cost Explorer client"):
            async with self._client() as client:
                if today > month_start:
                    with _aws_errors("get month-to-date cost"):
                        mtd_response = await client.get_cost_and_usage(
                            TimePeriod=_period(month_start, today),
                            Granularity="MONTHLY",
                            Metrics=[COST_METRIC],
                        )
                    month_to_date, currency = self._extract_total(
                        mtd_response, field="month-to-date total"
                    )
                else:
                    logger.info(
                        "month_to_date_period_empty", date=today.strftime(DATE_FORMAT)
                    )

                with _aws_errors("get cost forecast"):
                    forecast_response = await client.get_cost_forecast(
                        TimePeriod=_period(today, month_end),
                        Granularity="MONTHLY",
                        Metric=FORECAST_METRIC,
                    )

        forecast_total = forecast_response.get("Total") or {}
        remainder = parse_amount(
            forecast_total.get("Amount"), strict=True, field="forecast total"
        )
        if currency is None:
            currency = forecast_total.get("Unit") or DEFAULT_CURRENCY

        summary = MonthlyCostSummary(
            month_to_date=month_to_date,
            forecast_remainder=remainder,
            currency=currency,
        )
        logger.info(
            "monthly_cost_fetched",
            month_to_date=str(summary.month_to_date),
            forecast=str(summary.forecast),
            currency=summary.currency,
        )
        return summary

    @staticmethod
    def _extract_total(response: Dict[str, Any], *, field: str) -> Tuple[Decimal, str]:
        results = response.get("ResultsByTime") or []
        if not results:
            return Decimal("0"), DEFAULT_CURRENCY

        metric = (results[0].get("Total") or {}).get(COST_METRIC)
        if not metric:
            return Decimal("0"), DEFAULT_CURRENCY

        amount = parse_amount(metric.get("Amount"), strict=True, field=field)
        return amount, metric.get("Unit") or DEFAULT_CURRENCY

    @staticmethod
    def _extract_services(response: Dict[str, Any]) -> List[ServiceCost]:
        services: List[ServiceCost] = []
        for result in response.get("ResultsByTime") or []:
            for group in result.get("Groups") or []:
                keys = group.get("Keys") or []
                metric = (group.get("Metrics") or {}).get(COST_METRIC)
                if not keys or not metric:
                    continue
                amount = parse_amount(metric.get("Amount"), field=f"cost of {keys[0]}")
                if amount > 0:
                    services.append(ServiceCost(service=keys[0], cost=amount))
        return services
