import datetime
from decimal import Decimal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

DEFAULT_CURRENCY = "USD"


class ServiceCost(BaseModel):
    """Cost of a single AWS service for one day."""

    model_config = ConfigDict(frozen=True)

    service: str
    cost: Decimal

    @field_validator("cost")
    @classmethod
    def _positive(cls, value: Decimal) -> Decimal:
        if value <= 0:
            raise ValueError("service cost must be positive")
        return value


class DailyCostSummary(BaseModel):
    """
    One day of spend: the flat total plus the per-service breakdown.

    `total_cost` comes from its own query and is not derived from `services`,
    so the two may differ slightly.
    """

    model_config = ConfigDict(frozen=True)

    date: datetime.date
    total_cost: Decimal
    currency: str = DEFAULT_CURRENCY
    services: tuple[ServiceCost, ...] = ()

    @model_validator(mode="after")
    def _services_sorted(self) -> "DailyCostSummary":
        costs = [s.cost for s in self.services]
        if costs != sorted(costs, reverse=True):
            raise ValueError("services must be sorted by descending cost")
        return self

    def top_services(self, limit: int) -> tuple[ServiceCost, ...]:
        return self.services[:limit]


class MonthlyCostSummary(BaseModel):
    """Month-to-date spend and the full-month forecast."""

    model_config = ConfigDict(frozen=True)

    month_to_date: Decimal
    forecast_remainder: Decimal = Field(default=Decimal("0"))
    currency: str = DEFAULT_CURRENCY

    @computed_field  # type: ignore[prop-decorator]
    @property
    def forecast(self) -> Decimal:
        return self.month_to_date + self.forecast_remainder
