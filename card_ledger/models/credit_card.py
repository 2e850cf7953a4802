"""Credit card model."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from card_ledger.models.enums import CardNetwork, UtilizationTier

CENTS = Decimal("0.01")

# Utilization percentage boundaries (exclusive upper bounds)
GOOD_UTILIZATION = Decimal("30")
FAIR_UTILIZATION = Decimal("70")


@dataclass
class CardSummary:
    """Card fields embedded in expense results."""

    card_id: str
    card_name: str
    masked_card_number: str
    color: str


@dataclass
class CreditCard:
    """Credit card owned by a single user identity.

    ``available_credit`` is derived from ``credit_limit - current_balance``
    and must be recomputed after every mutation of either field.
    """

    card_id: str
    owner_id: str
    card_name: str
    card_number: str  # 16 digits, no spaces
    card_network: CardNetwork
    expiry_month: int  # 1-12
    expiry_year: int
    credit_limit: Decimal
    current_balance: Decimal = Decimal("0.00")
    available_credit: Decimal = Decimal("0.00")
    interest_rate: Decimal = Decimal("18.5")
    is_active: bool = True
    color: str = "#1976d2"
    last_used: datetime = field(default_factory=datetime.now)
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime | None = None
    version: int = 1  # Optimistic concurrency counter

    def __post_init__(self) -> None:
        self.recompute_available_credit()

    def recompute_available_credit(self) -> Decimal:
        """Re-derive available credit from limit and balance."""
        self.available_credit = self.credit_limit - self.current_balance
        return self.available_credit

    @property
    def masked_card_number(self) -> str:
        return f"****-****-****-{self.card_number[-4:]}"

    @property
    def utilization(self) -> Decimal:
        """Balance as a percentage of the limit (2 dp)."""
        if self.credit_limit <= 0:
            return Decimal("0.00")
        rate = self.current_balance / self.credit_limit * 100
        return rate.quantize(CENTS, rounding=ROUND_HALF_UP)

    @property
    def utilization_tier(self) -> UtilizationTier:
        rate = self.utilization
        if rate < GOOD_UTILIZATION:
            return UtilizationTier.GOOD
        if rate < FAIR_UTILIZATION:
            return UtilizationTier.FAIR
        return UtilizationTier.HIGH

    @property
    def is_over_limit(self) -> bool:
        return self.current_balance > self.credit_limit

    def summary(self) -> CardSummary:
        return CardSummary(
            card_id=self.card_id,
            card_name=self.card_name,
            masked_card_number=self.masked_card_number,
            color=self.color,
        )
