from dataclasses import dataclass, field
from datetime import date
from enum import Enum


class OfferStatus(str, Enum):
    """Whether a card has opted in to an offer."""

    ELIGIBLE = "eligible"
    ENROLLED = "enrolled"


class AmountState(str, Enum):
    KNOWN = "known"
    UNKNOWN = "unknown"
    FETCH_FAILED = "fetch failed"


@dataclass(frozen=True)
class Amount:
    """
    A currency amount that may be missing.

    UNKNOWN means the value was never looked up (or not present on the page);
    FETCH_FAILED means the detail lookup was attempted and failed. Both render
    the same way in reports.
    """

    state: AmountState = AmountState.UNKNOWN
    value: float = 0.0

    @classmethod
    def known(cls, value: float) -> "Amount":
        return cls(AmountState.KNOWN, float(value))

    @classmethod
    def unknown(cls) -> "Amount":
        return cls(AmountState.UNKNOWN)

    @classmethod
    def fetch_failed(cls) -> "Amount":
        return cls(AmountState.FETCH_FAILED)

    @property
    def is_known(self) -> bool:
        return self.state is AmountState.KNOWN

    def __str__(self) -> str:
        return f"${self.value:.2f}" if self.is_known else self.state.value


@dataclass
class RawOffer:
    """An offer as captured from the offers page, before normalization."""

    merchant: str
    deal: str
    raw_expiration_text: str
    status: OfferStatus
    maximum: Amount = field(default_factory=Amount.unknown)
    minimum_purchase: Amount = field(default_factory=Amount.unknown)


@dataclass(frozen=True)
class Offer:
    """A normalized offer observed on one card during one run."""

    merchant: str
    deal: str
    raw_expiration_text: str
    status: OfferStatus
    days_left: int | None
    expiration_date: str
    maximum: Amount
    minimum_purchase: Amount
    identity_key: str

    @property
    def is_enrolled(self) -> bool:
        return self.status is OfferStatus.ENROLLED

    @property
    def expires_on(self) -> date | None:
        """The expiration as a date, or None when only the raw text is known."""
        if self.days_left is None:
            return None
        try:
            return date.fromisoformat(self.expiration_date)
        except ValueError:
            return None

    def __str__(self) -> str:
        label = "ENROLLED" if self.is_enrolled else "ELIGIBLE"
        return f"[{label}] {self.merchant} - {self.deal} (expires: {self.expiration_date})"


# Card name -> offers captured for that card, in page order.
Snapshot = dict[str, list[Offer]]


@dataclass
class MergedOffer:
    """An offer collapsed across every card that shares its identity key."""

    merchant: str
    deal: str
    raw_expiration_text: str
    days_left: int | None
    expiration_date: str
    maximum: Amount
    minimum_purchase: Amount
    identity_key: str
    accounts: list[str] = field(default_factory=list)
    any_added: bool = False
