"""
Snapshot persistence.

Snapshots are stored as a JSON object mapping card names to lists of offer
records. Older history files written by the previous tool used numeric
sentinels (-1 for unknown, -2 for a failed lookup) and different field names;
those are read transparently and rewritten in the current format on save.
"""

import json
import logging
import shutil
from pathlib import Path
from typing import Any

from .models import Amount, AmountState, Offer, OfferStatus, RawOffer, Snapshot
from .normalize import make_identity_key, parse_days_left

logger = logging.getLogger(__name__)

_LEGACY_UNKNOWN = -1
_LEGACY_FETCH_FAILED = -2


class SnapshotError(RuntimeError):
    """Raised when a snapshot file exists but can't be understood."""


def amount_to_json(amount: Amount) -> float | str:
    return amount.value if amount.is_known else amount.state.value


def amount_from_json(value: Any) -> Amount:
    if value is None or value == AmountState.UNKNOWN.value:
        return Amount.unknown()
    if value == AmountState.FETCH_FAILED.value:
        return Amount.fetch_failed()
    try:
        number = float(value)
    except (TypeError, ValueError):
        return Amount.unknown()
    if number == _LEGACY_FETCH_FAILED:
        return Amount.fetch_failed()
    if number < 0:
        return Amount.unknown()
    return Amount.known(number)


def _days_left_from_json(value: Any, raw_text: str) -> int | None:
    if value is None:
        return parse_days_left(raw_text)
    try:
        days = int(value)
    except (TypeError, ValueError):
        return None
    return days if days >= 0 else None


def offer_to_dict(offer: Offer) -> dict[str, Any]:
    return {
        "merchant": offer.merchant,
        "deal": offer.deal,
        "raw_expiration_text": offer.raw_expiration_text,
        "status": offer.status.value,
        "days_left": offer.days_left,
        "expiration_date": offer.expiration_date,
        "maximum": amount_to_json(offer.maximum),
        "minimum_purchase": amount_to_json(offer.minimum_purchase),
        "identity_key": offer.identity_key,
    }


def offer_from_dict(data: dict[str, Any]) -> Offer:
    """Read an offer record in either the current or the legacy history format."""
    merchant = data.get("merchant", "unknown")
    deal = data.get("deal", "")
    raw_text = data.get("raw_expiration_text", data.get("days_left_string", ""))
    expiration_date = data.get("expiration_date", data.get("expiration", raw_text))
    try:
        status = OfferStatus(data.get("status", OfferStatus.ELIGIBLE.value))
    except ValueError:
        logger.warning(f"Unknown offer status {data.get('status')!r} for {merchant}, treating as eligible")
        status = OfferStatus.ELIGIBLE
    return Offer(
        merchant=merchant,
        deal=deal,
        raw_expiration_text=raw_text,
        status=status,
        days_left=_days_left_from_json(data.get("days_left"), raw_text),
        expiration_date=expiration_date,
        maximum=amount_from_json(data.get("maximum")),
        minimum_purchase=amount_from_json(data.get("minimum_purchase")),
        identity_key=data.get("identity_key", data.get("offer_key"))
        or make_identity_key(merchant, deal, expiration_date),
    )


def raw_offer_from_dict(data: dict[str, Any]) -> RawOffer:
    return RawOffer(
        merchant=data["merchant"],
        deal=data["deal"],
        raw_expiration_text=data.get("raw_expiration_text", data.get("days_left_string", "")),
        status=OfferStatus(data.get("status", OfferStatus.ELIGIBLE.value)),
        maximum=amount_from_json(data.get("maximum")),
        minimum_purchase=amount_from_json(data.get("minimum_purchase")),
    )


def _read_json_object(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise SnapshotError(f"Snapshot file {path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise SnapshotError(f"Snapshot file {path} must contain a JSON object, got {type(data).__name__}")
    return data


def load_snapshot(path: str | Path, backup: bool = True) -> Snapshot:
    """
    Load the stored snapshot.

    Args:
        path: History file; a missing file means this is the first run
        backup: Copy the file to <path>_backup before returning

    Returns:
        The stored snapshot, or an empty one if the file doesn't exist
    """
    path = Path(path)
    if not path.exists():
        logger.info(f"No history file at {path}, treating every card and offer as new")
        return {}

    data = _read_json_object(path)
    if backup:
        backup_path = path.with_name(path.name + "_backup")
        shutil.copyfile(path, backup_path)
        logger.debug(f"Backed up history to {backup_path}")

    snapshot: Snapshot = {}
    for card, offers in data.items():
        if not isinstance(offers, list):
            logger.warning(f"Stored offers for {card!r} are not a list, treating as empty")
            snapshot[card] = []
            continue
        snapshot[card] = [offer_from_dict(o) for o in offers if isinstance(o, dict)]
    logger.info(f"Loaded {sum(len(v) for v in snapshot.values())} stored offers for {len(snapshot)} cards")
    return snapshot


def save_snapshot(path: str | Path, snapshot: Snapshot) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {card: [offer_to_dict(o) for o in offers] for card, offers in snapshot.items()}
    path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
    logger.info(f"Snapshot written to {path}")


def load_raw_snapshot(path: str | Path) -> dict[str, list[RawOffer]]:
    """Load captured-but-not-normalized offers, used in place of the browser with --fake-data."""
    path = Path(path)
    data = _read_json_object(path)
    raw: dict[str, list[RawOffer]] = {}
    for card, offers in data.items():
        if not isinstance(offers, list):
            logger.warning(f"Fake data for {card!r} is not a list, treating as empty")
            raw[card] = []
            continue
        try:
            raw[card] = [raw_offer_from_dict(o) for o in offers]
        except (KeyError, TypeError, ValueError) as e:
            raise SnapshotError(f"Malformed offer for card {card!r} in {path}: {e}") from e
    return raw


def write_result(path: str | Path, html: str) -> None:
    Path(path).write_text(html, encoding="utf-8")
    logger.info(f"Report written to {path}")
