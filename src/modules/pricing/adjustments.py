"""Offer adjustment sessions.

An admin editing a product's offer table works on an ``OfferAdjustment``:
an immutable value that every edit command turns into a new value via
``reduce``.  Nothing here is persisted; the Product service commits a
finished adjustment.

Field input goes through a ``Draft``:

- ``Editing(raw)`` holds text while the admin is still typing (possibly
  empty or half-typed, never parsed);
- ``Committed(value)`` holds a parsed value.

Parsing happens only on ``CommitField`` (blur) or ``Submit``.  Unparsable
text is dropped on commit and the tier keeps its last committed value.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import Any, Generic, Mapping, Optional, Tuple, TypeVar, Union

from modules.pricing.constants import BASE_TIER_QUANTITY
from modules.pricing.dtos import FieldError, OfferTier
from modules.pricing.engine import (
    discount_for_price,
    price_for_discount,
    round2,
    to_decimal,
)
from modules.pricing.validators import parse_number, validate_all_offers

T = TypeVar("T")

QUANTITY = "quantity"
DISCOUNT = "discount"
PRICE = "price"


@dataclass(frozen=True)
class Editing:
    raw: str


@dataclass(frozen=True)
class Committed(Generic[T]):
    value: T


Draft = Union[Editing, Committed[Any]]


class AdjustmentStatus(str, Enum):
    PENDING = "pending"
    DONE = "done"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class OfferAdjustment:
    product_id: Any
    mrp: Decimal
    original: Tuple[OfferTier, ...]
    offers: Tuple[OfferTier, ...]
    status: AdjustmentStatus = AdjustmentStatus.PENDING
    drafts: Mapping[Tuple[int, str], Editing] = field(default_factory=dict)
    errors: Mapping[int, Tuple[FieldError, ...]] = field(default_factory=dict)

    @property
    def is_dirty(self) -> bool:
        return self.offers != self.original

    @property
    def ready_to_save(self) -> bool:
        return (
            self.status is AdjustmentStatus.PENDING
            and not self.drafts
            and not self.errors
        )

    def draft_for(self, quantity: int, field_name: str) -> Draft:
        """The field's in-progress text, or its committed value."""
        draft = self.drafts.get((quantity, field_name))
        if draft is not None:
            return draft
        tier = _find(self.offers, quantity)
        if tier is None:
            return Editing(raw="")
        if field_name == QUANTITY:
            return Committed(tier.quantity)
        if field_name == DISCOUNT:
            return Committed(tier.discount_percent)
        return Committed(price_for_discount(self.mrp, tier.discount_percent))


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TypeField:
    """A keystroke: store raw text for ``(quantity, field)`` without parsing."""

    quantity: int
    field: str
    raw: str


@dataclass(frozen=True)
class CommitField:
    """Blur: parse the draft for ``(quantity, field)`` into the offer table."""

    quantity: int
    field: str


@dataclass(frozen=True)
class AddTier:
    pass


@dataclass(frozen=True)
class RemoveTier:
    quantity: int


@dataclass(frozen=True)
class Submit:
    """Commit every pending draft, then validate the whole table."""


@dataclass(frozen=True)
class Cancel:
    """Discard all edits and restore the original offers."""


@dataclass(frozen=True)
class MarkDone:
    """The committed table was persisted."""


@dataclass(frozen=True)
class MarkFailed:
    """Persistence failed; the server state is unknown and must be re-fetched."""


Command = Union[
    TypeField, CommitField, AddTier, RemoveTier, Submit, Cancel, MarkDone, MarkFailed
]


def begin_adjustment(product: Any) -> OfferAdjustment:
    """Start an adjustment session from a product's current offers."""
    tiers = tuple(sorted(product.offer_tiers, key=lambda t: t.quantity))
    return OfferAdjustment(
        product_id=product.id,
        mrp=to_decimal(product.mrp),
        original=tiers,
        offers=tiers,
    )


def reduce(adjustment: OfferAdjustment, command: Command) -> OfferAdjustment:
    """Apply *command* to *adjustment*, returning the next state."""
    if isinstance(command, TypeField):
        drafts = dict(adjustment.drafts)
        drafts[(command.quantity, command.field)] = Editing(raw=command.raw)
        return replace(adjustment, drafts=drafts)

    if isinstance(command, CommitField):
        return _commit_draft(adjustment, command.quantity, command.field)

    if isinstance(command, AddTier):
        return _add_tier(adjustment)

    if isinstance(command, RemoveTier):
        if command.quantity == BASE_TIER_QUANTITY:
            return adjustment
        offers = tuple(t for t in adjustment.offers if t.quantity != command.quantity)
        drafts = {
            key: text
            for key, text in adjustment.drafts.items()
            if key[0] != command.quantity
        }
        return replace(adjustment, offers=offers, drafts=drafts, errors={})

    if isinstance(command, Submit):
        committed = adjustment
        while committed.drafts:
            quantity, field_name = next(iter(committed.drafts))
            committed = _commit_draft(committed, quantity, field_name)
        errors = validate_all_offers(committed.offers, committed.mrp)
        return replace(
            committed,
            errors={quantity: tuple(errs) for quantity, errs in errors.items()},
        )

    if isinstance(command, Cancel):
        return replace(
            adjustment,
            offers=adjustment.original,
            drafts={},
            errors={},
            status=AdjustmentStatus.CANCELLED,
        )

    if isinstance(command, MarkDone):
        return replace(
            adjustment,
            original=adjustment.offers,
            status=AdjustmentStatus.DONE,
        )

    if isinstance(command, MarkFailed):
        return replace(adjustment, status=AdjustmentStatus.CANCELLED)

    raise TypeError(f"Unknown offer adjustment command: {command!r}")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _find(offers: Tuple[OfferTier, ...], quantity: int) -> Optional[OfferTier]:
    for tier in offers:
        if tier.quantity == quantity:
            return tier
    return None


def _replace_tier(
    offers: Tuple[OfferTier, ...], quantity: int, new_tier: OfferTier
) -> Tuple[OfferTier, ...]:
    return tuple(new_tier if t.quantity == quantity else t for t in offers)


def _commit_draft(
    adjustment: OfferAdjustment, quantity: int, field_name: str
) -> OfferAdjustment:
    drafts = dict(adjustment.drafts)
    draft = drafts.pop((quantity, field_name), None)
    tier = _find(adjustment.offers, quantity)
    value = parse_number(draft.raw) if draft is not None else None
    if tier is None or value is None:
        return replace(adjustment, drafts=drafts)

    if field_name == QUANTITY:
        if value < 1 or value != value.to_integral_value():
            return replace(adjustment, drafts=drafts)
        new_quantity = int(value)
        new_tier = OfferTier(quantity=new_quantity, discount_percent=tier.discount_percent)
        drafts = {
            (new_quantity if q == quantity else q, name): text
            for (q, name), text in drafts.items()
        }
    elif field_name == DISCOUNT:
        new_tier = OfferTier(quantity=quantity, discount_percent=round2(value))
    else:
        discount = discount_for_price(adjustment.mrp, round2(value))
        new_tier = OfferTier(quantity=quantity, discount_percent=discount)

    offers = _replace_tier(adjustment.offers, quantity, new_tier)
    return replace(adjustment, offers=offers, drafts=drafts, errors={})


def _add_tier(adjustment: OfferAdjustment) -> OfferAdjustment:
    if not adjustment.offers:
        new_tier = OfferTier(quantity=BASE_TIER_QUANTITY, discount_percent=Decimal("0"))
    else:
        last = max(adjustment.offers, key=lambda t: t.quantity)
        new_tier = OfferTier(
            quantity=last.quantity + 1, discount_percent=last.discount_percent
        )
    return replace(adjustment, offers=adjustment.offers + (new_tier,), errors={})
