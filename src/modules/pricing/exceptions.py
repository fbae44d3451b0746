"""Pricing domain exceptions.

Raised by the offer validator and the Product service layer.  The API
layer (Views) catches these and translates them into HTTP responses.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List

if TYPE_CHECKING:
    from modules.pricing.dtos import FieldError


class OfferValidationFailed(Exception):
    """An offer table failed validation and must not be persisted.

    ``errors`` maps each offending tier quantity to its field errors.
    """

    def __init__(self, errors: Dict[int, List[FieldError]]) -> None:
        self.errors = errors
        super().__init__(
            f"Offer table has errors on quantities {sorted(errors)}."
        )

    def as_dict(self) -> Dict[str, List[Dict[str, str]]]:
        return {
            str(quantity): [error.model_dump() for error in field_errors]
            for quantity, field_errors in sorted(self.errors.items())
        }
