"""Product domain exceptions.

Raised by the Service Layer when business rules are violated.
The API layer (Views) catches these and translates them into
appropriate HTTP responses.

Offer table failures are raised as
``modules.pricing.exceptions.OfferValidationFailed``.
"""

from __future__ import annotations

from modules.core.exceptions import NotFoundError


class ProductNotFound(NotFoundError):
    """The requested product does not exist."""
