"""Cart API views.

Exposes the ``CartService`` via HTTP.  A missing product is reported
as 404; the view never swallows generic exceptions.
"""

from __future__ import annotations

from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from modules.cart.serializers import CartQuoteSerializer, CartTotalsSerializer
from modules.cart.services import CartService
from modules.core.exceptions import validation_detail
from modules.orders.dtos import CartItemDTO
from modules.products.exceptions import ProductNotFound
from modules.products.repositories.django_repository import ProductDjangoRepository


class CartTotalsView(APIView):
    """POST /api/v1/cart/totals/

    Body: ``{"items": [{"product_id": ..., "quantity": N}, ...]}``.
    Returns ``subtotal`` (at MRP), ``discount``, ``total`` and per-line
    tier prices.
    """

    permission_classes = [IsAuthenticated]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = CartService(product_repository=ProductDjangoRepository())

    def post(self, request: Request) -> Response:
        serializer = CartQuoteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            items = [
                CartItemDTO(product_id=item["product_id"], quantity=item["quantity"])
                for item in serializer.validated_data["items"]
            ]
        except (PydanticValidationError, ValueError) as exc:
            return Response(
                {"detail": validation_detail(exc)}, status=status.HTTP_400_BAD_REQUEST
            )

        try:
            totals = self._service.quote(items)
        except ValueError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        except ProductNotFound as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)

        return Response(CartTotalsSerializer(totals).data)
