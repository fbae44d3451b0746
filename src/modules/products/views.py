"""Product API views.

Exposes the ``ProductService`` via HTTP using DRF ViewSets.
Domain exceptions are caught and translated into appropriate
HTTP status codes; the view never swallows generic exceptions.

Reads are public.  Creating products and editing offers or stock
requires a staff user.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.mixins import ListModelMixin
from rest_framework.permissions import AllowAny, BasePermission, IsAdminUser
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.core.exceptions import PersistenceError, validation_detail
from modules.pricing.dtos import OfferTier
from modules.pricing.exceptions import OfferValidationFailed
from modules.products.dtos import CreateProductDTO, UpdateOffersDTO, UpdateStockDTO
from modules.products.exceptions import ProductNotFound
from modules.products.filters import ProductFilter
from modules.products.models import Product
from modules.products.repositories.django_repository import ProductDjangoRepository
from modules.products.serializers import (
    CreateProductSerializer,
    OfferPreviewSerializer,
    ProductSerializer,
    UpdateOffersSerializer,
    UpdateStockSerializer,
)
from modules.products.services import ProductService


def _not_found() -> Response:
    return Response(
        {"detail": "Product not found."},
        status=status.HTTP_404_NOT_FOUND,
    )


def _offers_rejected(exc: OfferValidationFailed) -> Response:
    return Response(
        {"detail": "Offer table is invalid.", "errors": exc.as_dict()},
        status=status.HTTP_400_BAD_REQUEST,
    )


def _persistence_failed() -> Response:
    return Response(
        {"detail": "The change could not be saved. Reload and try again."},
        status=status.HTTP_503_SERVICE_UNAVAILABLE,
    )


class ProductViewSet(ListModelMixin, GenericViewSet):
    """ViewSet for the product catalog and its offer tables.

    Uses ``ProductService`` with ``ProductDjangoRepository`` (DIP).
    Does **not** extend ``ModelViewSet``; all ORM access goes through
    the service/repository layer.
    """

    filterset_class = ProductFilter
    search_fields = ["name", "description"]
    ordering_fields = ["name", "mrp", "pieces_left"]
    ordering = ["name", "id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]
    queryset = Product.objects.all()
    serializer_class = ProductSerializer

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = ProductService(repository=ProductDjangoRepository())

    def get_permissions(self) -> list[BasePermission]:
        if self.action in {"list", "retrieve"}:
            return [AllowAny()]
        return [IsAdminUser()]

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def get_queryset(self):
        return self._service.list_products()

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/products/{pk}/"""
        if pk is None:
            return _not_found()
        try:
            product = self._service.get_product(pk)
        except ProductNotFound:
            return _not_found()
        return Response(ProductSerializer(product).data)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/products/"""
        serializer = CreateProductSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        fields = {
            "name": data["name"],
            "mrp": data["mrp"],
            "description": data.get("description", ""),
            "weight": data.get("weight", ""),
            "pieces_left": data.get("pieces_left"),
        }
        if data.get("offers"):
            fields["offers"] = [OfferTier(**tier) for tier in data["offers"]]

        try:
            dto = CreateProductDTO(**fields)
        except (PydanticValidationError, ValueError) as exc:
            return Response(
                {"detail": validation_detail(exc)},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            product = self._service.create_product(dto)
        except OfferValidationFailed as exc:
            return _offers_rejected(exc)
        except PersistenceError:
            return _persistence_failed()

        out = ProductSerializer(product)
        return Response(out.data, status=status.HTTP_201_CREATED)

    # ------------------------------------------------------------------
    # Offers
    # ------------------------------------------------------------------

    @action(detail=True, methods=["patch"], url_path="offers")
    def update_offers(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/products/{pk}/offers/

        Replaces the whole offer table.  The table is validated as a
        unit: any tier error rejects the request and nothing is saved.
        """
        serializer = UpdateOffersSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = UpdateOffersDTO(
            offers=[OfferTier(**tier) for tier in serializer.validated_data["offers"]]
        )

        if pk is None:
            return _not_found()
        try:
            product = self._service.update_offers(pk, dto)
        except ProductNotFound:
            return _not_found()
        except OfferValidationFailed as exc:
            return _offers_rejected(exc)
        except PersistenceError:
            return _persistence_failed()

        return Response(ProductSerializer(product).data)

    @action(detail=True, methods=["post"], url_path="offers/preview")
    def preview_offers(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/products/{pk}/offers/preview/

        Prices a draft offer table and reports its errors without
        saving anything.
        """
        serializer = UpdateOffersSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        offers = [OfferTier(**tier) for tier in serializer.validated_data["offers"]]

        if pk is None:
            return _not_found()
        try:
            preview = self._service.preview_offers(pk, offers)
        except ProductNotFound:
            return _not_found()

        return Response(OfferPreviewSerializer(preview).data)

    # ------------------------------------------------------------------
    # Stock
    # ------------------------------------------------------------------

    @action(detail=True, methods=["patch"], url_path="stock")
    def update_stock(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/products/{pk}/stock/

        Accepts ``{"pieces_left": N}``; ``null`` stops tracking stock.
        """
        serializer = UpdateStockSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = UpdateStockDTO(pieces_left=serializer.validated_data["pieces_left"])

        if pk is None:
            return _not_found()
        try:
            product = self._service.update_stock(pk, dto)
        except ProductNotFound:
            return _not_found()
        except PersistenceError:
            return _persistence_failed()

        return Response(ProductSerializer(product).data)
