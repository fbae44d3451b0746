"""Order API views.

Exposes the ``OrderService`` via HTTP using DRF ViewSets.
Domain exceptions are caught and translated into appropriate
HTTP status codes; the view never swallows generic exceptions.

Customers see and act on their own orders only.  Staff users see every
order and drive fulfilment (status changes and partial edits).
"""

from __future__ import annotations

from uuid import UUID

from django_filters.rest_framework import DjangoFilterBackend
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.permissions import BasePermission, IsAdminUser, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.core.exceptions import NotFoundError, PersistenceError, validation_detail
from modules.orders.dtos import CartItemDTO, CreateOrderDTO, EditOrderItemsDTO
from modules.orders.exceptions import (
    EmptyCart,
    InsufficientStock,
    InvalidOrderEdit,
    InvalidTransitionError,
    NoChangesError,
    OrderNotEditable,
    OtpMismatchError,
)
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    CancelOrderSerializer,
    CreateOrderSerializer,
    EditItemsSerializer,
    OrderListSerializer,
    OrderSerializer,
    SetStatusSerializer,
    VerifyOtpSerializer,
)
from modules.orders.services import OrderService
from modules.products.repositories.django_repository import ProductDjangoRepository


def _error(detail: str, code: int) -> Response:
    return Response({"detail": detail}, status=code)


def _parse_id(pk: str | None) -> UUID | None:
    if pk is None:
        return None
    try:
        return UUID(pk)
    except ValueError:
        return None


class OrderViewSet(GenericViewSet):
    """ViewSet for Order operations.

    Uses ``OrderService`` with injected repositories (DIP).
    Does **not** extend ``ModelViewSet``; all ORM access goes through
    the service/repository layer.
    """

    queryset = Order.objects.all()
    filterset_class = OrderFilter
    search_fields = ["order_number", "phone"]
    ordering_fields = ["created_at", "total", "status"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = OrderService(
            order_repository=OrderDjangoRepository(),
            product_repository=ProductDjangoRepository(),
        )

    def get_permissions(self) -> list[BasePermission]:
        if self.action in {"set_status", "edit_items"}:
            return [IsAdminUser()]
        return [IsAuthenticated()]

    def get_throttles(self) -> list[BaseThrottle]:
        """Throttle scopes per action."""
        throttle_scope: str | None
        if self.action == "create":
            throttle_scope = "order_creation"
        elif self.action in {"list", "retrieve"}:
            throttle_scope = "order_listing"
        elif self.action == "verify_otp":
            throttle_scope = "otp_verification"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    def _owner_scope(self, request: Request) -> int | None:
        """Customer id to restrict to, or ``None`` for staff."""
        return None if request.user.is_staff else request.user.pk

    def _render(self, request: Request, order: Order, code: int = status.HTTP_200_OK):
        serializer = OrderSerializer(order, context={"request": request})
        return Response(serializer.data, status=code)

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/

        Supports idempotency via the ``Idempotency-Key`` header.
        """
        create_serializer = CreateOrderSerializer(data=request.data)
        create_serializer.is_valid(raise_exception=True)
        data = create_serializer.validated_data

        try:
            dto = CreateOrderDTO(
                customer_id=request.user.pk,
                items=[
                    CartItemDTO(product_id=item["product_id"], quantity=item["quantity"])
                    for item in data["items"]
                ],
                phone=data["phone"],
                address=data["address"],
                note=data["note"],
                idempotency_key=request.headers.get("Idempotency-Key"),
            )
        except (PydanticValidationError, ValueError) as exc:
            return _error(validation_detail(exc), status.HTTP_400_BAD_REQUEST)

        try:
            order = self._service.create_order(dto)
        except EmptyCart as exc:
            return _error(str(exc), status.HTTP_400_BAD_REQUEST)
        except NotFoundError as exc:
            return _error(str(exc), status.HTTP_404_NOT_FOUND)
        except InsufficientStock as exc:
            return _error(str(exc), status.HTTP_409_CONFLICT)
        except PersistenceError as exc:
            return _error(str(exc), status.HTTP_503_SERVICE_UNAVAILABLE)

        return self._render(request, order, status.HTTP_201_CREATED)

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def get_queryset(self):
        if getattr(self, "swagger_fake_view", False):
            return Order.objects.none()
        return self._service.list_orders(customer_id=self._owner_scope(self.request))

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/

        Filtering (status, order number, product, placed date) is handled by
        ``OrderFilter`` via ``filter_backends``.  Results are paginated.
        """
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        if page is not None:
            serializer = OrderListSerializer(page, many=True)
            return self.get_paginated_response(serializer.data)
        return Response(OrderListSerializer(queryset, many=True).data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        order_id = _parse_id(pk)
        if order_id is None:
            return _error("Order not found.", status.HTTP_404_NOT_FOUND)
        try:
            order = self._service.get_order(
                str(order_id), customer_id=self._owner_scope(request)
            )
        except NotFoundError:
            return _error("Order not found.", status.HTTP_404_NOT_FOUND)
        return self._render(request, order)

    # ------------------------------------------------------------------
    # Fulfilment (staff)
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"], url_path="status")
    def set_status(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/status/

        Moves the order along the fulfilment state machine.  Delivery is
        not accepted here; it requires the customer's OTP.
        """
        serializer = SetStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        order_id = _parse_id(pk)
        if order_id is None:
            return _error("Order not found.", status.HTTP_404_NOT_FOUND)
        try:
            order = self._service.set_status(
                order_id=order_id,
                new_status=serializer.validated_data["status"],
                changed_by_id=request.user.pk,
                notes=serializer.validated_data["notes"],
            )
        except NotFoundError:
            return _error("Order not found.", status.HTTP_404_NOT_FOUND)
        except InvalidTransitionError as exc:
            return _error(str(exc), status.HTTP_409_CONFLICT)
        except PersistenceError as exc:
            return _error(str(exc), status.HTTP_503_SERVICE_UNAVAILABLE)

        return self._render(request, order)

    @action(detail=True, methods=["post"], url_path="edit")
    def edit_items(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/edit/

        Body: ``{"items": [{"item_id": ..., "quantity": N}, ...]}``.
        """
        serializer = EditItemsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = EditOrderItemsDTO(
            quantities={
                item["item_id"]: item["quantity"]
                for item in serializer.validated_data["items"]
            }
        )

        order_id = _parse_id(pk)
        if order_id is None:
            return _error("Order not found.", status.HTTP_404_NOT_FOUND)
        try:
            order = self._service.edit_items(
                order_id=order_id, dto=dto, changed_by_id=request.user.pk
            )
        except NotFoundError:
            return _error("Order not found.", status.HTTP_404_NOT_FOUND)
        except (InvalidOrderEdit, NoChangesError) as exc:
            return _error(str(exc), status.HTTP_400_BAD_REQUEST)
        except (OrderNotEditable, InsufficientStock) as exc:
            return _error(str(exc), status.HTTP_409_CONFLICT)
        except PersistenceError as exc:
            return _error(str(exc), status.HTTP_503_SERVICE_UNAVAILABLE)

        return self._render(request, order)

    # ------------------------------------------------------------------
    # Delivery / cancellation
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"], url_path="verify-otp")
    def verify_otp(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/verify-otp/

        Marks the order DELIVERED when the code matches.  Available to the
        order's customer and to staff.
        """
        serializer = VerifyOtpSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        order_id = _parse_id(pk)
        if order_id is None:
            return _error("Order not found.", status.HTTP_404_NOT_FOUND)
        try:
            order = self._service.verify_otp(
                order_id=order_id,
                code=serializer.validated_data["otp"],
                changed_by_id=request.user.pk,
                customer_id=self._owner_scope(request),
            )
        except NotFoundError:
            return _error("Order not found.", status.HTTP_404_NOT_FOUND)
        except OtpMismatchError as exc:
            return _error(str(exc), status.HTTP_400_BAD_REQUEST)
        except InvalidTransitionError as exc:
            return _error(str(exc), status.HTTP_409_CONFLICT)
        except PersistenceError as exc:
            return _error(str(exc), status.HTTP_503_SERVICE_UNAVAILABLE)

        return self._render(request, order)

    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/cancel/

        Lets a customer cancel their own order while it is still PENDING;
        reserved stock is released.
        """
        serializer = CancelOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        order_id = _parse_id(pk)
        if order_id is None:
            return _error("Order not found.", status.HTTP_404_NOT_FOUND)
        try:
            order = self._service.cancel_order(
                order_id=order_id,
                customer_id=request.user.pk,
                notes=serializer.validated_data["notes"],
            )
        except NotFoundError:
            return _error("Order not found.", status.HTTP_404_NOT_FOUND)
        except InvalidTransitionError as exc:
            return _error(str(exc), status.HTTP_409_CONFLICT)
        except PersistenceError as exc:
            return _error(str(exc), status.HTTP_503_SERVICE_UNAVAILABLE)

        return self._render(request, order)
