"""Server-side model of the create-shipment form."""
from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from app.core.logging import logger
from app.models.logistics import (
    BusinessModel,
    Shipment,
    ShipmentCreateRequest,
    Urgency,
)
from app.services.app_store import AppStore
from app.services.database import EMAIL_PATTERN, DatabaseService


class ShipmentFormFields(BaseModel):
    """Raw form inputs; numbers arrive as strings the way a form posts them."""

    pickup_location: str = ""
    destination: str = ""
    weight: str = ""
    dimensions: str = ""
    special_handling: str = ""
    expected_delivery: str = ""
    customer_name: str = ""
    customer_phone: str = ""
    customer_email: str = ""
    price: str = ""
    urgency: Urgency = Urgency.STANDARD


class ShipmentFormResult(BaseModel):
    ok: bool
    errors: Dict[str, str] = Field(default_factory=dict)
    shipment: Optional[Shipment] = None


def _parse_number(raw: str) -> Optional[float]:
    try:
        return float(str(raw).strip())
    except ValueError:
        return None


class ShipmentForm:
    """Holds field state plus the selected business model between edits."""

    REQUIRED_FIELDS = {
        "pickup_location": "Pickup location is required",
        "destination": "Destination is required",
        "customer_name": "Customer name is required",
        "customer_phone": "Customer phone is required",
        "customer_email": "Customer email is required",
    }

    def __init__(self, model: BusinessModel = BusinessModel.SUBSCRIPTION) -> None:
        self.fields = ShipmentFormFields()
        self.model = BusinessModel(model)

    def set_model(self, model: BusinessModel) -> None:
        self.model = BusinessModel(model)

    def update(self, **values: Any) -> ShipmentFormFields:
        unknown = sorted(set(values) - set(ShipmentFormFields.model_fields))
        if unknown:
            raise ValueError(f"Unknown form field(s): {', '.join(unknown)}")
        merged = {**self.fields.model_dump(), **values}
        self.fields = ShipmentFormFields.model_validate(merged)
        return self.fields

    def reset(self) -> None:
        self.fields = ShipmentFormFields()

    def validate(self) -> Dict[str, str]:
        errors: Dict[str, str] = {}
        data = self.fields.model_dump()
        for name, message in self.REQUIRED_FIELDS.items():
            if not str(data[name]).strip():
                errors[name] = message

        weight = _parse_number(self.fields.weight)
        if weight is None or weight <= 0:
            errors["weight"] = "Weight must be greater than 0"

        email = self.fields.customer_email.strip()
        if email and not EMAIL_PATTERN.match(email):
            errors["customer_email"] = "Please enter a valid email address"

        if self.model == BusinessModel.PAY_PER_SHIPMENT:
            price = _parse_number(self.fields.price)
            if price is None or price < 0:
                errors["price"] = "Price is required for pay-per-shipment"
        return errors

    def to_request(self, customer_id: Optional[str] = None, company_id: Optional[str] = None) -> ShipmentCreateRequest:
        price = _parse_number(self.fields.price) if self.model == BusinessModel.PAY_PER_SHIPMENT else None
        return ShipmentCreateRequest(
            pickup_location=self.fields.pickup_location.strip(),
            destination=self.fields.destination.strip(),
            weight=_parse_number(self.fields.weight) or 0.0,
            dimensions=self.fields.dimensions.strip(),
            special_handling=self.fields.special_handling.strip() or None,
            expected_delivery=self.fields.expected_delivery.strip(),
            customer_name=self.fields.customer_name.strip(),
            customer_phone=self.fields.customer_phone.strip(),
            customer_email=self.fields.customer_email.strip(),
            price=price,
            urgency=self.fields.urgency,
            model=self.model,
            customer_id=customer_id,
            company_id=company_id,
        )

    def submit(
        self,
        store: AppStore,
        actor: str = "system",
        customer_id: Optional[str] = None,
        company_id: Optional[str] = None,
    ) -> ShipmentFormResult:
        """Create the shipment and clear the form, or report field errors untouched."""
        errors = self.validate()
        if errors:
            logger.info("Shipment form rejected", fields=sorted(errors))
            return ShipmentFormResult(ok=False, errors=errors)

        shipment = DatabaseService(store).create_shipment(
            self.to_request(customer_id=customer_id, company_id=company_id),
            actor=actor,
        )
        self.reset()
        return ShipmentFormResult(ok=True, shipment=shipment)
