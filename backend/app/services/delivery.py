"""Proof-of-delivery upload and the delivery completion it triggers."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Tuple

from app.core.logging import logger
from app.models.intelligence import GeoPoint
from app.models.logistics import (
    NotificationCreateRequest,
    OperatorStatus,
    ProofOfDelivery,
    ProofOfDeliveryRequest,
    ProofOfDeliveryResult,
    Severity,
    Shipment,
    ShipmentPatch,
    ShipmentStatus,
)
from app.services.database import DatabaseService, database
from app.services.routing import haversine_km


POD_MAX_DISTANCE_KM = 0.5


def verify_location(shipment: Shipment, request: ProofOfDeliveryRequest) -> Tuple[bool, Optional[str]]:
    """Check the upload point against the shipment destination.

    With destination coordinates on record the upload must be within
    POD_MAX_DISTANCE_KM; without them the reported address has to name the
    destination.
    """
    if shipment.destination_lat is not None and shipment.destination_lng is not None:
        distance = haversine_km(
            GeoPoint(lat=request.location_lat, lng=request.location_lng),
            GeoPoint(lat=shipment.destination_lat, lng=shipment.destination_lng),
        )
        if distance > POD_MAX_DISTANCE_KM:
            return False, (
                f"POD location is {distance:.2f}km from destination "
                f"(max allowed: {POD_MAX_DISTANCE_KM}km)"
            )
        return True, None
    if shipment.destination.lower() in request.location_address.lower():
        return True, None
    return False, f"POD address does not match destination {shipment.destination}"


def upload_proof_of_delivery(
    shipment_id: str,
    request: ProofOfDeliveryRequest,
    uploaded_by: str = "system",
    service: Optional[DatabaseService] = None,
) -> ProofOfDeliveryResult:
    """Record the POD on an in-transit shipment and deliver it when the location checks out."""
    service = service or database
    with service.store.transaction():
        shipment = service.get_shipment(shipment_id)
        if shipment.status != ShipmentStatus.IN_TRANSIT:
            raise ValueError("Shipment must be in transit to upload POD")
        verified, reason = verify_location(shipment, request)

        existing = {s.proof_of_delivery.id for s in service.store.get_state().shipments if s.proof_of_delivery}
        # Every field is set explicitly so the journaled patch replays it unchanged.
        pod = ProofOfDelivery(
            id=service.unique_id("pod", "POD-{seq:06d}", existing),
            photo_urls=list(request.photo_urls),
            signature_image_url=request.signature_image_url,
            recipient_name=" ".join(request.recipient_name.split()),
            recipient_relationship=request.recipient_relationship,
            delivery_notes=request.delivery_notes,
            location_lat=request.location_lat,
            location_lng=request.location_lng,
            location_address=request.location_address,
            uploaded_by=uploaded_by,
            uploaded_at=datetime.now(timezone.utc),
            verified=verified,
            verification_note=reason,
        )
        service.update_shipment(shipment_id, ShipmentPatch(proof_of_delivery=pod), actor=uploaded_by)
        service.add_shipment_update(
            shipment_id,
            f"Proof of delivery uploaded (received by {pod.recipient_name})",
            Severity.SUCCESS if verified else Severity.WARNING,
            location=request.location_address or None,
        )

        if verified:
            service.update_shipment_status(
                shipment_id,
                ShipmentStatus.DELIVERED,
                message=f"Delivered to {pod.recipient_name}",
                actor=uploaded_by,
            )
            if shipment.operator_id:
                try:
                    service.update_operator_status(shipment.operator_id, OperatorStatus.AVAILABLE)
                except KeyError:
                    logger.warning("Delivering operator not on record", operator_id=shipment.operator_id)
        else:
            service.create_notification(
                NotificationCreateRequest(
                    type=Severity.WARNING,
                    title="Proof of Delivery Needs Review",
                    message=f"{shipment_id}: {reason}",
                )
            )
        updated = service.get_shipment(shipment_id)

    logger.info(
        "Proof of delivery uploaded",
        shipment_id=shipment_id,
        pod_id=pod.id,
        verified=verified,
        uploaded_by=uploaded_by,
    )
    return ProofOfDeliveryResult(success=True, pod_id=pod.id, verified=verified, reason=reason, shipment=updated)
