"""
API Dependencies

FastAPI dependencies resolving the caller's organization and the inventory
service instance.
"""

from typing import Optional

from fastapi import Header, HTTPException, Request

ORGANIZATION_HEADER = "X-Organization-ID"


async def get_organization_id(
    x_organization_id: Optional[str] = Header(default=None, alias=ORGANIZATION_HEADER),
) -> Optional[str]:
    """
    Organization of the caller.

    Authentication happens upstream; a missing header is passed on as None
    so the service can answer with an empty result.
    """
    if x_organization_id is None:
        return None
    return x_organization_id.strip() or None


def get_inventory_service(request: Request):
    """Service instance created by the application lifespan"""
    service = getattr(request.app.state, "inventory_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Inventory service not initialized")
    return service
