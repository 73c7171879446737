"""
Tenant service: resolve the school a request or scheduled run acts on.

- tenant_id (UUID) comes from the access token (HTTP) or from the promotion config row (scheduler).
- A tenant that cannot be resolved is fatal to the operation; nothing is mutated.
"""
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from schoolledger.core.enums import SchoolType
from schoolledger.core.exceptions import NotFoundError, ServiceError
from schoolledger.core.models import Tenant
from fastapi import status


async def get_tenant(db: AsyncSession, tenant_id: UUID) -> Optional[Tenant]:
    result = await db.execute(select(Tenant).where(Tenant.id == tenant_id))
    return result.scalar_one_or_none()


async def get_tenant_or_404(db: AsyncSession, tenant_id: UUID) -> Tenant:
    """Fetch tenant by id; raise NotFoundError if missing or not ACTIVE."""
    tenant = await get_tenant(db, tenant_id)
    if tenant is None or tenant.status != "ACTIVE":
        raise NotFoundError("School not found")
    return tenant


def school_type_of(tenant: Tenant) -> SchoolType:
    """Parse the tenant's school_type column; unknown values are a configuration error."""
    try:
        return SchoolType((tenant.school_type or "").strip().upper())
    except ValueError:
        raise ServiceError(
            f"School has an invalid school type: {tenant.school_type!r}",
            status.HTTP_400_BAD_REQUEST,
        )
