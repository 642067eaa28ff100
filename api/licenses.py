from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.serializers import license_to_response
from database import get_db
from models import License

router = APIRouter(prefix="/api/licenses", tags=["licenses"])


@router.get("/{license_number}")
async def verify_license(license_number: str, db: AsyncSession = Depends(get_db)):
    """Public lookup behind the certificate's QR code."""
    result = await db.execute(select(License).where(License.license_number == license_number.strip().upper()))
    lic = result.scalar_one_or_none()
    if not lic:
        raise HTTPException(status_code=404, detail="License not found")
    return license_to_response(lic)
