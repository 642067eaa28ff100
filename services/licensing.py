from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from models import Applicant, Application, License

logger = logging.getLogger(__name__)

NUMBER_ATTEMPTS = 3


def add_years(start: date, years: int) -> date:
    """Same calendar day ``years`` later; 29 February falls back to 28 February."""
    try:
        return start.replace(year=start.year + years)
    except ValueError:
        return start.replace(year=start.year + years, day=28)


def expiry_for(issue_date: date, term_years: Optional[int] = None) -> date:
    return add_years(issue_date, settings.license_term_years if term_years is None else term_years)


def format_license_number(year: int, sequence: int) -> str:
    return f"C{year}{sequence:02d}"


def verification_url(license_number: str) -> str:
    """Payload encoded in the certificate's QR code."""
    return f"{settings.license_verification_base_url.rstrip('/')}/{license_number}"


def is_valid_on(record: License, on: Optional[date] = None) -> bool:
    today = on or datetime.now(timezone.utc).date()
    return record.issue_date <= today <= record.expiry_date


async def _next_sequence(session: AsyncSession, year: int) -> int:
    result = await session.execute(
        select(func.count(License.id)).where(func.extract("year", License.issue_date) == year)
    )
    return (result.scalar_one() or 0) + 1


async def issue_license(
    session: AsyncSession,
    application: Application,
    applicant: Applicant,
    issue_date: Optional[date] = None,
) -> License:
    """Create the one License for an approved application. Retries when a concurrent approval took the number."""
    issued_on = issue_date or datetime.now(timezone.utc).date()
    last_error: Optional[IntegrityError] = None
    for attempt in range(NUMBER_ATTEMPTS):
        sequence = await _next_sequence(session, issued_on.year) + attempt
        number = format_license_number(issued_on.year, sequence)
        issued = License(
            id=f"lic-{uuid.uuid4().hex[:12]}",
            license_number=number,
            application_id=application.id,
            holder_name=applicant.full_name,
            nid=applicant.nid,
            bin=applicant.bin,
            address=applicant.address,
            issue_date=issued_on,
            expiry_date=expiry_for(issued_on),
        )
        try:
            async with session.begin_nested():
                session.add(issued)
        except IntegrityError as e:
            logger.warning("License number %s already taken, retrying", number)
            last_error = e
            continue
        logger.info("Issued license %s for application %s", number, application.application_number)
        return issued
    raise last_error
