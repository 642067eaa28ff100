from typing import Optional

from pydantic import BaseModel, Field


class ReturnRequest(BaseModel):
    reason: Optional[str] = Field(None, description="Shown to the applicant; required and non-blank")


class ProfileUpdate(BaseModel):
    """Fields an applicant may edit on their profile; omitted fields are left as they are."""

    full_name: Optional[str] = Field(None, alias="fullName")
    address: Optional[str] = None
    mobile: Optional[str] = None

    model_config = {"populate_by_name": True}
