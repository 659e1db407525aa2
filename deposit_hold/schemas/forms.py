from typing import Literal, Optional

from pydantic import BaseModel, Field

from deposit_hold.schemas.deposit import BookingID
from deposit_hold.storage.base import FormVariant


class FormSubmittedRequest(BaseModel):
    bookingID: BookingID
    variant: FormVariant


class DvlaCheckRequest(BaseModel):
    bookingID: BookingID
    licenceNumber: str = Field(min_length=5, max_length=20)
    checkCode: str = Field(min_length=6, max_length=12)  # DVLA "share driving licence" code


class DvlaManualVerifyRequest(BaseModel):
    bookingID: BookingID
    status: Literal["valid", "invalid"]
    note: Optional[str] = None
