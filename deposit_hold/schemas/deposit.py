from typing import Annotated, Optional

from pydantic import BaseModel, BeforeValidator, Field

# Planyo ids arrive as numbers from some callers and strings from others.
BookingID = Annotated[str, BeforeValidator(lambda v: str(v).strip() if v is not None else v), Field(min_length=1)]


class CreateIntentRequest(BaseModel):
    bookingID: BookingID
    amount: int


class SendLinkRequest(BaseModel):
    bookingID: BookingID
    amount: Optional[int] = None
    locationId: Optional[str] = None
    force: bool = False


class HoldActionRequest(BaseModel):
    payment_intent_id: str
    # capture only; omit to capture the full hold
    amount_to_capture: Optional[int] = None


class DepositConfirmationRequest(BaseModel):
    bookingID: BookingID
    amount: int
