from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column
from deposit_hold.db.session import Base

class FormStatusRecord(Base):
    __tablename__ = "form_status"

    booking_id: Mapped[str] = mapped_column(String(40), primary_key=True)
    form_variant: Mapped[str | None] = mapped_column(String(30), nullable=True)
    form_submitted_at: Mapped[str | None] = mapped_column(String(40), nullable=True)  # ISO-8601, same as the JSON file
    dvla_status: Mapped[str] = mapped_column(String(20), default="pending")  # pending, checked, valid, invalid
    licence_number: Mapped[str | None] = mapped_column(String(40), nullable=True)
    dvla_check_code: Mapped[str | None] = mapped_column(String(40), nullable=True)
    dvla_updated_at: Mapped[str | None] = mapped_column(String(40), nullable=True)
    dvla_note: Mapped[str | None] = mapped_column(Text, nullable=True)
