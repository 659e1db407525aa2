from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime
from deposit_hold.db.session import Base

class IdempotencyRecord(Base):
    __tablename__ = "idempotency_records"

    namespace: Mapped[str] = mapped_column(String(40), primary_key=True)  # sent_deposits, processed_callbacks, cancel_notices
    key: Mapped[str] = mapped_column(String(120), primary_key=True)
    marked_at: Mapped[datetime] = mapped_column(DateTime, index=True)  # naive UTC
