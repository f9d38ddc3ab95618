# checkin/models/idempotency.py
from sqlalchemy import Integer, LargeBinary, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from checkin.db.base import Base


class IdempotencyKey(Base):
    __tablename__ = "idempotency_keys"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    key: Mapped[str] = mapped_column(String(80), index=True)
    signature: Mapped[str] = mapped_column(String(80), index=True)
    response_body: Mapped[bytes] = mapped_column(LargeBinary)
    response_mime: Mapped[str] = mapped_column(String(80))
    status_code: Mapped[int] = mapped_column(Integer)

    __table_args__ = (UniqueConstraint("key", "signature", name="uq_idempotency_key_signature"),)
