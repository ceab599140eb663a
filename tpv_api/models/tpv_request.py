from sqlalchemy import Column, String, DateTime, Enum, Integer, CheckConstraint
from sqlalchemy.types import Uuid
import uuid
from datetime import datetime
from tpv_api.core.database import Base

TPV_STATUSES = ("initiated", "completed", "failed")


class TPVRequest(Base):
    __tablename__ = "tpv_requests"
    __table_args__ = (
        CheckConstraint("call_duration_seconds >= 0", name="ck_tpv_requests_duration_non_negative"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    vapi_call_id = Column(String, unique=True, index=True, nullable=True)  # Vapi call ID
    agent_id = Column(String, index=True, nullable=False)

    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    customer_name = Column(String, nullable=False)
    company_name = Column(String, nullable=True)

    customer_address = Column(String, nullable=False)
    city = Column(String, nullable=True)
    province = Column(String, nullable=True)
    postal_code = Column(String, nullable=True)

    customer_phone = Column(String, nullable=False)  # E.164
    email = Column(String, nullable=True)

    # Commercial terms, stored as submitted
    products = Column(String, nullable=True)
    sales_price = Column(String, nullable=False)
    payment_option = Column(String, nullable=True)
    finance_company = Column(String, nullable=True)
    interest_rate = Column(String, nullable=True)
    promotional_term = Column(String, nullable=True)
    amortization = Column(String, nullable=True)
    monthly_payment = Column(String, nullable=True)

    status = Column(Enum(*TPV_STATUSES, name="tpv_status"), default="initiated", nullable=False)
    ended_reason = Column(String, nullable=True)
    call_duration_seconds = Column(Integer, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
