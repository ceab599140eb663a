"""Create tpv_requests table

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "tpv_requests",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("vapi_call_id", sa.String, unique=True, index=True, nullable=True),
        sa.Column("agent_id", sa.String, index=True, nullable=False),
        sa.Column("first_name", sa.String, nullable=True),
        sa.Column("last_name", sa.String, nullable=True),
        sa.Column("customer_name", sa.String, nullable=False),
        sa.Column("company_name", sa.String, nullable=True),
        sa.Column("customer_address", sa.String, nullable=False),
        sa.Column("city", sa.String, nullable=True),
        sa.Column("province", sa.String, nullable=True),
        sa.Column("postal_code", sa.String, nullable=True),
        sa.Column("customer_phone", sa.String, nullable=False),
        sa.Column("email", sa.String, nullable=True),
        sa.Column("products", sa.String, nullable=True),
        sa.Column("sales_price", sa.String, nullable=False),
        sa.Column("payment_option", sa.String, nullable=True),
        sa.Column("finance_company", sa.String, nullable=True),
        sa.Column("interest_rate", sa.String, nullable=True),
        sa.Column("promotional_term", sa.String, nullable=True),
        sa.Column("amortization", sa.String, nullable=True),
        sa.Column("monthly_payment", sa.String, nullable=True),
        sa.Column(
            "status",
            sa.Enum("initiated", "completed", "failed", name="tpv_status"),
            nullable=False,
            server_default="initiated",
        ),
        sa.Column("ended_reason", sa.String, nullable=True),
        sa.Column("call_duration_seconds", sa.Integer, nullable=True),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now(), nullable=False, index=True),
        sa.Column("updated_at", sa.DateTime, server_default=sa.func.now()),
        sa.CheckConstraint("call_duration_seconds >= 0", name="ck_tpv_requests_duration_non_negative"),
    )


def downgrade() -> None:
    op.drop_table("tpv_requests")
    op.execute("DROP TYPE IF EXISTS tpv_status")
