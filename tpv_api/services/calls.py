"""Call initiation service.

Validates a TPV form submission, places the verification call through Vapi,
and records the request so the end-of-call webhook can be reconciled against
it. The row is inserted before the client is answered so the correlation key
exists before any webhook could plausibly arrive.
"""

import logging
import re
from dataclasses import dataclass, field

from fastapi import BackgroundTasks
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tpv_api.core.agents import AgentRegistry
from tpv_api.core.config import settings
from tpv_api.core.errors import PersistenceError, ValidationError
from tpv_api.models.tpv_request import TPVRequest
from tpv_api.schemas.tpv_request import TPVRequestIn
from tpv_api.services.amortization import resolve_monthly_payment
from tpv_api.services.sheets import run_mirror_sync
from tpv_api.services.vapi import VapiClient

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = {
    "agent_id": "agentId",
    "phone_number": "phoneNumber",
    "customer_name": "customerName",
    "address": "address",
    "products": "products",
    "sales_price": "salesPrice",
}


@dataclass
class InitiatedCall:
    call_id: str
    call_data: dict = field(default_factory=dict)
    persisted: bool = True


def _blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, (list, tuple)):
        return not any(str(v).strip() for v in value)
    return not str(value).strip()


def _text(value) -> str:
    return "" if value is None else str(value)


def join_products(products) -> str:
    """Products arrive as a list from the form or a pre-joined string."""
    if isinstance(products, (list, tuple)):
        return ", ".join(str(p).strip() for p in products if str(p).strip())
    return _text(products).strip()


def normalize_phone(raw: str, country_code: str | None = None) -> str:
    """Strip formatting and prefix the country code: '(416) 555-1234' → '+14165551234'."""
    country_code = country_code or settings.DEFAULT_COUNTRY_CODE
    digits = re.sub(r"\D", "", raw or "")
    if len(digits) < 10:
        raise ValidationError(f"Invalid phone number: {raw!r}")
    if len(digits) == 10 + len(country_code) and digits.startswith(country_code):
        digits = digits[len(country_code):]
    return f"+{country_code}{digits}"


def split_customer_name(customer_name: str) -> tuple[str, str]:
    first, _, last = customer_name.strip().partition(" ")
    return first, last.strip()


def validate_request(form: TPVRequestIn, registry: AgentRegistry) -> None:
    """Raise ValidationError before anything is sent or written."""
    missing = [wire for attr, wire in REQUIRED_FIELDS.items() if _blank(getattr(form, attr))]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    if registry.resolve(form.agent_id) is None:
        raise ValidationError("Invalid agent ID")


def build_variable_values(form: TPVRequestIn, monthly_payment: str) -> dict:
    """Flatten the business fields into Vapi assistant variables."""
    first_name, last_name = split_customer_name(form.customer_name or "")
    finance = form.payment_option == "finance"
    return {
        "agentId": _text(form.agent_id),
        "companyName": _text(form.company_name),
        "customerName": _text(form.customer_name),
        "firstName": _text(form.first_name) or first_name,
        "lastName": _text(form.last_name) or last_name,
        "address": _text(form.address),
        "city": _text(form.city),
        "province": _text(form.province),
        "postalCode": _text(form.postal_code),
        "phoneNumber": _text(form.phone_number),
        "email": _text(form.email),
        "products": join_products(form.products),
        "salesPrice": _text(form.sales_price),
        "paymentOption": _text(form.payment_option),
        "financeCompany": _text(form.finance_company) if finance else "",
        "interestRate": _text(form.interest_rate) if finance else "",
        "promotionalTerm": _text(form.promotional_term) if finance else "",
        "amortization": _text(form.amortization) if finance else "",
        "monthlyPayment": monthly_payment,
    }


def build_call_command(form: TPVRequestIn, customer_phone: str, monthly_payment: str) -> dict:
    """Build the Vapi POST /call/phone body.

    ``metadata`` is echoed back verbatim in the end-of-call report.
    """
    return {
        "assistantId": form.assistant_id or settings.VAPI_ASSISTANT_ID or None,
        "phoneNumberId": form.phone_number_id or settings.VAPI_PHONE_NUMBER_ID or None,
        "customer": {
            "number": customer_phone,
            "name": _text(form.customer_name),
        },
        "assistantOverrides": {
            "variableValues": build_variable_values(form, monthly_payment),
        },
        "metadata": {
            "agentId": form.agent_id,
            "customerName": form.customer_name,
            "address": form.address,
        },
    }


def build_request_row(form: TPVRequestIn, customer_phone: str, monthly_payment: str, vapi_call_id: str) -> TPVRequest:
    first_name, last_name = split_customer_name(form.customer_name or "")
    finance = form.payment_option == "finance"
    return TPVRequest(
        vapi_call_id=vapi_call_id,
        agent_id=form.agent_id,
        first_name=form.first_name or first_name,
        last_name=form.last_name or last_name or None,
        customer_name=form.customer_name,
        company_name=form.company_name,
        customer_address=form.address,
        city=form.city,
        province=form.province,
        postal_code=form.postal_code,
        customer_phone=customer_phone,
        email=form.email or None,
        products=join_products(form.products),
        sales_price=_text(form.sales_price),
        payment_option=form.payment_option,
        finance_company=form.finance_company if finance else None,
        interest_rate=(_text(form.interest_rate) or None) if finance else None,
        promotional_term=(_text(form.promotional_term) or None) if finance else None,
        amortization=(_text(form.amortization) or None) if finance else None,
        monthly_payment=monthly_payment or None,
        status="initiated",
    )


async def initiate_tpv_call(
    db: AsyncSession,
    form: TPVRequestIn,
    registry: AgentRegistry,
    vapi: VapiClient,
    background_tasks: BackgroundTasks | None = None,
    session_factory: async_sessionmaker | None = None,
) -> InitiatedCall:
    """Validate → place call → persist → schedule mirror sync."""
    validate_request(form, registry)
    customer_phone = normalize_phone(form.phone_number)
    logger.info("TPV request from agent %s for %s (%s)", form.agent_id, form.customer_name, customer_phone)

    # Amortization applies only to financed sales
    monthly_payment = resolve_monthly_payment(
        form.payment_option,
        form.finance_company,
        form.sales_price,
        form.interest_rate,
        form.amortization,
        supplied=form.monthly_payment,
    )

    command = build_call_command(form, customer_phone, monthly_payment)
    call_data = await vapi.create_phone_call(command)
    call_id = call_data.get("id")

    persisted = True
    try:
        db.add(build_request_row(form, customer_phone, monthly_payment, call_id))
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        persisted = False
        error = PersistenceError(f"Failed to record TPV request for call {call_id}: {e}")
        logger.error("%s", error)
    else:
        logger.info("TPV request saved: call_id=%s status=initiated", call_id)

    if persisted and background_tasks is not None and session_factory is not None:
        background_tasks.add_task(run_mirror_sync, session_factory)

    return InitiatedCall(call_id=call_id, call_data=call_data, persisted=persisted)
