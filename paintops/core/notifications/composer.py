"""Email composition: placeholder context, template substitution and the approval block."""

from __future__ import annotations

import re
from datetime import date, datetime
from decimal import Decimal

from jinja2 import Environment, select_autoescape
from pydantic import BaseModel

from paintops.config import settings
from paintops.core.billing.money import ZERO, format_currency, format_plain, to_money
from paintops.core.billing.schemas import JobBillingBreakdown

MISSING = "N/A"

RECIPIENT_ALIASES = (
    "ap_contact_name",
    "recipient_name",
    "contact_name",
    "name",
    "property_owner",
    "property_owner_name",
    "manager_name",
    "recipient",
)

_DOUBLE = re.compile(r"\{\{\s*([\w.]+)\s*\}\}")
_SINGLE = re.compile(r"(?<!\{)\{\s*([\w.]+)\s*\}(?!\})")
_LEFTOVER = re.compile(r"(?<!\{)\{([^{}\n]+)\}(?!\})")

_env = Environment(autoescape=select_autoescape(default=True, default_for_string=True))

APPROVAL_BUTTON_TEMPLATE = _env.from_string(
    """<div style="text-align: center; margin: 30px 0; padding: 20px; background-color: #f8f9fa; border-radius: 8px;">
  <h3 style="margin: 0 0 15px 0; color: #1f2937;">One-Click Approval</h3>
  <a href="{{ url }}" style="display: inline-block; background-color: #22c55e; color: white; padding: 15px 30px; text-decoration: none; border-radius: 8px; font-weight: bold; font-size: 16px; margin: 10px 0;">APPROVE EXTRA CHARGES - {{ amount }}</a>
  <p style="margin: 15px 0 5px 0; font-size: 14px; color: #6b7280;">Click the button above to approve these charges instantly and move the job to Work Order phase.</p>
  <p style="margin: 0; font-size: 12px; color: #9ca3af;">Secure link &bull; Expires in {{ days }} days &bull; You'll receive confirmation after approval</p>
</div>"""
)

PHOTO_LINKS_TEMPLATE = _env.from_string(
    """<div style="margin-top: 16px;"><strong>Job photos:</strong><ul>
{%- for name, url in links %}<li><a href="{{ url }}">{{ name }}</a></li>{% endfor -%}
</ul></div>"""
)


class ComposedEmail(BaseModel):
    subject: str
    body: str
    signature: str | None = None


def _text(value) -> str:
    if value is None or value == "":
        return MISSING
    if isinstance(value, datetime):
        return value.strftime("%m/%d/%Y")
    if isinstance(value, date):
        return value.strftime("%m/%d/%Y")
    if isinstance(value, Decimal):
        return format_plain(value)
    return str(value)


def _address(prop: dict) -> str | None:
    parts = [prop.get("address"), prop.get("address_2")]
    street = ", ".join(p for p in parts if p)
    return street or None


def _extra_hours(work_order: dict, billing: JobBillingBreakdown | None) -> Decimal | None:
    if work_order.get("extra_hours"):
        return to_money(work_order["extra_hours"])
    if billing is None:
        return None
    hours = sum(
        (ln.quantity for ln in billing.lines if ln.section == "extra" and ln.unit_label == "Hours"),
        ZERO,
    )
    return hours or None


def _extra_description(work_order: dict, billing: JobBillingBreakdown | None) -> str | None:
    if work_order.get("extra_charges_description"):
        return work_order["extra_charges_description"]
    if billing is None:
        return None
    labels = [ln.label for ln in billing.lines if ln.section == "extra"]
    return "; ".join(labels) or None


def build_context(
    details: dict,
    billing: JobBillingBreakdown | None = None,
    ap_contact_name: str | None = None,
) -> dict[str, str]:
    """Placeholder values for a job; anything unknown renders as ``N/A``."""
    prop = details.get("property") or {}
    phase = details.get("job_phase") or {}
    work_order = details.get("work_order") or {}
    contact = ap_contact_name or prop.get("ap_name")
    estimated = (
        format_currency(billing.totals.extra_bill_total)
        if billing is not None and billing.totals.extra_bill_total > 0
        else None
    )

    values = {
        "property_name": prop.get("property_name"),
        "property_address": _address(prop),
        "property_city": prop.get("city"),
        "property_state": prop.get("state"),
        "property_zip": prop.get("zip"),
        "ap_email": prop.get("ap_email"),
        "unit_number": details.get("unit_number"),
        "job_number": details.get("job_number"),
        "work_order_number": details.get("job_number"),
        "job_type": details.get("job_type"),
        "job_phase": phase.get("job_phase_label"),
        "scheduled_date": details.get("scheduled_date"),
        "completion_date": details.get("completed_date"),
        "extra_charges_description": _extra_description(work_order, billing),
        "extra_hours": _extra_hours(work_order, billing),
        "estimated_cost": estimated,
    }
    for alias in RECIPIENT_ALIASES:
        values[alias] = contact

    context = {key: _text(value) for key, value in values.items()}
    context.update({
        "property.name": context["property_name"],
        "property.address": context["property_address"],
        "property.city": context["property_city"],
        "property.state": context["property_state"],
        "property.zip": context["property_zip"],
        "property.ap_email": context["ap_email"],
        "job.unit_number": context["unit_number"],
        "job.job_number": context["job_number"],
        "job.work_order_number": context["work_order_number"],
        "job.type": context["job_type"],
        "job.phase": context["job_phase"],
        "job.scheduled_date": context["scheduled_date"],
        "job.completion_date": context["completion_date"],
        "work_order.extra_hours": context["extra_hours"],
        "work_order.extra_charges_description": context["extra_charges_description"],
    })
    return context


def render_text(text: str | None, context: dict[str, str]) -> str:
    """Substitute ``{{ token }}`` and ``{ token }`` placeholders, case-insensitively."""
    if not text:
        return ""
    lookup = {key.lower(): value for key, value in context.items()}

    def replace(match: re.Match) -> str:
        return lookup.get(match.group(1).lower(), match.group(0))

    text = _DOUBLE.sub(replace, text)
    text = _SINGLE.sub(replace, text)
    return _LEFTOVER.sub(lambda m: m.group(1), text)


def compose(
    subject: str, body: str, signature: str | None, context: dict[str, str]
) -> ComposedEmail:
    return ComposedEmail(
        subject=render_text(subject, context),
        body=render_text(body, context),
        signature=render_text(signature, context) or None,
    )


def approval_button_html(url: str, amount: Decimal | None) -> str:
    return APPROVAL_BUTTON_TEMPLATE.render(
        url=url,
        amount=format_currency(amount if amount is not None else ZERO),
        days=settings.APPROVAL_TOKEN_TTL_DAYS,
    )


def photo_links_html(links: list[tuple[str, str]]) -> str:
    """Render (file name, url) pairs as the email's photo list."""
    if not links:
        return ""
    return PHOTO_LINKS_TEMPLATE.render(links=links)
