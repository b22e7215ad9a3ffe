import re
import uuid
from datetime import date
from decimal import Decimal

from paintops.core.billing.schemas import BaseBilling, BillingLine, BillingTotals, JobBillingBreakdown
from paintops.core.notifications.composer import (
    MISSING,
    approval_button_html,
    build_context,
    compose,
    photo_links_html,
    render_text,
)


def _details(**overrides):
    details = {
        "id": uuid.uuid4(),
        "work_order_num": 42,
        "job_number": "WO-000042",
        "unit_number": "204",
        "job_type": "Turnover",
        "scheduled_date": date(2026, 3, 5),
        "completed_date": None,
        "property": {
            "property_name": "Maple Court",
            "address": "120 Maple Court",
            "address_2": "Bldg B",
            "city": "Charlotte",
            "state": "NC",
            "zip": "28202",
            "ap_name": "Dana Whitfield",
            "ap_email": "ap@maplecourt.test",
        },
        "job_phase": {"job_phase_label": "Pending Work Order"},
        "work_order": {"extra_charges_description": "Patch drywall", "extra_hours": Decimal("2")},
    }
    details.update(overrides)
    return details


def _billing(extra="100.00"):
    amount = Decimal(extra)
    line = BillingLine(
        key="extra_hourly",
        label="Extra Charges - Patch drywall",
        section="extra",
        quantity=Decimal("2"),
        unit_label="Hours",
        rate_bill=amount / 2,
        rate_sub=Decimal("30"),
        amount_bill=amount,
        amount_sub=Decimal("60"),
    )
    return JobBillingBreakdown(
        job_id=uuid.uuid4(),
        base=BaseBilling(bill_amount=Decimal("500"), sub_pay_amount=Decimal("300")),
        lines=[line],
        warnings=[],
        totals=BillingTotals(
            bill_total=Decimal("500") + amount,
            sub_pay_total=Decimal("360"),
            profit_total=Decimal("140") + amount,
            extra_bill_total=amount,
            extra_sub_pay_total=Decimal("60"),
        ),
    )


def test_known_placeholders_fully_substituted():
    context = build_context(_details(), _billing())
    body = (
        "Dear {{ap_contact_name}}, unit {{ unit_number }} at {{property_name}} "
        "({{property_address}}, {{property_city}}, {{property_state}} {{property_zip}}) "
        "needs {{extra_charges_description}} for {{extra_hours}} hours: {{estimated_cost}}. "
        "Scheduled {{scheduled_date}}, {{job_number}} / {{work_order_number}}, phase {{job_phase}}."
    )
    rendered = render_text(body, context)
    assert not re.search(r"\{\{.*?\}\}", rendered)
    assert "Dear Dana Whitfield" in rendered
    assert "120 Maple Court, Bldg B, Charlotte, NC 28202" in rendered
    assert "2.00 hours: $100.00" in rendered
    assert "Scheduled 03/05/2026" in rendered


def test_missing_values_render_na():
    details = _details(property={"property_name": "Maple Court"}, job_type=None, work_order=None)
    context = build_context(details)
    assert context["ap_email"] == MISSING
    assert context["job_type"] == MISSING
    assert context["completion_date"] == MISSING
    assert context["estimated_cost"] == MISSING
    assert context["extra_hours"] == MISSING


def test_recipient_name_override_and_aliases():
    context = build_context(_details(), ap_contact_name="Pat Lee")
    for alias in ("ap_contact_name", "recipient_name", "contact_name", "property_owner"):
        assert context[alias] == "Pat Lee"


def test_placeholders_case_insensitive_and_dotted():
    context = build_context(_details())
    rendered = render_text("{{Property_Name}} / {{PROPERTY.CITY}} / {{job.unit_number}}", context)
    assert rendered == "Maple Court / Charlotte / 204"


def test_single_brace_tokens_and_leftover_braces():
    context = build_context(_details())
    assert render_text("Unit { unit_number }", context) == "Unit 204"
    assert render_text("See {the attached photos}", context) == "See the attached photos"


def test_unknown_double_placeholder_left_alone():
    assert render_text("Hi {{mystery}}", {}) == "Hi {{mystery}}"


def test_extra_description_falls_back_to_billing_lines():
    details = _details(work_order={})
    context = build_context(details, _billing())
    assert context["extra_charges_description"] == "Extra Charges - Patch drywall"
    assert context["extra_hours"] == "2.00"


def test_compose_renders_all_parts():
    context = build_context(_details())
    email = compose("Approval for {{unit_number}}", "Dear {{name}},", "{{property_name}} team", context)
    assert email.subject == "Approval for 204"
    assert email.body == "Dear Dana Whitfield,"
    assert email.signature == "Maple Court team"
    assert compose("s", "b", None, context).signature is None


def test_approval_button():
    html = approval_button_html("https://app.test/approval/abc-123", Decimal("1250"))
    assert 'href="https://app.test/approval/abc-123"' in html
    assert "APPROVE EXTRA CHARGES - $1,250.00" in html
    assert "Expires in 7 days" in html


def test_photo_links_escape_names_and_urls():
    html = photo_links_html([
        ("<script>alert(1)</script>.jpg", 'https://files.test/a.jpg?x="><img src=x>'),
    ])
    assert "<script>" not in html
    assert "&lt;script&gt;alert(1)&lt;/script&gt;.jpg" in html
    assert 'href="https://files.test/a.jpg?x=&#34;&gt;&lt;img src=x&gt;"' in html
    assert html.startswith('<div style="margin-top: 16px;"><strong>Job photos:</strong><ul><li>')
    assert photo_links_html([]) == ""
