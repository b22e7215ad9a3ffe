"""
Seed script for PaintOps.

Populates the database with the built-in job phases plus demo users, a
property with its rate card, email templates and an email configuration.

Usage:
    python -m paintops.scripts.seed
"""

import asyncio
from decimal import Decimal

from sqlalchemy import select

from paintops.common.enums import NotificationType, UserRole
from paintops.common.security import get_password_hash
from paintops.core.phases.catalog import ensure_default_phases
from paintops.db.models import (
    BillingCategory,
    BillingDetail,
    EmailConfiguration,
    EmailTemplate,
    Profile,
    Property,
    UnitSize,
)
from paintops.db.session import async_session_factory

UNIT_SIZES = ["1 Bedroom", "2 Bedroom", "3 Bedroom"]

CATEGORIES = [
    ("Full Paint", 1),
    ("Painted Ceilings", 2),
    ("Accent Wall", 3),
    ("Extra Charges", 4),
]

EXTRA_CHARGES_BODY = """Dear {{ap_contact_name}},

Our crew found additional work needed at {{property_name}}, unit {{unit_number}}.

Job Information:
• Work Order: {{work_order_number}}
• Address: {{property_address}}, {{property_city}}, {{property_state}} {{property_zip}}
• Scheduled: {{scheduled_date}}

Work Order Information:
• Extra work: {{extra_charges_description}}
• Hours: {{extra_hours}}
• Estimated cost: {{estimated_cost}}

Please review and approve the charges using the button below.

Thank you,"""


async def main() -> None:
    async with async_session_factory() as session:
        phases = await ensure_default_phases(session)

        result = await session.execute(
            select(Profile).where(Profile.email == "admin@paintops.app")
        )
        if result.scalar_one_or_none() is not None:
            await session.commit()
            print("Database already seeded -- phases checked, skipping demo data.")
            return

        # ==================================================================
        # USERS
        # ==================================================================
        users = [
            Profile(
                email="admin@paintops.app",
                hashed_password=get_password_hash("admin123"),
                full_name="Office Admin",
                role=UserRole.ADMIN.value,
            ),
            Profile(
                email="manager@paintops.app",
                hashed_password=get_password_hash("manager123"),
                full_name="Jordan Manager",
                role=UserRole.JG_MANAGEMENT.value,
            ),
            Profile(
                email="crew@paintops.app",
                hashed_password=get_password_hash("crew123"),
                full_name="Sam Subcontractor",
                role=UserRole.SUBCONTRACTOR.value,
            ),
        ]
        session.add_all(users)

        # ==================================================================
        # RATE CARD
        # ==================================================================
        sizes = {label: UnitSize(unit_size_label=label) for label in UNIT_SIZES}
        categories = {name: BillingCategory(name=name, sort_order=order) for name, order in CATEGORIES}
        prop = Property(
            property_name="Maple Court Apartments",
            address="120 Maple Court",
            city="Charlotte",
            state="NC",
            zip="28202",
            ap_name="Dana Whitfield",
            ap_email="ap@maplecourt.example.com",
        )
        session.add_all([*sizes.values(), *categories.values(), prop])
        await session.flush()

        details = []
        for index, (label, size) in enumerate(sizes.items()):
            bill = Decimal(450 + index * 100)
            sub = Decimal(300 + index * 60)
            details.append(BillingDetail(
                property_id=prop.id, category_id=categories["Full Paint"].id, unit_size_id=size.id,
                bill_amount=bill, sub_pay_amount=sub, profit_amount=bill - sub, sort_order=index,
            ))
            ceiling_bill = Decimal(120 + index * 30)
            ceiling_sub = Decimal(80 + index * 20)
            details.append(BillingDetail(
                property_id=prop.id, category_id=categories["Painted Ceilings"].id, unit_size_id=size.id,
                bill_amount=ceiling_bill, sub_pay_amount=ceiling_sub,
                profit_amount=ceiling_bill - ceiling_sub, sort_order=index,
            ))
        details.append(BillingDetail(
            property_id=prop.id, category_id=categories["Accent Wall"].id,
            bill_amount=Decimal("75.00"), sub_pay_amount=Decimal("45.00"), profit_amount=Decimal("30.00"),
        ))
        details.append(BillingDetail(
            property_id=prop.id, category_id=categories["Extra Charges"].id,
            bill_amount=Decimal("50.00"), sub_pay_amount=Decimal("30.00"), is_hourly=True,
        ))
        session.add_all(details)

        # ==================================================================
        # EMAIL
        # ==================================================================
        by_label = {p.job_phase_label: p for p in phases}
        session.add_all([
            EmailTemplate(
                name="Extra Charges Approval",
                subject="Approval needed: extra charges for {{property_name}} unit {{unit_number}}",
                body=EXTRA_CHARGES_BODY,
                signature="JG Painting Pros\nOffice: (704) 555-0100",
                trigger_phase_id=by_label["Pending Work Order"].id,
                notification_type=NotificationType.EXTRA_CHARGES.value,
            ),
            EmailTemplate(
                name="Invoice Sent",
                subject="Invoice {{job_number}} for {{property_name}}",
                body="Hello {{ap_contact_name}},\n\nThe invoice for unit {{unit_number}} is attached.\n\nThank you,",
                signature="JG Painting Pros",
                trigger_phase_id=by_label["Invoicing"].id,
                notification_type=NotificationType.INVOICE.value,
            ),
            EmailConfiguration(
                from_email="office@paintops.app",
                from_name="JG Painting Pros",
                default_bcc="records@paintops.app",
            ),
        ])

        await session.commit()
        print(f"Seeded: {len(phases)} phases, {len(users)} users, 1 property, {len(details)} billing details")


if __name__ == "__main__":
    asyncio.run(main())
