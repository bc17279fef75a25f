"""
Email notifications for case status changes.

Each country can configure one :class:`EmailNotificationRule` per
status.  A rule names the roles that should hear about a case entering
that status, optional extra addresses, and a subject/body template
using ``{{variable}}`` placeholders filled in from the case.
"""
from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.mail import send_mail

from booking.models import CaseBooking, CaseBookingQuantity, EmailNotificationRule, SystemSettings

User = get_user_model()
logger = logging.getLogger(__name__)

PLACEHOLDER_RE = re.compile(r"\{\{\s*(\w+)\s*\}\}")

DEFAULT_SUBJECT = "Case {{caseReferenceNumber}}: {{status}}"
DEFAULT_BODY = """Case {{caseReferenceNumber}} is now {{status}}.

Hospital: {{hospital}}
Department: {{department}}
Doctor: {{doctorName}}
Procedure: {{procedureType}} / {{procedureName}}
Surgery Date: {{dateOfSurgery}} {{timeOfProcedure}}

{{quantityInformation}}

Special Instructions: {{specialInstruction}}
"""


def render_template(template: str, variables: Dict[str, str]) -> str:
    """Substitute ``{{name}}`` placeholders; unknown names are left untouched."""
    def _sub(m):
        key = m.group(1)
        return str(variables[key]) if key in variables else m.group(0)
    return PLACEHOLDER_RE.sub(_sub, template or "")


def _joined(items) -> str:
    return ", ".join(str(i) for i in items) if isinstance(items, list) and items else ""


def template_variables(case: CaseBooking) -> Dict[str, str]:
    rows = list(case.quantities.all().order_by("item_type", "item_name"))
    sets = ", ".join(f"{q.item_name} ×{q.quantity}" for q in rows if q.item_type == CaseBookingQuantity.ITEM_SURGERY_SET)
    boxes = ", ".join(f"{q.item_name} ×{q.quantity}" for q in rows if q.item_type == CaseBookingQuantity.ITEM_IMPLANT_BOX)
    parts = []
    if sets:
        parts.append(f"Surgery Sets: {sets}")
    if boxes:
        parts.append(f"Implant Boxes: {boxes}")

    submitter = case.submitted_by.display_name if case.submitted_by_id else ""
    processor = case.processed_by.display_name if case.processed_by_id else ""
    return {
        "caseReferenceNumber": case.case_reference_number or "N/A",
        "hospital": case.hospital or "N/A",
        "department": case.department or "N/A",
        "dateOfSurgery": case.date_of_surgery.isoformat() if case.date_of_surgery else "N/A",
        "timeOfProcedure": case.time_of_procedure.strftime("%H:%M") if case.time_of_procedure else "N/A",
        "procedureType": case.procedure_type or "N/A",
        "procedureName": case.procedure_name or "N/A",
        "doctorName": case.doctor_name or "N/A",
        "status": case.status or "N/A",
        "submittedBy": submitter or "N/A",
        "submittedAt": case.submitted_at.date().isoformat() if case.submitted_at else "N/A",
        "processedBy": processor or "N/A",
        "processOrderDetails": case.process_order_details or "N/A",
        "country": case.country or "N/A",
        "specialInstruction": case.special_instruction or "None",
        "surgerySetSelection": sets or _joined(case.surgery_set_selection) or "N/A",
        "implantBox": boxes or _joined(case.implant_box) or "N/A",
        "surgerySetsWithQuantities": sets or "N/A",
        "implantBoxesWithQuantities": boxes or "N/A",
        "quantityInformation": "\n".join(parts) or "No quantity information available",
        "isAmended": "Yes" if case.is_amended else "No",
    }


def _has_department(user, departments) -> bool:
    mine = set(getattr(user, "departments", None) or [])
    return bool(mine.intersection(departments))


def resolve_recipients(config: dict, case: CaseBooking) -> List[str]:
    """Work out the addresses a rule sends to for ``case``.

    Users qualify by role and must have access to the case country.
    Admins may bypass the country check unless ``adminOverride`` is
    false.  ``departmentFilter`` and ``requireSameDepartment`` narrow
    the set further.  ``specificEmails`` and, with ``includeSubmitter``,
    the submitting user are appended.  Order is preserved, duplicates
    dropped.
    """
    roles = set(config.get("roles") or [])
    dept_filter = list(config.get("departmentFilter") or [])
    same_dept = bool(config.get("requireSameDepartment"))
    admin_override = config.get("adminOverride", True) is not False

    emails: List[str] = []
    if roles:
        for user in User.objects.filter(is_active=True, role__in=roles).exclude(email="").order_by("id"):
            in_country = case.country in (user.countries or [])
            if not in_country and not (user.role == "admin" and admin_override):
                continue
            if dept_filter and not _has_department(user, dept_filter):
                continue
            if same_dept and not _has_department(user, [case.department]):
                continue
            emails.append(user.email)

    emails.extend(e for e in (config.get("specificEmails") or []) if e)

    if config.get("includeSubmitter") and case.submitted_by_id:
        submitter = case.submitted_by
        allowed = case.country in (submitter.countries or []) or (submitter.role == "admin" and admin_override)
        if submitter.email and allowed:
            emails.append(submitter.email)

    seen = set()
    unique = []
    for e in emails:
        if e not in seen:
            seen.add(e)
            unique.append(e)
    return unique


class EmailNotifier:
    """Sends the configured email for a case entering a status.

    Services accept any object with a ``notify(case, status)`` method,
    so tests can pass a stub instead of this class.
    """

    def __init__(self, *, from_email: Optional[str] = None, connection=None):
        self.from_email = from_email or settings.DEFAULT_FROM_EMAIL
        self.connection = connection

    def notify(self, case: CaseBooking, status: str) -> int:
        if not SystemSettings.load().email_notifications:
            logger.debug("Email notifications disabled", extra={"case_id": case.id})
            return 0
        rule = EmailNotificationRule.objects.filter(country=case.country, status=status, enabled=True).first()
        if rule is None:
            return 0
        recipients = resolve_recipients(rule.recipients or {}, case)
        if not recipients:
            logger.warning("No recipients for notification rule", extra={"rule_id": rule.id, "case_id": case.id})
            return 0

        variables = template_variables(case)
        subject = render_template(rule.subject or DEFAULT_SUBJECT, variables)
        body = render_template(rule.body or DEFAULT_BODY, variables)
        send_mail(subject, body, self.from_email, recipients, fail_silently=False, connection=self.connection)
        logger.info(
            "Sent status notification",
            extra={"case_id": case.id, "status": status, "recipients": len(recipients)},
        )
        return len(recipients)

    def notify_amendment(self, case: CaseBooking, changes: List[dict], amended_by=None) -> int:
        """Tell the submitter that someone else amended their case."""
        if not SystemSettings.load().email_notifications:
            return 0
        submitter = case.submitted_by if case.submitted_by_id else None
        if submitter is None or not submitter.email:
            return 0
        if amended_by is not None and getattr(amended_by, 'pk', None) == submitter.pk:
            return 0
        lines = [f"- {c['field']}: {c['oldValue']} -> {c['newValue']}" for c in changes]
        variables = template_variables(case)
        subject = render_template("Case {{caseReferenceNumber}} amended", variables)
        body = render_template("Case {{caseReferenceNumber}} ({{hospital}}) was amended:\n\n", variables) + "\n".join(lines)
        send_mail(subject, body, self.from_email, [submitter.email], fail_silently=False, connection=self.connection)
        return 1


def default_notifier() -> EmailNotifier:
    return EmailNotifier()
