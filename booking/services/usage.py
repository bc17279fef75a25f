import logging
from datetime import date
from typing import Optional

from django.db import transaction
from django.db.models import Sum

from booking.models import CaseBooking, CaseBookingQuantity, DailyUsage

logger = logging.getLogger(__name__)

TOP_ITEMS = 5


@transaction.atomic
def recalculate_daily_usage(usage_date: date, country: str, department: Optional[str] = None) -> int:
    """Rebuild the usage rows for one surgery date in a country.

    Cancelled cases do not count.  Rows for departments that no longer
    have any booked items are removed.  Returns the number of rows kept.
    """
    qs = CaseBookingQuantity.objects.filter(
        case__date_of_surgery=usage_date,
        case__country=country,
        quantity__gt=0,
    ).exclude(case__status=CaseBooking.STATUS_CASE_CANCELLED)
    existing = DailyUsage.objects.filter(usage_date=usage_date, country=country)
    if department:
        qs = qs.filter(case__department=department)
        existing = existing.filter(department=department)

    grouped = {}
    for row in qs.values('case__department', 'item_type', 'item_name').annotate(total=Sum('quantity')):
        grouped.setdefault(row['case__department'], []).append(row)

    existing.exclude(department__in=list(grouped)).delete()
    for dept, rows in grouped.items():
        sets = sum(r['total'] for r in rows if r['item_type'] == CaseBookingQuantity.ITEM_SURGERY_SET)
        boxes = sum(r['total'] for r in rows if r['item_type'] == CaseBookingQuantity.ITEM_IMPLANT_BOX)
        top = sorted(rows, key=lambda r: (-r['total'], r['item_name']))[:TOP_ITEMS]
        DailyUsage.objects.update_or_create(
            usage_date=usage_date, country=country, department=dept,
            defaults={
                'surgery_sets_total': sets,
                'implant_boxes_total': boxes,
                'top_items': [{'itemType': r['item_type'], 'itemName': r['item_name'], 'quantity': r['total']} for r in top],
            },
        )
    logger.debug("Recalculated daily usage", extra={'usage_date': str(usage_date), 'country': country, 'rows': len(grouped)})
    return len(grouped)


def usage_for_range(country: str, start: date, end: date, department: Optional[str] = None):
    qs = DailyUsage.objects.filter(country=country, usage_date__gte=start, usage_date__lte=end)
    if department:
        qs = qs.filter(department=department)
    return [{
        'date': u.usage_date.isoformat(),
        'department': u.department,
        'surgerySets': u.surgery_sets_total,
        'implantBoxes': u.implant_boxes_total,
        'topItems': u.top_items,
    } for u in qs.order_by('usage_date', 'department')]
