from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from booking.models import EmailNotificationRule
from booking.permissions import IsAdminRole
from booking.serializers.settings import EmailRuleSerializer
from booking.services.audit import CATEGORY_EMAIL, safe_log_action


def format_rule(rule: EmailNotificationRule) -> dict:
    return {
        'id': rule.id,
        'country': rule.country,
        'status': rule.status,
        'enabled': rule.enabled,
        'recipients': rule.recipients,
        'subject': rule.subject,
        'body': rule.body,
        'updatedAt': rule.updated_at.isoformat() if rule.updated_at else None,
    }


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated, IsAdminRole])
def email_rules(request):
    """GET ?country= lists rules; PUT upserts the rule for a country+status."""
    if request.method == 'GET':
        country = (request.query_params.get('country') or '').strip()
        qs = EmailNotificationRule.objects.all()
        if country:
            qs = qs.filter(country=country)
        return Response({'ok': True, 'data': [format_rule(r) for r in qs.order_by('country', 'status')]})

    s = EmailRuleSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    rule, created = EmailNotificationRule.objects.update_or_create(
        country=vd['country'], status=vd['status'],
        defaults={
            'enabled': vd['enabled'],
            'recipients': vd.get('recipients') or {},
            'subject': vd['subject'],
            'body': vd['body'],
        },
    )
    safe_log_action(user=request.user, action='Email Rule Created' if created else 'Email Rule Updated',
                    category=CATEGORY_EMAIL, target=rule.status, country=rule.country)
    return Response({'ok': True, 'data': format_rule(rule)}, status=201 if created else 200)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def email_rule_detail(request, pk: int):
    rule = EmailNotificationRule.objects.filter(pk=pk).first()
    if rule is None:
        raise NotFound('rule not found')
    rule.delete()
    safe_log_action(user=request.user, action='Email Rule Deleted', category=CATEGORY_EMAIL,
                    target=rule.status, country=rule.country, status='warning')
    return Response({'ok': True})
