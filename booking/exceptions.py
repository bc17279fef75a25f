import logging

from django.conf import settings
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class CaseNotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Case not found.'
    default_code = 'case_not_found'


class InvalidStatus(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Unknown case status.'
    default_code = 'invalid_status'


class AmendmentNotAllowed(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'This case can no longer be amended.'
    default_code = 'amendment_not_allowed'


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        logger.exception("Unhandled error in %s", getattr(context.get('view'), '__name__', 'view'), exc_info=exc)
        message = str(exc) if settings.DEBUG else 'Internal server error.'
        return Response({'ok': False, 'error': {'code': 'server_error', 'message': message}}, status=500)
    code = getattr(exc, 'default_code', None) or 'api_error'
    if isinstance(exc, APIException):
        codes = exc.get_codes()
        if isinstance(codes, str):
            code = codes
    detail = None
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') or resp.data
    else:
        detail = resp.data
    return Response({'ok': False, 'error': {'code': code, 'message': detail}}, status=resp.status_code)
