"""
DRF 异常处理 - 把 TenancyError 转换为统一的错误响应
"""

import logging

from rest_framework import exceptions as drf_exceptions
from rest_framework.response import Response
from rest_framework.views import exception_handler

from ..constants import ErrorCode
from ..exceptions import InternalError, TenancyError


logger = logging.getLogger(__name__)


def tenancy_exception_handler(exc, context):
    """
    错误响应格式: {'error': message, 'code': error_code}

    存储等未知错误记录日志后返回 500 INTERNAL_ERROR，不会变成 403
    """
    if isinstance(exc, TenancyError):
        return Response(
            {'error': exc.message, 'code': exc.error_code},
            status=exc.status_code
        )

    response = exception_handler(exc, context)
    if response is not None:
        if isinstance(exc, drf_exceptions.NotAuthenticated):
            response.data = {'error': str(exc.detail), 'code': ErrorCode.UNAUTHENTICATED}
        elif isinstance(exc, drf_exceptions.PermissionDenied):
            response.data = {'error': str(exc.detail), 'code': ErrorCode.PERMISSION_DENIED}
        return response

    logger.exception(f"Unhandled error in {context.get('view').__class__.__name__}")
    error = InternalError("Internal server error")
    return Response({'error': error.message, 'code': error.error_code}, status=error.status_code)
