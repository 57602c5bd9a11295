"""
组织解析 - 确定请求作用于哪个组织

只负责读取ID，不验证组织是否存在，也不验证用户是否属于该组织
"""

import logging
import uuid
from typing import Optional

from ..conf import tenancy_settings


logger = logging.getLogger(__name__)


class OrganizationResolver:
    """组织解析器：请求头优先，其次是会话中保存的当前组织"""

    def resolve(self, request) -> Optional[uuid.UUID]:
        """
        解析请求的目标组织ID

        Args:
            request: Django request对象

        Returns:
            Optional[UUID]: 组织ID；请求头和会话都没有时返回 None
        """
        header_value = request.META.get(tenancy_settings.ORGANIZATION_HEADER)
        if header_value:
            return self._parse(header_value, source='header')

        session = getattr(request, 'session', None)
        if session is not None:
            stored = session.get(tenancy_settings.SESSION_ORGANIZATION_KEY)
            if stored:
                return self._parse(stored, source='session')

        return None

    def remember(self, request, organization_id) -> None:
        """把组织保存为会话的当前组织"""
        session = getattr(request, 'session', None)
        if session is None:
            logger.warning("Cannot remember organization: request has no session")
            return
        session[tenancy_settings.SESSION_ORGANIZATION_KEY] = str(organization_id)

    def forget(self, request) -> None:
        """清除会话中的当前组织"""
        session = getattr(request, 'session', None)
        if session is not None:
            session.pop(tenancy_settings.SESSION_ORGANIZATION_KEY, None)

    def _parse(self, value, source: str) -> Optional[uuid.UUID]:
        """格式无效的ID按未指定处理"""
        try:
            return uuid.UUID(str(value).strip())
        except ValueError:
            logger.warning(f"Ignoring malformed organization id from {source}: {value!r}")
            return None
