"""
SaaS Tenancy - 极简配置
所有配置都有默认值，在 settings.SAAS_TENANCY 中覆盖
"""

import os

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from .constants import (
    BUILTIN_ROLES,
    DEFAULT_INVITE_TOKEN_LIFETIME,
    DEFAULT_MAX_CUSTOM_ROLES,
    ORGANIZATION_HEADER,
    ROLE_MEMBER,
    SESSION_ORGANIZATION_KEY,
)


class TenancySettings:
    """
    极简配置类 - 每次访问都读取 Django settings，测试中 override_settings 可以直接生效
    """

    DEFAULTS = {
        # 组织解析
        'ORGANIZATION_HEADER': ORGANIZATION_HEADER,  # request.META 中的键
        'SESSION_ORGANIZATION_KEY': SESSION_ORGANIZATION_KEY,

        # 成员配置
        'DEFAULT_MEMBER_ROLE': ROLE_MEMBER,  # 新组织的默认角色
        'MAX_MEMBERS_PER_ORGANIZATION': None,  # None 表示不限制
        'MAX_CUSTOM_ROLES_PER_ORGANIZATION': DEFAULT_MAX_CUSTOM_ROLES,

        # 邀请配置
        'INVITE_TOKEN_LIFETIME': DEFAULT_INVITE_TOKEN_LIFETIME,

        # 功能开关
        'ENABLE_AUDIT_LOG': True,
    }

    INTEGER_SETTINGS = (
        'INVITE_TOKEN_LIFETIME',
        'MAX_MEMBERS_PER_ORGANIZATION',
        'MAX_CUSTOM_ROLES_PER_ORGANIZATION',
    )

    @property
    def user_settings(self):
        return getattr(settings, 'SAAS_TENANCY', {})

    def __getattr__(self, name):
        """智能配置获取"""
        # 1. 先检查用户是否显式配置
        user_settings = self.user_settings
        if name in user_settings:
            return user_settings[name]

        # 2. 检查环境变量
        env_value = os.getenv(f'SAAS_TENANCY_{name}')
        if env_value is not None:
            if name in self.INTEGER_SETTINGS:
                return int(env_value)
            if name.startswith('ENABLE_'):
                return env_value.lower() in ('1', 'true', 'yes', 'on')
            return env_value

        # 3. 使用默认值
        if name in self.DEFAULTS:
            return self.DEFAULTS[name]

        raise AttributeError(f"'{self.__class__.__name__}' object has no attribute '{name}'")

    def validate(self):
        """验证配置，在应用启动时调用"""
        unknown = set(self.user_settings) - set(self.DEFAULTS)
        if unknown:
            raise ImproperlyConfigured(
                f"Unknown SAAS_TENANCY settings: {', '.join(sorted(unknown))}"
            )

        if not self.ORGANIZATION_HEADER:
            raise ImproperlyConfigured("SAAS_TENANCY.ORGANIZATION_HEADER must not be empty")

        if self.DEFAULT_MEMBER_ROLE not in BUILTIN_ROLES:
            raise ImproperlyConfigured(
                "SAAS_TENANCY.DEFAULT_MEMBER_ROLE must be one of: "
                f"{', '.join(BUILTIN_ROLES)}"
            )

        for name in self.INTEGER_SETTINGS:
            value = getattr(self, name)
            if value is None and name == 'MAX_MEMBERS_PER_ORGANIZATION':
                continue
            if not isinstance(value, int) or value <= 0:
                raise ImproperlyConfigured(f"SAAS_TENANCY.{name} must be a positive integer")


# 全局配置实例
tenancy_settings = TenancySettings()


def is_feature_enabled(feature_name):
    """便捷函数：检查功能是否开启"""
    return bool(getattr(tenancy_settings, f'ENABLE_{feature_name.upper()}', False))
