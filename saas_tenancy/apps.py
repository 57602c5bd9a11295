import logging

from django.apps import AppConfig


logger = logging.getLogger(__name__)


class SaasTenancyConfig(AppConfig):
    """SaaS Tenancy 应用配置"""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'saas_tenancy'
    verbose_name = 'SaaS Tenancy'

    def ready(self):
        """应用初始化时验证配置，配置错误直接抛出 ImproperlyConfigured"""
        from .conf import tenancy_settings

        tenancy_settings.validate()
        logger.debug("SaaS Tenancy configuration validated")
