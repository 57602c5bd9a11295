"""
SaaS Tenancy

多租户权限解析：确定请求作用于哪个组织，并判断当前用户的角色和权限覆盖是否允许请求的操作。

核心设计原则：
- 请求级 TenantContext: 每个请求构建一次，构建后不可修改，显式传递
- 最多两次查询: 成员关系 + 自定义角色
- fail-closed: 无组织、无成员关系、未知角色一律拒绝
- 覆盖是最后一层: deny 总是优先于角色授予
"""

__version__ = "1.0.0"
__author__ = "SaaS Tenancy Team"
__description__ = "多租户组织权限解析库"
