"""
测试组织解析和租户上下文构建
"""

import dataclasses
import uuid
from types import MappingProxyType

from asgiref.sync import async_to_sync
from django.contrib.auth.models import AnonymousUser

from ..constants import AVAILABLE_PERMISSIONS, ROLE_GUEST, OverrideEffect, Permission
from ..context import (
    TenantContext,
    TenantContextBuilder,
    build_tenant_context,
    get_tenant_context,
    tenant_context_builder,
)
from ..exceptions import PermissionDenied, Unauthenticated
from ..models import Organization
from ..services import OrganizationResolver, PermissionEvaluator
from .base import TenancyTestCase


class OrganizationResolverTest(TenancyTestCase):
    """测试组织解析"""

    def setUp(self):
        super().setUp()
        self.resolver = OrganizationResolver()

    def test_resolve_from_header(self):
        request = self.make_request(organization_id=self.organization.id)
        self.assertEqual(self.resolver.resolve(request), self.organization.id)

    def test_resolve_from_session(self):
        request = self.make_request(session={'saas_tenancy.current_organization': str(self.organization.id)})
        self.assertEqual(self.resolver.resolve(request), self.organization.id)

    def test_header_wins_over_session(self):
        """请求头优先于会话"""
        other_id = uuid.uuid4()
        request = self.make_request(
            organization_id=other_id,
            session={'saas_tenancy.current_organization': str(self.organization.id)}
        )
        self.assertEqual(self.resolver.resolve(request), other_id)

    def test_resolve_nothing(self):
        self.assertIsNone(self.resolver.resolve(self.make_request()))

    def test_malformed_header_is_absent(self):
        """格式无效的ID按未指定处理"""
        request = self.make_request(organization_id="not-a-uuid")
        self.assertIsNone(self.resolver.resolve(request))

    def test_resolver_does_not_touch_database(self):
        request = self.make_request(organization_id=self.organization.id)
        with self.assertNumQueries(0):
            self.resolver.resolve(request)

    def test_remember_and_forget(self):
        request = self.make_request()
        self.resolver.remember(request, self.organization.id)
        self.assertEqual(self.resolver.resolve(request), self.organization.id)

        self.resolver.forget(request)
        self.assertIsNone(self.resolver.resolve(request))

    def test_custom_header_setting(self):
        request = self.factory.get('/test/', HTTP_X_TENANT=str(self.organization.id))
        request.session = {}
        with self.settings(SAAS_TENANCY={'ORGANIZATION_HEADER': 'HTTP_X_TENANT'}):
            self.assertEqual(self.resolver.resolve(request), self.organization.id)


class TenantContextBuildTest(TenancyTestCase):
    """测试租户上下文构建"""

    def build(self, user, organization_id=None):
        request = self.make_request(user=user, organization_id=organization_id)
        return tenant_context_builder.build(user, request)

    def test_member_can_view_but_not_manage(self):
        """member 可以查看组织，不能管理组织"""
        context = self.build(self.user, self.organization.id)

        self.assertEqual(context.role, 'member')
        self.assertEqual(context.organization_id, self.organization.id)
        self.assertTrue(context.can(Permission.ORG_VIEW))
        self.assertFalse(context.can(Permission.ORG_MANAGE))

    def test_owner_has_every_permission(self):
        context = self.build(self.owner, self.organization.id)
        self.assertEqual(context.permissions, AVAILABLE_PERMISSIONS)

    def test_anonymous_user_rejected(self):
        with self.assertRaises(Unauthenticated):
            self.build(AnonymousUser(), self.organization.id)
        with self.assertRaises(Unauthenticated):
            tenant_context_builder.build(None, self.make_request())

    def test_no_organization_gives_unbound_context(self):
        """没有指定组织时所有租户权限都拒绝"""
        context = self.build(self.owner)

        self.assertFalse(context.organization_bound)
        self.assertEqual(context.permissions, frozenset())
        for permission in Permission:
            self.assertFalse(context.can(permission))

    def test_non_member_gets_unbound_context(self):
        """不是组织成员时上下文不绑定组织"""
        context = self.build(self.outsider, self.organization.id)

        self.assertIsNone(context.organization_id)
        self.assertEqual(context.requested_organization_id, self.organization.id)
        self.assertFalse(context.is_member)
        self.assertFalse(context.can(Permission.ORG_VIEW))

    def test_unknown_organization_gives_unbound_context(self):
        context = self.build(self.owner, uuid.uuid4())
        self.assertFalse(context.organization_bound)

    def test_membership_in_other_organization_does_not_leak(self):
        """另一个组织的 owner 身份不会影响当前组织"""
        other = Organization.objects.create(name="Other", slug="other")
        self.directory.upsert(self.user.pk, other.id, role='owner')

        context = self.build(self.user, self.organization.id)
        self.assertEqual(context.role, 'member')
        self.assertFalse(context.can(Permission.ORG_MANAGE))

    def test_overrides_applied(self):
        """成员级覆盖在角色权限之后生效"""
        self.directory.upsert(
            self.user.pk,
            self.organization.id,
            overrides={'org:view': 'deny', 'billing:manage': 'allow'}
        )
        context = self.build(self.user, self.organization.id)

        self.assertFalse(context.can(Permission.ORG_VIEW))
        self.assertTrue(context.can(Permission.BILLING_MANAGE))
        self.assertTrue(context.can(Permission.MEMBERS_VIEW))
        self.assertEqual(context.overrides[Permission.ORG_VIEW], OverrideEffect.DENY)

    def test_deny_override_on_owner(self):
        self.directory.upsert(self.owner.pk, self.organization.id, overrides={'billing:manage': 'deny'})
        context = self.build(self.owner, self.organization.id)
        self.assertFalse(context.can(Permission.BILLING_MANAGE))
        self.assertTrue(context.can(Permission.ORG_MANAGE))

    def test_custom_role(self):
        self.registry.create_role(self.organization.id, 'billing-clerk', ['billing:view'])
        self.directory.upsert(self.user.pk, self.organization.id, role='billing-clerk')

        context = self.build(self.user, self.organization.id)
        self.assertTrue(context.can(Permission.BILLING_VIEW))
        self.assertFalse(context.can(Permission.ORG_VIEW))

    def test_build_is_idempotent(self):
        """状态不变时重复构建得到相同的上下文"""
        first = self.build(self.user, self.organization.id)
        second = self.build(self.user, self.organization.id)
        self.assertEqual(first, second)

    def test_role_change_visible_on_next_build(self):
        before = self.build(self.user, self.organization.id)
        self.directory.upsert(self.user.pk, self.organization.id, role=ROLE_GUEST)
        after = self.build(self.user, self.organization.id)

        self.assertTrue(before.can(Permission.MEMBERS_VIEW))
        self.assertFalse(after.can(Permission.MEMBERS_VIEW))

    def test_builtin_role_uses_one_query(self):
        request = self.make_request(user=self.user, organization_id=self.organization.id)
        with self.assertNumQueries(1):
            tenant_context_builder.build(self.user, request)

    def test_custom_role_uses_two_queries(self):
        self.registry.create_role(self.organization.id, 'auditor', ['org:view'])
        self.directory.upsert(self.user.pk, self.organization.id, role='auditor')

        request = self.make_request(user=self.user, organization_id=self.organization.id)
        with self.assertNumQueries(2):
            tenant_context_builder.build(self.user, request)

    def test_abuild(self):
        request = self.make_request(user=self.user, organization_id=self.organization.id)
        context = async_to_sync(tenant_context_builder.abuild)(self.user, request)
        self.assertTrue(context.can(Permission.ORG_VIEW))

    def test_build_tenant_context_helper(self):
        request = self.make_request(user=self.user, organization_id=self.organization.id)
        context = build_tenant_context(self.user, request)
        self.assertEqual(context.role, 'member')

        self.assertIsNone(get_tenant_context(request))
        request.tenant_context = context
        self.assertIs(get_tenant_context(request), context)


class TenantContextTest(TenancyTestCase):
    """测试上下文对象本身"""

    def test_context_is_immutable(self):
        context = tenant_context_builder.build_for(self.user.pk, self.organization.id)

        with self.assertRaises(dataclasses.FrozenInstanceError):
            context.role = 'owner'
        with self.assertRaises(TypeError):
            context.overrides[Permission.ORG_MANAGE] = OverrideEffect.ALLOW

    def test_require(self):
        context = tenant_context_builder.build_for(self.user.pk, self.organization.id)
        context.require(Permission.ORG_VIEW)
        with self.assertRaises(PermissionDenied):
            context.require(Permission.ORG_MANAGE)

    def test_check_many(self):
        context = tenant_context_builder.build_for(self.user.pk, self.organization.id)
        self.assertEqual(
            context.check_many(['org:view', 'org:manage']),
            {'org:view': True, 'org:manage': False}
        )

    def test_to_dict(self):
        context = TenantContext(
            user_id=7,
            organization_id=self.organization.id,
            role='guest',
            base_permissions=frozenset({Permission.ORG_VIEW}),
            overrides=MappingProxyType({Permission.BILLING_VIEW: OverrideEffect.ALLOW}),
            permissions=frozenset({Permission.ORG_VIEW, Permission.BILLING_VIEW}),
            requested_organization_id=self.organization.id,
        )
        self.assertEqual(context.to_dict(), {
            'user_id': '7',
            'organization_id': str(self.organization.id),
            'requested_organization_id': str(self.organization.id),
            'role': 'guest',
            'permissions': ['billing:view', 'org:view'],
            'overrides': {'billing:view': 'allow'},
        })


class ReadOnlyEvaluator(PermissionEvaluator):
    """只放行 :view 权限的评估器"""

    def can(self, context, permission):
        return super().can(context, permission) and str(permission).endswith(':view')


class InjectedEvaluatorTest(TenancyTestCase):
    """测试构建器注入的评估器同样用于上下文的权限检查"""

    def setUp(self):
        super().setUp()
        self.evaluator = ReadOnlyEvaluator()
        self.builder = TenantContextBuilder(evaluator=self.evaluator)

    def test_can_uses_injected_evaluator(self):
        context = self.builder.build_for(self.owner.pk, self.organization.id)

        self.assertIs(context.evaluator, self.evaluator)
        self.assertIn(Permission.ORG_MANAGE, context.permissions)
        self.assertTrue(context.can(Permission.ORG_VIEW))
        self.assertFalse(context.can(Permission.ORG_MANAGE))
        with self.assertRaises(PermissionDenied):
            context.require(Permission.ORG_MANAGE)

    def test_check_many_uses_injected_evaluator(self):
        context = self.builder.build_for(self.owner.pk, self.organization.id)
        self.assertEqual(
            context.check_many(['org:view', 'org:manage']),
            {'org:view': True, 'org:manage': False}
        )

    def test_unbound_context_keeps_evaluator(self):
        context = self.builder.build_for(self.outsider.pk, self.organization.id)
        self.assertIs(context.evaluator, self.evaluator)
        self.assertFalse(context.can(Permission.ORG_VIEW))

    def test_evaluator_not_part_of_equality(self):
        default = tenant_context_builder.build_for(self.owner.pk, self.organization.id)
        injected = self.builder.build_for(self.owner.pk, self.organization.id)
        self.assertEqual(default, injected)
