"""
测试权限评估
"""

from types import MappingProxyType

from django.test import SimpleTestCase

from ..constants import AVAILABLE_PERMISSIONS, OverrideEffect, Permission
from ..context import TenantContext
from ..services import PermissionEvaluator


A = Permission.BILLING_VIEW
B = Permission.SETTINGS_VIEW
C = Permission.BILLING_MANAGE


def make_context(base, overrides=None, organization_id='org-1', role='custom'):
    evaluator = PermissionEvaluator()
    overrides = overrides or {}
    return TenantContext(
        user_id=1,
        organization_id=organization_id,
        role=role,
        base_permissions=frozenset(base),
        overrides=MappingProxyType(overrides),
        permissions=evaluator.merge(base, overrides),
    )


class PermissionEvaluatorMergeTest(SimpleTestCase):
    """测试基础权限与覆盖合并"""

    def setUp(self):
        self.evaluator = PermissionEvaluator()

    def test_no_overrides_keeps_base(self):
        """没有覆盖时等于基础权限"""
        self.assertEqual(self.evaluator.merge({A, B}, {}), frozenset({A, B}))

    def test_deny_removes_granted_key(self):
        """deny 移除角色授予的权限"""
        merged = self.evaluator.merge({A, B}, {A: OverrideEffect.DENY})
        self.assertEqual(merged, frozenset({B}))

    def test_allow_adds_missing_key(self):
        """allow 增加角色没有的权限"""
        merged = self.evaluator.merge({A, B}, {C: OverrideEffect.ALLOW})
        self.assertEqual(merged, frozenset({A, B, C}))

    def test_deny_of_absent_key_is_noop(self):
        merged = self.evaluator.merge({A}, {C: OverrideEffect.DENY})
        self.assertEqual(merged, frozenset({A}))

    def test_string_keys_and_values_accepted(self):
        """覆盖可以用原始字符串表示"""
        merged = self.evaluator.merge({A, B}, {'billing:view': 'deny', 'billing:manage': 'allow'})
        self.assertEqual(merged, frozenset({B, C}))

    def test_unknown_effect_treated_as_deny(self):
        """无法识别的覆盖值按 deny 处理"""
        merged = self.evaluator.merge({A, B}, {A: 'maybe'})
        self.assertEqual(merged, frozenset({B}))

    def test_unknown_key_ignored(self):
        merged = self.evaluator.merge({A}, {'projects:delete': 'allow'})
        self.assertEqual(merged, frozenset({A}))

    def test_order_of_overrides_does_not_matter(self):
        """覆盖是最后一层，顺序无关"""
        first = self.evaluator.merge({A, B}, {A: OverrideEffect.DENY, C: OverrideEffect.ALLOW})
        second = self.evaluator.merge({A, B}, {C: OverrideEffect.ALLOW, A: OverrideEffect.DENY})
        self.assertEqual(first, second)


class PermissionEvaluatorCanTest(SimpleTestCase):
    """测试 can()"""

    def setUp(self):
        self.evaluator = PermissionEvaluator()

    def test_override_semantics(self):
        """基础 {A, B} + {A: deny}: A 拒绝，B 允许"""
        context = make_context({A, B}, {A: OverrideEffect.DENY})
        self.assertFalse(self.evaluator.can(context, A))
        self.assertTrue(self.evaluator.can(context, B))

    def test_allow_override_grants_absent_key(self):
        """{C: allow}，C 不在角色中: C 允许"""
        context = make_context({A, B}, {C: OverrideEffect.ALLOW})
        self.assertTrue(self.evaluator.can(context, C))

    def test_accepts_string_keys(self):
        context = make_context({A})
        self.assertTrue(self.evaluator.can(context, 'billing:view'))
        self.assertFalse(self.evaluator.can(context, 'billing:manage'))

    def test_unknown_key_denied(self):
        """枚举之外的权限键一律拒绝"""
        context = make_context(AVAILABLE_PERMISSIONS)
        self.assertFalse(self.evaluator.can(context, 'projects:delete'))
        self.assertFalse(self.evaluator.can(context, ''))

    def test_unbound_context_denies_everything(self):
        """没有组织时所有权限都拒绝"""
        context = TenantContext.unbound(1)
        for permission in Permission:
            self.assertFalse(self.evaluator.can(context, permission))

    def test_context_without_membership_denies_everything(self):
        """有组织ID但没有角色 (非成员) 时所有权限都拒绝"""
        context = TenantContext(
            user_id=1,
            organization_id='org-1',
            role=None,
            permissions=AVAILABLE_PERMISSIONS,
        )
        for permission in Permission:
            self.assertFalse(self.evaluator.can(context, permission))

    def test_none_context_denied(self):
        self.assertFalse(self.evaluator.can(None, A))

    def test_check_many(self):
        """批量权限检查"""
        context = make_context({A, B})
        result = self.evaluator.check_many(context, [A, 'billing:manage', 'nope:nope'])
        self.assertEqual(result, {
            'billing:view': True,
            'billing:manage': False,
            'nope:nope': False,
        })
