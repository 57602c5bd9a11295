"""
SaaS Tenancy REST API 视图
"""

import logging

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from ..constants import Permission
from ..context import tenant_context_builder
from ..exceptions import MembershipNotFoundError, ValidationError
from ..services import (
    InvitationService,
    MembershipDirectory,
    OrganizationResolver,
    OrganizationService,
    RoleRegistry,
)
from .exceptions import tenancy_exception_handler
from .permissions import HasTenantPermission, get_request_context
from .serializers import (
    DefaultRoleSerializer,
    InvitationAcceptSerializer,
    InvitationCreateSerializer,
    InvitationSerializer,
    MembershipCreateSerializer,
    MembershipSerializer,
    MembershipUpdateSerializer,
    OrganizationCreateSerializer,
    OrganizationSerializer,
    RoleSerializer,
    RoleUpdateSerializer,
    SwitchOrganizationSerializer,
)


logger = logging.getLogger(__name__)


class TenantAPIView(APIView):
    """所有租户API的基类：统一错误格式和权限检查"""

    permission_classes = [IsAuthenticated, HasTenantPermission]
    required_permissions = {}

    def get_exception_handler(self):
        return tenancy_exception_handler

    @property
    def tenant_context(self):
        return get_request_context(self.request)

    def get_page_params(self):
        try:
            page = max(int(self.request.query_params.get('page', 1)), 1)
            limit = min(max(int(self.request.query_params.get('limit', 20)), 1), 100)
        except ValueError:
            raise ValidationError("page and limit must be integers")
        return page, limit


# ==================== 组织 ====================

class OrganizationListView(TenantAPIView):
    """GET 当前用户的组织列表 / POST 创建组织"""

    def get(self, request):
        page, limit = self.get_page_params()
        result = OrganizationService().get_user_organizations(request.user, page=page, limit=limit)
        items = [
            {
                **OrganizationSerializer(item['organization']).data,
                'role': item['role'],
                'is_owner': item['is_owner'],
            }
            for item in result['organizations']
        ]
        return Response({
            'organizations': items,
            'total': result['total'],
            'page': result['page'],
            'pages': result['pages'],
        })

    def post(self, request):
        serializer = OrganizationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        organization = OrganizationService().create_organization(request.user, **serializer.validated_data)
        return Response(OrganizationSerializer(organization).data, status=status.HTTP_201_CREATED)


# ==================== 租户上下文 ====================

class TenantContextView(TenantAPIView):
    """GET 当前请求的租户上下文"""

    def get(self, request):
        return Response(self.tenant_context.to_dict())


class SwitchOrganizationView(TenantAPIView):
    """POST 切换当前组织 (保存到会话)，必须是该组织成员"""

    def post(self, request):
        serializer = SwitchOrganizationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        organization_id = serializer.validated_data['organization_id']

        context = tenant_context_builder.build_for(request.user.pk, organization_id)
        if not context.is_member:
            raise MembershipNotFoundError(f"Not a member of organization: {organization_id}")

        OrganizationResolver().remember(request, organization_id)
        request.tenant_context = context

        logger.info(f"Current organization switched: user={request.user.pk}, organization={organization_id}")
        return Response(context.to_dict())


# ==================== 成员 ====================

class MemberListView(TenantAPIView):
    """GET 成员列表 / POST 直接添加已注册用户"""

    required_permissions = {
        'GET': Permission.MEMBERS_VIEW,
        'POST': Permission.MEMBERS_INVITE,
    }

    def get(self, request):
        page, limit = self.get_page_params()
        result = MembershipDirectory().list_members(self.tenant_context.organization_id, page=page, limit=limit)
        return Response({
            'members': MembershipSerializer(result['members'], many=True).data,
            'total': result['total'],
            'page': result['page'],
            'pages': result['pages'],
        })

    def post(self, request):
        serializer = MembershipCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        context = self.tenant_context

        if 'permissions' in data:
            context.require(Permission.MEMBERS_UPDATE)

        directory = MembershipDirectory()
        try:
            user = get_user_model().objects.filter(pk=data['user_id']).first()
        except (ValueError, DjangoValidationError):
            user = None
        if user is None:
            raise ValidationError(f"User not found: {data['user_id']}")

        if directory.lookup(user.pk, context.organization_id) is not None:
            raise ValidationError("User is already a member of this organization")

        role = data.get('role') or directory.role_registry.get_default_role(context.organization_id)
        directory.check_role_assignable(context, role)
        if 'permissions' in data:
            directory.check_overrides_assignable(context, role, data['permissions'])

        membership = directory.upsert(
            user.pk,
            context.organization_id,
            role=role,
            overrides=data.get('permissions'),
            acting_user_id=context.user_id
        )
        return Response(MembershipSerializer(membership).data, status=status.HTTP_201_CREATED)


class MemberDetailView(TenantAPIView):
    """PATCH 修改成员角色或权限覆盖 / DELETE 移除成员"""

    required_permissions = {
        'GET': Permission.MEMBERS_VIEW,
        'PATCH': Permission.MEMBERS_UPDATE,
        'DELETE': Permission.MEMBERS_REMOVE,
    }

    def get(self, request, user_id):
        membership = MembershipDirectory().get(user_id, self.tenant_context.organization_id)
        return Response(MembershipSerializer(membership).data)

    def patch(self, request, user_id):
        serializer = MembershipUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        context = self.tenant_context

        membership = MembershipDirectory().update_member(
            context,
            user_id,
            role=data.get('role'),
            overrides=data.get('permissions')
        )
        return Response(MembershipSerializer(membership).data)

    def delete(self, request, user_id):
        context = self.tenant_context
        directory = MembershipDirectory()
        membership = directory.get(user_id, context.organization_id)
        directory.check_role_assignable(context, membership.role)

        directory.remove(user_id, context.organization_id, acting_user_id=context.user_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


# ==================== 角色 ====================

class RoleListView(TenantAPIView):
    """GET 角色列表 / POST 创建自定义角色"""

    required_permissions = {
        'GET': Permission.ROLES_VIEW,
        'POST': Permission.ROLES_CREATE,
    }

    def get(self, request):
        return Response({'roles': RoleRegistry().list_roles(self.tenant_context.organization_id)})

    def post(self, request):
        serializer = RoleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        context = self.tenant_context

        role = RoleRegistry().create_role(
            context.organization_id,
            data['name'],
            data['permissions'],
            description=data.get('description', ''),
            created_by=context.user_id,
            context=context
        )
        return Response({
            'name': role.name,
            'description': role.description,
            'permissions': role.permissions,
            'builtin': False,
        }, status=status.HTTP_201_CREATED)


class DefaultRoleView(TenantAPIView):
    """PUT 设置组织默认角色"""

    required_permissions = {
        'PUT': Permission.ROLES_EDIT,
    }

    def put(self, request):
        serializer = DefaultRoleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        context = self.tenant_context

        organization = RoleRegistry().set_default_role(
            context.organization_id,
            serializer.validated_data['role'],
            changed_by=context.user_id
        )
        return Response({'default_role': organization.default_role})


class RoleDetailView(TenantAPIView):
    """PATCH 修改自定义角色 / DELETE 删除自定义角色"""

    required_permissions = {
        'PATCH': Permission.ROLES_EDIT,
        'DELETE': Permission.ROLES_DELETE,
    }

    def patch(self, request, name):
        serializer = RoleUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        context = self.tenant_context

        role = RoleRegistry().update_role(
            context.organization_id,
            name,
            permissions=data.get('permissions'),
            description=data.get('description'),
            updated_by=context.user_id,
            context=context
        )
        return Response({
            'name': role.name,
            'description': role.description,
            'permissions': role.permissions,
            'builtin': False,
        })

    def delete(self, request, name):
        context = self.tenant_context
        RoleRegistry().delete_role(context.organization_id, name, deleted_by=context.user_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


# ==================== 邀请 ====================

class InvitationListView(TenantAPIView):
    """GET 待处理邀请 / POST 创建邀请"""

    required_permissions = {
        'GET': Permission.MEMBERS_VIEW,
        'POST': Permission.MEMBERS_INVITE,
    }

    def get(self, request):
        invitations = InvitationService().list_pending(self.tenant_context.organization_id)
        return Response({'invitations': InvitationSerializer(invitations, many=True).data})

    def post(self, request):
        serializer = InvitationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        invitation = InvitationService().create_invitation(
            self.tenant_context,
            serializer.validated_data['email'],
            role=serializer.validated_data.get('role')
        )
        return Response(InvitationSerializer(invitation).data, status=status.HTTP_201_CREATED)


class InvitationDetailView(TenantAPIView):
    """DELETE 撤销邀请"""

    required_permissions = {
        'DELETE': Permission.MEMBERS_INVITE,
    }

    def delete(self, request, invitation_id):
        InvitationService().revoke_invitation(self.tenant_context, invitation_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class InvitationAcceptView(TenantAPIView):
    """POST 接受邀请 - 只要求已认证，不需要当前组织"""

    def post(self, request):
        serializer = InvitationAcceptSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        membership = InvitationService().accept_invitation(request.user, serializer.validated_data['token'])
        return Response(MembershipSerializer(membership).data, status=status.HTTP_201_CREATED)
