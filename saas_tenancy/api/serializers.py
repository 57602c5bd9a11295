"""
SaaS Tenancy API 序列化器
"""

from rest_framework import serializers

from ..constants import OverrideEffect, Permission
from ..models import Invitation, Membership, Organization


PERMISSION_CHOICES = [p.value for p in Permission]
OVERRIDE_CHOICES = [e.value for e in OverrideEffect]


class OrganizationSerializer(serializers.ModelSerializer):

    class Meta:
        model = Organization
        fields = ['id', 'name', 'slug', 'logo', 'metadata', 'default_role', 'created_at']
        read_only_fields = fields


class OrganizationCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    slug = serializers.SlugField(max_length=255)
    logo = serializers.URLField(max_length=500, required=False, allow_null=True)
    metadata = serializers.DictField(required=False)


class MembershipSerializer(serializers.ModelSerializer):
    user_id = serializers.CharField(source='user.pk', read_only=True)
    email = serializers.EmailField(source='user.email', read_only=True)
    organization_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = Membership
        fields = ['id', 'user_id', 'email', 'organization_id', 'role', 'permissions', 'joined_at']
        read_only_fields = fields


class OverridesField(serializers.DictField):
    """权限覆盖 {'billing:manage': 'allow' | 'deny'}"""

    child = serializers.ChoiceField(choices=OVERRIDE_CHOICES)

    def to_internal_value(self, data):
        data = super().to_internal_value(data)
        invalid = [key for key in data if Permission.parse(key) is None]
        if invalid:
            raise serializers.ValidationError(f"Invalid permission keys: {', '.join(sorted(invalid))}")
        return data


class MembershipCreateSerializer(serializers.Serializer):
    user_id = serializers.CharField()
    role = serializers.CharField(max_length=100, required=False)
    permissions = OverridesField(required=False)


class MembershipUpdateSerializer(serializers.Serializer):
    role = serializers.CharField(max_length=100, required=False)
    permissions = OverridesField(required=False)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("Provide role and/or permissions")
        return attrs


class RoleSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    permissions = serializers.ListField(child=serializers.ChoiceField(choices=PERMISSION_CHOICES))


class RoleUpdateSerializer(serializers.Serializer):
    description = serializers.CharField(required=False, allow_blank=True)
    permissions = serializers.ListField(
        child=serializers.ChoiceField(choices=PERMISSION_CHOICES),
        required=False
    )


class DefaultRoleSerializer(serializers.Serializer):
    role = serializers.CharField(max_length=100)


class InvitationSerializer(serializers.ModelSerializer):
    organization_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = Invitation
        fields = ['id', 'organization_id', 'email', 'role', 'status', 'token', 'expires_at', 'created_at']
        read_only_fields = fields


class InvitationCreateSerializer(serializers.Serializer):
    email = serializers.EmailField()
    role = serializers.CharField(max_length=100, required=False)


class InvitationAcceptSerializer(serializers.Serializer):
    token = serializers.CharField(max_length=128)


class SwitchOrganizationSerializer(serializers.Serializer):
    organization_id = serializers.UUIDField()
