import uuid

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Organization',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('name', models.CharField(help_text='组织名称', max_length=255)),
                ('slug', models.SlugField(help_text='组织slug，用于URL', max_length=255, unique=True)),
                ('logo', models.URLField(blank=True, help_text='组织logo', max_length=500, null=True)),
                ('metadata', models.JSONField(blank=True, default=dict, help_text='扩展属性')),
                ('default_role', models.CharField(default='member', help_text='新成员的默认角色 (内置角色或自定义角色)', max_length=100)),
            ],
            options={
                'db_table': 'organizations',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='Role',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('name', models.CharField(help_text='角色名称', max_length=100)),
                ('description', models.TextField(blank=True, default='', help_text='角色描述')),
                ('permissions', models.JSONField(default=list, help_text="权限键列表 ['org:view', 'members:view']")),
                ('organization', models.ForeignKey(help_text='所属组织', on_delete=django.db.models.deletion.CASCADE, related_name='roles', to='saas_tenancy.organization')),
            ],
            options={
                'db_table': 'roles',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Membership',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('role', models.CharField(db_index=True, default='member', help_text='角色名称', max_length=100)),
                ('permissions', models.JSONField(blank=True, default=dict, help_text="细粒度权限覆盖 {'billing:manage': 'allow' | 'deny'}")),
                ('joined_at', models.DateTimeField(default=django.utils.timezone.now, help_text='加入时间')),
                ('organization', models.ForeignKey(help_text='所属组织', on_delete=django.db.models.deletion.CASCADE, related_name='memberships', to='saas_tenancy.organization')),
                ('user', models.ForeignKey(help_text='成员用户', on_delete=django.db.models.deletion.CASCADE, related_name='tenant_memberships', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'memberships',
                'ordering': ['-joined_at'],
            },
        ),
        migrations.CreateModel(
            name='Invitation',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('email', models.EmailField(db_index=True, help_text='被邀请人邮箱', max_length=255)),
                ('role', models.CharField(default='member', help_text='接受邀请后获得的角色', max_length=100)),
                ('token', models.CharField(help_text='邀请令牌', max_length=128, unique=True)),
                ('status', models.CharField(choices=[('pending', 'PENDING'), ('accepted', 'ACCEPTED'), ('expired', 'EXPIRED'), ('revoked', 'REVOKED')], default='pending', help_text='pending | accepted | expired | revoked', max_length=20)),
                ('expires_at', models.DateTimeField(help_text='过期时间')),
                ('inviter', models.ForeignKey(help_text='邀请人', on_delete=django.db.models.deletion.CASCADE, related_name='sent_tenant_invitations', to=settings.AUTH_USER_MODEL)),
                ('organization', models.ForeignKey(help_text='目标组织', on_delete=django.db.models.deletion.CASCADE, related_name='invitations', to='saas_tenancy.organization')),
            ],
            options={
                'db_table': 'invitations',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='AuditLog',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('action', models.CharField(db_index=True, help_text='操作类型', max_length=100)),
                ('resource_type', models.CharField(blank=True, help_text='资源类型', max_length=50, null=True)),
                ('resource_id', models.CharField(blank=True, help_text='资源ID', max_length=255, null=True)),
                ('metadata', models.JSONField(default=dict, help_text='附加元数据')),
                ('organization', models.ForeignKey(blank=True, help_text='所属组织', null=True, on_delete=django.db.models.deletion.CASCADE, related_name='audit_logs', to='saas_tenancy.organization')),
                ('user', models.ForeignKey(blank=True, help_text='操作用户', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='tenant_audit_logs', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'audit_log',
                'ordering': ['-created_at'],
            },
        ),
        migrations.AddConstraint(
            model_name='role',
            constraint=models.UniqueConstraint(fields=('organization', 'name'), name='roles_org_name_uniq'),
        ),
        migrations.AddConstraint(
            model_name='membership',
            constraint=models.UniqueConstraint(fields=('user', 'organization'), name='memberships_user_org_uniq'),
        ),
        migrations.AddIndex(
            model_name='membership',
            index=models.Index(fields=['organization', 'role'], name='memberships_organiz_6b1f0c_idx'),
        ),
        migrations.AddIndex(
            model_name='auditlog',
            index=models.Index(fields=['organization', 'action'], name='audit_log_organiz_2c7d4e_idx'),
        ),
        migrations.AddIndex(
            model_name='auditlog',
            index=models.Index(fields=['resource_type', 'resource_id'], name='audit_log_resourc_9a3e51_idx'),
        ),
    ]
