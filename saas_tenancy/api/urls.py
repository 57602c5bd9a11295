"""
SaaS Tenancy REST API 路由

使用:
    urlpatterns = [
        path('api/tenancy/', include('saas_tenancy.api.urls')),
    ]
"""

from django.urls import path

from . import views


app_name = 'saas_tenancy'

urlpatterns = [
    # 组织
    path('organizations/', views.OrganizationListView.as_view(), name='organizations'),  # GET/POST

    # 租户上下文
    path('context/', views.TenantContextView.as_view(), name='context'),  # GET
    path('context/switch/', views.SwitchOrganizationView.as_view(), name='context-switch'),  # POST

    # 成员
    path('members/', views.MemberListView.as_view(), name='members'),  # GET/POST
    path('members/<str:user_id>/', views.MemberDetailView.as_view(), name='member-detail'),  # GET/PATCH/DELETE

    # 角色 (default 必须在 <name> 之前)
    path('roles/', views.RoleListView.as_view(), name='roles'),  # GET/POST
    path('roles/default/', views.DefaultRoleView.as_view(), name='role-default'),  # PUT
    path('roles/<str:name>/', views.RoleDetailView.as_view(), name='role-detail'),  # PATCH/DELETE

    # 邀请
    path('invitations/', views.InvitationListView.as_view(), name='invitations'),  # GET/POST
    path('invitations/accept/', views.InvitationAcceptView.as_view(), name='invitation-accept'),  # POST
    path('invitations/<uuid:invitation_id>/', views.InvitationDetailView.as_view(), name='invitation-detail'),  # DELETE
]
