from django.urls import path
from . import views


app_name = 'core'

urlpatterns = [
    path('', views.dashboard_view, name='dashboard'),
    path('go/<str:object_type>/<int:pk>/', views.redirect_to_object_view, name='redirect_to_object'),

    # Dashboard data
    path('api/stats/', views.dashboard_stats_api, name='dashboard_stats'),
    path('api/contacts-by-status/', views.contacts_by_status_api, name='contacts_by_status'),
    path('api/companies-by-status/', views.companies_by_status_api, name='companies_by_status'),
    path('api/opportunities-by-stage/', views.opportunities_by_stage_api, name='opportunities_by_stage'),
    path('api/contacts-timeline/', views.contacts_timeline_api, name='contacts_timeline'),
    path('api/documents-timeline/', views.documents_timeline_api, name='documents_timeline'),
    path('api/recent-activities/', views.recent_activities_api, name='recent_activities'),

    # CRM settings
    path('settings/', views.settings_view, name='settings'),
    path('settings/public/', views.settings_public_api, name='settings_public'),
    path('settings/update/', views.settings_update_api, name='settings_update'),
    path('settings/update-one/', views.setting_update_api, name='setting_update'),
    path('settings/reset/', views.settings_reset_view, name='settings_reset'),
    path('settings/test-email/', views.settings_test_email_view, name='settings_test_email'),
    path('settings/<str:key>/', views.setting_detail_api, name='setting_detail'),
]
