from django.urls import path

from . import views

app_name = 'reminders'

urlpatterns = [
    path('', views.reminder_list_view, name='reminder_list'),
    path('create/', views.reminder_create_view, name='reminder_create'),
    path('<int:pk>/edit/', views.reminder_edit_view, name='reminder_edit'),
    path('<int:pk>/complete/', views.reminder_complete_view, name='reminder_complete'),
    path('<int:pk>/snooze/', views.reminder_snooze_view, name='reminder_snooze'),
    path('<int:pk>/delete/', views.reminder_delete_view, name='reminder_delete'),
    path('api/upcoming/', views.reminder_upcoming_api, name='reminder_upcoming'),
    path('api/count/', views.reminder_count_api, name='reminder_count'),

    # Email templates
    path('email-templates/', views.template_list_view, name='template_list'),
    path('email-templates/create/', views.template_create_view, name='template_create'),
    path('email-templates/api/', views.template_api_list, name='template_api_list'),
    path('email-templates/<int:pk>/edit/', views.template_edit_view, name='template_edit'),
    path('email-templates/<int:pk>/delete/', views.template_delete_view, name='template_delete'),
    path('email-templates/<int:pk>/duplicate/', views.template_duplicate_view, name='template_duplicate'),
    path('email-templates/<int:pk>/preview/', views.template_preview_view, name='template_preview'),
    path('email-templates/<int:pk>/send/', views.template_send_view, name='template_send'),
]
