from django.urls import path
from . import views

app_name = 'opportunities'

urlpatterns = [
    path('', views.opportunity_list_view, name='opportunity_list'),
    path('create/', views.opportunity_create_view, name='opportunity_create'),
    path('metrics/', views.opportunity_metrics_view, name='opportunity_metrics'),
    path('forecast/', views.forecast_view, name='forecast'),
    path('<int:pk>/', views.opportunity_detail_view, name='opportunity_detail'),
    path('<int:pk>/edit/', views.opportunity_edit_view, name='opportunity_edit'),
    path('<int:pk>/delete/', views.opportunity_delete_view, name='opportunity_delete'),
    path('<int:pk>/duplicate/', views.opportunity_duplicate_view, name='opportunity_duplicate'),

    # Activities & timeline
    path('<int:pk>/activities/', views.opportunity_add_activity_view, name='opportunity_add_activity'),
    path('activities/<int:activity_id>/complete/', views.opportunity_complete_activity_view, name='opportunity_complete_activity'),
    path('<int:pk>/timeline/', views.opportunity_timeline_view, name='opportunity_timeline'),
    path('<int:pk>/timeline/note/', views.opportunity_quick_note_view, name='opportunity_quick_note'),

    # Kanban
    path('kanban/', views.opportunity_kanban_view, name='opportunity_kanban'),
    path('kanban/stats/', views.opportunity_kanban_stats_view, name='opportunity_kanban_stats'),
    path('<int:pk>/move/', views.opportunity_move_view, name='opportunity_move'),

    # Export / import
    path('export/', views.opportunity_export_view, name='opportunity_export'),
    path('import/', views.opportunity_import_view, name='opportunity_import'),
    path('import/template/', views.opportunity_import_template_view, name='opportunity_import_template'),
]
