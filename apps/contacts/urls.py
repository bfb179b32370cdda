from django.urls import path
from . import views

app_name = 'contacts'

urlpatterns = [
    # Contacts
    path('', views.contact_list_view, name='contact_list'),
    path('kanban/', views.contact_kanban_view, name='contact_kanban'),
    path('create/', views.contact_create_view, name='contact_create'),
    path('<int:pk>/', views.contact_detail_view, name='contact_detail'),
    path('<int:pk>/edit/', views.contact_edit_view, name='contact_edit'),
    path('<int:pk>/delete/', views.contact_delete_view, name='contact_delete'),
    path('<int:pk>/change-status/', views.contact_change_status_view, name='contact_change_status'),

    # CSV import
    path('import/', views.contact_import_view, name='contact_import'),
    path('import/<int:pk>/', views.contact_import_detail_view, name='contact_import_detail'),
    path('import/<int:pk>/status/', views.contact_import_status_view, name='contact_import_status'),
    path('import/<int:pk>/cancel/', views.contact_import_cancel_view, name='contact_import_cancel'),

    # Companies
    path('companies/', views.company_list_view, name='company_list'),
    path('companies/create/', views.company_create_view, name='company_create'),
    path('companies/<int:pk>/', views.company_detail_view, name='company_detail'),
    path('companies/<int:pk>/edit/', views.company_edit_view, name='company_edit'),
    path('companies/<int:pk>/delete/', views.company_delete_view, name='company_delete'),
]
