from django.urls import path
from . import views

app_name = 'events'

urlpatterns = [
    path('', views.calendar_view, name='calendar'),

    # Local events
    path('events/', views.events_api, name='event_list'),
    path('events/<int:pk>/', views.event_detail_api, name='event_detail'),
    path('types/', views.event_types_api, name='event_types'),
    path('priorities/', views.event_priorities_api, name='event_priorities'),

    # Google Calendar
    path('google/connect/', views.google_connect_view, name='google_connect'),
    path('google/callback/', views.google_callback_view, name='google_callback'),
    path('google/disconnect/', views.google_disconnect_view, name='google_disconnect'),
    path('google/events/', views.google_events_api, name='google_events'),
    path('google/events/<str:event_id>/', views.google_event_detail_api, name='google_event_detail'),
]
