from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static
from django.shortcuts import redirect

# Main URL Configuration
# HTML pages per app, JSON API under /api/

urlpatterns = [

    path('admin/', admin.site.urls),
    path('accounts/', include('apps.accounts.urls')),
    path('dashboard/', include('apps.core.urls')),
    path('', lambda request: redirect('core:dashboard') if request.user.is_authenticated else redirect('accounts:login')),
    path('contacts/', include('apps.contacts.urls')),
    path('documents/', include('apps.documents.urls')),
    path('opportunities/', include('apps.opportunities.urls')),
    path('reminders/', include('apps.reminders.urls')),
    path('calendar/', include('apps.events.urls')),
    path('api/', include('config.api_urls')),

]

if settings.DEBUG:
    # Media files (document uploads, avatars)
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)

    # Static files (CSS, JS, images)
    urlpatterns += static(settings.STATIC_URL, document_root=settings.STATIC_ROOT)
