# REST API (/api/)
#
# Session or basic authentication, JSON in / JSON out.
# List endpoints answer {"data": [...], "meta": {...}, "links": {...}}
# ==============================================================================

from django.urls import path, include
from rest_framework.routers import DefaultRouter

from apps.contacts.api import ContactViewSet, CompanyViewSet, CompanyContactViewSet
from apps.documents.api import DocumentViewSet

app_name = 'api'

router = DefaultRouter()
router.register('contacts', ContactViewSet, basename='contact')
router.register('companies', CompanyViewSet, basename='company')
router.register('documents', DocumentViewSet, basename='document')

company_contact_list = CompanyContactViewSet.as_view({'get': 'list', 'post': 'create'})
company_contact_detail = CompanyContactViewSet.as_view({
    'get': 'retrieve',
    'put': 'update',
    'patch': 'partial_update',
    'delete': 'destroy',
})
company_contact_attach = CompanyContactViewSet.as_view({'post': 'attach'})
company_contact_detach = CompanyContactViewSet.as_view({'post': 'detach'})

urlpatterns = [
    path('companies/<int:company_pk>/contacts/', company_contact_list, name='company-contact-list'),
    path('companies/<int:company_pk>/contacts/attach/', company_contact_attach, name='company-contact-attach'),
    path('companies/<int:company_pk>/contacts/<int:pk>/', company_contact_detail, name='company-contact-detail'),
    path('companies/<int:company_pk>/contacts/<int:pk>/detach/', company_contact_detach, name='company-contact-detach'),
    path('', include(router.urls)),
]
