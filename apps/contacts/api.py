"""
Contacts & companies REST API

/api/contacts/                      list, create, retrieve, update, delete
/api/contacts/search/?q=            quick search (15 rows max)
/api/contacts/unassigned/           contacts without company
/api/companies/                     list, create, retrieve, update, delete
/api/companies/by-status/<status>/  companies with the given status
/api/companies/statuses/            status choices
/api/companies/<id>/contacts/       contacts of one company (+ attach / detach)
"""

import logging

from django.db.models import Count, Q
from django.shortcuts import get_object_or_404
from django.utils.translation import gettext as _
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.response import Response

from apps.core.pagination import StandardPagination, SmallPagination
from apps.core.utils import parse_sort, clamp_int
from . import policies
from .models import Contact, Company, CompanyStatus
from .permissions import ContactPolicy, CompanyPolicy
from .serializers import ContactSerializer, ContactSearchSerializer, CompanySerializer


logger = logging.getLogger(__name__)

SEARCH_LIMIT = 15


def search_contacts(queryset, term):
    term = (term or '').strip()
    if not term:
        return queryset
    return queryset.filter(
        Q(name__icontains=term) |
        Q(email__icontains=term) |
        Q(phone__icontains=term)
    )


class ContactViewSet(viewsets.ModelViewSet):
    serializer_class = ContactSerializer
    permission_classes = [ContactPolicy]
    pagination_class = StandardPagination

    SORT_FIELDS = ('name', 'email', 'created_at')

    def get_queryset(self):
        queryset = Contact.objects.select_related('company', 'user')

        # Detail routes load any contact, the policy answers 403
        if self.action not in ('list', 'search', 'unassigned'):
            return queryset

        return policies.visible_contacts(self.request.user, queryset)

    def filter_list(self, queryset):
        params = self.request.query_params

        queryset = search_contacts(queryset, params.get('search'))

        if params.get('filter[name]'):
            queryset = queryset.filter(name__icontains=params['filter[name]'])
        if params.get('filter[email]'):
            queryset = queryset.filter(email=params['filter[email]'])
        if params.get('filter[phone]'):
            queryset = queryset.filter(phone=params['filter[phone]'])
        if params.get('filter[user_id]'):
            queryset = queryset.filter(user_id=clamp_int(params['filter[user_id]'], 0, 0, 2 ** 63 - 1))

        if params.get('scope') == 'unassigned':
            queryset = queryset.filter(company__isnull=True)

        return queryset.order_by(parse_sort(params.get('sort'), self.SORT_FIELDS, '-created_at'))

    def list(self, request, *args, **kwargs):
        queryset = self.filter_list(self.get_queryset())
        page = self.paginate_queryset(queryset)
        serializer = self.get_serializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    def perform_create(self, serializer):
        contact = serializer.save(user=self.request.user)
        logger.info(f"Contact {contact.pk} created by {self.request.user.email}")

    def perform_update(self, serializer):
        contact = serializer.save()
        logger.info(f"Contact {contact.pk} updated by {self.request.user.email}")

    def perform_destroy(self, instance):
        logger.info(f"Contact {instance.pk} deleted by {self.request.user.email}")
        instance.delete()

    @action(detail=False, methods=['get'])
    def search(self, request):
        term = request.query_params.get('q', '').strip()
        if not term:
            return Response([])

        queryset = search_contacts(self.get_queryset(), term).order_by('name')[:SEARCH_LIMIT]
        return Response(ContactSearchSerializer(queryset, many=True).data)

    @action(detail=False, methods=['get'])
    def unassigned(self, request):
        queryset = self.get_queryset()
        if request.query_params.get('scope', 'unassigned') != 'all':
            queryset = queryset.filter(company__isnull=True)

        queryset = search_contacts(queryset, request.query_params.get('search')).order_by('name')
        page = self.paginate_queryset(queryset)
        serializer = self.get_serializer(page, many=True)
        return self.get_paginated_response(serializer.data)


class CompanyViewSet(viewsets.ModelViewSet):
    serializer_class = CompanySerializer
    permission_classes = [CompanyPolicy]
    pagination_class = StandardPagination

    SORT_FIELDS = ('name', 'created_at', 'contacts_count')

    def get_queryset(self):
        queryset = Company.objects.select_related('owner').annotate(contacts_count=Count('contacts'))
        if self.action == 'list':
            return policies.visible_companies(self.request.user, queryset)
        return queryset

    def filter_list(self, queryset):
        params = self.request.query_params

        term = params.get('search', '').strip()
        if term:
            queryset = queryset.filter(
                Q(name__icontains=term) |
                Q(domain__icontains=term) |
                Q(industry__icontains=term)
            )

        if params.get('status'):
            queryset = queryset.filter(status=params['status'])
        if params.get('owner_id'):
            queryset = queryset.filter(owner_id=clamp_int(params['owner_id'], 0, 0, 2 ** 63 - 1))

        return queryset.order_by(parse_sort(params.get('sort'), self.SORT_FIELDS, '-created_at'))

    def list(self, request, *args, **kwargs):
        queryset = self.filter_list(self.get_queryset())
        page = self.paginate_queryset(queryset)
        serializer = self.get_serializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    def perform_create(self, serializer):
        owner = serializer.validated_data.get('owner') or self.request.user
        company = serializer.save(owner=owner)
        logger.info(f"Company {company.pk} created by {self.request.user.email}")

    def perform_update(self, serializer):
        company = serializer.save()
        logger.info(f"Company {company.pk} updated by {self.request.user.email}")

    def perform_destroy(self, instance):
        logger.info(f"Company {instance.pk} deleted by {self.request.user.email}")
        instance.delete()

    @action(detail=False, methods=['get'], url_path=r'by-status/(?P<company_status>[^/.]+)')
    def by_status(self, request, company_status=None):
        if company_status not in CompanyStatus.values:
            return Response({'message': _('The selected status is invalid.')}, status=status.HTTP_422_UNPROCESSABLE_ENTITY)

        queryset = self.get_queryset().filter(status=company_status).order_by('name')
        page = self.paginate_queryset(queryset)
        serializer = self.get_serializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    @action(detail=False, methods=['get'])
    def statuses(self, request):
        return Response({
            'data': [{'value': value, 'label': str(label)} for value, label in CompanyStatus.choices],
        })


class CompanyContactViewSet(viewsets.ModelViewSet):
    """
    Contacts of one company, mounted under /api/companies/<company_pk>/contacts/

    A contact of another company is reported as missing (404).
    """

    serializer_class = ContactSerializer
    permission_classes = [ContactPolicy]
    pagination_class = SmallPagination

    def get_company(self):
        if not hasattr(self, '_company'):
            self._company = get_object_or_404(Company, pk=self.kwargs['company_pk'])
            if not policies.can_view_company(self.request.user, self._company):
                raise PermissionDenied(_('You do not have permission to access this company.'))
        return self._company

    def get_queryset(self):
        company = self.get_company()
        return Contact.objects.filter(company=company).select_related('company', 'user')

    def list(self, request, *args, **kwargs):
        queryset = search_contacts(self.get_queryset(), request.query_params.get('search')).order_by('name')
        page = self.paginate_queryset(queryset)
        serializer = self.get_serializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    def perform_create(self, serializer):
        contact = serializer.save(user=self.request.user, company=self.get_company())
        logger.info(f"Contact {contact.pk} created in company {contact.company_id}")

    def perform_update(self, serializer):
        serializer.save(company=self.get_company())

    @action(detail=False, methods=['post'])
    def attach(self, request, company_pk=None):
        company = self.get_company()
        if not policies.can_update_company(request.user, company):
            raise PermissionDenied(_('You do not have permission to update this company.'))

        contact = get_object_or_404(Contact, pk=request.data.get('contact_id'))
        if not policies.can_update_contact(request.user, contact):
            raise PermissionDenied(_('You do not have permission to update this contact.'))

        if contact.company_id == company.pk:
            return Response(
                {'message': _('This contact is already attached to this company.')},
                status=status.HTTP_422_UNPROCESSABLE_ENTITY,
            )

        contact.company = company
        contact.save(update_fields=['company', 'updated_at'])
        logger.info(f"Contact {contact.pk} attached to company {company.pk}")
        return Response(ContactSerializer(contact).data)

    @action(detail=True, methods=['post'])
    def detach(self, request, company_pk=None, pk=None):
        contact = self.get_object()

        contact.company = None
        contact.save(update_fields=['company', 'updated_at'])
        logger.info(f"Contact {contact.pk} detached from company {company_pk}")
        return Response(ContactSerializer(contact).data)
