"""
Documents REST API

/api/documents/                       list, upload (multipart)
/api/documents/<id>/                  retrieve, update metadata, delete (?hard_delete=true)
/api/documents/<id>/download/         file as attachment
/api/documents/<id>/preview/          file inline
/api/documents/<id>/links/            POST attach, DELETE detach a company / contact
/api/documents/<id>/versions/         GET history, POST new version
"""

import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.http import FileResponse
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.parsers import MultiPartParser, FormParser, JSONParser
from rest_framework.response import Response

from apps.core.pagination import StandardPagination
from apps.core.utils import parse_sort
from . import policies, services
from .models import Document
from .permissions import DocumentPolicy
from .serializers import (
    DocumentSerializer, DocumentUploadSerializer, DocumentUpdateSerializer,
    DocumentVersionSerializer, DocumentVersionUploadSerializer, DocumentLinkSerializer,
)


logger = logging.getLogger(__name__)


def _truthy(value):
    return str(value).lower() in ('1', 'true', 'yes', 'on')


class DocumentViewSet(viewsets.ModelViewSet):
    serializer_class = DocumentSerializer
    permission_classes = [DocumentPolicy]
    pagination_class = StandardPagination
    parser_classes = [MultiPartParser, FormParser, JSONParser]

    SORT_FIELDS = ('name', 'original_filename', 'size_bytes', 'created_at', 'updated_at')

    def get_queryset(self):
        queryset = Document.objects.select_related('owner').prefetch_related(
            'tags', 'links__company', 'links__contact',
        )
        if self.action == 'list':
            return policies.visible_documents(self.request.user, queryset)
        return queryset

    def filter_list(self, queryset):
        params = self.request.query_params
        queryset = services.filter_documents(queryset, params)
        return queryset.order_by(parse_sort(params.get('sort'), self.SORT_FIELDS, '-created_at'))

    def _detail(self, document):
        document = self.get_queryset().get(pk=document.pk)
        return DocumentSerializer(document, context=self.get_serializer_context()).data

    def list(self, request, *args, **kwargs):
        queryset = self.filter_list(self.get_queryset())
        page = self.paginate_queryset(queryset)
        serializer = self.get_serializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    def create(self, request, *args, **kwargs):
        serializer = DocumentUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            document = services.store_document(
                request.user,
                data['file'],
                name=data.get('name', ''),
                description=data.get('description', ''),
                visibility=data.get('visibility'),
                tags=data.get('tags'),
                links=data.get('links'),
            )
        except DjangoValidationError as exc:
            raise ValidationError({'links': exc.messages})

        return Response(self._detail(document), status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        document = self.get_object()
        serializer = DocumentUpdateSerializer(
            document, data=request.data, partial=kwargs.pop('partial', False) or request.method == 'PATCH',
        )
        serializer.is_valid(raise_exception=True)
        serializer.save()
        logger.info(f"Document {document.pk} updated by {request.user.email}")
        return Response(self._detail(document))

    def destroy(self, request, *args, **kwargs):
        document = self.get_object()
        hard = _truthy(request.query_params.get('hard_delete', 'false'))
        logger.info(f"Document {document.pk} deleted by {request.user.email} (hard={hard})")
        services.delete_document(document, hard=hard)
        return Response({'status': 'ok'})

    def _file_response(self, document, as_attachment):
        if not document.file or not document.file.storage.exists(document.file.name):
            raise NotFound('The file of this document is missing.')
        return FileResponse(
            document.file.open('rb'),
            as_attachment=as_attachment,
            filename=document.original_filename,
            content_type=document.mime_type or 'application/octet-stream',
        )

    @action(detail=True, methods=['get'])
    def download(self, request, pk=None):
        return self._file_response(self.get_object(), as_attachment=True)

    @action(detail=True, methods=['get'])
    def preview(self, request, pk=None):
        return self._file_response(self.get_object(), as_attachment=False)

    @action(detail=True, methods=['post', 'delete'])
    def links(self, request, pk=None):
        document = self.get_object()
        payload = request.data if request.data else request.query_params
        serializer = DocumentLinkSerializer(data=payload)
        serializer.is_valid(raise_exception=True)
        link = serializer.validated_data

        if request.method == 'DELETE':
            services.detach_link(document, link['type'], link['id'])
            return Response(self._detail(document))

        try:
            services.attach_link(document, link['type'], link['id'], link['role'])
        except DjangoValidationError as exc:
            raise ValidationError({'id': exc.messages})
        return Response(self._detail(document))

    @action(detail=True, methods=['get', 'post'])
    def versions(self, request, pk=None):
        document = self.get_object()

        if request.method == 'GET':
            versions = document.versions.select_related('created_by')
            return Response(DocumentVersionSerializer(versions, many=True).data)

        serializer = DocumentVersionUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        version = services.add_version(document, serializer.validated_data['file'], request.user)

        return Response({
            'version': DocumentVersionSerializer(version).data,
            'document': self._detail(document),
        }, status=status.HTTP_201_CREATED)
