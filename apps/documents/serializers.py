from django.core.exceptions import ValidationError as DjangoValidationError
from django.utils.translation import gettext_lazy as _
from rest_framework import serializers
from taggit.serializers import TagListSerializerField, TaggitSerializer

from apps.contacts.serializers import OwnerSerializer
from .models import Document, DocumentVersion, DocumentVisibility
from .validators import validate_upload, validate_tags, parse_links, validate_link


def _drf_error(exc):
    return serializers.ValidationError(exc.messages)


class TagsField(TagListSerializerField):
    """
    Tags as a JSON list, a JSON string, repeated form fields or "a, b"

    Each tag is at most 30 characters.
    """

    def get_value(self, dictionary):
        if hasattr(dictionary, 'getlist') and self.field_name in dictionary:
            values = dictionary.getlist(self.field_name)
            if len(values) == 1 and isinstance(values[0], str) and not values[0].lstrip().startswith('['):
                return values[0].split(',')
            if len(values) == 1:
                return values[0]
            return values
        return super().get_value(dictionary)

    def to_internal_value(self, value):
        value = super().to_internal_value(value)
        try:
            return validate_tags(value)
        except DjangoValidationError as exc:
            raise _drf_error(exc)


class LinksField(serializers.Field):
    """[{type: company|contact, id, role}] as a list or a JSON string."""

    def to_internal_value(self, data):
        try:
            return parse_links(data)
        except DjangoValidationError as exc:
            raise _drf_error(exc)

    def to_representation(self, value):
        return value


class DocumentSerializer(serializers.ModelSerializer):
    owner = OwnerSerializer(read_only=True)
    tags = serializers.SerializerMethodField()
    size_human = serializers.CharField(read_only=True)
    companies = serializers.SerializerMethodField()
    contacts = serializers.SerializerMethodField()

    class Meta:
        model = Document
        fields = [
            'id', 'uuid', 'name', 'original_filename', 'mime_type', 'extension',
            'size_bytes', 'size_human', 'visibility', 'description', 'tags',
            'owner', 'companies', 'contacts', 'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def get_tags(self, document):
        return sorted(tag.name for tag in document.tags.all())

    def get_companies(self, document):
        return [
            {'id': link.company_id, 'name': link.company.name, 'role': link.role}
            for link in document.links.all() if link.company_id
        ]

    def get_contacts(self, document):
        return [
            {'id': link.contact_id, 'name': link.contact.name, 'role': link.role}
            for link in document.links.all() if link.contact_id
        ]


class DocumentUploadSerializer(serializers.Serializer):
    file = serializers.FileField(error_messages={
        'required': _('A file is required.'),
        'invalid': _('The upload must be a file.'),
    })
    name = serializers.CharField(max_length=255, required=False, allow_blank=True, error_messages={
        'max_length': _('The name may not be greater than 255 characters.'),
    })
    description = serializers.CharField(max_length=1000, required=False, allow_blank=True, error_messages={
        'max_length': _('The description may not be greater than 1000 characters.'),
    })
    visibility = serializers.ChoiceField(choices=DocumentVisibility.choices, required=False,
                                         default=DocumentVisibility.PRIVATE, error_messages={
                                             'invalid_choice': _('The visibility must be private, team or company.'),
                                         })
    tags = TagsField(required=False)
    links = LinksField(required=False)

    def validate_file(self, value):
        try:
            validate_upload(value)
        except DjangoValidationError as exc:
            raise _drf_error(exc)
        return value


class DocumentUpdateSerializer(TaggitSerializer, serializers.ModelSerializer):
    tags = TagsField(required=False)
    name = serializers.CharField(max_length=255, required=False, error_messages={
        'blank': _('The name is required.'),
        'max_length': _('The name may not be greater than 255 characters.'),
    })
    description = serializers.CharField(max_length=1000, required=False, allow_blank=True, error_messages={
        'max_length': _('The description may not be greater than 1000 characters.'),
    })
    visibility = serializers.ChoiceField(choices=DocumentVisibility.choices, required=False, error_messages={
        'invalid_choice': _('The visibility must be private, team or company.'),
    })

    class Meta:
        model = Document
        fields = ['name', 'description', 'visibility', 'tags']


class DocumentVersionUploadSerializer(serializers.Serializer):
    file = serializers.FileField(error_messages={'required': _('A file is required.')})

    def validate_file(self, value):
        try:
            validate_upload(value)
        except DjangoValidationError as exc:
            raise _drf_error(exc)
        return value


class DocumentVersionSerializer(serializers.ModelSerializer):
    created_by = OwnerSerializer(read_only=True)
    size_human = serializers.CharField(read_only=True)

    class Meta:
        model = DocumentVersion
        fields = ['id', 'version', 'original_filename', 'mime_type', 'size_bytes', 'size_human',
                  'created_by', 'created_at']
        read_only_fields = fields


class DocumentLinkSerializer(serializers.Serializer):
    type = serializers.CharField()
    id = serializers.IntegerField()
    role = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        try:
            return validate_link(attrs['type'], attrs['id'], attrs.get('role'))
        except DjangoValidationError as exc:
            raise _drf_error(exc)
