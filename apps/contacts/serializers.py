from django.utils.translation import gettext_lazy as _
from rest_framework import serializers

from apps.accounts.models import User
from .forms import phone_validator, CONTACT_NAME_MAX_LENGTH, CONTACT_EMAIL_MAX_LENGTH
from .models import Contact, Company, ContactStatus, CompanyStatus, ContactImport, ContactImportFailure


class OwnerSerializer(serializers.ModelSerializer):
    name = serializers.CharField(source='get_full_name', read_only=True)

    class Meta:
        model = User
        fields = ['id', 'name', 'email']


class CompanySummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Company
        fields = ['id', 'name', 'status']


class CompanySerializer(serializers.ModelSerializer):
    owner = OwnerSerializer(read_only=True)
    owner_id = serializers.PrimaryKeyRelatedField(
        source='owner', queryset=User.objects.all(), required=False, allow_null=True,
        error_messages={'does_not_exist': _('The selected owner does not exist.')},
    )
    status = serializers.ChoiceField(
        choices=CompanyStatus.choices, required=False,
        error_messages={'invalid_choice': _('The selected status is invalid.')},
    )
    contacts_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = Company
        fields = [
            'id', 'name', 'domain', 'industry', 'size', 'status', 'owner', 'owner_id',
            'address', 'city', 'zipcode', 'country', 'notes', 'contacts_count',
            'created_at', 'updated_at',
        ]
        read_only_fields = ['created_at', 'updated_at']
        extra_kwargs = {
            'name': {'error_messages': {
                'required': _('The company name is required.'),
                'blank': _('The company name is required.'),
                'max_length': _('The company name may not be greater than 255 characters.'),
            }},
            'size': {'error_messages': {'max_length': _('The size may not be greater than 50 characters.')}},
            'zipcode': {'error_messages': {'max_length': _('The zip code may not be greater than 50 characters.')}},
        }

    def to_representation(self, instance):
        data = super().to_representation(instance)
        if data.get('contacts_count') is None:
            data['contacts_count'] = instance.contacts.count()
        return data


class ContactSerializer(serializers.ModelSerializer):
    user = OwnerSerializer(read_only=True)
    company = CompanySummarySerializer(read_only=True)
    company_id = serializers.PrimaryKeyRelatedField(
        source='company', queryset=Company.objects.all(), required=False, allow_null=True,
        error_messages={'does_not_exist': _('The selected company does not exist.')},
    )
    name = serializers.CharField(max_length=CONTACT_NAME_MAX_LENGTH, error_messages={
        'required': _('The name is required.'),
        'blank': _('The name is required.'),
        'max_length': _('The name may not be greater than 50 characters.'),
    })
    email = serializers.EmailField(max_length=CONTACT_EMAIL_MAX_LENGTH, required=False, allow_null=True, allow_blank=True, error_messages={
        'invalid': _('The email must be a valid email address.'),
        'max_length': _('The email may not be greater than 100 characters.'),
    })
    phone = serializers.CharField(max_length=20, required=False, allow_null=True, allow_blank=True,
                                  validators=[phone_validator], error_messages={
                                      'max_length': _('The phone number may not be greater than 20 characters.'),
                                  })
    address = serializers.CharField(max_length=255, required=False, allow_blank=True, error_messages={
        'max_length': _('The address may not be greater than 255 characters.'),
    })
    status = serializers.ChoiceField(choices=ContactStatus.choices, required=False)
    latitude = serializers.DecimalField(max_digits=10, decimal_places=7, min_value=-90, max_value=90,
                                        required=False, allow_null=True, error_messages={
                                            'min_value': _('The latitude must be between -90 and 90.'),
                                            'max_value': _('The latitude must be between -90 and 90.'),
                                        })
    longitude = serializers.DecimalField(max_digits=10, decimal_places=7, min_value=-180, max_value=180,
                                         required=False, allow_null=True, error_messages={
                                             'min_value': _('The longitude must be between -180 and 180.'),
                                             'max_value': _('The longitude must be between -180 and 180.'),
                                         })

    class Meta:
        model = Contact
        fields = [
            'id', 'name', 'email', 'phone', 'address', 'status', 'company', 'company_id',
            'user', 'latitude', 'longitude', 'created_at', 'updated_at',
        ]
        read_only_fields = ['created_at', 'updated_at']

    def validate_email(self, value):
        if not value:
            return None
        value = value.strip().lower()
        duplicates = Contact.objects.filter(email__iexact=value)
        if self.instance is not None:
            duplicates = duplicates.exclude(pk=self.instance.pk)
        if duplicates.exists():
            raise serializers.ValidationError(_('This email is already used by another contact.'))
        return value

    def validate_phone(self, value):
        return value.strip() if value else None


class ContactSearchSerializer(serializers.ModelSerializer):
    company = serializers.CharField(source='company.name', default=None, read_only=True)

    class Meta:
        model = Contact
        fields = ['id', 'name', 'email', 'company']


class ContactImportFailureSerializer(serializers.ModelSerializer):
    class Meta:
        model = ContactImportFailure
        fields = ['row_number', 'data', 'errors']


class ContactImportSerializer(serializers.ModelSerializer):
    progress = serializers.IntegerField(read_only=True)
    skipped_rows = serializers.IntegerField(read_only=True)
    is_finished = serializers.BooleanField(read_only=True)
    failures = ContactImportFailureSerializer(many=True, read_only=True)

    class Meta:
        model = ContactImport
        fields = [
            'id', 'filename', 'status', 'total_rows', 'processed_rows', 'imported_rows',
            'failed_rows', 'skipped_rows', 'progress', 'cancelled', 'is_finished',
            'created_at', 'finished_at', 'failures',
        ]
