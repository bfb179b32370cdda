import csv

from django import forms
from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import RegexValidator
from django.utils.translation import gettext_lazy as _

from apps.accounts.models import User
from .importer import read_csv_rows
from .models import Contact, Company, ContactStatus, CompanyStatus


PHONE_REGEX = r'^([+]?\d{1,3}[-. ]?)?(\(?\d{3}\)?[-. ]?)?\d{3}[-. ]?\d{4}$'

phone_validator = RegexValidator(
    regex=PHONE_REGEX,
    message=_('The phone number format is invalid.'),
)

CONTACT_NAME_MAX_LENGTH = 50
CONTACT_EMAIL_MAX_LENGTH = 100


class ContactForm(forms.ModelForm):
    class Meta:
        model = Contact
        fields = ['name', 'email', 'phone', 'address', 'company', 'status', 'latitude', 'longitude']

        widgets = {
            'name': forms.TextInput(attrs={'class': 'form-control', 'placeholder': 'e.g. Alice Martin', 'autofocus': True}),
            'email': forms.EmailInput(attrs={'class': 'form-control', 'placeholder': 'alice@example.com', 'dir': 'ltr'}),
            'phone': forms.TextInput(attrs={'class': 'form-control', 'placeholder': '+33 612 345 6789', 'dir': 'ltr'}),
            'address': forms.TextInput(attrs={'class': 'form-control'}),
            'company': forms.Select(attrs={'class': 'form-select'}),
            'status': forms.Select(attrs={'class': 'form-select'}),
            'latitude': forms.NumberInput(attrs={'class': 'form-control', 'step': 'any'}),
            'longitude': forms.NumberInput(attrs={'class': 'form-control', 'step': 'any'}),
        }

        error_messages = {
            'name': {
                'required': _('The name is required.'),
                'max_length': _('The name may not be greater than 50 characters.'),
            },
            'email': {
                'invalid': _('The email must be a valid email address.'),
                'unique': _('This email is already used by another contact.'),
            },
            'address': {
                'max_length': _('The address may not be greater than 255 characters.'),
            },
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['name'].max_length = CONTACT_NAME_MAX_LENGTH
        self.fields['name'].widget.attrs['maxlength'] = CONTACT_NAME_MAX_LENGTH
        self.fields['company'].queryset = Company.objects.order_by('name')
        self.fields['company'].empty_label = _('No company')
        self.fields['company'].required = False

        if not self.instance.pk:
            self.fields['status'].initial = ContactStatus.NOUVEAU

    def clean_name(self):
        name = (self.cleaned_data.get('name') or '').strip()
        if not name:
            raise ValidationError(_('The name is required.'))
        if len(name) > CONTACT_NAME_MAX_LENGTH:
            raise ValidationError(_('The name may not be greater than 50 characters.'))
        return name

    def clean_email(self):
        email = self.cleaned_data.get('email')
        if not email:
            return None
        email = email.strip().lower()
        if len(email) > CONTACT_EMAIL_MAX_LENGTH:
            raise ValidationError(_('The email may not be greater than 100 characters.'))

        duplicates = Contact.objects.filter(email__iexact=email)
        if self.instance.pk:
            duplicates = duplicates.exclude(pk=self.instance.pk)
        if duplicates.exists():
            raise ValidationError(_('This email is already used by another contact.'))
        return email

    def clean_phone(self):
        phone = (self.cleaned_data.get('phone') or '').strip()
        if not phone:
            return None
        if len(phone) > 20:
            raise ValidationError(_('The phone number may not be greater than 20 characters.'))
        phone_validator(phone)
        return phone

    def clean_latitude(self):
        latitude = self.cleaned_data.get('latitude')
        if latitude is not None and not -90 <= latitude <= 90:
            raise ValidationError(_('The latitude must be between -90 and 90.'))
        return latitude

    def clean_longitude(self):
        longitude = self.cleaned_data.get('longitude')
        if longitude is not None and not -180 <= longitude <= 180:
            raise ValidationError(_('The longitude must be between -180 and 180.'))
        return longitude


class ContactStatusForm(forms.Form):
    status = forms.ChoiceField(choices=ContactStatus.choices, label=_('New status'), widget=forms.Select(attrs={'class': 'form-select'}))


class ContactFilterForm(forms.Form):
    search = forms.CharField(required=False, label=_('Search'), widget=forms.TextInput(attrs={'class': 'form-control', 'placeholder': _('Name, email or phone...')}))
    status = forms.ChoiceField(choices=[('', _('All statuses'))] + ContactStatus.choices, required=False, widget=forms.Select(attrs={'class': 'form-select'}))
    company = forms.ModelChoiceField(queryset=Company.objects.order_by('name'), required=False, empty_label=_('All companies'), widget=forms.Select(attrs={'class': 'form-select'}))
    unassigned = forms.BooleanField(required=False, label=_('Without company only'))


class CompanyForm(forms.ModelForm):
    class Meta:
        model = Company
        fields = ['name', 'domain', 'industry', 'size', 'status', 'owner', 'address', 'city', 'zipcode', 'country', 'notes']

        widgets = {
            'name': forms.TextInput(attrs={'class': 'form-control', 'autofocus': True}),
            'domain': forms.TextInput(attrs={'class': 'form-control', 'placeholder': 'example.com', 'dir': 'ltr'}),
            'industry': forms.TextInput(attrs={'class': 'form-control'}),
            'size': forms.TextInput(attrs={'class': 'form-control', 'placeholder': '10-50'}),
            'status': forms.Select(attrs={'class': 'form-select'}),
            'owner': forms.Select(attrs={'class': 'form-select'}),
            'address': forms.TextInput(attrs={'class': 'form-control'}),
            'city': forms.TextInput(attrs={'class': 'form-control'}),
            'zipcode': forms.TextInput(attrs={'class': 'form-control'}),
            'country': forms.TextInput(attrs={'class': 'form-control'}),
            'notes': forms.Textarea(attrs={'class': 'form-control', 'rows': 4}),
        }

        error_messages = {
            'name': {
                'required': _('The company name is required.'),
                'max_length': _('The company name may not be greater than 255 characters.'),
            },
            'size': {'max_length': _('The size may not be greater than 50 characters.')},
            'zipcode': {'max_length': _('The zip code may not be greater than 50 characters.')},
            'status': {'invalid_choice': _('The selected status is invalid.')},
            'owner': {'invalid_choice': _('The selected owner does not exist.')},
        }

    def __init__(self, *args, **kwargs):
        self.user = kwargs.pop('user', None)
        super().__init__(*args, **kwargs)
        self.fields['owner'].queryset = User.objects.filter(is_active=True).order_by('first_name', 'last_name')
        self.fields['owner'].empty_label = _('No owner')

        if not self.instance.pk:
            self.fields['status'].initial = CompanyStatus.PROSPECT
            if self.user is not None:
                self.fields['owner'].initial = self.user.pk

        # Only users who see every company may hand one over to someone else
        if self.user is not None and not (self.user.is_admin() or self.user.has_crm_perm('view all companies')):
            self.fields['owner'].disabled = True

    def clean_domain(self):
        domain = (self.cleaned_data.get('domain') or '').strip().lower()
        for prefix in ('https://', 'http://', 'www.'):
            if domain.startswith(prefix):
                domain = domain[len(prefix):]
        return domain.rstrip('/')


class ContactImportForm(forms.Form):
    file = forms.FileField(
        label=_('CSV file'),
        help_text=_('CSV file (.csv or .txt) with a header row: name, email, phone, address. Max 10MB'),
        widget=forms.FileInput(attrs={'class': 'form-control', 'accept': '.csv,.txt'}),
        error_messages={'required': _('Please choose a file to import.')},
    )

    def clean_file(self):
        file = self.cleaned_data.get('file')
        if file:
            file_name = file.name.lower()
            if not file_name.endswith(('.csv', '.txt')):
                raise ValidationError(_('The file must be a file of type: csv, txt.'))

            max_size = getattr(settings, 'CONTACT_IMPORT_MAX_FILE_SIZE', 10 * 1024 * 1024)
            if file.size > max_size:
                max_mb = max_size / (1024 * 1024)
                raise ValidationError(_('The file may not be greater than %(size)d MB.') % {'size': max_mb})

            try:
                self.rows = read_csv_rows(file)
            except (UnicodeDecodeError, csv.Error):
                raise ValidationError(_('The file could not be read. Save it as a UTF-8 encoded CSV.'))
        return file


class ContactImportRowForm(forms.Form):
    """Validation of one CSV row, run inside the import task."""

    name = forms.CharField(max_length=255, error_messages={
        'required': _('The name is required.'),
        'max_length': _('The name may not be greater than 255 characters.'),
    })
    email = forms.EmailField(max_length=255, error_messages={
        'required': _('The email is required.'),
        'invalid': _('The email must be a valid email address.'),
    })
    phone = forms.CharField(max_length=20, required=False, error_messages={
        'max_length': _('The phone number may not be greater than 20 characters.'),
    })
    address = forms.CharField(max_length=255, required=False, error_messages={
        'max_length': _('The address may not be greater than 255 characters.'),
    })

    def clean_email(self):
        email = self.cleaned_data['email'].strip().lower()
        if Contact.objects.filter(email__iexact=email).exists():
            raise ValidationError(_('The email has already been taken.'))
        return email
