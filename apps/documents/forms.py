from django import forms
from django.core.exceptions import ValidationError
from django.utils.translation import gettext_lazy as _

from apps.contacts.models import Company, Contact
from .models import DocumentVisibility
from .validators import validate_upload, validate_tags, allowed_extensions, ROLE_MAX_LENGTH


class DocumentUploadForm(forms.Form):
    file = forms.FileField(
        label=_('File'),
        widget=forms.FileInput(attrs={'class': 'form-control'}),
    )
    name = forms.CharField(
        max_length=255, required=False, label=_('Name'),
        help_text=_('Defaults to the file name'),
        widget=forms.TextInput(attrs={'class': 'form-control'}),
    )
    description = forms.CharField(
        max_length=1000, required=False, label=_('Description'),
        widget=forms.Textarea(attrs={'class': 'form-control', 'rows': 3}),
    )
    visibility = forms.ChoiceField(
        choices=DocumentVisibility.choices, initial=DocumentVisibility.PRIVATE, label=_('Visibility'),
        widget=forms.Select(attrs={'class': 'form-select'}),
    )
    tags = forms.CharField(
        required=False, label=_('Tags'), help_text=_('Comma separated'),
        widget=forms.TextInput(attrs={'class': 'form-control', 'placeholder': 'contract, 2025'}),
    )
    company = forms.ModelChoiceField(
        queryset=Company.objects.order_by('name'), required=False, empty_label=_('No company'),
        widget=forms.Select(attrs={'class': 'form-select'}),
    )
    contact = forms.ModelChoiceField(
        queryset=Contact.objects.order_by('name'), required=False, empty_label=_('No contact'),
        widget=forms.Select(attrs={'class': 'form-select'}),
    )
    role = forms.CharField(
        max_length=ROLE_MAX_LENGTH, required=False, label=_('Role'),
        widget=forms.TextInput(attrs={'class': 'form-control', 'placeholder': _('e.g. contract')}),
    )

    def __init__(self, *args, user=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['file'].widget.attrs['accept'] = ','.join(f'.{ext}' for ext in allowed_extensions())

        if user is not None and not (user.is_admin() or user.has_crm_perm('view all contacts')):
            self.fields['contact'].queryset = Contact.objects.filter(user=user).order_by('name')

    def clean_file(self):
        uploaded = self.cleaned_data['file']
        validate_upload(uploaded)
        return uploaded

    def clean_tags(self):
        return validate_tags(self.cleaned_data.get('tags', '').split(','))

    def links(self):
        role = self.cleaned_data.get('role', '')
        links = []
        if self.cleaned_data.get('company'):
            links.append({'type': 'company', 'id': self.cleaned_data['company'].pk, 'role': role})
        if self.cleaned_data.get('contact'):
            links.append({'type': 'contact', 'id': self.cleaned_data['contact'].pk, 'role': role})
        return links


class DocumentFilterForm(forms.Form):
    search = forms.CharField(required=False, label=_('Search'), widget=forms.TextInput(attrs={
        'class': 'form-control', 'placeholder': _('Name, file name, description or tag...'),
    }))
    type = forms.CharField(required=False, label=_('Type'), widget=forms.TextInput(attrs={
        'class': 'form-control', 'placeholder': 'pdf, image/',
    }))
    tag = forms.CharField(required=False, label=_('Tag'), widget=forms.TextInput(attrs={'class': 'form-control'}))

    def clean_type(self):
        value = self.cleaned_data.get('type', '').strip().lower()
        if len(value) > 100:
            raise ValidationError(_('The type filter is too long.'))
        return value
