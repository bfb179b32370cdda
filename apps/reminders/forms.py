from django import forms
from django.core.exceptions import ValidationError
from django.core.validators import validate_email
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from apps.contacts.models import Contact
from apps.opportunities.models import Opportunity
from .models import Reminder, EmailTemplate


SNOOZE_MAX_MINUTES = 7 * 24 * 60


class ReminderForm(forms.ModelForm):
    """
    Create / edit a reminder

    The opportunity and contact choices are limited to the records the
    user may see.
    """

    class Meta:
        model = Reminder
        fields = [
            'title', 'description', 'reminder_date', 'type', 'priority', 'opportunity', 'contact',
            'is_recurring', 'recurrence_pattern', 'recurrence_interval', 'recurrence_end_date',
        ]

        widgets = {
            'title': forms.TextInput(attrs={'class': 'form-control', 'autofocus': True}),
            'description': forms.Textarea(attrs={'class': 'form-control', 'rows': 3}),
            'reminder_date': forms.DateTimeInput(attrs={'class': 'form-control', 'type': 'datetime-local'},
                                                 format='%Y-%m-%dT%H:%M'),
            'type': forms.Select(attrs={'class': 'form-select'}),
            'priority': forms.Select(attrs={'class': 'form-select'}),
            'opportunity': forms.Select(attrs={'class': 'form-select'}),
            'contact': forms.Select(attrs={'class': 'form-select'}),
            'is_recurring': forms.CheckboxInput(attrs={'class': 'form-check-input'}),
            'recurrence_pattern': forms.Select(attrs={'class': 'form-select'}),
            'recurrence_interval': forms.NumberInput(attrs={'class': 'form-control', 'min': 1}),
            'recurrence_end_date': forms.DateInput(attrs={'class': 'form-control', 'type': 'date'}, format='%Y-%m-%d'),
        }

        error_messages = {
            'title': {
                'required': _('The title is required.'),
                'max_length': _('The title may not be greater than 255 characters.'),
            },
            'reminder_date': {
                'required': _('The reminder date is required.'),
                'invalid': _('The reminder date is not a valid date.'),
            },
        }

    def __init__(self, *args, user=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['reminder_date'].input_formats = ['%Y-%m-%dT%H:%M', '%Y-%m-%d %H:%M', '%Y-%m-%d %H:%M:%S']
        self.fields['recurrence_interval'].required = False
        self.fields['opportunity'].required = False
        self.fields['contact'].required = False

        opportunities = Opportunity.objects.order_by('name')
        contacts = Contact.objects.order_by('name')
        if user is not None and not user.is_admin():
            if not user.has_crm_perm('view all opportunities'):
                opportunities = opportunities.filter(owner=user)
            if not user.has_crm_perm('view all contacts'):
                contacts = contacts.filter(user=user)
        self.fields['opportunity'].queryset = opportunities
        self.fields['contact'].queryset = contacts

    def clean_recurrence_interval(self):
        return self.cleaned_data.get('recurrence_interval') or 1

    def clean(self):
        cleaned_data = super().clean()

        if cleaned_data.get('is_recurring'):
            if not cleaned_data.get('recurrence_pattern'):
                self.add_error('recurrence_pattern', _('The recurrence pattern is required for a recurring reminder.'))
        else:
            cleaned_data['recurrence_pattern'] = ''
            cleaned_data['recurrence_end_date'] = None

        reminder_date = cleaned_data.get('reminder_date')
        end_date = cleaned_data.get('recurrence_end_date')
        if reminder_date and end_date and end_date <= timezone.localdate(reminder_date):
            self.add_error('recurrence_end_date', _('The recurrence end date must be after the reminder date.'))

        return cleaned_data


class SnoozeForm(forms.Form):
    minutes = forms.IntegerField(required=False, min_value=1, max_value=SNOOZE_MAX_MINUTES)

    def clean_minutes(self):
        return self.cleaned_data.get('minutes') or 60


class EmailTemplateForm(forms.ModelForm):
    class Meta:
        model = EmailTemplate
        fields = ['name', 'category', 'subject', 'body', 'is_shared', 'is_active']

        widgets = {
            'name': forms.TextInput(attrs={'class': 'form-control', 'autofocus': True}),
            'category': forms.Select(attrs={'class': 'form-select'}),
            'subject': forms.TextInput(attrs={'class': 'form-control'}),
            'body': forms.Textarea(attrs={'class': 'form-control', 'rows': 10}),
            'is_shared': forms.CheckboxInput(attrs={'class': 'form-check-input'}),
            'is_active': forms.CheckboxInput(attrs={'class': 'form-check-input'}),
        }

        error_messages = {
            'name': {'required': _('The template name is required.')},
            'subject': {'required': _('The subject is required.')},
            'body': {'required': _('The body is required.')},
        }


class TemplateContextForm(forms.Form):
    """Records whose fields fill the template variables."""

    contact = forms.ModelChoiceField(queryset=Contact.objects.select_related('company'), required=False)
    opportunity = forms.ModelChoiceField(queryset=Opportunity.objects.all(), required=False)


def _address_list(value):
    addresses = [address.strip() for address in (value or '').split(',') if address.strip()]
    for address in addresses:
        try:
            validate_email(address)
        except ValidationError:
            raise ValidationError(_('"%(address)s" is not a valid email address.'), params={'address': address})
    return addresses


class EmailTemplateSendForm(TemplateContextForm):
    to = forms.EmailField(error_messages={
        'required': _('The recipient is required.'),
        'invalid': _('The recipient must be a valid email address.'),
    })
    cc = forms.CharField(required=False)
    bcc = forms.CharField(required=False)
    subject = forms.CharField(max_length=255, required=False)
    body = forms.CharField(required=False)

    def clean_cc(self):
        return _address_list(self.cleaned_data.get('cc'))

    def clean_bcc(self):
        return _address_list(self.cleaned_data.get('bcc'))
