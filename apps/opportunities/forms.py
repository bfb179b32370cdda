import csv
from decimal import Decimal, InvalidOperation

from django import forms
from django.core.exceptions import ValidationError
from django.utils.translation import gettext_lazy as _

from apps.accounts.models import User
from apps.contacts.models import Contact, Company
from .models import Opportunity, OpportunityActivity, OpportunityStage


QUICK_NOTE_MAX_LENGTH = 1000


class OpportunityForm(forms.ModelForm):
    """
    Create / edit an opportunity

    probability may be left empty: the stage default is used.
    products is posted as a JSON list of {name, quantity, unit_price}.
    """

    products = forms.JSONField(required=False, widget=forms.Textarea(attrs={'class': 'form-control', 'rows': 3}))

    class Meta:
        model = Opportunity
        fields = [
            'name', 'description', 'contact', 'company', 'amount', 'currency', 'probability', 'stage',
            'expected_close_date', 'lead_source', 'loss_reason', 'next_step', 'products', 'competitors',
        ]

        widgets = {
            'name': forms.TextInput(attrs={'class': 'form-control', 'placeholder': 'e.g. Website redesign', 'autofocus': True}),
            'description': forms.Textarea(attrs={'class': 'form-control', 'rows': 3}),
            'contact': forms.Select(attrs={'class': 'form-select'}),
            'company': forms.Select(attrs={'class': 'form-select'}),
            'amount': forms.NumberInput(attrs={'class': 'form-control', 'step': '0.01', 'min': 0}),
            'currency': forms.TextInput(attrs={'class': 'form-control', 'maxlength': 3}),
            'probability': forms.NumberInput(attrs={'class': 'form-control', 'min': 0, 'max': 100}),
            'stage': forms.Select(attrs={'class': 'form-select'}),
            'expected_close_date': forms.DateInput(attrs={'class': 'form-control', 'type': 'date'}, format='%Y-%m-%d'),
            'lead_source': forms.TextInput(attrs={'class': 'form-control'}),
            'loss_reason': forms.TextInput(attrs={'class': 'form-control'}),
            'next_step': forms.Textarea(attrs={'class': 'form-control', 'rows': 2}),
            'competitors': forms.TextInput(attrs={'class': 'form-control'}),
        }

        error_messages = {
            'name': {
                'required': _('The opportunity name is required.'),
                'max_length': _('The name may not be greater than 255 characters.'),
            },
            'contact': {
                'required': _('A contact is required.'),
            },
            'expected_close_date': {
                'required': _('The expected close date is required.'),
                'invalid': _('The expected close date is not a valid date.'),
            },
        }

    def __init__(self, *args, user=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.user = user

        contacts = Contact.objects.order_by('name')
        if user is not None and not (user.is_admin() or user.has_crm_perm('view all contacts')):
            contacts = contacts.filter(user=user)
        self.fields['contact'].queryset = contacts
        self.fields['company'].queryset = Company.objects.order_by('name')
        self.fields['company'].required = False
        self.fields['company'].empty_label = _('No company')
        self.fields['probability'].required = False
        self.fields['currency'].required = False

    def clean_amount(self):
        amount = self.cleaned_data.get('amount')
        if amount is not None and amount < 0:
            raise ValidationError(_('The amount must be at least 0.'))
        return amount

    def clean_probability(self):
        probability = self.cleaned_data.get('probability')
        if probability is not None and not 0 <= probability <= 100:
            raise ValidationError(_('The probability must be between 0 and 100.'))
        return probability

    def clean_currency(self):
        return (self.cleaned_data.get('currency') or 'EUR').upper()

    def clean_products(self):
        products = self.cleaned_data.get('products') or []
        return validate_products(products)

    def clean(self):
        cleaned_data = super().clean()
        if cleaned_data.get('probability') is None and cleaned_data.get('stage'):
            cleaned_data['probability'] = OpportunityStage.probability_for(cleaned_data['stage'])

        contact = cleaned_data.get('contact')
        if contact is not None and not cleaned_data.get('company') and contact.company_id:
            cleaned_data['company'] = contact.company
        return cleaned_data


def validate_products(products):
    """
    Check a products list and return it normalised

    Each line needs a name, a quantity >= 1 and a unit_price >= 0.
    Raises ValidationError naming the faulty line.
    """
    if not isinstance(products, list):
        raise ValidationError(_('Products must be a list.'))

    lines = []
    for index, product in enumerate(products, start=1):
        if not isinstance(product, dict):
            raise ValidationError(_('Product %(line)s is invalid.') % {'line': index})

        name = str(product.get('name') or '').strip()
        if not name:
            raise ValidationError(_('Product %(line)s: the name is required.') % {'line': index})

        try:
            quantity = Decimal(str(product.get('quantity', 1)))
            unit_price = Decimal(str(product.get('unit_price', 0)))
        except InvalidOperation:
            raise ValidationError(_('Product %(line)s: quantity and unit price must be numbers.') % {'line': index})

        if quantity < 1:
            raise ValidationError(_('Product %(line)s: the quantity must be at least 1.') % {'line': index})
        if unit_price < 0:
            raise ValidationError(_('Product %(line)s: the unit price must be at least 0.') % {'line': index})

        lines.append({'name': name, 'quantity': product.get('quantity', 1), 'unit_price': product.get('unit_price', 0)})
    return lines


class OpportunityActivityForm(forms.ModelForm):
    type = forms.ChoiceField(
        choices=[(value, label) for value, label in OpportunityActivity.TYPE_CHOICES if value in OpportunityActivity.USER_TYPES],
        widget=forms.Select(attrs={'class': 'form-select'}),
        error_messages={'invalid_choice': _('The selected activity type is invalid.')},
    )

    class Meta:
        model = OpportunityActivity
        fields = ['type', 'title', 'description', 'scheduled_at']

        widgets = {
            'title': forms.TextInput(attrs={'class': 'form-control'}),
            'description': forms.Textarea(attrs={'class': 'form-control', 'rows': 3}),
            'scheduled_at': forms.DateTimeInput(attrs={'class': 'form-control', 'type': 'datetime-local'}),
        }

        error_messages = {
            'title': {
                'required': _('The title is required.'),
                'max_length': _('The title may not be greater than 255 characters.'),
            },
        }


class QuickNoteForm(forms.Form):
    note = forms.CharField(
        max_length=QUICK_NOTE_MAX_LENGTH,
        widget=forms.Textarea(attrs={'class': 'form-control', 'rows': 2}),
        error_messages={
            'required': _('The note is required.'),
            'max_length': _('The note may not be greater than 1000 characters.'),
        },
    )


class OpportunityStageForm(forms.Form):
    """Kanban drag & drop."""

    stage = forms.ChoiceField(
        choices=OpportunityStage.choices,
        error_messages={'invalid_choice': _('The selected stage is invalid.')},
    )


class OpportunityFilterForm(forms.Form):
    search = forms.CharField(required=False, widget=forms.TextInput(attrs={'class': 'form-control', 'placeholder': _('Search...')}))
    stage = forms.ChoiceField(required=False, choices=[('', _('All stages'))] + list(OpportunityStage.choices),
                              widget=forms.Select(attrs={'class': 'form-select'}))
    user = forms.ModelChoiceField(required=False, queryset=User.objects.filter(is_active=True).order_by('first_name'),
                                  empty_label=_('All users'), widget=forms.Select(attrs={'class': 'form-select'}))
    date_from = forms.DateField(required=False, widget=forms.DateInput(attrs={'class': 'form-control', 'type': 'date'}))
    date_to = forms.DateField(required=False, widget=forms.DateInput(attrs={'class': 'form-control', 'type': 'date'}))


class OpportunityImportForm(forms.Form):
    file = forms.FileField(
        widget=forms.FileInput(attrs={'class': 'form-control', 'accept': '.csv,.txt'}),
        error_messages={'required': _('Please choose a CSV file.')},
    )

    def clean_file(self):
        uploaded = self.cleaned_data['file']
        if not uploaded.name.lower().endswith(('.csv', '.txt')):
            raise ValidationError(_('The file must be a CSV file.'))
        if uploaded.size > 10 * 1024 * 1024:
            raise ValidationError(_('The file may not be greater than 10 MB.'))

        from .exports import read_import_rows

        try:
            self.rows = read_import_rows(uploaded)
        except (UnicodeDecodeError, csv.Error):
            raise ValidationError(_('The file could not be read. Save it as a UTF-8 encoded CSV.'))
        return uploaded


class OpportunityImportRowForm(forms.Form):
    """One CSV row, after contact / company lookup."""

    name = forms.CharField(max_length=255, error_messages={'required': _('The name is required.')})
    stage = forms.ChoiceField(choices=OpportunityStage.choices, required=False,
                              error_messages={'invalid_choice': _('The stage is invalid.')})
    amount = forms.DecimalField(min_value=0, max_digits=15, decimal_places=2, required=False,
                                error_messages={'invalid': _('The amount must be a number.')})
    probability = forms.IntegerField(min_value=0, max_value=100, required=False)
    expected_close_date = forms.DateField(input_formats=['%Y-%m-%d', '%d/%m/%Y'],
                                          error_messages={'required': _('The expected close date is required.'),
                                                          'invalid': _('The expected close date is not a valid date.')})
    contact_email = forms.EmailField(error_messages={'required': _('The contact email is required.')})
    description = forms.CharField(required=False)
    lead_source = forms.CharField(max_length=255, required=False)

    def clean_contact_email(self):
        email = self.cleaned_data['contact_email'].lower()
        contact = Contact.objects.filter(email__iexact=email).select_related('company').first()
        if contact is None:
            raise ValidationError(_('No contact with the email %(email)s.') % {'email': email})
        self.cleaned_data['contact'] = contact
        return email


class ForecastForm(forms.Form):
    PERIOD_CHOICES = [('quarter', _('Quarter')), ('semester', _('Semester')), ('year', _('Year'))]
    SCENARIO_CHOICES = [('pessimistic', _('Pessimistic')), ('realistic', _('Realistic')), ('optimistic', _('Optimistic'))]

    period = forms.ChoiceField(choices=PERIOD_CHOICES, required=False)
    scenario = forms.ChoiceField(choices=SCENARIO_CHOICES, required=False)

    def clean_period(self):
        return self.cleaned_data.get('period') or 'quarter'

    def clean_scenario(self):
        return self.cleaned_data.get('scenario') or 'realistic'
