from django import forms
from django.utils.translation import gettext_lazy as _


SINGLE_UPDATE_CATEGORIES = ['general', 'email', 'sales', 'system', 'branding']


class SettingUpdateForm(forms.Form):
    """One setting posted on its own. `value` is read from the raw payload."""

    key = forms.CharField(max_length=100)
    category = forms.ChoiceField(
        choices=[(category, category) for category in SINGLE_UPDATE_CATEGORIES],
        required=False,
    )

    def clean_category(self):
        return self.cleaned_data.get('category') or 'general'


class TestEmailForm(forms.Form):

    email = forms.EmailField(label=_('Send the test email to'))
