from django import forms
from django.contrib.auth.forms import UserCreationForm
from django.contrib.auth import get_user_model, password_validation
from django.utils.translation import gettext_lazy as _
from django.core.exceptions import ValidationError
from crispy_forms.helper import FormHelper
from crispy_forms.layout import Layout, Fieldset, Submit, Div, Field, HTML
from crispy_forms.bootstrap import FormActions

from .models import UserProfile
from .permissions import ROLE_CHOICES, ROLE_SALES


User = get_user_model()


# LOGIN FORM
class LoginForm(forms.Form):
    email = forms.EmailField(
        label=_('Email Address'),
        max_length=255,
        required=True,
        widget=forms.EmailInput(attrs={
            'class': 'form-control',
            'placeholder': _('you@example.com'),
            'autofocus': True,
        })
    )

    password = forms.CharField(
        label=_('Password'),
        required=True,
        widget=forms.PasswordInput(attrs={
            'class': 'form-control',
            'placeholder': _('Enter your password'),
        })
    )

    remember = forms.BooleanField(
        label=_('Remember me'),
        required=False,
        initial=False,
        widget=forms.CheckboxInput(attrs={
            'class': 'form-check-input',
        })
    )

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)

        self.helper = FormHelper()
        self.helper.form_method = 'post'
        self.helper.layout = Layout(
            Field('email', css_class='mb-3'),
            Field('password', css_class='mb-3'),
            Field('remember', css_class='mb-3'),
            FormActions(
                Submit('submit', _('Login'), css_class='btn btn-primary w-100')
            )
        )

    def clean_email(self):
        email = self.cleaned_data.get('email', '')
        return email.lower().strip()


# PROFILE FORMS (the logged in user edits himself)
class ProfileForm(forms.ModelForm):
    class Meta:
        model = User
        fields = ['first_name', 'last_name', 'phone', 'job_title', 'avatar']
        widgets = {
            'first_name': forms.TextInput(attrs={'class': 'form-control'}),
            'last_name': forms.TextInput(attrs={'class': 'form-control'}),
            'phone': forms.TextInput(attrs={'class': 'form-control', 'placeholder': _('+33123456789')}),
            'job_title': forms.TextInput(attrs={'class': 'form-control'}),
            'avatar': forms.FileInput(attrs={'class': 'form-control', 'accept': 'image/*'}),
        }

    def clean_avatar(self):
        avatar = self.cleaned_data.get('avatar')
        if avatar and hasattr(avatar, 'content_type'):
            if avatar.size > 2 * 1024 * 1024:
                raise ValidationError(_('Avatar file size must be less than 2MB.'))
            if not avatar.content_type.startswith('image/'):
                raise ValidationError(_('Avatar must be an image file (JPG, PNG, GIF).'))
        return avatar


class UserProfileForm(forms.ModelForm):
    class Meta:
        model = UserProfile
        fields = ['email_notifications', 'language', 'theme', 'signature']
        widgets = {
            'email_notifications': forms.CheckboxInput(attrs={'class': 'form-check-input'}),
            'language': forms.Select(attrs={'class': 'form-select'}),
            'theme': forms.Select(attrs={'class': 'form-select'}),
            'signature': forms.Textarea(attrs={'class': 'form-control', 'rows': 3}),
        }


# USER MANAGEMENT FORMS (admin only)
class UserCreateForm(UserCreationForm):
    email = forms.EmailField(
        label=_('Email Address'),
        required=True,
        widget=forms.EmailInput(attrs={
            'class': 'form-control',
            'placeholder': _('user@example.com'),
        })
    )

    first_name = forms.CharField(
        label=_('First Name'),
        max_length=50,
        required=True,
        widget=forms.TextInput(attrs={'class': 'form-control'})
    )

    last_name = forms.CharField(
        label=_('Last Name'),
        max_length=50,
        required=True,
        widget=forms.TextInput(attrs={'class': 'form-control'})
    )

    role = forms.ChoiceField(
        label=_('Role'),
        choices=ROLE_CHOICES,
        initial=ROLE_SALES,
        widget=forms.Select(attrs={'class': 'form-select'})
    )

    class Meta:
        model = User
        fields = ['email', 'first_name', 'last_name', 'phone', 'job_title', 'role', 'password1', 'password2']

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)

        self.helper = FormHelper()
        self.helper.form_method = 'post'
        self.helper.layout = Layout(
            Fieldset(
                _('Login Information'),
                'email',
                Div(
                    Div('password1', css_class='col-md-6'),
                    Div('password2', css_class='col-md-6'),
                    css_class='row'
                ),
            ),
            Fieldset(
                _('Personal Information'),
                Div(
                    Div('first_name', css_class='col-md-6'),
                    Div('last_name', css_class='col-md-6'),
                    css_class='row'
                ),
                Div(
                    Div('phone', css_class='col-md-6'),
                    Div('job_title', css_class='col-md-6'),
                    css_class='row'
                ),
            ),
            Fieldset(
                _('Role'),
                'role',
            ),
            FormActions(
                Submit('submit', _('Create User'), css_class='btn btn-primary'),
                HTML('<a href="{% url \'accounts:user_list\' %}" class="btn btn-secondary">Cancel</a>'),
            )
        )

    def clean_email(self):
        email = self.cleaned_data.get('email', '').lower().strip()
        if User.objects.filter(email=email).exists():
            raise ValidationError(_('A user with this email already exists.'))
        return email


class UserEditForm(forms.ModelForm):
    """Admin edit of another user. Leave the password empty to keep it."""

    password = forms.CharField(
        label=_('New Password'),
        required=False,
        strip=False,
        widget=forms.PasswordInput(attrs={'class': 'form-control', 'autocomplete': 'new-password'}),
    )

    class Meta:
        model = User
        fields = ['email', 'first_name', 'last_name', 'phone', 'job_title', 'role', 'is_active']
        widgets = {
            'email': forms.EmailInput(attrs={'class': 'form-control'}),
            'first_name': forms.TextInput(attrs={'class': 'form-control'}),
            'last_name': forms.TextInput(attrs={'class': 'form-control'}),
            'phone': forms.TextInput(attrs={'class': 'form-control'}),
            'job_title': forms.TextInput(attrs={'class': 'form-control'}),
            'role': forms.Select(attrs={'class': 'form-select'}),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)

        self.helper = FormHelper()
        self.helper.form_method = 'post'
        self.helper.layout = Layout(
            Fieldset(
                _('Personal Information'),
                'email',
                Div(
                    Div('first_name', css_class='col-md-6'),
                    Div('last_name', css_class='col-md-6'),
                    css_class='row'
                ),
                Div(
                    Div('phone', css_class='col-md-6'),
                    Div('job_title', css_class='col-md-6'),
                    css_class='row'
                ),
            ),
            Fieldset(
                _('Role & Status'),
                Div(
                    Div('role', css_class='col-md-6'),
                    Div('is_active', css_class='col-md-6'),
                    css_class='row'
                ),
                'password',
            ),
            FormActions(
                Submit('submit', _('Update'), css_class='btn btn-primary'),
                HTML('<a href="{% url \'accounts:user_list\' %}" class="btn btn-secondary">Cancel</a>'),
            )
        )

    def clean_email(self):
        email = self.cleaned_data.get('email', '').lower().strip()
        if User.objects.filter(email=email).exclude(pk=self.instance.pk).exists():
            raise ValidationError(_('A user with this email already exists.'))
        return email

    def clean_password(self):
        password = self.cleaned_data.get('password')
        if password:
            password_validation.validate_password(password, self.instance)
        return password

    def save(self, commit=True):
        user = super().save(commit=False)
        password = self.cleaned_data.get('password')
        if password:
            user.set_password(password)
        if commit:
            user.save()
        return user
