# Models:
# 1. User - Custom user model with CRM role (admin / manager / sales)
# 2. UserProfile - Per-user preferences (notifications, language, theme)


from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin, BaseUserManager
from django.db import models
from django.utils import timezone
from django.core.validators import RegexValidator
from django.utils.translation import gettext_lazy as _

from .permissions import ROLE_ADMIN, ROLE_MANAGER, ROLE_SALES, ROLE_CHOICES, role_has_permission


# USER MANAGER (handles user creation)
class UserManager(BaseUserManager):
    """
    Custom user manager for User model

    Email is the login identifier, there is no username.
    """

    def create_user(self, email, password=None, **extra_fields):
        """
        Create and save a regular user

        Example:
            user = User.objects.create_user(
                email='sales@example.com',
                password='securepass123',
                first_name='Alice',
                last_name='Martin',
                role='sales'
            )
        """
        if not email:
            raise ValueError(_('Users must have an email address'))

        # Normalize email (convert domain to lowercase)
        email = self.normalize_email(email)

        extra_fields.setdefault('is_active', True)
        extra_fields.setdefault('is_staff', False)
        extra_fields.setdefault('is_superuser', False)

        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)

        return user

    def create_superuser(self, email, password=None, **extra_fields):
        """Create and save a superuser (role forced to admin)."""
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_active', True)
        extra_fields.setdefault('role', ROLE_ADMIN)

        if extra_fields.get('is_staff') is not True:
            raise ValueError(_('Superuser must have is_staff=True'))
        if extra_fields.get('is_superuser') is not True:
            raise ValueError(_('Superuser must have is_superuser=True'))

        return self.create_user(email, password, **extra_fields)


# USER MODEL
class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model for the CRM

    Features:
    - Email-based authentication (no username)
    - Role-based access (admin, manager, sales), see permissions.py
    - Activity tracking (login count, last login IP)
    """

    email = models.EmailField(_('email address'), unique=True, max_length=255, db_index=True, help_text=_('Required. Used for login.'))
    first_name = models.CharField(_('first name'), max_length=50, blank=True)
    last_name = models.CharField(_('last name'), max_length=50, blank=True)

    # Phone validator (accepts: +33123456789, 0123456789, etc.)
    phone_validator = RegexValidator(regex=r'^\+?1?\d{9,15}$', message=_('Phone number must be entered in the format: +999999999. Up to 15 digits allowed.'))
    phone = models.CharField(_('phone number'), validators=[phone_validator], max_length=17, blank=True, null=True)

    role = models.CharField(_('role'), max_length=20, choices=ROLE_CHOICES, default=ROLE_SALES, db_index=True,
                            help_text=_('admin (everything), manager (all records, no settings) or sales (own records)'))

    avatar = models.ImageField(_('profile picture'), upload_to='avatars/%Y/%m/', blank=True, null=True)
    job_title = models.CharField(_('job title'), max_length=100, blank=True, help_text=_('e.g., Account Executive'))

    login_count = models.PositiveIntegerField(_('login count'), default=0)
    last_login_ip = models.GenericIPAddressField(_('last login IP'), blank=True, null=True)
    is_active = models.BooleanField(_('active'), default=True, help_text=_('Unselect this instead of deleting accounts.'))
    is_staff = models.BooleanField(_('staff status'), default=False, help_text=_('Designates whether the user can log into admin site.'))
    date_joined = models.DateTimeField(_('date joined'), default=timezone.now)
    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['first_name', 'last_name']

    class Meta:
        verbose_name = _('user')
        verbose_name_plural = _('users')
        ordering = ['-date_joined']
        indexes = [
            models.Index(fields=['role', 'is_active'], name='user_role_active_idx'),
        ]

    def __str__(self):
        if self.first_name and self.last_name:
            return f"{self.first_name} {self.last_name} ({self.email})"
        return self.email

    def get_full_name(self):
        if self.first_name and self.last_name:
            return f"{self.first_name} {self.last_name}"
        elif self.first_name:
            return self.first_name
        return self.email

    def get_short_name(self):
        return self.first_name if self.first_name else self.email

    def get_initials(self):
        if self.first_name and self.last_name:
            return f"{self.first_name[0]}{self.last_name[0]}".upper()
        elif self.first_name:
            return self.first_name[0].upper()
        return self.email[0].upper()

    # ROLE CHECKS
    def is_admin(self):
        return self.role == ROLE_ADMIN or self.is_superuser

    def is_manager(self):
        return self.role == ROLE_MANAGER

    def is_sales(self):
        return self.role == ROLE_SALES and not self.is_superuser

    def has_crm_perm(self, permission):
        """
        Check a CRM permission (e.g. 'view all contacts') against the user's role

        Superusers pass every check, inactive users none.
        """
        if not self.is_active:
            return False
        if self.is_superuser:
            return True
        return role_has_permission(self.role, permission)

    # ACTIVITY TRACKING
    def increment_login_count(self, ip_address=None):
        """Called when user logs in successfully."""
        self.login_count += 1
        if ip_address:
            self.last_login_ip = ip_address
        self.save(update_fields=['login_count', 'last_login_ip'])


# USER PROFILE MODEL (Preferences)

class UserProfile(models.Model):
    """
    Per-user preferences

    Automatically created when User is created (via signals).
    email_notifications controls reminder emails.
    """

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='profile', verbose_name=_('user'))
    email_notifications = models.BooleanField(_('email notifications'), default=True, help_text=_('Receive reminder notifications via email'))
    language = models.CharField(_('language'), max_length=10, choices=[('fr', _('French')), ('en', _('English'))], default='en')
    theme = models.CharField(_('theme'), max_length=20, choices=[('light', _('Light')), ('dark', _('Dark')), ('auto', _('Auto'))], default='light')
    signature = models.TextField(_('email signature'), blank=True, help_text=_('Appended to emails sent from templates'))
    created_at = models.DateTimeField(_('created at'), auto_now_add=True)
    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    class Meta:
        verbose_name = _('user profile')
        verbose_name_plural = _('user profiles')

    def __str__(self):
        return f"Profile for: {self.user.get_full_name()}"
