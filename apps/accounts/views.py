import logging

from django.shortcuts import render, redirect, get_object_or_404
from django.contrib.auth import authenticate, login, logout, update_session_auth_hash
from django.contrib.auth.decorators import login_required
from django.contrib import messages
from django.contrib.auth.forms import PasswordChangeForm
from django.core.paginator import Paginator
from django.db.models import Q
from django.http import JsonResponse
from django.utils.translation import gettext_lazy as _
from django.views.decorators.http import require_http_methods, require_POST
from django.views.decorators.cache import never_cache

from .models import User
from .forms import LoginForm, ProfileForm, UserProfileForm, UserEditForm, UserCreateForm
from .decorators import admin_required
from .permissions import ROLE_CHOICES, permissions_for_role


logger = logging.getLogger(__name__)

REMEMBER_ME_AGE = 30 * 24 * 60 * 60  # 30 days


def get_client_ip(request):
    """Client IP, honouring X-Forwarded-For behind a proxy."""
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        return x_forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


# AUTHENTICATION

@never_cache
def login_view(request):
    if request.user.is_authenticated:
        return redirect('core:dashboard')

    if request.method == 'POST':
        form = LoginForm(request.POST)

        if form.is_valid():
            email = form.cleaned_data['email']
            password = form.cleaned_data['password']
            remember = form.cleaned_data.get('remember', False)

            user = authenticate(request, username=email, password=password)

            if user is not None:
                login(request, user)

                # Without "remember me" the lifetime comes from the
                # session_lifetime CRM setting (core.middleware)
                if remember:
                    request.session.set_expiry(REMEMBER_ME_AGE)
                    request.session['remember'] = True

                user.increment_login_count(ip_address=get_client_ip(request))
                logger.info("User %s logged in", user.email)

                messages.success(request, _('Welcome back, {}!').format(user.get_full_name()))

                next_url = request.GET.get('next')
                if next_url and next_url.startswith('/'):
                    return redirect(next_url)
                return redirect('core:dashboard')

            logger.warning("Failed login attempt for %s from %s", email, get_client_ip(request))
            messages.error(request, _('Invalid email or password. Please try again.'))
        else:
            messages.error(request, _('Please correct the errors below.'))
    else:
        form = LoginForm()

    context = {
        'form': form,
        'page_title': _('Login'),
    }
    return render(request, 'accounts/login.html', context)


@login_required
def logout_view(request):
    user_name = request.user.get_full_name()
    logout(request)

    messages.success(request, _('You have been logged out successfully. See you soon, {}!').format(user_name))
    return redirect('accounts:login')


# PROFILE

@login_required
def profile_view(request):
    user = request.user
    profile = user.profile

    if request.method == 'POST':
        user_form = ProfileForm(request.POST, request.FILES, instance=user)
        profile_form = UserProfileForm(request.POST, instance=profile)

        if user_form.is_valid() and profile_form.is_valid():
            user_form.save()
            profile_form.save()
            messages.success(request, _('Your profile has been updated successfully!'))
            return redirect('accounts:profile')

        messages.error(request, _('Please correct the errors below.'))
    else:
        user_form = ProfileForm(instance=user)
        profile_form = UserProfileForm(instance=profile)

    context = {
        'user_form': user_form,
        'profile_form': profile_form,
        'profile': profile,
        'permissions': permissions_for_role(user.role),
        'page_title': _('My Profile'),
    }
    return render(request, 'accounts/profile.html', context)


@login_required
def password_change_view(request):
    if request.method == 'POST':
        form = PasswordChangeForm(user=request.user, data=request.POST)

        if form.is_valid():
            user = form.save()
            # Keep the user logged in after the hash changed
            update_session_auth_hash(request, user)
            messages.success(request, _('Your password has been changed successfully!'))
            return redirect('accounts:profile')

        messages.error(request, _('Please correct the errors below.'))
    else:
        form = PasswordChangeForm(user=request.user)

    context = {
        'form': form,
        'page_title': _('Change Password'),
    }
    return render(request, 'accounts/password_change.html', context)


# USER MANAGEMENT (admin only)

@login_required
@admin_required
def user_list_view(request):
    queryset = User.objects.all()

    search_query = request.GET.get('q', '').strip()
    if search_query:
        queryset = queryset.filter(
            Q(first_name__icontains=search_query) |
            Q(last_name__icontains=search_query) |
            Q(email__icontains=search_query) |
            Q(phone__icontains=search_query)
        )

    role_filter = request.GET.get('role', '')
    if role_filter in dict(ROLE_CHOICES):
        queryset = queryset.filter(role=role_filter)

    status_filter = request.GET.get('status', '')
    if status_filter == 'active':
        queryset = queryset.filter(is_active=True)
    elif status_filter == 'inactive':
        queryset = queryset.filter(is_active=False)

    sort_by = request.GET.get('sort', '-date_joined')
    if sort_by.lstrip('-') in ['first_name', 'email', 'date_joined', 'login_count', 'role']:
        queryset = queryset.order_by(sort_by)

    paginator = Paginator(queryset, 25)
    page_obj = paginator.get_page(request.GET.get('page', 1))

    context = {
        'users': page_obj,
        'page_obj': page_obj,
        'total_users': queryset.count(),
        'active_users': queryset.filter(is_active=True).count(),
        'search_query': search_query,
        'role_filter': role_filter,
        'status_filter': status_filter,
        'roles': ROLE_CHOICES,
        'page_title': _('Users'),
    }
    return render(request, 'accounts/user_list.html', context)


@login_required
@admin_required
def user_create_view(request):
    if request.method == 'POST':
        form = UserCreateForm(request.POST)

        if form.is_valid():
            user = form.save()
            logger.info("User %s created by %s with role %s", user.email, request.user.email, user.role)
            messages.success(request, _('User {} has been created successfully!').format(user.get_full_name()))
            return redirect('accounts:user_list')

        messages.error(request, _('Please correct the errors below.'))
    else:
        form = UserCreateForm()

    context = {
        'form': form,
        'form_title': _('Create User'),
        'page_title': _('Create User'),
    }
    return render(request, 'accounts/user_form.html', context)


@login_required
@admin_required
def user_edit_view(request, pk):
    user = get_object_or_404(User, pk=pk)

    if request.method == 'POST':
        form = UserEditForm(request.POST, instance=user)

        if form.is_valid():
            if user == request.user and form.cleaned_data.get('role') != user.role and not user.is_superuser:
                form.add_error('role', _('You cannot change your own role.'))
            else:
                form.save()
                logger.info("User %s updated by %s", user.email, request.user.email)
                messages.success(request, _('User has been updated successfully!'))
                return redirect('accounts:user_list')

        messages.error(request, _('Please correct the errors below.'))
    else:
        form = UserEditForm(instance=user)

    context = {
        'form': form,
        'form_title': _('Edit User'),
        'edited_user': user,
        'page_title': _('Edit {}').format(user.get_full_name()),
    }
    return render(request, 'accounts/user_form.html', context)


@login_required
@admin_required
@require_http_methods(['POST'])
def user_delete_view(request, pk):
    user = get_object_or_404(User, pk=pk)

    if user == request.user:
        messages.error(request, _('You cannot delete yourself.'))
        return redirect('accounts:user_list')

    if user.is_superuser and not request.user.is_superuser:
        messages.error(request, _('You cannot delete a superuser.'))
        return redirect('accounts:user_list')

    user_email = user.email
    user.delete()
    logger.info("User %s deleted by %s", user_email, request.user.email)

    messages.success(request, _('User {} has been deleted successfully.').format(user_email))
    return redirect('accounts:user_list')


@login_required
@require_POST
def toggle_user_status(request, pk):
    """AJAX: activate / deactivate a user."""
    if not request.user.is_admin():
        return JsonResponse({'success': False, 'error': 'Permission denied'}, status=403)

    user = get_object_or_404(User, pk=pk)

    if user == request.user:
        return JsonResponse({'success': False, 'error': 'Cannot deactivate yourself'}, status=400)

    if user.is_superuser and not request.user.is_superuser:
        return JsonResponse({'success': False, 'error': 'Cannot deactivate superuser'}, status=400)

    user.is_active = not user.is_active
    user.save(update_fields=['is_active'])

    status_text = _('activated') if user.is_active else _('deactivated')
    return JsonResponse({
        'success': True,
        'is_active': user.is_active,
        'message': str(_('User {}').format(status_text))
    })


@login_required
@admin_required
def role_list_view(request):
    """Roles and the permissions they grant (JSON)."""
    roles = [
        {
            'name': value,
            'label': str(label),
            'permissions': permissions_for_role(value),
            'users_count': User.objects.filter(role=value).count(),
        }
        for value, label in ROLE_CHOICES
    ]
    return JsonResponse({'roles': roles})
