"""
Django admin configuration for the studio marketplace.
"""

from django.contrib import admin, messages
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.translation import gettext_lazy as _

from .exceptions import Forbidden
from .models import Account, Booking, Listing, Message, Review
from .visibility import ListingVisibilityWorkflow


@admin.register(Account)
class AccountAdmin(BaseUserAdmin):
    """
    Extends Django's UserAdmin with the marketplace fields.
    """

    list_display = [
        'email',
        'name',
        'role',
        'is_staff',
        'is_active',
        'created_at',
    ]

    list_filter = [
        'role',
        'is_staff',
        'is_superuser',
        'is_active',
        'created_at',
    ]

    search_fields = [
        'email',
        'username',
        'name',
    ]

    ordering = ['-created_at']

    fieldsets = (
        (None, {
            'fields': ('username', 'password')
        }),
        (_('Personal Info'), {
            'fields': ('name', 'email', 'avatar')
        }),
        (_('Marketplace Role'), {
            'fields': ('role',)
        }),
        (_('Permissions'), {
            'fields': (
                'is_active',
                'is_staff',
                'is_superuser',
                'groups',
                'user_permissions',
            ),
            'classes': ('collapse',),
        }),
        (_('Important Dates'), {
            'fields': ('last_login', 'date_joined', 'created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': (
                'username',
                'email',
                'password1',
                'password2',
                'role',
            ),
        }),
    )

    readonly_fields = ['created_at', 'updated_at', 'last_login', 'date_joined']

    date_hierarchy = 'created_at'

    list_per_page = 25


@admin.register(Listing)
class ListingAdmin(admin.ModelAdmin):
    """
    Listing moderation. The visibility actions go through
    ListingVisibilityWorkflow, so they are audited like the API route.
    """

    list_display = ['name', 'owner', 'location', 'hourly_rate', 'visibility', 'rating', 'total_reviews', 'created_at']
    list_filter = ['visibility', 'availability', 'created_at']
    search_fields = ['name', 'location', 'owner__email']
    # Visibility only changes through the moderation actions below
    readonly_fields = ['visibility', 'rating', 'total_reviews', 'created_at', 'updated_at']
    raw_id_fields = ['owner']
    actions = ['approve_listings', 'suspend_listings', 'reopen_review']
    list_per_page = 25

    def _apply(self, request, queryset, transition, verb):
        workflow = ListingVisibilityWorkflow()
        changed = 0

        for listing in queryset:
            try:
                getattr(workflow, transition)(listing.id, request.user)
            except Forbidden as e:
                self.message_user(request, str(e.detail), level=messages.ERROR)
                return
            changed += 1

        self.message_user(request, f'{changed} listing(s) {verb}.', level=messages.SUCCESS)

    @admin.action(description=_('Approve selected listings (make public)'))
    def approve_listings(self, request, queryset):
        self._apply(request, queryset, 'approve', 'approved')

    @admin.action(description=_('Suspend selected listings'))
    def suspend_listings(self, request, queryset):
        self._apply(request, queryset, 'suspend', 'suspended')

    @admin.action(description=_('Reopen review for selected listings'))
    def reopen_review(self, request, queryset):
        self._apply(request, queryset, 'reopen_review', 'returned to review')


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ['id', 'listing', 'user', 'guest_name', 'start', 'end', 'status', 'total_price', 'price_source']
    list_filter = ['status', 'price_source', 'created_at']
    search_fields = ['listing__name', 'user__email', 'guest_name']
    # Status changes belong to the listing owner via the API
    readonly_fields = ['status', 'created_at', 'updated_at']
    raw_id_fields = ['listing', 'user']
    date_hierarchy = 'start'


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ['id', 'sender', 'guest_name', 'receiver', 'created_at']
    search_fields = ['sender__email', 'receiver__email', 'guest_name', 'content']
    readonly_fields = ['created_at']
    raw_id_fields = ['sender', 'receiver']


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    """
    Deleting a review here also recalculates the listing rating (core.signals).
    """

    list_display = ['id', 'listing', 'author', 'rating', 'created_at']
    list_filter = ['rating', 'created_at']
    search_fields = ['listing__name', 'author__email', 'comment']
    readonly_fields = ['created_at', 'updated_at']
    raw_id_fields = ['listing', 'author']
