"""
Data model for the studio marketplace.

Accounts own listings, listings receive bookings and reviews, and messages
connect accounts (or a guest and an account).
"""

import uuid
from decimal import Decimal

from django.contrib.auth.models import AbstractUser, UserManager
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _

from .validators import validate_booking_window, validate_hourly_rate, validate_string_list


class AccountManager(UserManager):
    """User manager that makes every superuser a marketplace admin."""

    def create_superuser(self, username, email=None, password=None, **extra_fields):
        extra_fields.setdefault('role', Account.Role.ADMIN)
        return super().create_superuser(username, email, password, **extra_fields)


class Account(AbstractUser):
    """
    Marketplace identity.

    Additional fields:
    - email: Required, unique, used to log in
    - name: Display name
    - avatar: Optional avatar URL (images live in external storage)
    - role: client, studio_owner or admin; fixed after creation
    """

    class Role(models.TextChoices):
        CLIENT = 'client', _('Client')
        STUDIO_OWNER = 'studio_owner', _('Studio owner')
        ADMIN = 'admin', _('Admin')

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    email = models.EmailField(
        _('email address'),
        unique=True,
        error_messages={
            'unique': _('A user with that email already exists.'),
        },
    )

    name = models.CharField(_('name'), max_length=150, blank=True, default='')

    avatar = models.URLField(_('avatar'), max_length=500, blank=True, default='')

    role = models.CharField(
        _('role'),
        max_length=20,
        choices=Role.choices,
        default=Role.CLIENT,
    )

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)
    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    objects = AccountManager()

    REQUIRED_FIELDS = ['email']

    class Meta:
        verbose_name = _('account')
        verbose_name_plural = _('accounts')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['role'], name='account_role_idx'),
        ]

    def __str__(self):
        return self.email or self.username

    @property
    def is_admin(self):
        return self.role == self.Role.ADMIN

    @property
    def is_studio_owner(self):
        return self.role == self.Role.STUDIO_OWNER

    @property
    def display_name(self):
        return self.name or self.get_full_name() or self.email

    def save(self, *args, **kwargs):
        # Case-insensitive uniqueness
        if self.email:
            self.email = self.email.lower()
        super().save(*args, **kwargs)


class Visibility(models.TextChoices):
    PENDING = 'pending', _('Pending review')
    PUBLIC = 'public', _('Public')
    SUSPENDED = 'suspended', _('Suspended')


class Availability(models.TextChoices):
    AVAILABLE = 'available', _('Available')
    AWAY = 'away', _('Away')
    OUT = 'out', _('Out of service')


class ListingQuerySet(models.QuerySet):

    def public(self):
        """Listings returned by open discovery."""
        return self.filter(visibility=Visibility.PUBLIC)

    def pending(self):
        return self.filter(visibility=Visibility.PENDING)


class Listing(models.Model):
    """
    A bookable studio.

    ``rating`` and ``total_reviews`` are denormalized from reviews and are only
    written by the rating recalculation in ``core.signals``.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    owner = models.ForeignKey(
        Account,
        on_delete=models.CASCADE,
        related_name='listings',
        help_text=_('Account that owns this studio')
    )

    name = models.CharField(_('name'), max_length=200)

    description = models.TextField(_('description'))

    location = models.CharField(_('location'), max_length=200)

    hourly_rate = models.DecimalField(
        _('hourly rate'),
        max_digits=10,
        decimal_places=2,
        validators=[validate_hourly_rate],
    )

    images = models.JSONField(_('images'), default=list, blank=True, validators=[validate_string_list])

    features = models.JSONField(_('features'), default=list, blank=True, validators=[validate_string_list])

    availability = models.CharField(
        _('availability'),
        max_length=20,
        choices=Availability.choices,
        default=Availability.AVAILABLE,
    )

    visibility = models.CharField(
        _('visibility'),
        max_length=20,
        choices=Visibility.choices,
        default=Visibility.PENDING,
    )

    rating = models.DecimalField(
        _('rating'),
        max_digits=3,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[
            MinValueValidator(Decimal('0.00')),
            MaxValueValidator(Decimal('5.00')),
        ],
    )

    total_reviews = models.PositiveIntegerField(_('total reviews'), default=0)

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)
    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    objects = ListingQuerySet.as_manager()

    class Meta:
        verbose_name = _('listing')
        verbose_name_plural = _('listings')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['visibility'], name='listing_visibility_idx'),
            models.Index(fields=['owner'], name='listing_owner_idx'),
            models.Index(fields=['location'], name='listing_location_idx'),
        ]

    def __str__(self):
        return self.name

    def clean(self):
        super().clean()

        if not self.name or not self.name.strip():
            raise ValidationError({'name': _('Name cannot be empty.')})

        if not self.description or not self.description.strip():
            raise ValidationError({'description': _('Description cannot be empty.')})

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    # Deletes are refused while any exist (core.signals)
    def active_bookings(self):
        return self.bookings.filter(status__in=ACTIVE_BOOKING_STATUSES)


class BookingStatus(models.TextChoices):
    PENDING = 'pending', _('Pending')
    CONFIRMED = 'confirmed', _('Confirmed')
    CANCELLED = 'cancelled', _('Cancelled')
    COMPLETED = 'completed', _('Completed')


ACTIVE_BOOKING_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)


class PriceSource(models.TextChoices):
    COMPUTED = 'computed', _('Computed from hourly rate')
    CALLER_SUPPLIED = 'caller_supplied', _('Supplied by caller')


class Booking(models.Model):
    """
    A reservation of a listing for the half-open interval [start, end).

    ``user`` is null for guest bookings, which must carry ``guest_name``.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    listing = models.ForeignKey(
        Listing,
        on_delete=models.CASCADE,
        related_name='bookings',
    )

    user = models.ForeignKey(
        Account,
        on_delete=models.CASCADE,
        related_name='bookings',
        null=True,
        blank=True,
        help_text=_('Booker; empty for guest bookings')
    )

    guest_name = models.CharField(_('guest name'), max_length=200, blank=True, default='')

    start = models.DateTimeField(_('start'))

    end = models.DateTimeField(_('end'))

    status = models.CharField(
        _('status'),
        max_length=20,
        choices=BookingStatus.choices,
        default=BookingStatus.PENDING,
    )

    total_price = models.DecimalField(
        _('total price'),
        max_digits=14,
        decimal_places=4,
        validators=[MinValueValidator(Decimal('0'))],
    )

    price_source = models.CharField(
        _('price source'),
        max_length=20,
        choices=PriceSource.choices,
        default=PriceSource.COMPUTED,
    )

    message = models.TextField(_('message'), blank=True, default='')

    payment_method = models.CharField(_('payment method'), max_length=50, blank=True, default='')

    payer_phone = models.CharField(_('payer phone'), max_length=30, blank=True, default='')

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)
    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    class Meta:
        verbose_name = _('booking')
        verbose_name_plural = _('bookings')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['listing'], name='booking_listing_idx'),
            models.Index(fields=['user'], name='booking_user_idx'),
            models.Index(fields=['status'], name='booking_status_idx'),
            models.Index(fields=['start'], name='booking_start_idx'),
        ]

    def __str__(self):
        booker = self.user.email if self.user_id else f'guest {self.guest_name}'
        return f'Booking of {self.listing.name} by {booker}'

    @property
    def is_guest_booking(self):
        return self.user_id is None

    def clean(self):
        super().clean()

        try:
            validate_booking_window(self.start, self.end)
        except ValidationError as e:
            raise ValidationError({'end': e.messages})

        if self.user_id is None and not (self.guest_name or '').strip():
            raise ValidationError({'guest_name': _('Guest name is required for guest bookings.')})

        if self.total_price is not None and self.total_price < 0:
            raise ValidationError({'total_price': _('Total price cannot be negative.')})

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)


class Message(models.Model):
    """
    One-directional note to an account.

    ``sender`` is null for guest messages, which carry ``guest_name`` instead.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    sender = models.ForeignKey(
        Account,
        on_delete=models.CASCADE,
        related_name='sent_messages',
        null=True,
        blank=True,
    )

    receiver = models.ForeignKey(
        Account,
        on_delete=models.CASCADE,
        related_name='received_messages',
    )

    guest_name = models.CharField(_('guest name'), max_length=200, blank=True, default='')

    content = models.TextField(_('content'))

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)

    class Meta:
        verbose_name = _('message')
        verbose_name_plural = _('messages')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['sender', 'receiver'], name='message_participants_idx'),
            models.Index(fields=['created_at'], name='message_created_idx'),
        ]

    def __str__(self):
        sender = self.sender.email if self.sender_id else f'guest {self.guest_name}'
        return f'Message from {sender} to {self.receiver.email}'

    def clean(self):
        super().clean()

        if not self.content or not self.content.strip():
            raise ValidationError({'content': _('Message content cannot be empty.')})

        if self.sender_id is None and not (self.guest_name or '').strip():
            raise ValidationError({'guest_name': _('Guest messages must carry a guest name.')})

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)


class Review(models.Model):
    """
    Rating of a listing by an account.

    Saving or deleting a review recalculates the listing's rating (see core.signals).
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    listing = models.ForeignKey(
        Listing,
        on_delete=models.CASCADE,
        related_name='reviews',
    )

    author = models.ForeignKey(
        Account,
        on_delete=models.CASCADE,
        related_name='reviews',
    )

    rating = models.PositiveSmallIntegerField(
        _('rating'),
        validators=[
            MinValueValidator(1, message=_('Rating must be at least 1.')),
            MaxValueValidator(5, message=_('Rating must be at most 5.'))
        ],
    )

    comment = models.TextField(_('comment'), blank=True, default='')

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)
    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    class Meta:
        verbose_name = _('review')
        verbose_name_plural = _('reviews')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['listing'], name='review_listing_idx'),
            models.Index(fields=['author'], name='review_author_idx'),
        ]

    def __str__(self):
        return f'Review by {self.author.email} for {self.listing.name} - {self.rating}★'

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)
