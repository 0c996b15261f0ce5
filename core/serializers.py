"""
Serializers for the studio marketplace API.
"""

from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from rest_framework import serializers
from rest_framework_simplejwt.tokens import RefreshToken

from .bookings import BookingRequest
from .conf import marketplace_setting
from .exceptions import ListingNotFound
from .models import Booking, BookingStatus, Listing, Message, Review, Visibility

Account = get_user_model()


def issue_tokens(account):
    """
    Refresh/access token pair for an account. Both carry the ``role`` claim.
    """
    refresh = RefreshToken.for_user(account)
    refresh['role'] = account.role
    return {
        'access': str(refresh.access_token),
        'refresh': str(refresh),
    }


# ============================================================================
# Accounts
# ============================================================================

class AccountSerializer(serializers.ModelSerializer):
    """Public view of an account; never exposes credentials or permissions."""

    class Meta:
        model = Account
        fields = ['id', 'email', 'name', 'avatar', 'role', 'created_at']
        read_only_fields = fields


class AccountSummarySerializer(serializers.ModelSerializer):
    name = serializers.CharField(source='display_name', read_only=True)

    class Meta:
        model = Account
        fields = ['id', 'name', 'avatar']
        read_only_fields = fields


class BaseAccountCreateSerializer(serializers.ModelSerializer):
    """
    Shared validation for account creation.

    The username is the email address; login is by email only.
    """

    password = serializers.CharField(
        write_only=True,
        required=True,
        style={'input_type': 'password'}
    )

    class Meta:
        model = Account
        fields = ['id', 'email', 'password', 'name', 'avatar', 'role', 'created_at']
        read_only_fields = ['id', 'created_at']
        extra_kwargs = {
            'email': {'required': True},
        }

    def validate_email(self, value):
        value = value.strip().lower()

        if Account.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError(
                "A user with that email already exists."
            )

        return value

    def validate_password(self, value):
        try:
            validate_password(value)
        except DjangoValidationError as e:
            raise serializers.ValidationError(list(e.messages))

        return value

    def create(self, validated_data):
        password = validated_data.pop('password')
        validated_data.pop('confirm_password', None)
        email = validated_data['email']

        with transaction.atomic():
            account = Account.objects.create_user(
                username=email[:150],
                password=password,
                **validated_data
            )

        return account


class RegistrationSerializer(BaseAccountCreateSerializer):
    """
    Self-service sign-up. Accounts register as clients or studio owners;
    admins are created by other admins.
    """

    confirm_password = serializers.CharField(
        write_only=True,
        required=True,
        style={'input_type': 'password'}
    )
    role = serializers.ChoiceField(
        choices=[Account.Role.CLIENT, Account.Role.STUDIO_OWNER],
        default=Account.Role.CLIENT,
    )

    class Meta(BaseAccountCreateSerializer.Meta):
        fields = BaseAccountCreateSerializer.Meta.fields + ['confirm_password']

    def validate(self, attrs):
        if attrs.get('password') != attrs.get('confirm_password'):
            raise serializers.ValidationError({
                'confirm_password': 'Password confirmation does not match.'
            })

        return attrs


class AdminAccountCreateSerializer(BaseAccountCreateSerializer):
    """Manual account creation by an admin; any role may be assigned."""

    role = serializers.ChoiceField(choices=Account.Role.choices, default=Account.Role.CLIENT)


class LoginSerializer(serializers.Serializer):
    """
    Email and password. Authentication itself happens in the view so that
    every failure returns the same message.
    """
    email = serializers.EmailField(required=True)
    password = serializers.CharField(
        required=True,
        write_only=True,
        style={'input_type': 'password'}
    )


class RefreshTokenSerializer(serializers.Serializer):
    refresh = serializers.CharField(required=True)

    def validate_refresh(self, value):
        if not value or not value.strip():
            raise serializers.ValidationError("Refresh token cannot be empty.")
        return value.strip()


# ============================================================================
# Listings
# ============================================================================

class ListingSerializer(serializers.ModelSerializer):
    owner = AccountSummarySerializer(read_only=True)

    class Meta:
        model = Listing
        fields = [
            'id',
            'owner',
            'name',
            'description',
            'location',
            'hourly_rate',
            'images',
            'features',
            'availability',
            'visibility',
            'rating',
            'total_reviews',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class ListingWriteSerializer(serializers.ModelSerializer):
    """
    Create and edit listings.

    ``visibility`` and ``owner_id`` are honoured only for admins creating a
    listing by hand; for everyone else a new listing is PENDING and owned
    by the caller. Edits never touch visibility, owner or rating.
    """

    images = serializers.ListField(
        child=serializers.URLField(max_length=500),
        required=False,
    )
    features = serializers.ListField(
        child=serializers.CharField(max_length=100),
        required=False,
    )
    visibility = serializers.ChoiceField(choices=Visibility.choices, required=False, write_only=True)
    owner_id = serializers.UUIDField(required=False, write_only=True)

    class Meta:
        model = Listing
        fields = [
            'name',
            'description',
            'location',
            'hourly_rate',
            'images',
            'features',
            'availability',
            'visibility',
            'owner_id',
        ]

    def validate_name(self, value):
        if not value or not value.strip():
            raise serializers.ValidationError("Name cannot be empty or whitespace only.")
        return value.strip()

    def validate_description(self, value):
        if not value or not value.strip():
            raise serializers.ValidationError("Description cannot be empty or whitespace only.")
        return value.strip()

    def validate_location(self, value):
        if not value or not value.strip():
            raise serializers.ValidationError("Location cannot be empty or whitespace only.")
        return value.strip()

    def validate_hourly_rate(self, value):
        if value <= 0:
            raise serializers.ValidationError("Hourly rate must be greater than 0.")
        return value

    def create(self, validated_data):
        request = self.context['request']
        user = request.user

        visibility = validated_data.pop('visibility', None)
        owner_id = validated_data.pop('owner_id', None)

        if user.is_admin:
            owner = user
            if owner_id is not None:
                try:
                    owner = Account.objects.get(pk=owner_id)
                except Account.DoesNotExist:
                    raise serializers.ValidationError({'owner_id': 'Owner not found.'})
            validated_data['owner'] = owner
            validated_data['visibility'] = visibility or marketplace_setting('ADMIN_LISTING_VISIBILITY')
        else:
            # Privilege escalation guard
            validated_data['owner'] = user
            validated_data['visibility'] = Visibility.PENDING

        return Listing.objects.create(**validated_data)

    def update(self, instance, validated_data):
        validated_data.pop('visibility', None)
        validated_data.pop('owner_id', None)

        for field, value in validated_data.items():
            setattr(instance, field, value)

        # Only the edited columns, so a concurrent rating update survives
        instance.save(update_fields=list(validated_data) + ['updated_at'])
        return instance


class ListingVisibilitySerializer(serializers.Serializer):
    visibility = serializers.ChoiceField(choices=[Visibility.PUBLIC, Visibility.SUSPENDED])


class ListingFilterSerializer(serializers.Serializer):
    location = serializers.CharField(required=False, allow_blank=True)
    name = serializers.CharField(required=False, allow_blank=True)
    min_price = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, min_value=0)
    max_price = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, min_value=0)

    def validate(self, attrs):
        min_price = attrs.get('min_price')
        max_price = attrs.get('max_price')

        if min_price is not None and max_price is not None and min_price > max_price:
            raise serializers.ValidationError({
                'min_price': 'Minimum price cannot be greater than maximum price.'
            })

        return attrs


class ListingSummarySerializer(serializers.ModelSerializer):
    owner_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = Listing
        fields = ['id', 'name', 'location', 'hourly_rate', 'images', 'owner_id']
        read_only_fields = fields


# ============================================================================
# Bookings
# ============================================================================

class BookingCreateSerializer(serializers.Serializer):
    """
    Booking input. Range, price and guest-name rules are enforced by
    BookingEngine so that they hold for every caller.
    """
    listing_id = serializers.UUIDField()
    start = serializers.DateTimeField()
    end = serializers.DateTimeField()
    guest_name = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')
    message = serializers.CharField(required=False, allow_blank=True, default='')
    total_price = serializers.DecimalField(max_digits=14, decimal_places=4, required=False, allow_null=True)
    payment_method = serializers.CharField(max_length=50, required=False, allow_blank=True, default='')
    payer_phone = serializers.CharField(max_length=30, required=False, allow_blank=True, default='')

    def to_booking_request(self):
        return BookingRequest(**self.validated_data)


class BookingSerializer(serializers.ModelSerializer):
    listing = ListingSummarySerializer(read_only=True)
    user = AccountSummarySerializer(read_only=True)
    is_guest_booking = serializers.BooleanField(read_only=True)

    class Meta:
        model = Booking
        fields = [
            'id',
            'listing',
            'user',
            'guest_name',
            'is_guest_booking',
            'start',
            'end',
            'status',
            'total_price',
            'price_source',
            'message',
            'payment_method',
            'payer_phone',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class BookingStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=[BookingStatus.CONFIRMED, BookingStatus.CANCELLED, BookingStatus.COMPLETED]
    )


# ============================================================================
# Messages
# ============================================================================

class MessageCreateSerializer(serializers.Serializer):
    receiver_id = serializers.UUIDField()
    content = serializers.CharField(max_length=5000)


class MessageSerializer(serializers.ModelSerializer):
    sender_id = serializers.UUIDField(read_only=True, allow_null=True)
    receiver_id = serializers.UUIDField(read_only=True)
    sender_name = serializers.SerializerMethodField()

    class Meta:
        model = Message
        fields = ['id', 'sender_id', 'sender_name', 'receiver_id', 'guest_name', 'content', 'created_at']
        read_only_fields = fields

    def get_sender_name(self, obj):
        if obj.sender_id is None:
            return obj.guest_name or marketplace_setting('GUEST_PARTICIPANT_NAME')
        return obj.sender.display_name


class ConversationSummarySerializer(serializers.Serializer):
    participant_id = serializers.UUIDField(allow_null=True)
    participant_name = serializers.CharField()
    last_message = serializers.CharField()
    last_message_at = serializers.DateTimeField()
    is_guest = serializers.BooleanField()


# ============================================================================
# Reviews
# ============================================================================

class ReviewSerializer(serializers.ModelSerializer):
    """
    Review of a listing by the requesting account.

    Creating the review triggers the listing rating recalculation
    (core.signals).
    """

    listing_id = serializers.UUIDField()
    author = AccountSummarySerializer(read_only=True)
    rating = serializers.IntegerField(min_value=1, max_value=5)

    class Meta:
        model = Review
        fields = ['id', 'listing_id', 'author', 'rating', 'comment', 'created_at']
        read_only_fields = ['id', 'author', 'created_at']

    def validate_listing_id(self, value):
        if not Listing.objects.filter(pk=value).exists():
            # 404 rather than 400
            raise ListingNotFound()
        return value

    def create(self, validated_data):
        validated_data['author'] = self.context['request'].user
        return Review.objects.create(**validated_data)


# ============================================================================
# Administration
# ============================================================================

class AdminListingSerializer(ListingSerializer):
    owner_email = serializers.EmailField(source='owner.email', read_only=True)
    booking_count = serializers.IntegerField(read_only=True)

    class Meta(ListingSerializer.Meta):
        fields = ListingSerializer.Meta.fields + ['owner_email', 'booking_count']
        read_only_fields = fields


class AdminAccountSerializer(AccountSerializer):
    listing_count = serializers.IntegerField(read_only=True)
    booking_count = serializers.IntegerField(read_only=True)

    class Meta(AccountSerializer.Meta):
        fields = AccountSerializer.Meta.fields + ['listing_count', 'booking_count']
        read_only_fields = fields
