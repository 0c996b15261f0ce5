"""
API views for the studio marketplace.

Views parse input with serializers, delegate the domain rules to the
services (BookingEngine, ListingVisibilityWorkflow, MessageSideEffect) and
log an audit line for every state change. Domain errors are raised as
core.exceptions and rendered by the project exception handler.
"""

import logging
from decimal import Decimal

from django.contrib.auth import authenticate, get_user_model
from django.db import IntegrityError
from django.db.models import Count, ProtectedError, Sum
from rest_framework import generics, status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken

from .authentication import OptionalJWTAuthentication
from .bookings import BookingEngine, Perspective
from .exceptions import Conflict, Forbidden, ListingNotFound, Unauthorized
from .messaging import MessageSideEffect
from .models import Booking, BookingStatus, Listing, Review, Visibility
from .permissions import (
    IsAdmin,
    IsListingOwner,
    IsListingOwnerRole,
    can_moderate_listings,
    can_mutate_listing,
)
from .serializers import (
    AccountSerializer,
    AdminAccountCreateSerializer,
    AdminAccountSerializer,
    AdminListingSerializer,
    BookingCreateSerializer,
    BookingSerializer,
    BookingStatusSerializer,
    ConversationSummarySerializer,
    ListingFilterSerializer,
    ListingSerializer,
    ListingVisibilitySerializer,
    ListingWriteSerializer,
    LoginSerializer,
    MessageCreateSerializer,
    MessageSerializer,
    RefreshTokenSerializer,
    RegistrationSerializer,
    ReviewSerializer,
    issue_tokens,
)
from .visibility import ListingVisibilityWorkflow

Account = get_user_model()
logger = logging.getLogger(__name__)


class MarketplaceAPIView(APIView):

    def get_client_ip(self, request):
        """
        Get client IP address from request.
        Handles proxy headers for accurate IP detection.
        """
        x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
        if x_forwarded_for:
            ip = x_forwarded_for.split(',')[0].strip()
        else:
            ip = request.META.get('REMOTE_ADDR')
        return ip

    def get_actor(self, request):
        """The authenticated account, or None for anonymous callers."""
        user = request.user
        if user is not None and user.is_authenticated:
            return user
        return None

    def require_actor(self, request):
        actor = self.get_actor(request)
        if actor is None:
            raise Unauthorized()
        return actor


# ============================================================================
# Authentication
# ============================================================================

class RegisterView(generics.CreateAPIView):
    """
    POST /api/auth/register/

    Creates a client or studio owner account and returns it with a token pair.
    Concurrent registrations with the same email are caught at the database.
    """
    serializer_class = RegistrationSerializer
    permission_classes = [AllowAny]
    authentication_classes = []

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            account = serializer.save()
        except IntegrityError as e:
            if 'email' in str(e).lower() or 'unique' in str(e).lower():
                raise Conflict('A user with that email already exists.')
            raise

        logger.info(f"Account registered. Email: {account.email}, Role: {account.role}")

        return Response(
            {'user': AccountSerializer(account).data, **issue_tokens(account)},
            status=status.HTTP_201_CREATED
        )


class LoginView(MarketplaceAPIView):
    """
    POST /api/auth/login/
    Request body: {"email": "user@example.com", "password": "..."}

    Every failure returns the same 401 message so accounts cannot be enumerated.
    """
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'login'

    def post(self, request, *args, **kwargs):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        email = serializer.validated_data['email'].lower().strip()
        password = serializer.validated_data['password']
        client_ip = self.get_client_ip(request)

        account = authenticate(request, username=email, password=password)

        if account is None:
            logger.warning(f"Failed login attempt. Email: {email}, IP: {client_ip}")
            return Response(
                {'detail': 'Invalid credentials'},
                status=status.HTTP_401_UNAUTHORIZED
            )

        logger.info(f"Successful login. Email: {email}, IP: {client_ip}")

        return Response(
            {**issue_tokens(account), 'user': AccountSerializer(account).data},
            status=status.HTTP_200_OK
        )


class LogoutView(MarketplaceAPIView):
    """
    POST /api/auth/logout/
    Request body: {"refresh": "<jwt_refresh_token>"}

    Blacklists the refresh token.
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, *args, **kwargs):
        serializer = RefreshTokenSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            token = RefreshToken(serializer.validated_data['refresh'])
            token.blacklist()
        except TokenError as e:
            logger.warning(
                f"Logout with invalid refresh token. User: {request.user.email}, "
                f"Error: {e}, IP: {self.get_client_ip(request)}"
            )
            return Response({'detail': str(e)}, status=status.HTTP_401_UNAUTHORIZED)

        logger.info(f"Logout. User: {request.user.email}, IP: {self.get_client_ip(request)}")
        return Response({'detail': 'Successfully logged out.'}, status=status.HTTP_200_OK)


class TokenRefreshView(MarketplaceAPIView):
    """
    POST /api/token/refresh/
    Request body: {"refresh": "<jwt_refresh_token>"}

    Returns a new access token and, with rotation on, a new refresh token;
    the old refresh token is blacklisted.
    """
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'refresh'

    def post(self, request, *args, **kwargs):
        from django.conf import settings as django_settings

        serializer = RefreshTokenSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        client_ip = self.get_client_ip(request)

        try:
            refresh_token = RefreshToken(serializer.validated_data['refresh'])
        except TokenError as e:
            logger.warning(f"Failed token refresh attempt. Error: {e}, IP: {client_ip}")
            return Response({'detail': str(e)}, status=status.HTTP_401_UNAUTHORIZED)

        try:
            account = Account.objects.get(pk=refresh_token.get('user_id'), is_active=True)
        except (Account.DoesNotExist, ValueError):
            logger.warning(f"Token refresh for unknown or inactive account. IP: {client_ip}")
            return Response(
                {'detail': 'Token is invalid or expired'},
                status=status.HTTP_401_UNAUTHORIZED
            )

        response_data = {'access': str(refresh_token.access_token)}

        if django_settings.SIMPLE_JWT.get('ROTATE_REFRESH_TOKENS', False):
            if django_settings.SIMPLE_JWT.get('BLACKLIST_AFTER_ROTATION', False):
                refresh_token.blacklist()
            response_data = issue_tokens(account)

        logger.info(f"Successful token refresh. User: {account.email}, IP: {client_ip}")
        return Response(response_data, status=status.HTTP_200_OK)


class MeView(MarketplaceAPIView):
    """GET /api/auth/me/"""
    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        return Response(AccountSerializer(request.user).data, status=status.HTTP_200_OK)


# ============================================================================
# Listings
# ============================================================================

class ListingCollectionView(MarketplaceAPIView):
    """
    GET /api/listings/?location=&name=&min_price=&max_price=
        Open discovery; PUBLIC listings only.

    POST /api/listings/
        Studio owners create PENDING listings. Admins may create a listing for
        any owner and choose its visibility.
    """
    permission_classes = [AllowAny]
    authentication_classes = [OptionalJWTAuthentication]

    def get(self, request, *args, **kwargs):
        filters = ListingFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)

        listings = ListingVisibilityWorkflow().public_listings(**filters.validated_data)
        return Response(ListingSerializer(listings, many=True).data, status=status.HTTP_200_OK)

    def post(self, request, *args, **kwargs):
        actor = self.require_actor(request)

        permission = IsListingOwnerRole()
        if not permission.has_permission(request, self):
            logger.warning(
                f"Listing creation denied. User: {actor.email}, Role: {actor.role}, "
                f"IP: {self.get_client_ip(request)}"
            )
            raise Forbidden(permission.message)

        serializer = ListingWriteSerializer(data=request.data, context={'request': request})
        serializer.is_valid(raise_exception=True)
        listing = serializer.save()

        logger.info(
            f"Listing created. Listing ID: {listing.id}, Name: {listing.name}, "
            f"Owner: {listing.owner.email}, Visibility: {listing.visibility}, "
            f"Created by: {actor.email}"
        )
        return Response(ListingSerializer(listing).data, status=status.HTTP_201_CREATED)


class MyListingsView(MarketplaceAPIView):
    """GET /api/listings/mine/ : the caller's listings in every visibility state."""
    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        listings = ListingVisibilityWorkflow().owned_listings(request.user)
        return Response(ListingSerializer(listings, many=True).data, status=status.HTTP_200_OK)


class ListingLocationsView(MarketplaceAPIView):
    """GET /api/listings/locations/ : distinct locations of PUBLIC listings."""
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request, *args, **kwargs):
        return Response(ListingVisibilityWorkflow().public_locations(), status=status.HTTP_200_OK)


class ListingDetailView(MarketplaceAPIView):
    """
    GET    /api/listings/<id>/  PUBLIC listings for anyone; others for owner and admins
    PUT    /api/listings/<id>/  owner only
    PATCH  /api/listings/<id>/  owner only
    DELETE /api/listings/<id>/  owner only; 409 while bookings are pending or confirmed
    """
    permission_classes = [AllowAny]
    authentication_classes = [OptionalJWTAuthentication]

    def get_listing(self, pk):
        try:
            return Listing.objects.select_related('owner').get(pk=pk)
        except Listing.DoesNotExist:
            raise ListingNotFound()

    def get_owned_listing(self, request, pk):
        actor = self.require_actor(request)
        listing = self.get_listing(pk)

        permission = IsListingOwner()
        if not permission.has_object_permission(request, self, listing):
            logger.warning(
                f"Listing modification denied. Listing ID: {listing.id}, "
                f"User: {actor.email}, IP: {self.get_client_ip(request)}"
            )
            raise Forbidden(permission.message)

        return listing

    def get(self, request, pk, *args, **kwargs):
        listing = self.get_listing(pk)
        actor = self.get_actor(request)

        if listing.visibility != Visibility.PUBLIC:
            if not (can_mutate_listing(actor, listing) or can_moderate_listings(actor)):
                raise ListingNotFound()

        return Response(ListingSerializer(listing).data, status=status.HTTP_200_OK)

    def put(self, request, pk, *args, **kwargs):
        return self._update(request, pk, partial=False)

    def patch(self, request, pk, *args, **kwargs):
        return self._update(request, pk, partial=True)

    def _update(self, request, pk, partial):
        listing = self.get_owned_listing(request, pk)

        serializer = ListingWriteSerializer(
            listing,
            data=request.data,
            partial=partial,
            context={'request': request}
        )
        serializer.is_valid(raise_exception=True)
        listing = serializer.save()

        logger.info(
            f"Listing updated. Listing ID: {listing.id}, User: {request.user.email}, "
            f"Fields: {sorted(serializer.validated_data)}"
        )
        return Response(ListingSerializer(listing).data, status=status.HTTP_200_OK)

    def delete(self, request, pk, *args, **kwargs):
        listing = self.get_owned_listing(request, pk)
        listing_id = listing.id

        try:
            listing.delete()
        except ProtectedError:
            raise Conflict('Cannot delete a listing with pending or confirmed bookings.')

        logger.info(f"Listing deleted. Listing ID: {listing_id}, User: {request.user.email}")
        return Response(status=status.HTTP_204_NO_CONTENT)


class ListingVisibilityView(MarketplaceAPIView):
    """
    PATCH /api/listings/<id>/visibility/
    Request body: {"visibility": "public" | "suspended"}
    """
    permission_classes = [IsAuthenticated]

    def patch(self, request, pk, *args, **kwargs):
        serializer = ListingVisibilitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            listing = ListingVisibilityWorkflow().set_visibility(
                pk, serializer.validated_data['visibility'], request.user
            )
        except Forbidden:
            logger.warning(
                f"Visibility change denied. Listing ID: {pk}, User: {request.user.email}, "
                f"IP: {self.get_client_ip(request)}"
            )
            raise

        return Response(ListingSerializer(listing).data, status=status.HTTP_200_OK)


# ============================================================================
# Bookings
# ============================================================================

class BookingCreateView(MarketplaceAPIView):
    """
    POST /api/bookings/

    Open to guests: without a valid token the booking is a guest booking and
    ``guest_name`` is required.

    Request body: {
        "listing_id": "<uuid>",
        "start": "2025-01-01T10:00:00Z",
        "end": "2025-01-01T12:30:00Z",
        "guest_name": "Jane",          # required for guests
        "message": "...",              # optional, sent to the studio owner
        "total_price": "62.50",        # optional, trusted when non-zero
        "payment_method": "card",      # optional
        "payer_phone": "+1555..."      # optional
    }
    """
    permission_classes = [AllowAny]
    authentication_classes = [OptionalJWTAuthentication]

    def post(self, request, *args, **kwargs):
        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        booking = BookingEngine().create_booking(
            serializer.to_booking_request(),
            actor=self.get_actor(request)
        )

        logger.info(
            f"Booking request served. Booking ID: {booking.id}, "
            f"IP: {self.get_client_ip(request)}"
        )
        return Response(BookingSerializer(booking).data, status=status.HTTP_201_CREATED)


class BookingDetailView(MarketplaceAPIView):
    """
    GET /api/bookings/<id>/

    Anyone holding the id may read the booking anonymously (guest receipt).
    An authenticated account that is neither booker nor listing owner may
    read only guest bookings.
    """
    permission_classes = [AllowAny]
    authentication_classes = [OptionalJWTAuthentication]

    def get(self, request, pk, *args, **kwargs):
        booking = BookingEngine().get_booking(pk, requester=self.get_actor(request))
        return Response(BookingSerializer(booking).data, status=status.HTTP_200_OK)


class MyBookingsView(MarketplaceAPIView):
    """GET /api/bookings/mine/ : bookings made by the caller, newest first."""
    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        bookings = BookingEngine().list_bookings_for_requester(request.user, Perspective.AS_BOOKER)
        return Response(BookingSerializer(bookings, many=True).data, status=status.HTTP_200_OK)


class OwnedBookingsView(MarketplaceAPIView):
    """GET /api/bookings/owned/ : bookings on the caller's listings, newest first."""
    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        bookings = BookingEngine().list_bookings_for_requester(request.user, Perspective.AS_OWNER)
        return Response(BookingSerializer(bookings, many=True).data, status=status.HTTP_200_OK)


class BookingStatusUpdateView(MarketplaceAPIView):
    """
    PATCH /api/bookings/<id>/status/
    Request body: {"status": "confirmed" | "cancelled" | "completed"}

    Only the owner of the booked listing may change the status.
    """
    permission_classes = [IsAuthenticated]

    def patch(self, request, pk, *args, **kwargs):
        serializer = BookingStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        booking = BookingEngine().update_status(
            pk, serializer.validated_data['status'], request.user
        )
        return Response(BookingSerializer(booking).data, status=status.HTTP_200_OK)


# ============================================================================
# Messages
# ============================================================================

class MessageSendView(MarketplaceAPIView):
    """
    POST /api/messages/
    Request body: {"receiver_id": "<uuid>", "content": "..."}
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, *args, **kwargs):
        serializer = MessageCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        message = MessageSideEffect().send(
            request.user,
            serializer.validated_data['receiver_id'],
            serializer.validated_data['content'],
        )
        return Response(MessageSerializer(message).data, status=status.HTTP_201_CREATED)


class ConversationListView(MarketplaceAPIView):
    """GET /api/messages/conversations/"""
    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        summaries = MessageSideEffect().conversation_summaries(request.user)
        return Response(
            ConversationSummarySerializer(summaries, many=True).data,
            status=status.HTTP_200_OK
        )


class ConversationThreadView(MarketplaceAPIView):
    """GET /api/messages/<account_id>/ : thread with one account, oldest first."""
    permission_classes = [IsAuthenticated]

    def get(self, request, account_id, *args, **kwargs):
        messages = MessageSideEffect().conversation_with(request.user, account_id)
        return Response(MessageSerializer(messages, many=True).data, status=status.HTTP_200_OK)


# ============================================================================
# Reviews
# ============================================================================

class ReviewView(MarketplaceAPIView):
    """
    GET  /api/reviews/?listing=<uuid>  reviews, newest first
    POST /api/reviews/                 {"listing_id", "rating", "comment"}
    """
    permission_classes = [AllowAny]
    authentication_classes = [OptionalJWTAuthentication]

    def get(self, request, *args, **kwargs):
        reviews = Review.objects.select_related('author').order_by('-created_at')

        listing_id = request.query_params.get('listing')
        if listing_id:
            reviews = reviews.filter(listing_id=listing_id)

        return Response(ReviewSerializer(reviews, many=True).data, status=status.HTTP_200_OK)

    def post(self, request, *args, **kwargs):
        actor = self.require_actor(request)

        serializer = ReviewSerializer(data=request.data, context={'request': request})
        serializer.is_valid(raise_exception=True)
        review = serializer.save()

        logger.info(
            f"Review created. Review ID: {review.id}, Listing ID: {review.listing_id}, "
            f"Author: {actor.email}, Rating: {review.rating}"
        )
        return Response(ReviewSerializer(review).data, status=status.HTTP_201_CREATED)


# ============================================================================
# Administration
# ============================================================================

class AdminStatsView(MarketplaceAPIView):
    """GET /api/admin/stats/ : platform counts and completed-booking revenue."""
    permission_classes = [IsAuthenticated, IsAdmin]

    def get(self, request, *args, **kwargs):
        revenue = Booking.objects.filter(status=BookingStatus.COMPLETED).aggregate(
            total=Sum('total_price')
        )['total'] or Decimal('0')

        recent = Booking.objects.select_related('listing', 'listing__owner', 'user')[:5]

        return Response({
            'listings': {
                'total': Listing.objects.count(),
                'pending': Listing.objects.pending().count(),
                'public': Listing.objects.public().count(),
                'suspended': Listing.objects.filter(visibility=Visibility.SUSPENDED).count(),
            },
            'accounts': {
                'total': Account.objects.count(),
                'owners': Account.objects.filter(role=Account.Role.STUDIO_OWNER).count(),
                'clients': Account.objects.filter(role=Account.Role.CLIENT).count(),
            },
            'bookings': {
                'total': Booking.objects.count(),
            },
            'revenue': str(revenue),
            'recent_bookings': BookingSerializer(recent, many=True).data,
        }, status=status.HTTP_200_OK)


class AdminListingsView(MarketplaceAPIView):
    """GET /api/admin/listings/ : every listing with its booking count."""
    permission_classes = [IsAuthenticated, IsAdmin]

    def get(self, request, *args, **kwargs):
        listings = Listing.objects.select_related('owner').annotate(booking_count=Count('bookings'))
        return Response(AdminListingSerializer(listings, many=True).data, status=status.HTTP_200_OK)


class AdminPendingListingsView(MarketplaceAPIView):
    """GET /api/admin/listings/pending/ : the moderation queue."""
    permission_classes = [IsAuthenticated, IsAdmin]

    def get(self, request, *args, **kwargs):
        listings = ListingVisibilityWorkflow().pending_listings(request.user)
        return Response(ListingSerializer(listings, many=True).data, status=status.HTTP_200_OK)


class AdminBookingsView(MarketplaceAPIView):
    """GET /api/admin/bookings/"""
    permission_classes = [IsAuthenticated, IsAdmin]

    def get(self, request, *args, **kwargs):
        bookings = Booking.objects.select_related('listing', 'listing__owner', 'user')
        return Response(BookingSerializer(bookings, many=True).data, status=status.HTTP_200_OK)


class AdminUsersView(MarketplaceAPIView):
    """
    GET  /api/admin/users/?role=<role>  accounts with listing and booking counts
    POST /api/admin/users/              manual account creation, any role
    """
    permission_classes = [IsAuthenticated, IsAdmin]

    def get(self, request, *args, **kwargs):
        accounts = Account.objects.annotate(
            listing_count=Count('listings', distinct=True),
            booking_count=Count('bookings', distinct=True),
        )

        role = request.query_params.get('role')
        if role:
            accounts = accounts.filter(role=role)

        return Response(AdminAccountSerializer(accounts, many=True).data, status=status.HTTP_200_OK)

    def post(self, request, *args, **kwargs):
        serializer = AdminAccountCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        account = serializer.save()

        logger.info(
            f"Account created by admin. Email: {account.email}, Role: {account.role}, "
            f"Admin: {request.user.email}"
        )
        return Response(AccountSerializer(account).data, status=status.HTTP_201_CREATED)
