"""
URL configuration for studio_marketplace project.

All API routes live under /api/; the Django admin is mounted at /admin/.
"""
from django.contrib import admin
from django.urls import path
from rest_framework_simplejwt.views import TokenVerifyView

from core.views import (
    AdminBookingsView,
    AdminListingsView,
    AdminPendingListingsView,
    AdminStatsView,
    AdminUsersView,
    BookingCreateView,
    BookingDetailView,
    BookingStatusUpdateView,
    ConversationListView,
    ConversationThreadView,
    ListingCollectionView,
    ListingDetailView,
    ListingLocationsView,
    ListingVisibilityView,
    LoginView,
    LogoutView,
    MeView,
    MessageSendView,
    MyBookingsView,
    MyListingsView,
    OwnedBookingsView,
    RegisterView,
    ReviewView,
    TokenRefreshView,
)


urlpatterns = [
    path('admin/', admin.site.urls),

    # Authentication endpoints
    path('api/auth/register/', RegisterView.as_view(), name='register'),
    path('api/auth/login/', LoginView.as_view(), name='login'),
    path('api/auth/logout/', LogoutView.as_view(), name='logout'),
    path('api/auth/me/', MeView.as_view(), name='me'),

    # JWT endpoints
    path('api/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('api/token/verify/', TokenVerifyView.as_view(), name='token_verify'),

    # Listing endpoints
    path('api/listings/', ListingCollectionView.as_view(), name='listing_collection'),
    path('api/listings/mine/', MyListingsView.as_view(), name='listing_mine'),
    path('api/listings/locations/', ListingLocationsView.as_view(), name='listing_locations'),
    path('api/listings/<uuid:pk>/', ListingDetailView.as_view(), name='listing_detail'),
    path('api/listings/<uuid:pk>/visibility/', ListingVisibilityView.as_view(), name='listing_visibility'),

    # Booking endpoints
    path('api/bookings/', BookingCreateView.as_view(), name='booking_create'),
    path('api/bookings/mine/', MyBookingsView.as_view(), name='booking_mine'),
    path('api/bookings/owned/', OwnedBookingsView.as_view(), name='booking_owned'),
    path('api/bookings/<uuid:pk>/', BookingDetailView.as_view(), name='booking_detail'),
    path('api/bookings/<uuid:pk>/status/', BookingStatusUpdateView.as_view(), name='booking_status'),

    # Message endpoints
    path('api/messages/', MessageSendView.as_view(), name='message_send'),
    path('api/messages/conversations/', ConversationListView.as_view(), name='conversation_list'),
    path('api/messages/<uuid:account_id>/', ConversationThreadView.as_view(), name='conversation_thread'),

    # Review endpoints
    path('api/reviews/', ReviewView.as_view(), name='reviews'),

    # Administration endpoints
    path('api/admin/stats/', AdminStatsView.as_view(), name='admin_stats'),
    path('api/admin/listings/', AdminListingsView.as_view(), name='admin_listings'),
    path('api/admin/listings/pending/', AdminPendingListingsView.as_view(), name='admin_pending_listings'),
    path('api/admin/bookings/', AdminBookingsView.as_view(), name='admin_bookings'),
    path('api/admin/users/', AdminUsersView.as_view(), name='admin_users'),
]
