from django.contrib import admin
from django.urls import include, path
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView

from accounts.api import LabStaffLoginView, LoginView, MeView, RegisterView
from bookings.api import BookingViewSet
from core.api import HealthView
from payments.api import (
    PaymentCancelView,
    PaymentConfigStatusView,
    PaymentDetailView,
    PaymentInitializeView,
    PaymentRefundView,
    PaymentVerifyView,
    PaystackWebhookView,
    PublicKeyView,
    UserPaymentListView,
)

router = DefaultRouter()
router.register(r"bookings", BookingViewSet, basename="booking")

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/health/", HealthView.as_view(), name="health"),
    path("api/auth/register/", RegisterView.as_view(), name="auth-register"),
    path("api/auth/login/", LoginView.as_view(), name="auth-login"),
    path("api/auth/admin/login/", LabStaffLoginView.as_view(), name="auth-admin-login"),
    path("api/auth/refresh/", TokenRefreshView.as_view(), name="auth-refresh"),
    path("api/auth/me/", MeView.as_view(), name="auth-me"),
    path("api/", include(router.urls)),
    path(
        "api/payments/initialize/",
        PaymentInitializeView.as_view(),
        name="payment-initialize",
    ),
    path(
        "api/payments/verify/<str:reference>/",
        PaymentVerifyView.as_view(),
        name="payment-verify",
    ),
    path(
        "api/payments/webhook/paystack/",
        PaystackWebhookView.as_view(),
        name="paystack-webhook",
    ),
    path(
        "api/payments/config/public-key/",
        PublicKeyView.as_view(),
        name="payment-public-key",
    ),
    path(
        "api/payments/config/status/",
        PaymentConfigStatusView.as_view(),
        name="payment-config-status",
    ),
    path("api/payments/user/", UserPaymentListView.as_view(), name="payment-user-list"),
    path("api/payments/<int:pk>/", PaymentDetailView.as_view(), name="payment-detail"),
    path(
        "api/payments/<int:pk>/refund/",
        PaymentRefundView.as_view(),
        name="payment-refund",
    ),
    path(
        "api/payments/<int:pk>/cancel/",
        PaymentCancelView.as_view(),
        name="payment-cancel",
    ),
]
