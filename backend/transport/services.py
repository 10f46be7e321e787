from django.conf import settings

from routes.notifications import LoggingRouteNotifier
from routes.planner.policy import PlannerPolicy
from routes.service import RouteOptimizationService
from routing.geocoding import GeocodingClient
from tenancy.models import CallerIdentity

from .notifications import EmailRouteNotifier
from .store import DjangoRouteStore


def identity_from_user(user) -> CallerIdentity:
    """
    Authentication layer -> route engine: who is calling, with which role, for which church.
    """
    return CallerIdentity.new(
        user_id=user.pk,
        role=user.role,
        organization_id=user.organization_id,
    )


def build_route_service() -> RouteOptimizationService:
    """
    A fresh service per request; it holds no route state between calls.
    """
    geocoder = GeocodingClient() if settings.GEOCODER_BASE_URL else None
    notifier = EmailRouteNotifier() if settings.ROUTE_EMAIL_NOTIFICATIONS else LoggingRouteNotifier()
    policy = PlannerPolicy(**settings.ROUTE_PLANNER_POLICY)

    return RouteOptimizationService(
        DjangoRouteStore(),
        notifier=notifier,
        policy=policy,
        geocoder=geocoder,
    )
