import logging

from django.conf import settings
from django.core.mail import send_mail

from routes.notifications import RouteNotifier
from users.models import User

logger = logging.getLogger(__name__)


class EmailRouteNotifier(RouteNotifier):
    """
    Emails the driver when a route is planned for them or changes status.
    Called after commit by RouteOptimizationService, which logs and swallows failures.
    """

    def _driver_email(self, driver_id):
        return User.objects.filter(pk=driver_id).values_list("email", flat=True).first()

    def route_planned(self, route):
        email = self._driver_email(route.driver_id)
        if not email:
            logger.info(f"Driver {route.driver_id} has no email; skipping route notification")
            return
        send_mail(
            subject=f"New route for {route.route_date:%A %d %B}",
            message=(
                f"You have a new pickup route with {route.stop_count} stop(s).\n"
                f"Estimated distance: {route.total_distance_km or 0:.1f} km\n"
                f"Route id: {route.id}"
            ),
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[email],
        )

    def route_status_changed(self, route, previous_status):
        email = self._driver_email(route.driver_id)
        if not email:
            return
        send_mail(
            subject=f"Route {route.route_date:%d %B} is now {route.status.value.replace('_', ' ').lower()}",
            message=f"Route {route.id} moved from {getattr(previous_status, 'value', previous_status)} to {route.status.value}.",
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[email],
        )
