from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from tenancy.context import tenant_scope
from tenancy.models import UserRole

from .serializers import (
    PlanRouteSerializer,
    RouteAnalyticsSerializer,
    RouteDetailSerializer,
    RouteSerializer,
    RouteStatusUpdateSerializer,
)
from .services import build_route_service, identity_from_user

PLANNER_ROLES = (UserRole.ADMIN, UserRole.TRANSPORTATION_TEAM, UserRole.PLATFORM_ADMIN)


class RouteViewSet(viewsets.ViewSet):
    """
    Route optimization endpoints.
    - Admin / Transportation team: plan routes
    - Transportation team: see and update only their own routes
    - Admin: analytics for their church
    Engine errors are turned into responses by transport.exceptions.
    """
    permission_classes = [permissions.IsAuthenticated]

    def scope(self, request):
        """
        One tenant scope per request. Platform staff may pass ?organizationId=.
        """
        return tenant_scope(
            identity_from_user(request.user),
            request.query_params.get("organizationId"),
        )

    def list(self, request):
        """
        ?analytics=true -> analytics for dateFrom..dateTo (default: last 30 days)
        otherwise routes of ?driverId= (drivers default to themselves), newest first
        """
        service = build_route_service()
        params = request.query_params

        with self.scope(request) as scope:
            if params.get("analytics") == "true":
                if scope.role == UserRole.USER:
                    return Response({"error": "Insufficient permissions for analytics"}, status=status.HTTP_403_FORBIDDEN)
                snapshot = service.get_analytics(scope, params.get("dateFrom"), params.get("dateTo"))
                return Response({"success": True, "analytics": RouteAnalyticsSerializer(snapshot).data})

            driver_id = params.get("driverId")
            if scope.role == UserRole.USER and not driver_id:
                return Response({"error": "Driver ID required for route lookup"}, status=status.HTTP_400_BAD_REQUEST)
            if scope.is_driver and driver_id and driver_id != scope.user_id:
                return Response({"error": "Access denied to these routes"}, status=status.HTTP_403_FORBIDDEN)

            routes = service.list_routes(
                scope,
                driver_id=driver_id,
                date_from=params.get("dateFrom"),
                date_to=params.get("dateTo"),
            )
            return Response({"success": True, "routes": RouteSerializer(routes, many=True).data})

    def retrieve(self, request, pk=None):
        service = build_route_service()
        with self.scope(request) as scope:
            route = service.get_route(scope, pk)
            if not service.is_visible_to(scope, route):
                return Response({"error": "Access denied to this route"}, status=status.HTTP_403_FORBIDDEN)
            pickups = service.store.route_pickups(scope, route)
            return Response({"success": True, "route": RouteDetailSerializer(route, context={"pickups": pickups}).data})

    def partial_update(self, request, pk=None):
        serializer = RouteStatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        service = build_route_service()
        with self.scope(request) as scope:
            route = service.get_route(scope, pk)
            if not service.is_visible_to(scope, route):
                return Response({"error": "Access denied to this route"}, status=status.HTTP_403_FORBIDDEN)

            updated = service.update_route_status(
                scope,
                pk,
                data["status"],
                actual_start_time=data.get("actualStartTime"),
                actual_end_time=data.get("actualEndTime"),
            )
            return Response({"success": True, "route": RouteSerializer(updated).data})

    def update(self, request, pk=None):
        return self.partial_update(request, pk)

    @action(detail=False, methods=['post'])
    def optimize(self, request):
        """
        Plan (optimize) a route for a driver. Admins and transportation team only.
        """
        serializer = PlanRouteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        service = build_route_service()
        with self.scope(request) as scope:
            if scope.role not in PLANNER_ROLES:
                return Response({"error": "Insufficient permissions"}, status=status.HTTP_403_FORBIDDEN)

            route_id = service.plan_route(
                scope,
                driver_id=data["driverId"],
                service_day_id=data["serviceDayId"],
                route_date=data["routeDate"],
                pickup_request_ids=data["pickupRequestIds"],
                start_location=dict(data["startLocation"]),
                planned_start_time=data.get("plannedStartTime"),
            )
            return Response(
                {"success": True, "routeId": route_id, "message": "Route optimized successfully"},
                status=status.HTTP_201_CREATED,
            )
