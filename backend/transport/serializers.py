from rest_framework import serializers

from routes.models import RouteStatus


class CoordinatesSerializer(serializers.Serializer):
    lat = serializers.FloatField(min_value=-90, max_value=90)
    lng = serializers.FloatField(min_value=-180, max_value=180)


class PlanRouteSerializer(serializers.Serializer):
    """
    Body of POST /routes/optimize/ (camelCase, as the web client sends it).
    """
    driverId = serializers.CharField()
    serviceDayId = serializers.CharField()
    routeDate = serializers.DateField()
    pickupRequestIds = serializers.ListField(child=serializers.CharField(), allow_empty=False)
    startLocation = CoordinatesSerializer()
    plannedStartTime = serializers.DateTimeField(required=False, allow_null=True)


class RouteStatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[status.value for status in RouteStatus])
    actualStartTime = serializers.DateTimeField(required=False, allow_null=True)
    actualEndTime = serializers.DateTimeField(required=False, allow_null=True)


class StopSerializer(serializers.Serializer):
    pickupRequestId = serializers.CharField(source="pickup_request_id")
    position = serializers.IntegerField()
    legDistance = serializers.FloatField(source="leg_distance_km", allow_null=True)
    legMinutes = serializers.FloatField(source="leg_minutes", allow_null=True)
    location = CoordinatesSerializer(source="coordinates", allow_null=True)


class RouteSerializer(serializers.Serializer):
    """
    Read-only view of a routes.models.Route dataclass.
    """
    id = serializers.CharField()
    organizationId = serializers.CharField(source="organization_id")
    driverId = serializers.CharField(source="driver_id")
    serviceDayId = serializers.CharField(source="service_day_id")
    routeDate = serializers.DateField(source="route_date")
    status = serializers.CharField(source="status.value")
    startLocation = CoordinatesSerializer(source="start_location")
    totalDistance = serializers.FloatField(source="total_distance_km", allow_null=True)
    estimatedTime = serializers.IntegerField(source="estimated_minutes", allow_null=True)
    optimizationScore = serializers.IntegerField(source="optimization_score", allow_null=True)
    optimizedOrder = serializers.ListField(source="pickup_request_ids", child=serializers.CharField())
    stops = StopSerializer(many=True)
    plannedStartTime = serializers.DateTimeField(source="planned_start_time", allow_null=True)
    actualStartTime = serializers.DateTimeField(source="actual_start_time", allow_null=True)
    actualEndTime = serializers.DateTimeField(source="actual_end_time", allow_null=True)
    createdAt = serializers.DateTimeField(source="created_at")
    updatedAt = serializers.DateTimeField(source="updated_at")


class RouteAnalyticsSerializer(serializers.Serializer):
    totalRoutes = serializers.IntegerField(source="route_count")
    completedRoutes = serializers.IntegerField(source="completed_count")
    cancelledRoutes = serializers.IntegerField(source="cancelled_count")
    plannedRoutes = serializers.IntegerField(source="planned_count")
    inProgressRoutes = serializers.IntegerField(source="in_progress_count")
    averageDistancePerRoute = serializers.FloatField(source="average_distance_km")
    averageDistanceApplicable = serializers.BooleanField(source="average_distance_applicable")
    completionRate = serializers.FloatField(source="completion_rate")
    totalDistance = serializers.FloatField(source="total_distance_km")
    totalPickups = serializers.IntegerField(source="total_pickups")
    averagePickupsPerRoute = serializers.FloatField(source="average_pickups_per_route")
    averageOptimizationScore = serializers.FloatField(source="average_optimization_score")


class PickupSummarySerializer(serializers.Serializer):
    """
    One pickup of a route as the driver needs it: who, where, anything to know.
    Reads transport.models.PickupRequest rows (user and address selected).
    """
    id = serializers.CharField()
    riderId = serializers.CharField(source="user_id")
    riderName = serializers.SerializerMethodField()
    phoneNumber = serializers.CharField(source="user.phone_number", allow_null=True)
    address = serializers.CharField(source="address.__str__")
    latitude = serializers.FloatField(source="address.latitude", allow_null=True)
    longitude = serializers.FloatField(source="address.longitude", allow_null=True)
    status = serializers.CharField()
    priority = serializers.IntegerField()
    notes = serializers.CharField()

    def get_riderName(self, pickup):
        return pickup.user.get_full_name() or pickup.user.username


class RouteDetailSerializer(RouteSerializer):
    """
    Route plus its pickups in visiting order, passed as context["pickups"].
    """
    pickups = serializers.SerializerMethodField()

    def get_pickups(self, route):
        return PickupSummarySerializer(self.context.get("pickups", []), many=True).data
