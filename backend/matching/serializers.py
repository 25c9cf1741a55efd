from dataclasses import asdict
from datetime import datetime

from rest_framework import serializers

from dispatch.policy import MatchingPolicy
from drivers.preferences import (
    CERTIFICATION_TYPES,
    DAYS_OF_WEEK,
    AutoAcceptConditions,
    AutoAcceptRules,
    AvailabilityPreferences,
    AvoidArea,
    AvoidedTripType,
    BlockedRider,
    Certification,
    GeographicPreferences,
    LanguagePreferences,
    MatchingWeights,
    PreferredArea,
    PreferredRider,
    RiderPreferences,
    Shift,
    Skills,
    TripPreferences,
    TripTypePreference,
)
from routing.geo import GeoPoint
from routing.geofence import BoundingBox
from trips.models import DEFAULT_TRIP_TYPE, TRIP_TYPES, RiderRef, Trip

# --- Request payloads ---

class GeoPointSerializer(serializers.Serializer):
    lat = serializers.FloatField(min_value=-90, max_value=90)
    lng = serializers.FloatField(min_value=-180, max_value=180)


class RiderSerializer(serializers.Serializer):
    id = serializers.CharField()
    rating = serializers.FloatField(min_value=0, max_value=5, required=False, allow_null=True)


class MatchOptionsSerializer(serializers.Serializer):
    limit = serializers.IntegerField(min_value=1, required=False)
    radiusKm = serializers.FloatField(min_value=0.001, required=False)
    minScore = serializers.FloatField(min_value=0, max_value=100, required=False)
    excludeDrivers = serializers.ListField(child=serializers.CharField(), required=False)


def build_options(options_data, policy: MatchingPolicy):
    """
    Turn validated `options` into MatchOptions seeded from the policy.
    """
    options_data = options_data or {}
    return policy.match_options(
        limit=options_data.get("limit"),
        radius_km=options_data.get("radiusKm"),
        min_score=options_data.get("minScore"),
        exclude_drivers=options_data.get("excludeDrivers"),
    )


class TripPayloadSerializer(serializers.Serializer):
    """
    An ad-hoc trip description, scored without being stored.
    """
    id = serializers.CharField(default="adhoc")
    pickupLocation = GeoPointSerializer()
    pickupTime = serializers.DateTimeField(required=False)
    dropoffLocation = GeoPointSerializer(required=False, allow_null=True)
    tripType = serializers.ChoiceField(choices=TRIP_TYPES, default=DEFAULT_TRIP_TYPE)
    requiresWheelchair = serializers.BooleanField(default=False)
    hasPets = serializers.BooleanField(default=False)
    waypoints = GeoPointSerializer(many=True, required=False)
    requiresCertification = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    preferredLanguage = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    rider = RiderSerializer(required=False, allow_null=True)
    fare = serializers.FloatField(min_value=0, default=0.0)

    @staticmethod
    def to_trip(data) -> Trip:
        dropoff = data.get("dropoffLocation")
        rider = data.get("rider")
        return Trip(
            id=data["id"],
            pickup_location=GeoPoint(**data["pickupLocation"]),
            pickup_time=data.get("pickupTime") or datetime.now(),
            dropoff_location=GeoPoint(**dropoff) if dropoff else None,
            trip_type=data["tripType"],
            requires_wheelchair=data["requiresWheelchair"],
            has_pets=data["hasPets"],
            waypoints=[GeoPoint(**w) for w in data.get("waypoints", [])],
            requires_certification=data.get("requiresCertification") or None,
            preferred_language=data.get("preferredLanguage") or None,
            rider=RiderRef(id=rider["id"], rating=rider.get("rating")) if rider else None,
            fare=data["fare"],
        )


class FindDriversSerializer(serializers.Serializer):
    trip = TripPayloadSerializer()
    options = MatchOptionsSerializer(required=False)


class AssignBestSerializer(serializers.Serializer):
    tripId = serializers.CharField()
    options = MatchOptionsSerializer(required=False)


class ReassignSerializer(serializers.Serializer):
    tripId = serializers.CharField()
    excludeDriverIds = serializers.ListField(child=serializers.CharField(), default=list)
    options = MatchOptionsSerializer(required=False)


class BatchAssignSerializer(serializers.Serializer):
    tripIds = serializers.ListField(child=serializers.CharField(), allow_empty=False)
    options = MatchOptionsSerializer(required=False)


class RecordResponseSerializer(serializers.Serializer):
    accepted = serializers.BooleanField()
    responseTime = serializers.FloatField(min_value=0, default=0.0)


# --- Responses ---

class MatchResultSerializer(serializers.Serializer):
    driver = serializers.SerializerMethodField()
    matchScore = serializers.FloatField(source="total_score")
    distanceToPickup = serializers.FloatField(source="distance_to_pickup", allow_null=True)
    autoAccept = serializers.BooleanField(source="auto_accept")
    breakdown = serializers.SerializerMethodField()

    def get_driver(self, obj):
        return obj.driver.summary()

    def get_breakdown(self, obj):
        return asdict(obj.breakdown)


class MatchOutcomeSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    status = serializers.CharField(source="status.value")
    message = serializers.CharField()
    matches = MatchResultSerializer(many=True)
    totalDriversConsidered = serializers.IntegerField(source="total_considered")
    totalMatches = serializers.IntegerField(source="total_matches")
    topMatchScore = serializers.FloatField(source="top_score")


class TripSerializer(serializers.Serializer):
    id = serializers.CharField()
    driverId = serializers.CharField(source="driver_id", allow_null=True)
    status = serializers.CharField(source="status.value")
    assignedAt = serializers.DateTimeField(source="assigned_at", allow_null=True)
    matchScore = serializers.FloatField(source="match_score", allow_null=True)
    reassignmentCount = serializers.IntegerField(source="reassignment_count")


class AssignmentResultSerializer(serializers.Serializer):
    trip = TripSerializer()
    assignedDriver = serializers.SerializerMethodField()
    matchScore = serializers.FloatField(source="match_score")
    autoAccepted = serializers.BooleanField(source="auto_accepted")
    breakdown = serializers.SerializerMethodField()
    reassignmentCount = serializers.IntegerField(source="reassignment_count", allow_null=True)
    alternativeMatches = MatchResultSerializer(source="alternative_matches", many=True)

    def get_assignedDriver(self, obj):
        return obj.assigned_driver.summary()

    def get_breakdown(self, obj):
        return asdict(obj.breakdown)


class BatchItemSerializer(serializers.Serializer):
    tripId = serializers.CharField(source="trip_id")
    success = serializers.BooleanField()
    assignment = AssignmentResultSerializer(allow_null=True)
    error = serializers.CharField(allow_null=True)
    errorKind = serializers.CharField(source="error_kind", allow_null=True)


class BatchSummarySerializer(serializers.Serializer):
    total = serializers.IntegerField()
    successful = serializers.IntegerField()
    failed = serializers.IntegerField()
    successRate = serializers.FloatField(source="success_rate")


class BatchAssignmentResultSerializer(serializers.Serializer):
    results = BatchItemSerializer(many=True)
    summary = BatchSummarySerializer()


class DriverAvailabilitySerializer(serializers.Serializer):
    driver = serializers.SerializerMethodField()
    isMatchable = serializers.BooleanField(source="is_matchable")
    preferences = serializers.SerializerMethodField()

    def get_driver(self, obj):
        data = obj.driver.summary()
        data.update(
            is_active=obj.driver.is_active,
            is_available=obj.driver.is_available,
            is_location_tracking=obj.driver.is_location_tracking,
        )
        return data

    def get_preferences(self, obj):
        prefs = obj.preferences
        return {
            "hasPreferences": prefs.has_preferences,
            "inPreferredShift": prefs.in_preferred_shift,
            "currentShift": asdict(prefs.current_shift) if prefs.current_shift else None,
            "acceptanceRate": prefs.acceptance_rate,
            "autoAcceptEnabled": prefs.auto_accept_enabled,
        }


class PreferenceStatisticsSerializer(serializers.Serializer):
    totalTripsAccepted = serializers.IntegerField(source="total_trips_accepted")
    totalTripsRejected = serializers.IntegerField(source="total_trips_rejected")
    acceptanceRate = serializers.FloatField(source="acceptance_rate")
    averageResponseTime = serializers.FloatField(source="average_response_time")
    lastUpdated = serializers.DateTimeField(source="last_updated", allow_null=True)


# --- Driver preference profiles ---
#
# Every input field is optional with no serializer default: whatever the
# client leaves out falls back to the dataclass default.

class DataclassSerializer(serializers.Serializer):
    """
    Validates into an instance of `model` instead of a dict.
    """
    model = None

    def to_internal_value(self, data):
        return self.model(**super().to_internal_value(data))


class PointSerializer(DataclassSerializer):
    model = GeoPoint

    lat = serializers.FloatField(min_value=-90, max_value=90)
    lng = serializers.FloatField(min_value=-180, max_value=180)


class BoundingBoxSerializer(DataclassSerializer):
    model = BoundingBox

    southwest = PointSerializer()
    northeast = PointSerializer()


class MatchingWeightsSerializer(DataclassSerializer):
    model = MatchingWeights

    distance = serializers.FloatField(min_value=0, required=False)
    availability = serializers.FloatField(min_value=0, required=False)
    preferences = serializers.FloatField(min_value=0, required=False)
    rating = serializers.FloatField(min_value=0, required=False)
    efficiency = serializers.FloatField(min_value=0, required=False)


class ShiftSerializer(DataclassSerializer):
    model = Shift

    dayOfWeek = serializers.ChoiceField(choices=DAYS_OF_WEEK, source="day_of_week")
    startTime = serializers.CharField(source="start_time")
    endTime = serializers.CharField(source="end_time")
    priority = serializers.IntegerField(required=False)


class AvailabilityPreferencesSerializer(DataclassSerializer):
    model = AvailabilityPreferences

    preferredShifts = ShiftSerializer(many=True, source="preferred_shifts", required=False)
    maxHoursPerDay = serializers.FloatField(min_value=0, source="max_hours_per_day", required=False)
    maxHoursPerWeek = serializers.FloatField(min_value=0, source="max_hours_per_week", required=False)
    minBreakBetweenTrips = serializers.IntegerField(min_value=0, source="min_break_between_trips", required=False)
    unrestricted = serializers.BooleanField(required=False)


class PreferredAreaSerializer(DataclassSerializer):
    model = PreferredArea

    bounds = BoundingBoxSerializer()
    name = serializers.CharField(required=False, allow_null=True)
    priority = serializers.IntegerField(required=False)


class AvoidAreaSerializer(DataclassSerializer):
    model = AvoidArea

    bounds = BoundingBoxSerializer()
    name = serializers.CharField(required=False, allow_null=True)
    reason = serializers.CharField(required=False, allow_null=True)


class GeographicPreferencesSerializer(DataclassSerializer):
    model = GeographicPreferences

    preferredAreas = PreferredAreaSerializer(many=True, source="preferred_areas", required=False)
    avoidAreas = AvoidAreaSerializer(many=True, source="avoid_areas", required=False)


class TripTypePreferenceSerializer(DataclassSerializer):
    model = TripTypePreference

    type = serializers.ChoiceField(choices=TRIP_TYPES)
    priority = serializers.IntegerField(required=False)


class AvoidedTripTypeSerializer(DataclassSerializer):
    model = AvoidedTripType

    type = serializers.ChoiceField(choices=TRIP_TYPES)
    reason = serializers.CharField(required=False, allow_null=True)


class TripPreferencesSerializer(DataclassSerializer):
    model = TripPreferences

    preferredTripTypes = TripTypePreferenceSerializer(many=True, source="preferred_trip_types", required=False)
    avoidTripTypes = AvoidedTripTypeSerializer(many=True, source="avoid_trip_types", required=False)
    acceptWheelchair = serializers.BooleanField(source="accept_wheelchair", required=False)
    acceptPets = serializers.BooleanField(source="accept_pets", required=False)
    acceptMultiStop = serializers.BooleanField(source="accept_multi_stop", required=False)
    maxStopsPerTrip = serializers.IntegerField(min_value=0, source="max_stops_per_trip", required=False)
    maxPassengers = serializers.IntegerField(min_value=1, source="max_passengers", required=False)


class PreferredRiderSerializer(DataclassSerializer):
    model = PreferredRider

    riderId = serializers.CharField(source="rider_id")
    reason = serializers.CharField(required=False, allow_null=True)
    priority = serializers.IntegerField(required=False)


class BlockedRiderSerializer(DataclassSerializer):
    model = BlockedRider

    riderId = serializers.CharField(source="rider_id")
    reason = serializers.CharField(required=False, allow_blank=True)


class RiderPreferencesSerializer(DataclassSerializer):
    model = RiderPreferences

    preferredRiders = PreferredRiderSerializer(many=True, source="preferred_riders", required=False)
    avoidRiders = BlockedRiderSerializer(many=True, source="avoid_riders", required=False)


class CertificationSerializer(DataclassSerializer):
    model = Certification

    type = serializers.ChoiceField(choices=CERTIFICATION_TYPES)
    number = serializers.CharField(required=False, allow_null=True)
    verified = serializers.BooleanField(required=False)


class SkillsSerializer(DataclassSerializer):
    model = Skills

    certifications = CertificationSerializer(many=True, required=False)


class LanguagePreferencesSerializer(DataclassSerializer):
    model = LanguagePreferences

    primary = serializers.CharField(required=False)
    additional = serializers.ListField(child=serializers.CharField(), required=False)
    preferMatchingLanguage = serializers.BooleanField(source="prefer_matching_language", required=False)


class AutoAcceptConditionsSerializer(DataclassSerializer):
    model = AutoAcceptConditions

    maxDistanceToPickup = serializers.FloatField(min_value=0, source="max_distance_to_pickup", required=False)
    minTripFare = serializers.FloatField(min_value=0, source="min_trip_fare", required=False)
    onlyPreferredAreas = serializers.BooleanField(source="only_preferred_areas", required=False)
    onlyPreferredTripTypes = serializers.BooleanField(source="only_preferred_trip_types", required=False)
    onlyDuringPreferredShifts = serializers.BooleanField(source="only_during_preferred_shifts", required=False)
    minRiderRating = serializers.FloatField(min_value=0, max_value=5, source="min_rider_rating", required=False)


class AutoAcceptRulesSerializer(DataclassSerializer):
    model = AutoAcceptRules

    enabled = serializers.BooleanField(required=False)
    conditions = AutoAcceptConditionsSerializer(required=False)


class DriverPreferenceProfileSerializer(serializers.Serializer):
    """
    A whole profile on the wire. Validates into a dict of section
    objects keyed by profile attribute, ready for `dataclasses.replace`.
    Statistics are read-only here; they only move through record-response.
    """
    driverId = serializers.CharField(source="driver_id", read_only=True)
    isActive = serializers.BooleanField(source="is_active", required=False)
    matchingWeights = MatchingWeightsSerializer(source="matching_weights", required=False)
    availability = AvailabilityPreferencesSerializer(required=False)
    geographic = GeographicPreferencesSerializer(required=False)
    tripPreferences = TripPreferencesSerializer(source="trip_preferences", required=False)
    riderPreferences = RiderPreferencesSerializer(source="rider_preferences", required=False)
    skills = SkillsSerializer(required=False)
    languages = LanguagePreferencesSerializer(required=False)
    autoAccept = AutoAcceptRulesSerializer(source="auto_accept", required=False)
    statistics = PreferenceStatisticsSerializer(read_only=True)


# wire section name -> (profile attribute, serializer)
PREFERENCE_SECTIONS = {
    "matchingWeights": ("matching_weights", MatchingWeightsSerializer),
    "availability": ("availability", AvailabilityPreferencesSerializer),
    "geographic": ("geographic", GeographicPreferencesSerializer),
    "tripPreferences": ("trip_preferences", TripPreferencesSerializer),
    "riderPreferences": ("rider_preferences", RiderPreferencesSerializer),
    "skills": ("skills", SkillsSerializer),
    "languages": ("languages", LanguagePreferencesSerializer),
    "autoAccept": ("auto_accept", AutoAcceptRulesSerializer),
}
