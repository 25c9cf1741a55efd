import logging
from dataclasses import replace

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from dispatch.availability import DriverNotFound, driver_availability
from dispatch.dispatcher import (
    AssignmentConflict,
    AssignmentPersistFailure,
    AssignmentTimeout,
    InvalidTripState,
    MatchingError,
    NoDriverFound,
    TripNotFound,
)
from dispatch.state_machines.driver_state import DriverStateException, record_trip_response
from drivers.preferences import DriverPreferenceProfile

from .serializers import (
    PREFERENCE_SECTIONS,
    AssignBestSerializer,
    AssignmentResultSerializer,
    BatchAssignmentResultSerializer,
    BatchAssignSerializer,
    DriverAvailabilitySerializer,
    DriverPreferenceProfileSerializer,
    FindDriversSerializer,
    MatchOutcomeSerializer,
    PreferenceStatisticsSerializer,
    ReassignSerializer,
    RecordResponseSerializer,
    TripPayloadSerializer,
    build_options,
)
from .services import get_services

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    TripNotFound: status.HTTP_404_NOT_FOUND,
    DriverNotFound: status.HTTP_404_NOT_FOUND,
    InvalidTripState: status.HTTP_409_CONFLICT,
    AssignmentConflict: status.HTTP_409_CONFLICT,
    AssignmentPersistFailure: status.HTTP_500_INTERNAL_SERVER_ERROR,
    AssignmentTimeout: status.HTTP_504_GATEWAY_TIMEOUT,
}


def matching_error_response(exc: MatchingError) -> Response:
    """
    Map an engine error onto the HTTP contract. "No driver" is a normal
    answer, so it goes out as 200 with success=false.
    """
    if isinstance(exc, NoDriverFound):
        return Response({
            "success": False,
            "error": str(exc),
            "errorKind": exc.kind,
            "status": exc.outcome.status.value,
            "totalDriversConsidered": exc.outcome.total_considered,
        })

    code = ERROR_STATUS.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
    return Response({"success": False, "error": str(exc), "errorKind": exc.kind}, status=code)


class FindDriversView(APIView):
    """
    Rank drivers for an ad-hoc trip without assigning anything.
    """
    def post(self, request):
        serializer = FindDriversSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        coordinator = get_services().coordinator
        trip = TripPayloadSerializer.to_trip(serializer.validated_data["trip"])
        options = build_options(serializer.validated_data.get("options"), coordinator.policy)

        outcome = coordinator.find_best_matches(trip, options)
        return Response(MatchOutcomeSerializer(outcome).data)


class AssignBestView(APIView):
    def post(self, request):
        serializer = AssignBestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        coordinator = get_services().coordinator
        options = build_options(serializer.validated_data.get("options"), coordinator.policy)

        try:
            result = coordinator.assign_best(serializer.validated_data["tripId"], options)
        except MatchingError as exc:
            return matching_error_response(exc)

        return Response({"success": True, **AssignmentResultSerializer(result).data})


class ReassignView(APIView):
    """
    Pick a new driver after a decline, skipping the excluded drivers.
    """
    def post(self, request):
        serializer = ReassignSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        coordinator = get_services().coordinator
        options = build_options(serializer.validated_data.get("options"), coordinator.policy)

        try:
            result = coordinator.reassign(
                serializer.validated_data["tripId"],
                exclude_driver_ids=serializer.validated_data["excludeDriverIds"],
                options=options,
            )
        except MatchingError as exc:
            return matching_error_response(exc)

        return Response({"success": True, **AssignmentResultSerializer(result).data})


class BatchAssignView(APIView):
    def post(self, request):
        serializer = BatchAssignSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        coordinator = get_services().coordinator
        options = build_options(serializer.validated_data.get("options"), coordinator.policy)

        result = coordinator.batch_assign(serializer.validated_data["tripIds"], options)
        return Response({"success": True, **BatchAssignmentResultSerializer(result).data})


class DriverAvailabilityView(APIView):
    def get(self, request, driver_id):
        services = get_services()
        try:
            report = driver_availability(driver_id, services.driver_repository, services.preference_repository)
        except MatchingError as exc:
            return matching_error_response(exc)

        return Response({"success": True, **DriverAvailabilitySerializer(report).data})


class RecordResponseView(APIView):
    """
    Fold a driver's accept/decline into their preference statistics.
    """
    def post(self, request, driver_id):
        serializer = RecordResponseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        repository = get_services().preference_repository
        profile = repository.get(driver_id)
        if profile is None:
            return Response(
                {"success": False, "error": f"Preferences for driver {driver_id} not found"},
                status=status.HTTP_404_NOT_FOUND,
            )

        try:
            updated = record_trip_response(
                profile,
                accepted=serializer.validated_data["accepted"],
                response_time=serializer.validated_data["responseTime"],
            )
        except DriverStateException as exc:
            return Response({"success": False, "error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        repository.save(updated)
        logger.info(
            "Driver %s %s a trip (acceptance rate %.1f%%)",
            driver_id, "accepted" if serializer.validated_data["accepted"] else "declined",
            updated.statistics.acceptance_rate,
        )
        return Response({"success": True, "statistics": PreferenceStatisticsSerializer(updated.statistics).data})


def _profile_not_found(driver_id):
    return Response(
        {"success": False, "error": f"Preferences for driver {driver_id} not found"},
        status=status.HTTP_404_NOT_FOUND,
    )


def _save_profile(repository, profile):
    """
    Persist a profile, turning its validation errors into a 400 response.
    Returns (profile, None) or (None, error response).
    """
    try:
        return repository.save(profile), None
    except ValueError as exc:
        return None, Response({"success": False, "error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)


class DriverPreferencesView(APIView):
    """
    Read, create/update or remove a driver's preference profile.
    Removing it puts the driver back on the default profile.
    """
    def get(self, request, driver_id):
        profile = get_services().preference_repository.get(driver_id)
        if profile is None:
            return _profile_not_found(driver_id)
        return Response({"success": True, "preferences": DriverPreferenceProfileSerializer(profile).data})

    def post(self, request, driver_id):
        serializer = DriverPreferenceProfileSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        repository = get_services().preference_repository
        existing = repository.get(driver_id)
        base = existing or DriverPreferenceProfile(driver_id=driver_id)

        # sections in the body replace the stored ones; the rest are kept
        profile, error = _save_profile(repository, replace(base, **serializer.validated_data))
        if error is not None:
            return error

        created = existing is None
        logger.info(
            "Preferences for driver %s %s (%s)",
            driver_id, "created" if created else "updated", ", ".join(sorted(request.data)) or "no fields",
        )
        return Response(
            {"success": True, "created": created, "preferences": DriverPreferenceProfileSerializer(profile).data},
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    def delete(self, request, driver_id):
        if not get_services().preference_repository.delete(driver_id):
            return _profile_not_found(driver_id)

        logger.info("Preferences for driver %s removed; default profile applies", driver_id)
        return Response({"success": True})


class PreferenceSectionView(APIView):
    """
    Merge fields into one section of a stored profile.
    """
    def patch(self, request, driver_id, section):
        if section not in PREFERENCE_SECTIONS:
            return Response(
                {"success": False, "error": "Invalid preference section", "validSections": list(PREFERENCE_SECTIONS)},
                status=status.HTTP_400_BAD_REQUEST,
            )
        if not isinstance(request.data, dict):
            return Response(
                {"success": False, "error": "Section updates must be a JSON object"},
                status=status.HTTP_400_BAD_REQUEST,
            )

        repository = get_services().preference_repository
        profile = repository.get(driver_id)
        if profile is None:
            return _profile_not_found(driver_id)

        attribute, section_serializer = PREFERENCE_SECTIONS[section]
        merged = {**section_serializer(getattr(profile, attribute)).data, **request.data}
        serializer = section_serializer(data=merged)
        serializer.is_valid(raise_exception=True)

        updated, error = _save_profile(repository, replace(profile, **{attribute: serializer.validated_data}))
        if error is not None:
            return error

        logger.info("Preferences for driver %s: %s updated", driver_id, section)
        return Response({"success": True, "preferences": DriverPreferenceProfileSerializer(updated).data})
