from django.urls import path
from matching.views import (
    AssignBestView,
    BatchAssignView,
    DriverAvailabilityView,
    DriverPreferencesView,
    FindDriversView,
    PreferenceSectionView,
    ReassignView,
    RecordResponseView,
)

urlpatterns = [
    path('api/v1/match/find-drivers', FindDriversView.as_view(), name='match-find-drivers'),
    path('api/v1/match/assign-best', AssignBestView.as_view(), name='match-assign-best'),
    path('api/v1/match/reassign', ReassignView.as_view(), name='match-reassign'),
    path('api/v1/match/batch-assign', BatchAssignView.as_view(), name='match-batch-assign'),
    path('api/v1/match/availability/<str:driver_id>', DriverAvailabilityView.as_view(), name='match-availability'),
    path('api/v1/driver-preferences/<str:driver_id>', DriverPreferencesView.as_view(), name='driver-preferences'),
    # must stay ahead of the section route
    path(
        'api/v1/driver-preferences/<str:driver_id>/record-response',
        RecordResponseView.as_view(),
        name='driver-record-response',
    ),
    path(
        'api/v1/driver-preferences/<str:driver_id>/<str:section>',
        PreferenceSectionView.as_view(),
        name='driver-preference-section',
    ),
]
