import pytest

from dispatch.policy import MatchingPolicy, MatchOptions, default_matching_policy


def test_defaults():
    policy = default_matching_policy()
    options = policy.match_options()

    assert (options.limit, options.radius_km, options.min_score) == (10, 20.0, 40.0)
    assert options.exclude_drivers == ()
    assert policy.reassign_alternatives == 2


def test_match_options_ignore_missing_overrides():
    options = default_matching_policy().match_options(limit=3, radius_km=None, exclude_drivers=["d1"])

    assert options.limit == 3
    assert options.radius_km == 20.0
    assert options.exclude_drivers == ("d1",)


def test_with_overrides_merges_exclusions_without_duplicates():
    options = MatchOptions(exclude_drivers=("a", "b"))

    merged = options.with_overrides(limit=1, exclude_drivers=["b", "c"])

    assert merged.limit == 1
    assert merged.exclude_drivers == ("a", "b", "c")
    assert options.exclude_drivers == ("a", "b")


@pytest.mark.parametrize("kwargs", [{"limit": 0}, {"radius_km": 0}, {"min_score": 101}, {"min_score": -1}])
def test_invalid_options(kwargs):
    with pytest.raises(ValueError):
        MatchOptions(**kwargs).validate()


@pytest.mark.parametrize("kwargs", [
    {"default_limit": 0},
    {"reassign_alternatives": -1},
    {"batch_rate_per_second": 0},
    {"batch_burst": 0},
    {"assignment_deadline_seconds": 0},
])
def test_invalid_policy(kwargs):
    with pytest.raises(ValueError):
        MatchingPolicy(**kwargs).validate()


def test_policy_from_environment(monkeypatch):
    monkeypatch.setenv("MATCH_MIN_SCORE", "55")
    monkeypatch.setenv("MATCH_RADIUS_KM", "12.5")
    monkeypatch.setenv("MATCH_BATCH_RATE_PER_SECOND", "4")

    policy = MatchingPolicy.from_env()

    assert policy.default_min_score == 55.0
    assert policy.default_radius_km == 12.5
    assert policy.batch_rate_per_second == 4.0
    assert policy.default_limit == 10


def test_policy_from_environment_is_validated(monkeypatch):
    monkeypatch.setenv("MATCH_DEFAULT_LIMIT", "0")

    with pytest.raises(ValueError):
        MatchingPolicy.from_env()
