from unittest.mock import MagicMock

import pytest

from dispatch.client import DispatchApiClient, DispatchApiError


def _response(status_code=200, payload=None):
    response = MagicMock()
    response.status_code = status_code
    if payload is None:
        response.json.side_effect = ValueError("no json")
    else:
        response.json.return_value = payload
    return response


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def client(session):
    return DispatchApiClient(base_url="http://dispatch.test/", timeout=3, session=session)


def test_requires_base_url(monkeypatch):
    monkeypatch.setattr("dispatch.client.DISPATCH_API_URL", None)
    with pytest.raises(ValueError):
        DispatchApiClient(session=MagicMock())


def test_assign_best_posts_camel_case_payload(client, session):
    session.post.return_value = _response(payload={"success": True, "matchScore": 88.0})

    data = client.assign_best("t1", {"minScore": 50})

    assert data["matchScore"] == 88.0
    session.post.assert_called_once_with(
        "http://dispatch.test/api/v1/match/assign-best",
        json={"tripId": "t1", "options": {"minScore": 50}},
        timeout=3,
    )


def test_reassign_sends_exclusions(client, session):
    session.post.return_value = _response(payload={"success": True})

    client.reassign("t1", ("d1", "d2"))

    _, kwargs = session.post.call_args
    assert kwargs["json"]["excludeDriverIds"] == ["d1", "d2"]


def test_batch_assign_rejects_empty_list(client, session):
    with pytest.raises(ValueError):
        client.batch_assign([])
    session.post.assert_not_called()


def test_availability_uses_get(client, session):
    session.get.return_value = _response(payload={"success": True, "isMatchable": True})

    assert client.driver_availability("d1")["isMatchable"]
    session.get.assert_called_once_with("http://dispatch.test/api/v1/match/availability/d1", timeout=3)


def test_error_status_raises_with_payload(client, session):
    session.post.return_value = _response(404, {"success": False, "error": "Trip t9 not found"})

    with pytest.raises(DispatchApiError) as excinfo:
        client.assign_best("t9")

    assert excinfo.value.status_code == 404
    assert str(excinfo.value) == "Trip t9 not found"
    assert excinfo.value.payload["success"] is False


def test_error_without_json_body(client, session):
    session.post.return_value = _response(502)

    with pytest.raises(DispatchApiError) as excinfo:
        client.record_response("d1", accepted=True)

    assert str(excinfo.value) == "HTTP 502"


def test_preference_endpoints(client, session):
    session.post.return_value = _response(201, {"success": True, "created": True})
    session.patch.return_value = _response(payload={"success": True})
    session.delete.return_value = _response(payload={"success": True})

    assert client.save_preferences("d1", {"isActive": True})["created"]
    client.update_preference_section("d1", "autoAccept", {"enabled": True})
    client.delete_preferences("d1")

    session.post.assert_called_once_with(
        "http://dispatch.test/api/v1/driver-preferences/d1", json={"isActive": True}, timeout=3
    )
    session.patch.assert_called_once_with(
        "http://dispatch.test/api/v1/driver-preferences/d1/autoAccept", json={"enabled": True}, timeout=3
    )
    session.delete.assert_called_once_with("http://dispatch.test/api/v1/driver-preferences/d1", timeout=3)


def test_missing_preferences_raise(client, session):
    session.get.return_value = _response(404, {"success": False, "error": "Preferences for driver d9 not found"})

    with pytest.raises(DispatchApiError) as excinfo:
        client.get_preferences("d9")

    assert excinfo.value.status_code == 404
