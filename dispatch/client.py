#Purpose: The dispatch API "adapter/client".
#Sole responsibility: talk to the matching HTTP endpoints and return parsed JSON.
#Encapsulates:
#URL construction (/api/v1/match/...)
#timeouts/error handling
#payload naming (camelCase on the wire)
#It should not contain matching rules or scoring.


from dotenv import load_dotenv
import os
from typing import Any, Dict, List, Optional, Sequence
import requests

# Read the dispatch API base URL from environment
# Example in .env:
# DISPATCH_API_URL=http://localhost:8000
load_dotenv()
DISPATCH_API_URL = os.getenv("DISPATCH_API_URL")


class DispatchApiError(Exception):
    """Raised when the dispatch API answers with an error status."""

    def __init__(self, message: str, status_code: Optional[int] = None, payload: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload or {}


class DispatchApiClient:
    """
    Dispatch API Adapter / Client

    Sole responsibility:
    - Talk to the matching endpoints via HTTP
    - Return the decoded JSON body
    """
    def __init__(self, base_url: Optional[str] = None, timeout: int = 10, session: Optional[requests.Session] = None):
        self.base_url = (base_url or DISPATCH_API_URL or "").rstrip("/")
        self.timeout = timeout  # seconds to wait for the API before giving up
        self.session = session or requests.Session()

        if not self.base_url:
            raise ValueError("Dispatch API base URL not set. Please set DISPATCH_API_URL in the .env file.")

    #----------------
    # Internal helpers
    #----------------
    def _url(self, path: str) -> str:
        return f"{self.base_url}/api/v1/{path.lstrip('/')}"

    def _handle(self, response: requests.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.status_code >= 400:
            message = data.get("error") or data.get("detail") or f"HTTP {response.status_code}"
            raise DispatchApiError(message, status_code=response.status_code, payload=data)
        return data

    def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        response = self.session.post(self._url(path), json=payload, timeout=self.timeout)
        return self._handle(response)

    #----------------
    # Public methods
    #----------------
    def find_drivers(self, trip: Dict[str, Any], options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        POST /match/find-drivers -> ranked matches for an ad-hoc trip payload.
        """
        return self._post("match/find-drivers", {"trip": trip, "options": options or {}})

    def assign_best(self, trip_id: str, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self._post("match/assign-best", {"tripId": trip_id, "options": options or {}})

    def reassign(
        self,
        trip_id: str,
        exclude_driver_ids: Sequence[str] = (),
        options: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        return self._post(
            "match/reassign",
            {"tripId": trip_id, "excludeDriverIds": list(exclude_driver_ids), "options": options or {}},
        )

    def batch_assign(self, trip_ids: List[str], options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if not trip_ids:
            raise ValueError("trip_ids must not be empty")
        return self._post("match/batch-assign", {"tripIds": list(trip_ids), "options": options or {}})

    def driver_availability(self, driver_id: str) -> Dict[str, Any]:
        response = self.session.get(self._url(f"match/availability/{driver_id}"), timeout=self.timeout)
        return self._handle(response)

    def record_response(self, driver_id: str, accepted: bool, response_time: float = 0.0) -> Dict[str, Any]:
        return self._post(
            f"driver-preferences/{driver_id}/record-response",
            {"accepted": accepted, "responseTime": response_time},
        )

    def get_preferences(self, driver_id: str) -> Dict[str, Any]:
        response = self.session.get(self._url(f"driver-preferences/{driver_id}"), timeout=self.timeout)
        return self._handle(response)

    def save_preferences(self, driver_id: str, preferences: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST /driver-preferences/<id> -> creates the profile or replaces the sections sent.
        """
        return self._post(f"driver-preferences/{driver_id}", preferences)

    def update_preference_section(self, driver_id: str, section: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        response = self.session.patch(
            self._url(f"driver-preferences/{driver_id}/{section}"), json=updates, timeout=self.timeout
        )
        return self._handle(response)

    def delete_preferences(self, driver_id: str) -> Dict[str, Any]:
        response = self.session.delete(self._url(f"driver-preferences/{driver_id}"), timeout=self.timeout)
        return self._handle(response)
