"""
Canned HTTP responses for the Google Maps stubs
"""
import requests


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def json(self):
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError("HTTP {}".format(self.status_code))


def distance_matrix(meters=16093, seconds=1260):
    return {
        "status": "OK",
        "rows": [{"elements": [{
            "status": "OK",
            "distance": {"value": meters, "text": "10 mi"},
            "duration": {"value": seconds, "text": "21 mins"},
        }]}],
    }
