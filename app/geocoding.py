"""
Google Maps geocoding and route mileage.

Callers treat every failure as "unavailable": both public functions raise
ExternalServiceUnavailable and never anything else.
"""
import logging

import requests
from flask import current_app

from app.errors import ExternalServiceUnavailable
from app.utils.retry import retry_call

logger = logging.getLogger(__name__)

GEOCODING_URL = "https://maps.googleapis.com/maps/api/geocode/json"
DISTANCE_MATRIX_URL = "https://maps.googleapis.com/maps/api/distancematrix/json"

# Google answers 200 with these statuses when the failure is temporary
TRANSIENT_API_STATUSES = ("OVER_QUERY_LIMIT", "UNKNOWN_ERROR")


class _TransientError(Exception):
    pass


def _api_key(service):
    key = current_app.config.get("GOOGLE_MAPS_API_KEY")
    if not key:
        logger.warning("GOOGLE_MAPS_API_KEY is not set, %s unavailable", service)
        raise ExternalServiceUnavailable(service, "Maps API key is not configured")
    return key


def _get_json(url, params):
    response = requests.get(url, params=params, timeout=current_app.config.get("EXTERNAL_TIMEOUT_SECONDS", 10))
    if response.status_code == 429 or response.status_code >= 500:
        raise _TransientError("HTTP {}".format(response.status_code))
    response.raise_for_status()
    data = response.json()
    if data.get("status") in TRANSIENT_API_STATUSES:
        raise _TransientError(data.get("status"))
    return data


def _call(service, url, params):
    try:
        return retry_call(
            _get_json, url, params,
            retry_on=(_TransientError, requests.ConnectionError, requests.Timeout),
            description=service,
        )
    except (_TransientError, requests.RequestException, ValueError) as e:
        logger.warning("%s request failed: %s", service, e)
        raise ExternalServiceUnavailable(service, "{} request failed".format(service))


def geocode(address):
    """
    Resolve an address

    Returns:
        tuple: (lat, lng, formatted_address)
    """
    if not address or not address.strip():
        raise ExternalServiceUnavailable("geocoding", "No address to geocode")
    params = {"address": address, "key": _api_key("geocoding")}
    data = _call("geocoding", GEOCODING_URL, params)

    if data.get("status") != "OK" or not data.get("results"):
        logger.info("Geocoding returned %s for %r", data.get("status"), address)
        raise ExternalServiceUnavailable("geocoding", "Address could not be located", status=data.get("status"))
    try:
        result = data["results"][0]
        location = result["geometry"]["location"]
        return float(location["lat"]), float(location["lng"]), result.get("formatted_address", address)
    except (KeyError, TypeError, ValueError):
        logger.exception("Unexpected geocoding response for %r", address)
        raise ExternalServiceUnavailable("geocoding", "Unexpected geocoding response")


def route_mileage(origin, destination):
    """
    Driving distance between two (lat, lng) points

    Returns:
        tuple: (distance_meters, duration_seconds)
    """
    params = {
        "origins": "{},{}".format(*origin),
        "destinations": "{},{}".format(*destination),
        "mode": "driving",
        "units": "imperial",
        "key": _api_key("routing"),
    }
    data = _call("routing", DISTANCE_MATRIX_URL, params)

    if data.get("status") != "OK":
        raise ExternalServiceUnavailable("routing", "Route could not be computed", status=data.get("status"))
    try:
        element = data["rows"][0]["elements"][0]
    except (KeyError, IndexError, TypeError):
        logger.exception("Unexpected distance matrix response")
        raise ExternalServiceUnavailable("routing", "Unexpected routing response")
    if element.get("status") != "OK":
        raise ExternalServiceUnavailable("routing", "Route could not be computed", status=element.get("status"))
    return int(element["distance"]["value"]), int(element["duration"]["value"])
