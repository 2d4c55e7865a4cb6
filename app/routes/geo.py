"""Geocoding endpoints"""
from flask import Blueprint, jsonify

from app import geocoding
from app.auth import require_auth
from app.errors import ExternalServiceUnavailable, ValidationError
from app.utils.validators import json_body, parse_coordinate

geo_bp = Blueprint('geo', __name__, url_prefix='/api/geo')


def _point(data, name):
    """(lat, lng) from {"lat", "lng"} or by geocoding {"address"}."""
    value = data.get(name)
    if not isinstance(value, dict):
        raise ValidationError('{} must be an object with lat/lng or address'.format(name), field=name)
    lat = parse_coordinate(value.get('lat'), name + '.lat', 90)
    lng = parse_coordinate(value.get('lng'), name + '.lng', 180)
    if lat is not None and lng is not None:
        return lat, lng
    if value.get('address'):
        lat, lng, _ = geocoding.geocode(value['address'])
        return lat, lng
    raise ValidationError('{} needs lat/lng or an address'.format(name), field=name)


@geo_bp.route('/mileage', methods=['POST'])
@require_auth
def mileage(user):
    """
    Driving distance for a tow
    POST /api/geo/mileage
    Body: { "pickup": {"lat": .., "lng": ..}, "dropoff": {"address": "..."} }

    Answers 200 with available=false when the maps service is down.
    """
    data = json_body()
    try:
        origin = _point(data, 'pickup')
        destination = _point(data, 'dropoff')
        distance, duration = geocoding.route_mileage(origin, destination)
    except ExternalServiceUnavailable as e:
        return jsonify({
            'available': False,
            'distance_meters': None,
            'duration_seconds': None,
            'warnings': [e.as_warning()],
        }), 200
    return jsonify({
        'available': True,
        'distance_meters': distance,
        'duration_seconds': duration,
        'warnings': [],
    }), 200
