"""
SMS delivery via Twilio

- Phone numbers are normalized to E.164 before sending
- Without credentials messages are logged as [SMS-DEV] and not sent
- Transient Twilio failures (HTTP 429/5xx, connection errors) are retried

IMPORTANT: No function in this module raises. Failures are logged and
reported in the returned SmsResult so an SMS outage never takes down a
job workflow.
"""
import logging
from collections import namedtuple

import requests
from flask import current_app
from twilio.base.exceptions import TwilioRestException

from app.errors import ExternalServiceUnavailable
from app.utils.retry import retry_call
from app.utils.validators import normalize_phone

logger = logging.getLogger(__name__)

SmsResult = namedtuple("SmsResult", ["sent", "sid", "error"])

_twilio_clients = {}

STATUS_MESSAGES = {
    "assigned": "Good news! A provider has been assigned to your roadside request. Job #{job}",
    "enroute": "Your provider is on the way. Job #{job}",
    "on_site": "Your provider has arrived. Job #{job}",
    "in_progress": "Work on your vehicle has started. Job #{job}",
    "completed": "Your roadside job is complete. Thanks for using us! Job #{job}",
}


def _get_twilio():
    """Lazily initialise the Twilio REST client for the configured account."""
    sid = current_app.config.get("TWILIO_ACCOUNT_SID")
    token = current_app.config.get("TWILIO_AUTH_TOKEN")
    if not sid or not token:
        return None
    client = _twilio_clients.get(sid)
    if client is None:
        from twilio.rest import Client
        client = Client(sid, token)
        _twilio_clients[sid] = client
    return client


def _is_transient(error):
    if isinstance(error, TwilioRestException):
        return error.status == 429 or (error.status or 0) >= 500
    return isinstance(error, (requests.ConnectionError, requests.Timeout))


def send_sms(to_phone, message):
    """Send an SMS. Never raises.

    Returns:
        SmsResult: ``sent`` is False both in dev fallback and on failure;
        ``error`` is an ExternalServiceUnavailable only on failure.
    """
    formatted = normalize_phone(to_phone)
    if not formatted:
        logger.warning("send_sms called with empty/invalid phone: %r", to_phone)
        return SmsResult(False, None, None)

    try:
        client = _get_twilio()
        from_number = current_app.config.get("TWILIO_FROM_NUMBER")
        if client is None or not from_number:
            logger.info("[SMS-DEV] To %s: %s", formatted, message)
            return SmsResult(False, None, None)

        msg = retry_call(
            client.messages.create,
            body=message,
            from_=from_number,
            to=formatted,
            retry_on=(TwilioRestException, requests.RequestException),
            should_retry=_is_transient,
            description="Twilio send",
        )
        logger.info("SMS sent to %s (SID: %s)", formatted, msg.sid)
        return SmsResult(True, msg.sid, None)
    except Exception as e:
        logger.exception("Failed to send SMS to %s", formatted)
        return SmsResult(False, None, ExternalServiceUnavailable("sms", "SMS delivery failed: {}".format(e)))


def sms_status_update(to_phone, job_id, status):
    """Status SMS to the customer. Returns None for statuses that are not texted."""
    template = STATUS_MESSAGES.get(status)
    if template is None:
        return None
    return send_sms(to_phone, template.format(job=job_id[:8]))


def sms_claim_link(to_phone, claim_url):
    return send_sms(
        to_phone,
        "Your roadside request has been created. Tap to track it and chat with your provider: {}".format(claim_url),
    )
