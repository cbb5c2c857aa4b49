import asyncio
import json
import logging
from typing import Any, Dict, Optional, Tuple

import httpx
import requests
from google.auth import exceptions as google_exceptions
from google.oauth2 import service_account
from pyfcm import FCMNotification
from pyfcm.errors import (
    AuthenticationError,
    FCMError,
    FCMNotRegisteredError,
    FCMServerError,
    InvalidDataError,
)
from requests.adapters import HTTPAdapter

from premium_push.config import Settings, get_settings
from premium_push.schemas.dispatch import DeliveryResult, ErrorKind, PushPayload


log = logging.getLogger(__name__)

EXPO_TOKEN_PREFIXES = ("ExponentPushToken[", "ExpoPushToken[")

# Expo ticket error codes
_EXPO_ERRORS = {
    "DeviceNotRegistered": ErrorKind.UNREGISTERED,
    "InvalidCredentials": ErrorKind.AUTH_CONFIGURATION,
    "MessageRateExceeded": ErrorKind.RATE_LIMITED,
}


def is_expo_token(token: str) -> bool:
    return token.startswith(EXPO_TOKEN_PREFIXES)


class NoopSender:

    enabled = False

    def __init__(self, reason: str = "push credentials not configured") -> None:
        self._reason = reason

    async def send(self, token: str, payload: PushPayload) -> DeliveryResult:
        return DeliveryResult.failed(ErrorKind.AUTH_CONFIGURATION, self._reason)


FCM_SCOPES = ["https://www.googleapis.com/auth/firebase.messaging"]

# FCM v1 errorCode values that mean the registration token itself is dead
_FCM_TOKEN_ERRORS = ("UNREGISTERED", "INVALID_REGISTRATION_TOKEN")


class FcmRateLimitedError(FCMError):

    def __init__(self, retry_after: Optional[str] = None) -> None:
        self.retry_after = retry_after
        detail = f", retry after {retry_after}s" if retry_after else ""
        super().__init__(f"FCM quota exceeded{detail}")


class SingleAttemptFCM(FCMNotification):
    """
    FCMNotification that posts each message exactly once.

    pyfcm's ``send_request`` sleeps on ``Retry-After`` and resends, and its
    default adapter retries POSTs on 502/503. Retrying is the caller's
    decision here, so throttling is raised as ``FcmRateLimitedError`` and
    every other status goes straight to ``parse_response``.
    """

    def __init__(self, *args, **kwargs) -> None:
        kwargs.setdefault("adapter", HTTPAdapter(max_retries=0))
        super().__init__(*args, **kwargs)

    def send_request(self, payload=None, timeout=None):
        response = self.requests_session.post(self.fcm_end_point, data=payload, timeout=timeout)
        if response.status_code == 429:
            raise FcmRateLimitedError(response.headers.get("Retry-After"))
        if response.status_code == 401:
            # refresh the bearer token on the next attempt
            self.thread_local.token_expiry = 0
        return response


def _fcm_error_code(body: str) -> Tuple[Optional[str], str]:
    try:
        error = json.loads(body).get("error") or {}
    except (ValueError, AttributeError):
        return None, body
    if not isinstance(error, dict):
        return None, body
    message = error.get("message") or ""
    for detail in error.get("details") or []:
        if isinstance(detail, dict) and detail.get("errorCode"):
            return detail["errorCode"], message
    return error.get("status"), message


def classify_invalid_data(exc: InvalidDataError) -> ErrorKind:
    """
    pyfcm raises ``InvalidDataError`` for credential failures as well as
    for HTTP 400 answers, so the cause and the response body decide.
    """
    cause = exc.__cause__ or exc.__context__
    if isinstance(cause, google_exceptions.TransportError):
        return ErrorKind.PROVIDER_UNAVAILABLE
    if isinstance(cause, google_exceptions.GoogleAuthError):
        return ErrorKind.AUTH_CONFIGURATION
    text = str(exc)
    if "service account file does not exist" in text:
        return ErrorKind.AUTH_CONFIGURATION

    code, message = _fcm_error_code(text)
    if code in _FCM_TOKEN_ERRORS:
        return ErrorKind.UNREGISTERED
    if code == "INVALID_ARGUMENT" and "registration token" in message.lower():
        return ErrorKind.UNREGISTERED
    return ErrorKind.PROVIDER_ERROR


class FcmSender:

    enabled = True

    def __init__(self, client: FCMNotification, timeout_seconds: float = 10.0) -> None:
        self._client = client
        self._timeout = timeout_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> "FcmSender":
        # load the key now so a missing or malformed file fails at startup, not per device
        credentials = service_account.Credentials.from_service_account_file(
            settings.fcm_service_account_file,
            scopes=FCM_SCOPES,
        )
        client = SingleAttemptFCM(credentials=credentials, project_id=settings.fcm_project_id)
        return cls(client, timeout_seconds=settings.push_timeout_seconds)

    @staticmethod
    def build_message(payload: PushPayload) -> Dict[str, Any]:
        # FCM only accepts string values in the data block
        data = {key: str(value) for key, value in payload.data.items()}
        return {
            "notification_title": payload.title,
            "notification_body": payload.body,
            "data_payload": data,
            "android_config": {
                "priority": payload.priority,
                "ttl": f"{payload.ttl}s",
                "notification": {"channel_id": payload.channel_id, "sound": payload.sound},
            },
            "apns_config": {
                "payload": {"aps": {"sound": payload.sound, "badge": payload.badge or 0}},
            },
        }

    async def send(self, token: str, payload: PushPayload) -> DeliveryResult:
        message = self.build_message(payload)
        # pyfcm is blocking; keep it off the event loop
        try:
            await asyncio.to_thread(self._client.notify, fcm_token=token, timeout=self._timeout, **message)
        except AuthenticationError as exc:
            return DeliveryResult.failed(ErrorKind.AUTH_CONFIGURATION, str(exc))
        except FCMNotRegisteredError as exc:
            return DeliveryResult.failed(ErrorKind.UNREGISTERED, str(exc))
        except FcmRateLimitedError as exc:
            return DeliveryResult.failed(ErrorKind.RATE_LIMITED, str(exc))
        except FCMServerError as exc:
            return DeliveryResult.failed(ErrorKind.PROVIDER_UNAVAILABLE, str(exc))
        except InvalidDataError as exc:
            return DeliveryResult.failed(classify_invalid_data(exc), str(exc)[:200])
        except FCMError as exc:
            return DeliveryResult.failed(ErrorKind.PROVIDER_ERROR, str(exc))
        except requests.Timeout as exc:
            return DeliveryResult.failed(ErrorKind.TIMEOUT, str(exc) or "FCM request timed out")
        except requests.ConnectionError as exc:
            return DeliveryResult.failed(ErrorKind.PROVIDER_UNAVAILABLE, str(exc))
        return DeliveryResult.ok()


class ExpoSender:

    enabled = True

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        access_token: Optional[str] = None,
        url: str = "https://exp.host/--/api/v2/push/send",
        timeout_seconds: float = 10.0,
    ) -> None:
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)
        self._access_token = access_token
        self._url = url

    @staticmethod
    def build_message(token: str, payload: PushPayload) -> Dict[str, Any]:
        message: Dict[str, Any] = {
            "to": token,
            "title": payload.title,
            "body": payload.body,
            "data": payload.data,
            "sound": payload.sound,
            "channelId": payload.channel_id,
            "priority": payload.priority,
            "ttl": payload.ttl,
        }
        if payload.badge is not None:
            message["badge"] = payload.badge
        return message

    async def send(self, token: str, payload: PushPayload) -> DeliveryResult:
        headers = {"Accept": "application/json"}
        if self._access_token:
            headers["Authorization"] = f"Bearer {self._access_token}"
        try:
            response = await self._client.post(self._url, json=[self.build_message(token, payload)], headers=headers)
        except httpx.TimeoutException as exc:
            return DeliveryResult.failed(ErrorKind.TIMEOUT, str(exc) or "Expo request timed out")
        except httpx.HTTPError as exc:
            return DeliveryResult.failed(ErrorKind.PROVIDER_UNAVAILABLE, str(exc))

        if response.status_code in (401, 403):
            return DeliveryResult.failed(ErrorKind.AUTH_CONFIGURATION, f"Expo rejected access token ({response.status_code})")
        if response.status_code == 429:
            return DeliveryResult.failed(ErrorKind.RATE_LIMITED, "Expo rate limit exceeded")
        if response.status_code >= 500:
            return DeliveryResult.failed(ErrorKind.PROVIDER_UNAVAILABLE, f"Expo returned {response.status_code}")
        if response.status_code >= 400:
            return DeliveryResult.failed(ErrorKind.PROVIDER_ERROR, response.text[:200])

        return self._parse_ticket(response.json())

    @staticmethod
    def _parse_ticket(body: Dict[str, Any]) -> DeliveryResult:
        tickets = body.get("data")
        if isinstance(tickets, dict):
            tickets = [tickets]
        if not tickets:
            errors = body.get("errors") or []
            message = errors[0].get("message") if errors else "empty Expo response"
            return DeliveryResult.failed(ErrorKind.PROVIDER_ERROR, message)

        ticket = tickets[0]
        if ticket.get("status") == "ok":
            return DeliveryResult.ok()
        code = (ticket.get("details") or {}).get("error")
        kind = _EXPO_ERRORS.get(code, ErrorKind.PROVIDER_ERROR)
        return DeliveryResult.failed(kind, ticket.get("message") or code)

    async def aclose(self) -> None:
        await self._client.aclose()


class UnifiedSender:
    """Routes Expo-format tokens to Expo and everything else to FCM."""

    def __init__(self, expo=None, fcm=None) -> None:
        self._expo = expo or NoopSender("Expo push is not configured")
        self._fcm = fcm or NoopSender("FCM push is not configured")
        self.enabled = getattr(self._expo, "enabled", False) or getattr(self._fcm, "enabled", False)

    async def send(self, token: str, payload: PushPayload) -> DeliveryResult:
        sender = self._expo if is_expo_token(token) else self._fcm
        return await sender.send(token, payload)

    async def aclose(self) -> None:
        for sender in (self._expo, self._fcm):
            close = getattr(sender, "aclose", None)
            if close is not None:
                await close()


_sender = None


def build_sender(settings: Settings):
    fcm = None
    if settings.fcm_service_account_file and settings.fcm_project_id:
        try:
            fcm = FcmSender.from_settings(settings)
        except (OSError, ValueError, google_exceptions.GoogleAuthError) as exc:
            log.error("FCM service account %s is unusable: %s", settings.fcm_service_account_file, exc)
            fcm = NoopSender("FCM credentials invalid")
    else:
        log.warning("FCM credentials not set; FCM tokens will not receive notifications")
    # Expo accepts unauthenticated pushes unless enhanced security is enabled on the project
    expo = ExpoSender(
        access_token=settings.expo_access_token,
        url=settings.expo_push_url,
        timeout_seconds=settings.push_timeout_seconds,
    )
    return UnifiedSender(expo=expo, fcm=fcm)


def get_sender():
    global _sender
    if _sender is not None:
        return _sender
    _sender = build_sender(get_settings())
    return _sender


async def close_sender() -> None:
    global _sender
    if _sender is None:
        return
    sender, _sender = _sender, None
    await sender.aclose()
