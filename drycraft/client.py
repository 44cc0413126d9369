"""
HTTP client for the Dry Craft API.

Mirrors how the web frontend talks to the service: JSON calls with a bearer
token, server error messages surfaced to the caller, fixed-interval polling
for unread messages and notifications, and media transfers that get a
shorter timeout plus bounded retries with exponential backoff.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30  # seconds
MEDIA_TIMEOUT = 10  # seconds
MEDIA_MAX_RETRIES = 3
MEDIA_BACKOFF_SECONDS = 1.0
POLL_INTERVAL_SECONDS = 60.0

GENERIC_ERROR_MESSAGE = "Something went wrong. Please try again."


class ApiError(Exception):
    """A failed API call; ``message`` is the server's when it sent one."""

    def __init__(self, status_code: Optional[int], message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"{status_code}: {message}" if status_code else message)


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return GENERIC_ERROR_MESSAGE
    if isinstance(body, dict):
        return body.get("error") or body.get("message") or GENERIC_ERROR_MESSAGE
    return GENERIC_ERROR_MESSAGE


def build_media_session() -> requests.Session:
    """Session whose transfers retry connection failures and 5xx responses."""
    retry = Retry(
        total=MEDIA_MAX_RETRIES,
        backoff_factor=MEDIA_BACKOFF_SECONDS,
        status_forcelist=(500, 502, 503, 504),
        allowed_methods=frozenset({"GET", "PUT"}),
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    session = requests.Session()
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


class Poller:
    """
    Runs ``task`` every ``interval`` seconds on a daemon thread.

    The owner calls ``stop()`` (or leaves the ``with`` block) when the view
    that needs the updates goes away. A failing task is logged and retried on
    the next tick.
    """

    def __init__(
        self,
        task: Callable[[], Any],
        interval: float = POLL_INTERVAL_SECONDS,
        *,
        name: str = "poller",
        run_immediately: bool = True,
    ):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.task = task
        self.interval = interval
        self.name = name
        self.run_immediately = run_immediately
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> "Poller":
        if self.running:
            return self
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()
        return self

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    def __enter__(self) -> "Poller":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def _run(self) -> None:
        if self.run_immediately:
            self._tick()
        while not self._stop.wait(self.interval):
            self._tick()

    def _tick(self) -> None:
        try:
            self.task()
        except Exception:
            logger.exception("Polling task %s failed", self.name)


class DryCraftClient:
    def __init__(
        self,
        base_url: str,
        *,
        token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        media_session: Optional[requests.Session] = None,
        timeout: float = REQUEST_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.session = session or requests.Session()
        self.media_session = media_session or build_media_session()
        self.timeout = timeout

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[dict] = None,
        params: Optional[dict] = None,
    ) -> Any:
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        try:
            response = self.session.request(
                method,
                f"{self.base_url}{path}",
                json=json,
                params=params,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise ApiError(None, GENERIC_ERROR_MESSAGE) from exc
        if not response.ok:
            raise ApiError(response.status_code, _error_message(response))
        return response.json() if response.content else None

    # Auth

    def login(self, username: str, password: str) -> dict:
        result = self._request(
            "POST", "/auth/login", json={"username": username, "password": password}
        )
        self.token = result["token"]
        return result["user"]

    def register(self, username: str, email: str, password: str) -> dict:
        result = self._request(
            "POST",
            "/auth/register",
            json={"username": username, "email": email, "password": password},
        )
        self.token = result["token"]
        return result["user"]

    # Feed, marketplace, tutorials

    def list_posts(self) -> list[dict]:
        return self._request("GET", "/posts")

    def create_post(
        self, content: str, image_urls: Optional[list[str]] = None, video_url: Optional[str] = None
    ) -> dict:
        return self._request(
            "POST",
            "/posts",
            json={"content": content, "imageUrls": image_urls or [], "videoUrl": video_url},
        )

    def list_products(self, category: Optional[str] = None) -> list[dict]:
        params = {"category": category} if category else None
        return self._request("GET", "/products", params=params)

    def list_tutorials(self, craft_type: Optional[str] = None) -> list[dict]:
        params = {"craftType": craft_type} if craft_type else None
        return self._request("GET", "/tutorials", params=params)

    def create_tutorial(self, **fields: Any) -> dict:
        return self._request("POST", "/tutorials", json=fields)

    def tutorial_progress(self, tutorial_id: str) -> dict:
        return self._request("GET", f"/tutorials/{tutorial_id}/progress")

    def toggle_tutorial_step(self, tutorial_id: str, step_index: int) -> dict:
        return self._request(
            "POST", f"/tutorials/{tutorial_id}/progress", json={"stepIndex": step_index}
        )

    # Messages and notifications

    def unread_messages(self, seller_id: str) -> list[dict]:
        return self._request("GET", f"/messages/unread/{seller_id}")

    def mark_message_read(self, message_id: str) -> dict:
        return self._request("PUT", f"/messages/{message_id}/read")

    def reply_to_message(self, message_id: str, reply_content: str) -> dict:
        return self._request(
            "POST", f"/messages/{message_id}/reply", json={"replyContent": reply_content}
        )

    def unread_notifications(self, user_id: str) -> list[dict]:
        return self._request("GET", "/notifications/unread", params={"userId": user_id})

    def poll_unread_messages(
        self,
        seller_id: str,
        on_update: Callable[[list[dict]], Any],
        interval: float = POLL_INTERVAL_SECONDS,
    ) -> Poller:
        """Return a started poller; the caller owns stopping it."""
        return Poller(
            lambda: on_update(self.unread_messages(seller_id)),
            interval,
            name=f"unread-messages-{seller_id}",
        ).start()

    def poll_notifications(
        self,
        user_id: str,
        on_update: Callable[[list[dict]], Any],
        interval: float = POLL_INTERVAL_SECONDS,
    ) -> Poller:
        return Poller(
            lambda: on_update(self.unread_notifications(user_id)),
            interval,
            name=f"notifications-{user_id}",
        ).start()

    # Media

    def fetch_media(self, url: str) -> bytes:
        if url.startswith("/"):
            url = f"{self.base_url}{url}"
        try:
            response = self.media_session.get(url, timeout=MEDIA_TIMEOUT)
        except requests.RequestException as exc:
            logger.warning("Media fetch %s failed after retries: %s", url, exc)
            raise ApiError(None, GENERIC_ERROR_MESSAGE) from exc
        if not response.ok:
            raise ApiError(response.status_code, _error_message(response))
        return response.content

    def upload_media(self, filename: str, content: bytes, content_type: str) -> dict:
        """Sign an upload, PUT the bytes to storage and return the signed paths."""
        signed = self._request(
            "POST",
            "/media/uploads",
            json={"filename": filename, "contentType": content_type, "size": len(content)},
        )
        try:
            response = self.media_session.put(
                signed["uploadUrl"],
                data=content,
                headers={"Content-Type": content_type},
                timeout=MEDIA_TIMEOUT,
            )
        except requests.RequestException as exc:
            logger.warning("Upload of %s failed after retries: %s", filename, exc)
            raise ApiError(None, GENERIC_ERROR_MESSAGE) from exc
        if not response.ok:
            raise ApiError(response.status_code, GENERIC_ERROR_MESSAGE)
        return signed
