import threading
import unittest
from unittest import mock

import requests

from drycraft.client import (
    GENERIC_ERROR_MESSAGE,
    MEDIA_BACKOFF_SECONDS,
    MEDIA_MAX_RETRIES,
    MEDIA_TIMEOUT,
    REQUEST_TIMEOUT,
    ApiError,
    DryCraftClient,
    Poller,
    build_media_session,
)


def _response(status_code=200, payload=None, content=b"{}"):
    response = mock.Mock(spec=requests.Response)
    response.status_code = status_code
    response.ok = status_code < 400
    response.content = content
    if isinstance(payload, Exception):
        response.json.side_effect = payload
    else:
        response.json.return_value = payload
    return response


class DryCraftClientTests(unittest.TestCase):
    def setUp(self):
        self.session = mock.Mock(spec=requests.Session)
        self.media = mock.Mock(spec=requests.Session)
        self.client = DryCraftClient(
            "http://api.test/api/", session=self.session, media_session=self.media
        )

    def test_login_stores_token_for_later_calls(self):
        self.session.request.return_value = _response(
            payload={"token": "t0k", "user": {"id": "1", "username": "alice"}}
        )
        user = self.client.login("alice", "secret")
        self.assertEqual(user["username"], "alice")
        self.assertEqual(self.client.token, "t0k")

        self.session.request.return_value = _response(payload=[])
        self.client.list_posts()
        _, kwargs = self.session.request.call_args
        self.assertEqual(kwargs["headers"], {"Authorization": "Bearer t0k"})
        self.assertEqual(kwargs["timeout"], REQUEST_TIMEOUT)
        self.assertEqual(
            self.session.request.call_args[0], ("GET", "http://api.test/api/posts")
        )

    def test_server_error_message_is_surfaced(self):
        self.session.request.return_value = _response(
            403, payload={"error": "You can only delete your own products"}
        )
        with self.assertRaises(ApiError) as ctx:
            self.client.list_products()
        self.assertEqual(ctx.exception.status_code, 403)
        self.assertEqual(ctx.exception.message, "You can only delete your own products")

    def test_unparseable_error_gets_generic_message(self):
        self.session.request.return_value = _response(502, payload=ValueError("html"))
        with self.assertRaises(ApiError) as ctx:
            self.client.list_tutorials("Pottery")
        self.assertEqual(ctx.exception.message, GENERIC_ERROR_MESSAGE)
        _, kwargs = self.session.request.call_args
        self.assertEqual(kwargs["params"], {"craftType": "Pottery"})

    def test_network_failure_gets_generic_message(self):
        self.session.request.side_effect = requests.ConnectionError("refused")
        with self.assertRaises(ApiError) as ctx:
            self.client.unread_notifications("u1")
        self.assertIsNone(ctx.exception.status_code)
        self.assertEqual(ctx.exception.message, GENERIC_ERROR_MESSAGE)

    def test_toggle_tutorial_step_posts_the_index(self):
        self.client.token = "t0k"
        self.session.request.return_value = _response(
            payload={"completedSteps": [2], "isCompleted": False}
        )
        progress = self.client.toggle_tutorial_step("tut-1", 2)
        self.assertEqual(progress["completedSteps"], [2])
        args, kwargs = self.session.request.call_args
        self.assertEqual(args, ("POST", "http://api.test/api/tutorials/tut-1/progress"))
        self.assertEqual(kwargs["json"], {"stepIndex": 2})
        self.assertEqual(kwargs["headers"], {"Authorization": "Bearer t0k"})

    def test_upload_media_signs_then_puts(self):
        signed = {
            "path": "media/u1/image/abc.png",
            "uploadUrl": "https://bucket/put",
            "downloadUrl": "https://bucket/get",
            "mediaType": "image",
        }
        self.session.request.return_value = _response(201, payload=signed)
        self.media.put.return_value = _response(200, content=b"")

        result = self.client.upload_media("a.png", b"\x89PNG", "image/png")

        self.assertEqual(result, signed)
        _, kwargs = self.session.request.call_args
        self.assertEqual(
            kwargs["json"], {"filename": "a.png", "contentType": "image/png", "size": 4}
        )
        self.media.put.assert_called_once_with(
            "https://bucket/put",
            data=b"\x89PNG",
            headers={"Content-Type": "image/png"},
            timeout=MEDIA_TIMEOUT,
        )

    def test_fetch_media_resolves_relative_urls(self):
        self.media.get.return_value = _response(200, content=b"bytes")
        self.assertEqual(self.client.fetch_media("/media/x.png"), b"bytes")
        self.media.get.assert_called_once_with(
            "http://api.test/api/media/x.png", timeout=MEDIA_TIMEOUT
        )

    def test_fetch_media_gives_up_with_generic_error(self):
        self.media.get.side_effect = requests.ConnectionError("gone")
        with self.assertRaises(ApiError) as ctx:
            self.client.fetch_media("https://bucket/x.png")
        self.assertEqual(ctx.exception.message, GENERIC_ERROR_MESSAGE)


class MediaSessionTests(unittest.TestCase):
    def test_retry_policy(self):
        session = build_media_session()
        retry = session.get_adapter("https://bucket.test").max_retries
        self.assertEqual(retry.total, MEDIA_MAX_RETRIES)
        self.assertEqual(retry.backoff_factor, MEDIA_BACKOFF_SECONDS)
        self.assertIn(503, retry.status_forcelist)
        self.assertIn("PUT", retry.allowed_methods)


class PollerTests(unittest.TestCase):
    def test_runs_until_stopped(self):
        calls = []
        ticked = threading.Event()

        def task():
            calls.append(1)
            if len(calls) >= 3:
                ticked.set()

        poller = Poller(task, interval=0.01, name="test").start()
        self.assertTrue(ticked.wait(2))
        poller.stop(timeout=1)
        self.assertFalse(poller.running)

        count = len(calls)
        ticked.clear()
        self.assertFalse(ticked.wait(0.05))
        self.assertEqual(len(calls), count)

    def test_failing_task_keeps_polling(self):
        attempts = []
        recovered = threading.Event()

        def task():
            attempts.append(1)
            if len(attempts) == 1:
                raise RuntimeError("offline")
            recovered.set()

        with self.assertLogs("drycraft.client", level="ERROR"):
            with Poller(task, interval=0.01, name="flaky"):
                self.assertTrue(recovered.wait(2))

    def test_client_poller_delivers_updates(self):
        session = mock.Mock(spec=requests.Session)
        session.request.return_value = _response(payload=[{"id": "m1"}])
        client = DryCraftClient("http://api.test/api", session=session, media_session=session)
        received = threading.Event()
        updates = []

        def on_update(messages):
            updates.append(messages)
            received.set()

        poller = client.poll_unread_messages("seller-1", on_update, interval=60)
        try:
            self.assertTrue(received.wait(2))
        finally:
            poller.stop(timeout=1)
        self.assertEqual(updates[0], [{"id": "m1"}])
        self.assertEqual(
            session.request.call_args[0],
            ("GET", "http://api.test/api/messages/unread/seller-1"),
        )

    def test_interval_must_be_positive(self):
        with self.assertRaises(ValueError):
            Poller(lambda: None, interval=0)


if __name__ == "__main__":
    unittest.main()
