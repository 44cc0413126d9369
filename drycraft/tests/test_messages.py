import time
import unittest

from drycraft.tests.support import ApiTestCase


class MessageTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.seller_session = self.register("seller")
        self.buyer_session = self.register("buyer")
        self.seller = self.seller_session["user"]["id"]
        self.buyer = self.buyer_session["user"]["id"]
        self.other = self.register("other")["user"]["id"]

    def _send(self, buyer, seller, content="Is this still available?"):
        response = self.client.post(
            "/api/messages",
            json={"buyerId": buyer, "sellerId": seller, "content": content},
        )
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()

    def test_send_sets_direction(self):
        message = self._send(self.buyer, self.seller)
        self.assertEqual(message["senderId"], self.buyer)
        self.assertEqual(message["receiverId"], self.seller)
        self.assertFalse(message["isRead"])
        self.assertIsNone(message["replyContent"])

    def test_blank_message_rejected(self):
        response = self.client.post(
            "/api/messages",
            json={"buyerId": self.buyer, "sellerId": self.seller, "content": ""},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.db.count("messages"), 0)

    def test_inbox_views(self):
        first = self._send(self.buyer, self.seller, "first")
        time.sleep(0.01)
        second = self._send(self.other, self.seller, "second")

        seller_view = self.client.get(f"/api/messages/seller/{self.seller}").json()
        self.assertEqual([m["id"] for m in seller_view], [second["id"], first["id"]])

        buyer_view = self.client.get(f"/api/messages/buyer/{self.buyer}").json()
        self.assertEqual([m["id"] for m in buyer_view], [first["id"]])

        merged = self.client.get("/api/messages", params={"userId": self.seller}).json()
        self.assertEqual(len(merged), 2)
        self.assertEqual(len(self.client.get("/api/messages").json()), 2)

    def test_read_and_unread(self):
        message = self._send(self.buyer, self.seller)
        unread = self.client.get(f"/api/messages/unread/{self.seller}").json()
        self.assertEqual([m["id"] for m in unread], [message["id"]])

        response = self.client.put(
            f"/api/messages/{message['id']}/read", headers=self.auth(self.seller_session)
        )
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["isRead"])
        self.assertEqual(self.client.get(f"/api/messages/unread/{self.seller}").json(), [])

        response = self.client.put(
            "/api/messages/missing/read", headers=self.auth(self.seller_session)
        )
        self.assertEqual(response.status_code, 404)

    def test_reply(self):
        message = self._send(self.buyer, self.seller)
        response = self.client.post(
            f"/api/messages/{message['id']}/reply",
            json={"replyContent": "  Yes, two left  "},
            headers=self.auth(self.seller_session),
        )
        self.assertEqual(response.status_code, 200)
        replied = response.json()
        self.assertEqual(replied["replyContent"], "Yes, two left")
        self.assertIsNotNone(replied["replyAt"])
        self.assertTrue(replied["isRead"])

    def test_blank_reply_rejected(self):
        message = self._send(self.buyer, self.seller)
        response = self.client.post(
            f"/api/messages/{message['id']}/reply",
            json={"replyContent": "   "},
            headers=self.auth(self.seller_session),
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("Reply content cannot be empty", response.json()["error"])
        self.assertIsNone(self.db.get("messages", message["id"])["replyContent"])

    def test_only_receiver_can_read_or_reply(self):
        message = self._send(self.buyer, self.seller)
        url = f"/api/messages/{message['id']}"

        self.assertEqual(self.client.put(f"{url}/read").status_code, 403)
        response = self.client.put(f"{url}/read", headers=self.auth(self.buyer_session))
        self.assertEqual(response.status_code, 403)
        response = self.client.post(
            f"{url}/reply",
            json={"replyContent": "sure"},
            headers=self.auth(self.buyer_session),
        )
        self.assertEqual(response.status_code, 403)

        stored = self.db.get("messages", message["id"])
        self.assertFalse(stored["isRead"])
        self.assertIsNone(stored["replyContent"])

    def test_whitespace_message_rejected(self):
        response = self.client.post(
            "/api/messages",
            json={"buyerId": self.buyer, "sellerId": self.seller, "content": "   "},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.db.count("messages"), 0)

    def test_conversations_keep_latest_per_partner(self):
        self._send(self.buyer, self.seller, "old")
        time.sleep(0.01)
        self._send(self.other, self.seller, "hello")
        time.sleep(0.01)
        self._send(self.buyer, self.seller, "new")

        conversations = self.client.get(
            f"/api/messages/conversations/{self.seller}"
        ).json()
        self.assertEqual([c["content"] for c in conversations], ["new", "hello"])


if __name__ == "__main__":
    unittest.main()
