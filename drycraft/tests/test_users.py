import unittest

from drycraft.tests.support import ApiTestCase


class UserDirectoryTests(ApiTestCase):
    def test_list_users_hides_password_hash(self):
        self.register("alice")
        self.register("bob")
        response = self.client.get("/api/users")
        self.assertEqual(response.status_code, 200)
        users = response.json()
        self.assertEqual({u["username"] for u in users}, {"alice", "bob"})
        self.assertNotIn("passwordHash", response.text)

    def test_create_user_directly(self):
        response = self.client.post(
            "/api/users",
            json={"username": "carol", "email": "carol@drycraft.io", "password": "pw"},
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["username"], "carol")
        self.assertNotIn("passwordHash", response.json())

        again = self.client.post(
            "/api/users",
            json={"username": "carol", "email": "c2@drycraft.io", "password": "pw"},
        )
        self.assertEqual(again.status_code, 400)
        self.assertEqual(self.db.count("users"), 1)

    def test_get_user_and_missing_user(self):
        alice = self.register("alice")
        response = self.client.get(f"/api/users/{alice['user']['id']}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["username"], "alice")

        self.assertEqual(self.client.get("/api/users/nope").status_code, 404)

    def test_profile_edit_is_limited_to_self(self):
        alice = self.register("alice")
        bob = self.register("bob")
        alice_id = alice["user"]["id"]

        response = self.client.put(
            f"/api/users/{alice_id}",
            json={"bio": "I fold paper", "firstName": "Alice"},
            headers=self.auth(alice),
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["bio"], "I fold paper")
        self.assertEqual(response.json()["firstName"], "Alice")

        response = self.client.put(
            f"/api/users/{alice_id}", json={"bio": "hacked"}, headers=self.auth(bob)
        )
        self.assertEqual(response.status_code, 403)
        self.assertEqual(self.db.get("users", alice_id)["bio"], "I fold paper")


class FollowGraphTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.alice_session = self.register("alice")
        self.bob_session = self.register("bob")
        self.alice = self.alice_session["user"]
        self.bob = self.bob_session["user"]

    def _follow(self, target, session, action="follow", body=None):
        return self.client.post(
            f"/api/users/{target['id']}/{action}",
            json=body if body is not None else {"followerId": session["user"]["id"]},
            headers=self.auth(session),
        )

    def test_follow_and_unfollow(self):
        response = self._follow(self.alice, self.bob_session)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["followers"], [self.bob["id"]])
        self.assertEqual(
            self.db.get("users", self.bob["id"])["following"], [self.alice["id"]]
        )

        # Following twice keeps a single edge.
        self._follow(self.alice, self.bob_session)
        followers = self.client.get(f"/api/users/{self.alice['id']}/followers").json()
        self.assertEqual([f["username"] for f in followers], ["bob"])

        response = self._follow(self.alice, self.bob_session, action="unfollow")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["followers"], [])
        self.assertEqual(self.db.get("users", self.bob["id"])["following"], [])

    def test_follower_defaults_to_caller(self):
        response = self.client.post(
            f"/api/users/{self.alice['id']}/follow", headers=self.auth(self.bob_session)
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["followers"], [self.bob["id"]])

    def test_follow_requires_session(self):
        response = self.client.post(
            f"/api/users/{self.alice['id']}/follow", json={"followerId": self.bob["id"]}
        )
        self.assertEqual(response.status_code, 403)
        self.assertEqual(self.db.get("users", self.alice["id"])["followers"], [])

    def test_cannot_follow_on_behalf_of_someone_else(self):
        carol = self.register("carol")
        response = self._follow(
            self.alice, carol, body={"followerId": self.bob["id"]}
        )
        self.assertEqual(response.status_code, 403)
        self.assertEqual(self.db.get("users", self.alice["id"])["followers"], [])
        self.assertEqual(self.db.get("users", self.bob["id"])["following"], [])

    def test_follow_notifies_once(self):
        for _ in range(2):
            self._follow(self.alice, self.bob_session)
        unread = self.client.get(
            "/api/notifications/unread", params={"userId": self.alice["id"]}
        ).json()
        self.assertEqual(len(unread), 1)
        self.assertEqual(unread[0]["type"], "FOLLOW")
        self.assertEqual(unread[0]["senderId"], self.bob["id"])

    def test_follow_validation(self):
        response = self._follow(self.alice, self.alice_session)
        self.assertEqual(response.status_code, 400)

        response = self.client.post(
            "/api/users/ghost/follow", headers=self.auth(self.bob_session)
        )
        self.assertEqual(response.status_code, 404)

    def test_suggestions_skip_self_and_followed(self):
        carol = self.register("carol")["user"]
        self._follow(carol, self.alice_session)
        response = self.client.get(
            "/api/users/suggestions", params={"userId": self.alice["id"]}
        )
        self.assertEqual(response.status_code, 200)
        suggestions = response.json()
        self.assertEqual([s["username"] for s in suggestions], ["bob"])
        self.assertEqual(suggestions[0]["followers"], 0)

        everyone = self.client.get("/api/users/suggestions").json()
        self.assertEqual(len(everyone), 3)


if __name__ == "__main__":
    unittest.main()
