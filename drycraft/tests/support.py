"""
Shared fixtures for the API tests.
"""

import unittest

from fastapi.testclient import TestClient

from drycraft.app import create_app
from drycraft.db import InMemoryDbClient
from drycraft.dependencies import get_db_client

ORIGIN = "https://dry-craft.example"


class ApiTestCase(unittest.TestCase):
    def setUp(self):
        self.client = TestClient(create_app())
        self.db = get_db_client()
        if isinstance(self.db, InMemoryDbClient):
            self.db.reset()

    def register(self, username="alice", email=None, password="secret123"):
        response = self.client.post(
            "/api/auth/register",
            json={
                "username": username,
                "email": email or f"{username}@drycraft.io",
                "password": password,
            },
        )
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()

    @staticmethod
    def auth(session):
        return {"Authorization": f"Bearer {session['token']}"}
