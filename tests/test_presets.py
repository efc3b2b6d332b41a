"""Preset catalog and moderation."""
from tests.support import ApiTestCase


class PresetApiTest(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.admin = self.login_as("admin")

    def create(self, client, **overrides):
        payload = {
            "name": "Translator",
            "description": "Translates to English",
            "model": "gpt-5",
            "modelSettings": {"systemPrompt": "Translate everything to English", "temperature": 0.3},
        }
        payload.update(overrides)
        response = client.post("/api/presets", json=payload)
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()

    def test_admin_preset_is_published(self):
        preset = self.create(self.admin)

        self.assertEqual(preset["status"], "admin")
        self.assertEqual(preset["modelSettings"]["systemPrompt"], "Translate everything to English")
        self.assertEqual([p["id"] for p in self.client.get("/api/presets").json()], [preset["id"]])

    def test_user_preset_is_pending_even_if_status_is_sent(self):
        preset = self.create(self.client, status="approved")

        self.assertEqual(preset["status"], "pending")
        self.assertEqual(self.client.get("/api/presets").json(), [])

    def test_user_endpoint_alias(self):
        response = self.client.post("/api/presets/user", json={"name": "Coder"})
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["status"], "pending")
        self.assertIsNone(response.json()["modelSettings"]["systemPrompt"])

    def test_mine_lists_own_submissions(self):
        preset = self.create(self.client)
        self.create(self.admin)

        mine = self.client.get("/api/presets/mine").json()
        self.assertEqual([p["id"] for p in mine], [preset["id"]])

    def test_pending_queue_is_admin_only(self):
        preset = self.create(self.client)

        self.assertEqual(self.client.get("/api/presets/pending").status_code, 403)
        pending = self.admin.get("/api/presets/pending").json()
        self.assertEqual([p["id"] for p in pending], [preset["id"]])

    def test_approve_publishes_preset(self):
        preset = self.create(self.client)

        response = self.admin.patch(f"/api/presets/{preset['id']}/status", json={"status": "approved"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "approved")
        self.assertEqual([p["id"] for p in self.client.get("/api/presets").json()], [preset["id"]])
        self.assertEqual(self.admin.get("/api/presets/pending").json(), [])

    def test_reject_keeps_preset_out_of_catalog(self):
        preset = self.create(self.client)

        response = self.admin.patch(f"/api/presets/{preset['id']}/status", json={"status": "rejected"})

        self.assertEqual(response.json()["status"], "rejected")
        self.assertEqual(self.client.get("/api/presets").json(), [])
        self.assertEqual(self.client.get("/api/presets/mine").json()[0]["status"], "rejected")

    def test_only_pending_presets_can_be_moderated(self):
        preset = self.create(self.client)
        url = f"/api/presets/{preset['id']}/status"
        self.admin.patch(url, json={"status": "approved"})

        self.assertEqual(self.admin.patch(url, json={"status": "rejected"}).status_code, 409)

        admin_preset = self.create(self.admin)
        response = self.admin.patch(f"/api/presets/{admin_preset['id']}/status", json={"status": "approved"})
        self.assertEqual(response.status_code, 409)

    def test_moderation_rules(self):
        preset = self.create(self.client)
        url = f"/api/presets/{preset['id']}/status"

        self.assertEqual(self.client.patch(url, json={"status": "approved"}).status_code, 403)
        self.assertEqual(self.admin.patch(url, json={"status": "admin"}).status_code, 422)
        self.assertEqual(self.admin.patch("/api/presets/missing/status", json={"status": "approved"}).status_code, 404)

    def test_admin_can_edit_and_delete(self):
        preset = self.create(self.admin)
        url = f"/api/presets/{preset['id']}"

        response = self.admin.put(url, json={"name": "Polyglot", "modelSettings": {"topP": 0.9}})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["name"], "Polyglot")
        self.assertEqual(response.json()["description"], "Translates to English")
        self.assertEqual(response.json()["modelSettings"]["topP"], 0.9)
        self.assertIsNone(response.json()["modelSettings"]["systemPrompt"])

        self.assertEqual(self.admin.delete(url).status_code, 204)
        self.assertEqual(self.admin.get(url).status_code, 404)
        self.assertEqual(self.admin.delete(url).status_code, 404)

    def test_non_admin_cannot_edit_or_delete(self):
        preset = self.create(self.admin)
        url = f"/api/presets/{preset['id']}"

        self.assertEqual(self.client.put(url, json={"name": "Hijacked"}).status_code, 403)
        self.assertEqual(self.client.delete(url).status_code, 403)
        self.assertEqual(self.client.get(url).json()["name"], "Translator")
