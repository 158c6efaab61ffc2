import copy
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from changelog_i18n.config import DEFAULT_CONFIG
from changelog_i18n.web import create_app

from fakes import FakeAIService, StaticSource, make_entry, tag

TOKEN = "sync-secret"


def make_test_config(cache_dir):
    config = copy.deepcopy(DEFAULT_CONFIG)
    config["cache"]["cache_dir"] = str(cache_dir)
    config["sync"]["token"] = TOKEN
    config["translation"]["batch_delay_seconds"] = 0
    config["changelog"]["dates_per_page"] = 2
    return config


class WebRoutesTestCase(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        self.source = StaticSource([
            make_entry("1.0", date="June 4, 2025", title="Background Agent launch", sections=["Memories"]),
            make_entry("0.50", date="May 15, 2025", title="Simpler pricing"),
            make_entry("0.49", date="April 15, 2025", title="Rules generation"),
            make_entry("0.49.1", version="0.49.1", date="April 15, 2025", title="Rules patch"),
        ])
        self.ai = FakeAIService()
        self.app = create_app(
            make_test_config(Path(self.tmpdir.name) / "cache"),
            source=self.source,
            ai_service=self.ai,
            base_dir=Path(self.tmpdir.name),
        )
        self.client = self.app.test_client()

    def auth(self, token=TOKEN):
        return {"Authorization": f"Bearer {token}"}


class HealthTests(WebRoutesTestCase):
    def test_health(self):
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), {"status": "ok"})

    def test_unknown_route_is_json_404(self):
        response = self.client.get("/api/nothing-here")
        self.assertEqual(response.status_code, 404)
        self.assertFalse(response.get_json()["success"])


class ChangelogRouteTests(WebRoutesTestCase):
    def test_untranslated_entries(self):
        response = self.client.get("/api/changelog")
        self.assertEqual(response.status_code, 200)
        body = response.get_json()
        self.assertTrue(body["success"])
        self.assertEqual(len(body["data"]["entries"]), 4)
        self.assertEqual(body["data"]["metadata"]["language"], "en")
        self.assertIn("max-age=1800", response.headers["Cache-Control"])
        self.assertEqual(response.headers["Access-Control-Allow-Origin"], "*")
        self.assertEqual(self.ai.prompts, [])

    def test_translated_entries(self):
        response = self.client.get("/api/changelog?lang=ko&limit=1")
        body = response.get_json()
        entry = body["data"]["entries"][0]
        self.assertEqual(entry["title"], tag("Background Agent launch", "ko"))
        self.assertEqual(entry["sections"][0]["title"], tag("Memories", "ko"))
        self.assertEqual(entry["version"], "1.0")
        self.assertEqual(body["data"]["metadata"]["language"], "ko")
        self.assertEqual(body["data"]["metadata"]["limit"], 1)

    def test_second_query_hits_translation_cache(self):
        self.client.get("/api/changelog?lang=ja")
        prompts = len(self.ai.prompts)
        self.client.get("/api/changelog?lang=ja")
        self.assertEqual(len(self.ai.prompts), prompts)
        self.assertEqual(self.source.calls, 1)

    def test_unsupported_language(self):
        response = self.client.get("/api/changelog?lang=fr")
        self.assertEqual(response.status_code, 400)
        body = response.get_json()
        self.assertEqual(body["error"], "Unsupported language")
        self.assertIn("ko", body["supportedLanguages"])

    def test_version_filter(self):
        body = self.client.get("/api/changelog?version=0.50").get_json()
        self.assertEqual([entry["id"] for entry in body["data"]["entries"]], ["0.50"])

        response = self.client.get("/api/changelog?version=9.9")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.get_json()["error"], "Version not found")

    def test_limit_outside_range_is_ignored(self):
        for limit in ("0", "500", "abc"):
            body = self.client.get(f"/api/changelog?limit={limit}").get_json()
            self.assertEqual(len(body["data"]["entries"]), 4)

    def test_source_failure_without_snapshot(self):
        self.source.error = RuntimeError("crawler down")
        response = self.client.get("/api/changelog")
        self.assertEqual(response.status_code, 500)
        self.assertFalse(response.get_json()["success"])


class PaginatedRouteTests(WebRoutesTestCase):
    def test_date_pages(self):
        body = self.client.get("/api/changelog/paginated").get_json()
        self.assertEqual(body["data"]["dates"], [
            {"date": "June 4, 2025", "count": 1},
            {"date": "May 15, 2025", "count": 1},
        ])
        self.assertEqual(body["data"]["pagination"]["totalPages"], 2)
        self.assertTrue(body["data"]["pagination"]["hasNext"])
        self.assertFalse(body["data"]["pagination"]["hasPrev"])

        body = self.client.get("/api/changelog/paginated?page=1").get_json()
        self.assertEqual(body["data"]["dates"], [{"date": "April 15, 2025", "count": 2}])
        self.assertFalse(body["data"]["pagination"]["hasNext"])

    def test_negative_page_is_clamped(self):
        body = self.client.get("/api/changelog/paginated?page=-3").get_json()
        self.assertEqual(body["data"]["pagination"]["currentPage"], 0)

    def test_single_date(self):
        body = self.client.get("/api/changelog/paginated", query_string={"date": "May 15, 2025", "lang": "es"}).get_json()
        pagination = body["data"]["pagination"]
        self.assertEqual(body["data"]["entries"][0]["title"], tag("Simpler pricing", "es"))
        self.assertEqual(pagination["currentDateIndex"], 1)
        self.assertEqual(pagination["nextDate"], "June 4, 2025")
        self.assertEqual(pagination["prevDate"], "April 15, 2025")
        self.assertTrue(pagination["hasNext"])
        self.assertTrue(pagination["hasPrev"])

    def test_unknown_date(self):
        body = self.client.get("/api/changelog/paginated", query_string={"date": "January 1, 2020"}).get_json()
        self.assertEqual(body["data"]["entries"], [])
        self.assertEqual(body["data"]["pagination"]["totalPages"], 0)


class SyncRouteTests(WebRoutesTestCase):
    def test_requires_token(self):
        self.assertEqual(self.client.post("/api/sync", json={}).status_code, 401)
        self.assertEqual(self.client.post("/api/sync", json={}, headers=self.auth("wrong")).status_code, 401)
        self.assertEqual(self.client.get("/api/sync").status_code, 401)

    def test_sync_then_throttle_then_force(self):
        response = self.client.post("/api/sync", json={"languages": ["ko"]}, headers=self.auth())
        self.assertEqual(response.status_code, 200)
        body = response.get_json()
        self.assertTrue(body["success"])
        self.assertEqual(body["newEntries"], 4)
        self.assertEqual(body["translatedLanguages"], ["ko"])
        self.assertNotIn("errors", body)

        response = self.client.post("/api/sync", json={"languages": ["ko"]}, headers=self.auth())
        self.assertEqual(response.status_code, 429)
        self.assertEqual(response.get_json()["message"], "Sync skipped - too recent")

        response = self.client.post("/api/sync", json={"languages": ["ko"], "force": True}, headers=self.auth())
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["newEntries"], 0)

    def test_invalid_languages(self):
        response = self.client.post("/api/sync", json={"languages": ["fr", "de"]}, headers=self.auth())
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["error"], "Invalid languages")

    def test_failed_sync_is_500(self):
        self.source.error = RuntimeError("crawler down")
        response = self.client.post("/api/sync", json={"languages": ["ko"]}, headers=self.auth())
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.get_json()["errors"], ["Sync failed: crawler down"])

    def test_status(self):
        self.client.post("/api/sync", json={"languages": ["ja"]}, headers=self.auth())
        body = self.client.get("/api/sync", headers=self.auth()).get_json()
        self.assertEqual(body["totalEntries"], 4)
        self.assertEqual(body["translatedEntries"], 4)
        self.assertIsNotNone(body["lastSync"])
        self.assertIn("es", body["supportedLanguages"])


class CacheRouteTests(WebRoutesTestCase):
    def test_info_clean_and_clear(self):
        self.client.get("/api/changelog?lang=ko&limit=1")

        body = self.client.get("/api/cache").get_json()
        self.assertTrue(body["success"])
        self.assertEqual(body["data"]["totalEntries"], 2)
        self.assertEqual(body["data"]["maxAgeDisplay"], "7 days")

        self.assertEqual(self.client.post("/api/cache/clean").get_json(), {"success": True, "removed": 0})

        response = self.client.delete("/api/cache")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.client.get("/api/cache").get_json()["data"]["totalEntries"], 0)

class CacheWriteFailureRouteTests(WebRoutesTestCase):
    def test_translated_query_fails_when_cache_cannot_be_written(self):
        store = self.app.extensions["changelog_i18n"].store
        with patch.object(store, "save", side_effect=OSError("disk full")):
            response = self.client.get("/api/changelog?lang=ko&limit=1")
            self.assertEqual(response.status_code, 500)
            self.assertFalse(response.get_json()["success"])

            response = self.client.get(
                "/api/changelog/paginated", query_string={"date": "May 15, 2025", "lang": "ko"}
            )
            self.assertEqual(response.status_code, 500)


class ConfiguredLanguagesTests(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        config = make_test_config(Path(self.tmpdir.name) / "cache")
        config["translation"]["target_languages"] = ["es", "zh"]
        self.app = create_app(
            config,
            source=StaticSource([make_entry("1.0", title="Background Agent launch")]),
            ai_service=FakeAIService(),
            base_dir=Path(self.tmpdir.name),
        )
        self.client = self.app.test_client()

    def test_sync_defaults_to_configured_languages(self):
        response = self.client.post("/api/sync", json={}, headers={"Authorization": f"Bearer {TOKEN}"})
        self.assertEqual(response.status_code, 200)
        body = response.get_json()
        self.assertEqual(body["translatedLanguages"], ["es", "zh"])
        self.assertEqual(set(body["languageStatus"]), {"es", "zh"})


class ProviderValidationTests(unittest.TestCase):
    def test_placeholder_key_is_reported_at_startup(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            config = make_test_config(Path(tmpdir) / "cache")
            with self.assertLogs("changelog_i18n.web.services", level="WARNING") as logs:
                create_app(config, source=StaticSource([]), base_dir=Path(tmpdir))
        self.assertIn("API key not configured", "\n".join(logs.output))

    def test_configured_provider_is_not_reported(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            config = make_test_config(Path(tmpdir) / "cache")
            config["openai"]["api_key"] = "sk-test"
            with patch("changelog_i18n.web.services.logger") as logger:
                create_app(config, source=StaticSource([]), base_dir=Path(tmpdir))
        logger.warning.assert_not_called()



if __name__ == "__main__":
    unittest.main()
