import tempfile
import unittest
from datetime import timedelta
from pathlib import Path
from unittest.mock import patch

from changelog_i18n.core.cache import TranslationCacheStore
from changelog_i18n.translation.client import TranslationClient
from changelog_i18n.translation.orchestrator import CacheOrchestrator, format_hit_rate

from fakes import FakeAIService, FakeClient, FakeClock, SleepRecorder, tag


class CacheOrchestratorTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        self.clock = FakeClock()
        self.store = TranslationCacheStore(
            cache_dir=Path(self.tmpdir.name),
            max_age=timedelta(days=7),
            clock=self.clock,
        )
        self.client = FakeClient()
        self.sleep = SleepRecorder()
        self.orchestrator = CacheOrchestrator(
            self.store, self.client, batch_size=5, batch_delay=1.0, sleep=self.sleep
        )

    async def test_misses_are_translated_in_batches(self):
        texts = [f"Change number {i}" for i in range(7)]
        result = await self.orchestrator.translate_texts(texts, ["ko"])

        self.assertEqual(result.translations, [{"ko": tag(text, "ko")} for text in texts])
        self.assertEqual(len(self.client.calls), 7)
        self.assertEqual(self.client.max_active, 5)
        # two batches, one delay between them
        self.assertEqual(self.sleep.delays, [1.0])
        self.assertEqual(result.stats.cache_misses, 7)
        self.assertEqual(result.stats.cache_hit_rate, "0.0%")
        self.assertEqual(result.errors, [])

    async def test_no_delay_after_single_batch(self):
        await self.orchestrator.translate_texts(["Only one change"], ["ko"])
        self.assertEqual(self.sleep.delays, [])

    async def test_second_call_is_served_from_cache(self):
        texts = ["First change", "Second change"]
        await self.orchestrator.translate_texts(texts, ["ko", "ja"])
        self.client.calls.clear()

        result = await self.orchestrator.translate_texts(texts, ["ko", "ja"])
        self.assertEqual(self.client.calls, [])
        self.assertEqual(result.stats.cache_hits, 2)
        self.assertEqual(result.stats.cache_hit_rate, "100.0%")
        self.assertEqual(result.translations[1], {"ko": tag("Second change", "ko"), "ja": tag("Second change", "ja")})

    async def test_hits_and_misses_keep_input_order(self):
        self.store.set("Cached change", {"ko": "캐시"})
        result = await self.orchestrator.translate_texts(["Fresh change", "Cached change"], ["ko"])
        self.assertEqual(result.translations, [{"ko": tag("Fresh change", "ko")}, {"ko": "캐시"}])
        self.assertEqual(result.stats.cache_hit_rate, "50.0%")

    async def test_results_are_persisted_with_one_write(self):
        with patch.object(self.store, "set_batch", wraps=self.store.set_batch) as set_batch:
            await self.orchestrator.translate_texts([f"Change number {i}" for i in range(7)], ["ko"])
        self.assertEqual(set_batch.call_count, 1)
        self.assertEqual(self.store.get("Change number 6").translations, {"ko": tag("Change number 6", "ko")})

    async def test_failed_batch_falls_back_and_continues(self):
        self.client.fail_texts = {"Change number 1"}
        texts = [f"Change number {i}" for i in range(7)]
        result = await self.orchestrator.translate_texts(texts, ["ko"])

        for text, translations in zip(texts[:5], result.translations[:5]):
            self.assertEqual(translations, {"ko": text})
        for text, translations in zip(texts[5:], result.translations[5:]):
            self.assertEqual(translations, {"ko": tag(text, "ko")})
        self.assertEqual(len(result.errors), 1)
        self.assertIn("Batch 1", result.errors[0])
        # the fallback is cached as well
        self.assertEqual(self.store.get("Change number 0").translations, {"ko": "Change number 0"})

    async def test_partial_language_hit_is_a_miss_and_merges(self):
        self.store.set("Shared change", {"ko": "공유"})
        result = await self.orchestrator.translate_texts(["Shared change"], ["ko", "ja"])
        self.assertEqual(result.stats.cache_misses, 1)
        self.assertEqual(self.client.calls, [("Shared change", ["ko", "ja"])])
        stored = self.store.get("Shared change").translations
        self.assertEqual(stored, {"ko": tag("Shared change", "ko"), "ja": tag("Shared change", "ja")})

    async def test_subset_of_cached_languages_is_a_hit(self):
        self.store.set("Shared change", {"ko": "공유", "ja": "共有"})
        result = await self.orchestrator.translate_texts(["Shared change"], ["ja"])
        self.assertEqual(result.translations, [{"ja": "共有"}])
        self.assertEqual(self.client.calls, [])

    async def test_expired_entries_are_retranslated(self):
        await self.orchestrator.translate_texts(["Old change"], ["ko"])
        self.clock.advance(days=8)
        self.client.calls.clear()
        result = await self.orchestrator.translate_texts(["Old change"], ["ko"])
        self.assertEqual(result.stats.cache_misses, 1)
        self.assertEqual(len(self.client.calls), 1)

    async def test_hash_collision_is_retranslated(self):
        with patch("changelog_i18n.core.cache.generate_text_hash", return_value="f" * 16):
            await self.orchestrator.translate_texts(["alpha change"], ["ko"])
            result = await self.orchestrator.translate_texts(["beta change"], ["ko"])
        self.assertEqual(result.translations, [{"ko": tag("beta change", "ko")}])
        self.assertEqual(result.stats.cache_misses, 1)

    async def test_empty_request(self):
        result = await self.orchestrator.translate_texts([], ["ko"])
        self.assertEqual(result.translations, [])
        self.assertEqual(result.stats.cache_hit_rate, "0%")
        self.assertFalse(self.store.cache_file.exists())

    async def test_translate_single(self):
        first = await self.orchestrator.translate_single("Single change", ["es"])
        second = await self.orchestrator.translate_single("Single change", ["es"])
        self.assertFalse(first.cached)
        self.assertTrue(second.cached)
        self.assertEqual(second.translations, {"es": tag("Single change", "es")})
        self.assertEqual(second.original_text, "Single change")

    async def test_translate_changes(self):
        previous = {"title": "Old title", "notes": ["Fixed login"], "version": "0.48"}
        current = {"title": "New title", "notes": ["Fixed login", "Faster search"], "version": "0.49"}
        result = await self.orchestrator.translate_changes(current, previous, ["ko"])
        self.assertEqual(result.translations, {
            "title": {"ko": tag("New title", "ko")},
            "notes[0]": {"ko": tag("Fixed login", "ko")},
            "notes[1]": {"ko": tag("Faster search", "ko")},
        })
        self.assertEqual(result.stats.total_requested, 3)

    async def test_translate_changes_without_changes(self):
        snapshot = {"title": "Same title"}
        result = await self.orchestrator.translate_changes(snapshot, snapshot, ["ko"])
        self.assertEqual(result.translations, {})
        self.assertEqual(result.stats.cache_hit_rate, "0%")

    async def test_translate_changes_cleans_expired_first(self):
        self.store.set("Stale text", {"ko": "A"})
        self.clock.advance(days=8)
        await self.orchestrator.translate_changes({"title": "Fresh title"}, None, ["ko"])
        self.assertEqual(self.store.stats().total_entries, 1)

    def test_cache_info(self):
        info = self.orchestrator.cache_info()
        self.assertEqual(info["maxAge"], 7 * 24 * 60 * 60 * 1000)
        self.assertEqual(info["maxAgeDisplay"], "7 days")
        self.assertEqual(info["cacheFileName"], "translations.json")
        self.assertEqual(info["totalEntries"], 0)

    async def test_with_real_client(self):
        ai = FakeAIService(fail_texts={"Broken change"})
        orchestrator = CacheOrchestrator(self.store, TranslationClient(ai), sleep=self.sleep)
        result = await orchestrator.translate_texts(["Broken change", "Working change"], ["ko"])
        self.assertEqual(result.translations, [{"ko": "Broken change"}, {"ko": tag("Working change", "ko")}])
        self.assertEqual(result.errors, [])


class HitRateTests(unittest.TestCase):
    def test_format(self):
        self.assertEqual(format_hit_rate(0, 0), "0%")
        self.assertEqual(format_hit_rate(1, 3), "33.3%")
        self.assertEqual(format_hit_rate(2, 2), "100.0%")


if __name__ == "__main__":
    unittest.main()
