import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from changelog_i18n.core.cache import TranslationCacheStore
from changelog_i18n.translation.entries import EntryTranslator
from changelog_i18n.translation.orchestrator import CacheOrchestrator

from fakes import FakeClient, SleepRecorder, make_entry, tag


class EntryTranslatorTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        self.store = TranslationCacheStore(cache_dir=Path(self.tmpdir.name))
        self.client = FakeClient()
        self.sleep = SleepRecorder()
        self.orchestrator = CacheOrchestrator(self.store, self.client, batch_delay=0, sleep=self.sleep)
        self.translator = EntryTranslator(
            self.orchestrator,
            content_max_length=20,
            max_sections=2,
            entry_batch_size=2,
            batch_delay=1.0,
            sleep=self.sleep,
        )

    async def test_translate_entry_fields(self):
        entry = make_entry(
            "1.0",
            title="Background Agent",
            content="A" * 25,
            sections=["First part", "Second part", "Third part"],
        )
        translated = await self.translator.translate_entry(entry, "ko")

        self.assertEqual(translated.title, tag("Background Agent", "ko"))
        self.assertEqual(translated.content, tag("A" * 20 + "...", "ko"))
        self.assertEqual(
            [section.title for section in translated.sections],
            [tag("First part", "ko"), tag("Second part", "ko"), "Third part"],
        )
        # the source entry is untouched
        self.assertEqual(entry.title, "Background Agent")
        self.assertEqual(translated.version, entry.version)

    async def test_blank_fields_are_left_alone(self):
        entry = make_entry("1.0", title="Background Agent", content="   ")
        translated = await self.translator.translate_entry(entry, "ja")
        self.assertEqual(translated.content, "   ")
        self.assertEqual(self.client.calls, [("Background Agent", ["ja"])])

    async def test_failure_returns_original_entry(self):
        entry = make_entry("1.0", title="Background Agent")
        with patch.object(self.orchestrator, "translate_texts", side_effect=RuntimeError("boom")):
            translated = await self.translator.translate_entry(entry, "ko")
        self.assertIs(translated, entry)

    async def test_translate_entry_languages(self):
        entry = make_entry("1.0", title="Background Agent", content="Short text", sections=["First part"])
        per_language = await self.translator.translate_entry_languages(entry, ["ko", "es"])
        self.assertEqual(per_language["es"]["title"], tag("Background Agent", "es"))
        self.assertEqual(per_language["ko"]["content"], tag("Short text", "ko"))
        self.assertEqual(per_language["ko"]["sections"][0]["title"], tag("First part", "ko"))
        self.assertEqual(self.client.calls[0][1], ["ko", "es"])

    async def test_translate_entry_languages_failure(self):
        entry = make_entry("1.0", title="Background Agent")
        with patch.object(self.orchestrator, "translate_texts", side_effect=RuntimeError("boom")):
            per_language = await self.translator.translate_entry_languages(entry, ["ko", "ja"])
        self.assertEqual(per_language, {"ko": {}, "ja": {}})

    async def test_cache_write_failure_propagates(self):
        entry = make_entry("1.0", title="Background Agent")
        with patch.object(self.store, "save", side_effect=OSError("disk full")):
            with self.assertRaises(OSError):
                await self.translator.translate_entries_languages([entry], ["ko"])

    async def test_cache_write_failure_propagates_from_single_language(self):
        entry = make_entry("1.0", title="Background Agent")
        with patch.object(self.store, "save", side_effect=OSError("disk full")):
            with self.assertRaises(OSError):
                await self.translator.translate_entry(entry, "ko")
            with self.assertRaises(OSError):
                await self.translator.translate_entries([entry], "ko")

    async def test_translate_entries_in_batches(self):
        entries = [make_entry(f"0.{i}", title=f"Release title {i}") for i in range(5)]
        translated = await self.translator.translate_entries(entries, "ko")
        self.assertEqual([entry.title for entry in translated], [tag(f"Release title {i}", "ko") for i in range(5)])
        # three entry batches, two pauses
        self.assertEqual(self.sleep.delays, [1.0, 1.0])

    async def test_translate_entries_languages(self):
        entries = [make_entry("0.1", title="Release title one"), make_entry("0.2", title="Release title two")]
        result = await self.translator.translate_entries_languages(entries, ["ko", "ja"])
        self.assertEqual(set(result.translations), {"0.1", "0.2"})
        self.assertEqual(result.translations["0.2"]["ja"]["title"], tag("Release title two", "ja"))
        self.assertEqual(result.errors, [])


if __name__ == "__main__":
    unittest.main()
