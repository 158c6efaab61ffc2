import unittest

from changelog_i18n.translation.scheduler import make_batches, run_in_batches

from fakes import SleepRecorder


class MakeBatchesTests(unittest.TestCase):
    def test_split(self):
        self.assertEqual(make_batches([1, 2, 3, 4, 5], 2), [[1, 2], [3, 4], [5]])
        self.assertEqual(make_batches([], 3), [])

    def test_batch_size_must_be_positive(self):
        with self.assertRaises(ValueError):
            make_batches([1], 0)


class RunInBatchesTests(unittest.IsolatedAsyncioTestCase):
    async def test_results_in_order_with_delay_between_batches(self):
        sleep = SleepRecorder()

        async def double(value):
            return value * 2

        batches = await run_in_batches([1, 2, 3, 4, 5], double, batch_size=2, delay=0.5, sleep=sleep)
        self.assertEqual([batch.results for batch in batches], [[2, 4], [6, 8], [10]])
        self.assertEqual(sleep.delays, [0.5, 0.5])

    async def test_failed_batch_does_not_stop_later_batches(self):
        async def worker(value):
            if value == 2:
                raise ValueError("bad item")
            return value

        batches = await run_in_batches([1, 2, 3], worker, batch_size=2, sleep=SleepRecorder())
        self.assertTrue(batches[0].failed)
        self.assertEqual(batches[0].items, [1, 2])
        self.assertEqual(batches[0].results, [])
        self.assertFalse(batches[1].failed)
        self.assertEqual(batches[1].results, [3])

    async def test_reraise_aborts_the_run(self):
        async def worker(value):
            raise OSError("disk full")

        with self.assertRaises(OSError):
            await run_in_batches([1, 2, 3], worker, batch_size=1, reraise=(OSError,), sleep=SleepRecorder())

    async def test_zero_delay_never_sleeps(self):
        sleep = SleepRecorder()

        async def identity(value):
            return value

        await run_in_batches([1, 2, 3], identity, batch_size=1, delay=0, sleep=sleep)
        self.assertEqual(sleep.delays, [])


if __name__ == "__main__":
    unittest.main()
