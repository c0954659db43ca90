from __future__ import annotations

import threading
import time
import unittest

from lazyp4.fanout import BackgroundRunner, fan_out


class FanOutTests(unittest.TestCase):
    def test_sequential_by_default_on_calling_thread(self) -> None:
        threads: list[str] = []

        def work(item: int) -> int:
            threads.append(threading.current_thread().name)
            return item * 2

        self.assertEqual(fan_out([1, 2, 3], work), [2, 4, 6])
        self.assertEqual(set(threads), {threading.current_thread().name})

    def test_parallel_results_keep_input_order(self) -> None:
        def work(item: float) -> float:
            time.sleep(item)
            return item

        delays = [0.05, 0.0, 0.02, 0.01]
        self.assertEqual(fan_out(delays, work, max_workers=4), delays)

    def test_empty_input(self) -> None:
        self.assertEqual(fan_out([], lambda item: item, max_workers=4), [])

    def test_worker_exception_propagates(self) -> None:
        def work(item: int) -> int:
            raise ValueError(item)

        with self.assertRaises(ValueError):
            fan_out([1, 2], work, max_workers=2)


class BackgroundRunnerTests(unittest.TestCase):
    def test_runs_off_thread_and_can_restart_after_shutdown(self) -> None:
        runner = BackgroundRunner(thread_name_prefix="test-verb")
        try:
            name = runner.submit(lambda: threading.current_thread().name).result(timeout=5)
            self.assertTrue(name.startswith("test-verb"))
            runner.shutdown()
            self.assertEqual(runner.submit(lambda value: value + 1, 41).result(timeout=5), 42)
        finally:
            runner.shutdown()


if __name__ == "__main__":
    unittest.main()
