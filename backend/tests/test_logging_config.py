"""
Tests for logging setup.
"""
import logging

from nirapod_map.logging_config import PACKAGE_LOGGER, get_logger, setup_logging


class TestLoggingConfig:

    def test_setup_is_idempotent(self):
        root = logging.getLogger()
        before = len(root.handlers)
        setup_logging("INFO")
        after_first = len(root.handlers)
        setup_logging("INFO")

        assert after_first <= before + 1
        assert len(root.handlers) == after_first

    def test_package_level_and_quiet_libraries(self):
        setup_logging("WARNING", package_level="DEBUG")

        assert logging.getLogger(PACKAGE_LOGGER).level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.WARNING
        assert get_logger("nirapod_map.latest").getEffectiveLevel() == logging.DEBUG

        logging.getLogger(PACKAGE_LOGGER).setLevel(logging.NOTSET)

    def test_supersession_is_logged(self, caplog):
        import asyncio
        from nirapod_map.latest import LatestWins

        async def scenario():
            stream = LatestWins("probe")
            gate = asyncio.get_running_loop().create_future()

            async def slow():
                return await gate

            async def fast():
                return 1

            task = asyncio.create_task(stream.run(slow))
            await asyncio.sleep(0)
            await stream.run(fast)
            gate.set_result(0)
            return await task

        with caplog.at_level(logging.DEBUG, logger="nirapod_map.latest"):
            outcome = asyncio.run(scenario())

        assert not outcome.current
        assert "discarding stale response #1" in caplog.text
