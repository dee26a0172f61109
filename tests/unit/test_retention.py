"""
Tests for the retention sweeper
"""
import asyncio
import os
import time

import pytest

from api.services.retention import RetentionSweeper


def age(path, seconds):
    stamp = time.time() - seconds
    os.utime(path, (stamp, stamp))


class TestRetentionSweeper:
    """Test age-based removal."""

    @pytest.mark.unit
    def test_removes_only_old_entries(self, tmp_path):
        uploads = tmp_path / "uploads"
        output = tmp_path / "output"
        uploads.mkdir()
        output.mkdir()

        old_upload = uploads / "old.mp4"
        fresh_output = output / "fresh.mp4"
        old_output = output / "old_boomerang.mp4"
        for path in (old_upload, fresh_output, old_output):
            path.write_bytes(b"x")
        age(old_upload, 7200)
        age(old_output, 3700)

        sweeper = RetentionSweeper([uploads, output], max_age=3600, interval=1800)
        removed = sweeper.sweep_once()

        assert set(removed) == {old_upload, old_output}
        assert fresh_output.exists()

    @pytest.mark.unit
    def test_missing_directory_is_skipped(self, tmp_path):
        sweeper = RetentionSweeper([tmp_path / "absent"], max_age=1, interval=1)
        assert sweeper.sweep_once() == []

    @pytest.mark.unit
    def test_explicit_clock(self, tmp_path):
        path = tmp_path / "a.mp4"
        path.write_bytes(b"x")
        sweeper = RetentionSweeper([tmp_path], max_age=60, interval=1)
        assert sweeper.sweep_once(now=time.time()) == []
        assert sweeper.sweep_once(now=time.time() + 120) == [path]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_start_and_stop(self, tmp_path):
        path = tmp_path / "old.mp4"
        path.write_bytes(b"x")
        age(path, 100)

        sweeper = RetentionSweeper([tmp_path], max_age=10, interval=0.01)
        sweeper.start()
        for _ in range(100):
            if not path.exists():
                break
            await asyncio.sleep(0.01)
        await sweeper.stop()

        assert not path.exists()
