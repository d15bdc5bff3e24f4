"""Tests for the migration recovery record."""

import pytest

from ec2_raid.core.recovery import RecoveryRecorder, RecoveryRecordError, read_recovery_record
from ec2_raid.models.array import RecordEntry


def entries(*pairs):
    return [RecordEntry(volume_id=v, device_path=d) for v, d in pairs]


@pytest.mark.asyncio
async def test_writes_one_line_per_volume(tmp_path):
    path = tmp_path / "record.dat"
    record = await RecoveryRecorder(path).write(
        "i-source", "h", entries(("vol-1", "/dev/sdh1"), ("vol-2", "/dev/sdh2"))
    )

    assert path.read_text() == "vol-1:/dev/sdh1\nvol-2:/dev/sdh2\n"
    assert record.path == str(path)
    assert record.instance_id == "i-source"
    assert len(record.entries) == 2


@pytest.mark.asyncio
async def test_appends_across_runs(tmp_path):
    path = tmp_path / "record.dat"
    recorder = RecoveryRecorder(path)

    await recorder.write("i-a", "h", entries(("vol-1", "/dev/sdh1")))
    await recorder.write("i-b", "k", entries(("vol-9", "/dev/sdk1")))

    assert [e.volume_id for e in read_recovery_record(path)] == ["vol-1", "vol-9"]


@pytest.mark.asyncio
async def test_creates_parent_directory(tmp_path):
    path = tmp_path / "nested" / "dir" / "record.dat"
    await RecoveryRecorder(path).write("i-a", "h", entries(("vol-1", "/dev/sdh1")))
    assert path.exists()


@pytest.mark.asyncio
async def test_unwritable_location_raises(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("")

    with pytest.raises(RecoveryRecordError, match="Could not write recovery record"):
        await RecoveryRecorder(blocker / "record.dat").write(
            "i-a", "h", entries(("vol-1", "/dev/sdh1"))
        )


def test_read_skips_blank_lines(tmp_path):
    path = tmp_path / "record.dat"
    path.write_text("vol-1:/dev/sdh1\n\nvol-2:/dev/sdh2\n")

    assert [e.device_path for e in read_recovery_record(path)] == ["/dev/sdh1", "/dev/sdh2"]


def test_malformed_line_rejected(tmp_path):
    path = tmp_path / "record.dat"
    path.write_text("vol-1 /dev/sdh1\n")

    with pytest.raises(ValueError, match="Malformed"):
        read_recovery_record(path)
