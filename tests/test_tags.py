import asyncio
from pathlib import Path
from types import SimpleNamespace

import pytest

from frick.errors import ScanFailed
from frick.settings import settings
from frick.tags import FileTag
from frick.utils import paths
from frick.utils.paths import TAG_FILE_NAME


def test_write_then_scan_reads_exact_payload(tmp_path):
    tag = FileTag(tmp_path / "usb" / "tag.txt", timeout=1, poll_interval=0.01)

    assert asyncio.run(tag.write("FRICK!!")) is True
    assert (tmp_path / "usb" / "tag.txt").read_text() == "FRICK!!"
    assert asyncio.run(tag.scan()) == "FRICK!!"


def test_scan_times_out_without_tag(tmp_path):
    tag = FileTag(tmp_path / "tag.txt", timeout=0.05, poll_interval=0.01)
    with pytest.raises(ScanFailed):
        asyncio.run(tag.scan())


def test_scan_waits_for_tag_to_appear(tmp_path):
    path = tmp_path / "tag.txt"
    tag = FileTag(path, timeout=2, poll_interval=0.01)

    async def run():
        async def present():
            await asyncio.sleep(0.05)
            path.write_text("WRONG")

        presenter = asyncio.create_task(present())
        payload = await tag.scan()
        await presenter
        return payload

    assert asyncio.run(run()) == "WRONG"


def test_write_failure_returns_false(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")
    tag = FileTag(blocker / "tag.txt")

    assert asyncio.run(tag.write("FRICK!!")) is False


def partitions(*mounts, opts="rw"):
    return [
        SimpleNamespace(device=f"/dev/sd{i}", mountpoint=str(m), fstype="vfat", opts=opts)
        for i, m in enumerate(mounts)
    ]


def test_tag_on_removable_drive_is_found(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "data_dir", tmp_path / "data")
    drive = tmp_path / "drive"
    drive.mkdir()
    (drive / TAG_FILE_NAME).write_text("FRICK!!")
    monkeypatch.setattr(
        paths.psutil, "disk_partitions", lambda all=False: partitions(drive, opts="rw,removable")
    )

    tag = FileTag(timeout=1, poll_interval=0.01)
    assert tag.find() == drive / TAG_FILE_NAME
    assert asyncio.run(tag.scan()) == "FRICK!!"


def test_explicit_path_ignores_removable_drives(tmp_path, monkeypatch):
    drive = tmp_path / "drive"
    drive.mkdir()
    (drive / TAG_FILE_NAME).write_text("FRICK!!")
    monkeypatch.setattr(
        paths.psutil, "disk_partitions", lambda all=False: partitions(drive, opts="rw,removable")
    )

    tag = FileTag(tmp_path / "tag.txt", timeout=0.05, poll_interval=0.01)
    assert tag.find() is None


def test_only_removable_mounts_are_searched(monkeypatch):
    monkeypatch.setattr(
        paths.psutil,
        "disk_partitions",
        lambda all=False: partitions("/", "/media/alex/USB", "/home"),
    )
    assert paths.tag_locations(Path("/data/tag.txt")) == [
        Path("/data/tag.txt"),
        Path("/media/alex/USB") / TAG_FILE_NAME,
    ]


def test_partition_listing_failure_falls_back_to_default(monkeypatch):
    def broken(all=False):
        raise OSError("no /proc")

    monkeypatch.setattr(paths.psutil, "disk_partitions", broken)
    assert paths.tag_locations(Path("/data/tag.txt")) == [Path("/data/tag.txt")]
