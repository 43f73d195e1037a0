"""
Tests for the change-detection driver.

Uses an in-memory backend that feeds its "CLI output" through the
driver's relay, the same path real AWS CLI output takes.
"""

from pathlib import Path

import pytest

from s3sync.config.loader import SyncConfig
from s3sync.exceptions import HashingError, StorageCommandError
from s3sync.sync.driver import SyncDriver, run_sync
from s3sync.sync.relay import StreamRelay
from s3sync.sync.types import RemoteInventory, RemoteObject

EMPTY_MD5 = '"d41d8cd98f00b204e9800998ecf8427e"'
ZERO_TAG = '"00000000000000000000000000000000"'


class FakeBackend:
    """Records calls; sync/copy output goes through the relay."""

    def __init__(self, relay: StreamRelay, inventory=(), sync_lines=(), fail_sync=False):
        self.relay = relay
        self.inventory = RemoteInventory(tuple(RemoteObject(k, e) for k, e in inventory))
        self.sync_lines = list(sync_lines)
        self.fail_sync = fail_sync
        self.calls: list[tuple] = []

    def copies(self) -> list[tuple]:
        return [c for c in self.calls if c[0] == "cp"]

    async def sync_tree(self, local_dir: Path, bucket: str, *, dry_run: bool = False) -> None:
        self.calls.append(("sync", str(local_dir), bucket, dry_run))
        for line in self.sync_lines:
            self.relay.handle_line(line)
        if self.fail_sync:
            raise StorageCommandError("sync failed", command=["aws", "s3", "sync"], returncode=1)

    async def list_objects(self, bucket: str) -> RemoteInventory:
        self.calls.append(("list", bucket))
        return self.inventory

    async def copy_object(self, local_path: Path, destination: str, *, dry_run: bool = False) -> None:
        self.calls.append(("cp", str(local_path), destination, dry_run))
        self.relay.handle_line(f"upload: {local_path} to {destination}")


def make_driver(site_dir, tmp_path, *, base_url=None, dry_run=False, **backend_kwargs):
    config = SyncConfig(
        local_dir=site_dir,
        bucket="s3://mybucket",
        base_url=base_url,
        output_path=tmp_path / "urls.txt",
        dry_run=dry_run,
    )
    echoed: list[str] = []
    driver = SyncDriver(
        config,
        backend_factory=lambda relay: FakeBackend(relay, **backend_kwargs),
        echo=echoed.append,
    )
    return driver, echoed


class TestStateMachine:
    @pytest.mark.asyncio
    async def test_sync_then_list(self, site_dir, tmp_path):
        driver, _ = make_driver(site_dir, tmp_path)
        await driver.run()
        assert driver.backend.calls == [
            ("sync", str(site_dir), "s3://mybucket", False),
            ("list", "s3://mybucket"),
        ]

    @pytest.mark.asyncio
    async def test_dry_run_still_invokes_commands(self, site_dir, tmp_path):
        driver, _ = make_driver(site_dir, tmp_path, dry_run=True, inventory=[("b.txt", ZERO_TAG)])
        summary = await driver.run()
        assert driver.backend.calls[0] == ("sync", str(site_dir), "s3://mybucket", True)
        assert driver.backend.copies() == [("cp", str(site_dir / "b.txt"), "s3://mybucket/b.txt", True)]
        assert summary.dry_run is True

    @pytest.mark.asyncio
    async def test_sync_failure_aborts_before_listing(self, site_dir, tmp_path):
        driver, _ = make_driver(site_dir, tmp_path, fail_sync=True)
        with pytest.raises(StorageCommandError):
            await driver.run()
        assert [c[0] for c in driver.backend.calls] == ["sync"]

    @pytest.mark.asyncio
    async def test_objects_visited_in_listing_order(self, site_dir, tmp_path):
        (site_dir / "c.txt").write_text("c")
        inventory = [("c.txt", ZERO_TAG), ("b.txt", ZERO_TAG)]
        driver, _ = make_driver(site_dir, tmp_path, inventory=inventory)
        await driver.run()
        assert [c[2] for c in driver.backend.copies()] == ["s3://mybucket/c.txt", "s3://mybucket/b.txt"]


class TestChangeDetection:
    @pytest.mark.asyncio
    async def test_matching_digest_is_not_copied(self, site_dir, tmp_path):
        # a.txt is empty locally; its ETag is the empty-file MD5
        driver, _ = make_driver(site_dir, tmp_path, inventory=[("a.txt", EMPTY_MD5)])
        summary = await driver.run()
        assert driver.backend.copies() == []
        assert summary.unchanged == 1
        assert summary.copied == 0

    @pytest.mark.asyncio
    async def test_mismatched_digest_is_copied_once(self, site_dir, tmp_path):
        driver, _ = make_driver(site_dir, tmp_path, inventory=[("b.txt", ZERO_TAG)])
        summary = await driver.run()
        assert driver.backend.copies() == [("cp", str(site_dir / "b.txt"), "s3://mybucket/b.txt", False)]
        assert summary.copied == 1

    @pytest.mark.asyncio
    async def test_unquoted_etag_matches(self, site_dir, tmp_path):
        driver, _ = make_driver(site_dir, tmp_path, inventory=[("a.txt", EMPTY_MD5.strip('"'))])
        await driver.run()
        assert driver.backend.copies() == []

    @pytest.mark.asyncio
    async def test_missing_local_file_is_skipped(self, site_dir, tmp_path):
        inventory = [("gone.txt", ZERO_TAG), ("b.txt", ZERO_TAG)]
        driver, _ = make_driver(site_dir, tmp_path, inventory=inventory)
        summary = await driver.run()
        assert summary.skipped_missing == 1
        assert [c[2] for c in driver.backend.copies()] == ["s3://mybucket/b.txt"]

    @pytest.mark.asyncio
    async def test_unreadable_local_path_aborts(self, site_dir, tmp_path):
        (site_dir / "sub").mkdir()
        inventory = [("sub", ZERO_TAG), ("b.txt", ZERO_TAG)]
        driver, _ = make_driver(site_dir, tmp_path, inventory=inventory)
        with pytest.raises(HashingError):
            await driver.run()
        assert driver.backend.copies() == []

    @pytest.mark.asyncio
    async def test_leading_slash_key_stays_under_local_dir(self, site_dir, tmp_path):
        secret = tmp_path / "secret.txt"
        secret.write_text("outside the site")
        driver, _ = make_driver(site_dir, tmp_path, inventory=[(str(secret), ZERO_TAG)])
        summary = await driver.run()
        assert driver.backend.copies() == []
        assert summary.skipped_missing == 1

    @pytest.mark.asyncio
    async def test_leading_slash_key_resolves_inside_local_dir(self, site_dir, tmp_path):
        driver, _ = make_driver(site_dir, tmp_path, inventory=[("/b.txt", ZERO_TAG)])
        await driver.run()
        assert driver.backend.copies() == [("cp", str(site_dir / "b.txt"), "s3://mybucket/b.txt", False)]

    @pytest.mark.asyncio
    async def test_parent_directory_key_is_skipped(self, site_dir, tmp_path):
        (tmp_path / "secret.txt").write_text("outside the site")
        driver, _ = make_driver(site_dir, tmp_path, inventory=[("../secret.txt", ZERO_TAG)])
        summary = await driver.run()
        assert driver.backend.copies() == []
        assert summary.skipped_missing == 1

    @pytest.mark.asyncio
    async def test_folder_placeholder_keys_skipped(self, site_dir, tmp_path):
        (site_dir / "sub").mkdir()
        driver, _ = make_driver(site_dir, tmp_path, inventory=[("sub/", EMPTY_MD5)])
        summary = await driver.run()
        assert summary.checked == 0
        assert driver.backend.copies() == []

    @pytest.mark.asyncio
    async def test_nested_keys_resolve_under_local_dir(self, site_dir, tmp_path):
        (site_dir / "css").mkdir()
        (site_dir / "css" / "site.css").write_text("body {}")
        driver, _ = make_driver(site_dir, tmp_path, inventory=[("css/site.css", ZERO_TAG)])
        await driver.run()
        assert driver.backend.copies() == [
            ("cp", str(site_dir / "css" / "site.css"), "s3://mybucket/css/site.css", False)
        ]


class TestCopyTarget:
    """
    The per-object copy goes from the local file to the object's bucket URI,
    and an object already uploaded by this run's sync is not copied again.
    Older releases passed the local path as both copy source and destination
    and keyed the skip check on that local path, so they never uploaded here.
    """

    @pytest.mark.asyncio
    async def test_copy_targets_bucket_uri_not_local_path(self, site_dir, tmp_path):
        driver, _ = make_driver(site_dir, tmp_path, inventory=[("b.txt", ZERO_TAG)])
        await driver.run()
        (_, source, destination, _) = driver.backend.copies()[0]
        assert source == str(site_dir / "b.txt")
        assert destination == "s3://mybucket/b.txt"
        assert destination != source

    @pytest.mark.asyncio
    async def test_object_uploaded_by_sync_is_not_copied_again(self, site_dir, tmp_path):
        driver, _ = make_driver(
            site_dir,
            tmp_path,
            inventory=[("b.txt", ZERO_TAG)],
            sync_lines=[f"upload: {site_dir / 'b.txt'} to s3://mybucket/b.txt"],
        )
        summary = await driver.run()
        assert driver.backend.copies() == []
        assert summary.already_uploaded == 1

    @pytest.mark.asyncio
    async def test_same_key_listed_twice_copies_once(self, site_dir, tmp_path):
        driver, _ = make_driver(site_dir, tmp_path, inventory=[("b.txt", ZERO_TAG), ("b.txt", ZERO_TAG)])
        summary = await driver.run()
        assert len(driver.backend.copies()) == 1
        assert summary.copied == 1
        assert summary.already_uploaded == 1


class TestUrlOutput:
    @pytest.mark.asyncio
    async def test_index_document_becomes_base_url(self, site_dir, tmp_path):
        driver, echoed = make_driver(
            site_dir,
            tmp_path,
            base_url="https://example.com",
            sync_lines=["upload: ./www/index.html to s3://mybucket/index.html"],
        )
        summary = await driver.run()
        assert (tmp_path / "urls.txt").read_text() == "https://example.com/\n"
        assert echoed == ["upload: ./www/index.html to s3://mybucket/index.html"]
        assert summary.urls_written == 1

    @pytest.mark.asyncio
    async def test_duplicate_uri_gives_one_url_and_one_copy(self, site_dir, tmp_path):
        line = "upload: ./www/b.txt to s3://mybucket/b.txt"
        driver, echoed = make_driver(
            site_dir,
            tmp_path,
            base_url="https://example.com",
            sync_lines=[line, line],
            inventory=[("b.txt", ZERO_TAG)],
        )
        await driver.run()
        assert (tmp_path / "urls.txt").read_text() == "https://example.com/b.txt\n"
        assert driver.backend.copies() == []
        assert echoed == [line, line]

    @pytest.mark.asyncio
    async def test_copied_objects_are_listed(self, site_dir, tmp_path):
        driver, _ = make_driver(site_dir, tmp_path, base_url="https://example.com", inventory=[("b.txt", ZERO_TAG)])
        await driver.run()
        assert (tmp_path / "urls.txt").read_text() == "https://example.com/b.txt\n"

    @pytest.mark.asyncio
    async def test_previous_output_removed_when_nothing_changes(self, site_dir, tmp_path):
        output = tmp_path / "urls.txt"
        output.write_text("https://example.com/stale\n")
        driver, _ = make_driver(
            site_dir,
            tmp_path,
            base_url="https://example.com",
            sync_lines=["Nothing to do"],
            inventory=[("a.txt", EMPTY_MD5)],
        )
        await driver.run()
        assert not output.exists()

    @pytest.mark.asyncio
    async def test_no_base_url_writes_no_file(self, site_dir, tmp_path):
        driver, _ = make_driver(
            site_dir, tmp_path, sync_lines=["upload: ./www/index.html to s3://mybucket/index.html"]
        )
        summary = await driver.run()
        assert not (tmp_path / "urls.txt").exists()
        assert summary.urls_written == 0


class TestRunContext:
    @pytest.mark.asyncio
    async def test_each_driver_starts_with_empty_seen_set(self, site_dir, tmp_path):
        lines = ["upload: ./www/b.txt to s3://mybucket/b.txt"]
        first, _ = make_driver(site_dir, tmp_path, sync_lines=lines)
        await first.run()
        second, _ = make_driver(site_dir, tmp_path)
        assert first.context.seen_uris == {"s3://mybucket/b.txt"}
        assert second.context.seen_uris == set()


class TestRunSync:
    def test_blocking_wrapper_returns_summary(self, site_dir, tmp_path):
        config = SyncConfig(local_dir=site_dir, bucket="s3://mybucket", output_path=tmp_path / "urls.txt")
        summary = run_sync(
            config,
            backend_factory=lambda relay: FakeBackend(relay, inventory=[("b.txt", ZERO_TAG)]),
            echo=lambda line: None,
        )
        assert summary.copied == 1

    def test_blocking_wrapper_validates_config(self, tmp_path):
        from s3sync.exceptions import ConfigurationError

        config = SyncConfig(local_dir=tmp_path / "missing", bucket="s3://mybucket")
        with pytest.raises(ConfigurationError):
            run_sync(config, backend_factory=FakeBackend)
