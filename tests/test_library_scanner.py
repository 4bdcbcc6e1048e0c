"""Tests for LibraryScanner."""

import json
import os
import threading
import time

import pytest
from conftest import CountingReader, write_mp3, write_wav

from music_shuffler.cli.display import scan_summary_line
from music_shuffler.core.cache import CacheStore
from music_shuffler.core.cache.schema import CACHE_SCHEMA_VERSION
from music_shuffler.core.scanner import LibraryScanner, ScanState
from music_shuffler.exceptions import ErrorKind, RootInaccessible, UnreadableMedia


@pytest.fixture
def store(tmp_path):
    """Cache store writing into a temporary directory."""
    return CacheStore(tmp_path / "cache")


def make_scanner(store, reader=None, **kwargs):
    """Create a scanner with a counting reader and a short poll interval."""
    kwargs.setdefault("poll_interval", 0.02)
    return LibraryScanner(store, reader=reader or CountingReader(), **kwargs)


def catalog_snapshot(result):
    """Order-independent view of a catalog."""
    return {entry.path: entry.metadata for entry in result.catalog}


class TestScanBasics:
    """Test full and incremental scans."""

    def test_first_scan_extracts_every_file(self, store, library, reader):
        """Test that a cold scan reads all files and saves the cache."""
        result = make_scanner(store, reader).scan(library)

        assert result.state is ScanState.DONE
        assert len(result.catalog) == 3
        assert reader.call_count == 3
        assert result.extracted == 3
        assert result.cache_hits == 0
        assert result.cache_saved is True
        assert store.cache_path(library).exists()

    def test_catalog_contents(self, store, library):
        """Test that catalog entries carry path, fingerprint and metadata."""
        result = make_scanner(store).scan(library)
        by_name = {entry.path.name: entry for entry in result.catalog}

        two = by_name["two.wav"]
        assert two.path == library / "Artist A" / "Album" / "two.wav"
        assert two.metadata.title == "two"
        assert two.metadata.duration_seconds == pytest.approx(2.0, abs=0.01)
        assert two.track.fingerprint.size == two.path.stat().st_size

    def test_unchanged_library_uses_cache_only(self, store, library):
        """Test that a rescan of an unchanged tree reads no files."""
        first = make_scanner(store).scan(library)
        reader = CountingReader()

        second = make_scanner(store, reader).scan(library)

        assert reader.call_count == 0
        assert second.cache_hits == 3
        assert catalog_snapshot(second) == catalog_snapshot(first)

    def test_new_scanner_instance_reuses_persisted_cache(self, tmp_path, library):
        """Test that the cache survives across store instances."""
        make_scanner(CacheStore(tmp_path / "cache")).scan(library)
        reader = CountingReader()

        make_scanner(CacheStore(tmp_path / "cache"), reader).scan(library)

        assert reader.call_count == 0

    def test_size_change_reextracts_only_that_file(self, store, library):
        """Test that rewriting one file re-reads just that file."""
        make_scanner(store).scan(library)
        changed = write_wav(library / "three.wav", seconds=3.0)
        reader = CountingReader()

        result = make_scanner(store, reader).scan(library)

        assert reader.calls == [changed]
        assert catalog_snapshot(result)[changed].duration_seconds == pytest.approx(
            3.0, abs=0.01
        )

    def test_mtime_change_reextracts(self, store, library):
        """Test that touching a file invalidates its cache entry."""
        make_scanner(store).scan(library)
        touched = library / "Artist A" / "one.wav"
        stat = touched.stat()
        os.utime(touched, ns=(stat.st_atime_ns, stat.st_mtime_ns + 1_000_000_000))
        reader = CountingReader()

        make_scanner(store, reader).scan(library)

        assert reader.calls == [touched]

    def test_new_file_is_added(self, store, library):
        """Test that a file added between scans is read and cataloged."""
        make_scanner(store).scan(library)
        added = write_wav(library / "new" / "four.wav")
        reader = CountingReader()

        result = make_scanner(store, reader).scan(library)

        assert reader.calls == [added]
        assert len(result.catalog) == 4

    def test_deleted_file_is_pruned(self, store, library):
        """Test that entries of deleted files leave catalog and cache."""
        make_scanner(store).scan(library)
        (library / "three.wav").unlink()

        result = make_scanner(store).scan(library)

        assert len(result.catalog) == 2
        assert result.pruned == 1
        cache = store.load(library)
        assert len(cache) == 2
        assert library / "three.wav" not in cache

    def test_empty_library(self, store, tmp_path):
        """Test that an empty root gives an empty catalog."""
        root = tmp_path / "empty"
        root.mkdir()

        result = make_scanner(store).scan(root)

        assert result.state is ScanState.DONE
        assert len(result.catalog) == 0
        assert result.diagnostics == []
        assert result.cache_saved is True
        assert store.cache_path(result.root).exists()

    def test_catalog_order_matches_discovery(self, store, library):
        """Test that catalog order is stable across cached rescans."""
        first = make_scanner(store).scan(library)
        second = make_scanner(store).scan(library)

        assert first.catalog.paths() == second.catalog.paths()

    def test_missing_root(self, store, tmp_path):
        """Test that a missing root aborts the scan."""
        with pytest.raises(RootInaccessible):
            make_scanner(store).scan(tmp_path / "missing")

    def test_scanner_state_after_scan(self, store, library):
        """Test that the scanner reports its final state."""
        scanner = make_scanner(store)
        assert scanner.state is ScanState.IDLE

        scanner.scan(library)

        assert scanner.state is ScanState.DONE


class TestScanFailures:
    """Test per-file failures and cache recovery."""

    def test_zero_byte_file_is_skipped(self, store, tmp_path):
        """Test that one empty file is reported while the rest succeed."""
        root = tmp_path / "music"
        for name in ("a", "b", "c"):
            write_mp3(root / f"{name}.mp3", title=name.upper())
        empty = root / "empty.mp3"
        empty.write_bytes(b"")

        result = make_scanner(store).scan(root)

        assert len(result.catalog) == 3
        assert result.skipped == 1
        diagnostic = result.diagnostics[0]
        assert diagnostic.path == empty.resolve()
        assert diagnostic.kind is ErrorKind.UNREADABLE_MEDIA
        assert scan_summary_line(result) == "scan completed with 1 files skipped"

    def test_library_where_every_file_fails_still_writes_cache(
        self, store, tmp_path
    ):
        """Test that cache_saved matches a cache file on disk."""
        root = tmp_path / "music"
        root.mkdir()
        (root / "empty.mp3").write_bytes(b"")

        result = make_scanner(store).scan(root)

        assert result.skipped == 1
        assert result.cache_saved is True
        assert store.cache_path(result.root).exists()
        assert len(store.load(result.root)) == 0

    def test_failed_file_is_not_cached(self, store, library):
        """Test that a failing file is retried on the next scan."""
        bad = library / "bad.flac"
        bad.write_text("not a flac file")
        make_scanner(store).scan(library)
        reader = CountingReader()

        result = make_scanner(store, reader).scan(library)

        assert reader.calls == [bad]
        assert bad not in store.load(library)
        assert result.diagnostics[0].kind is ErrorKind.UNSUPPORTED_CODEC

    def test_previously_good_file_that_breaks_is_dropped(self, store, library):
        """Test that a cached file that becomes unreadable leaves the cache."""
        make_scanner(store).scan(library)
        broken = library / "three.wav"
        broken.write_bytes(b"")

        result = make_scanner(store).scan(library)

        assert len(result.catalog) == 2
        assert broken not in store.load(library)

    def test_unexpected_reader_error_is_contained(self, store, library):
        """Test that an unexpected exception becomes a diagnostic."""

        class ExplodingReader(CountingReader):
            def extract(self, path):
                if path.name == "one.wav":
                    raise RuntimeError("boom")
                return super().extract(path)

        result = make_scanner(store, ExplodingReader()).scan(library)

        assert len(result.catalog) == 2
        assert result.diagnostics[0].kind is ErrorKind.CORRUPT_METADATA
        assert "boom" in result.diagnostics[0].message

    def test_old_schema_forces_rescan(self, store, library):
        """Test that a cache from an older schema is rebuilt."""
        path = store.cache_path(library)
        path.parent.mkdir(parents=True)
        path.write_text(
            json.dumps({"schema_version": 1, "entries": {}}), encoding="utf-8"
        )
        reader = CountingReader()

        result = make_scanner(store, reader).scan(library)

        assert reader.call_count == 3
        assert result.cold_start_reason == "cache schema version changed"
        document = json.loads(path.read_text(encoding="utf-8"))
        assert document["schema_version"] == CACHE_SCHEMA_VERSION
        assert len(document["entries"]) == 3

    def test_corrupt_cache_forces_rescan(self, store, library):
        """Test that a corrupt cache file is replaced after a full scan."""
        make_scanner(store).scan(library)
        path = store.cache_path(library)
        path.write_bytes(b"\x00\xffgarbage")
        reader = CountingReader()

        result = make_scanner(store, reader).scan(library)

        assert reader.call_count == 3
        assert len(result.catalog) == 3
        assert len(store.load(library)) == 3

    def test_corrupt_cache_on_empty_library_is_rewritten(self, store, tmp_path):
        """Test that a cold start rewrites the cache even with nothing to add."""
        root = (tmp_path / "empty").resolve()
        root.mkdir()
        path = store.cache_path(root)
        path.parent.mkdir(parents=True)
        path.write_text("{", encoding="utf-8")

        result = make_scanner(store).scan(root)

        assert result.cache_saved is True
        assert json.loads(path.read_text(encoding="utf-8"))["entries"] == {}

    def test_persist_failure_is_reported(self, tmp_path, library):
        """Test that a cache that cannot be written does not fail the scan."""
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")

        result = make_scanner(CacheStore(blocker / "cache")).scan(library)

        assert result.state is ScanState.DONE
        assert len(result.catalog) == 3
        assert result.cache_saved is False
        assert result.cache_error is not None


class TestCancellation:
    """Test cooperative cancellation."""

    def test_cancel_during_extraction(self, store, tmp_path):
        """Test that cancellation stops the scan and keeps finished work."""
        root = tmp_path / "music"
        for i in range(6):
            write_wav(root / f"track{i}.wav", seconds=0.1)

        class CancellingReader(CountingReader):
            scanner = None

            def extract(self, path):
                metadata = super().extract(path)
                self.scanner.cancel()
                return metadata

        reader = CancellingReader()
        scanner = make_scanner(store, reader, max_workers=1)
        reader.scanner = scanner

        result = scanner.scan(root)

        assert result.cancelled is True
        assert result.state is ScanState.ABORTED
        assert reader.call_count == 1
        assert len(result.catalog) == 1
        assert result.pruned == 0
        assert len(store.load(root.resolve())) == 1

        resumed = CountingReader()
        result = make_scanner(store, resumed).scan(root)

        assert result.state is ScanState.DONE
        assert resumed.call_count == 5
        assert len(result.catalog) == 6

    def test_cancel_flag_is_reset_per_scan(self, store, library):
        """Test that a stale cancellation does not abort the next scan."""
        scanner = make_scanner(store)
        scanner.cancel()

        result = scanner.scan(library)

        assert result.state is ScanState.DONE

    def test_cancel_from_progress_callback(self, store, library):
        """Test cancelling from another component while walking."""
        scanner = make_scanner(store)

        def on_progress(progress):
            if progress.state is ScanState.WALKING:
                scanner.cancel()

        result = scanner.scan(library, progress_callback=on_progress)

        assert result.cancelled is True
        assert len(result.catalog) == 0


class TestTimeouts:
    """Test the per-file soft deadline."""

    def test_stuck_file_is_abandoned(self, store, library):
        """Test that a hanging extraction is reported as unreadable."""
        release = threading.Event()

        class HangingReader(CountingReader):
            def extract(self, path):
                if path.name == "one.wav":
                    release.wait(10)
                return super().extract(path)

        scanner = make_scanner(
            store, HangingReader(), max_workers=2, file_timeout=0.2
        )
        try:
            result = scanner.scan(library)
        finally:
            release.set()

        assert result.state is ScanState.DONE
        assert len(result.catalog) == 2
        assert result.skipped == 1
        diagnostic = result.diagnostics[0]
        assert diagnostic.path.name == "one.wav"
        assert diagnostic.kind is UnreadableMedia.kind
        assert "timed out" in diagnostic.message

    def test_hung_file_frees_its_worker(self, store, tmp_path):
        """Test that a single worker moves on after abandoning a file."""
        root = tmp_path / "music"
        for name in ("a", "b", "c", "d"):
            write_wav(root / f"{name}.wav", seconds=0.1)
        release = threading.Event()

        class HangingReader(CountingReader):
            def extract(self, path):
                if path.name in ("a.wav", "b.wav"):
                    release.wait(10)
                return super().extract(path)

        scanner = make_scanner(store, HangingReader(), max_workers=1, file_timeout=0.2)
        started = time.monotonic()
        try:
            result = scanner.scan(root)
            elapsed = time.monotonic() - started
            hung = [
                thread
                for thread in threading.enumerate()
                if thread.name.startswith("metadata_") and thread.is_alive()
            ]
        finally:
            release.set()

        assert elapsed < 5
        assert result.state is ScanState.DONE
        assert sorted(p.name for p in result.catalog.paths()) == ["c.wav", "d.wav"]
        assert sorted(d.path.name for d in result.diagnostics) == ["a.wav", "b.wav"]
        # Abandoned workers must not keep the interpreter alive at exit
        assert hung
        assert all(thread.daemon for thread in hung)

    def test_late_result_of_abandoned_file_is_ignored(self, store, library):
        """Test that a file finishing after its deadline stays out of the cache."""
        release = threading.Event()

        class SlowReader(CountingReader):
            def extract(self, path):
                if path.name == "one.wav":
                    release.wait(10)
                return super().extract(path)

        scanner = make_scanner(store, SlowReader(), max_workers=1, file_timeout=0.2)
        result = scanner.scan(library)
        release.set()

        assert library / "Artist A" / "one.wav" not in store.load(library)
        assert len(result.catalog) == 2


class TestProgressEvents:
    """Test progress reporting during a scan."""

    def test_states_are_reported_in_order(self, store, library):
        """Test that every scan state is announced once, in order."""
        states = []

        def on_progress(progress):
            if not states or states[-1] is not progress.state:
                states.append(progress.state)

        make_scanner(store).scan(library, progress_callback=on_progress)

        assert states == [
            ScanState.WALKING,
            ScanState.EXTRACTING,
            ScanState.FINALIZING,
            ScanState.DONE,
        ]

    def test_final_event_counts_every_file(self, store, library):
        """Test that the last event reports all files handled."""
        events = []

        make_scanner(store).scan(library, progress_callback=events.append)

        assert events[-1].files_scanned == 3
        assert events[-1].files_total == 3
        assert events[-1].is_complete

    def test_failing_callback_does_not_break_scan(self, store, library):
        """Test that callback exceptions are contained."""

        def on_progress(progress):
            raise ValueError("display went away")

        result = make_scanner(store).scan(library, progress_callback=on_progress)

        assert len(result.catalog) == 3


class TestIncrementalSave:
    """Test periodic cache saves."""

    def test_save_interval_persists_during_scan(self, store, library):
        """Test that the cache is written while extracting."""
        saves = []
        original_save = store.save

        def counting_save(root, cache):
            saves.append(len(cache))
            return original_save(root, cache)

        store.save = counting_save

        make_scanner(store, max_workers=1, save_interval=1).scan(library)

        assert saves
        assert saves[-1] == 3
