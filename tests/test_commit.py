"""
Tests for the CommitEngine
"""

import pytest

from keysort.commit import CommitEngine, CommitResult
from keysort.errors import CopyError
from keysort.pending import PendingMove, PendingMoveSet


class FakeCopier:
    """Copy collaborator that fails for chosen source paths"""

    def __init__(self, failing=()):
        self.failing = set(failing)
        self.calls = []

    def __call__(self, source_path, target_folder):
        self.calls.append((source_path, target_folder))
        if source_path in self.failing:
            raise CopyError("disk full")
        return f"{target_folder}/copied"


def make_pending(*names):
    pending = PendingMoveSet()
    for name in names:
        pending.upsert(PendingMove(f"/inbox/{name}", "/sorted/keep", name))
    return pending


class TestCommitEngine:
    """Test cases for CommitEngine"""

    def test_partial_failure_clears_everything(self):
        """Test 3 moves with #2 failing: 2 succeed, 1 fails, set emptied"""
        pending = make_pending("a.jpg", "b.jpg", "c.jpg")
        copier = FakeCopier(failing={"/inbox/b.jpg"})

        result = CommitEngine(copier).execute(pending)

        assert result.succeeded_count == 2
        assert result.failed_count == 1
        assert result.failed_entries == ['Failed to copy "b.jpg": disk full']
        assert result.overall_success
        assert result.partial
        assert len(pending) == 0

    def test_copies_run_in_order(self):
        """Test copies happen sequentially in pending order"""
        pending = make_pending("a.jpg", "b.jpg", "c.jpg")
        copier = FakeCopier(failing={"/inbox/a.jpg"})

        CommitEngine(copier).execute(pending)

        assert [src for src, _ in copier.calls] == ["/inbox/a.jpg", "/inbox/b.jpg", "/inbox/c.jpg"]

    def test_total_failure_keeps_pending(self):
        """Test nothing is cleared when every copy fails"""
        pending = make_pending("a.jpg", "b.jpg")
        before = pending.values()
        copier = FakeCopier(failing={"/inbox/a.jpg", "/inbox/b.jpg"})

        result = CommitEngine(copier).execute(pending)

        assert not result.overall_success
        assert result.succeeded_count == 0
        assert result.failed_count == 2
        assert result.message == "Failed to copy any files"
        assert result.details == (
            'Failed to copy "a.jpg": disk full\nFailed to copy "b.jpg": disk full'
        )
        assert pending.values() == before

    def test_all_success_summary(self):
        """Test the all-success summary has no details"""
        result = CommitEngine(FakeCopier()).execute(make_pending("a.jpg", "b.jpg"))

        assert result.message == "Successfully copied 2 files!"
        assert result.details is None
        assert result.failed_entries == []
        assert not result.partial

    def test_singular_messages(self):
        """Test one-file wording"""
        pending = make_pending("a.jpg", "b.jpg")
        result = CommitEngine(FakeCopier(failing={"/inbox/b.jpg"})).execute(pending)

        assert result.message == "Successfully copied 1 file!"
        assert result.details == "1 file failed to copy."

    def test_loop_failure_reports_all_failure(self):
        """Test an unexpected loop error becomes an all-failure result"""
        pending = make_pending("a.jpg", "b.jpg")
        engine = CommitEngine(FakeCopier())

        def broken_callback(done, total, label):
            raise RuntimeError("progress display crashed")

        engine.set_progress_callback(broken_callback)
        result = engine.execute(pending)

        assert not result.overall_success
        assert result.succeeded_count == 0
        assert result.message == "Copy operation failed"
        assert result.details == "progress display crashed"
        assert len(pending) == 2

    def test_progress_callback(self):
        """Test progress is reported after every move"""
        progress = []
        engine = CommitEngine(FakeCopier(failing={"/inbox/b.jpg"}))
        engine.set_progress_callback(lambda done, total, label: progress.append((done, total, label)))

        engine.commit(make_pending("a.jpg", "b.jpg").values())

        assert progress == [(1, 2, "a.jpg"), (2, 2, "b.jpg")]

    def test_progress_bar(self):
        """Test committing with the tqdm progress bar enabled"""
        result = CommitEngine(FakeCopier(), show_progress=True).commit(
            make_pending("a.jpg").values()
        )
        assert result.succeeded_count == 1

    def test_empty_commit(self):
        """Test committing nothing"""
        result = CommitEngine(FakeCopier()).commit([])

        assert result.succeeded_count == 0
        assert result.failed_count == 0
        assert result.message == "Nothing to copy"


class TestCommitResult:
    """Test cases for CommitResult"""

    def test_failed_text_for_clipboard(self):
        """Test failure descriptions export one per line"""
        result = CommitResult.summarize(1, ['Failed to copy "a": x', 'Failed to copy "b": y'])
        assert result.failed_text() == 'Failed to copy "a": x\nFailed to copy "b": y'

    def test_to_dict(self):
        """Test serialization"""
        data = CommitResult.summarize(3, []).to_dict()

        assert data["overall_success"] is True
        assert data["succeeded_count"] == 3
        assert data["failed_entries"] == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
