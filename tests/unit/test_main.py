from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from invoice_ingest.errors import ErrorCode
from invoice_ingest.main import main, parse_args
from invoice_ingest.upload.models import UploadStatus
from invoice_ingest.upload.progress import calculate_bulk_progress
from invoice_ingest.worker.worker import BatchSummary, JobOutcome


def _summary(*statuses: UploadStatus) -> BatchSummary:
    outcomes = tuple(
        JobOutcome(
            job_id=str(i),
            file_name=f"f{i}.pdf",
            status=status,
            invoice_id="inv" if status is UploadStatus.COMPLETED else None,
            error_code=None if status is UploadStatus.COMPLETED else ErrorCode.AI_INVALID_FILE,
        )
        for i, status in enumerate(statuses)
    )
    return BatchSummary(progress=calculate_bulk_progress([]), outcomes=outcomes)


class TestParseArgs:
    def test_user_and_files(self) -> None:
        args = parse_args(["--user-id", "u1", "a.pdf", "b.png"])
        assert args.user_id == "u1"
        assert args.files == ["a.pdf", "b.png"]

    def test_requires_files(self) -> None:
        with pytest.raises(SystemExit):
            parse_args(["--user-id", "u1"])


class TestMain:
    @patch("invoice_ingest.main.close_pool")
    @patch("invoice_ingest.main.init_pool")
    @patch("invoice_ingest.main.run_batch", new_callable=MagicMock)
    def test_memory_backend_skips_pool(
        self,
        mock_run_batch: MagicMock,
        mock_init_pool: MagicMock,
        mock_close_pool: MagicMock,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("PERSISTENCE_BACKEND", "memory")

        async def fake_run_batch(*_args: object) -> BatchSummary:
            return _summary(UploadStatus.COMPLETED)

        mock_run_batch.side_effect = fake_run_batch

        assert main(["--user-id", "u1", "a.pdf"]) == 0
        mock_init_pool.assert_not_called()
        mock_close_pool.assert_not_called()
        assert mock_run_batch.call_args.args[1:] == ("u1", ["a.pdf"])

    @patch("invoice_ingest.main.close_pool")
    @patch("invoice_ingest.main.init_pool")
    @patch("invoice_ingest.main.run_batch", new_callable=MagicMock)
    def test_postgres_backend_opens_and_closes_pool(
        self,
        mock_run_batch: MagicMock,
        mock_init_pool: MagicMock,
        mock_close_pool: MagicMock,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("PERSISTENCE_BACKEND", "postgres")

        async def fake_run_batch(*_args: object) -> BatchSummary:
            return _summary(UploadStatus.COMPLETED, UploadStatus.FAILED)

        mock_run_batch.side_effect = fake_run_batch

        assert main(["--user-id", "u1", "a.pdf", "b.pdf"]) == 1
        mock_init_pool.assert_called_once()
        mock_close_pool.assert_called_once()

    @patch("invoice_ingest.main.close_pool")
    @patch("invoice_ingest.main.init_pool")
    def test_pool_closed_when_batch_raises(
        self,
        _mock_init_pool: MagicMock,
        mock_close_pool: MagicMock,
        monkeypatch: pytest.MonkeyPatch,
        tmp_path: Path,
    ) -> None:
        monkeypatch.setenv("PERSISTENCE_BACKEND", "postgres")

        with pytest.raises(FileNotFoundError):
            main(["--user-id", "u1", str(tmp_path / "missing.pdf")])

        mock_close_pool.assert_called_once()

    def test_end_to_end_with_example_provider(
        self,
        monkeypatch: pytest.MonkeyPatch,
        tmp_path: Path,
        noisy_png_bytes: bytes,
    ) -> None:
        monkeypatch.setenv("PERSISTENCE_BACKEND", "memory")
        monkeypatch.setenv("EXTRACTION_PROVIDER", "example")
        monkeypatch.setenv("STORAGE_BACKEND", "local")
        monkeypatch.setenv("STORAGE_LOCAL_ROOT", str(tmp_path / "store"))
        upload = tmp_path / "receipt.png"
        upload.write_bytes(noisy_png_bytes)

        assert main(["--user-id", "u1", str(upload)]) == 0
        assert list((tmp_path / "store").rglob("*.jpg"))
