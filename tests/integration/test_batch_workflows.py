"""End-to-end workflows: processor over SQLite, and the CLI."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import pytest
from click.testing import CliRunner

from smartbatch.cli import cli
from smartbatch.exceptions import StoreError
from smartbatch.models.config import Settings
from smartbatch.models.item_update import ItemUpdate
from smartbatch.models.performance import OperationKind
from smartbatch.services.batch_processor import SmartBatchProcessor

if TYPE_CHECKING:
    from pathlib import Path

    from smartbatch.repositories.record_repository import RecordRepository


class TestProcessorWithSqlite:
    """The processor driving a real RecordRepository."""

    @pytest.mark.asyncio
    async def test_create_update_delete_lifecycle(self, repo: RecordRepository) -> None:
        processor = SmartBatchProcessor(repo)

        created = await processor.create_batch(
            [{"name": f"company-{i}", "tier": "free"} for i in range(250)],
            {"parallel": True, "max_concurrency": 2},
        )
        assert created.success_count == 250
        assert repo.get_record_count() == 250

        ids = [record["id"] for record in created.results]
        updates = [ItemUpdate(id=i, data={"tier": "paid" if i % 2 else "free"}) for i in ids]
        updated = await processor.update_batch(updates, {"detect_changes": True})
        assert updated.metrics.unchanged_items_skipped == 125
        assert updated.success_count == 125
        assert sum(r["tier"] == "paid" for r in repo.get_all_records()) == 125

        deleted = await processor.delete_batch(ids[:100], {"soft_delete": True})
        assert deleted.success_count == 100
        assert repo.get_record_count() == 150
        assert repo.get_record_count(include_deleted=True) == 250

        report = processor.get_performance_report()
        assert report.total_operations == 3
        assert [p.operation for p in report.profiles] == list(OperationKind)

    @pytest.mark.asyncio
    async def test_store_rejection_isolated_to_chunk(self, repo: RecordRepository) -> None:
        processor = SmartBatchProcessor(repo)
        items: list[dict[str, Any]] = [{"n": i} for i in range(30)]
        items[25] = {}

        outcome = await processor.create_batch(items, {"batch_size": 10})

        assert outcome.success_count == 20
        assert outcome.failure_count == 10
        assert isinstance(outcome.failures[0].error, StoreError)
        assert repo.get_record_count() == 20

    @pytest.mark.asyncio
    async def test_transactional_batch_rolls_back(self, repo: RecordRepository) -> None:
        processor = SmartBatchProcessor(repo)

        async def operation(handle: RecordRepository) -> None:
            inner = SmartBatchProcessor(handle, processor.profile_store)
            await inner.create_batch([{"n": i} for i in range(20)], {"batch_size": 5})
            raise StoreError("downstream check failed")

        with pytest.raises(StoreError):
            await processor.run_transactional(operation)
        assert repo.get_record_count() == 0

    @pytest.mark.asyncio
    async def test_transactional_batch_commits(self, repo: RecordRepository) -> None:
        processor = SmartBatchProcessor(repo)

        async def operation(handle: RecordRepository) -> int:
            inner = SmartBatchProcessor(handle, processor.profile_store)
            outcome = await inner.create_batch([{"n": i} for i in range(20)], {"batch_size": 5})
            return outcome.success_count

        assert await processor.run_transactional(operation) == 20
        assert repo.get_record_count() == 20
        assert processor.get_performance_report().total_operations == 1

    @pytest.mark.asyncio
    async def test_from_settings(self, repo: RecordRepository, tmp_path: Path) -> None:
        settings = Settings(
            _env_file=None,
            database_path=str(tmp_path / "unused.db"),
            max_retry_attempts=0,
            default_max_concurrency=4,
        )
        processor = SmartBatchProcessor.from_settings(repo, settings)

        assert processor.default_options.max_concurrency == 4
        assert processor.dispatcher.max_retry_attempts == 0


class TestCli:
    """The click CLI against a temporary database."""

    @pytest.fixture
    def runner(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> CliRunner:
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("SMARTBATCH_DATABASE_PATH", str(tmp_path / "cli.db"))
        monkeypatch.setenv("SMARTBATCH_LOG_LEVEL", "WARNING")
        return CliRunner()

    @staticmethod
    def _write(tmp_path: Path, name: str, payload: Any) -> str:
        path = tmp_path / name
        path.write_text(json.dumps(payload), encoding="utf-8")
        return str(path)

    def test_init_db(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["init-db"])
        assert result.exit_code == 0, result.output
        assert "[SUCCESS] Database initialized" in result.output
        assert (tmp_path / "cli.db").exists()

    def test_create_update_delete(self, runner: CliRunner, tmp_path: Path) -> None:
        items = self._write(tmp_path, "items.json", [{"name": f"c{i}"} for i in range(25)])
        result = runner.invoke(cli, ["create", items, "--batch-size", "10"])
        assert result.exit_code == 0, result.output
        assert "[SUCCESS] Batch create complete" in result.output
        assert "success_count: 25" in result.output
        assert "chunk_count: 3" in result.output
        assert "total_operations: 1" in result.output

        updates = self._write(
            tmp_path,
            "updates.json",
            [{"id": 1, "data": {"name": "c0"}}, {"id": 2, "data": {"name": "renamed"}}],
        )
        result = runner.invoke(cli, ["update", updates, "--detect-changes"])
        assert result.exit_code == 0, result.output
        assert "unchanged_items_skipped: 1" in result.output
        assert "success_count: 1" in result.output

        ids = self._write(tmp_path, "ids.json", [1, 2, 3])
        result = runner.invoke(cli, ["delete", ids, "--soft-delete", "--parallel"])
        assert result.exit_code == 0, result.output
        assert "[SUCCESS] Batch delete complete" in result.output
        assert "success_count: 3" in result.output

    def test_create_with_progress(self, runner: CliRunner, tmp_path: Path) -> None:
        items = self._write(tmp_path, "items.json", [{"n": i} for i in range(6)])
        result = runner.invoke(cli, ["create", items, "--batch-size", "2", "--progress"])
        assert result.exit_code == 0, result.output
        assert "chunk 1/3: 2/6 (33%)" in result.output
        assert "chunk 3/3: 6/6 (100%), ~0ms remaining" in result.output

    def test_partial_failure_reported(self, runner: CliRunner, tmp_path: Path) -> None:
        items = self._write(tmp_path, "items.json", [{"n": 1}, {}, {"n": 3}, {"n": 4}])
        result = runner.invoke(cli, ["create", items, "--batch-size", "2", "--validate"])
        assert result.exit_code == 0, result.output
        assert "[PARTIAL] Batch create complete" in result.output
        assert "failure_count: 2" in result.output
        assert "validation_errors: 1" in result.output

    def test_unknown_delete_id_reported(self, runner: CliRunner, tmp_path: Path) -> None:
        ids = self._write(tmp_path, "ids.json", [42])
        result = runner.invoke(cli, ["delete", ids])
        assert result.exit_code == 0, result.output
        assert "[PARTIAL] Batch delete complete" in result.output
        assert "unresolved ids" in result.output

    @pytest.mark.parametrize("batch_size", ["0", "huge"])
    def test_invalid_batch_size_is_usage_error(
        self, runner: CliRunner, tmp_path: Path, batch_size: str
    ) -> None:
        items = self._write(tmp_path, "items.json", [{"n": 1}])
        result = runner.invoke(cli, ["create", items, "--batch-size", batch_size])
        assert result.exit_code == 2

    def test_non_array_input_rejected(self, runner: CliRunner, tmp_path: Path) -> None:
        path = self._write(tmp_path, "items.json", {"n": 1})
        result = runner.invoke(cli, ["create", path])
        assert result.exit_code == 2
        assert "JSON array" in result.output
