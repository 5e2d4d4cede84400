"""Tests for the command-line jobs."""

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

from conftest import SAMPLE_CARDS

from synergyforge.db.operations import count_associations, count_cards
from synergyforge.jobs.build_synergies import main as build_main
from synergyforge.jobs.build_synergies import run_build
from synergyforge.jobs.download_cards import run_download
from synergyforge.jobs.encode_cards import run_encode
from synergyforge.jobs.import_cards import run_import
from synergyforge.models.checkpoint import BatchStatus


def _write_catalog(tmp_path: Path) -> Path:
    records = [
        {key: value for key, value in card.items() if key != "id"} | {"id_number": card["id"]}
        for card in SAMPLE_CARDS
    ]
    path = tmp_path / "cards.json"
    path.write_text(json.dumps(records), encoding="utf-8")
    return path


class TestImportAndEncode:
    async def test_import_then_encode(self, tmp_path: Path, session_factory) -> None:
        imported = await run_import(_write_catalog(tmp_path), session_factory=session_factory)
        report = await run_encode(session_factory=session_factory)

        assert imported == 4
        assert report.encoded == 4
        async with session_factory() as session:
            assert await count_cards(session, encoded_only=True) == 4


class TestBuildSynergies:
    async def test_build_to_completion(self, tmp_path: Path, session_factory) -> None:
        await run_import(_write_catalog(tmp_path), session_factory=session_factory)
        await run_encode(session_factory=session_factory)

        snapshots = await run_build(
            start_cursor=0, batch_size=3, threshold=0.3, session_factory=session_factory
        )

        assert [s.cursor for s in snapshots] == [3, 4]
        assert all(s.status == BatchStatus.COMPLETED for s in snapshots)
        async with session_factory() as session:
            assert await count_associations(session) == 2

    async def test_build_once(self, tmp_path: Path, session_factory) -> None:
        await run_import(_write_catalog(tmp_path), session_factory=session_factory)
        await run_encode(session_factory=session_factory)

        snapshots = await run_build(
            start_cursor=0,
            batch_size=3,
            threshold=0.3,
            once=True,
            session_factory=session_factory,
        )

        assert len(snapshots) == 1
        assert snapshots[0].cursor == 3

    def test_main_parses_arguments(self) -> None:
        """Command-line options reach the build."""
        with (
            patch("synergyforge.jobs.build_synergies.init_db", new_callable=AsyncMock),
            patch(
                "synergyforge.jobs.build_synergies.run_build", new_callable=AsyncMock
            ) as mock_build,
        ):
            build_main(
                ["--start-cursor", "10", "--batch-size", "25", "--threshold", "0.7", "--once"]
            )

        mock_build.assert_awaited_once_with(10, 25, 0.7, True)


class TestDownloadCards:
    async def test_download_delegates_to_catalog(self, tmp_path: Path) -> None:
        target = tmp_path / "oracle.json"
        with patch(
            "synergyforge.jobs.download_cards.download_card_file",
            new_callable=AsyncMock,
            return_value=target,
        ) as mock_download:
            path = await run_download(target)

        assert path == target
        mock_download.assert_awaited_once_with(target, "oracle_cards")
