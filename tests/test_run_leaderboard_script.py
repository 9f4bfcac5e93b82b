"""Tests for the scheduled leaderboard runner."""

from __future__ import annotations

import pytest

from irlink.services.leaderboard import LeaderboardResult, RankChangeEvent
from scripts import run_leaderboard


class StubLeaderboardService:
    def __init__(self, result: LeaderboardResult, *, publish_ok: bool = True) -> None:
        self.result = result
        self.publish_ok = publish_ok
        self.runs: list[bool] = []
        self.published: list[LeaderboardResult] = []

    async def run(self, *, persist: bool = False) -> LeaderboardResult:
        self.runs.append(persist)
        return self.result

    def render(self, result: LeaderboardResult) -> str:
        return "**Weekly**"

    async def publish(self, result: LeaderboardResult) -> bool:
        self.published.append(result)
        return self.publish_ok


def _install(monkeypatch: pytest.MonkeyPatch, service: StubLeaderboardService) -> None:
    monkeypatch.setattr(run_leaderboard, "get_leaderboard_service", lambda: service)


def test_scheduled_run_persists_and_publishes(monkeypatch, make_account) -> None:
    service = StubLeaderboardService(LeaderboardResult(standings=[make_account()]))
    _install(monkeypatch, service)

    assert run_leaderboard.main([]) == run_leaderboard.EXIT_OK
    assert service.runs == [True]
    assert len(service.published) == 1


def test_dry_run_prints_without_publishing(monkeypatch, make_account, capsys) -> None:
    event = RankChangeEvent("discord-1", "Jesse D.", 2, 1, 1800)
    service = StubLeaderboardService(
        LeaderboardResult(standings=[make_account()], events=[event])
    )
    _install(monkeypatch, service)

    assert run_leaderboard.main(["--dry-run", "--no-publish"]) == run_leaderboard.EXIT_OK

    assert service.runs == [False]
    assert service.published == []
    output = capsys.readouterr().out
    assert "**Weekly**" in output
    assert event.message in output


def test_publish_failure_sets_exit_code(monkeypatch, make_account) -> None:
    service = StubLeaderboardService(
        LeaderboardResult(standings=[make_account()]), publish_ok=False
    )
    _install(monkeypatch, service)

    assert run_leaderboard.main([]) == run_leaderboard.EXIT_PUBLISH_FAILED


def test_empty_leaderboard_is_not_posted(monkeypatch) -> None:
    service = StubLeaderboardService(LeaderboardResult(standings=[]))
    _install(monkeypatch, service)

    assert run_leaderboard.main([]) == run_leaderboard.EXIT_OK
    assert service.published == []
