from __future__ import annotations

import itertools
import threading
import time
from typing import Iterable

import pytest

from benchy.config import Settings
from benchy.graphql import CollectionMint
from benchy.hub import HubTransportError
from benchy.state import RemoteStatus


class FakeClock:
    """Manual clock; ``wait`` advances time instead of sleeping."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self.waits: list[float] = []
        self._lock = threading.Lock()

    def __call__(self) -> float:
        with self._lock:
            return self.now

    def advance(self, seconds: float) -> None:
        with self._lock:
            self.now += seconds

    def wait(self, seconds: float) -> bool:
        self.waits.append(seconds)
        self.advance(seconds)
        return False


class FakeHub:
    """In-memory stand-in for HubClient.

    ``statuses`` maps a mint id to the sequence of answers ``check_status``
    returns; the last answer repeats. An answer that is an exception instance is
    raised instead of returned.
    """

    def __init__(
        self,
        statuses: dict[str, Iterable[object]] | None = None,
        default_status: RemoteStatus = RemoteStatus.CREATED,
        failing_submissions: Iterable[int] = (),
        failing_retries: Iterable[str] = (),
        submit_delay: float = 0.0,
    ) -> None:
        self._statuses = {key: list(value) for key, value in (statuses or {}).items()}
        self._default_status = default_status
        self._failing_submissions = set(failing_submissions)
        self._failing_retries = set(failing_retries)
        self._submit_delay = submit_delay
        self._counter = itertools.count(1)
        self._lock = threading.Lock()
        self.active_submissions = 0
        self.max_active_submissions = 0
        self.submitted: list[str] = []
        self.check_calls: list[str] = []
        self.retry_calls: list[str] = []

    def submit(self) -> CollectionMint:
        with self._lock:
            attempt = next(self._counter)
            self.active_submissions += 1
            self.max_active_submissions = max(self.max_active_submissions, self.active_submissions)
        try:
            if self._submit_delay:
                time.sleep(self._submit_delay)
            if attempt in self._failing_submissions:
                raise HubTransportError(f"submission {attempt} refused")
            mint_id = f"mint-{attempt}"
            with self._lock:
                self.submitted.append(mint_id)
            return CollectionMint(id=mint_id, creation_status=RemoteStatus.PENDING, raw_status="PENDING")
        finally:
            with self._lock:
                self.active_submissions -= 1

    def check_status(self, item_id: str) -> RemoteStatus:
        with self._lock:
            self.check_calls.append(item_id)
            answers = self._statuses.get(item_id)
            if not answers:
                answer: object = self._default_status
            elif len(answers) > 1:
                answer = answers.pop(0)
            else:
                answer = answers[0]
        if isinstance(answer, BaseException):
            raise answer
        return answer

    def retry(self, item_id: str) -> CollectionMint:
        with self._lock:
            self.retry_calls.append(item_id)
        if item_id in self._failing_retries:
            raise HubTransportError(f"retry of {item_id} refused")
        return CollectionMint(id=item_id, creation_status=RemoteStatus.PENDING, raw_status="PENDING")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        parallelism=3,
        iterations=1,
        delay_seconds=1,
        retry_enabled=False,
        pending_timeout_seconds=400,
        poll_interval_seconds=10,
    )


@pytest.fixture
def config_data() -> dict:
    return {
        "hub": {"url": "https://hub.test/graphql", "token": "secret-token"},
        "settings": {
            "parallelism": 2,
            "iterations": 3,
            "delay": 0,
            "retry": True,
            "log_level": "debug",
            "timeout": 120,
            "retry_delay": 5,
        },
        "mint": {
            "collection_id": "0f9c3e0c-8d0a-4c2e-9a8a-1b0b2c3d4e5f",
            "recipient": "RecipientWallet111",
            "creator": {"address": "CreatorWallet111", "verified": True},
            "description": "Benchmark mint",
            "compressed": True,
            "image": "https://example.com/image.png",
        },
    }
