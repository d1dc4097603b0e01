"""Tests for the session caches."""

from __future__ import annotations

import pytest

from sparqlbridge.sessions import SessionBroker, SessionCache, session_key


class Clock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_session_key_normalises_endpoint_and_user():
    assert session_key("http://h:7200/", "admin") == ("http://h:7200", "admin")
    assert session_key("http://h:7200", None) == ("http://h:7200", "anonymous")


def test_acquire_reuses_until_ttl():
    clock = Clock()
    cache = SessionCache(ttl=60, clock=clock)
    logins = []

    def login():
        logins.append(clock.now)
        return f"token-{len(logins)}"

    key = session_key("http://h", "u")
    assert cache.acquire(key, login) == "token-1"
    clock.now += 59
    assert cache.acquire(key, login) == "token-1"
    clock.now += 1
    assert cache.acquire(key, login) == "token-2"
    assert len(logins) == 2


def test_invalidate_one_and_all():
    cache = SessionCache(ttl=60, clock=Clock())
    a, b = session_key("http://a", "u"), session_key("http://b", "u")
    cache.set(a, "x")
    cache.set(b, "y")

    cache.invalidate(a)
    assert a not in cache
    assert b in cache

    cache.invalidate()
    assert len(cache) == 0


def test_failed_login_is_not_cached():
    cache = SessionCache(ttl=60, clock=Clock())
    key = session_key("http://h", "u")

    def failing():
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        cache.acquire(key, failing)
    assert key not in cache


def test_broker_scopes_caches_by_name():
    broker = SessionBroker(clock=Clock())
    tokens = broker.cache("graphdb", 10)
    assert broker.cache("graphdb", 10) is tokens
    assert broker.cache("mobi", 10) is not tokens

    tokens.set(("http://h", "u"), "t")
    broker.clear()
    assert len(tokens) == 0


def test_brokers_do_not_share_state():
    first, second = SessionBroker(), SessionBroker()
    first.cache("graphdb", 10).set(("http://h", "u"), "t")
    assert len(second.cache("graphdb", 10)) == 0
