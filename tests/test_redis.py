"""Tests for the token blacklist backends."""
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest
import redis

import app.infrastructure.redis as redis_module

from app.infrastructure.redis import TokenBlacklist, get_token_blacklist, reset_token_blacklist
from app.infrastructure.redis import get_redis_client as connect_redis


class TestMemoryBlacklist:
    def test_add_and_contains(self):
        blacklist = TokenBlacklist()

        blacklist.add("token-a")

        assert "token-a" in blacklist
        assert "token-b" not in blacklist

    def test_clear(self):
        blacklist = TokenBlacklist()
        blacklist.add("token-a")

        blacklist.clear()

        assert "token-a" not in blacklist

    def test_shared_instance_without_redis(self, mock_redis):
        assert get_token_blacklist() is get_token_blacklist()
        assert get_token_blacklist().redis is None

        reset_token_blacklist()
        assert get_token_blacklist().redis is None


class TestRedisBlacklist:
    def test_entry_expires_with_token(self):
        client = Mock()
        blacklist = TokenBlacklist(redis_client=client)

        blacklist.add("token-a", expires_at=datetime.now(timezone.utc) + timedelta(hours=1))

        key, ttl, value = client.setex.call_args[0]
        assert key.startswith("blacklist:")
        assert "token-a" not in key
        assert timedelta(minutes=59) < ttl <= timedelta(hours=1)

    def test_contains_asks_redis(self):
        client = Mock()
        client.exists.return_value = 1
        blacklist = TokenBlacklist(redis_client=client)

        assert "token-a" in blacklist
        client.exists.assert_called_once()

    def test_falls_back_to_memory_on_redis_error(self):
        client = Mock()
        client.setex.side_effect = redis.RedisError("down")
        client.exists.side_effect = redis.RedisError("down")
        blacklist = TokenBlacklist(redis_client=client)

        blacklist.add("token-a")

        assert "token-a" in blacklist
        assert "token-b" not in blacklist


class TestMemoryExpiry:
    def test_expired_entries_are_forgotten(self):
        blacklist = TokenBlacklist(default_ttl=timedelta(seconds=-1))

        blacklist.add("token-a")

        assert "token-a" not in blacklist
        assert blacklist._memory == {}

    def test_add_drops_expired_entries(self):
        blacklist = TokenBlacklist()
        blacklist.add("token-a", expires_at=datetime.now(timezone.utc) + timedelta(hours=1))
        blacklist.default_ttl = timedelta(seconds=-1)
        blacklist.add("token-b")

        blacklist.default_ttl = timedelta(hours=1)
        blacklist.add("token-c")

        assert "token-a" in blacklist
        assert "token-b" not in blacklist
        assert len(blacklist._memory) == 2


class TestRedisClient:
    @pytest.fixture
    def unreachable_redis(self, monkeypatch):
        client = Mock()
        client.ping.side_effect = redis.ConnectionError("refused")
        factory = Mock(return_value=client)
        monkeypatch.setattr(redis_module.redis, "Redis", factory)
        monkeypatch.setattr(redis_module, "_redis_client", None)
        monkeypatch.setattr(redis_module, "_redis_failed_at", None)
        return factory

    def test_failed_connection_is_not_retried_immediately(self, unreachable_redis):
        assert connect_redis() is None
        assert connect_redis() is None

        assert unreachable_redis.call_count == 1

    def test_retries_after_interval(self, unreachable_redis, monkeypatch):
        connect_redis()
        monkeypatch.setattr(redis_module, "REDIS_RETRY_INTERVAL", 0)

        connect_redis()

        assert unreachable_redis.call_count == 2
