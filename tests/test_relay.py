import asyncio
from types import SimpleNamespace

from lazytorrentio.core.models import settings
from lazytorrentio.scrapers.yts import YTSScraper
from lazytorrentio.services import relay
from lazytorrentio.services.relay import (RelayPool, RelayPoolConfig,
                                          apply_session_cap,
                                          build_relay_pool_configs)


def _settings(**overrides):
    values = {
        "EZTV_USE_FLARESOLVERR": False,
        "EZTV_URL": ["https://eztv.test"],
        "YTS_USE_FLARESOLVERR": False,
        "YTS_URL": ["https://yts.test"],
        "TGX_USE_FLARESOLVERR": True,
        "TGX_URL": ["https://tgx-a.test", "https://tgx-b.test", "https://tgx-c.test"],
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def test_apply_session_cap(monkeypatch):
    monkeypatch.setattr(settings, "FLARESOLVERR_SESSIONS", 2)
    assert apply_session_cap(3) == 2
    assert apply_session_cap(1) == 1

    monkeypatch.setattr(settings, "FLARESOLVERR_SESSIONS", 0)
    assert apply_session_cap(3) == 0


def test_build_relay_pool_configs(monkeypatch):
    monkeypatch.setattr(settings, "FLARESOLVERR_SESSIONS", 2)

    configs = build_relay_pool_configs(
        _settings(EZTV_USE_FLARESOLVERR=True, YTS_USE_FLARESOLVERR=True, YTS_URL=[])
    )

    assert configs == [
        RelayPoolConfig(key="eztv", session_count=1, warmup_url="https://eztv.test"),
        RelayPoolConfig(
            key="torrentgalaxy", session_count=2, warmup_url="https://tgx-a.test"
        ),
    ]


def _fake_relay(monkeypatch, failing=()):
    commands = []
    warmups = []

    async def fake_relay_command(payload, timeout_ms=None):
        commands.append(payload)
        if payload["session"] in failing:
            return {"status": "error"}
        return {"status": "ok"}

    async def fake_fetch_text(url, timeout_ms=None, use_relay=False, relay_session=None):
        warmups.append((url, use_relay, relay_session))
        return "<html></html>"

    monkeypatch.setattr(relay, "relay_command", fake_relay_command)
    monkeypatch.setattr(relay, "fetch_text", fake_fetch_text)
    return commands, warmups


def test_pool_rotates_sessions_and_destroys_them(monkeypatch):
    commands, warmups = _fake_relay(monkeypatch)
    pool = RelayPool(
        [RelayPoolConfig(key="torrentgalaxy", session_count=2, warmup_url="https://tgx.test")]
    )

    async def scenario():
        await pool.start()
        picked = [pool.session_for("torrentgalaxy") for _ in range(3)]
        await pool.close()
        return picked

    picked = asyncio.run(scenario())

    assert picked == ["torrentgalaxy-1", "torrentgalaxy-2", "torrentgalaxy-1"]
    assert warmups == [
        ("https://tgx.test", True, "torrentgalaxy-1"),
        ("https://tgx.test", True, "torrentgalaxy-2"),
    ]
    assert [c["cmd"] for c in commands] == [
        "sessions.create",
        "sessions.create",
        "sessions.destroy",
        "sessions.destroy",
    ]
    assert pool.sessions == {}


def test_pool_skips_sessions_that_fail_to_start(monkeypatch):
    _, warmups = _fake_relay(monkeypatch, failing={"eztv-1"})
    pool = RelayPool(
        [
            RelayPoolConfig(key="eztv", session_count=1, warmup_url="https://eztv.test"),
            RelayPoolConfig(key="yts", session_count=0, warmup_url="https://yts.test"),
        ]
    )

    asyncio.run(pool.start())

    assert warmups == []
    assert pool.session_for("eztv") is None
    # still routed through the relay, just without a session
    assert pool.uses_relay("eztv") and pool.uses_relay("yts")
    assert not pool.uses_relay("torrentgalaxy")


def test_scrapers_pick_relay_sessions():
    pool = RelayPool([RelayPoolConfig(key="yts", session_count=0, warmup_url="https://yts.test")])

    assert YTSScraper(pool).use_relay is True
    assert YTSScraper(pool).relay_session() is None
    assert YTSScraper().use_relay is False
