"""Tests for the player's rotation state machine."""

from luminasign.player.session import PlayerSession


def _snapshot(playlist_id="p1", durations=(5, 10, 0), paired=True, override=False, name="Loop"):
    items = [
        {
            "id": f"{playlist_id}-i{index}",
            "media_id": f"m{index}",
            "duration_sec": duration,
            "media": {"id": f"m{index}", "name": f"Slide {index}", "type": "image", "url": "u"},
        }
        for index, duration in enumerate(durations)
    ]
    return {
        "paired": paired,
        "screen": {"name": "Lobby TV"} if paired else None,
        "override_active": override,
        "playlist": {"id": playlist_id, "name": name, "items": items} if playlist_id else None,
    }


def test_unpaired_session_waits_for_pairing():
    session = PlayerSession("123456")
    session.sync(_snapshot(paired=False), now=0)
    assert session.state == "pairing"
    assert session.current_item() is None
    assert "123456" in session.describe()


def test_paired_without_playlist_is_idle():
    session = PlayerSession("123456")
    session.sync(_snapshot(playlist_id=None), now=0)
    assert session.state == "idle"
    assert session.seconds_until_advance(0) is None
    assert session.tick(100) is False


def test_advances_after_each_item_duration_and_wraps():
    session = PlayerSession("123456")
    assert session.sync(_snapshot(), now=0) is True
    assert session.index == 0

    assert session.tick(4.9) is False
    assert session.tick(5) is True
    assert session.index == 1

    assert session.tick(14.9) is False
    assert session.tick(15) is True
    assert session.index == 2

    # zero duration falls back to ten seconds
    assert session.seconds_until_advance(15) == 10
    assert session.tick(25) is True
    assert session.index == 0


def test_late_tick_catches_up_without_drift():
    session = PlayerSession("123456")
    session.sync(_snapshot(), now=0)
    session.tick(16)
    assert session.index == 2
    assert session.seconds_until_advance(16) == 9


def test_new_playlist_resets_index_and_timer():
    session = PlayerSession("123456")
    session.sync(_snapshot(), now=0)
    session.tick(5)
    assert session.index == 1

    assert session.sync(_snapshot(playlist_id="p2", durations=(30,), override=True), now=7) is True
    assert session.index == 0
    assert session.override_active is True
    assert session.seconds_until_advance(7) == 30
    assert "scheduled override" in session.describe()


def test_same_playlist_keeps_position_and_timer():
    session = PlayerSession("123456")
    session.sync(_snapshot(), now=0)
    session.tick(5)
    assert session.sync(_snapshot(), now=8) is False
    assert session.index == 1
    assert session.seconds_until_advance(8) == 7


def test_shrunk_playlist_clamps_index():
    session = PlayerSession("123456")
    session.sync(_snapshot(), now=0)
    session.tick(15)
    assert session.index == 2
    session.sync(_snapshot(durations=(5,)), now=16)
    assert session.index == 0
    assert session.seconds_until_advance(16) == 5


def test_missing_media_is_reported():
    session = PlayerSession("123456")
    snapshot = _snapshot(durations=(5,))
    snapshot["playlist"]["items"][0]["media"] = None
    session.sync(snapshot, now=0)
    assert session.current_media() is None
    assert "media missing" in session.describe()
