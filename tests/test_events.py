from __future__ import annotations

from localedesk.events import Channel, EventBus, KeyChanged, LanguageAdded


def test_publish_reaches_every_subscriber() -> None:
    channel: Channel[str] = Channel("test")
    first, second = [], []
    channel.subscribe(first.append)
    channel.subscribe(second.append)

    delivered = channel.publish("hello")

    assert delivered == 2
    assert first == ["hello"]
    assert second == ["hello"]


def test_close_is_idempotent_and_stops_delivery() -> None:
    channel: Channel[int] = Channel("test")
    received = []
    subscription = channel.subscribe(received.append)

    subscription.close()
    subscription.close()
    channel.publish(1)

    assert received == []
    assert subscription.active is False
    assert len(channel) == 0


def test_failing_handler_does_not_block_others(caplog) -> None:
    channel: Channel[str] = Channel("fragile")
    received = []

    def broken(_event: str) -> None:
        raise RuntimeError("nope")

    channel.subscribe(broken)
    channel.subscribe(received.append)

    assert channel.publish("ping") == 1
    assert received == ["ping"]
    assert "fragile" in caplog.text


def test_bus_channels_are_separate() -> None:
    bus = EventBus()
    languages, keys = [], []
    bus.language_added.subscribe(languages.append)
    bus.key_changed.subscribe(keys.append)

    bus.language_added.publish(LanguageAdded("p", "fr", "French"))

    assert languages == [LanguageAdded("p", "fr", "French")]
    assert keys == []
    bus.key_changed.publish(KeyChanged("p", "k1", {"fr": "x"}))
    assert keys[0].translations == {"fr": "x"}
