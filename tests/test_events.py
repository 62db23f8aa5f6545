from fincore.events import OBLIGATION_EXECUTED, TRANSACTION_APPENDED, Event, EventBus


def test_publish_without_subscribers():
    assert EventBus().publish(OBLIGATION_EXECUTED, {"obligation_id": "b1"}) == []


def test_multiple_subscribers_same_event():
    bus = EventBus()
    calls = []

    def refresh_bills(event: Event, payload: dict) -> str:
        calls.append(("bills", event.name))
        return "bills"

    def refresh_net_worth(event: Event, payload: dict) -> str:
        calls.append(("net_worth", payload["user_id"]))
        return "net_worth"

    bus.subscribe(OBLIGATION_EXECUTED, refresh_bills)
    bus.subscribe(OBLIGATION_EXECUTED, refresh_net_worth)

    results = bus.publish(OBLIGATION_EXECUTED, {"user_id": "u1"})
    assert results == ["bills", "net_worth"]
    assert calls == [("bills", OBLIGATION_EXECUTED), ("net_worth", "u1")]
    assert bus.publish(TRANSACTION_APPENDED, {}) == []


def test_unsubscribe():
    bus = EventBus()

    def handler(event, payload):
        return payload["n"]

    bus.subscribe(TRANSACTION_APPENDED, handler)
    assert bus.publish(TRANSACTION_APPENDED, {"n": 1}) == [1]
    bus.unsubscribe(TRANSACTION_APPENDED, handler)
    bus.unsubscribe(TRANSACTION_APPENDED, handler)
    assert bus.publish(TRANSACTION_APPENDED, {"n": 2}) == []
