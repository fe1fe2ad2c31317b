import threading
import time

from rsr.dispatch import EventBus


def test_ordered_queue_finishes_each_item_before_the_next():
    bus = EventBus(max_workers=4)
    seen = []

    def handler(item):
        seen.append(("start", item))
        if item == "A":
            time.sleep(0.05)
        seen.append(("end", item))

    bus.consumer("collect", handler)
    for item in ["A", "B", "C"]:
        assert bus.publish("collect", item) == 1

    assert bus.wait_idle(timeout=5)
    assert seen == [
        ("start", "A"), ("end", "A"),
        ("start", "B"), ("end", "B"),
        ("start", "C"), ("end", "C"),
    ]
    bus.shutdown()


def test_slow_queue_does_not_block_other_queues():
    bus = EventBus(max_workers=2)
    release = threading.Event()
    fast_done = threading.Event()

    bus.consumer("collect", lambda _: release.wait(5))
    bus.consumer("delete", lambda _: fast_done.set())

    bus.publish("collect", 1)
    bus.publish("delete", 1)

    assert fast_done.wait(timeout=5)
    release.set()
    assert bus.wait_idle(timeout=5)
    bus.shutdown()


def test_handler_error_does_not_stop_the_queue():
    bus = EventBus()
    seen = []

    def handler(item):
        if item == 1:
            raise ValueError("bad item")
        seen.append(item)

    bus.consumer("collect", handler)
    for i in range(3):
        bus.publish("collect", i)

    assert bus.wait_idle(timeout=5)
    assert seen == [0, 2]
    bus.shutdown()


def test_publish_without_consumer_is_dropped():
    bus = EventBus()
    assert bus.publish("import-projects", {}) == 0
    assert bus.has_consumer("import-projects") is False
    assert bus.wait_idle(timeout=1)
    bus.shutdown()


def test_full_queue_drops_new_items():
    bus = EventBus(max_pending=1)
    started = threading.Event()
    release = threading.Event()
    seen = []

    def handler(item):
        started.set()
        release.wait(5)
        seen.append(item)

    bus.consumer("collect", handler)
    bus.publish("collect", "A")
    assert started.wait(timeout=5)

    assert bus.publish("collect", "B") == 1
    assert bus.publish("collect", "C") == 0
    assert bus.dropped == 1

    release.set()
    assert bus.wait_idle(timeout=5)
    assert seen == ["A", "B"]
    bus.shutdown()


def test_every_consumer_of_an_address_gets_the_item():
    bus = EventBus()
    a, b = [], []
    bus.consumer("start-watchers", a.append, ordered=False)
    bus.consumer("start-watchers", b.append)

    assert bus.publish("start-watchers", {}) == 2
    assert bus.wait_idle(timeout=5)
    assert a == [{}] and b == [{}]
    bus.shutdown()


def test_publish_after_shutdown_is_ignored():
    bus = EventBus()
    bus.consumer("collect", lambda _: None)
    bus.shutdown()
    assert bus.publish("collect", 1) == 0


def test_publish_racing_shutdown_never_raises_or_leaks():
    bus = EventBus(max_workers=2)
    bus.consumer("collect", lambda _: time.sleep(0.001))
    bus.consumer("watch", lambda _: None, ordered=False)
    errors = []

    def publisher():
        try:
            for i in range(500):
                bus.publish("collect", i)
                bus.publish("watch", i)
        except Exception as e:
            errors.append(e)

    t = threading.Thread(target=publisher)
    t.start()
    time.sleep(0.01)
    bus.shutdown(wait=True)
    t.join(timeout=10)

    assert errors == []
    assert bus.wait_idle(timeout=5)
