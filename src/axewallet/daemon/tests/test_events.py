"""
事件通道测试：单观察者、无缓存、观察者异常不外抛。
"""

from src.axewallet.daemon.events import EventChannel, EventRecorder
from src.axewallet.daemon.schemas import NodeState, WalletOutcome


class _Broken:
    def on_status(self, event):
        raise RuntimeError("boom")

    def on_log(self, event):
        raise RuntimeError("boom")

    def on_wallet(self, event):
        raise RuntimeError("boom")


def test_late_subscriber_misses_prior_events():
    channel = EventChannel()
    channel.emit_status(NodeState.STARTING)
    recorder = EventRecorder()
    channel.subscribe(recorder)
    assert recorder.last_status is None

    channel.emit_status(NodeState.RUNNING)
    assert recorder.last_status.status is NodeState.RUNNING


def test_subscribe_replaces_previous_observer():
    channel = EventChannel()
    first, second = EventRecorder(), EventRecorder()
    channel.subscribe(first)
    channel.subscribe(second)

    channel.emit_log("[daemon] hi")

    assert first.tail() == []
    assert [e.line for e in second.tail()] == ["[daemon] hi"]
    channel.unsubscribe()
    channel.emit_log("[daemon] dropped")
    assert len(second.tail()) == 1


def test_observer_errors_are_contained():
    channel = EventChannel()
    channel.subscribe(_Broken())
    channel.emit_status(NodeState.ERROR, "x")
    channel.emit_log("line")
    channel.emit_wallet(wallet="w", outcome=WalletOutcome.CREATED_NEW)


def test_recorder_keeps_bounded_tail():
    recorder = EventRecorder(max_lines=3)
    channel = EventChannel()
    channel.subscribe(recorder)
    for i in range(5):
        channel.emit_log(str(i))
    channel.emit_wallet(error="Connection failed: refused")

    assert [e.line for e in recorder.tail(10)] == ["2", "3", "4"]
    assert recorder.tail(0) == []
    assert recorder.last_wallet.error == "Connection failed: refused"
    assert recorder.last_wallet.wallet is None
