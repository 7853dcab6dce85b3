import queue

from pipeline.progress import CallbackProgressSink, MonotonicProgressSink, QueueProgressSink


def test_monotonic_sink_never_goes_backwards():
    events = []
    sink = MonotonicProgressSink(CallbackProgressSink(events.append))
    for value in (5, 18, 12, 40, 140, -3):
        sink.report(value)
    assert [e.value for e in events] == [5, 18, 18, 40, 100, 100]


def test_monotonic_sink_keeps_last_label():
    events = []
    sink = MonotonicProgressSink(CallbackProgressSink(events.append))
    sink.report(10, "Denoising")
    sink.report(20)
    assert events[-1].label == "Denoising"


def test_span_maps_fraction_onto_range():
    events = []
    sink = MonotonicProgressSink(CallbackProgressSink(events.append))
    report = sink.span(18, 63, "Scaling")
    report(0.0)
    report(0.5)
    report(1.0)
    assert [e.value for e in events] == [18, 40.5, 63]
    assert {e.label for e in events} == {"Scaling"}


def test_queue_sink_posts_progress_messages():
    messages = queue.Queue()
    QueueProgressSink(messages, "job-1").report(42, "Halfway")
    message = messages.get_nowait()
    assert message.type == "progress"
    assert message.job_id == "job-1"
    assert message.payload == {"value": 42, "label": "Halfway"}


def test_monotonic_sink_without_inner_sink():
    sink = MonotonicProgressSink()
    sink.report(30, "x")
    assert sink.value == 30
