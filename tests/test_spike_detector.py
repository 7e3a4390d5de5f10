from detectors.spike import SpikeDetector


def feed(detector, values, interval=0.5):
    return [detector.update(v, interval) for v in values]


def test_fires_once_at_twentieth_tick():
    d = SpikeDetector(80.0, 10.0)
    events = feed(d, [95.0] * 25)
    assert events.count(True) == 1
    assert events.index(True) == 19
    assert d.active


def test_stays_silent_for_three_times_the_duration():
    d = SpikeDetector(80.0, 10.0)
    events = feed(d, [95.0] * 60)
    assert events.count(True) == 1


def test_drop_resets_and_rearms():
    d = SpikeDetector(80.0, 10.0)
    feed(d, [95.0] * 20)
    assert d.update(50.0, 0.5) is False
    assert d.accumulated == 0.0
    assert not d.active
    events = feed(d, [95.0] * 20)
    assert events.count(True) == 1
    assert events[-1] is True


def test_two_episodes_emit_two_events():
    d = SpikeDetector(80.0, 10.0)
    events = feed(d, [95.0] * 30 + [80.0] + [90.0] * 30)
    assert events.count(True) == 2


def test_value_equal_to_threshold_is_not_a_breach():
    d = SpikeDetector(80.0, 1.0)
    events = feed(d, [80.0] * 10)
    assert not any(events)
    assert d.accumulated == 0.0


def test_short_bursts_never_fire():
    d = SpikeDetector(80.0, 10.0)
    events = feed(d, ([95.0] * 19 + [10.0]) * 5)
    assert not any(events)


def test_interval_is_accumulated_as_given():
    d = SpikeDetector(50.0, 3.0)
    assert d.update(60.0, 1.0) is False
    assert d.update(60.0, 1.0) is False
    assert d.update(60.0, 1.0) is True
    assert d.accumulated == 3.0


def test_reconfigure_keeps_progress():
    d = SpikeDetector(80.0, 10.0)
    feed(d, [95.0] * 10)
    d.reconfigure(90.0, 5.0)
    assert d.accumulated == 5.0
    assert d.update(95.0, 0.5) is True
