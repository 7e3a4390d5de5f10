class SpikeDetector:
    """Edge-triggered sustained-threshold detector for one metric.

    Every value above ``threshold`` adds the tick interval to the time spent
    above it. The first tick at which that time reaches ``required_seconds``
    reports a spike; later ticks stay silent until a value at or below the
    threshold resets and re-arms the detector.
    """

    def __init__(self, threshold: float = 80.0, required_seconds: float = 10.0):
        self.threshold = float(threshold)
        self.required_seconds = float(required_seconds)
        self.accumulated = 0.0
        self.active = False

    def update(self, value: float, interval_seconds: float) -> bool:
        if value > self.threshold:
            self.accumulated += interval_seconds
            if self.accumulated >= self.required_seconds and not self.active:
                self.active = True
                return True
            return False
        self.reset()
        return False

    def reset(self):
        self.accumulated = 0.0
        self.active = False

    def reconfigure(self, threshold: float, required_seconds: float):
        self.threshold = float(threshold)
        self.required_seconds = float(required_seconds)

    def __repr__(self):
        return (f"SpikeDetector(threshold={self.threshold}, required={self.required_seconds}s, "
                f"accumulated={self.accumulated}s, active={self.active})")
