import random

HINT_PERIOD_SECONDS = 10.0
PROGRESS_STEPS = 100

FLIRT_HINTS = [
    "Ben jij een magneet? Want ik voel me onweerstaanbaar tot je aangetrokken.",
    "Is jouw naam Google? Want jij hebt alles waar ik naar zocht.",
    "Geloof je in liefde op het eerste gezicht, of moet ik nog een keer langslopen?",
    "Als jij een droom was, zou ik nooit meer willen wakker worden.",
    "Jij laat mijn hart sneller kloppen dan koffie op maandagochtend.",
    "Heb je een kaart? Want ik verdwaal in je ogen.",
    "Jij bent de reden dat ik glimlach naar mijn telefoon.",
    "Is jouw vader een dief? Want hij heeft de sterren uit de hemel gestolen en in jouw ogen gestopt.",
]


class HintTicker:
    """Rotating hint with a progress bar that fills once per period.

    Driven by ``advance(seconds)`` rather than a timer thread; callers feed it
    elapsed wall time. Has no effect on chat state.
    """

    def __init__(self, hints=None, period=HINT_PERIOD_SECONDS, steps=PROGRESS_STEPS, rng=None):
        self.hints = list(FLIRT_HINTS if hints is None else hints)
        if not self.hints:
            raise ValueError("HintTicker needs at least one hint")
        self.period = period
        self.steps = steps
        self._rng = rng or random.Random()
        self._elapsed = 0.0
        self.current = ""
        self.rotate()

    @property
    def progress(self):
        return min(self.steps, int(self._elapsed / self.period * self.steps))

    def rotate(self):
        choice = self._rng.choice(self.hints)
        while choice == self.current and len(self.hints) > 1:
            choice = self._rng.choice(self.hints)
        self.current = choice
        self._elapsed = 0.0
        return choice

    def advance(self, seconds):
        """Move the clock forward; returns True when the hint changed."""
        self._elapsed += max(0.0, seconds)
        rotated = False
        while self._elapsed >= self.period:
            leftover = self._elapsed - self.period
            self.rotate()
            self._elapsed = leftover
            rotated = True
        return rotated
