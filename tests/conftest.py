import pytest


class ScriptedRandom:
    """Stands in for random.Random, replaying fixed draws."""

    def __init__(self, draws=(), default=0.9, byte=7):
        self.draws = list(draws)
        self.default = default
        self.byte = byte
        self.calls = 0

    def random(self):
        self.calls += 1
        if self.draws:
            return self.draws.pop(0)
        return self.default

    def randrange(self, stop):
        return self.byte % stop


@pytest.fixture
def scripted():
    return ScriptedRandom
