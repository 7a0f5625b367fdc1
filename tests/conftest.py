import pytest


class FakeLink:
    """Records writes; replays scripted peer lines one at a time."""

    def __init__(self, replies=(), write_errors=0):
        self.replies = list(replies)
        self.writes = []
        self.writes_seen = []  # len(writes) when each reply was handed out
        self.write_errors = write_errors
        self.closed = False
        self.settled = None

    def send(self, data):
        self.writes.append(bytes(data))
        return self.write_errors

    def lines(self):
        for reply in self.replies:
            if self.closed:
                return
            self.writes_seen.append(len(self.writes))
            yield reply

    def settle(self, delay):
        self.settled = delay

    def stop(self):
        self.closed = True

    def close(self):
        self.closed = True


@pytest.fixture
def fake_link():
    return FakeLink
