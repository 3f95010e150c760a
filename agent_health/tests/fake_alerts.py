"""In-memory alert sender for testing without openclaw or a gateway."""


class FakeAlertSender:
    """Records every alert; ``succeed=False`` simulates a transport outage."""

    def __init__(self, succeed: bool = True):
        self.succeed = succeed
        self.sent: list[str] = []
        self.attempts = 0

    async def send(self, text: str) -> bool:
        self.attempts += 1
        if not self.succeed:
            return False
        self.sent.append(text)
        return True
