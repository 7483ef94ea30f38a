"""Fake push transport — delivers nothing, remembers everything."""

from uuid import uuid4

from delivery.push.port import PushPort, PushResult, PushStatus

UNREGISTERED = "Requested entity was not found."


class FakePushAdapter(PushPort):
    """In-memory push transport.

    Outcomes can be forced per token (``mark_invalid``) or for every token
    at once (``configure(should_succeed=False)``). Only successful sends
    land in ``sent_pushes``.
    """

    def __init__(self):
        self.sent_pushes: list[dict] = []
        self._forced: dict[str, PushResult] = {}
        self._outage: str | None = None

    def configure(self, should_succeed: bool = True, failure_reason: str = "Push delivery failed"):
        self._outage = None if should_succeed else failure_reason

    def mark_invalid(self, *tokens: str):
        for token in tokens:
            self._forced[token] = PushResult(status=PushStatus.INVALID_TOKEN, error=UNREGISTERED)

    def send(self, device_token: str, title: str, body: str, data: dict | None = None) -> PushResult:
        forced = self._forced.get(device_token)
        if forced is not None:
            return forced
        if self._outage is not None:
            return PushResult(status=PushStatus.FAILED, error=self._outage)

        message_id = f"push-{uuid4().hex[:12]}"
        self.sent_pushes.append(
            dict(message_id=message_id, device_token=device_token, title=title, body=body, data=data)
        )
        return PushResult(status=PushStatus.SENT, message_id=message_id)

    def reset(self):
        self.sent_pushes.clear()
        self._forced.clear()
        self._outage = None
