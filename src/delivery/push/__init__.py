"""Push adapter registry.

The fake adapter is the default; a real transport is installed with
set_push() at application startup.
"""

from delivery.push.fake_push import FakePushAdapter
from delivery.push.port import PushPort

_current_push: PushPort | None = None


def get_push() -> PushPort:
    global _current_push
    if _current_push is None:
        _current_push = FakePushAdapter()
    return _current_push


def set_push(adapter: PushPort) -> None:
    global _current_push
    _current_push = adapter


def reset_push() -> None:
    global _current_push
    _current_push = None
