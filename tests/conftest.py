import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Tuple

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Keep Kivy headless and out of the root logger when a test imports it.
os.environ.setdefault("KIVY_NO_ARGS", "1")
os.environ.setdefault("KIVY_NO_CONFIG", "1")
os.environ.setdefault("KIVY_NO_FILELOG", "1")
os.environ.setdefault("KIVY_NO_CONSOLELOG", "1")
os.environ.setdefault("KIVY_LOG_MODE", "PYTHON")

from core.clock import ManualScheduler


class Recorder:
    """Callable handler that records when and with what it was invoked."""

    def __init__(self, scheduler: ManualScheduler) -> None:
        self._scheduler = scheduler
        self.calls: List[Tuple[int, Tuple[Any, ...], Dict[str, Any]]] = []

    def __call__(self, *args: Any, **kwargs: Any) -> None:
        self.calls.append((self._scheduler.now_ns() // 1_000_000, args, kwargs))

    @property
    def times_ms(self) -> List[int]:
        return [t for t, _, _ in self.calls]

    @property
    def args(self) -> List[Tuple[Any, ...]]:
        return [args for _, args, _ in self.calls]


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def recorder(scheduler: ManualScheduler) -> Recorder:
    return Recorder(scheduler)
