from __future__ import annotations

import itertools
import time
from typing import NewType

TempMessageId = NewType("TempMessageId", str)

_temp_counter = itertools.count(1)


def new_temp_id() -> TempMessageId:
    """Locally unique provisional id: monotonic clock plus a process counter."""
    return TempMessageId(f"tmp-{time.monotonic_ns()}-{next(_temp_counter)}")
