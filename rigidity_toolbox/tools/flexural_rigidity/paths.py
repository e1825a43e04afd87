from __future__ import annotations

import hashlib
import os
import time
from datetime import datetime
from pathlib import Path
from typing import Optional

from rigidity_toolbox.core.paths import tool_runs_dir

TOOL_ID = "flexural_rigidity"


def create_run_dir(tool_id: str = TOOL_ID, input_hash: Optional[str] = None) -> Path:
    """Create a fresh run directory.

    Location:
      <user data>/<tool_id>/runs/YYYYMMDD_HHMMSS_<short_hash>/

    The suffix is the input hash followed by a per-call random part. On the
    unlikely clash with an existing directory a new random part is drawn.
    """
    runs = tool_runs_dir(tool_id)
    while True:
        ts = datetime.now().strftime("%Y%m%d_%H%M%S")
        seed = f"{ts}:{os.getpid()}:{time.time_ns()}"
        rand = hashlib.sha256(seed.encode("utf-8")).hexdigest()[:8]
        short = f"{input_hash[:6]}{rand}" if input_hash else rand

        run_dir = runs / f"{ts}_{short}"
        try:
            run_dir.mkdir(parents=True, exist_ok=False)
        except FileExistsError:
            continue
        return run_dir
