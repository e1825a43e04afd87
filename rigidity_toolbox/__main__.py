from __future__ import annotations

from rigidity_toolbox.cli import main

raise SystemExit(main())
