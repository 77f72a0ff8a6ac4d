from __future__ import annotations

import os
import tempfile

# The web module opens its override store at import time; keep it out of the repo.
os.environ.setdefault(
    "FINANCE_CALC_DATABASE_URL",
    "sqlite:///" + os.path.join(tempfile.mkdtemp(prefix="finance_calc_"), "overrides.sqlite3"),
)
