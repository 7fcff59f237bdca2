"""Top‑level package for the Finance Tracker.

The primary modules are:

* ``models`` – the four record types and input validation
* ``store`` / ``db`` / ``json_store`` – user-scoped persistence backends
* ``analytics`` – aggregations behind the dashboards
* ``bills`` – effective bill status resolution
* ``export`` – CSV and JSON backup serialisation
* ``visualization`` – Plotly figures used by the pages

To run the app from the command line you can execute:

```bash
streamlit run finance_tracker/Home.py
```

or use ``run_dashboard.py`` in the project root.
"""

# The Streamlit UI module is not imported here so the core can be used
# (and tested) without starting a Streamlit runtime.

from . import analytics  # noqa: F401  # re-exported for convenience
from . import bills  # noqa: F401  # re-exported for convenience
from . import export  # noqa: F401  # re-exported for convenience
from . import models  # noqa: F401  # re-exported for convenience
from .session import UserSession  # noqa: F401
from .store import get_store  # noqa: F401

__version__ = "0.1.0"

__all__ = ["analytics", "bills", "export", "models", "UserSession", "get_store"]
