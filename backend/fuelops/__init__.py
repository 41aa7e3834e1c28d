"""Top-level application package for the FuelOps API.

This package contains the FastAPI backend behind the field app used to
request, approve and disperse diesel at telecom sites. It includes the
database models, Pydantic schemas, the fuel calculators, service layers for
tickets, dispersions, deviations, uplifts, reports and alerts, as well as
the API routers.

To run the API locally you can execute:

```bash
uvicorn fuelops.api.main:app --reload
```

This will serve the FastAPI application on http://localhost:8000 and
automatically reload on code changes. Without ``DATABASE_URL`` the
configuration falls back to a local SQLite database stored in
``fuelops.db``. You can override configuration values using environment
variables or a ``.env`` file at the project root.
"""

__all__: list[str] = []  # explicit for linters; populated dynamically elsewhere if needed
