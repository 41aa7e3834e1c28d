"""Backend pytest configuration (kept intentionally minimal).

The application package resides in the nested `fuelops/` directory. pytest
puts this directory on `sys.path` when it loads this file, so `fuelops` is
importable without an install as long as we avoid having an `__init__` at
the backend root (which would shadow the real package).
"""

# Intentionally no path mangling here.
