"""API package.

This exposes router modules to simplify test imports like:
	from fuelops.api.routes.tickets import router
"""

__all__ = [
	"routes",
]
