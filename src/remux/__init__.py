from importlib.metadata import version

from .forms import FormScope, method_override
from .middleware import TERMINATED, Continue, Middleware, Outcome, Terminated, collapse
from .pattern import Pattern, PatternError
from .route import HandlerFactory, Middlewares, Route, new_route
from .router import (
    Router,
    allowed_methods,
    matched_route,
    method_not_allowed,
    not_found,
)

__all__ = [
    "TERMINATED",
    "Continue",
    "FormScope",
    "HandlerFactory",
    "Middleware",
    "Middlewares",
    "Outcome",
    "Pattern",
    "PatternError",
    "Route",
    "Router",
    "Terminated",
    "__version__",
    "allowed_methods",
    "collapse",
    "matched_route",
    "method_not_allowed",
    "method_override",
    "new_route",
    "not_found",
]

__version__ = version("remux")
