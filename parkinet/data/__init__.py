"""Dataset registry and loader helpers."""

# Ensure built-in datasets register themselves when the package is imported.
from . import parkinsons as _parkinsons  # noqa: F401
from . import synthetic as _synthetic  # noqa: F401
