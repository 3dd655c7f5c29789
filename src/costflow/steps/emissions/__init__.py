from .co2 import EmissionEstimate, GreenOpsStep, estimate_kg_co2
from .coefficients import DEFAULT_COEFFICIENTS, EmissionCoefficient, load_coefficients

__all__ = [
    "DEFAULT_COEFFICIENTS",
    "EmissionCoefficient",
    "EmissionEstimate",
    "GreenOpsStep",
    "estimate_kg_co2",
    "load_coefficients",
]
