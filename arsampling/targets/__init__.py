"""Target densities, registry and initial support grids."""

from .densities import (
    BetaTarget,
    CallableTarget,
    GammaTarget,
    NormalMixtureTarget,
    NormalTarget,
    TargetDensity,
    has_cdf,
    numerical_derivative,
)
from .grids import linear_grid, quantile_grid, support_from_config
from .registry import build_target, get_available_targets, register_target
