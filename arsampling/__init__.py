"""Adaptive rejection sampling for univariate log-concave targets."""

from .errors import (
    InsufficientSupportError,
    InvalidSampleCountError,
    IterationLimitError,
    TargetConfigError,
)
from .inference.ars import ARSResult, AdaptiveRejectionSampler, SamplerState, adaptive_rejection_sample
from .inference.support import SupportSet
from .experiments.parallel import ParallelResult, run_parallel
from .targets import (
    BetaTarget,
    CallableTarget,
    GammaTarget,
    NormalMixtureTarget,
    NormalTarget,
    build_target,
)

__version__ = "0.1.0"
