"""Configuration dataclasses for FoldONNX."""

__docformat__ = "restructuredtext"
__all__ = ["FoldingConfig", "ValidationConfig"]

from dataclasses import dataclass

from foldonnx.constant_folding._constants import DEFAULT_EXCLUDED_OP_TYPES


@dataclass(frozen=True)
class FoldingConfig:
    """Immutable constant folding configuration.

    An empty ``compatible_targets`` means every execution target is
    compatible. ``excluded_operators`` defaults to the non-deterministic
    operators, which must never be folded.
    """

    # Eligibility
    compatible_targets: frozenset[str] = frozenset()
    excluded_operators: frozenset[str] = DEFAULT_EXCLUDED_OP_TYPES
    excluded_initializers: frozenset[str] = frozenset()

    # Preprocessing
    constant_to_initializer: bool = True
    infer_shapes: bool = True

    # Postprocessing
    remove_unused_initializers: bool = True


@dataclass(frozen=True)
class ValidationConfig:
    """Immutable validation configuration.

    Controls numerical output validation between original and folded models.
    """

    validate_outputs: bool = False
    num_samples: int = 5
    rtol: float = 1e-5
    atol: float = 1e-6
