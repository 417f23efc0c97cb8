"""Constants for the constant-folding pass."""

__docformat__ = "restructuredtext"
__all__ = ["DEFAULT_EXCLUDED_OP_TYPES"]

# Operators whose output varies across invocations with identical inputs.
# Folding them would freeze a single sample into the graph.
DEFAULT_EXCLUDED_OP_TYPES = frozenset(
    {
        "RandomUniform",
        "RandomNormal",
        "RandomUniformLike",
        "RandomNormalLike",
        "Multinomial",
    }
)
