"""FoldONNX: constant folding for ONNX models."""

__docformat__ = "restructuredtext"
__all__ = ["FoldONNX", "fold_constants"]

import logging
import time
from pathlib import Path

import onnx
from onnx import ModelProto

from foldonnx.configs import FoldingConfig, ValidationConfig
from foldonnx.constant_folding import ConstantFolding
from foldonnx.graph import Graph, remove_unused_initializers
from foldonnx.kernels import KernelRegistry
from foldonnx.utils import count_nodes

logger = logging.getLogger(__name__)


def fold_constants(
    model: ModelProto,
    config: FoldingConfig | None = None,
    registry: KernelRegistry | None = None,
) -> tuple[ModelProto, bool]:
    """Constant fold ``model`` and return the folded copy.

    The pass itself never prunes initializers; unused ones are removed
    afterwards when ``config.remove_unused_initializers`` is set.

    :param model: Input ONNX model, left untouched
    :param config: Folding configuration (default: FoldingConfig())
    :param registry: Kernel registry (default: NumPy kernels + ONNX Runtime)
    :return: Tuple of (folded model, whether any node was folded)
    """
    from foldonnx.preprocess import preprocess_model

    config = config or FoldingConfig()

    model = preprocess_model(
        model,
        constant_to_initializer=config.constant_to_initializer,
        infer_shapes=config.infer_shapes,
    )

    graph = Graph.from_model(model)
    modified = ConstantFolding.from_config(config, registry).apply(graph)

    if config.remove_unused_initializers:
        remove_unused_initializers(graph)

    model.graph.CopyFrom(graph.to_onnx())
    return model, modified


class FoldONNX:
    """Constant folding toolkit for ONNX model files."""

    def fold(
        self,
        onnx_path: str,
        target_path: str | None = None,
        config: FoldingConfig | None = None,
        validation: ValidationConfig | None = None,
    ) -> dict:
        """Constant fold an ONNX model file.

        The folding pipeline:
        1. Load and check model
        2. Preprocess (Constant nodes to initializers, shape inference)
        3. Fold constants
        4. Remove unused initializers
        5. Save folded model
        6. Optionally validate outputs

        :param onnx_path: Path to input ONNX model
        :param target_path: Path to save folded model (default: {input}_folded.onnx)
        :param config: Folding configuration (default: FoldingConfig())
        :param validation: Validation configuration (default: ValidationConfig())
        :return: Folding report
        :raises ValueError: If the model is invalid or validation fails
        """
        from foldonnx.preprocess import load_model, mark_foldonnx_model

        validation = validation or ValidationConfig()

        start_time = time.perf_counter()

        model = load_model(onnx_path, check_model=True)
        new_model, modified = self.fold_model(model, config)
        new_model = mark_foldonnx_model(new_model)

        folding_time = time.perf_counter() - start_time

        # Determine save path
        if target_path is None:
            target_path = onnx_path.replace(".onnx", "_folded.onnx")
        target_path_obj = Path(target_path)
        target_path_obj.parent.mkdir(parents=True, exist_ok=True)
        onnx.save(new_model, str(target_path_obj))

        original_node_count = count_nodes(model.graph)
        folded_node_count = count_nodes(new_model.graph)
        report = {
            "modified": modified,
            "original_nodes": original_node_count,
            "folded_nodes": folded_node_count,
            "reduction": original_node_count - folded_node_count,
            "original_initializers": len(model.graph.initializer),
            "folded_initializers": len(new_model.graph.initializer),
            "folding_time": folding_time,
            "output_path": target_path,
            "validation": None,
        }
        logger.info(
            "Folded %s: %d -> %d nodes in %.3fs",
            onnx_path,
            original_node_count,
            folded_node_count,
            folding_time,
        )

        if validation.validate_outputs:
            validation_result = self.validate_outputs(model, new_model, validation)
            report["validation"] = validation_result

            if not validation_result["all_match"]:
                raise ValueError(
                    f"Validation failed: "
                    f"{validation_result['failed']}/{validation_result['num_tests']} tests failed, "
                    f"max_diff={validation_result['max_diff']:.2e}"
                )

        return report

    def fold_model(
        self,
        model: ModelProto,
        config: FoldingConfig | None = None,
        registry: KernelRegistry | None = None,
    ) -> tuple[ModelProto, bool]:
        """Constant fold an in-memory model. See :func:`fold_constants`."""
        return fold_constants(model, config, registry)

    def validate(self, model: ModelProto) -> dict:
        """Run structural checks (checker, broken connections, orphan initializers)."""
        from foldonnx.model_validate import validate_model

        return validate_model(model)

    def validate_outputs(
        self,
        original: ModelProto,
        folded: ModelProto,
        validation: ValidationConfig | None = None,
    ) -> dict:
        """Compare outputs of the original and folded models numerically.

        :param original: Model before folding
        :param folded: Model after folding
        :param validation: Validation configuration
        :return: Validation report
        """
        validation = validation or ValidationConfig()

        from foldonnx.model_validate import compare_model_outputs

        return compare_model_outputs(
            original,
            folded,
            num_samples=validation.num_samples,
            rtol=validation.rtol,
            atol=validation.atol,
        )
