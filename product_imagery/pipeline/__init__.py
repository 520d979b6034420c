"""
Imagery Derivative Pipeline

caller -> validation -> (optional) content analysis -> profile
resolution -> derivative generation, all under a per-image deadline.
"""

from product_imagery.pipeline.orchestrator import ImagePipeline

__all__ = ["ImagePipeline"]
