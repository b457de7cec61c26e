"""Vectorization pipeline for raster-to-cut-file conversion.

AIDEV-NOTE: This package handles the complete pipeline from decoded
bitmap to layered SVG. Organized into modular components:
- processor: Main Vectorizer orchestrator
- modes: Silhouette, multicolor and line-art processors
- quantization: Color palette reduction
- cleanup: Binary threshold/erosion/region removal
- tracing: Pillow decoding and potrace bitmap tracing
- svg_parser: Path-command parsing and path post-processing
- svg_builder: Final SVG document assembly
- utils: Geometric utilities
"""

from .processor import Vectorizer, convert, cutter_warnings
from .svg_builder import assemble

__all__ = ["Vectorizer", "assemble", "convert", "cutter_warnings"]
