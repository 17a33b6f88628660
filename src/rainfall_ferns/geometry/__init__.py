"""
Scene geometry: anchors, boundary outlines, fern point clouds and the
GLB frame exporter.
"""

from .anchors import AnchorSet, build_anchors
from .outlines import build_outline_segments
from .fern import FernCloud, FernStyle, fern_style, grow_fern, regrow_fern
from .scene import Camera, Label, Scene
from .gltf_exporter import GLTFExporter

__all__ = [
    "AnchorSet",
    "build_anchors",
    "build_outline_segments",
    "FernCloud",
    "FernStyle",
    "fern_style",
    "grow_fern",
    "regrow_fern",
    "Camera",
    "Label",
    "Scene",
    "GLTFExporter",
]
